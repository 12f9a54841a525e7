"""Base source class.

A source serves pages of the entities it declares. Each entity is declared
with an ``EntityDefinition`` holding the fetch functions the sequencer
drives: one function for a single-level listing, or a collection/member
pair for nested listings. The request flow is identical for every source:

    decode cursor -> validate -> sequence fetches -> derive IDs -> encode cursor
"""

from dataclasses import dataclass
from typing import ClassVar, Dict, List, Optional

from pagesync.core.config import Settings, settings as default_settings
from pagesync.core.exceptions import EntityNotSupportedError, InvalidPageRequestError
from pagesync.core.logging import ContextualLogger, logger as default_logger
from pagesync.core.shared_models import PagingMode
from pagesync.platform.cursors import decode_cursor, encode_cursor, validate_cursor
from pagesync.platform.identity import IdentityDeriver
from pagesync.platform.pagination.sequencer import PageSequencer
from pagesync.platform.pagination.types import (
    FetchInner,
    FetchOuter,
    FetchPage,
    SequencedPage,
)
from pagesync.schemas.page import PageRequest, PageResponse


@dataclass(frozen=True)
class EntityDefinition:
    """How a source pages through one entity.

    Attributes:
        entity_id: External ID of the entity in page requests
        mode: Offset or token positions
        fetch_page: Fetches a page of a single-level entity
        fetch_outer: Fetches collection objects of a nested entity
        fetch_inner: Fetches members of one collection of a nested entity
        identity_kind: Identity scheme applied to every object, if any
        unique_id_attribute: Attribute holding collection object IDs and
            receiving synthetic IDs, the configured default when unset
        collection_attribute: Attribute set on every member object to the
            ID of its collection, if any
    """

    entity_id: str
    mode: PagingMode = PagingMode.OFFSET
    fetch_page: Optional[FetchPage] = None
    fetch_outer: Optional[FetchOuter] = None
    fetch_inner: Optional[FetchInner] = None
    identity_kind: Optional[str] = None
    unique_id_attribute: Optional[str] = None
    collection_attribute: Optional[str] = None

    def __post_init__(self):
        nested = self.fetch_outer is not None or self.fetch_inner is not None
        if nested and (self.fetch_outer is None or self.fetch_inner is None):
            raise ValueError(
                f"Entity {self.entity_id} needs both fetch_outer and fetch_inner to be nested"
            )
        if nested == (self.fetch_page is not None):
            raise ValueError(
                f"Entity {self.entity_id} needs either fetch_page or fetch_outer/fetch_inner"
            )
        if self.collection_attribute is not None and not nested:
            raise ValueError(
                f"Entity {self.entity_id} sets collection_attribute but is not nested"
            )

    @property
    def allows_nesting(self) -> bool:
        """Whether this entity iterates the members of a collection."""
        return self.fetch_inner is not None

    @property
    def cursor_type(self) -> type:
        """Python type of this entity's cursor positions."""
        return int if self.mode == PagingMode.OFFSET else str


class BaseSource:
    """Base class for all sources."""

    source_name: ClassVar[str] = "source"

    def __init__(
        self,
        settings: Optional[Settings] = None,
        identity_deriver: Optional[IdentityDeriver] = None,
    ):
        """Initialize the base source.

        Args:
            settings: Settings to use, defaults to the process settings
            identity_deriver: Identity schemes for entities without natural IDs
        """
        self.settings = settings or default_settings
        self.identity_deriver = identity_deriver or IdentityDeriver()
        self._entities: Dict[str, EntityDefinition] = {}
        self._logger: Optional[ContextualLogger] = None

    @property
    def logger(self) -> ContextualLogger:
        """Get the logger for this source, falling back to default if not set."""
        if self._logger is not None:
            return self._logger
        return default_logger.with_context(source=self.source_name)

    def set_logger(self, logger: ContextualLogger) -> None:
        """Set a contextual logger for this source."""
        self._logger = logger

    # ------------------------------------------------------------------
    # Entity registry
    # ------------------------------------------------------------------

    def register_entity(self, definition: EntityDefinition) -> None:
        """Declare an entity this source can page through."""
        if definition.entity_id in self._entities:
            raise ValueError(f"Entity {definition.entity_id} is already registered")
        self._entities[definition.entity_id] = definition

    def entity(self, entity_id: str) -> EntityDefinition:
        """Definition of ``entity_id``.

        Raises:
            EntityNotSupportedError: If the source does not declare the entity
        """
        try:
            return self._entities[entity_id]
        except KeyError:
            raise EntityNotSupportedError(entity_id, self.source_name) from None

    @property
    def entity_ids(self) -> List[str]:
        """External IDs of all declared entities."""
        return list(self._entities)

    # ------------------------------------------------------------------
    # Page requests
    # ------------------------------------------------------------------

    def validate_request(self, request: PageRequest) -> EntityDefinition:
        """Check the request against source limits and return the entity definition."""
        definition = self.entity(request.entity)
        self.page_size_for(request)
        return definition

    def page_size_for(self, request: PageRequest) -> int:
        """Requested page size, or the configured default when the request omits one.

        Raises:
            InvalidPageRequestError: If the page size exceeds the maximum
        """
        page_size = request.page_size or self.settings.DEFAULT_PAGE_SIZE
        if page_size > self.settings.MAX_PAGE_SIZE:
            raise InvalidPageRequestError(
                f"Provided page size ({page_size}) exceeds the maximum "
                f"({self.settings.MAX_PAGE_SIZE})."
            )
        return page_size

    def unique_id_attribute_for(self, definition: EntityDefinition) -> str:
        """Attribute holding object IDs for ``definition``."""
        return definition.unique_id_attribute or self.settings.UNIQUE_ID_ATTRIBUTE

    async def get_page(self, request: PageRequest) -> PageResponse:
        """Serve one page of ``request.entity``.

        No cursor is emitted when anything fails; the caller may retry with
        the cursor it sent.
        """
        definition = self.validate_request(request)
        page_size = self.page_size_for(request)
        request_logger = self.logger.with_context(entity=request.entity, page_size=page_size)
        request_logger.info("Starting datasource request")

        cursor = decode_cursor(request.cursor, definition.cursor_type)
        validate_cursor(cursor, definition.entity_id, definition.allows_nesting)

        sequencer = PageSequencer(
            mode=definition.mode,
            timeout_seconds=self.settings.REQUEST_TIMEOUT_SECONDS,
            logger=request_logger,
        )

        if definition.allows_nesting:
            page = await sequencer.next_nested_page(
                cursor,
                page_size,
                definition.fetch_outer,
                definition.fetch_inner,
                unique_id_attribute=self.unique_id_attribute_for(definition),
                entity_id=definition.entity_id,
            )
        else:
            page = await sequencer.next_page(cursor, page_size, definition.fetch_page)

        objects = self.transform_objects(definition, page)
        next_cursor = encode_cursor(page.next_cursor)

        request_logger.info(
            "Datasource request completed successfully",
            extra={"object_count": len(objects), "has_next_cursor": bool(next_cursor)},
        )
        return PageResponse(objects=objects, next_cursor=next_cursor)

    def transform_objects(
        self, definition: EntityDefinition, page: SequencedPage
    ) -> List[dict]:
        """Attach collection IDs and synthetic IDs to the raw objects of a page.

        Sources override this to reshape vendor objects; the returned objects
        are new dicts, the page is left untouched.
        """
        objects = [dict(obj) for obj in page.objects]
        if definition.collection_attribute is not None and page.collection_id is not None:
            for obj in objects:
                obj[definition.collection_attribute] = page.collection_id
        if definition.identity_kind is not None:
            objects = self.identity_deriver.assign(
                definition.identity_kind,
                objects,
                attribute=self.unique_id_attribute_for(definition),
            )
        return objects
