"""Declarative REST source.

Entities are described by ``RestEntity`` configs instead of code: the path
of the listing, where the response keeps its objects and paging metadata,
and, for nested entities, the path of the collection listing plus a member
path template containing ``{collection_id}``.

Example:
    source = RestSource(
        base_url="https://api.example.com",
        credentials="Bearer ...",
        entities=[
            RestEntity("teams", path="teams", shape=ResponseShape("teams", "more")),
            RestEntity(
                "members",
                path="teams/{collection_id}/members",
                collection_path="teams",
                shape=ResponseShape("members", "more"),
                collection_shape=ResponseShape("teams", "more"),
                identity_kind="members",
                collection_attribute="teamId",
            ),
        ],
    )
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional
from urllib.parse import quote

from pagesync.core.config import Settings
from pagesync.core.shared_models import PagingMode
from pagesync.platform.identity import IdentityDeriver
from pagesync.platform.pagination.types import FetchResult
from pagesync.platform.sources._base import BaseSource, EntityDefinition
from pagesync.platform.sources.http import ResponseShape, VendorHttpClient, VendorResponse


@dataclass(frozen=True)
class RestEntity:
    """Declarative description of one REST entity.

    Attributes:
        entity_id: External ID of the entity in page requests
        path: Listing path; for nested entities a template with ``{collection_id}``
        collection_path: Path of the collection listing, set for nested entities
        mode: Offset or token positions
        shape: Response layout of ``path``
        collection_shape: Response layout of ``collection_path``, defaults to ``shape``
        extra_params: Additional query parameters sent with every request
        identity_kind: Identity scheme applied to every object, if any
        unique_id_attribute: Attribute holding object IDs, the configured default when unset
        collection_attribute: Attribute receiving the collection ID on members
    """

    entity_id: str
    path: str
    collection_path: Optional[str] = None
    mode: PagingMode = PagingMode.OFFSET
    shape: ResponseShape = ResponseShape()
    collection_shape: Optional[ResponseShape] = None
    extra_params: Optional[Dict[str, Any]] = None
    identity_kind: Optional[str] = None
    unique_id_attribute: Optional[str] = None
    collection_attribute: Optional[str] = None

    @property
    def is_nested(self) -> bool:
        """Whether the entity iterates the members of a collection."""
        return self.collection_path is not None


class RestSource(BaseSource):
    """Source whose entities are plain paginated REST listings."""

    source_name = "rest"

    def __init__(
        self,
        base_url: str,
        credentials: Optional[str] = None,
        entities: Iterable[RestEntity] = (),
        http: Optional[VendorHttpClient] = None,
        settings: Optional[Settings] = None,
        identity_deriver: Optional[IdentityDeriver] = None,
    ):
        """Initialize the REST source.

        Args:
            base_url: Vendor API base URL
            credentials: ``Authorization`` header value
            entities: Entities to declare
            http: Vendor HTTP client, built from settings if omitted
            settings: Settings to use
            identity_deriver: Identity schemes for entities without natural IDs
        """
        super().__init__(settings=settings, identity_deriver=identity_deriver)
        self.base_url = base_url
        self.credentials = credentials
        self.http = http or VendorHttpClient(
            timeout_seconds=self.settings.REQUEST_TIMEOUT_SECONDS,
            service_name=self.source_name,
        )
        for entity in entities:
            self.register_rest_entity(entity)

    def register_rest_entity(self, entity: RestEntity) -> None:
        """Declare ``entity`` with fetch functions bound to its paths."""
        if not entity.is_nested:

            async def fetch_page(position, limit):
                return await self._fetch(entity, entity.path, entity.shape, position, limit)

            self.register_entity(
                EntityDefinition(
                    entity_id=entity.entity_id,
                    mode=entity.mode,
                    fetch_page=fetch_page,
                    identity_kind=entity.identity_kind,
                    unique_id_attribute=entity.unique_id_attribute,
                )
            )
            return

        if "{collection_id}" not in entity.path:
            raise ValueError(
                f"Nested entity {entity.entity_id} path must contain {{collection_id}}"
            )
        collection_shape = entity.collection_shape or entity.shape

        async def fetch_outer(position, limit):
            return await self._fetch(
                entity, entity.collection_path, collection_shape, position, limit
            )

        async def fetch_inner(collection_id, position, limit):
            path = entity.path.format(collection_id=quote(collection_id, safe=""))
            return await self._fetch(entity, path, entity.shape, position, limit)

        self.register_entity(
            EntityDefinition(
                entity_id=entity.entity_id,
                mode=entity.mode,
                fetch_outer=fetch_outer,
                fetch_inner=fetch_inner,
                identity_kind=entity.identity_kind,
                unique_id_attribute=entity.unique_id_attribute,
                collection_attribute=entity.collection_attribute,
            )
        )

    async def _fetch(
        self,
        entity: RestEntity,
        path: str,
        shape: ResponseShape,
        position: Optional[Any],
        limit: int,
    ) -> FetchResult:
        response = await self.http.fetch(
            self.base_url,
            self.credentials,
            path,
            position,
            limit,
            shape=shape,
            extra_params=entity.extra_params,
        )
        return _to_fetch_result(response, entity.mode)


def _to_fetch_result(response: VendorResponse, mode: PagingMode) -> FetchResult:
    next_cursor = response.next_token
    if mode == PagingMode.TOKEN and next_cursor is not None:
        next_cursor = str(next_cursor)
    elif mode == PagingMode.OFFSET and not isinstance(next_cursor, int):
        next_cursor = None
    return FetchResult(
        objects=response.objects,
        next_cursor=next_cursor,
        has_more=response.has_more,
    )
