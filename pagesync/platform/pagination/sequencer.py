"""Page sequencing for flat and nested (collection/member) entities.

The sequencer turns the cursor of the previous page into the next vendor
fetch and turns the fetch result into the cursor of the next page. All
traversal state lives in the cursor; a sequencer holds only configuration
and is safe to share between concurrent page requests.

Nested entities ("members of every team") are flattened into one linear
sequence using only single-level vendor pagination:

    cursor            position inside the current collection's members
    collection_id     the collection currently being drained
    collection_cursor position of the next collection, once this one is done

A request whose cursor has no primary position first fetches exactly one
collection object, then fetches the first page of its members. Drained
collections are never fetched again.
"""

import asyncio
from typing import Any, Awaitable, Optional

from pagesync.core.exceptions import (
    InvalidCursorStateError,
    InvalidPageRequestError,
    UpstreamDataShapeError,
    UpstreamTimeoutError,
)
from pagesync.core.logging import ContextualLogger, logger as default_logger
from pagesync.core.shared_models import PagingMode
from pagesync.platform.cursors._base import CompositeCursor
from pagesync.platform.pagination.types import (
    FetchInner,
    FetchOuter,
    FetchPage,
    FetchResult,
    PagePlan,
    SequencedPage,
)
from pagesync.platform.utils.json_fields import require_field, type_name


class PageSequencer:
    """Plans vendor fetches and computes next cursors.

    Each planned fetch is attempted exactly once. Retrying is the caller's
    job and is always safe: re-submitting the same cursor repeats the same
    fetches.
    """

    def __init__(
        self,
        mode: PagingMode = PagingMode.OFFSET,
        timeout_seconds: Optional[float] = None,
        logger: Optional[ContextualLogger] = None,
    ):
        """Initialize the sequencer.

        Args:
            mode: Whether positions are integer offsets or opaque tokens
            timeout_seconds: Upper bound for each fetch, ``None`` for no bound
            logger: Logger to use, defaults to the package logger
        """
        self.mode = mode
        self.timeout_seconds = timeout_seconds
        self._logger = logger or default_logger.with_context(component="page_sequencer")

    @property
    def cursor_type(self) -> type:
        """Python type of positions in this mode."""
        return int if self.mode == PagingMode.OFFSET else str

    @property
    def start_position(self) -> Optional[Any]:
        """Position of the first page: offset 0, or no token."""
        return 0 if self.mode == PagingMode.OFFSET else None

    # ------------------------------------------------------------------
    # Advance rule
    # ------------------------------------------------------------------

    def next_position(
        self, position: Optional[Any], limit: int, result: FetchResult
    ) -> Optional[Any]:
        """Position after ``result``, or ``None`` if the listing is exhausted.

        Offsets: an empty page ends the listing. Otherwise the vendor's "more"
        flag decides; without one a full page means there may be more.
        Tokens: the vendor's next token, unless it said there is no more.
        """
        if self.mode == PagingMode.TOKEN:
            if result.has_more is False:
                return None
            return self._check_position(result.next_cursor) or None

        returned = len(result.objects)
        if returned == 0:
            return None
        has_more = result.has_more if result.has_more is not None else returned >= limit
        if not has_more:
            return None
        return (position or 0) + returned

    # ------------------------------------------------------------------
    # Flat traversal
    # ------------------------------------------------------------------

    def plan(self, cursor: Optional[CompositeCursor], page_size: int) -> PagePlan:
        """Plan the fetch for a single-level entity."""
        _check_page_size(page_size)
        position = cursor.cursor if cursor is not None and cursor.cursor is not None else None
        if position is None:
            position = self.start_position
        return PagePlan(position=position, limit=page_size)

    def advance(self, plan: PagePlan, result: FetchResult) -> Optional[CompositeCursor]:
        """Cursor for the page after ``result``, ``None`` when the sync is complete."""
        nxt = self.next_position(plan.position, plan.limit, result)
        if nxt is None:
            return None
        return CompositeCursor[self.cursor_type](cursor=nxt)

    async def next_page(
        self,
        cursor: Optional[CompositeCursor],
        page_size: int,
        fetch_page: FetchPage,
    ) -> SequencedPage:
        """Fetch the page ``cursor`` points at for a single-level entity."""
        plan = self.plan(cursor, page_size)
        self._logger.debug(f"Fetching page at position {plan.position} (limit {plan.limit})")

        result = await self._fetch(fetch_page(plan.position, plan.limit))
        next_cursor = self.advance(plan, result)

        return SequencedPage(objects=list(result.objects), next_cursor=next_cursor)

    # ------------------------------------------------------------------
    # Nested traversal
    # ------------------------------------------------------------------

    async def next_nested_page(
        self,
        cursor: Optional[CompositeCursor],
        page_size: int,
        fetch_outer: FetchOuter,
        fetch_inner: FetchInner,
        unique_id_attribute: str = "id",
        entity_id: Optional[str] = None,
    ) -> SequencedPage:
        """Fetch the next page of members across all collections.

        Args:
            cursor: Cursor of the previous page, ``None`` on the first page
            page_size: Maximum number of members to return
            fetch_outer: Fetches collection objects; always called with limit 1
            fetch_inner: Fetches members of one collection
            unique_id_attribute: Attribute holding a collection object's ID
            entity_id: Requested entity, used in error messages

        Returns:
            The members page, the cursor resuming after it, and the collection
            the members belong to

        Raises:
            InvalidCursorStateError: Cursor has a position but no collection ID
            UpstreamDataShapeError: Collection page has more than one object or
                an object without a string ID
            UpstreamTimeoutError: A fetch exceeded the timeout
        """
        _check_page_size(page_size)

        if (
            cursor is not None
            and cursor.cursor is None
            and cursor.collection_id is not None
            and cursor.collection_cursor is None
        ):
            # Last collection drained with nothing after it
            return SequencedPage(objects=[], next_cursor=None, collection_id=cursor.collection_id)

        if cursor is None or cursor.cursor is None:
            outer_position = cursor.collection_cursor if cursor is not None else None
            if outer_position is None:
                outer_position = self.start_position

            self._logger.debug(f"Fetching collection object at position {outer_position}")
            outer = await self._fetch(fetch_outer(outer_position, 1))

            if not outer.objects:
                # No collection left: the sync is complete
                self._logger.debug("No collection objects remain; sync complete")
                return SequencedPage(objects=[], next_cursor=None)

            if len(outer.objects) > 1:
                raise UpstreamDataShapeError(
                    "objects",
                    "1 collection object",
                    f"{len(outer.objects)} collection objects",
                    message=(
                        f"Too many collection objects returned in response; "
                        f"expected 1, got {len(outer.objects)}."
                    ),
                )

            collection_id = require_field(outer.objects[0], unique_id_attribute, str)
            saved_outer_next = self.next_position(outer_position, 1, outer)
            inner_position = self.start_position
        else:
            if cursor.collection_id is None:
                raise InvalidCursorStateError(
                    f"Cursor does not have collectionId set for entity {entity_id}.",
                    entity_id=entity_id,
                )
            collection_id = cursor.collection_id
            saved_outer_next = cursor.collection_cursor
            inner_position = cursor.cursor

        self._logger.debug(
            f"Fetching members of {collection_id} at position {inner_position} "
            f"(limit {page_size})"
        )
        inner = await self._fetch(fetch_inner(collection_id, inner_position, page_size))
        inner_next = self.next_position(inner_position, page_size, inner)

        if inner_next is not None:
            next_cursor = CompositeCursor[self.cursor_type](
                cursor=inner_next,
                collection_id=collection_id,
                collection_cursor=saved_outer_next,
            )
        elif saved_outer_next is not None:
            # Members drained; the next request moves on to the next collection
            next_cursor = CompositeCursor[self.cursor_type](
                collection_id=collection_id,
                collection_cursor=saved_outer_next,
            )
        else:
            next_cursor = None

        return SequencedPage(
            objects=list(inner.objects),
            next_cursor=next_cursor,
            collection_id=collection_id,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _check_position(self, position: Optional[Any]) -> Optional[Any]:
        """Reject a vendor-reported position that is not of this mode's type."""
        if position is None:
            return None
        if isinstance(position, bool) or not isinstance(position, self.cursor_type):
            raise UpstreamDataShapeError(
                "next_cursor", type_name(self.cursor_type), type_name(type(position))
            )
        return position

    async def _fetch(self, call: Awaitable[FetchResult]) -> FetchResult:
        """Await one fetch, bounded by the configured timeout."""
        if self.timeout_seconds is None:
            return await call
        try:
            return await asyncio.wait_for(call, timeout=self.timeout_seconds)
        except asyncio.TimeoutError as e:
            self._logger.warning(f"Fetch timed out after {self.timeout_seconds}s")
            raise UpstreamTimeoutError(self.timeout_seconds) from e


def _check_page_size(page_size: int) -> None:
    if page_size <= 0:
        raise InvalidPageRequestError(f"Page size must be greater than 0, got {page_size}.")
