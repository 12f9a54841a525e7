"""In-memory listings for testing sources and the sequencer.

Each listing behaves like an offset-paginated vendor endpoint reporting an
explicit "more" flag, and records every call for assertions.
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from pagesync.platform.pagination.types import FetchResult


class FakeListing:
    """Offset-paginated listing over a fixed list of objects.

    Usage:
        groups = FakeListing([{"id": "g1"}, {"id": "g2"}])
        result = await groups.fetch_page(0, 1)
        assert result.has_more is True
        assert groups.calls == [(0, 1)]
    """

    def __init__(self, objects: Sequence[Mapping[str, Any]], report_more: bool = True):
        """Initialize the listing.

        Args:
            objects: Objects in listing order
            report_more: Whether to report the "more" flag; when False the
                sequencer has to fall back to counting
        """
        self._objects = [dict(obj) for obj in objects]
        self._report_more = report_more
        self.calls: List[Tuple[Optional[int], int]] = []

    async def fetch_page(self, position: Optional[int], limit: int) -> FetchResult:
        """Return up to ``limit`` objects starting at ``position``."""
        self.calls.append((position, limit))
        start = position or 0
        page = self._objects[start : start + limit]
        has_more = start + len(page) < len(self._objects) if self._report_more else None
        return FetchResult(objects=[dict(obj) for obj in page], has_more=has_more)

    # Test helpers

    @property
    def call_count(self) -> int:
        """Number of fetches served."""
        return len(self.calls)


class FakeNestedListing:
    """Collections and their members, e.g. teams and team members.

    Usage:
        listing = FakeNestedListing({"team1": [{"id": "u1"}], "team2": []})
        outer = await listing.fetch_outer(0, 1)      # [{"id": "team1"}]
        inner = await listing.fetch_inner("team1", 0, 10)
    """

    def __init__(
        self,
        members_by_collection: Mapping[str, Sequence[Mapping[str, Any]]],
        report_more: bool = True,
    ):
        """Initialize the listing.

        Args:
            members_by_collection: Members of each collection, in collection order
            report_more: Whether to report the "more" flag
        """
        self.collections = FakeListing(
            [{"id": collection_id} for collection_id in members_by_collection],
            report_more=report_more,
        )
        self.members: Dict[str, FakeListing] = {
            collection_id: FakeListing(members, report_more=report_more)
            for collection_id, members in members_by_collection.items()
        }
        self.inner_calls: List[Tuple[str, Optional[int], int]] = []

    async def fetch_outer(self, position: Optional[int], limit: int) -> FetchResult:
        """Return collection objects."""
        return await self.collections.fetch_page(position, limit)

    async def fetch_inner(
        self, collection_id: str, position: Optional[int], limit: int
    ) -> FetchResult:
        """Return members of ``collection_id``."""
        self.inner_calls.append((collection_id, position, limit))
        return await self.members[collection_id].fetch_page(position, limit)

    # Test helpers

    @property
    def outer_calls(self) -> List[Tuple[Optional[int], int]]:
        """Positions and limits of every collection fetch."""
        return self.collections.calls
