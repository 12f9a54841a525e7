"""Value objects and fetch protocols for page sequencing."""

from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Optional, Protocol

from pagesync.platform.cursors._base import CompositeCursor, T


@dataclass(frozen=True)
class FetchResult(Generic[T]):
    """What a single vendor fetch returned.

    Attributes:
        objects: Raw JSON objects of the page
        next_cursor: Next offset or token reported by the vendor, if any
        has_more: Explicit "more results" flag reported by the vendor, if any
    """

    objects: List[Dict[str, Any]] = field(default_factory=list)
    next_cursor: Optional[T] = None
    has_more: Optional[bool] = None


@dataclass(frozen=True)
class PagePlan(Generic[T]):
    """Position and limit of the next vendor fetch."""

    position: Optional[T]
    limit: int


@dataclass(frozen=True)
class SequencedPage(Generic[T]):
    """Objects of one page plus the cursor resuming after it.

    ``next_cursor`` is ``None`` exactly when the sync is complete.
    ``collection_id`` is the collection the objects belong to for nested
    entities.
    """

    objects: List[Dict[str, Any]]
    next_cursor: Optional[CompositeCursor[T]]
    collection_id: Optional[str] = None


class FetchPage(Protocol):
    """Fetch one page of a single-level collection."""

    async def __call__(self, position: Optional[Any], limit: int) -> FetchResult:
        """Fetch up to ``limit`` objects starting at ``position``."""
        ...


class FetchInner(Protocol):
    """Fetch one page of the members of a collection."""

    async def __call__(
        self, collection_id: str, position: Optional[Any], limit: int
    ) -> FetchResult:
        """Fetch up to ``limit`` members of ``collection_id`` starting at ``position``."""
        ...


# The outer collection is an ordinary single-level listing fetched one item at a time.
FetchOuter = FetchPage
