"""Page protocol schemas exchanged with the ingestion service."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class PageRequest(BaseModel):
    """Request for one page of an entity.

    ``cursor`` is the opaque token returned with the previous page, empty on
    the first page of a sync.
    """

    model_config = ConfigDict(populate_by_name=True)

    entity: str = Field(..., min_length=1, description="External ID of the requested entity")
    page_size: Optional[int] = Field(
        None,
        alias="pageSize",
        gt=0,
        description="Maximum objects to return, the configured default when omitted",
    )
    cursor: str = Field(default="", description="Opaque cursor, empty on the first page")


class PageResponse(BaseModel):
    """One page of records plus the cursor resuming after it.

    An empty ``next_cursor`` signals that the sync is complete.
    """

    model_config = ConfigDict(populate_by_name=True)

    objects: List[Dict[str, Any]] = Field(default_factory=list, description="Raw records")
    next_cursor: str = Field(
        default="", alias="nextCursor", description="Opaque cursor, empty when complete"
    )

    @property
    def is_last_page(self) -> bool:
        """Whether this page completes the sync."""
        return self.next_cursor == ""
