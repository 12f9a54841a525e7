"""Composite cursor model for resumable pagination."""

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

# Primary position type: int64 offsets or opaque vendor tokens.
T = TypeVar("T", int, str)


class CompositeCursor(BaseModel, Generic[T]):
    """Pagination state exchanged with the caller as an opaque token.

    Parametrize with the entity's position type, ``CompositeCursor[int]`` for
    offset-based APIs (``offset``, ``startAt``) and ``CompositeCursor[str]`` for
    APIs handing out next-page tokens or URLs.

    A *collection* is an outer entity that contains other entities (teams
    contain members, groups contain users). The collection fields are only
    used when the requested entity is such a member entity and must be absent
    otherwise; see ``validate_cursor``.

    Instances are frozen: every page request produces a new cursor.
    """

    model_config = ConfigDict(
        frozen=True,
        strict=True,
        populate_by_name=True,
        # Unknown keys from newer encoders are ignored
        extra="ignore",
    )

    cursor: Optional[T] = Field(
        None,
        description="Position of the first object of the next page in the level being iterated",
    )
    collection_id: Optional[str] = Field(
        None,
        alias="collectionId",
        description="ID of the collection whose members are being iterated",
    )
    collection_cursor: Optional[T] = Field(
        None,
        alias="collectionCursor",
        description="Position of the next collection object once the current one is drained",
    )

    @property
    def is_empty(self) -> bool:
        """Whether no field is set."""
        return self.cursor is None and self.collection_id is None and self.collection_cursor is None

    @property
    def has_collection_fields(self) -> bool:
        """Whether either nested pagination field is set."""
        return self.collection_id is not None or self.collection_cursor is not None
