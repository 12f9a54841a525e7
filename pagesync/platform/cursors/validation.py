"""Structural validation of decoded cursors."""

from typing import Optional

from pagesync.core.exceptions import InvalidCursorStateError
from pagesync.platform.cursors._base import CompositeCursor


def _is_valid_position(position) -> bool:
    if isinstance(position, str):
        return position != ""
    return position > 0


def validate_cursor(
    cursor: Optional[CompositeCursor],
    entity_id: str,
    allows_nesting: bool,
) -> None:
    """Validate a decoded cursor against the entity it was submitted for.

    Rules:
    1) A present primary cursor must be greater than 0 (non-empty for token
       cursors). Offset 0 is never encoded: the start of a sync is the absent
       cursor.
    2) Entities without nesting must not carry ``collection_id`` or
       ``collection_cursor``.
    3) Nested entities may carry ``collection_id`` without a primary cursor
       (the current collection is drained); a present ``collection_cursor``
       follows rule 1.

    ``None`` is always valid.

    Args:
        cursor: Decoded cursor
        entity_id: External ID of the requested entity, used in messages
        allows_nesting: Whether the entity iterates a collection's members

    Raises:
        InvalidCursorStateError: If any rule is violated
    """
    if cursor is None:
        return

    if cursor.cursor is not None and not _is_valid_position(cursor.cursor):
        raise InvalidCursorStateError("Cursor must be greater than 0.", entity_id=entity_id)

    if not allows_nesting:
        if cursor.has_collection_fields:
            raise InvalidCursorStateError(
                f"Cursor must not contain collectionId or collectionCursor fields for entity "
                f"{entity_id}: nested pagination is not supported for it.",
                entity_id=entity_id,
            )
        return

    if cursor.collection_cursor is not None and not _is_valid_position(cursor.collection_cursor):
        raise InvalidCursorStateError(
            "Collection cursor must be greater than 0.", entity_id=entity_id
        )
