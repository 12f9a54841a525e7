"""Pagination helpers shared by connectors."""

from typing import Any, Dict, List, Optional, Tuple

from pagesync.core.exceptions import InvalidCursorStateError, MalformedCursorError
from pagesync.platform.cursors._base import CompositeCursor


def next_offset_from_page_size(
    objects_in_page: int, page_size: int, current_offset: int
) -> Optional[int]:
    """Next offset for APIs that only tell us how many objects they returned.

    A page shorter than ``page_size`` is the last one. A full page *may* be
    followed by more, so the next offset is returned and the following
    request will find out.
    """
    if objects_in_page == page_size:
        return current_offset + page_size
    return None


def next_cursor_from_link_header(link_header: Optional[str]) -> Optional[CompositeCursor[str]]:
    """Cursor holding the ``rel="next"`` URL of an RFC 8288 Link header.

    Example header:
        <https://api.example.com/issues?page=1>; rel="prev",
        <https://api.example.com/issues?page=3>; rel="next"

    Returns ``None`` when there is no next link, which ends the sync.
    """
    if not link_header:
        return None
    for part in link_header.split(","):
        segments = part.split(";")
        if any(seg.strip().replace(" ", "") == 'rel="next"' for seg in segments[1:]):
            url = segments[0].strip().strip("<>")
            if url:
                return CompositeCursor[str](cursor=url)
    return None


def parse_offset_value(cursor: Optional[CompositeCursor]) -> int:
    """Integer offset held by ``cursor``; 0 when there is none.

    Token cursors holding a decimal string are accepted.

    Raises:
        MalformedCursorError: If a token cursor is not a number
    """
    if cursor is None or cursor.cursor is None:
        return 0
    if isinstance(cursor.cursor, int):
        return cursor.cursor
    try:
        return int(cursor.cursor, 10)
    except ValueError as e:
        raise MalformedCursorError(
            f"Unable to parse cursor: want valid number, got {{{cursor.cursor}}}."
        ) from e


def paginate_objects(
    objects: List[Dict[str, Any]],
    page_size: int,
    cursor: Optional[CompositeCursor],
    cursor_type: type = int,
) -> Tuple[List[Dict[str, Any]], Optional[Any]]:
    """Page through a fully fetched list for APIs without server-side paging.

    Args:
        objects: Every object of the listing
        page_size: Objects per page
        cursor: Cursor of the previous page
        cursor_type: ``int`` or ``str``; type of the returned next position

    Returns:
        The requested page and the next position (``None`` on the last page)

    Raises:
        InvalidCursorStateError: If the cursor points outside the listing
    """
    start = parse_offset_value(cursor)
    total = len(objects)

    # Offset 0 is allowed on an empty listing so an empty sync yields one empty page
    if start != 0 and (start >= total or start < 0):
        raise InvalidCursorStateError(
            f"The cursor value: {start}, is out of range for number of objects: {total}"
        )

    end = min(start + page_size, total)
    next_position: Optional[Any] = None
    if end < total:
        next_position = str(end) if cursor_type is str else end

    return objects[start:end], next_position
