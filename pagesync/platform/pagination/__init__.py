"""Page sequencing for flat and nested entities."""

from .helpers import (
    next_cursor_from_link_header,
    next_offset_from_page_size,
    paginate_objects,
    parse_offset_value,
)
from .sequencer import PageSequencer
from .types import FetchInner, FetchOuter, FetchPage, FetchResult, PagePlan, SequencedPage

__all__ = [
    "FetchInner",
    "FetchOuter",
    "FetchPage",
    "FetchResult",
    "PagePlan",
    "PageSequencer",
    "SequencedPage",
    "next_cursor_from_link_header",
    "next_offset_from_page_size",
    "paginate_objects",
    "parse_offset_value",
]
