"""Opaque composite cursors.

A cursor is born ``None`` on the first page of a sync, regenerated after
every fetch, round-tripped verbatim by the caller, and becomes ``None`` (the
empty token) once the sync is complete.
"""

from ._base import CompositeCursor
from .codec import decode_cursor, encode_cursor
from .validation import validate_cursor

__all__ = [
    "CompositeCursor",
    "decode_cursor",
    "encode_cursor",
    "validate_cursor",
]
