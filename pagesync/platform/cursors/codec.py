"""Encoding and decoding of opaque cursor tokens.

Wire format: standard base64 of the compact JSON object with keys
``cursor``, ``collectionId`` and ``collectionCursor``. Absent fields are
omitted rather than emitted as ``null`` so equivalent states always encode to
the same token, e.g. ``{"cursor":1}`` <-> ``eyJjdXJzb3IiOjF9``.
"""

import base64
import binascii
import json
from typing import Any, Optional, Type

from pydantic import ValidationError

from pagesync.core.exceptions import CursorTypeMismatchError, MalformedCursorError
from pagesync.platform.cursors._base import CompositeCursor, T

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

_JSON_TYPE_NAMES = {
    bool: "boolean",
    int: "int64",
    float: "number",
    str: "string",
    list: "array",
    dict: "object",
}


def _json_type_name(value_type: type) -> str:
    return _JSON_TYPE_NAMES.get(value_type, value_type.__name__)


def encode_cursor(cursor: Optional[CompositeCursor]) -> str:
    """Encode a cursor into its opaque token.

    Args:
        cursor: Cursor to encode, ``None`` when the sync is complete

    Returns:
        Base64 token, or ``""`` for ``None``
    """
    if cursor is None:
        return ""

    payload = cursor.model_dump_json(by_alias=True, exclude_none=True)
    return base64.b64encode(payload.encode("utf-8")).decode("ascii")


def decode_cursor(token: str, cursor_type: Type[T]) -> Optional[CompositeCursor[T]]:
    """Decode an opaque token into a typed cursor.

    Args:
        token: Token received from the caller, ``""`` on the first page
        cursor_type: Primary position type the entity expects (``int`` or ``str``)

    Returns:
        Decoded cursor, or ``None`` for the empty token

    Raises:
        MalformedCursorError: Token is not base64, not JSON, or not a JSON object
        CursorTypeMismatchError: A field's JSON type does not match the entity
    """
    if not token:
        return None

    try:
        raw = base64.b64decode(token, validate=True)
    except (binascii.Error, ValueError) as e:
        raise MalformedCursorError(f"Failed to decode base64 cursor: {e}.") from e

    try:
        data = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError, RecursionError) as e:
        raise MalformedCursorError(f"Failed to unmarshal JSON cursor: {e}.") from e

    if not isinstance(data, dict):
        raise MalformedCursorError(
            f"Failed to unmarshal JSON cursor: want object, got {_json_type_name(type(data))}."
        )

    _check_field_types(data, cursor_type)

    try:
        return CompositeCursor[cursor_type].model_validate(data)
    except ValidationError as e:
        raise MalformedCursorError(f"Failed to unmarshal JSON cursor: {e}.") from e


def _check_field_types(data: dict[str, Any], cursor_type: type) -> None:
    """Reject fields whose JSON type differs from what the entity expects.

    No coercion happens between integers and strings: a token cursor sent to
    an offset entity is a caller error, not something to guess about.
    """
    expected = {
        "cursor": cursor_type,
        "collectionId": str,
        "collectionCursor": cursor_type,
    }
    for field_name, want in expected.items():
        value = data.get(field_name)
        if value is None:
            continue
        # bool is a subclass of int; compare exact types
        if type(value) is not want:
            raise CursorTypeMismatchError(
                field_name, _json_type_name(want), _json_type_name(type(value))
            )
        if want is int and not INT64_MIN <= value <= INT64_MAX:
            raise MalformedCursorError(f"Cursor field {field_name} is out of the int64 range.")
