"""Fallible field extraction from raw vendor JSON.

Vendor payloads are untyped ``dict[str, Any]``. Every extraction goes through
these helpers so a payload of the wrong shape surfaces as an
``UpstreamDataShapeError`` naming the field instead of a ``KeyError`` or
``TypeError`` deep inside a connector.
"""

from typing import Any, Mapping, Optional, Tuple, Type, Union

from pagesync.core.exceptions import UpstreamDataShapeError

_TYPE_NAMES = {
    bool: "boolean",
    int: "integer",
    float: "number",
    str: "string",
    list: "array",
    dict: "object",
    type(None): "null",
}

TypeSpec = Union[Type, Tuple[Type, ...]]


def type_name(value_type: TypeSpec) -> str:
    """Human readable JSON type name(s) for error messages."""
    if isinstance(value_type, tuple):
        return " or ".join(type_name(t) for t in value_type)
    return _TYPE_NAMES.get(value_type, value_type.__name__)


def _matches(value: Any, expected: TypeSpec) -> bool:
    types = expected if isinstance(expected, tuple) else (expected,)
    # bool is an int subclass but never a valid integer in vendor payloads
    if isinstance(value, bool) and bool not in types:
        return False
    return isinstance(value, types)


def _lookup(obj: Mapping[str, Any], path: str) -> Tuple[bool, Any]:
    """Walk a dotted path. Returns (found, value)."""
    current: Any = obj
    walked = []
    for part in path.split("."):
        if current is None:
            return False, None
        if not isinstance(current, Mapping):
            raise UpstreamDataShapeError(
                ".".join(walked) or path, "object", type_name(type(current))
            )
        walked.append(part)
        if part not in current:
            return False, None
        current = current[part]
    return True, current


def require_field(obj: Mapping[str, Any], path: str, expected: TypeSpec) -> Any:
    """Extract a mandatory field.

    Args:
        obj: Raw vendor object
        path: Field name, dots descend into nested objects (``"user.id"``)
        expected: Expected Python type(s)

    Returns:
        The field value

    Raises:
        UpstreamDataShapeError: If the field is missing, null or of another type
    """
    found, value = _lookup(obj, path)
    if not found:
        raise UpstreamDataShapeError(path, type_name(expected), "missing")
    if not _matches(value, expected):
        raise UpstreamDataShapeError(path, type_name(expected), type_name(type(value)))
    return value


def optional_field(
    obj: Mapping[str, Any], path: str, expected: TypeSpec, default: Any = None
) -> Optional[Any]:
    """Extract an optional field, returning ``default`` when missing or null.

    Raises:
        UpstreamDataShapeError: If the field is present with another type
    """
    found, value = _lookup(obj, path)
    if not found or value is None:
        return default
    if not _matches(value, expected):
        raise UpstreamDataShapeError(path, type_name(expected), type_name(type(value)))
    return value
