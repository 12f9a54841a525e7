"""Synthetic identifiers for vendor records that have none.

Some vendor objects carry no unique ID (PagerDuty on-call entries, team
memberships). For those, an ID is built by joining a fixed, ordered list of
field values with a fixed delimiter, with ``""`` standing in for absent or
null fields.

Downstream consumers persist these IDs for deduplication. The field list and
the delimiter of a registered scheme are therefore part of the connector's
compatibility contract: changing them requires a migration of stored IDs.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from pagesync.core.exceptions import IdentitySchemeNotFoundError
from pagesync.platform.utils.json_fields import optional_field

DEFAULT_DELIMITER = "-"


@dataclass(frozen=True)
class IdentityScheme:
    """Ordered field paths and delimiter that make up a synthetic ID.

    Attributes:
        fields: Dotted field paths, in ID order (``"escalation_policy.id"``)
        delimiter: Separator placed between field values
    """

    fields: Tuple[str, ...]
    delimiter: str = DEFAULT_DELIMITER

    def __post_init__(self):
        if isinstance(self.fields, str):
            raise ValueError(
                f"Identity scheme fields must be a sequence of paths, not {self.fields!r}"
            )
        if not self.fields:
            raise ValueError("An identity scheme needs at least one field")
        # Accept lists at construction time but store a hashable tuple
        object.__setattr__(self, "fields", tuple(self.fields))


def derive_identity(values: Iterable[Optional[Any]], delimiter: str = DEFAULT_DELIMITER) -> str:
    """Join ``values`` into a synthetic ID, ``None`` becoming ``""``."""
    return delimiter.join("" if value is None else str(value) for value in values)


class IdentityDeriver:
    """Registry of identity schemes keyed by entity kind.

    Usage:
        deriver = IdentityDeriver()
        deriver.register(
            "oncalls",
            IdentityScheme(fields=("escalation_policy.id", "user.id", "start", "end")),
        )
        deriver.derive("oncalls", record)  # "P1-U1-2024-01-01T00:00:00Z-"
    """

    def __init__(self, schemes: Optional[Mapping[str, IdentityScheme]] = None):
        """Initialize with optional pre-registered schemes."""
        self._schemes: Dict[str, IdentityScheme] = {}
        for entity_kind, scheme in (schemes or {}).items():
            self.register(entity_kind, scheme)

    def register(self, entity_kind: str, scheme: IdentityScheme) -> None:
        """Register the scheme of ``entity_kind``.

        Registering the same scheme twice is a no-op.

        Raises:
            ValueError: If a different scheme is already registered for the kind
        """
        existing = self._schemes.get(entity_kind)
        if existing is not None and existing != scheme:
            raise ValueError(
                f"Identity scheme for {entity_kind} is already registered as {existing}; "
                "changing it would change every stored ID."
            )
        self._schemes[entity_kind] = scheme

    def scheme_for(self, entity_kind: str) -> IdentityScheme:
        """Return the scheme registered for ``entity_kind``."""
        try:
            return self._schemes[entity_kind]
        except KeyError:
            raise IdentitySchemeNotFoundError(entity_kind) from None

    def derive(self, entity_kind: str, record: Mapping[str, Any]) -> str:
        """Synthetic ID of ``record``.

        Field values must be strings or integers; absent and null fields
        contribute ``""``.

        Raises:
            IdentitySchemeNotFoundError: If no scheme is registered for the kind
            UpstreamDataShapeError: If a field has any other type
        """
        scheme = self.scheme_for(entity_kind)
        values = [optional_field(record, path, (str, int)) for path in scheme.fields]
        return derive_identity(values, scheme.delimiter)

    def derive_values(self, entity_kind: str, *values: Optional[Any]) -> str:
        """Synthetic ID from values given in scheme order."""
        scheme = self.scheme_for(entity_kind)
        if len(values) != len(scheme.fields):
            raise ValueError(
                f"Identity scheme for {entity_kind} takes {len(scheme.fields)} values, "
                f"got {len(values)}"
            )
        return derive_identity(values, scheme.delimiter)

    def assign(
        self,
        entity_kind: str,
        records: Sequence[Mapping[str, Any]],
        attribute: str = "id",
    ) -> List[Dict[str, Any]]:
        """Copies of ``records`` with the synthetic ID stored under ``attribute``."""
        return [{**record, attribute: self.derive(entity_kind, record)} for record in records]


def child_entities_from_values(parent_id: str, values: Iterable[str]) -> List[Dict[str, str]]:
    """Child objects for a multi-valued attribute of a parent object.

    Each child gets the ID ``"{parent_id}_{value}"``.

    Example:
        child_entities_from_values("123", ["Sports", "Music"])
        # [{"id": "123_Sports", "value": "Sports"}, {"id": "123_Music", "value": "Music"}]
    """
    return [{"id": f"{parent_id}_{value}", "value": value} for value in values]
