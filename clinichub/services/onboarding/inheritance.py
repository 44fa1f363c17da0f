"""
Attribute inheritance down the facility hierarchy.

A child entity (complex, clinic) starts from what its submitter provided and
fills the gaps from its parent. Explicitly empty strings are a deliberate
"leave blank" and are never replaced.
"""

import copy
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional

INHERITABLE_FIELDS = (
    "logo_url",
    "year_established",
    "mission",
    "vision",
    "overview",
    "goals",
    "website",
    "ceo_name",
    "email",
    "phone_numbers",
    "address",
    "emergency_contact_name",
    "emergency_contact_phone",
    "social_media_links",
    "vat_number",
    "cr_number",
)

NEVER_INHERITED = frozenset({"name"})


@dataclass(frozen=True)
class InheritanceSettings:
    """
    Per-child inheritance controls.

    ``fields_to_override`` are never inherited. When ``fields_to_inherit`` is
    given, only those fields may be inherited.
    """
    fields_to_override: FrozenSet[str] = frozenset()
    fields_to_inherit: Optional[FrozenSet[str]] = None

    @classmethod
    def from_value(cls, value: Any) -> Optional["InheritanceSettings"]:
        """Build settings from a mapping, a pydantic model or another instance."""
        if value is None or isinstance(value, cls):
            return value
        if not isinstance(value, Mapping):
            value = value.model_dump()
        to_inherit = value.get("fields_to_inherit")
        return cls(
            fields_to_override=frozenset(value.get("fields_to_override") or ()),
            fields_to_inherit=frozenset(to_inherit) if to_inherit else None,
        )

    def restricted_to(self, fields: Iterable[str]) -> "InheritanceSettings":
        """Same settings, with inheritance limited to ``fields``."""
        fields = frozenset(fields)
        allowed = fields if self.fields_to_inherit is None else self.fields_to_inherit & fields
        return InheritanceSettings(self.fields_to_override, allowed)

    def allows(self, field: str) -> bool:
        if field in NEVER_INHERITED or field in self.fields_to_override:
            return False
        return self.fields_to_inherit is None or field in self.fields_to_inherit


DEFAULT_SETTINGS = InheritanceSettings()


def _read(source: Any, field: str) -> Any:
    if isinstance(source, Mapping):
        return source.get(field)
    return getattr(source, field, None)


def _has_value(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, (str, list, tuple, dict, set)):
        return len(value) > 0
    return True


def inherited_fields(parent: Any, child_data: Mapping[str, Any],
                     settings: Optional[InheritanceSettings] = None) -> List[str]:
    """Fields ``inherit`` would take from ``parent``."""
    if parent is None:
        return []
    settings = settings or DEFAULT_SETTINGS
    fields = []
    for field in INHERITABLE_FIELDS:
        if not settings.allows(field):
            continue
        if child_data.get(field) is not None:
            continue
        if _has_value(_read(parent, field)):
            fields.append(field)
    return fields


def inherit(parent: Any, child_data: Mapping[str, Any],
            settings: Optional[InheritanceSettings] = None) -> Dict[str, Any]:
    """
    Return a new dict with the child's missing attributes taken from ``parent``.

    ``parent`` may be a mapping or an ORM entity (or None for a root). The
    inputs are never mutated and applying the result again is a no-op.
    """
    effective = dict(child_data)
    for field in inherited_fields(parent, child_data, settings):
        effective[field] = copy.deepcopy(_read(parent, field))
    return effective
