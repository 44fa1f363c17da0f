"""
Entity hierarchy validation.

Checks that a proposed set of entities has the shape its plan requires and
that every parent reference points at something that exists, either in the
same submission or already in storage.
"""

import logging
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Sequence, Union

from clinichub.services.onboarding.plan_config import PlanType, get_configuration

logger = logging.getLogger(__name__)

REFERENCE_FIELDS = ("organization_id", "complex_id", "clinic_id", "department_id")

# Collection keys of an entity hierarchy mapping, per entity type.
COLLECTION_KEYS = {
    "organization": "organization",
    "complex": "complexes",
    "department": "departments",
    "clinic": "clinics",
    "service": "services",
}

REQUIREMENT_PHRASES = {"organization": "an organization"}


@dataclass(frozen=True)
class DanglingReference:
    entity_id: Any
    field: str
    reference: Any

    @property
    def message(self) -> str:
        return f"Entity {self.entity_id} references unknown {self.field}: {self.reference}"


def count_entities(entities: Mapping[str, Any], entity_type: str) -> int:
    """Number of entities of one type in a hierarchy mapping."""
    value = entities.get(COLLECTION_KEYS[entity_type])
    if value is None:
        return 0
    if isinstance(value, (list, tuple)):
        return len(value)
    return 1


def entity_counts(entities: Mapping[str, Any]) -> dict:
    return {entity_type: count_entities(entities, entity_type) for entity_type in COLLECTION_KEYS}


def hierarchy_errors(plan_type: Union[str, PlanType, None], entities: Mapping[str, Any]) -> List[str]:
    """Every structural rule the entities break for the plan."""
    config = get_configuration(plan_type)
    if config is None:
        return ["Invalid plan type"]

    plan = config.plan_type.value
    errors = []
    for entity_type in config.required_entity_types:
        if count_entities(entities, entity_type) == 0:
            phrase = REQUIREMENT_PHRASES.get(entity_type, f"at least one {entity_type}")
            errors.append(f"{plan} plan requires {phrase}")

    if (
        "department" not in config.required_entity_types
        and config.allows("complex")
        and count_entities(entities, "complex") > 0
        and count_entities(entities, "department") == 0
    ):
        errors.append(f"{plan} plan requires departments when complexes are provided")

    for entity_type in COLLECTION_KEYS:
        if config.limit_for(entity_type) == 0 and count_entities(entities, entity_type) > 0:
            errors.append(f"{plan} plan does not allow {entity_type} entities")

    return errors


def validate_hierarchy(plan_type: Union[str, PlanType, None], entities: Mapping[str, Any]) -> bool:
    return not hierarchy_errors(plan_type, entities)


def _read(entity: Any, field: str) -> Any:
    if isinstance(entity, Mapping):
        return entity.get(field)
    return getattr(entity, field, None)


def dangling_references(
    entities: Iterable[Any],
    known_ids: Iterable[Any] = (),
    reference_fields: Sequence[str] = REFERENCE_FIELDS,
) -> List[DanglingReference]:
    """
    References that resolve neither within ``entities`` nor to ``known_ids``.

    Entities are mappings or objects with an ``id``; absent or None
    references are not checked.
    """
    entities = list(entities)
    identity = {_read(entity, "id") for entity in entities if _read(entity, "id") is not None}
    identity.update(known_ids)

    dangling = []
    for entity in entities:
        for field in reference_fields:
            reference = _read(entity, field)
            if reference is not None and reference not in identity:
                dangling.append(DanglingReference(_read(entity, "id"), field, reference))
    return dangling


def validate_entity_relationships(entities: Iterable[Any], known_ids: Iterable[Any] = ()) -> bool:
    dangling = dangling_references(entities, known_ids)
    for reference in dangling:
        logger.debug(reference.message)
    return not dangling


def get_entity_creation_order(plan_type: Union[str, PlanType, None]) -> List[str]:
    """Order in which entity kinds are created for the plan; empty if unknown."""
    config = get_configuration(plan_type)
    if config is None:
        return []
    return list(config.creation_order)

