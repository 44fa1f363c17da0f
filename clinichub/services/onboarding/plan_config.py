"""
Plan configuration table.

Every plan-dependent decision of the onboarding engine (required entities,
limits, wizard steps, skip rules, creation order) reads from one
``PlanConfiguration`` so that the algorithms stay plan-agnostic.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Optional, Tuple, Union


class PlanType(str, Enum):
    COMPANY = "company"
    COMPLEX = "complex"
    CLINIC = "clinic"


ENTITY_TYPES = ("organization", "complex", "clinic", "department", "service")

ENTITY_LABELS = {
    "organization": "organization(s)",
    "complex": "complex(es)",
    "clinic": "clinic(s)",
    "department": "department(s)",
    "service": "service(s)",
}

COMPLETED = "completed"

ORGANIZATION_STEPS = ("organization-overview", "organization-contact", "organization-legal")
COMPLEX_STEPS = ("complex-overview", "complex-contact", "complex-legal", "complex-schedule")
CLINIC_STEPS = ("clinic-overview", "clinic-contact", "clinic-legal", "clinic-schedule")
ALL_STEPS = ORGANIZATION_STEPS + COMPLEX_STEPS + CLINIC_STEPS

FULL_CREATION_ORDER = (
    "subscription",
    "organization",
    "complex",
    "department",
    "complexDepartment",
    "clinic",
    "service",
    "clinicService",
    "workingHours",
    "contact",
    "dynamicInfo",
    "userAccess",
)


def step_group(step: str) -> str:
    """Entity a wizard step writes to: ``complex-legal`` → ``complex``."""
    return step.split("-", 1)[0]


def step_kind(step: str) -> str:
    """Section of the entity a wizard step writes: ``complex-legal`` → ``legal``."""
    return step.split("-", 1)[1]


@dataclass(frozen=True)
class PlanConfiguration:
    plan_type: PlanType
    name: str
    required_entity_types: Tuple[str, ...]
    limits: Mapping[str, int]
    features: Tuple[str, ...]
    step_sequence: Tuple[str, ...]
    skip_groups: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)

    @property
    def creation_order(self) -> Tuple[str, ...]:
        excluded = {entity for entity, limit in self.limits.items() if limit == 0}
        # Departments only exist inside complexes
        if "complex" in excluded:
            excluded |= {"department", "complexDepartment"}
        return tuple(step for step in FULL_CREATION_ORDER if step not in excluded)

    @property
    def step_groups(self) -> Tuple[str, ...]:
        groups: List[str] = []
        for step in self.step_sequence:
            if step_group(step) not in groups:
                groups.append(step_group(step))
        return tuple(groups)

    def limit_for(self, entity_type: str) -> Optional[int]:
        return self.limits.get(entity_type)

    def allows(self, entity_type: str) -> bool:
        return self.limits.get(entity_type, 0) > 0

    def skip_group(self, step: str) -> Optional[Tuple[str, ...]]:
        """Steps skipped together when ``step`` is skipped, or None if it cannot be."""
        return self.skip_groups.get(step)

    def prerequisites(self, step: str) -> Tuple[str, ...]:
        """
        Steps that must be completed or skipped before ``step`` may be saved.

        Non-overview steps need their own entity's overview; an overview needs
        the overview of the parent entity when the plan has one.
        """
        group = step_group(step)
        if step_kind(step) != "overview":
            return (f"{group}-overview",)
        groups = self.step_groups
        position = groups.index(group)
        if position == 0:
            return ()
        return (f"{groups[position - 1]}-overview",)

    def to_dict(self) -> Dict[str, object]:
        return {
            "plan_type": self.plan_type.value,
            "name": self.name,
            "required_entity_types": list(self.required_entity_types),
            "limits": dict(self.limits),
            "features": list(self.features),
            "steps": list(self.step_sequence) + [COMPLETED],
        }


def _skip_groups(steps: Tuple[str, ...], skippable_groups: Tuple[str, ...]) -> Dict[str, Tuple[str, ...]]:
    groups: Dict[str, Tuple[str, ...]] = {}
    for step in steps:
        if step_kind(step) == "legal":
            groups[step] = (step,)
    for group in skippable_groups:
        members = tuple(step for step in steps if step_group(step) == group)
        for index, step in enumerate(members):
            groups[step] = members[index:]
    return groups


PLAN_CONFIGURATIONS: Dict[PlanType, PlanConfiguration] = {
    PlanType.COMPANY: PlanConfiguration(
        plan_type=PlanType.COMPANY,
        name="Company Plan",
        required_entity_types=("organization",),
        limits={"organization": 1, "complex": 10, "clinic": 50, "department": 100, "service": 200},
        features=(
            "organization_management", "complex_management", "clinic_management",
            "department_management", "service_management",
        ),
        step_sequence=ALL_STEPS,
        skip_groups=_skip_groups(ALL_STEPS, skippable_groups=("complex",)),
    ),
    PlanType.COMPLEX: PlanConfiguration(
        plan_type=PlanType.COMPLEX,
        name="Complex Plan",
        required_entity_types=("complex", "department"),
        limits={"organization": 0, "complex": 5, "clinic": 20, "department": 50, "service": 100},
        features=("complex_management", "clinic_management", "department_management", "service_management"),
        step_sequence=COMPLEX_STEPS + CLINIC_STEPS,
        skip_groups=_skip_groups(COMPLEX_STEPS + CLINIC_STEPS, skippable_groups=()),
    ),
    PlanType.CLINIC: PlanConfiguration(
        plan_type=PlanType.CLINIC,
        name="Clinic Plan",
        required_entity_types=("clinic",),
        limits={"organization": 0, "complex": 0, "clinic": 1, "department": 10, "service": 50},
        features=("clinic_management", "department_management", "service_management"),
        step_sequence=CLINIC_STEPS,
        skip_groups=_skip_groups(CLINIC_STEPS, skippable_groups=()),
    ),
}


@dataclass
class LimitValidation:
    is_valid: bool
    errors: List[str]


def normalize_plan_type(plan_type: Union[str, PlanType, None]) -> Optional[PlanType]:
    if plan_type is None:
        return None
    if isinstance(plan_type, PlanType):
        return plan_type
    try:
        return PlanType(str(plan_type).strip().lower())
    except ValueError:
        return None


def get_configuration(plan_type: Union[str, PlanType, None]) -> Optional[PlanConfiguration]:
    normalized = normalize_plan_type(plan_type)
    if normalized is None:
        return None
    return PLAN_CONFIGURATIONS[normalized]


def list_configurations() -> List[PlanConfiguration]:
    return list(PLAN_CONFIGURATIONS.values())


def validate_limits(
    plan_type: Union[str, PlanType, None],
    counts: Mapping[str, int],
    limits: Optional[Mapping[str, int]] = None,
) -> LimitValidation:
    """
    Check proposed entity counts against the plan's maximums.

    ``limits`` overrides individual defaults (e.g. from a persisted plan).
    Never raises: an unknown plan fails closed with a single error.
    """
    config = get_configuration(plan_type)
    if config is None:
        return LimitValidation(is_valid=False, errors=["Invalid plan type"])

    effective = dict(config.limits)
    effective.update(limits or {})

    errors = []
    for entity_type in ENTITY_TYPES:
        limit = effective.get(entity_type)
        count = counts.get(entity_type, 0) or 0
        if limit is not None and count > limit:
            errors.append(f"Maximum {limit} {ENTITY_LABELS[entity_type]} allowed for {config.name}")

    return LimitValidation(is_valid=not errors, errors=errors)
