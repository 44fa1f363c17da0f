"""
Step-by-step Onboarding Workflow Service

Drives the onboarding wizard one step at a time. Each saved step upserts the
part of its entity the step covers, inherits what was left blank from the
parent entity tracked in the user's progress, and advances the progress
record, all inside one unit of work per request.
"""

import logging
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from clinichub.config.settings import settings
from clinichub.core.unit_of_work import UnitOfWork
from clinichub.schemas.onboarding import (
    InheritanceSettingsInput,
    ProgressResponse,
    SkipStepResponse,
    StepData,
    StepSaveResponse,
)
from clinichub.services.base import (
    BaseService,
    NotFoundError,
    ServiceResult,
    ValidationError,
    service_method,
)
from clinichub.services.domain import DomainServices
from clinichub.services.integration.notification_service import NotificationService
from clinichub.services.onboarding.errors import OnboardingValidationError, error_detail
from clinichub.services.onboarding.inheritance import InheritanceSettings, inherit, inherited_fields
from clinichub.services.onboarding.plan_config import get_configuration, step_group, step_kind
from clinichub.services.onboarding.profile_rules import profile_errors
from clinichub.services.onboarding.progress import ProgressSnapshot, StepProgressTracker
from clinichub.services.onboarding.working_hours import (
    HierarchicalWorkingHoursValidator,
    suggest_ranges,
    validate_schedule,
)

logger = logging.getLogger(__name__)

PROFILE_FIELDS = frozenset({
    "name", "logo_url", "year_established", "mission", "vision", "overview", "goals", "ceo_name", "website",
})
CONTACT_FIELDS = frozenset({
    "email", "phone_numbers", "address", "google_location", "emergency_contact_name",
    "emergency_contact_phone", "social_media_links", "contacts",
})
LEGAL_FIELDS = frozenset({"vat_number", "cr_number", "terms_conditions", "privacy_policy"})
SCHEDULE_FIELDS = frozenset({"working_hours"})

OVERVIEW_FIELDS = {
    "organization": PROFILE_FIELDS | {"legal_name", "registration_number"},
    "complex": PROFILE_FIELDS | {"manager_name"},
    "clinic": PROFILE_FIELDS | {
        "license_number", "head_doctor_name", "specialization", "department_name", "capacity",
    },
}

STEP_FIELDS = {
    "contact": CONTACT_FIELDS,
    "legal": LEGAL_FIELDS,
    "schedule": SCHEDULE_FIELDS,
}

# Step fields stored outside the entity's own columns
DETACHED_FIELDS = frozenset({"contacts", "terms_conditions", "privacy_policy", "working_hours", "department_name", "capacity"})


def allowed_fields(step: str) -> FrozenSet[str]:
    kind = step_kind(step)
    if kind == "overview":
        return OVERVIEW_FIELDS[step_group(step)]
    return STEP_FIELDS[kind]


class OnboardingStepService(BaseService):
    """Service for the step-by-step onboarding wizard."""

    def __init__(self, uow: UnitOfWork, domain: DomainServices = None,
                 progress: StepProgressTracker = None,
                 validator: HierarchicalWorkingHoursValidator = None,
                 notifier: NotificationService = None):
        super().__init__("OnboardingStepService")
        self._uow = uow
        self._domain = domain or DomainServices.default()
        self._progress = progress or StepProgressTracker()
        self._validator = validator or HierarchicalWorkingHoursValidator(self._domain.working_hours)
        self._notifier = notifier or NotificationService()
        self._entity_services = {
            "organization": self._domain.organizations,
            "complex": self._domain.complexes,
            "clinic": self._domain.clinics,
        }
        self._step_handlers = {
            "overview": self._save_overview,
            "contact": self._save_contact,
            "legal": self._save_legal,
            "schedule": self._save_schedule,
        }

    @service_method
    async def start_onboarding(self, user_id: int, plan_type: str) -> ServiceResult[ProgressResponse]:
        """Subscribe the user to the plan and open their progress record."""
        uow = self._uow
        with uow.transaction():
            user = self._domain.users.get(uow, user_id)
            if user is None:
                raise NotFoundError("User", user_id)
            config = get_configuration(plan_type)
            plan = self._domain.subscriptions.get_plan_by_name(uow, config.plan_type.value) if config else None
            if plan is None:
                raise ValidationError("Invalid plan type", field="plan_type", value=plan_type)
            self._domain.subscriptions.subscribe(uow, user_id, plan)
            snapshot = self._progress.start(uow, user_id, config.plan_type.value)
        return ServiceResult.success_result(ProgressResponse(**snapshot.to_dict()))

    @service_method
    async def get_progress(self, user_id: int) -> ServiceResult[ProgressResponse]:
        snapshot = self._progress.get_progress(self._uow, user_id)
        return ServiceResult.success_result(ProgressResponse(**snapshot.to_dict()))

    @service_method
    async def save_step(self, user_id: int, step: str, data: Dict[str, Any],
                        inheritance_settings: Optional[InheritanceSettingsInput] = None) -> ServiceResult[StepSaveResponse]:
        """
        Persist one wizard step and mark it complete.

        Resubmitting a step updates the entity saved the first time; the
        step's prerequisites must already be completed or skipped.
        """
        step_data = self._parse_step_data(step, data)
        settings_value = InheritanceSettings.from_value(inheritance_settings) or InheritanceSettings()
        uow = self._uow

        with uow.transaction():
            progress = self._progress.get_progress(uow, user_id)
            dependency = self._progress.validate_step_dependency(uow, user_id, step)
            if not dependency.can_proceed:
                raise ValidationError(
                    f"Complete {', '.join(dependency.missing_steps)} before {step}", field="step", value=step
                )

            group = step_group(step)
            handler = self._step_handlers[step_kind(step)]
            entity, inherited = await handler(progress, group, step_data, settings_value.restricted_to(allowed_fields(step)))

            snapshot = self._progress.mark_step_complete(uow, user_id, step)
            response = StepSaveResponse(
                step=step,
                entity_type=group,
                entity_id=entity.id,
                inherited_fields=inherited,
                progress=ProgressResponse(**snapshot.to_dict()),
            )
            uow.on_commit(lambda: self._notifier.record_audit_event(
                "onboarding_step_saved", user_id, {"step": step, "entity_type": group, "entity_id": response.entity_id}
            ))

        return ServiceResult.success_result(response)

    @service_method
    async def skip_step(self, user_id: int) -> ServiceResult[SkipStepResponse]:
        with self._uow.transaction():
            outcome = self._progress.skip_current_step(self._uow, user_id)
        return ServiceResult.success_result(
            SkipStepResponse(skipped_steps=outcome.skipped_steps, next_step=outcome.next_step)
        )

    @service_method
    async def get_inherited_working_hours(self, user_id: int, entity_type: str) -> ServiceResult[Dict[str, Any]]:
        """Schedule a new complex or clinic would nest inside, with suggested ranges."""
        if entity_type not in ("complex", "clinic"):
            raise ValidationError("Working hours are only inherited by complexes and clinics", "entity_type", entity_type)

        progress = self._progress.get_progress(self._uow, user_id)
        parent_type, parent = self._parent_for(progress, entity_type)
        schedule = []
        if parent is not None:
            schedule = [row.to_schedule() for row in self._domain.working_hours.get_schedule(self._uow, parent_type, parent.id)]

        return ServiceResult.success_result({
            "entity_type": entity_type,
            "source_type": parent_type,
            "source_id": parent.id if parent is not None else None,
            "source_name": parent.name if parent is not None else None,
            "working_hours": schedule,
            "suggestions": {day: suggested.to_dict() for day, suggested in suggest_ranges(schedule).items()},
        })

    # Step handlers

    async def _save_overview(self, progress: ProgressSnapshot, group: str, step_data: StepData,
                             inheritance: InheritanceSettings):
        uow = self._uow
        provided = step_data.model_dump(exclude_unset=True)
        entity = self._entity_for(progress, group)
        if entity is None and not provided.get("name"):
            raise ValidationError(f"name is required to create the {group}", field="name")

        fields = self._column_fields(provided)
        if step_data.capacity is not None:
            fields.update(step_data.capacity.model_dump(exclude_unset=True))
        self._check_profile(fields)

        parent_type, parent = self._parent_for(progress, group)
        inherited = inherited_fields(parent, fields, inheritance)
        data = inherit(parent, fields, inheritance)

        subscription = self._domain.subscriptions.get_subscription_by_user(uow, progress.user_id)
        data["subscription_id"] = subscription.id if subscription is not None else None

        if group == "organization":
            entity = self._domain.organizations.upsert_for_owner(uow, progress.user_id, data)
        else:
            data.update(self._parent_columns(progress, group, step_data))
            service = self._entity_services[group]
            if entity is not None:
                entity = service.update(uow, entity.id, data)
            else:
                entity = service.create(uow, {**data, "owner_id": progress.user_id})

        self._progress.record_entities(uow, progress.user_id, **{f"{group}_id": entity.id})
        self._domain.user_access.grant_access(uow, progress.user_id, group, entity.id, settings.owner_role)
        return entity, inherited

    async def _save_contact(self, progress: ProgressSnapshot, group: str, step_data: StepData,
                            inheritance: InheritanceSettings):
        entity = self._require_entity(progress, group)
        provided = step_data.model_dump(exclude_unset=True)
        fields = self._column_fields(provided)
        self._check_profile(fields)

        entity, inherited = self._update_with_inheritance(progress, group, entity, fields, inheritance)
        if step_data.contacts is not None:
            self._domain.contacts.replace_contacts(self._uow, group, entity.id, step_data.contacts)
        return entity, inherited

    async def _save_legal(self, progress: ProgressSnapshot, group: str, step_data: StepData,
                          inheritance: InheritanceSettings):
        entity = self._require_entity(progress, group)
        provided = step_data.model_dump(exclude_unset=True)
        fields = self._column_fields(provided)
        self._check_profile(fields)

        entity, inherited = self._update_with_inheritance(progress, group, entity, fields, inheritance)
        self._domain.dynamic_info.upsert_legal_documents(self._uow, group, entity.id, provided)
        return entity, inherited

    async def _save_schedule(self, progress: ProgressSnapshot, group: str, step_data: StepData,
                             inheritance: InheritanceSettings):
        entity = self._require_entity(progress, group)
        schedule = step_data.working_hours or []
        if not schedule:
            raise ValidationError("working_hours must list at least one day", field="working_hours")

        parent_type, parent = self._parent_for(progress, group)
        if parent is not None:
            validation = await self._validator.validate(
                schedule, parent_type, parent.id, child_label=entity.name, uow=self._uow, parent_label=parent.name
            )
            violations = validation.errors
        else:
            violations = validate_schedule(schedule)
        if violations:
            raise OnboardingValidationError([
                error_detail(
                    violation.message,
                    "working_hours",
                    day_of_week=violation.day_of_week,
                    suggested_range=violation.suggested_range.to_dict() if violation.suggested_range else None,
                )
                for violation in violations
            ])

        self._domain.working_hours.replace_schedule(self._uow, group, entity.id, schedule)
        return entity, []

    # Helpers

    def _parse_step_data(self, step: str, data: Dict[str, Any]) -> StepData:
        if "-" not in step or step_group(step) not in OVERVIEW_FIELDS or step_kind(step) not in self._step_handlers:
            raise ValidationError(f"Unknown onboarding step: {step}", field="step", value=step)
        try:
            step_data = StepData.model_validate(data or {})
        except PydanticValidationError as e:
            raise OnboardingValidationError([
                error_detail(error["msg"], ".".join(str(part) for part in error["loc"])) for error in e.errors()
            ]) from e

        unexpected = sorted(set(step_data.model_fields_set) - allowed_fields(step))
        if unexpected:
            raise ValidationError(
                f"Fields not accepted by step {step}: {', '.join(unexpected)}", field="data", value=unexpected
            )
        return step_data

    def _column_fields(self, provided: Dict[str, Any]) -> Dict[str, Any]:
        return {key: value for key, value in provided.items() if key not in DETACHED_FIELDS}

    def _check_profile(self, fields: Dict[str, Any]) -> None:
        errors = profile_errors(fields)
        if errors:
            raise OnboardingValidationError([error_detail(message, "data") for message in errors])

    def _entity_for(self, progress: ProgressSnapshot, group: str):
        entity_id = getattr(progress, f"{group}_id")
        service = self._entity_services[group]
        if entity_id is not None:
            return service.get(self._uow, entity_id)
        if group == "organization":
            return service.find_by_owner(self._uow, progress.user_id)
        return None

    def _require_entity(self, progress: ProgressSnapshot, group: str):
        entity = self._entity_for(progress, group)
        if entity is None:
            raise ValidationError(f"Complete {group}-overview first", field="step")
        return entity

    def _parent_for(self, progress: ProgressSnapshot, group: str) -> Tuple[Optional[str], Any]:
        """Nearest saved ancestor of ``group`` in the user's progress."""
        candidates: List[str] = {"organization": [], "complex": ["organization"], "clinic": ["complex", "organization"]}[group]
        for parent_type in candidates:
            parent = self._entity_for(progress, parent_type)
            if parent is not None:
                return parent_type, parent
        return None, None

    def _parent_columns(self, progress: ProgressSnapshot, group: str, step_data: StepData) -> Dict[str, Any]:
        organization = self._entity_for(progress, "organization")
        columns = {"organization_id": organization.id if organization is not None else None}
        if group != "clinic":
            return columns

        complex_entity = self._entity_for(progress, "complex")
        columns["complex_id"] = complex_entity.id if complex_entity is not None else None
        if step_data.department_name and complex_entity is not None:
            department = self._domain.departments.find_or_create(self._uow, step_data.department_name)
            link = self._domain.departments.link_to_complex(self._uow, complex_entity.id, department.id)
            columns["complex_department_id"] = link.id
        return columns

    def _update_with_inheritance(self, progress: ProgressSnapshot, group: str, entity,
                                 fields: Dict[str, Any], inheritance: InheritanceSettings):
        _, parent = self._parent_for(progress, group)
        inherited = inherited_fields(parent, fields, inheritance)
        data = inherit(parent, fields, inheritance)
        # Only columns this step covers are written
        data = {key: value for key, value in data.items() if key in fields or key in inherited}
        entity = self._entity_services[group].update(self._uow, entity.id, data)
        return entity, inherited

