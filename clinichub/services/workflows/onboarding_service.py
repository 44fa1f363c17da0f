"""
Onboarding Workflow Service

This service orchestrates a full onboarding submission: it validates the
whole facility tree up front, then creates or updates every entity inside a
single unit of work so that either the complete hierarchy exists afterwards
or none of it does.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from clinichub.config.settings import settings
from clinichub.core.unit_of_work import UnitOfWork
from clinichub.schemas.onboarding import (
    AvailabilityResult,
    ComplexInput,
    DepartmentInput,
    EntitySummary,
    OnboardingEntities,
    OnboardingPayload,
    OnboardingResult,
    OnboardingStatus,
    PlanLimitCheck,
    PlanSummary,
    ProgressResponse,
    ServiceInput,
)
from clinichub.services.base import BaseService, NotFoundError, ServiceResult, ValidationError, service_method
from clinichub.services.domain import DomainServices
from clinichub.services.integration.notification_service import NotificationService
from clinichub.services.onboarding.errors import (
    OnboardingOperationError,
    OnboardingValidationError,
    error_detail,
)
from clinichub.services.onboarding.hierarchy import dangling_references, get_entity_creation_order, hierarchy_errors
from clinichub.services.onboarding.inheritance import InheritanceSettings, inherit
from clinichub.services.onboarding.plan_config import (
    ENTITY_LABELS,
    PlanConfiguration,
    get_configuration,
    list_configurations,
    validate_limits,
)
from clinichub.services.onboarding.profile_rules import (
    EMAIL_PATTERN,
    is_valid_cr_number,
    is_valid_vat_number,
    profile_errors,
)
from clinichub.services.onboarding.progress import StepProgressTracker
from clinichub.services.onboarding.working_hours import (
    HierarchicalWorkingHoursValidator,
    validate_against_parent,
    validate_schedule,
)

logger = logging.getLogger(__name__)

USER_NOT_FOUND = "User not found. Please create an account first."

REFERENCE_TYPES = {
    "organization_id": "organization",
    "complex_id": "complex",
    "department_id": "department",
    "clinic_id": "clinic",
}

FACILITY_LABELS = {"organization": "Organization", "complex": "Complex", "clinic": "Clinic"}


def _name_key(name: str) -> str:
    return name.strip().lower()


def _violation_errors(violations, field_name: str) -> List[Dict[str, Any]]:
    return [
        error_detail(
            violation.message,
            field_name,
            day_of_week=violation.day_of_week,
            suggested_range=violation.suggested_range.to_dict() if violation.suggested_range else None,
        )
        for violation in violations
    ]


class PayloadIndex:
    """Resolves client references and implicit parents inside one payload."""

    def __init__(self, payload: OnboardingPayload):
        self.payload = payload
        self.by_ref: Dict[str, Tuple[str, Any]] = {}
        self.duplicates: List[str] = []
        for entity_type, items in self._typed_items():
            for item in items:
                if item.id is None:
                    continue
                if item.id in self.by_ref:
                    self.duplicates.append(item.id)
                self.by_ref[item.id] = (entity_type, item)

    def _typed_items(self):
        payload = self.payload
        return (
            ("organization", [payload.organization] if payload.organization else []),
            ("complex", payload.complexes),
            ("department", payload.departments),
            ("clinic", payload.clinics),
            ("service", payload.services),
        )

    def lookup(self, ref: Optional[str], entity_type: str):
        if ref is None:
            return None
        found = self.by_ref.get(ref)
        if found is None or found[0] != entity_type:
            return None
        return found[1]

    def complex_for(self, item) -> Optional[ComplexInput]:
        """Explicit complex reference, else the only complex of the payload."""
        if item.complex_id is not None:
            return self.lookup(item.complex_id, "complex")
        if len(self.payload.complexes) == 1:
            return self.payload.complexes[0]
        return None

    def departments_of(self, complex_input: ComplexInput) -> List[DepartmentInput]:
        """Departments linked to a complex; a lone complex gets every department."""
        if complex_input.department_ids:
            return [self.lookup(ref, "department") for ref in complex_input.department_ids]
        if len(self.payload.complexes) == 1:
            return list(self.payload.departments)
        return []

    def service_parent(self, service: ServiceInput) -> Optional[Tuple[str, Any]]:
        """
        ``("clinic", ClinicInput)`` or ``("complex_department", (ComplexInput,
        DepartmentInput))``; None when the service cannot be placed.
        """
        if service.clinic_id is not None:
            clinic = self.lookup(service.clinic_id, "clinic")
            return ("clinic", clinic) if clinic else None
        if service.department_id is not None:
            complex_input = self.complex_for(service)
            department = self.lookup(service.department_id, "department")
            if complex_input is None or department is None:
                return None
            return "complex_department", (complex_input, department)
        if len(self.payload.clinics) == 1:
            return "clinic", self.payload.clinics[0]
        return None


@dataclass
class OnboardingContext:
    """Everything created so far by one submission."""
    payload: OnboardingPayload
    index: PayloadIndex
    config: PlanConfiguration
    user: Any
    plan: Any
    subscription: Any = None
    organization: Any = None
    # id(input) -> (entity_type, entity, parent_type, parent)
    created: Dict[int, Tuple[str, Any, Optional[str], Any]] = field(default_factory=dict)
    complex_departments: Dict[Tuple[int, int], Any] = field(default_factory=dict)
    service_parents: Dict[int, Tuple[str, Any]] = field(default_factory=dict)

    def register(self, item, entity_type: str, entity, parent_type: str = None, parent=None) -> None:
        self.created[id(item)] = (entity_type, entity, parent_type, parent)

    def entity_of(self, item):
        if item is None or id(item) not in self.created:
            return None
        return self.created[id(item)][1]

    def facilities(self):
        """(entity_type, input, entity, parent_type, parent) in parent-first order."""
        payload = self.payload
        items = ([payload.organization] if payload.organization else []) + list(payload.complexes) + list(payload.clinics)
        for item in items:
            if id(item) in self.created:
                entity_type, entity, parent_type, parent = self.created[id(item)]
                yield entity_type, item, entity, parent_type, parent

    def created_of(self, entity_type: str) -> List[Tuple[Any, Any]]:
        items = {
            "complex": self.payload.complexes,
            "department": self.payload.departments,
            "clinic": self.payload.clinics,
            "service": self.payload.services,
        }[entity_type]
        return [(item, self.entity_of(item)) for item in items if self.entity_of(item) is not None]

    def inheritance_for(self, item) -> Optional[InheritanceSettings]:
        return InheritanceSettings.from_value(item.inheritance_settings or self.payload.inheritance_settings)


class OnboardingService(BaseService):
    """Service for full onboarding submissions."""

    def __init__(self, uow: UnitOfWork, domain: DomainServices = None,
                 progress: StepProgressTracker = None,
                 validator: HierarchicalWorkingHoursValidator = None,
                 notifier: NotificationService = None):
        super().__init__("OnboardingService")
        self._uow = uow
        self._domain = domain or DomainServices.default()
        self._progress = progress or StepProgressTracker()
        self._validator = validator or HierarchicalWorkingHoursValidator(self._domain.working_hours)
        self._notifier = notifier or NotificationService()
        self._facilities = {
            "organization": self._domain.organizations,
            "complex": self._domain.complexes,
            "clinic": self._domain.clinics,
        }
        # Entity types whose stored count is checked against plan limits
        self._owned = {**self._facilities, "service": self._domain.services}
        self._creation_steps = {
            "subscription": self._create_subscription,
            "organization": self._create_organization,
            "complex": self._create_complexes,
            "department": self._create_departments,
            "complexDepartment": self._link_complex_departments,
            "clinic": self._create_clinics,
            "service": self._create_services,
            "clinicService": self._link_clinic_services,
            "workingHours": self._create_working_hours,
            "contact": self._create_contacts,
            "dynamicInfo": self._create_dynamic_info,
            "userAccess": self._grant_user_access,
        }

    # Public API

    async def complete_onboarding(self, payload: OnboardingPayload) -> OnboardingResult:
        """
        Build the submitted facility tree atomically.

        Raises:
            OnboardingValidationError: the payload breaks plan, hierarchy or
                schedule rules; nothing was written.
            OnboardingOperationError: a collaborator or the store failed;
                everything written so far was rolled back.
        """
        self._validate_service_state()
        requester = payload.user.user_id or payload.user.email
        self.logger.info(f"Starting {payload.plan_type} onboarding for {requester}")

        errors = await self.validate_onboarding(payload)
        if errors:
            self.logger.info(f"Onboarding for {requester} rejected with {len(errors)} error(s)")
            raise OnboardingValidationError(errors)

        try:
            with self._uow.transaction():
                context = self._build_context(payload)
                for step in get_entity_creation_order(payload.plan_type):
                    await self._creation_steps[step](context)
                self._mark_complete(context)
                result = self._build_result(context)
                self._uow.on_commit(lambda: self._dispatch_side_effects(context, result))
        except OnboardingValidationError as e:
            self.logger.info(f"Onboarding for {requester} rolled back: {e.messages}")
            raise
        except ValidationError as e:
            self.logger.info(f"Onboarding for {requester} rolled back: {e.message}")
            raise OnboardingValidationError([error_detail(e.message, e.field)]) from e
        except Exception as e:
            self.logger.exception(f"Onboarding for {requester} failed: {e}")
            raise OnboardingOperationError(cause=e) from e

        self.logger.info(f"Onboarding completed for user {result.user_id}: {result.entities.counts()}")
        return result

    async def run_onboarding(self, payload: OnboardingPayload) -> OnboardingResult:
        """Like ``complete_onboarding`` but reports failures in the result."""
        try:
            return await self.complete_onboarding(payload)
        except OnboardingValidationError as e:
            return OnboardingResult(
                success=False, user_id=payload.user.user_id, errors=e.errors, error_type="validation"
            )
        except OnboardingOperationError as e:
            return OnboardingResult(
                success=False, user_id=payload.user.user_id, errors=[error_detail(e.message)], error_type="operation"
            )

    async def validate_onboarding(self, payload: OnboardingPayload) -> List[Dict[str, Any]]:
        """Every rule the payload breaks against current storage; empty when valid."""
        config = get_configuration(payload.plan_type)
        if config is None:
            return [error_detail("Invalid plan type", "subscription.plan_type")]

        uow = self._uow
        index = PayloadIndex(payload)
        errors = [error_detail(message, "entities") for message in hierarchy_errors(config.plan_type, payload.entity_hierarchy())]

        user = self._domain.users.resolve(uow, payload.user.user_id, payload.user.email)
        if user is None:
            errors.append(error_detail(USER_NOT_FOUND, "user"))
        else:
            errors.extend(self._progress_errors(user, config))

        plan, plan_errors = self._resolve_plan(payload, config)
        errors.extend(plan_errors)

        counts = self._projected_counts(payload, user)
        limits = validate_limits(config.plan_type, counts, plan.limits if plan is not None else None)
        errors.extend(error_detail(message, "entities") for message in limits.errors)

        errors.extend(self._reference_errors(payload, index, config))
        errors.extend(self._duplicate_name_errors(payload, index))
        if user is not None:
            errors.extend(self._taken_name_errors(payload, user))
        errors.extend(self._profile_errors(payload))
        errors.extend(self._schedule_errors(payload, index))
        return errors

    def get_available_plans(self) -> List[PlanSummary]:
        plans = []
        for config in list_configurations():
            summary = config.to_dict()
            stored = self._domain.subscriptions.get_plan_by_name(self._uow, config.plan_type.value)
            if stored is not None:
                summary["limits"] = {**summary["limits"], **stored.limits}
            plans.append(PlanSummary(**summary))
        return plans

    @service_method
    async def check_name_availability(self, entity_type: str, name: str,
                                      user_id: Optional[int] = None) -> ServiceResult[AvailabilityResult]:
        """Whether an organization, complex or clinic name is free; the user's own entities never block it."""
        service = self._facilities.get(entity_type)
        if service is None:
            raise ValidationError(f"Names are not checked for {entity_type}", "entity_type", entity_type)

        label = FACILITY_LABELS[entity_type]
        taken = service.find_taken(self._uow, "name", name, user_id) is not None
        return ServiceResult.success_result(AvailabilityResult(
            field="name",
            value=name,
            is_available=not taken,
            message=f"{label} name is already taken" if taken else f"{label} name is available",
        ))

    @service_method
    async def check_email_availability(self, email: str,
                                       user_id: Optional[int] = None) -> ServiceResult[AvailabilityResult]:
        value = email.strip().lower()
        if not EMAIL_PATTERN.match(value):
            return ServiceResult.success_result(AvailabilityResult(
                field="email", value=email, is_valid=False, is_available=False, message="Invalid email address"
            ))

        owner = self._domain.users.get_by_email(self._uow, value)
        taken = owner is not None and owner.id != user_id
        return ServiceResult.success_result(AvailabilityResult(
            field="email",
            value=email,
            is_available=not taken,
            message="Email is already taken" if taken else "Email is available",
        ))

    @service_method
    async def check_vat_number(self, vat_number: str,
                               user_id: Optional[int] = None) -> ServiceResult[AvailabilityResult]:
        return ServiceResult.success_result(
            self._legal_number_check("vat_number", "VAT number", vat_number, is_valid_vat_number, user_id)
        )

    @service_method
    async def check_cr_number(self, cr_number: str,
                              user_id: Optional[int] = None) -> ServiceResult[AvailabilityResult]:
        return ServiceResult.success_result(
            self._legal_number_check("cr_number", "CR number", cr_number, is_valid_cr_number, user_id)
        )

    @service_method
    async def validate_plan_limit(self, user_id: int, entity_type: str) -> ServiceResult[PlanLimitCheck]:
        """
        Whether the user's plan leaves room for one more entity of ``entity_type``.

        Counts what the user already owns against the subscribed plan's
        limits, a persisted plan overriding the built-in values.
        """
        if entity_type not in self._owned:
            raise ValidationError(f"Plan limits are not tracked for {entity_type}", "entity_type", entity_type)

        uow = self._uow
        subscription = self._domain.subscriptions.get_subscription_by_user(uow, user_id)
        if subscription is None:
            raise NotFoundError("Subscription", user_id)
        config = get_configuration(subscription.plan_type)
        if config is None:
            raise ValidationError("Invalid plan type", "plan_type", subscription.plan_type)

        plan = self._domain.subscriptions.get_plan(uow, subscription.plan_id)
        limits = {**config.limits, **(plan.limits if plan is not None else {})}
        max_allowed = limits.get(entity_type, 0)
        current_count = len(self._owned[entity_type].list_by_owner(uow, user_id))
        can_create = current_count < max_allowed
        message = None
        if not can_create:
            message = f"Maximum {max_allowed} {ENTITY_LABELS[entity_type]} allowed for {config.name}"
        return ServiceResult.success_result(PlanLimitCheck(
            entity_type=entity_type,
            plan_type=config.plan_type.value,
            can_create=can_create,
            current_count=current_count,
            max_allowed=max_allowed,
            message=message,
        ))

    @service_method
    async def skip_to_dashboard(self, user_id: int) -> ServiceResult[ProgressResponse]:
        """Save the wizard as unfinished so the user can continue from the dashboard."""
        with self._uow.transaction():
            snapshot = self._progress.skip_to_dashboard(self._uow, user_id)
        return ServiceResult.success_result(ProgressResponse(**snapshot.to_dict()))

    @service_method
    async def get_status(self, user_id: int) -> ServiceResult[OnboardingStatus]:
        uow = self._uow
        if self._domain.users.get(uow, user_id) is None:
            raise NotFoundError("User", user_id)

        subscription = self._domain.subscriptions.get_subscription_by_user(uow, user_id)
        progress = self._progress.find_progress(uow, user_id)
        if progress is None:
            state = "not_started"
        elif progress.is_completed:
            state = "completed"
        elif progress.skipped_to_dashboard:
            state = "skipped"
        else:
            state = "in_progress"

        plan_type = progress.plan_type if progress is not None else None
        if plan_type is None and subscription is not None:
            plan_type = subscription.plan_type
        return ServiceResult.success_result(OnboardingStatus(
            user_id=user_id,
            status=state,
            plan_type=plan_type,
            has_subscription=subscription is not None,
            current_step=progress.current_step if progress is not None else None,
            is_completed=state == "completed",
            skipped_to_dashboard=state == "skipped",
            entities={
                entity_type: len(service.list_by_owner(uow, user_id)) for entity_type, service in self._owned.items()
            },
        ))

    def _legal_number_check(self, column: str, label: str, value: str, is_valid,
                            user_id: Optional[int]) -> AvailabilityResult:
        value = value.strip()
        if not value or not is_valid(value):
            return AvailabilityResult(
                field=column, value=value, is_valid=False, is_available=False, message=f"Invalid {label} format"
            )
        taken = any(
            service.find_taken(self._uow, column, value, user_id) is not None for service in self._facilities.values()
        )
        return AvailabilityResult(
            field=column,
            value=value,
            is_available=not taken,
            message=f"{label} is already in use" if taken else f"{label} is valid",
        )

    # Validation

    def _projected_counts(self, payload: OnboardingPayload, user) -> Dict[str, int]:
        """Entity counts once the payload is applied on top of what the user already owns."""
        counts = {
            "organization": 1 if payload.organization else 0,
            "complex": len(payload.complexes),
            "clinic": len(payload.clinics),
            "department": len(payload.departments),
            "service": len(payload.services),
        }
        if user is None:
            return counts

        uow = self._uow
        if self._domain.organizations.find_by_owner(uow, user.id) is not None:
            counts["organization"] = 1
        owned = (
            ("complex", self._domain.complexes, payload.complexes),
            ("clinic", self._domain.clinics, payload.clinics),
            ("service", self._domain.services, payload.services),
        )
        for entity_type, service, items in owned:
            names = {entity.name for entity in service.list_by_owner(uow, user.id)}
            names.update(item.name for item in items)
            counts[entity_type] = len(names)
        return counts

    def _resolve_plan(self, payload: OnboardingPayload, config: PlanConfiguration):
        """Stored plan for the submission, by ``plan_id`` when given; returns ``(plan, errors)``."""
        subscriptions = self._domain.subscriptions
        plan_id = payload.subscription.plan_id
        if plan_id is None:
            plan = subscriptions.get_plan_by_name(self._uow, config.plan_type.value)
            if plan is None:
                message = f"Subscription plan not found: {config.plan_type.value}"
                return None, [error_detail(message, "subscription.plan_type")]
            return plan, []

        plan = subscriptions.get_plan(self._uow, plan_id)
        if plan is None or not plan.is_active:
            return None, [error_detail(f"Subscription plan not found: {plan_id}", "subscription.plan_id")]
        if plan.name != config.plan_type.value:
            return None, [error_detail(
                f"Subscription plan {plan_id} is the {plan.name} plan, not {config.plan_type.value}",
                "subscription.plan_id",
            )]
        return plan, []

    def _progress_errors(self, user, config: PlanConfiguration) -> List[Dict[str, Any]]:
        """An unfinished wizard pins the plan a full submission may use."""
        progress = self._progress.find_progress(self._uow, user.id)
        if progress is None or progress.is_completed or progress.plan_type == config.plan_type.value:
            return []
        message = f"Onboarding already started with the {progress.plan_type} plan"
        return [error_detail(message, "subscription.plan_type")]

    def _duplicate_name_errors(self, payload: OnboardingPayload, index: PayloadIndex) -> List[Dict[str, Any]]:
        """
        Names that would collapse into one stored entity.

        Complexes, clinics and departments are stored once per owner and name;
        services once per name under the same clinic or complex department.
        """
        def service_scope(service):
            parent = index.service_parent(service)
            if parent is None:
                return None
            kind, target = parent
            if kind == "clinic":
                return kind, id(target)
            return (kind,) + tuple(id(item) for item in target)

        sections = (
            ("complex", "complexes", payload.complexes, None),
            ("department", "departments", payload.departments, None),
            ("clinic", "clinics", payload.clinics, None),
            ("service", "services", payload.services, service_scope),
        )
        errors = []
        for label, field_prefix, items, scope_of in sections:
            seen = set()
            for position, item in enumerate(items):
                key = (scope_of(item) if scope_of else None, _name_key(item.name))
                if key in seen:
                    errors.append(error_detail(
                        f"Duplicate {label} name in payload: {item.name}", f"{field_prefix}[{position}].name"
                    ))
                seen.add(key)
        return errors

    def _taken_name_errors(self, payload: OnboardingPayload, user) -> List[Dict[str, Any]]:
        checks = [("organization", "organization.name", payload.organization)] if payload.organization else []
        checks += [("complex", f"complexes[{i}].name", item) for i, item in enumerate(payload.complexes)]
        checks += [("clinic", f"clinics[{i}].name", item) for i, item in enumerate(payload.clinics)]

        errors = []
        for entity_type, field_name, item in checks:
            if self._facilities[entity_type].find_taken(self._uow, "name", item.name, user.id) is not None:
                errors.append(error_detail(
                    f"{FACILITY_LABELS[entity_type]} name is already taken: {item.name}", field_name
                ))
        return errors

    def _reference_errors(self, payload: OnboardingPayload, index: PayloadIndex,
                          config: PlanConfiguration) -> List[Dict[str, Any]]:
        errors = [error_detail(f"Duplicate entity reference: {ref}", "entities") for ref in index.duplicates]

        references = payload.references()
        for dangling in dangling_references(references):
            errors.append(error_detail(f"Unknown {dangling.field} reference: {dangling.reference}", dangling.field))

        for entity in references:
            for field_name, expected in REFERENCE_TYPES.items():
                ref = entity.get(field_name)
                if ref is not None and ref in index.by_ref and index.by_ref[ref][0] != expected:
                    actual = index.by_ref[ref][0]
                    errors.append(error_detail(f"{field_name} {ref} refers to a {actual}, not a {expected}", field_name))
        if errors:
            return errors

        if payload.departments and not config.allows("complex"):
            errors.append(error_detail(
                f"Departments can only be created inside a complex; the {config.name} has none", "departments"
            ))

        for position, clinic in enumerate(payload.clinics):
            complex_input = index.complex_for(clinic)
            if complex_input is None and payload.complexes:
                errors.append(error_detail(f"Clinic {clinic.name} must reference its complex", f"clinics[{position}].complex_id"))
            if clinic.department_id is not None and complex_input is None:
                errors.append(error_detail(
                    f"Clinic {clinic.name} can only use a department through a complex", f"clinics[{position}].department_id"
                ))

        for position, clinic in enumerate(payload.clinics):
            for ref in clinic.service_ids:
                if index.lookup(ref, "service") is None:
                    errors.append(error_detail(
                        f"Unknown service_id reference: {ref}", f"clinics[{position}].service_ids"
                    ))

        for position, service in enumerate(payload.services):
            if index.service_parent(service) is None:
                errors.append(error_detail(
                    f"Service {service.name} needs a clinic or a complex department", f"services[{position}]"
                ))
        return errors

    def _profile_errors(self, payload: OnboardingPayload) -> List[Dict[str, Any]]:
        errors = []
        sections = [("organization", payload.organization)] if payload.organization else []
        sections += [(f"complexes[{i}]", item) for i, item in enumerate(payload.complexes)]
        sections += [(f"clinics[{i}]", item) for i, item in enumerate(payload.clinics)]
        for field_name, item in sections:
            errors.extend(error_detail(message, field_name) for message in profile_errors(item.entity_fields()))
        return errors

    def _schedule_errors(self, payload: OnboardingPayload, index: PayloadIndex) -> List[Dict[str, Any]]:
        """Schedules checked on their own and against parents in the same payload."""
        organization = payload.organization
        errors = []
        if organization is not None:
            errors.extend(_violation_errors(validate_schedule(organization.working_hours), "organization.working_hours"))

        for position, complex_input in enumerate(payload.complexes):
            validation = validate_against_parent(
                complex_input.working_hours,
                organization.working_hours if organization else (),
                child_label=complex_input.name,
                parent_label=organization.name if organization else "organization",
            )
            errors.extend(_violation_errors(validation.errors, f"complexes[{position}].working_hours"))

        for position, clinic in enumerate(payload.clinics):
            parent = index.complex_for(clinic) or organization
            validation = validate_against_parent(
                clinic.working_hours,
                parent.working_hours if parent else (),
                child_label=clinic.name,
                parent_label=parent.name if parent else "parent",
            )
            errors.extend(_violation_errors(validation.errors, f"clinics[{position}].working_hours"))
        return errors

    # Creation steps

    def _build_context(self, payload: OnboardingPayload) -> OnboardingContext:
        uow = self._uow
        config = get_configuration(payload.plan_type)
        user = self._domain.users.resolve(uow, payload.user.user_id, payload.user.email)
        if user is None:
            raise OnboardingValidationError([error_detail(USER_NOT_FOUND, "user")])
        plan, plan_errors = self._resolve_plan(payload, config)
        if plan_errors:
            raise OnboardingValidationError(plan_errors)
        return OnboardingContext(payload=payload, index=PayloadIndex(payload), config=config, user=user, plan=plan)

    async def _create_subscription(self, ctx: OnboardingContext) -> None:
        ctx.subscription = self._domain.subscriptions.subscribe(self._uow, ctx.user.id, ctx.plan)

    async def _create_organization(self, ctx: OnboardingContext) -> None:
        organization_input = ctx.payload.organization
        if organization_input is None:
            return
        data = {**organization_input.entity_fields(), "subscription_id": ctx.subscription.id}
        ctx.organization = self._domain.organizations.upsert_for_owner(self._uow, ctx.user.id, data)
        ctx.register(organization_input, "organization", ctx.organization)

    async def _create_complexes(self, ctx: OnboardingContext) -> None:
        parent = ctx.organization
        for complex_input in ctx.payload.complexes:
            data = inherit(parent, complex_input.entity_fields(), ctx.inheritance_for(complex_input))
            data.update(
                organization_id=parent.id if parent is not None else None,
                subscription_id=ctx.subscription.id,
            )
            entity = self._domain.complexes.upsert_by_owner_and_name(self._uow, ctx.user.id, data)
            ctx.register(complex_input, "complex", entity, "organization" if parent else None, parent)

    async def _create_departments(self, ctx: OnboardingContext) -> None:
        for department_input in ctx.payload.departments:
            entity = self._domain.departments.find_or_create(
                self._uow, department_input.name, department_input.description
            )
            ctx.register(department_input, "department", entity)

    def _complex_department(self, ctx: OnboardingContext, complex_input, department_input):
        key = (id(complex_input), id(department_input))
        if key not in ctx.complex_departments:
            ctx.complex_departments[key] = self._domain.departments.link_to_complex(
                self._uow, ctx.entity_of(complex_input).id, ctx.entity_of(department_input).id
            )
        return ctx.complex_departments[key]

    async def _link_complex_departments(self, ctx: OnboardingContext) -> None:
        for complex_input in ctx.payload.complexes:
            for department_input in ctx.index.departments_of(complex_input):
                self._complex_department(ctx, complex_input, department_input)

    async def _create_clinics(self, ctx: OnboardingContext) -> None:
        for clinic_input in ctx.payload.clinics:
            complex_input = ctx.index.complex_for(clinic_input)
            complex_entity = ctx.entity_of(complex_input)
            parent = complex_entity or ctx.organization
            parent_type = "complex" if complex_entity is not None else ("organization" if parent else None)

            complex_department = None
            if clinic_input.department_id is not None and complex_input is not None:
                department_input = ctx.index.lookup(clinic_input.department_id, "department")
                complex_department = self._complex_department(ctx, complex_input, department_input)

            data = inherit(parent, clinic_input.entity_fields(), ctx.inheritance_for(clinic_input))
            data.update(
                complex_id=complex_entity.id if complex_entity is not None else None,
                complex_department_id=complex_department.id if complex_department is not None else None,
                organization_id=ctx.organization.id if ctx.organization is not None else None,
                subscription_id=ctx.subscription.id,
            )
            entity = self._domain.clinics.upsert_by_owner_and_name(self._uow, ctx.user.id, data)
            ctx.register(clinic_input, "clinic", entity, parent_type, parent)

    async def _create_services(self, ctx: OnboardingContext) -> None:
        for service_input in ctx.payload.services:
            parent_kind, parent_input = ctx.index.service_parent(service_input)
            data = service_input.entity_fields()
            if parent_kind == "clinic":
                parent = ctx.entity_of(parent_input)
                data["clinic_id"] = parent.id
            else:
                parent = self._complex_department(ctx, *parent_input)
                data["complex_department_id"] = parent.id
            entity = self._domain.services.upsert(self._uow, ctx.user.id, data)
            ctx.register(service_input, "service", entity, parent_kind, parent)
            ctx.service_parents[id(service_input)] = (parent_kind, parent_input)

    async def _link_clinic_services(self, ctx: OnboardingContext) -> None:
        for clinic_input, clinic in ctx.created_of("clinic"):
            linked = [ctx.index.lookup(ref, "service") for ref in clinic_input.service_ids]
            linked += [
                service_input for service_input in ctx.payload.services
                if ctx.service_parents.get(id(service_input)) == ("clinic", clinic_input)
            ]
            for service_input in linked:
                self._domain.services.link_to_clinic(self._uow, clinic.id, ctx.entity_of(service_input).id)

    async def _create_working_hours(self, ctx: OnboardingContext) -> None:
        for entity_type, item, entity, parent_type, parent in ctx.facilities():
            if not item.working_hours:
                continue
            if parent is not None:
                validation = await self._validator.validate(
                    item.working_hours, parent_type, parent.id,
                    child_label=entity.name, uow=self._uow, parent_label=parent.name,
                )
                violations = validation.errors
            else:
                violations = validate_schedule(item.working_hours)
            if violations:
                raise OnboardingValidationError(_violation_errors(violations, f"{entity_type}.working_hours"))
            self._domain.working_hours.replace_schedule(self._uow, entity_type, entity.id, item.working_hours)

    async def _create_contacts(self, ctx: OnboardingContext) -> None:
        for entity_type, item, entity, _, _ in ctx.facilities():
            if item.contacts:
                self._domain.contacts.replace_contacts(self._uow, entity_type, entity.id, item.contacts)

    async def _create_dynamic_info(self, ctx: OnboardingContext) -> None:
        for entity_type, item, entity, _, _ in ctx.facilities():
            self._domain.dynamic_info.upsert_legal_documents(self._uow, entity_type, entity.id, item.legal_documents())

    async def _grant_user_access(self, ctx: OnboardingContext) -> None:
        granted = [(entity_type, entity) for entity_type, _, entity, _, _ in ctx.facilities()]
        granted += [("service", entity) for _, entity in ctx.created_of("service")]
        for entity_type, entity in granted:
            self._domain.user_access.grant_access(
                self._uow, ctx.user.id, entity_type, entity.id, settings.owner_role
            )

    def _mark_complete(self, ctx: OnboardingContext) -> None:
        complexes = ctx.created_of("complex")
        clinics = ctx.created_of("clinic")
        self._progress.complete(
            self._uow,
            ctx.user.id,
            ctx.config.plan_type.value,
            organization_id=ctx.organization.id if ctx.organization is not None else None,
            complex_id=complexes[0][1].id if complexes else None,
            clinic_id=clinics[0][1].id if clinics else None,
        )

    # Results and side effects

    def _build_result(self, ctx: OnboardingContext) -> OnboardingResult:
        def summary(item, entity, parent_field: str = None) -> EntitySummary:
            return EntitySummary(
                id=entity.id,
                name=entity.name,
                reference=getattr(item, "id", None),
                parent_id=getattr(entity, parent_field) if parent_field else None,
            )

        entities = OnboardingEntities(
            organization=summary(ctx.payload.organization, ctx.organization) if ctx.organization else None,
            complexes=[summary(item, entity, "organization_id") for item, entity in ctx.created_of("complex")],
            departments=[summary(item, entity) for item, entity in ctx.created_of("department")],
            complex_departments=[
                EntitySummary(id=link.id, name=link.department.name, parent_id=link.complex_id)
                for link in ctx.complex_departments.values()
            ],
            clinics=[summary(item, entity, "complex_id") for item, entity in ctx.created_of("clinic")],
            services=[summary(item, entity) for item, entity in ctx.created_of("service")],
        )
        return OnboardingResult(
            success=True,
            user_id=ctx.user.id,
            subscription_id=ctx.subscription.id if ctx.subscription is not None else None,
            entities=entities,
        )

    def _dispatch_side_effects(self, ctx: OnboardingContext, result: OnboardingResult) -> None:
        counts = result.entities.counts()
        self._notifier.record_audit_event(
            "onboarding_completed",
            result.user_id,
            {"plan_type": ctx.config.plan_type.value, "subscription_id": result.subscription_id, "counts": counts},
        )
        self._notifier.send_onboarding_notification(
            result.user_id, ctx.user.email, {"plan_name": ctx.config.name, "counts": counts}
        )
