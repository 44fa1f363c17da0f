"""
Pydantic schemas for onboarding submissions.

A full submission describes the whole facility tree at once. Entities refer
to each other through client-chosen ``id`` references (e.g. ``"cx-1"``);
storage ids are assigned when the tree is created.
"""

from typing import Any, ClassVar, Dict, FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from clinichub.services.onboarding.plan_config import COMPLETED


class DaySchedule(BaseModel):
    """One day of a weekly schedule."""
    day_of_week: str
    is_working_day: bool = False
    opening_time: Optional[str] = None
    closing_time: Optional[str] = None
    break_start_time: Optional[str] = None
    break_end_time: Optional[str] = None

    @field_validator("day_of_week")
    @classmethod
    def lowercase_day(cls, v):
        return v.strip().lower()


class ContactInput(BaseModel):
    contact_type: str
    contact_value: str
    is_active: bool = True


class InheritanceSettingsInput(BaseModel):
    """Which parent attributes a child may take over."""
    fields_to_inherit: Optional[List[str]] = None
    fields_to_override: List[str] = Field(default_factory=list)


class BusinessProfile(BaseModel):
    year_established: Optional[int] = None
    mission: Optional[str] = None
    vision: Optional[str] = None
    overview: Optional[str] = None
    goals: Optional[str] = None
    ceo_name: Optional[str] = None


class LegalInfo(BaseModel):
    vat_number: Optional[str] = None
    cr_number: Optional[str] = None
    terms_conditions: Optional[str] = None
    privacy_policy: Optional[str] = None


class FacilityBase(BaseModel):
    """Attributes shared by every entity that can pass them down the tree."""
    id: Optional[str] = None
    name: str
    logo_url: Optional[str] = None
    website: Optional[str] = None
    email: Optional[str] = None
    phone_numbers: Optional[List[str]] = None
    address: Optional[Dict[str, Any]] = None
    google_location: Optional[str] = None
    emergency_contact_name: Optional[str] = None
    emergency_contact_phone: Optional[str] = None
    social_media_links: Optional[Dict[str, str]] = None
    business_profile: Optional[BusinessProfile] = None
    legal_info: Optional[LegalInfo] = None
    working_hours: List[DaySchedule] = Field(default_factory=list)
    contacts: List[ContactInput] = Field(default_factory=list)
    inheritance_settings: Optional[InheritanceSettingsInput] = None

    # Keys that only describe the tree or related records, never entity columns
    structural_fields: ClassVar[FrozenSet[str]] = frozenset(
        {"id", "business_profile", "legal_info", "working_hours", "contacts", "inheritance_settings"}
    )

    def entity_fields(self) -> Dict[str, Any]:
        """
        Flat column values for the entity.

        Unset attributes come out as None so that inheritance can fill them;
        explicit empty strings are kept as given.
        """
        data = {key: value for key, value in self.model_dump().items() if key not in self.structural_fields}
        data.update((self.business_profile or BusinessProfile()).model_dump())
        legal = self.legal_info or LegalInfo()
        data["vat_number"] = legal.vat_number
        data["cr_number"] = legal.cr_number
        return data

    def legal_documents(self) -> Dict[str, Optional[str]]:
        legal = self.legal_info or LegalInfo()
        return {"terms_conditions": legal.terms_conditions, "privacy_policy": legal.privacy_policy}


class OrganizationInput(FacilityBase):
    legal_name: Optional[str] = None
    registration_number: Optional[str] = None


class ComplexInput(FacilityBase):
    organization_id: Optional[str] = None
    department_ids: List[str] = Field(default_factory=list)
    manager_name: Optional[str] = None

    structural_fields: ClassVar[FrozenSet[str]] = (
        FacilityBase.structural_fields | {"organization_id", "department_ids"}
    )


class DepartmentInput(BaseModel):
    id: Optional[str] = None
    name: str
    description: Optional[str] = None


class ClinicCapacity(BaseModel):
    max_staff: Optional[int] = None
    max_doctors: Optional[int] = None
    max_patients: Optional[int] = None
    session_duration: Optional[int] = None


class ClinicInput(FacilityBase):
    complex_id: Optional[str] = None
    department_id: Optional[str] = None
    service_ids: List[str] = Field(default_factory=list)
    license_number: Optional[str] = None
    head_doctor_name: Optional[str] = None
    specialization: Optional[str] = None
    capacity: Optional[ClinicCapacity] = None

    structural_fields: ClassVar[FrozenSet[str]] = (
        FacilityBase.structural_fields | {"complex_id", "department_id", "service_ids", "capacity"}
    )

    def entity_fields(self) -> Dict[str, Any]:
        data = super().entity_fields()
        data.update((self.capacity or ClinicCapacity()).model_dump())
        return data


class ServiceInput(BaseModel):
    id: Optional[str] = None
    name: str
    description: Optional[str] = None
    duration_minutes: Optional[int] = None
    price: Optional[int] = None
    complex_id: Optional[str] = None
    department_id: Optional[str] = None
    clinic_id: Optional[str] = None

    def entity_fields(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "duration_minutes": self.duration_minutes,
            "price": self.price,
        }


class UserReference(BaseModel):
    user_id: Optional[int] = None
    email: Optional[EmailStr] = None

    @model_validator(mode="after")
    def id_or_email(self):
        if self.user_id is None and not self.email:
            raise ValueError("Either user_id or email is required")
        return self


class SubscriptionInput(BaseModel):
    plan_type: str
    # Stored plan to subscribe to; must be the plan named by plan_type
    plan_id: Optional[int] = None


class OnboardingPayload(BaseModel):
    """Everything needed to onboard a subscriber in one submission."""
    user: UserReference
    subscription: SubscriptionInput
    organization: Optional[OrganizationInput] = None
    complexes: List[ComplexInput] = Field(default_factory=list)
    departments: List[DepartmentInput] = Field(default_factory=list)
    clinics: List[ClinicInput] = Field(default_factory=list)
    services: List[ServiceInput] = Field(default_factory=list)
    inheritance_settings: Optional[InheritanceSettingsInput] = None

    @property
    def plan_type(self) -> str:
        return self.subscription.plan_type.strip().lower()

    def entity_hierarchy(self) -> Dict[str, Any]:
        return {
            "organization": self.organization,
            "complexes": self.complexes,
            "departments": self.departments,
            "clinics": self.clinics,
            "services": self.services,
        }

    def references(self) -> List[Dict[str, Any]]:
        """Entities in reference form: their ``id`` and every parent reference."""
        entities = []
        if self.organization is not None:
            entities.append({"id": self.organization.id})
        for complex_input in self.complexes:
            entities.append({"id": complex_input.id, "organization_id": complex_input.organization_id})
            entities.extend({"id": complex_input.id, "department_id": ref} for ref in complex_input.department_ids)
        entities.extend({"id": department.id} for department in self.departments)
        for clinic in self.clinics:
            entities.append({"id": clinic.id, "complex_id": clinic.complex_id, "department_id": clinic.department_id})
        for service in self.services:
            entities.append({
                "id": service.id,
                "complex_id": service.complex_id,
                "department_id": service.department_id,
                "clinic_id": service.clinic_id,
            })
        return entities


class EntitySummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: Optional[str] = None
    reference: Optional[str] = None
    parent_id: Optional[int] = None


class OnboardingEntities(BaseModel):
    organization: Optional[EntitySummary] = None
    complexes: List[EntitySummary] = Field(default_factory=list)
    departments: List[EntitySummary] = Field(default_factory=list)
    complex_departments: List[EntitySummary] = Field(default_factory=list)
    clinics: List[EntitySummary] = Field(default_factory=list)
    services: List[EntitySummary] = Field(default_factory=list)

    def counts(self) -> Dict[str, int]:
        return {
            "organization": 1 if self.organization else 0,
            "complex": len(self.complexes),
            "department": len(self.departments),
            "clinic": len(self.clinics),
            "service": len(self.services),
        }


class OnboardingResult(BaseModel):
    success: bool
    user_id: Optional[int] = None
    subscription_id: Optional[int] = None
    entities: OnboardingEntities = Field(default_factory=OnboardingEntities)
    errors: List[Dict[str, Any]] = Field(default_factory=list)
    error_type: Optional[str] = None


class ValidationReport(BaseModel):
    is_valid: bool
    errors: List[Dict[str, Any]] = Field(default_factory=list)


class PlanSummary(BaseModel):
    plan_type: str
    name: str
    required_entity_types: List[str]
    limits: Dict[str, int]
    features: List[str]
    steps: List[str]


# Step-by-step wizard

class StartOnboardingRequest(BaseModel):
    user_id: int
    plan_type: str


class StepData(BaseModel):
    """Fields a wizard step may carry; which ones a step accepts depends on its kind."""
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = None
    legal_name: Optional[str] = None
    registration_number: Optional[str] = None
    manager_name: Optional[str] = None
    license_number: Optional[str] = None
    head_doctor_name: Optional[str] = None
    specialization: Optional[str] = None
    department_name: Optional[str] = None
    capacity: Optional[ClinicCapacity] = None
    logo_url: Optional[str] = None
    year_established: Optional[int] = None
    mission: Optional[str] = None
    vision: Optional[str] = None
    overview: Optional[str] = None
    goals: Optional[str] = None
    ceo_name: Optional[str] = None
    website: Optional[str] = None
    email: Optional[str] = None
    phone_numbers: Optional[List[str]] = None
    address: Optional[Dict[str, Any]] = None
    google_location: Optional[str] = None
    emergency_contact_name: Optional[str] = None
    emergency_contact_phone: Optional[str] = None
    social_media_links: Optional[Dict[str, str]] = None
    contacts: Optional[List[ContactInput]] = None
    vat_number: Optional[str] = None
    cr_number: Optional[str] = None
    terms_conditions: Optional[str] = None
    privacy_policy: Optional[str] = None
    working_hours: Optional[List[DaySchedule]] = None


class StepSaveRequest(BaseModel):
    user_id: int
    data: Dict[str, Any] = Field(default_factory=dict)
    inheritance_settings: Optional[InheritanceSettingsInput] = None


class SkipStepRequest(BaseModel):
    user_id: int


class ProgressResponse(BaseModel):
    user_id: int
    plan_type: str
    current_step: str
    completed_steps: List[str]
    skipped_steps: List[str]
    skipped_to_dashboard: bool = False
    organization_id: Optional[int] = None
    complex_id: Optional[int] = None
    clinic_id: Optional[int] = None
    is_completed: bool = False

    @model_validator(mode="after")
    def derive_completion(self):
        self.is_completed = self.current_step == COMPLETED
        return self


class StepSaveResponse(BaseModel):
    step: str
    entity_type: str
    entity_id: int
    inherited_fields: List[str] = Field(default_factory=list)
    progress: ProgressResponse


class SkipStepResponse(BaseModel):
    skipped_steps: List[str]
    next_step: str


# Availability checks and status

class NameCheckRequest(BaseModel):
    name: str
    user_id: Optional[int] = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v):
        if not v.strip():
            raise ValueError("Name is required")
        return v.strip()


class EmailCheckRequest(BaseModel):
    email: str
    user_id: Optional[int] = None


class VatCheckRequest(BaseModel):
    vat_number: str
    user_id: Optional[int] = None


class CrCheckRequest(BaseModel):
    cr_number: str
    user_id: Optional[int] = None


class AvailabilityResult(BaseModel):
    """Whether a name or identifier can still be used by the requesting owner."""
    field: str
    value: str
    is_valid: bool = True
    is_available: bool
    message: str


class PlanLimitCheck(BaseModel):
    entity_type: str
    plan_type: str
    can_create: bool
    current_count: int
    max_allowed: int
    message: Optional[str] = None


class OnboardingStatus(BaseModel):
    user_id: int
    status: str
    plan_type: Optional[str] = None
    has_subscription: bool = False
    current_step: Optional[str] = None
    is_completed: bool = False
    skipped_to_dashboard: bool = False
    entities: Dict[str, int] = Field(default_factory=dict)
