"""
Pydantic schemas package.

Request and response schemas for the onboarding and working-hours APIs.
"""

# Onboarding schemas
from clinichub.schemas.onboarding import (
    DaySchedule, ContactInput, InheritanceSettingsInput, BusinessProfile, LegalInfo,
    OrganizationInput, ComplexInput, DepartmentInput, ClinicInput, ClinicCapacity, ServiceInput,
    UserReference, SubscriptionInput, OnboardingPayload,
    EntitySummary, OnboardingEntities, OnboardingResult, ValidationReport, PlanSummary,
    StartOnboardingRequest, StepData, StepSaveRequest, SkipStepRequest,
    ProgressResponse, StepSaveResponse, SkipStepResponse
)

# Working hours schemas
from clinichub.schemas.working_hours import (
    HierarchicalValidationRequest, HierarchicalValidationResponse,
    ScheduleViolationResponse, TimeRangeResponse
)

__all__ = [
    # Onboarding
    "DaySchedule", "ContactInput", "InheritanceSettingsInput", "BusinessProfile", "LegalInfo",
    "OrganizationInput", "ComplexInput", "DepartmentInput", "ClinicInput", "ClinicCapacity", "ServiceInput",
    "UserReference", "SubscriptionInput", "OnboardingPayload",
    "EntitySummary", "OnboardingEntities", "OnboardingResult", "ValidationReport", "PlanSummary",
    "StartOnboardingRequest", "StepData", "StepSaveRequest", "SkipStepRequest",
    "ProgressResponse", "StepSaveResponse", "SkipStepResponse",
    
    # Working hours
    "HierarchicalValidationRequest", "HierarchicalValidationResponse",
    "ScheduleViolationResponse", "TimeRangeResponse",
]
