"""
Onboarding API endpoints.

This module exposes the full onboarding submission, its dry-run validation,
the plan catalog, name and identifier availability checks, and the
step-by-step wizard.
"""

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse

from clinichub.core.dependencies import (
    build_onboarding_service, build_step_service, get_progress_cache, get_unit_of_work
)
from clinichub.core.unit_of_work import UnitOfWork
from clinichub.schemas.onboarding import (
    AvailabilityResult, CrCheckRequest, EmailCheckRequest, NameCheckRequest, OnboardingPayload,
    OnboardingResult, OnboardingStatus, PlanLimitCheck, PlanSummary, ProgressResponse, SkipStepRequest,
    SkipStepResponse, StartOnboardingRequest, StepSaveRequest, StepSaveResponse, ValidationReport,
    VatCheckRequest
)
from clinichub.services.base import ServiceResult

router = APIRouter()

ERROR_STATUS = {
    "NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "VALIDATION_ERROR": status.HTTP_400_BAD_REQUEST,
    "ONBOARDING_VALIDATION_FAILED": status.HTTP_400_BAD_REQUEST,
    "CONFLICT": status.HTTP_409_CONFLICT,
}


def _unwrap(result: ServiceResult):
    """Return the result data or raise the matching HTTP error."""
    if result.success:
        return result.data

    error = result.error
    status_code = ERROR_STATUS.get(error.error_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
    if status_code == status.HTTP_500_INTERNAL_SERVER_ERROR:
        detail: Any = "Onboarding failed due to an internal error. No changes were saved."
    elif "errors" in error.details:
        detail = {"message": error.message, "errors": error.details["errors"]}
    else:
        detail = error.message
    raise HTTPException(status_code=status_code, detail=detail)


@router.post("/complete", response_model=OnboardingResult, status_code=status.HTTP_201_CREATED)
async def complete_onboarding(
    payload: OnboardingPayload,
    uow: UnitOfWork = Depends(get_unit_of_work),
    cache=Depends(get_progress_cache),
):
    """
    Submit the whole facility tree in one request.
    
    Either every entity is created or nothing is:
    - **400** with the full error list when the payload breaks plan or hierarchy rules
    - **500** when storage fails mid-way; all writes are rolled back
    """
    service = build_onboarding_service(uow, cache)
    result = await service.run_onboarding(payload)

    if result.success:
        return result

    status_code = (
        status.HTTP_400_BAD_REQUEST if result.error_type == "validation"
        else status.HTTP_500_INTERNAL_SERVER_ERROR
    )
    return JSONResponse(status_code=status_code, content=result.model_dump(mode="json"))


@router.post("/validate", response_model=ValidationReport)
async def validate_onboarding(
    payload: OnboardingPayload,
    uow: UnitOfWork = Depends(get_unit_of_work),
    cache=Depends(get_progress_cache),
):
    """Run every onboarding check without writing anything."""
    service = build_onboarding_service(uow, cache)
    errors = await service.validate_onboarding(payload)
    return ValidationReport(is_valid=not errors, errors=errors)


@router.get("/plans", response_model=List[PlanSummary])
async def list_plans(
    uow: UnitOfWork = Depends(get_unit_of_work),
    cache=Depends(get_progress_cache),
):
    """Available subscription plans with their limits and step sequences."""
    return build_onboarding_service(uow, cache).get_available_plans()


@router.get("/status", response_model=OnboardingStatus)
async def get_onboarding_status(
    user_id: int = Query(..., description="User whose onboarding state to read"),
    uow: UnitOfWork = Depends(get_unit_of_work),
    cache=Depends(get_progress_cache),
):
    """Where the user stands: not started, in progress, skipped to the dashboard or completed."""
    service = build_onboarding_service(uow, cache)
    return _unwrap(await service.get_status(user_id))


@router.get("/validate-plan-limits", response_model=PlanLimitCheck)
async def validate_plan_limits(
    user_id: int = Query(..., description="Subscribed user"),
    entity_type: str = Query(..., description="organization, complex, clinic or service"),
    uow: UnitOfWork = Depends(get_unit_of_work),
    cache=Depends(get_progress_cache),
):
    """Whether the subscribed plan allows one more entity of the given type."""
    service = build_onboarding_service(uow, cache)
    return _unwrap(await service.validate_plan_limit(user_id, entity_type))


@router.post("/start", response_model=ProgressResponse, status_code=status.HTTP_201_CREATED)
async def start_onboarding(
    request: StartOnboardingRequest,
    uow: UnitOfWork = Depends(get_unit_of_work),
    cache=Depends(get_progress_cache),
):
    """Subscribe the user to a plan and open the step wizard."""
    service = build_step_service(uow, cache)
    return _unwrap(await service.start_onboarding(request.user_id, request.plan_type))


@router.get("/progress/{user_id}", response_model=ProgressResponse)
async def get_progress(
    user_id: int,
    uow: UnitOfWork = Depends(get_unit_of_work),
    cache=Depends(get_progress_cache),
):
    service = build_step_service(uow, cache)
    return _unwrap(await service.get_progress(user_id))


@router.post("/steps/{step}", response_model=StepSaveResponse)
async def save_step(
    step: str,
    request: StepSaveRequest,
    uow: UnitOfWork = Depends(get_unit_of_work),
    cache=Depends(get_progress_cache),
):
    """
    Save one wizard step.
    
    - **step**: step name, e.g. ``organization-overview`` or ``clinic-schedule``
    - **data**: the step's fields; unknown fields are rejected
    - **inheritance_settings**: which empty fields to fill from the parent entity
    """
    service = build_step_service(uow, cache)
    result = await service.save_step(request.user_id, step, request.data, request.inheritance_settings)
    return _unwrap(result)


@router.post("/skip", response_model=SkipStepResponse)
async def skip_step(
    request: SkipStepRequest,
    uow: UnitOfWork = Depends(get_unit_of_work),
    cache=Depends(get_progress_cache),
):
    """Skip the current step, together with whatever the plan skips alongside it."""
    service = build_step_service(uow, cache)
    return _unwrap(await service.skip_step(request.user_id))


@router.get("/inherited-working-hours", response_model=Dict[str, Any])
async def get_inherited_working_hours(
    user_id: int = Query(..., description="User whose onboarding progress to read"),
    entity_type: str = Query(..., description="complex or clinic"),
    uow: UnitOfWork = Depends(get_unit_of_work),
    cache=Depends(get_progress_cache),
):
    """Parent schedule a new complex or clinic must fit inside."""
    service = build_step_service(uow, cache)
    return _unwrap(await service.get_inherited_working_hours(user_id, entity_type))


@router.post("/skip-to-dashboard", response_model=ProgressResponse)
async def skip_to_dashboard(
    request: SkipStepRequest,
    uow: UnitOfWork = Depends(get_unit_of_work),
    cache=Depends(get_progress_cache),
):
    """Save the wizard as unfinished; saving or skipping a step later resumes it."""
    service = build_onboarding_service(uow, cache)
    return _unwrap(await service.skip_to_dashboard(request.user_id))


# Availability checks

async def _check_name(entity_type: str, request: NameCheckRequest, uow: UnitOfWork, cache) -> AvailabilityResult:
    service = build_onboarding_service(uow, cache)
    return _unwrap(await service.check_name_availability(entity_type, request.name, request.user_id))


@router.post("/validate-organization-name", response_model=AvailabilityResult)
async def validate_organization_name(
    request: NameCheckRequest,
    uow: UnitOfWork = Depends(get_unit_of_work),
    cache=Depends(get_progress_cache),
):
    return await _check_name("organization", request, uow, cache)


@router.post("/validate-complex-name", response_model=AvailabilityResult)
async def validate_complex_name(
    request: NameCheckRequest,
    uow: UnitOfWork = Depends(get_unit_of_work),
    cache=Depends(get_progress_cache),
):
    return await _check_name("complex", request, uow, cache)


@router.post("/validate-clinic-name", response_model=AvailabilityResult)
async def validate_clinic_name(
    request: NameCheckRequest,
    uow: UnitOfWork = Depends(get_unit_of_work),
    cache=Depends(get_progress_cache),
):
    return await _check_name("clinic", request, uow, cache)


@router.post("/validate-email", response_model=AvailabilityResult)
async def validate_email(
    request: EmailCheckRequest,
    uow: UnitOfWork = Depends(get_unit_of_work),
    cache=Depends(get_progress_cache),
):
    service = build_onboarding_service(uow, cache)
    return _unwrap(await service.check_email_availability(request.email, request.user_id))


@router.post("/validate-vat", response_model=AvailabilityResult)
async def validate_vat(
    request: VatCheckRequest,
    uow: UnitOfWork = Depends(get_unit_of_work),
    cache=Depends(get_progress_cache),
):
    """VAT numbers are 15 digits and may only be used by one owner."""
    service = build_onboarding_service(uow, cache)
    return _unwrap(await service.check_vat_number(request.vat_number, request.user_id))


@router.post("/validate-cr", response_model=AvailabilityResult)
async def validate_cr(
    request: CrCheckRequest,
    uow: UnitOfWork = Depends(get_unit_of_work),
    cache=Depends(get_progress_cache),
):
    """Commercial Registration numbers are 10 digits and may only be used by one owner."""
    service = build_onboarding_service(uow, cache)
    return _unwrap(await service.check_cr_number(request.cr_number, request.user_id))
