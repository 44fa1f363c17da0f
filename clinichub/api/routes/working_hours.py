"""
Working-hours validation endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from clinichub.core.dependencies import get_domain_services, get_unit_of_work
from clinichub.core.unit_of_work import UnitOfWork
from clinichub.schemas.working_hours import (
    HierarchicalValidationRequest, HierarchicalValidationResponse
)
from clinichub.services.domain import DomainServices
from clinichub.services.onboarding.working_hours import HierarchicalWorkingHoursValidator, suggest_ranges

router = APIRouter()


@router.post("/validate-hierarchical", response_model=HierarchicalValidationResponse)
async def validate_hierarchical(
    request: HierarchicalValidationRequest,
    uow: UnitOfWork = Depends(get_unit_of_work),
    domain: DomainServices = Depends(get_domain_services),
):
    """
    Check that a child schedule fits inside its parent's.
    
    Supply either ``parent_schedule`` inline or ``parent_type`` and
    ``parent_id`` of a stored entity. Each violation carries the parent's
    hours for that day as the suggested range.
    """
    if request.parent_schedule is None and (request.parent_type is None or request.parent_id is None):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Provide parent_schedule or both parent_type and parent_id"
        )

    parent_schedule = request.parent_schedule
    if parent_schedule is None:
        parent_schedule = domain.working_hours.get_schedule(uow, request.parent_type, request.parent_id)

    validator = HierarchicalWorkingHoursValidator(domain.working_hours)
    validation = await validator.validate(
        request.child_schedule,
        request.parent_type,
        request.parent_id,
        child_label=request.child_label,
        uow=uow,
        parent_schedule=parent_schedule,
        parent_label=request.parent_label,
    )

    return HierarchicalValidationResponse(
        is_valid=validation.is_valid,
        errors=[violation.to_dict() for violation in validation.errors],
        suggestions={
            day: suggested.to_dict()
            for day, suggested in suggest_ranges(parent_schedule, request.child_schedule).items()
        },
    )
