"""
FastAPI dependency injection functions.

This module provides dependency functions that can be injected into
FastAPI route handlers for units of work, the progress cache and the
onboarding services.
"""

from typing import Generator

from clinichub.core.database import SessionLocal
from clinichub.core.redis import get_redis
from clinichub.core.unit_of_work import UnitOfWork
from clinichub.services.domain import DomainServices
from clinichub.services.onboarding.progress import StepProgressTracker
from clinichub.services.workflows.onboarding_service import OnboardingService
from clinichub.services.workflows.onboarding_steps import OnboardingStepService


def get_unit_of_work() -> Generator[UnitOfWork, None, None]:
    """
    FastAPI dependency for a unit of work.
    
    Yields:
        UnitOfWork: transactional handle, closed after the request
    """
    with UnitOfWork(SessionLocal) as uow:
        yield uow


def get_progress_cache():
    """Cache fronting step progress reads."""
    return get_redis()


def get_domain_services() -> DomainServices:
    return DomainServices.default()


def build_progress_tracker(cache) -> StepProgressTracker:
    tracker = StepProgressTracker(cache=cache)
    tracker.initialize()
    return tracker


def build_onboarding_service(uow: UnitOfWork, cache) -> OnboardingService:
    service = OnboardingService(
        uow=uow,
        domain=get_domain_services(),
        progress=build_progress_tracker(cache),
    )
    service.initialize()
    return service


def build_step_service(uow: UnitOfWork, cache) -> OnboardingStepService:
    service = OnboardingStepService(
        uow=uow,
        domain=get_domain_services(),
        progress=build_progress_tracker(cache),
    )
    service.initialize()
    return service
