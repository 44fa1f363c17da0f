"""
Workflow Services

High-level onboarding workflows that coordinate the domain collaborators
inside one unit of work: full submissions and the step-by-step wizard.
"""

from .onboarding_service import OnboardingService
from .onboarding_steps import OnboardingStepService

__all__ = [
    'OnboardingService',
    'OnboardingStepService'
]
