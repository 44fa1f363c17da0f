"""
Onboarding Engine

Plan-driven building blocks used by the onboarding workflows:

1. **plan_config** - Plan table: limits, steps, skip rules, creation order
2. **hierarchy** - Required entities and parent reference checks
3. **inheritance** - Parent → child attribute propagation
4. **working_hours** - Schedule format and parent nesting checks
5. **progress** - Persisted wizard state with a read-through cache
"""

from .errors import OnboardingValidationError, OnboardingOperationError
from .plan_config import PlanType, PlanConfiguration, get_configuration, validate_limits
from .hierarchy import validate_hierarchy, validate_entity_relationships, get_entity_creation_order
from .inheritance import InheritanceSettings, inherit
from .working_hours import HierarchicalWorkingHoursValidator, validate_against_parent, validate_schedule
from .progress import StepProgressTracker

__all__ = [
    'OnboardingValidationError',
    'OnboardingOperationError',
    'PlanType',
    'PlanConfiguration',
    'get_configuration',
    'validate_limits',
    'validate_hierarchy',
    'validate_entity_relationships',
    'get_entity_creation_order',
    'InheritanceSettings',
    'inherit',
    'HierarchicalWorkingHoursValidator',
    'validate_against_parent',
    'validate_schedule',
    'StepProgressTracker',
]
