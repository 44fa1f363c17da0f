"""
API routes package.

This package contains the FastAPI route modules for onboarding and
working-hours validation.
"""

from clinichub.api.routes import onboarding, working_hours

__all__ = [
    "onboarding",
    "working_hours",
]
