"""
Main Celery application instance and task discovery.

This is the entry point for Celery workers:
celery -A clinichub.tasks.celery_app worker -Q onboarding
"""

from clinichub.config.celery_config import celery_app

# Import task modules so they are registered with Celery
from clinichub.tasks import side_effects  # noqa: F401

__all__ = ["celery_app"]


def get_registered_tasks():
    """
    Get list of all registered Celery tasks.
    
    Returns:
        list: List of task names registered with Celery
    """
    return list(celery_app.tasks.keys())
