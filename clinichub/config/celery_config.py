"""
Celery configuration and setup.

This module configures Celery with the Redis broker and result backend used
for best-effort onboarding side effects (audit trail, notifications).
"""

from celery import Celery
from kombu import Queue

from clinichub.config.settings import settings


def make_celery() -> Celery:
    """
    Create and configure Celery application instance.
    
    Returns:
        Celery: Configured Celery application
    """
    celery_app = Celery("clinichub")
    
    celery_app.conf.update(
        # Broker and Result Backend
        broker_url=settings.celery_broker_url,
        result_backend=settings.celery_result_backend,
        
        # Task Serialization
        task_serializer="json",
        result_serializer="json",
        accept_content=["json"],
        
        # Results Configuration
        result_expires=3600,
        
        # Side effects never share a queue with request-path work
        task_routes={
            "side_effects.*": {"queue": "onboarding"},
        },
        task_queues=(
            Queue("default", priority=1),
            Queue("onboarding", priority=3),
        ),
        
        # Worker Configuration
        worker_prefetch_multiplier=1,
        task_acks_late=True,
        
        # Task Execution Configuration
        task_always_eager=settings.celery_task_always_eager,
        task_eager_propagates=False,  # Side effect failures stay in the result
        task_ignore_result=True,
        
        # Publishing must not stall an onboarding request when the broker is down
        broker_connection_timeout=2,
        task_publish_retry=False,
        
        # Retry Configuration
        task_default_retry_delay=30,
        task_max_retries=3,
        
        # Time Limits
        task_soft_time_limit=60,
        task_time_limit=120,
        
        timezone="UTC",
        worker_hijack_root_logger=False,
    )
    
    celery_app.autodiscover_tasks(["clinichub.tasks"], related_name="side_effects")
    
    return celery_app


# Create the global Celery instance
celery_app = make_celery()


class CeleryConfig:
    """Pre-configured settings for different deployment scenarios."""
    
    @staticmethod
    def get_development_config():
        """Configuration optimized for development."""
        return {
            'task_always_eager': False,
            'worker_log_level': 'DEBUG',
            'worker_concurrency': 2,
        }
    
    @staticmethod
    def get_production_config():
        """Configuration optimized for production."""
        return {
            'task_always_eager': False,
            'worker_log_level': 'INFO',
            'worker_concurrency': 4,
        }
    
    @staticmethod
    def get_testing_config():
        """Configuration for testing (synchronous execution)."""
        return {
            'task_always_eager': True,
            'task_eager_propagates': False,
            'broker_url': 'memory://',
            'result_backend': 'cache+memory://',
        }
