"""
Integration Services

This module contains services for integrating with systems outside the
request path, currently the Celery side-effect workers.
"""

from .notification_service import NotificationService

__all__ = [
    'NotificationService'
]
