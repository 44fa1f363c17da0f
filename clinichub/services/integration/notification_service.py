"""
Notification Integration Service

Dispatches onboarding side effects (audit trail, owner notification) to
Celery workers. Dispatch is fire-and-forget: a broker outage is logged and
never surfaces to the caller.
"""

from typing import Any, Dict

from clinichub.services.base import BaseService
from clinichub.tasks.side_effects import record_audit_event, send_onboarding_notification


class NotificationService(BaseService):
    """Service for best-effort onboarding side effects."""
    
    def __init__(self):
        super().__init__("NotificationService")
        self.initialize()
    
    def dispatch(self, task, *args, **kwargs) -> bool:
        """Queue ``task``; returns False instead of raising when queuing fails."""
        try:
            task.delay(*args, **kwargs)
            return True
        except Exception as e:
            self.logger.warning(f"Failed to dispatch {task.name}: {e}")
            return False
    
    def record_audit_event(self, event_type: str, user_id: int, details: Dict[str, Any]) -> bool:
        return self.dispatch(record_audit_event, event_type, user_id, details)
    
    def send_onboarding_notification(self, user_id: int, email: str, summary: Dict[str, Any]) -> bool:
        if not email:
            return False
        return self.dispatch(send_onboarding_notification, user_id, email, summary)
