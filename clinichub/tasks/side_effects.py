"""
Onboarding side effects.

Audit records and owner notifications run on workers after an onboarding
unit of work has committed. They are best effort: the onboarding outcome
never depends on them.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List

from clinichub.mocks.email_service_mock import EmailServiceMock
from clinichub.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("clinichub.audit")

email_service = EmailServiceMock()


@celery_app.task(bind=True, name="side_effects.record_audit_event")
def record_audit_event(self, event_type: str, user_id: int, details: Dict[str, Any]) -> Dict[str, Any]:
    """Write one onboarding event to the audit trail."""
    task_id = self.request.id
    record = {
        "event_type": event_type,
        "user_id": user_id,
        "details": details,
        "recorded_at": datetime.now(timezone.utc).isoformat(),
        "task_id": task_id,
    }
    audit_logger.info(f"[{task_id}] {event_type} user={user_id} details={details}")
    return record


def _summary_lines(summary: Dict[str, Any]) -> List[str]:
    lines = []
    for entity_type, count in sorted(summary.get("counts", {}).items()):
        if count:
            lines.append(f"- {entity_type}: {count}")
    return lines


@celery_app.task(bind=True, name="side_effects.send_onboarding_notification", max_retries=3)
def send_onboarding_notification(self, user_id: int, email: str, summary: Dict[str, Any]) -> Dict[str, Any]:
    """Tell the owner their facilities are set up."""
    task_id = self.request.id
    logger.info(f"[{task_id}] Sending onboarding notification to user {user_id}")

    plan_name = summary.get("plan_name", "your plan")
    body = "\n".join(
        [f"Your onboarding on {plan_name} is complete.", "", "Created:"] + _summary_lines(summary)
    )

    try:
        result = email_service.send_email(email, "Your ClinicHub setup is complete", body)
    except Exception as e:
        logger.warning(f"[{task_id}] Onboarding notification to {email} failed: {e}")
        raise self.retry(exc=e, countdown=60)

    return {"user_id": user_id, "message_id": result["message_id"], "task_id": task_id}
