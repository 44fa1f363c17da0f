from clinichub.services.integration.notification_service import NotificationService
from clinichub.tasks import side_effects
from clinichub.tasks.celery_app import get_registered_tasks


class BrokenTask:
    name = "side_effects.broken"

    def delay(self, *args, **kwargs):
        raise ConnectionError("broker unreachable")


def test_tasks_are_registered():
    tasks = get_registered_tasks()
    assert "side_effects.record_audit_event" in tasks
    assert "side_effects.send_onboarding_notification" in tasks


def test_audit_event_record():
    result = side_effects.record_audit_event.apply(args=("onboarding_completed", 7, {"plan_type": "clinic"}))

    record = result.get()
    assert record["event_type"] == "onboarding_completed"
    assert record["user_id"] == 7
    assert record["details"] == {"plan_type": "clinic"}


def test_notification_lists_created_entities():
    side_effects.email_service.clear_email_history()

    side_effects.send_onboarding_notification.apply(args=(
        7, "owner@alzahra.sa", {"plan_name": "Complex Plan", "counts": {"clinic": 2, "complex": 1, "organization": 0}},
    ))

    email = side_effects.email_service.get_sent_emails()[-1]
    assert email["to_address"] == "owner@alzahra.sa"
    assert email["body"].splitlines() == [
        "Your onboarding on Complex Plan is complete.",
        "",
        "Created:",
        "- clinic: 2",
        "- complex: 1",
    ]


def test_dispatch_failure_is_swallowed():
    notifier = NotificationService()
    assert notifier.dispatch(BrokenTask(), "payload") is False


def test_notification_needs_an_address():
    assert NotificationService().send_onboarding_notification(7, "", {}) is False
