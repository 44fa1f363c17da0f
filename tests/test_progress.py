import pytest

from clinichub.mocks import RedisMock
from clinichub.models import StepProgress
from clinichub.services.base import ConflictError, NotFoundError, ValidationError
from clinichub.services.onboarding.plan_config import COMPLETED, get_configuration
from clinichub.services.onboarding.progress import StepProgressTracker, next_step


@pytest.fixture
def tracker(cache):
    tracker = StepProgressTracker(cache=cache, cache_ttl=60)
    tracker.initialize()
    return tracker


def start(tracker, uow, user_id, plan_type="company"):
    with uow.transaction():
        return tracker.start(uow, user_id, plan_type)


def test_next_step_skips_done_steps():
    config = get_configuration("clinic")
    assert next_step(config, [], []) == "clinic-overview"
    assert next_step(config, ["clinic-overview"], ["clinic-contact"]) == "clinic-legal"
    assert next_step(config, list(config.step_sequence), []) == COMPLETED


class TestStart:

    def test_starts_at_first_step_of_plan(self, tracker, uow, user_id):
        snapshot = start(tracker, uow, user_id, "complex")
        assert snapshot.current_step == "complex-overview"
        assert snapshot.completed_steps == []
        assert not snapshot.is_completed

    def test_restart_on_same_plan_returns_existing(self, tracker, uow, user_id):
        start(tracker, uow, user_id)
        with uow.transaction():
            tracker.mark_step_complete(uow, user_id, "organization-overview")
        snapshot = start(tracker, uow, user_id)
        assert snapshot.completed_steps == ["organization-overview"]
        assert uow.session.query(StepProgress).count() == 1

    def test_restart_on_other_plan_conflicts(self, tracker, uow, user_id):
        start(tracker, uow, user_id)
        with pytest.raises(ConflictError):
            start(tracker, uow, user_id, "clinic")

    def test_invalid_plan(self, tracker, uow, user_id):
        with pytest.raises(ValidationError, match="Invalid plan type"):
            start(tracker, uow, user_id, "enterprise")


class TestStepSequence:

    def test_completing_steps_advances_current_step(self, tracker, uow, user_id):
        start(tracker, uow, user_id)
        with uow.transaction():
            snapshot = tracker.mark_step_complete(uow, user_id, "organization-overview")
        assert snapshot.current_step == "organization-contact"

    def test_completing_out_of_order_keeps_first_open_step(self, tracker, uow, user_id):
        start(tracker, uow, user_id, "clinic")
        with uow.transaction():
            snapshot = tracker.mark_step_complete(uow, user_id, "clinic-contact")
        assert snapshot.current_step == "clinic-overview"

    def test_step_outside_plan_is_rejected(self, tracker, uow, user_id):
        start(tracker, uow, user_id, "clinic")
        with pytest.raises(ValidationError, match="Step organization-overview is not part of the Clinic Plan"):
            with uow.transaction():
                tracker.mark_step_complete(uow, user_id, "organization-overview")

    def test_completed_onboarding_rejects_further_steps(self, tracker, uow, user_id):
        start(tracker, uow, user_id, "clinic")
        with uow.transaction():
            snapshot = tracker.complete(uow, user_id)
        assert snapshot.is_completed
        with pytest.raises(ConflictError, match="already completed"):
            with uow.transaction():
                tracker.mark_step_complete(uow, user_id, "clinic-overview")

    def test_dependencies(self, tracker, uow, user_id):
        start(tracker, uow, user_id)
        check = tracker.validate_step_dependency(uow, user_id, "organization-contact")
        assert not check.can_proceed
        assert check.missing_steps == ["organization-overview"]

        with uow.transaction():
            tracker.mark_step_complete(uow, user_id, "organization-overview")
        assert tracker.validate_step_dependency(uow, user_id, "organization-contact").can_proceed

    def test_missing_progress(self, tracker, uow, user_id):
        with pytest.raises(NotFoundError):
            tracker.get_progress(uow, user_id)
        assert tracker.find_progress(uow, user_id) is None


class TestComplete:

    def test_open_record_on_other_plan_conflicts(self, tracker, uow, user_id):
        start(tracker, uow, user_id, "clinic")
        with pytest.raises(ConflictError, match="Onboarding already started with the clinic plan"):
            with uow.transaction():
                tracker.complete(uow, user_id, "company")

        progress = tracker.get_progress(uow, user_id)
        assert progress.plan_type == "clinic"
        assert not progress.is_completed

    def test_completed_record_moves_to_the_new_plan(self, tracker, uow, user_id):
        start(tracker, uow, user_id, "clinic")
        with uow.transaction():
            tracker.complete(uow, user_id, "clinic", clinic_id=7)
        with uow.transaction():
            snapshot = tracker.complete(uow, user_id, "company", organization_id=3)

        assert snapshot.plan_type == "company"
        assert set(snapshot.completed_steps) == set(get_configuration("company").step_sequence)
        assert snapshot.completed_steps[:4] == list(get_configuration("clinic").step_sequence)
        assert snapshot.is_completed
        assert (snapshot.organization_id, snapshot.clinic_id) == (3, 7)

    def test_starts_missing_record(self, tracker, uow, user_id):
        with uow.transaction():
            snapshot = tracker.complete(uow, user_id, "complex")
        assert snapshot.plan_type == "complex"
        assert snapshot.completed_steps == list(get_configuration("complex").step_sequence)


class TestSkipToDashboard:

    def test_marks_progress_and_keeps_current_step(self, tracker, uow, user_id):
        start(tracker, uow, user_id, "clinic")
        with uow.transaction():
            snapshot = tracker.skip_to_dashboard(uow, user_id)

        assert snapshot.skipped_to_dashboard
        assert snapshot.current_step == "clinic-overview"
        assert tracker.get_progress(uow, user_id).skipped_to_dashboard

    def test_saving_a_step_resumes_the_wizard(self, tracker, uow, user_id):
        start(tracker, uow, user_id, "clinic")
        with uow.transaction():
            tracker.skip_to_dashboard(uow, user_id)
        with uow.transaction():
            snapshot = tracker.mark_step_complete(uow, user_id, "clinic-overview")
        assert not snapshot.skipped_to_dashboard

    def test_completed_onboarding_cannot_be_skipped(self, tracker, uow, user_id):
        start(tracker, uow, user_id, "clinic")
        with uow.transaction():
            tracker.complete(uow, user_id)
        with pytest.raises(ConflictError):
            with uow.transaction():
                tracker.skip_to_dashboard(uow, user_id)

    def test_requires_progress(self, tracker, uow, user_id):
        with pytest.raises(NotFoundError):
            with uow.transaction():
                tracker.skip_to_dashboard(uow, user_id)


class TestSkip:

    def test_skipping_complex_group_on_company_plan(self, tracker, uow, user_id):
        start(tracker, uow, user_id)
        with uow.transaction():
            for step in ("organization-overview", "organization-contact", "organization-legal"):
                tracker.mark_step_complete(uow, user_id, step)
        with uow.transaction():
            outcome = tracker.skip_current_step(uow, user_id)

        assert outcome.skipped_steps == ["complex-overview", "complex-contact", "complex-legal", "complex-schedule"]
        assert outcome.next_step == "clinic-overview"
        assert tracker.validate_step_dependency(uow, user_id, "clinic-overview").can_proceed

    def test_legal_step_skips_alone(self, tracker, uow, user_id):
        start(tracker, uow, user_id, "clinic")
        with uow.transaction():
            tracker.mark_step_complete(uow, user_id, "clinic-overview")
            tracker.mark_step_complete(uow, user_id, "clinic-contact")
        with uow.transaction():
            outcome = tracker.skip_current_step(uow, user_id)
        assert outcome.skipped_steps == ["clinic-legal"]
        assert outcome.next_step == "clinic-schedule"

    def test_overview_cannot_be_skipped(self, tracker, uow, user_id):
        start(tracker, uow, user_id, "clinic")
        with pytest.raises(ValidationError, match="Step clinic-overview cannot be skipped on the Clinic Plan"):
            with uow.transaction():
                tracker.skip_current_step(uow, user_id)


class TestCache:

    def test_reads_are_cached_after_commit(self, tracker, cache, uow, user_id):
        start(tracker, uow, user_id)
        snapshot = tracker.get_progress(uow, user_id)
        assert cache.get(f"onboarding_progress:{user_id}") == snapshot.to_dict()

    def test_writes_invalidate_cached_progress(self, tracker, cache, uow, user_id):
        start(tracker, uow, user_id)
        tracker.get_progress(uow, user_id)
        with uow.transaction():
            tracker.mark_step_complete(uow, user_id, "organization-overview")

        assert cache.get(f"onboarding_progress:{user_id}") is None
        assert tracker.get_progress(uow, user_id).current_step == "organization-contact"

    def test_rolled_back_writes_never_reach_the_cache(self, tracker, cache, uow, user_id):
        start(tracker, uow, user_id)
        with pytest.raises(RuntimeError):
            with uow.transaction():
                tracker.mark_step_complete(uow, user_id, "organization-overview")
                assert tracker.get_progress(uow, user_id).current_step == "organization-contact"
                raise RuntimeError("boom")

        assert cache.get(f"onboarding_progress:{user_id}") is None
        assert tracker.get_progress(uow, user_id).current_step == "organization-overview"

    def test_cache_outage_falls_back_to_database(self, uow, user_id):
        tracker = StepProgressTracker(cache=RedisMock(failure_rate=1.0))
        start(tracker, uow, user_id)
        assert tracker.get_progress(uow, user_id).current_step == "organization-overview"

    def test_second_read_is_served_from_cache(self, tracker, cache, uow, user_id):
        start(tracker, uow, user_id)
        tracker.get_progress(uow, user_id)
        tracker.get_progress(uow, user_id)
        assert cache.get_metrics()["cache_hits"] == 1

    def test_rollback_releases_the_cache_key(self, tracker, cache, uow, user_id):
        start(tracker, uow, user_id)
        with pytest.raises(RuntimeError):
            with uow.transaction():
                tracker.mark_step_complete(uow, user_id, "organization-overview")
                raise RuntimeError("boom")

        tracker.get_progress(uow, user_id)
        assert cache.get(f"onboarding_progress:{user_id}")["current_step"] == "organization-overview"
