import pytest

from clinichub.models import Clinic, Complex, Contact, Organization, StepProgress, WorkingHours
from clinichub.services.onboarding.progress import StepProgressTracker
from clinichub.services.workflows.onboarding_steps import OnboardingStepService, allowed_fields


@pytest.fixture
def steps(uow, cache):
    service = OnboardingStepService(uow=uow, progress=StepProgressTracker(cache=cache))
    service.initialize()
    return service


async def save(steps, user_id, step, data, **kwargs):
    result = await steps.save_step(user_id, step, data, **kwargs)
    assert result.success, result.error.message
    return result.data


async def start_company(steps, user_id):
    result = await steps.start_onboarding(user_id, "company")
    assert result.success
    await save(steps, user_id, "organization-overview", {
        "name": "Al-Zahra Medical Center",
        "mission": "Care for every family",
        "year_established": 1998,
    })
    await save(steps, user_id, "organization-contact", {
        "email": "info@alzahra.sa",
        "phone_numbers": ["+966110000000"],
    })


def test_allowed_fields_per_step():
    assert "license_number" in allowed_fields("clinic-overview")
    assert "license_number" not in allowed_fields("organization-overview")
    assert allowed_fields("complex-schedule") == frozenset({"working_hours"})


class TestStartOnboarding:

    @pytest.mark.asyncio
    async def test_start_opens_progress(self, steps, uow, user_id):
        result = await steps.start_onboarding(user_id, "clinic")

        assert result.success
        assert result.data.current_step == "clinic-overview"
        assert result.data.plan_type == "clinic"
        assert uow.session.query(StepProgress).count() == 1

    @pytest.mark.asyncio
    async def test_unknown_user(self, steps, user_id):
        result = await steps.start_onboarding(user_id + 100, "clinic")
        assert not result.success
        assert result.error.error_code == "NOT_FOUND"

    @pytest.mark.asyncio
    async def test_invalid_plan(self, steps, user_id):
        result = await steps.start_onboarding(user_id, "enterprise")
        assert not result.success
        assert result.error.error_code == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_progress_before_start_is_not_found(self, steps, user_id):
        result = await steps.get_progress(user_id)
        assert result.error.error_code == "NOT_FOUND"


class TestSaveStep:

    @pytest.mark.asyncio
    async def test_resubmitting_overview_updates_the_same_organization(self, steps, uow, user_id):
        await steps.start_onboarding(user_id, "company")
        data = {"name": "Al-Zahra Medical Center", "mission": "Care for every family"}

        first = await save(steps, user_id, "organization-overview", data)
        second = await save(steps, user_id, "organization-overview", data)

        assert first.entity_id == second.entity_id
        assert uow.session.query(Organization).count() == 1
        assert second.progress.completed_steps == ["organization-overview"]
        assert second.progress.organization_id == first.entity_id

    @pytest.mark.asyncio
    async def test_step_advances_progress(self, steps, user_id):
        await steps.start_onboarding(user_id, "company")
        response = await save(steps, user_id, "organization-overview", {"name": "Al-Zahra Medical Center"})

        assert response.step == "organization-overview"
        assert response.entity_type == "organization"
        assert response.progress.current_step == "organization-contact"

    @pytest.mark.asyncio
    async def test_contacts_are_stored_normalized(self, steps, uow, user_id):
        await steps.start_onboarding(user_id, "company")
        await save(steps, user_id, "organization-overview", {"name": "Al-Zahra Medical Center"})
        await save(steps, user_id, "organization-contact", {
            "contacts": [{"contact_type": "email", "contact_value": " Info@AlZahra.sa "}],
        })

        contact = uow.session.query(Contact).one()
        assert contact.entity_type == "organization"
        assert contact.contact_value == "info@alzahra.sa"

    @pytest.mark.asyncio
    async def test_overview_needs_a_name(self, steps, user_id):
        await steps.start_onboarding(user_id, "company")
        result = await steps.save_step(user_id, "organization-overview", {"mission": "Care"})
        assert result.error.message == "name is required to create the organization"

    @pytest.mark.asyncio
    async def test_prerequisites_are_enforced(self, steps, user_id):
        await steps.start_onboarding(user_id, "company")
        result = await steps.save_step(user_id, "organization-contact", {"email": "info@alzahra.sa"})
        assert not result.success
        assert result.error.message == "Complete organization-overview before organization-contact"

    @pytest.mark.asyncio
    async def test_fields_outside_the_step_are_rejected(self, steps, user_id):
        await steps.start_onboarding(user_id, "company")
        result = await steps.save_step(user_id, "organization-overview", {"name": "X", "license_number": "L-1"})
        assert result.error.message == "Fields not accepted by step organization-overview: license_number"

    @pytest.mark.asyncio
    async def test_unknown_fields_fail_schema_validation(self, steps, user_id):
        await steps.start_onboarding(user_id, "company")
        result = await steps.save_step(user_id, "organization-overview", {"name": "X", "color": "teal"})
        assert result.error.error_code == "ONBOARDING_VALIDATION_FAILED"
        assert result.error.details["errors"][0]["field"] == "color"

    @pytest.mark.asyncio
    async def test_unknown_step(self, steps, user_id):
        await steps.start_onboarding(user_id, "company")
        result = await steps.save_step(user_id, "billing-overview", {})
        assert result.error.message == "Unknown onboarding step: billing-overview"

    @pytest.mark.asyncio
    async def test_invalid_profile_values(self, steps, user_id):
        await steps.start_onboarding(user_id, "company")
        result = await steps.save_step(user_id, "organization-overview", {"name": "X", "year_established": 1800})
        assert result.error.error_code == "ONBOARDING_VALIDATION_FAILED"
        assert result.error.details["errors"][0]["message"].startswith("Year established must be between 1900")


class TestInheritance:

    @pytest.mark.asyncio
    async def test_complex_inherits_from_organization(self, steps, uow, user_id):
        await start_company(steps, user_id)

        overview = await save(steps, user_id, "complex-overview", {"name": "North Complex"})
        contact = await save(steps, user_id, "complex-contact", {})

        assert overview.inherited_fields == ["year_established", "mission"]
        assert contact.inherited_fields == ["email", "phone_numbers"]
        complex_entity = uow.session.query(Complex).one()
        assert complex_entity.email == "info@alzahra.sa"
        assert complex_entity.mission == "Care for every family"
        assert complex_entity.organization_id == overview.progress.organization_id

    @pytest.mark.asyncio
    async def test_overridden_fields_are_not_inherited(self, steps, uow, user_id):
        await start_company(steps, user_id)

        await save(steps, user_id, "complex-overview", {"name": "North Complex"})
        response = await save(
            steps, user_id, "complex-contact", {},
            inheritance_settings={"fields_to_override": ["email"]},
        )

        assert response.inherited_fields == ["phone_numbers"]
        assert uow.session.query(Complex).one().email is None


class TestSchedules:

    @pytest.mark.asyncio
    async def test_clinic_schedule_must_fit_complex_schedule(self, steps, uow, user_id):
        await start_company(steps, user_id)
        await save(steps, user_id, "complex-overview", {"name": "North Complex"})
        await save(steps, user_id, "complex-schedule", {"working_hours": [
            {"day_of_week": "sunday", "is_working_day": True, "opening_time": "09:00", "closing_time": "18:00"},
            {"day_of_week": "friday", "is_working_day": False},
        ]})
        await save(steps, user_id, "clinic-overview", {"name": "Heart Clinic", "department_name": "Cardiology"})

        result = await steps.save_step(user_id, "clinic-schedule", {"working_hours": [
            {"day_of_week": "friday", "is_working_day": True, "opening_time": "09:00", "closing_time": "17:00"},
        ]})

        assert not result.success
        assert result.error.details["errors"][0]["message"] == (
            "Heart Clinic cannot be open on friday when North Complex is closed"
        )
        clinic = uow.session.query(Clinic).one()
        assert uow.session.query(WorkingHours).filter(WorkingHours.entity_type == "clinic").count() == 0
        assert clinic.complex_department_id is not None
        progress = (await steps.get_progress(user_id)).data
        assert "clinic-schedule" not in progress.completed_steps

    @pytest.mark.asyncio
    async def test_inherited_working_hours(self, steps, user_id):
        await start_company(steps, user_id)
        complex_overview = await save(steps, user_id, "complex-overview", {"name": "North Complex"})
        await save(steps, user_id, "complex-schedule", {"working_hours": [
            {"day_of_week": "sunday", "is_working_day": True, "opening_time": "09:00", "closing_time": "18:00"},
        ]})

        result = await steps.get_inherited_working_hours(user_id, "clinic")

        assert result.success
        assert result.data["source_type"] == "complex"
        assert result.data["source_id"] == complex_overview.entity_id
        assert result.data["suggestions"] == {"sunday": {"opening_time": "09:00", "closing_time": "18:00"}}

    @pytest.mark.asyncio
    async def test_inherited_working_hours_only_for_complexes_and_clinics(self, steps, user_id):
        await steps.start_onboarding(user_id, "company")
        result = await steps.get_inherited_working_hours(user_id, "organization")
        assert result.error.error_code == "VALIDATION_ERROR"


class TestSkipAndCompletion:

    @pytest.mark.asyncio
    async def test_skipping_the_complex_group(self, steps, user_id):
        await start_company(steps, user_id)
        await save(steps, user_id, "organization-legal", {"vat_number": "300000000000003"})

        result = await steps.skip_step(user_id)

        assert result.success
        assert result.data.next_step == "clinic-overview"
        assert result.data.skipped_steps == [
            "complex-overview", "complex-contact", "complex-legal", "complex-schedule"
        ]
        clinic = await save(steps, user_id, "clinic-overview", {"name": "Heart Clinic"})
        assert clinic.inherited_fields == ["year_established", "mission"]

    @pytest.mark.asyncio
    async def test_overview_cannot_be_skipped(self, steps, user_id):
        await steps.start_onboarding(user_id, "clinic")
        result = await steps.skip_step(user_id)
        assert result.error.message == "Step clinic-overview cannot be skipped on the Clinic Plan"

    @pytest.mark.asyncio
    async def test_clinic_plan_to_completion(self, steps, uow, user_id):
        await steps.start_onboarding(user_id, "clinic")
        await save(steps, user_id, "clinic-overview", {"name": "Solo Clinic", "capacity": {"max_doctors": 3}})
        await save(steps, user_id, "clinic-contact", {"email": "solo@clinic.sa"})
        await steps.skip_step(user_id)
        final = await save(steps, user_id, "clinic-schedule", {"working_hours": [
            {"day_of_week": "monday", "is_working_day": True, "opening_time": "08:00", "closing_time": "16:00"},
        ]})

        assert final.progress.is_completed
        assert final.progress.current_step == "completed"
        assert uow.session.query(Clinic).one().max_doctors == 3

        result = await steps.save_step(user_id, "clinic-contact", {"email": "other@clinic.sa"})
        assert result.error.error_code == "CONFLICT"
        assert uow.session.query(Clinic).one().email == "solo@clinic.sa"
