from clinichub.models import Clinic, Complex, Organization, StepProgress, Subscription

API = "/api/v1"


def hours(day_of_week, opening=None, closing=None):
    return {
        "day_of_week": day_of_week,
        "is_working_day": opening is not None,
        "opening_time": opening,
        "closing_time": closing,
    }


def complex_plan(user_id):
    return {
        "user": {"user_id": user_id},
        "subscription": {"plan_type": "complex"},
        "complexes": [{
            "id": "cx-1",
            "name": "North Complex",
            "department_ids": ["dep-1"],
            "working_hours": [hours("sunday", "09:00", "18:00"), hours("friday")],
        }],
        "departments": [{"id": "dep-1", "name": "Cardiology"}],
        "clinics": [{
            "id": "cl-1",
            "name": "Heart Clinic",
            "complex_id": "cx-1",
            "working_hours": [hours("sunday", "09:00", "17:00")],
        }],
    }


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_list_plans(client, user_id):
    response = client.get(f"{API}/onboarding/plans")

    assert response.status_code == 200
    plans = {plan["plan_type"]: plan for plan in response.json()}
    assert set(plans) == {"company", "complex", "clinic"}
    assert plans["clinic"]["limits"]["clinic"] == 1
    assert plans["clinic"]["steps"][-1] == "completed"


class TestCompleteOnboarding:

    def test_creates_the_hierarchy(self, client, count, user_id):
        response = client.post(f"{API}/onboarding/complete", json=complex_plan(user_id))

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["entities"]["complexes"][0]["reference"] == "cx-1"
        assert body["entities"]["clinics"][0]["parent_id"] == body["entities"]["complexes"][0]["id"]
        assert count(Complex) == 1
        assert count(Clinic) == 1
        assert count(Organization) == 0

    def test_plan_violation_returns_all_errors(self, client, count, user_id):
        payload = {
            "user": {"user_id": user_id},
            "subscription": {"plan_type": "clinic"},
            "clinics": [],
        }

        response = client.post(f"{API}/onboarding/complete", json=payload)

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error_type"] == "validation"
        assert "clinic plan requires at least one clinic" in [error["message"] for error in body["errors"]]
        assert count(Subscription) == 0

    def test_schedule_violation_writes_nothing(self, client, count, user_id):
        payload = complex_plan(user_id)
        payload["clinics"][0]["working_hours"] = [hours("friday", "09:00", "17:00")]

        response = client.post(f"{API}/onboarding/complete", json=payload)

        assert response.status_code == 400
        messages = [error["message"] for error in response.json()["errors"]]
        assert "Heart Clinic cannot be open on friday when North Complex is closed" in messages
        assert count(Complex) == 0

    def test_malformed_payload(self, client):
        response = client.post(f"{API}/onboarding/complete", json={"subscription": {"plan_type": "clinic"}})
        assert response.status_code == 422


def test_validate_is_a_dry_run(client, count, user_id):
    response = client.post(f"{API}/onboarding/validate", json=complex_plan(user_id))

    assert response.status_code == 200
    assert response.json() == {"is_valid": True, "errors": []}
    assert count(Complex) == 0


class TestStepWizard:

    def test_start_save_and_read_progress(self, client, count, user_id):
        started = client.post(f"{API}/onboarding/start", json={"user_id": user_id, "plan_type": "company"})
        assert started.status_code == 201
        assert started.json()["current_step"] == "organization-overview"

        saved = client.post(
            f"{API}/onboarding/steps/organization-overview",
            json={"user_id": user_id, "data": {"name": "Al-Zahra Medical Center"}},
        )
        assert saved.status_code == 200
        assert saved.json()["entity_type"] == "organization"

        progress = client.get(f"{API}/onboarding/progress/{user_id}")
        assert progress.json()["completed_steps"] == ["organization-overview"]
        assert progress.json()["organization_id"] == saved.json()["entity_id"]
        assert count(Organization) == 1
        assert count(StepProgress) == 1

    def test_step_out_of_order(self, client, user_id):
        client.post(f"{API}/onboarding/start", json={"user_id": user_id, "plan_type": "company"})

        response = client.post(
            f"{API}/onboarding/steps/organization-legal",
            json={"user_id": user_id, "data": {"vat_number": "300000000000003"}},
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Complete organization-overview before organization-legal"

    def test_invalid_step_data_lists_errors(self, client, user_id):
        client.post(f"{API}/onboarding/start", json={"user_id": user_id, "plan_type": "clinic"})

        response = client.post(
            f"{API}/onboarding/steps/clinic-overview",
            json={"user_id": user_id, "data": {"name": "Solo Clinic", "year_established": 1850}},
        )

        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["errors"][0]["field"] == "data"

    def test_skip(self, client, user_id):
        client.post(f"{API}/onboarding/start", json={"user_id": user_id, "plan_type": "clinic"})
        client.post(f"{API}/onboarding/steps/clinic-overview", json={"user_id": user_id, "data": {"name": "Solo Clinic"}})
        client.post(f"{API}/onboarding/steps/clinic-contact", json={"user_id": user_id, "data": {}})

        response = client.post(f"{API}/onboarding/skip", json={"user_id": user_id})

        assert response.status_code == 200
        assert response.json() == {"skipped_steps": ["clinic-legal"], "next_step": "clinic-schedule"}

    def test_unknown_user_progress(self, client):
        response = client.get(f"{API}/onboarding/progress/9999")
        assert response.status_code == 404

    def test_inherited_working_hours_without_parent(self, client, user_id):
        client.post(f"{API}/onboarding/start", json={"user_id": user_id, "plan_type": "clinic"})

        response = client.get(
            f"{API}/onboarding/inherited-working-hours",
            params={"user_id": user_id, "entity_type": "clinic"},
        )

        assert response.status_code == 200
        assert response.json()["source_type"] is None
        assert response.json()["working_hours"] == []


class TestHierarchicalValidation:

    def test_inline_parent_schedule(self, client):
        response = client.post(f"{API}/working-hours/validate-hierarchical", json={
            "child_schedule": [hours("sunday", "08:00", "19:00")],
            "parent_schedule": [hours("sunday", "09:00", "18:00")],
            "child_label": "Heart Clinic",
            "parent_label": "North Complex",
        })

        assert response.status_code == 200
        body = response.json()
        assert body["is_valid"] is False
        assert body["errors"][0]["suggested_range"] == {"opening_time": "09:00", "closing_time": "18:00"}
        assert body["suggestions"] == {"sunday": {"opening_time": "09:00", "closing_time": "18:00"}}

    def test_stored_parent_schedule(self, client, user_id):
        created = client.post(f"{API}/onboarding/complete", json=complex_plan(user_id)).json()
        complex_id = created["entities"]["complexes"][0]["id"]

        response = client.post(f"{API}/working-hours/validate-hierarchical", json={
            "child_schedule": [hours("friday", "10:00", "14:00")],
            "parent_type": "complex",
            "parent_id": complex_id,
            "child_label": "Heart Clinic",
            "parent_label": "North Complex",
        })

        body = response.json()
        assert body["is_valid"] is False
        assert [error["message"] for error in body["errors"]] == [
            "Heart Clinic cannot be open on friday when North Complex is closed"
        ]
        assert body["suggestions"] == {}

    def test_parent_is_required(self, client):
        response = client.post(f"{API}/working-hours/validate-hierarchical", json={
            "child_schedule": [hours("sunday", "09:00", "17:00")],
        })
        assert response.status_code == 400


class TestStatusAndLimits:

    def test_status_follows_the_wizard(self, client, user_id):
        assert client.get(f"{API}/onboarding/status", params={"user_id": user_id}).json()["status"] == "not_started"

        client.post(f"{API}/onboarding/start", json={"user_id": user_id, "plan_type": "clinic"})
        skipped = client.post(f"{API}/onboarding/skip-to-dashboard", json={"user_id": user_id})
        assert skipped.status_code == 200
        assert skipped.json()["skipped_to_dashboard"] is True

        status = client.get(f"{API}/onboarding/status", params={"user_id": user_id}).json()
        assert status["status"] == "skipped"
        assert status["has_subscription"] is True

        client.post(f"{API}/onboarding/steps/clinic-overview", json={"user_id": user_id, "data": {"name": "Solo Clinic"}})
        assert client.get(f"{API}/onboarding/status", params={"user_id": user_id}).json()["status"] == "in_progress"

    def test_status_of_unknown_user(self, client):
        response = client.get(f"{API}/onboarding/status", params={"user_id": 9999})
        assert response.status_code == 404

    def test_skip_to_dashboard_without_progress(self, client, user_id):
        response = client.post(f"{API}/onboarding/skip-to-dashboard", json={"user_id": user_id})
        assert response.status_code == 404

    def test_plan_limits(self, client, user_id):
        client.post(f"{API}/onboarding/complete", json=complex_plan(user_id))

        response = client.get(
            f"{API}/onboarding/validate-plan-limits",
            params={"user_id": user_id, "entity_type": "clinic"},
        )

        assert response.status_code == 200
        assert response.json() == {
            "entity_type": "clinic",
            "plan_type": "complex",
            "can_create": True,
            "current_count": 1,
            "max_allowed": 20,
            "message": None,
        }

    def test_plan_limits_without_subscription(self, client, user_id):
        response = client.get(
            f"{API}/onboarding/validate-plan-limits",
            params={"user_id": user_id, "entity_type": "clinic"},
        )
        assert response.status_code == 404


class TestAvailability:

    def test_complex_name_taken(self, client, user_id):
        client.post(f"{API}/onboarding/complete", json=complex_plan(user_id))

        response = client.post(f"{API}/onboarding/validate-complex-name", json={"name": "North Complex"})

        assert response.status_code == 200
        assert response.json()["is_available"] is False
        own = client.post(f"{API}/onboarding/validate-complex-name", json={"name": "North Complex", "user_id": user_id})
        assert own.json()["is_available"] is True

    def test_blank_name(self, client):
        response = client.post(f"{API}/onboarding/validate-clinic-name", json={"name": "  "})
        assert response.status_code == 422

    def test_email(self, client, user_id):
        response = client.post(f"{API}/onboarding/validate-email", json={"email": "owner@alzahra.sa"})
        assert response.json()["message"] == "Email is already taken"

    def test_vat_and_cr_formats(self, client):
        vat = client.post(f"{API}/onboarding/validate-vat", json={"vat_number": "300000000000003"})
        cr = client.post(f"{API}/onboarding/validate-cr", json={"cr_number": "12AB"})

        assert vat.json()["is_available"] is True
        assert cr.json()["is_valid"] is False

    def test_duplicate_names_in_submission(self, client, count, user_id):
        payload = complex_plan(user_id)
        payload["clinics"].append(dict(payload["clinics"][0], id="cl-2"))

        response = client.post(f"{API}/onboarding/complete", json=payload)

        assert response.status_code == 400
        assert {"field": "clinics[1].name", "message": "Duplicate clinic name in payload: Heart Clinic"} in response.json()["errors"]
        assert count(Clinic) == 0
