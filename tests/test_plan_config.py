import pytest

from clinichub.services.onboarding.plan_config import (
    COMPLETED,
    PlanType,
    get_configuration,
    list_configurations,
    normalize_plan_type,
    validate_limits,
)


class TestPlanConfigurations:

    def test_every_plan_type_is_configured(self):
        assert [config.plan_type for config in list_configurations()] == [
            PlanType.COMPANY, PlanType.COMPLEX, PlanType.CLINIC
        ]

    @pytest.mark.parametrize("value", ["company", "Company", " COMPANY ", PlanType.COMPANY])
    def test_plan_type_is_normalized(self, value):
        assert normalize_plan_type(value) is PlanType.COMPANY

    def test_unknown_plan_has_no_configuration(self):
        assert get_configuration("enterprise") is None
        assert get_configuration(None) is None

    def test_company_plan(self):
        config = get_configuration("company")
        assert config.name == "Company Plan"
        assert config.required_entity_types == ("organization",)
        assert config.limits == {"organization": 1, "complex": 10, "clinic": 50, "department": 100, "service": 200}
        assert config.step_sequence[0] == "organization-overview"
        assert config.step_sequence[-1] == "clinic-schedule"

    def test_clinic_plan_only_has_clinic_steps(self):
        config = get_configuration("clinic")
        assert config.step_groups == ("clinic",)
        assert not config.allows("complex")
        assert not config.allows("organization")

    def test_creation_order_drops_entities_the_plan_excludes(self):
        assert get_configuration("company").creation_order[:5] == (
            "subscription", "organization", "complex", "department", "complexDepartment"
        )
        assert "organization" not in get_configuration("complex").creation_order
        assert get_configuration("clinic").creation_order == (
            "subscription", "clinic", "service", "clinicService",
            "workingHours", "contact", "dynamicInfo", "userAccess",
        )

    def test_prerequisites(self):
        config = get_configuration("company")
        assert config.prerequisites("organization-overview") == ()
        assert config.prerequisites("organization-legal") == ("organization-overview",)
        assert config.prerequisites("complex-overview") == ("organization-overview",)
        assert config.prerequisites("clinic-overview") == ("complex-overview",)

    def test_skip_groups(self):
        company = get_configuration("company")
        assert company.skip_group("organization-overview") is None
        assert company.skip_group("organization-legal") == ("organization-legal",)
        assert company.skip_group("complex-overview") == (
            "complex-overview", "complex-contact", "complex-legal", "complex-schedule"
        )
        assert get_configuration("complex").skip_group("complex-overview") is None

    def test_to_dict_ends_with_completed(self):
        data = get_configuration("clinic").to_dict()
        assert data["plan_type"] == "clinic"
        assert data["steps"][-1] == COMPLETED


class TestValidateLimits:

    def test_counts_within_limits(self):
        result = validate_limits("complex", {"complex": 5, "clinic": 20, "department": 3})
        assert result.is_valid
        assert result.errors == []

    def test_flags_exactly_the_over_limit_types(self):
        result = validate_limits("company", {"organization": 1, "complex": 11, "clinic": 50, "service": 201})
        assert not result.is_valid
        assert result.errors == [
            "Maximum 10 complex(es) allowed for Company Plan",
            "Maximum 200 service(s) allowed for Company Plan",
        ]

    def test_excluded_entity_counts_as_over_limit(self):
        result = validate_limits("clinic", {"clinic": 2})
        assert result.errors == ["Maximum 1 clinic(s) allowed for Clinic Plan"]

    def test_stored_limits_override_defaults(self):
        result = validate_limits("clinic", {"department": 4}, limits={"department": 3})
        assert result.errors == ["Maximum 3 department(s) allowed for Clinic Plan"]

    def test_unknown_plan_fails_closed(self):
        result = validate_limits("enterprise", {})
        assert not result.is_valid
        assert result.errors == ["Invalid plan type"]
