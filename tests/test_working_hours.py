import pytest

from clinichub.services.onboarding.working_hours import (
    HierarchicalWorkingHoursValidator,
    TimeRange,
    parse_time,
    suggest_ranges,
    validate_against_parent,
    validate_schedule,
)


def day(day_of_week, opening=None, closing=None, working=True, **extra):
    return {
        "day_of_week": day_of_week,
        "is_working_day": working,
        "opening_time": opening,
        "closing_time": closing,
        **extra,
    }


PARENT = [day("sunday", "09:00", "18:00"), day("friday", working=False)]


class TestParseTime:

    @pytest.mark.parametrize("value, minutes", [("09:00", 540), ("9:30", 570), ("23:59", 1439), ("00:00", 0)])
    def test_valid(self, value, minutes):
        assert parse_time(value) == minutes

    @pytest.mark.parametrize("value", ["24:00", "9", "09:60", "", None, 900])
    def test_invalid(self, value):
        assert parse_time(value) is None


class TestValidateSchedule:

    def test_valid_schedule(self):
        assert validate_schedule([day("sunday", "09:00", "18:00", break_start_time="13:00", break_end_time="14:00")]) == []

    def test_closed_days_need_no_times(self):
        assert validate_schedule([day("friday", working=False)]) == []

    def test_working_day_needs_times(self):
        violations = validate_schedule([day("monday", "09:00")])
        assert [v.message for v in violations] == ["Opening and closing times are required for working day: monday"]

    def test_closing_must_follow_opening(self):
        violations = validate_schedule([day("monday", "18:00", "09:00")])
        assert violations[0].message == "Closing time (09:00) must be after opening time (18:00) on monday"

    def test_invalid_and_duplicate_days(self):
        violations = validate_schedule([day("funday", "09:00", "17:00"), day("monday", "09:00", "17:00"),
                                        day("monday", "10:00", "12:00")])
        assert [v.message for v in violations] == ["Invalid day: funday", "Duplicate day: monday"]

    def test_break_outside_working_hours(self):
        violations = validate_schedule([day("monday", "09:00", "17:00", break_start_time="16:30", break_end_time="17:30")])
        assert violations[0].message == "Break time on monday must be within working hours (09:00-17:00)"


class TestValidateAgainstParent:

    def test_child_inside_parent_hours_passes(self):
        result = validate_against_parent([day("sunday", "09:00", "17:00")], PARENT)
        assert result.is_valid
        assert result.errors == []

    def test_child_outside_parent_hours_fails_with_suggestion(self):
        result = validate_against_parent(
            [day("sunday", "08:00", "19:00")], PARENT, child_label="Clinic A", parent_label="North Complex"
        )
        assert not result.is_valid
        assert len(result.errors) == 1
        violation = result.errors[0]
        assert violation.day_of_week == "sunday"
        assert violation.suggested_range == TimeRange("09:00", "18:00")
        assert violation.message == (
            "Clinic A working hours on sunday (08:00-19:00) must be within "
            "North Complex working hours (09:00-18:00)"
        )

    def test_child_open_when_parent_closed_fails(self):
        result = validate_against_parent(
            [day("friday", "09:00", "17:00")], PARENT, child_label="Clinic A", parent_label="North Complex"
        )
        assert result.messages == ["Clinic A cannot be open on friday when North Complex is closed"]

    def test_day_missing_from_parent_counts_as_closed(self):
        result = validate_against_parent([day("monday", "09:00", "17:00")], PARENT)
        assert result.messages == ["child cannot be open on monday when parent is closed"]

    def test_every_violation_is_reported(self):
        result = validate_against_parent(
            [day("sunday", "08:00", "17:00"), day("friday", "10:00", "12:00")], PARENT
        )
        assert [v.day_of_week for v in result.errors] == ["sunday", "friday"]

    def test_format_errors_are_reported_once(self):
        result = validate_against_parent([day("sunday", "07:00", "6:00")], PARENT)
        assert len(result.errors) == 1
        assert result.errors[0].suggested_range is None

    def test_empty_parent_imposes_no_constraint(self):
        assert validate_against_parent([day("friday", "00:00", "23:00")], []).is_valid


def test_suggest_ranges_covers_parent_open_days():
    assert suggest_ranges(PARENT) == {"sunday": TimeRange("09:00", "18:00")}
    assert suggest_ranges(PARENT, [day("monday", "09:00", "10:00")]) == {}


class FakeWorkingHoursService:

    def __init__(self, schedule):
        self.schedule = schedule
        self.calls = []

    def get_schedule(self, uow, entity_type, entity_id):
        self.calls.append((entity_type, entity_id))
        return self.schedule


class TestHierarchicalWorkingHoursValidator:

    @pytest.mark.asyncio
    async def test_fetches_stored_parent_schedule(self):
        working_hours = FakeWorkingHoursService(PARENT)
        validator = HierarchicalWorkingHoursValidator(working_hours)

        result = await validator.validate(
            [day("friday", "09:00", "17:00")], "complex", 7, child_label="Clinic A", uow=object()
        )

        assert working_hours.calls == [("complex", 7)]
        assert result.messages == ["Clinic A cannot be open on friday when complex is closed"]

    @pytest.mark.asyncio
    async def test_inline_parent_schedule_skips_lookup(self):
        working_hours = FakeWorkingHoursService([])
        validator = HierarchicalWorkingHoursValidator(working_hours)

        result = await validator.validate(
            [day("sunday", "09:00", "17:00")], "complex", 7, child_label="Clinic A", parent_schedule=PARENT
        )

        assert result.is_valid
        assert working_hours.calls == []
