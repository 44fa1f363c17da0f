"""
Working-hours validation.

A schedule is a list of day entries (mappings, pydantic models or
``WorkingHours`` rows). ``validate_schedule`` checks one schedule on its own;
``validate_against_parent`` checks that a child entity is only open while its
parent is, reporting every violation rather than stopping at the first.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from clinichub.services.base import BaseService

DAYS_OF_WEEK = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

TIME_PATTERN = re.compile(r"^([01]?[0-9]|2[0-3]):([0-5][0-9])$")


@dataclass(frozen=True)
class TimeRange:
    opening_time: str
    closing_time: str

    def to_dict(self) -> Dict[str, str]:
        return {"opening_time": self.opening_time, "closing_time": self.closing_time}


@dataclass(frozen=True)
class ScheduleViolation:
    day_of_week: str
    message: str
    suggested_range: Optional[TimeRange] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"day_of_week": self.day_of_week, "message": self.message}
        if self.suggested_range is not None:
            data["suggested_range"] = self.suggested_range.to_dict()
        return data


@dataclass
class WorkingHoursValidation:
    is_valid: bool
    errors: List[ScheduleViolation] = field(default_factory=list)

    @property
    def messages(self) -> List[str]:
        return [error.message for error in self.errors]


def parse_time(value: Any) -> Optional[int]:
    """Minutes since midnight for an ``HH:MM`` string, None if malformed."""
    if not isinstance(value, str):
        return None
    match = TIME_PATTERN.match(value.strip())
    if not match:
        return None
    return int(match.group(1)) * 60 + int(match.group(2))


def format_time(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def _read(entry: Any, key: str) -> Any:
    if isinstance(entry, Mapping):
        return entry.get(key)
    return getattr(entry, key, None)


def _day(entry: Any) -> str:
    return str(_read(entry, "day_of_week") or "").strip().lower()


def _is_open(entry: Any) -> bool:
    return bool(_read(entry, "is_working_day"))


def _interval(entry: Any) -> Optional[Tuple[int, int]]:
    opening = parse_time(_read(entry, "opening_time"))
    closing = parse_time(_read(entry, "closing_time"))
    if opening is None or closing is None:
        return None
    return opening, closing


def _day_violations(entry: Any, day: str) -> List[str]:
    if not _is_open(entry):
        return []

    opening_time = _read(entry, "opening_time")
    closing_time = _read(entry, "closing_time")
    if not opening_time or not closing_time:
        return [f"Opening and closing times are required for working day: {day}"]

    errors = []
    opening = parse_time(opening_time)
    closing = parse_time(closing_time)
    if opening is None:
        errors.append(f"Invalid opening time format for {day}: {opening_time}")
    if closing is None:
        errors.append(f"Invalid closing time format for {day}: {closing_time}")
    if errors:
        return errors
    if closing <= opening:
        return [f"Closing time ({closing_time}) must be after opening time ({opening_time}) on {day}"]

    break_start_time = _read(entry, "break_start_time")
    break_end_time = _read(entry, "break_end_time")
    if not break_start_time and not break_end_time:
        return []
    if not break_start_time or not break_end_time:
        return [f"Break start and end times are both required on {day}"]

    break_start = parse_time(break_start_time)
    break_end = parse_time(break_end_time)
    if break_start is None or break_end is None:
        return [f"Invalid break time format for {day}: {break_start_time}-{break_end_time}"]
    if break_end <= break_start:
        return [f"Break end time must be after break start time on {day}"]
    if break_start < opening or break_end > closing:
        return [f"Break time on {day} must be within working hours ({opening_time}-{closing_time})"]
    return []


def validate_schedule(schedule: Iterable[Any]) -> List[ScheduleViolation]:
    """Format checks for a single schedule."""
    violations = []
    seen = set()
    for entry in schedule or ():
        day = _day(entry)
        if day not in DAYS_OF_WEEK:
            violations.append(ScheduleViolation(day, f"Invalid day: {_read(entry, 'day_of_week')}"))
            continue
        if day in seen:
            violations.append(ScheduleViolation(day, f"Duplicate day: {day}"))
            continue
        seen.add(day)
        violations.extend(ScheduleViolation(day, message) for message in _day_violations(entry, day))
    return violations


def _by_day(schedule: Iterable[Any]) -> Dict[str, Any]:
    days = {}
    for entry in schedule or ():
        days.setdefault(_day(entry), entry)
    return days


def validate_against_parent(
    child_schedule: Iterable[Any],
    parent_schedule: Iterable[Any],
    child_label: str = "child",
    parent_label: str = "parent",
) -> WorkingHoursValidation:
    """
    Check the child schedule on its own and nested inside the parent's.

    Days whose own format is broken are only reported once. An empty parent
    schedule imposes no hierarchical constraint.
    """
    child_schedule = list(child_schedule or ())
    parent_days = _by_day(parent_schedule)

    violations = validate_schedule(child_schedule)
    broken_days = {violation.day_of_week for violation in violations}

    if parent_days:
        for day, entry in _by_day(child_schedule).items():
            if day in broken_days or day not in DAYS_OF_WEEK or not _is_open(entry):
                continue

            parent_entry = parent_days.get(day)
            if parent_entry is None or not _is_open(parent_entry):
                violations.append(ScheduleViolation(
                    day, f"{child_label} cannot be open on {day} when {parent_label} is closed"
                ))
                continue

            parent_interval = _interval(parent_entry)
            if parent_interval is None:
                continue
            opening, closing = _interval(entry)
            parent_opening, parent_closing = parent_interval
            if opening < parent_opening or closing > parent_closing:
                suggested = TimeRange(format_time(parent_opening), format_time(parent_closing))
                violations.append(ScheduleViolation(
                    day,
                    f"{child_label} working hours on {day} ({format_time(opening)}-{format_time(closing)}) "
                    f"must be within {parent_label} working hours "
                    f"({suggested.opening_time}-{suggested.closing_time})",
                    suggested_range=suggested,
                ))

    return WorkingHoursValidation(is_valid=not violations, errors=violations)


def suggest_ranges(parent_schedule: Iterable[Any], child_schedule: Iterable[Any] = ()) -> Dict[str, TimeRange]:
    """
    Suggested child interval per day: the parent's interval on its open days.

    When ``child_schedule`` is given, only the days it lists are returned.
    """
    wanted = set(_by_day(child_schedule)) if child_schedule else None
    suggestions = {}
    for day, entry in _by_day(parent_schedule).items():
        if wanted is not None and day not in wanted:
            continue
        interval = _interval(entry) if _is_open(entry) else None
        if interval is not None:
            suggestions[day] = TimeRange(format_time(interval[0]), format_time(interval[1]))
    return suggestions


class HierarchicalWorkingHoursValidator(BaseService):
    """Validates a child schedule against its parent's stored schedule."""

    def __init__(self, working_hours_service=None):
        super().__init__("HierarchicalWorkingHoursValidator")
        self._working_hours_service = working_hours_service

    async def validate(
        self,
        child_schedule: Iterable[Any],
        parent_type: Optional[str],
        parent_id: Optional[int],
        child_label: str,
        uow=None,
        parent_schedule: Optional[Iterable[Any]] = None,
        parent_label: Optional[str] = None,
    ) -> WorkingHoursValidation:
        """
        Validate ``child_schedule``; the parent schedule is fetched through the
        working-hours collaborator unless ``parent_schedule`` is supplied.
        """
        if parent_schedule is None and parent_type and parent_id is not None:
            if self._working_hours_service is None or uow is None:
                raise ValueError("A working-hours service and unit of work are required to fetch a parent schedule")
            parent_schedule = self._working_hours_service.get_schedule(uow, parent_type, parent_id)

        validation = validate_against_parent(
            child_schedule,
            parent_schedule or (),
            child_label=child_label,
            parent_label=parent_label or parent_type or "parent",
        )
        if not validation.is_valid:
            self.logger.info(
                f"Schedule of {child_label} rejected against {parent_type}:{parent_id}: "
                f"{len(validation.errors)} violation(s)"
            )
        return validation
