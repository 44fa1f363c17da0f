"""
Pydantic schemas for working-hours validation.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from clinichub.schemas.onboarding import DaySchedule


class HierarchicalValidationRequest(BaseModel):
    """Child schedule plus either an inline parent schedule or a stored parent."""
    child_schedule: List[DaySchedule]
    parent_schedule: Optional[List[DaySchedule]] = None
    parent_type: Optional[str] = None
    parent_id: Optional[int] = None
    child_label: str = "child"
    parent_label: Optional[str] = None


class TimeRangeResponse(BaseModel):
    opening_time: str
    closing_time: str


class ScheduleViolationResponse(BaseModel):
    day_of_week: str
    message: str
    suggested_range: Optional[TimeRangeResponse] = None


class HierarchicalValidationResponse(BaseModel):
    is_valid: bool
    errors: List[ScheduleViolationResponse] = Field(default_factory=list)
    suggestions: Dict[str, TimeRangeResponse] = Field(default_factory=dict)
