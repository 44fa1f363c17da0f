"""
Working Hours Domain Service

Schedules are replaced wholesale: saving a schedule for an entity drops the
days it had before.
"""

from typing import Any, Iterable, List, Mapping

from clinichub.models.supporting import WorkingHours
from clinichub.services.base import BaseService

SCHEDULE_FIELDS = (
    "day_of_week", "is_working_day", "opening_time", "closing_time", "break_start_time", "break_end_time",
)


def _schedule_entry(entry: Any) -> dict:
    if not isinstance(entry, Mapping):
        entry = entry.model_dump() if hasattr(entry, "model_dump") else entry.to_schedule()
    data = {key: entry.get(key) for key in SCHEDULE_FIELDS}
    data["day_of_week"] = str(data["day_of_week"]).strip().lower()
    data["is_working_day"] = bool(data["is_working_day"])
    if not data["is_working_day"]:
        data.update(opening_time=None, closing_time=None, break_start_time=None, break_end_time=None)
    return data


class WorkingHoursService(BaseService):

    def __init__(self):
        super().__init__("WorkingHoursService")
        self.initialize()

    def get_schedule(self, uow, entity_type: str, entity_id: int) -> List[WorkingHours]:
        return (
            uow.session.query(WorkingHours)
            .filter(
                WorkingHours.entity_type == entity_type,
                WorkingHours.entity_id == entity_id,
                WorkingHours.is_active.is_(True),
            )
            .order_by(WorkingHours.id)
            .all()
        )

    def replace_schedule(self, uow, entity_type: str, entity_id: int, schedule: Iterable[Any]) -> List[WorkingHours]:
        (
            uow.session.query(WorkingHours)
            .filter(WorkingHours.entity_type == entity_type, WorkingHours.entity_id == entity_id)
            .delete()
        )
        rows = [
            WorkingHours(entity_type=entity_type, entity_id=entity_id, **_schedule_entry(entry))
            for entry in schedule
        ]
        for row in rows:
            uow.add(row)
        uow.flush()
        self.logger.info(f"Saved {len(rows)} working day(s) for {entity_type} {entity_id}")
        return rows
