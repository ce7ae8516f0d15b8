from typing import Dict, List

from models.scheduling_model import DAYS, ScheduleEntry, WeeklyTimetable


class ScheduleFormatter:
    """Handles transforming engine output into the weekly JSON or a printable view."""

    def __init__(self, time_slots: List[str]):
        self.slot_order = {slot: i for i, slot in enumerate(time_slots)}

    def assemble(self, entries_by_day: Dict[str, List[ScheduleEntry]]) -> WeeklyTimetable:
        # Stable sort keeps class order within a slot; unknown slots go last
        last = len(self.slot_order)
        days = {}
        for day in DAYS:
            entries = entries_by_day.get(day, [])
            days[day] = sorted(entries, key=lambda e: self.slot_order.get(e.time, last))
        return WeeklyTimetable(**days)

    @staticmethod
    def to_json(timetable: WeeklyTimetable) -> dict:
        return {"timetable": timetable.model_dump(by_alias=True)}

    @staticmethod
    def to_text(timetable: WeeklyTimetable) -> str:
        lines = ["WEEKLY TIMETABLE (Monday - Friday):", ""]
        for day, entries in timetable.items():
            lines.append(day)
            if not entries:
                lines.append("  (no classes)")
            for e in entries:
                if e.is_free:
                    lines.append(f"  {e.time}, {e.class_name}: Free")
                else:
                    lines.append(f"  {e.time}, {e.class_name}: {e.subject}, {e.room}, Teacher: {e.teacher}")
            lines.append("")
        return "\n".join(lines)
