import logging
from typing import Dict, List

from models.scheduling_model import (
    ClassGroup, NormalizedRequest, ScheduleEntry,
)
from services.availability_service import (
    AvailabilityIndex, AvailabilityPolicy, day_token_availability,
)

logger = logging.getLogger(__name__)


class SchedulingState:
    """Mutable bookkeeping for one generation run. Discarded afterwards."""

    def __init__(self, request: NormalizedRequest, policy: AvailabilityPolicy):
        self.index = AvailabilityIndex(request.teachers, request.rooms, policy)
        self.entries: Dict[str, List[ScheduleEntry]] = {day: [] for day in request.working_days()}
        self.filled = set()  # (day, slot, class)
        self.streaks: Dict[str, int] = {c.name: 0 for c in request.classes}

    def reset_streaks(self):
        for name in self.streaks:
            self.streaks[name] = 0

    def is_filled(self, day: str, slot: str, class_name: str) -> bool:
        return (day, slot, class_name) in self.filled

    def add(self, day: str, entry: ScheduleEntry):
        self.entries[day].append(entry)
        self.filled.add((day, entry.time, entry.class_name))


class ScheduleService:
    def __init__(self, availability_policy: AvailabilityPolicy = day_token_availability, max_consecutive: int = 3):
        self.availability_policy = availability_policy
        self.max_consecutive = max_consecutive

    def generate_schedule(self, request: NormalizedRequest) -> Dict[str, List[ScheduleEntry]]:
        """
        Greedy first-fit: walk days x slots x classes and give each class the
        first subject that has a free, available teacher and a fitting free room.
        Classes that cannot be placed get a Free period.
        """
        state = SchedulingState(request, self.availability_policy)

        for day in request.working_days():
            state.reset_streaks()
            for slot in request.time_slots:
                if slot in request.breaks:
                    # a break interrupts every run of consecutive lectures
                    state.reset_streaks()
                    continue
                for class_group in request.classes:
                    self._assign(state, day, slot, class_group)

        assigned = sum(1 for day in state.entries.values() for e in day if not e.is_free)
        total = sum(len(day) for day in state.entries.values())
        logger.info("Greedy schedule filled %d of %d class slots", assigned, total)
        return state.entries

    def _assign(self, state: SchedulingState, day: str, slot: str, class_group: ClassGroup):
        name = class_group.name
        if state.is_filled(day, slot, name):
            return

        if state.streaks[name] < self.max_consecutive:
            for subject in class_group.subjects:
                teacher = state.index.find_teacher(subject, day, slot)
                if teacher is None:
                    continue
                room = state.index.find_room(class_group, subject, day, slot)
                if room is None:
                    continue

                state.add(day, ScheduleEntry(
                    time=slot, class_name=name, subject=subject.name,
                    teacher=teacher.name, room=room.name,
                ))
                state.index.commit(day, slot, teacher, room)
                state.streaks[name] += 1
                return

        state.add(day, ScheduleEntry.free(slot, name))
        state.streaks[name] = 0
