import logging
import re
from collections import defaultdict
from datetime import datetime
from typing import Callable, Dict, List, Optional, Set, Tuple

from models.scheduling_model import DAYS, ClassGroup, Room, Subject, Teacher

logger = logging.getLogger(__name__)

# (teacher, day, slot) -> bool
AvailabilityPolicy = Callable[[Teacher, str, Optional[str]], bool]


def day_token_availability(teacher: Teacher, day: str, slot: Optional[str] = None) -> bool:
    """Day-name substring match ('mon' or 'monday'). Time ranges are not enforced."""
    availability = teacher.availability.lower()
    return day[:3].lower() in availability or day.lower() in availability


def parse_time(t: str) -> datetime:
    """Parse time in either HH:MM or HH:MM:SS format."""
    try:
        return datetime.strptime(t, "%H:%M:%S")
    except ValueError:
        return datetime.strptime(t, "%H:%M")


def parse_interval(token: str) -> Optional[Tuple[datetime, datetime]]:
    parts = [p.strip() for p in token.split("-")]
    if len(parts) != 2:
        return None
    try:
        return parse_time(parts[0]), parse_time(parts[1])
    except ValueError:
        return None


_DAY_WORD = r"(mon|tue|wed|thu|fri|sat|sun)[a-z]*"
_DAY_RANGE = re.compile(_DAY_WORD + r"\s*(?:-|to|–)\s*" + _DAY_WORD)
_SINGLE_DAY = re.compile(r"\b" + _DAY_WORD)
_TIME_RANGE = re.compile(r"(\d{1,2}:\d{2}(?::\d{2})?)\s*(?:-|to|–)\s*(\d{1,2}:\d{2}(?::\d{2})?)")
_ALL_DAYS = re.compile(r"\b(daily|weekdays|all|any|every\s*day|everyday)\b")
_ABBREVIATIONS = [d[:3].lower() for d in DAYS]
_WEEK = _ABBREVIATIONS + ["sat", "sun"]


def _clause_days(clause: str) -> Set[str]:
    days = set()
    if _ALL_DAYS.search(clause):
        days.update(DAYS)
    for start, end in _DAY_RANGE.findall(clause):
        lo, hi = _WEEK.index(start), _WEEK.index(end)
        # weekend ends are clipped to Friday
        days.update(DAYS[lo:hi + 1])
    for token in _SINGLE_DAY.findall(_DAY_RANGE.sub(" ", clause)):
        if token in _ABBREVIATIONS:
            days.add(DAYS[_ABBREVIATIONS.index(token)])
    return days


def time_range_availability(teacher: Teacher, day: str, slot: Optional[str] = None) -> bool:
    """Stricter reading of the availability text.

    Clauses are separated by ';' or newlines, e.g. "Mon-Wed 09:00-13:00; Fri".
    A clause covers a day when it names it (singly, as a range, or with
    'daily'/'weekdays'); a clause with time windows but no days covers every
    weekday. When a clause lists windows, the slot must sit inside one of them.
    """
    interval = parse_interval(slot) if slot else None
    for clause in re.split(r"[;\n]", teacher.availability.lower()):
        days = _clause_days(clause)
        windows = []
        for start, end in _TIME_RANGE.findall(clause):
            try:
                windows.append((parse_time(start), parse_time(end)))
            except ValueError:
                logger.debug("Ignoring time window %s-%s for %s", start, end, teacher.name)
        if not days and not windows:
            continue
        if days and day not in days:
            continue
        if not windows or interval is None:
            return True
        if any(w_start <= interval[0] and interval[1] <= w_end for w_start, w_end in windows):
            return True
    return False


AVAILABILITY_POLICIES: Dict[str, AvailabilityPolicy] = {
    "day_token": day_token_availability,
    "strict": time_range_availability,
}


def get_availability_policy(mode: str) -> AvailabilityPolicy:
    try:
        return AVAILABILITY_POLICIES[mode]
    except KeyError:
        raise ValueError(f"Unknown availability mode '{mode}'. Expected one of {sorted(AVAILABILITY_POLICIES)}.")


class AvailabilityIndex:
    """Per-run record of who is free and how many hours each teacher has left."""

    def __init__(self, teachers: List[Teacher], rooms: List[Room], policy: AvailabilityPolicy = day_token_availability):
        self.teachers = teachers
        self.rooms = rooms
        self.policy = policy
        self.hours: Dict[str, int] = {t.name: 0 for t in teachers}
        self.busy_teachers: Dict[Tuple[str, str], Set[str]] = defaultdict(set)
        self.busy_rooms: Dict[Tuple[str, str], Set[str]] = defaultdict(set)

    def is_available(self, teacher: Teacher, day: str, slot: Optional[str] = None) -> bool:
        return self.policy(teacher, day, slot)

    def hours_assigned(self, teacher: Teacher) -> int:
        return self.hours.get(teacher.name, 0)

    def has_hours_left(self, teacher: Teacher) -> bool:
        return self.hours_assigned(teacher) < teacher.max_hours

    def is_teacher_free(self, teacher: Teacher, day: str, slot: str) -> bool:
        return teacher.name not in self.busy_teachers[(day, slot)]

    def is_room_free(self, room: Room, day: str, slot: str) -> bool:
        return room.name not in self.busy_rooms[(day, slot)]

    def find_teacher(self, subject: Subject, day: str, slot: str) -> Optional[Teacher]:
        for teacher in self.teachers:
            if (
                subject.name in teacher.subjects
                and self.is_available(teacher, day, slot)
                and self.has_hours_left(teacher)
                and self.is_teacher_free(teacher, day, slot)
            ):
                return teacher
        return None

    def find_room(self, class_group: ClassGroup, subject: Subject, day: str, slot: str) -> Optional[Room]:
        for room in self.rooms:
            if room.capacity < class_group.students:
                continue
            if subject.is_lab and room.room_type != "lab":
                continue
            if self.is_room_free(room, day, slot):
                return room
        return None

    def commit(self, day: str, slot: str, teacher: Teacher, room: Room):
        self.hours[teacher.name] = self.hours.get(teacher.name, 0) + 1
        self.busy_teachers[(day, slot)].add(teacher.name)
        self.busy_rooms[(day, slot)].add(room.name)
