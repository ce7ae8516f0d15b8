from collections import Counter, defaultdict
from typing import Dict, List

from models.scheduling_model import (
    DAYS, UNASSIGNED, Conflict, NormalizedRequest, WeeklyTimetable,
)


def check_timetable_conflicts(request: NormalizedRequest, timetable: WeeklyTimetable) -> List[Conflict]:
    """Check a weekly timetable, whoever produced it, against the hard constraints."""
    conflicts = []
    classes = request.class_by_name()
    teachers = request.teacher_by_name()
    rooms = request.room_by_name()
    teaching_slots = request.teaching_slots()
    hours = Counter()

    for day in DAYS:
        entries = timetable.day(day)

        if day in request.holidays:
            if entries:
                conflicts.append(Conflict(
                    type="holiday", day=day,
                    message=f"Holiday: {day} is a holiday but has {len(entries)} entries.",
                ))
            continue

        seen = Counter()
        teacher_slots: Dict[str, List[str]] = defaultdict(list)
        room_slots: Dict[str, List[str]] = defaultdict(list)

        for e in entries:
            seen[(e.time, e.class_name)] += 1

            if e.time in request.breaks:
                conflicts.append(Conflict(
                    type="break", day=day, time=e.time,
                    message=f"Break: {e.class_name} is scheduled during the break {e.time} on {day}.",
                ))
            if e.class_name not in classes:
                conflicts.append(Conflict(
                    type="unknown_class", day=day, time=e.time,
                    message=f"Unknown class {e.class_name} on {day} {e.time}.",
                ))
            if e.is_free:
                continue

            if e.teacher != UNASSIGNED:
                teacher_slots[e.time].append(e.teacher)
                hours[e.teacher] += 1
            if e.room != UNASSIGNED:
                room_slots[e.time].append(e.room)

            teacher = teachers.get(e.teacher)
            if teacher is None:
                conflicts.append(Conflict(
                    type="unknown_teacher", day=day, time=e.time,
                    message=f"Unknown teacher {e.teacher} for {e.class_name} on {day} {e.time}.",
                ))
            elif e.subject not in teacher.subjects:
                conflicts.append(Conflict(
                    type="subject", day=day, time=e.time,
                    message=f"Subject Conflict: {e.teacher} does not teach {e.subject}.",
                ))

            room = rooms.get(e.room)
            class_group = classes.get(e.class_name)
            if room is None:
                conflicts.append(Conflict(
                    type="unknown_room", day=day, time=e.time,
                    message=f"Unknown room {e.room} for {e.class_name} on {day} {e.time}.",
                ))
            elif class_group is not None:
                if room.capacity < class_group.students:
                    conflicts.append(Conflict(
                        type="capacity", day=day, time=e.time,
                        message=f"Capacity Conflict: room {room.name} holds {room.capacity} but "
                                f"{class_group.name} has {class_group.students} students.",
                    ))
                subject = next((s for s in class_group.subjects if s.name == e.subject), None)
                is_lab = subject.is_lab if subject is not None else "lab" in e.subject.lower()
                if is_lab and room.room_type != "lab":
                    conflicts.append(Conflict(
                        type="room_type", day=day, time=e.time,
                        message=f"Room Type Conflict: {e.subject} needs a lab but {room.name} is a {room.room_type} room.",
                    ))

        for slot, names in teacher_slots.items():
            for name, count in Counter(names).items():
                if count > 1:
                    conflicts.append(Conflict(
                        type="teacher", day=day, time=slot,
                        message=f"Teacher Conflict: {name} has {count} classes on {day} at {slot}.",
                    ))
        for slot, names in room_slots.items():
            for name, count in Counter(names).items():
                if count > 1:
                    conflicts.append(Conflict(
                        type="room", day=day, time=slot,
                        message=f"Room Conflict: the room {name} is already occupied on {day} {slot}.",
                    ))

        for slot in teaching_slots:
            for class_name in classes:
                count = seen[(slot, class_name)]
                if count == 0:
                    conflicts.append(Conflict(
                        type="missing_entry", day=day, time=slot,
                        message=f"Missing Entry: {class_name} has no entry on {day} at {slot}.",
                    ))
                elif count > 1:
                    conflicts.append(Conflict(
                        type="duplicate_entry", day=day, time=slot,
                        message=f"Duplicate Entry: {class_name} has {count} entries on {day} at {slot}.",
                    ))

    for name, count in hours.items():
        teacher = teachers.get(name)
        if teacher is not None and count > teacher.max_hours:
            conflicts.append(Conflict(
                type="max_hours",
                message=f"Workload Conflict: {name} teaches {count} hours but the weekly maximum is {teacher.max_hours}.",
            ))

    return conflicts
