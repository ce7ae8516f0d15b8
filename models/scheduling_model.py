import json
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Any, Dict, List, Literal, Optional, Union

DAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday")
FREE = "Free"
UNASSIGNED = "-"


def _decode_json(value: Any) -> Any:
    # The UI and the network-backed generator send structured fields as JSON strings
    if isinstance(value, str):
        try:
            return json.loads(value)
        except ValueError:
            raise ValueError("is not valid JSON")
    return value


class Subject(BaseModel):
    name: str
    lab: Optional[bool] = None

    @property
    def is_lab(self) -> bool:
        if self.lab is not None:
            return self.lab
        return "lab" in self.name.lower()


class ClassDetail(BaseModel):
    name: str
    students: int = Field(gt=0)


class ClassGroup(BaseModel):
    name: str
    students: int
    subjects: List[Subject] = []


class Teacher(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    subjects: List[str]
    availability: str
    max_hours: int = Field(alias="maxHours", ge=0)


class Room(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    room_type: Literal["theory", "lab"] = Field(alias="type")
    capacity: int = Field(gt=0)

    @field_validator("room_type", mode="before")
    @classmethod
    def _lower_type(cls, value):
        return value.strip().lower() if isinstance(value, str) else value


class TimetableRequest(BaseModel):
    """Raw generation request, as posted by the timetable form."""

    model_config = ConfigDict(populate_by_name=True)

    time_slots: List[str] = Field(alias="timeSlots")
    breaks: List[str] = []
    subjects_per_class: Dict[str, List[Union[str, Subject]]] = Field(alias="subjectsPerClass")
    class_details: List[ClassDetail] = Field(alias="classDetails")
    faculty: List[Teacher]
    rooms: List[Room]
    holidays: List[str] = []
    special_demands: Optional[str] = Field(default=None, alias="specialDemands")

    @field_validator(
        "time_slots", "breaks", "subjects_per_class", "class_details",
        "faculty", "rooms", "holidays", mode="before",
    )
    @classmethod
    def _decode(cls, value):
        return _decode_json(value)


class NormalizedRequest(BaseModel):
    classes: List[ClassGroup]
    teachers: List[Teacher]
    rooms: List[Room]
    time_slots: List[str]
    breaks: List[str] = []
    holidays: List[str] = []

    def teacher_by_name(self) -> Dict[str, Teacher]:
        return {t.name: t for t in self.teachers}

    def room_by_name(self) -> Dict[str, Room]:
        return {r.name: r for r in self.rooms}

    def class_by_name(self) -> Dict[str, ClassGroup]:
        return {c.name: c for c in self.classes}

    def working_days(self) -> List[str]:
        return [d for d in DAYS if d not in self.holidays]

    def teaching_slots(self) -> List[str]:
        return [s for s in self.time_slots if s not in self.breaks]


class ScheduleEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    time: str
    class_name: str = Field(alias="class")
    subject: str
    teacher: str
    room: str

    @classmethod
    def free(cls, time: str, class_name: str) -> "ScheduleEntry":
        return cls(time=time, class_name=class_name, subject=FREE, teacher=UNASSIGNED, room=UNASSIGNED)

    @property
    def is_free(self) -> bool:
        return self.subject == FREE


class WeeklyTimetable(BaseModel):
    Monday: List[ScheduleEntry] = []
    Tuesday: List[ScheduleEntry] = []
    Wednesday: List[ScheduleEntry] = []
    Thursday: List[ScheduleEntry] = []
    Friday: List[ScheduleEntry] = []

    def day(self, name: str) -> List[ScheduleEntry]:
        return getattr(self, name)

    def items(self):
        return [(d, self.day(d)) for d in DAYS]


class TimetableResponse(BaseModel):
    timetable: WeeklyTimetable


class Conflict(BaseModel):
    type: str
    day: Optional[str] = None
    time: Optional[str] = None
    message: str


class ConflictRequest(BaseModel):
    request: Dict[str, Any]
    timetable: WeeklyTimetable
