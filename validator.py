import logging
from collections import defaultdict
from typing import Any, Dict, List, Optional, Union

import pydantic

from errors import ValidationError
from models.scheduling_model import (
    DAYS, ClassGroup, NormalizedRequest, Subject, TimetableRequest,
)

logger = logging.getLogger(__name__)

WEEKEND = ("Saturday", "Sunday")


class RequestValidator:
    """Handles all pre-checks before scheduling a timetable."""

    def __init__(self, request: Union[TimetableRequest, Dict[str, Any]], max_roster_size: Optional[int] = None):
        self.request = request
        self.max_roster_size = max_roster_size

    def normalize(self) -> NormalizedRequest:
        request = self._parse()

        self._check_unique("classDetails", [c.name for c in request.class_details])
        self._check_unique("faculty", [t.name for t in request.faculty])
        self._check_unique("rooms", [r.name for r in request.rooms])
        self._check_unique("timeSlots", request.time_slots)

        if self.max_roster_size:
            for field, roster in (
                ("classDetails", request.class_details),
                ("faculty", request.faculty),
                ("rooms", request.rooms),
                ("timeSlots", request.time_slots),
            ):
                if len(roster) > self.max_roster_size:
                    raise ValidationError(
                        field, f"{len(roster)} entries exceed the limit of {self.max_roster_size}"
                    )

        classes = []
        for detail in request.class_details:
            if detail.name not in request.subjects_per_class:
                raise ValidationError("subjectsPerClass", f"no subjects listed for class '{detail.name}'")
            subjects = [
                s if isinstance(s, Subject) else Subject(name=s)
                for s in request.subjects_per_class[detail.name]
            ]
            classes.append(ClassGroup(name=detail.name, students=detail.students, subjects=subjects))

        known = {c.name for c in request.class_details}
        for name in request.subjects_per_class:
            if name not in known:
                logger.info("Ignoring subjects for unknown class %s", name)

        return NormalizedRequest(
            classes=classes,
            teachers=request.faculty,
            rooms=request.rooms,
            time_slots=request.time_slots,
            breaks=request.breaks,
            holidays=self._normalize_holidays(request.holidays),
        )

    def check_rosters(self, normalized: NormalizedRequest) -> List[str]:
        """Warnings about rosters that cannot fill some slots. Never fatal."""
        warnings = []
        if not normalized.classes:
            warnings.append("No classes supplied; the timetable will be empty.")
        if not normalized.teachers:
            warnings.append("No faculty supplied; every slot will be Free.")
        if not normalized.rooms:
            warnings.append("No rooms supplied; every slot will be Free.")

        teacher_map = defaultdict(list)
        for t in normalized.teachers:
            for sub in t.subjects:
                teacher_map[sub].append(t.name)

        lab_capacity = max((r.capacity for r in normalized.rooms if r.room_type == "lab"), default=0)
        any_capacity = max((r.capacity for r in normalized.rooms), default=0)

        for c in normalized.classes:
            if normalized.rooms and c.students > any_capacity:
                warnings.append(f"Class {c.name} has {c.students} students but the largest room holds {any_capacity}.")
            for s in c.subjects:
                if not teacher_map.get(s.name):
                    warnings.append(f"No teacher can teach {s.name} for class {c.name}.")
                if s.is_lab and normalized.rooms and c.students > lab_capacity:
                    warnings.append(f"No lab room can hold class {c.name} for {s.name}.")

        return warnings

    def _parse(self) -> TimetableRequest:
        if isinstance(self.request, TimetableRequest):
            return self.request
        if not isinstance(self.request, dict):
            raise ValidationError("request", "must be a JSON object")
        try:
            return TimetableRequest.model_validate(self.request)
        except pydantic.ValidationError as exc:
            error = exc.errors()[0]
            loc = error.get("loc") or ("request",)
            field = str(loc[0])
            detail = ".".join(str(part) for part in loc[1:])
            message = error.get("msg", "is invalid")
            if detail:
                message = f"{detail}: {message}"
            raise ValidationError(field, message) from exc

    @staticmethod
    def _check_unique(field: str, names: List[str]):
        seen = set()
        for name in names:
            if name in seen:
                raise ValidationError(field, f"duplicate entry '{name}'")
            seen.add(name)

    @staticmethod
    def _normalize_holidays(holidays: List[str]) -> List[str]:
        """Map weekday names and three-letter abbreviations onto ``DAYS``.

        Weekend days are dropped since the week never schedules them; any
        other token is rejected.
        """
        by_token = {}
        for day in DAYS + WEEKEND:
            by_token[day.lower()] = day
            by_token[day[:3].lower()] = day
        result = []
        for token in holidays:
            day = by_token.get(token.strip().lower())
            if day is None:
                raise ValidationError("holidays", f"unknown day '{token}'")
            if day in WEEKEND:
                logger.debug("Ignoring weekend holiday %r", token)
            elif day not in result:
                result.append(day)
        return result
