import logging
import warnings
from typing import Any, Dict, Optional, Tuple, Union

import pydantic
import requests

from config import Settings, get_settings
from errors import EmptyRosterWarning, SolverError
from formatter import ScheduleFormatter
from models.scheduling_model import (
    NormalizedRequest, TimetableRequest, TimetableResponse, WeeklyTimetable,
)
from services.availability_service import AvailabilityPolicy, get_availability_policy
from services.conflict_service import check_timetable_conflicts
from services.schedule_service import ScheduleService
from solver import ScheduleSolver
from utils.api_client import RemoteTimetableClient
from validator import RequestValidator

logger = logging.getLogger(__name__)

STRATEGIES = ("greedy", "cpsat")


class TimetableService:
    """Runs a generation request end to end, online first when a remote generator is configured."""

    def __init__(self, settings: Optional[Settings] = None,
                 client: Optional[RemoteTimetableClient] = None,
                 availability_policy: Optional[AvailabilityPolicy] = None):
        self.settings = settings or get_settings()
        if client is None and self.settings.remote_url:
            client = RemoteTimetableClient(
                self.settings.remote_url,
                timeout=self.settings.remote_timeout,
                ping_url=self.settings.ping_url,
                ping_timeout=self.settings.ping_timeout,
            )
        self.client = client
        self.availability_policy = availability_policy or get_availability_policy(self.settings.availability_mode)

    def normalize(self, raw: Union[TimetableRequest, Dict[str, Any]]) -> NormalizedRequest:
        validator = RequestValidator(raw, max_roster_size=self.settings.max_roster_size)
        request = validator.normalize()
        for message in validator.check_rosters(request):
            logger.warning(message)
            warnings.warn(message, EmptyRosterWarning, stacklevel=2)
        return request

    def generate_offline(self, raw: Union[TimetableRequest, Dict[str, Any]],
                         strategy: Optional[str] = None) -> WeeklyTimetable:
        strategy = strategy or self.settings.strategy
        if strategy not in STRATEGIES:
            raise ValueError(f"Unknown strategy '{strategy}'. Expected one of {STRATEGIES}.")

        return self._schedule(self.normalize(raw), strategy)

    def _schedule(self, request: NormalizedRequest, strategy: str) -> WeeklyTimetable:
        logger.info(
            "Generating offline timetable (%s): %d classes, %d teachers, %d rooms, %d slots",
            strategy, len(request.classes), len(request.teachers), len(request.rooms), len(request.time_slots),
        )

        entries = None
        if strategy == "cpsat":
            solver = ScheduleSolver(
                request,
                availability_policy=self.availability_policy,
                time_limit=self.settings.solver_time_limit,
                max_consecutive=self.settings.max_consecutive,
            )
            try:
                entries = solver.solve()
            except SolverError as exc:
                logger.warning("%s Falling back to greedy scheduling.", exc)

        if entries is None:
            service = ScheduleService(self.availability_policy, max_consecutive=self.settings.max_consecutive)
            entries = service.generate_schedule(request)

        return ScheduleFormatter(request.time_slots).assemble(entries)

    def generate(self, raw: Union[TimetableRequest, Dict[str, Any]],
                 prefer_remote: bool = True) -> Tuple[WeeklyTimetable, str]:
        """Return (timetable, source) where source is "remote" or "offline"."""
        request = self.normalize(raw)
        if prefer_remote and self.client is not None:
            timetable = self._generate_remote(raw, request)
            if timetable is not None:
                return timetable, "remote"
        return self._schedule(request, self.settings.strategy), "offline"

    def _generate_remote(self, raw, request: NormalizedRequest) -> Optional[WeeklyTimetable]:
        if not self.client.is_online():
            logger.info("Network unavailable, using offline generator")
            return None

        if isinstance(raw, TimetableRequest):
            payload = raw.model_dump(by_alias=True, exclude_none=True)
        else:
            payload = raw

        try:
            response = TimetableResponse.model_validate(self.client.generate(payload))
        except requests.RequestException as exc:
            logger.warning("Remote generator failed: %s", exc)
            return None
        except (pydantic.ValidationError, ValueError) as exc:
            logger.warning("Remote generator returned an invalid timetable: %s", exc)
            return None

        formatter = ScheduleFormatter(request.time_slots)
        timetable = formatter.assemble(dict(response.timetable.items()))
        conflicts = check_timetable_conflicts(request, timetable)
        if conflicts:
            logger.warning("Remote timetable has %d hard-constraint conflicts, e.g. %s",
                           len(conflicts), conflicts[0].message)
            return None
        return timetable
