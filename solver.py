import logging
from collections import defaultdict
from typing import Dict, List

from ortools.sat.python import cp_model

from errors import SolverError
from models.scheduling_model import NormalizedRequest, ScheduleEntry
from services.availability_service import AvailabilityPolicy, day_token_availability
from services.schedule_service import ScheduleService

logger = logging.getLogger(__name__)


class ScheduleSolver:
    """Encapsulates the OR-Tools constraint model for one weekly timetable.

    Same hard constraints as the greedy engine, but every (day, slot) is
    decided jointly: the model maximizes filled class slots, then prefers
    subjects listed earlier for a class, then evens out teacher loads.

    The greedy timetable is computed first and used as a complete solution
    hint, so the search starts from a feasible point. If the search runs out
    of time before finding anything better, that greedy timetable is returned.
    """

    def __init__(self, request: NormalizedRequest,
                 availability_policy: AvailabilityPolicy = day_token_availability,
                 time_limit: float = 10, max_consecutive: int = 3):
        self.request = request
        self.availability_policy = availability_policy
        self.time_limit = time_limit
        self.max_consecutive = max_consecutive
        self.model = cp_model.CpModel()
        # (day, slot, class_idx, subject_idx, teacher_idx, room_idx) -> BoolVar
        self.assign_vars: Dict[tuple, cp_model.IntVar] = {}
        self.built = False
        self.seed: Dict[str, List[ScheduleEntry]] = {}

    def build_model(self):
        self.built = True
        request = self.request
        model = self.model
        teachers = request.teachers
        rooms = request.rooms

        by_class_slot = defaultdict(list)
        by_teacher_slot = defaultdict(list)
        by_room_slot = defaultdict(list)
        by_teacher = defaultdict(list)
        priority_terms = []

        # Weights: one filled slot outranks any subject preference, and one step
        # of subject preference outranks the largest possible load spread.
        priority_step = max((t.max_hours for t in teachers), default=0) + 1
        most_subjects = max((len(c.subjects) for c in request.classes), default=0)
        fill_weight = priority_step * (most_subjects + 1)

        for day in request.working_days():
            for slot in request.teaching_slots():
                available = [
                    t_i for t_i, t in enumerate(teachers)
                    if t.max_hours > 0 and self.availability_policy(t, day, slot)
                ]
                for c_i, class_group in enumerate(request.classes):
                    n_subjects = len(class_group.subjects)
                    for s_i, subject in enumerate(class_group.subjects):
                        eligible_rooms = [
                            r_i for r_i, r in enumerate(rooms)
                            if r.capacity >= class_group.students
                            and (not subject.is_lab or r.room_type == "lab")
                        ]
                        for t_i in available:
                            if subject.name not in teachers[t_i].subjects:
                                continue
                            for r_i in eligible_rooms:
                                key = (day, slot, c_i, s_i, t_i, r_i)
                                var = model.new_bool_var("x_%s_%s_c%d_s%d_t%d_r%d" % key)
                                self.assign_vars[key] = var
                                by_class_slot[(day, slot, c_i)].append(var)
                                by_teacher_slot[(day, slot, t_i)].append(var)
                                by_room_slot[(day, slot, r_i)].append(var)
                                by_teacher[t_i].append(var)
                                priority_terms.append(var * (fill_weight + priority_step * (n_subjects - s_i - 1)))

        # One lecture per class, per teacher and per room in a (day, slot)
        for group in (by_class_slot, by_teacher_slot, by_room_slot):
            for vars_ in group.values():
                model.add_at_most_one(vars_)

        # Weekly hour caps
        loads = []
        for t_i, teacher in enumerate(teachers):
            load = model.new_int_var(0, max(teacher.max_hours, 0), f"load_t{t_i}")
            model.add(load == sum(by_teacher[t_i]))
            loads.append(load)

        # Consecutive lecture cap inside each run of non-break slots
        window = self.max_consecutive + 1
        for day in request.working_days():
            for run in self._slot_runs():
                if len(run) < window:
                    continue
                for c_i in range(len(request.classes)):
                    for start in range(len(run) - window + 1):
                        terms = [
                            v for slot in run[start:start + window]
                            for v in by_class_slot.get((day, slot, c_i), [])
                        ]
                        if terms:
                            model.add(sum(terms) <= self.max_consecutive)

        logger.info("CP-SAT model built with %d assignment variables", len(self.assign_vars))
        load_hints = self._add_greedy_hint(loads)
        if not priority_terms:
            return

        objective = sum(priority_terms)
        if len(loads) > 1:
            upper = max(t.max_hours for t in teachers)
            max_load = model.new_int_var(0, upper, "max_load")
            min_load = model.new_int_var(0, upper, "min_load")
            model.add_max_equality(max_load, loads)
            model.add_min_equality(min_load, loads)
            model.add_hint(max_load, max(load_hints))
            model.add_hint(min_load, min(load_hints))
            objective = objective - (max_load - min_load)
        model.maximize(objective)

    def _add_greedy_hint(self, loads) -> List[int]:
        """Hint every variable with the greedy timetable, which meets all hard constraints.

        Returns the hinted weekly load of each teacher.
        """
        request = self.request
        self.seed = ScheduleService(self.availability_policy, self.max_consecutive).generate_schedule(request)

        class_idx = {c.name: i for i, c in enumerate(request.classes)}
        teacher_idx = {t.name: i for i, t in enumerate(request.teachers)}
        room_idx = {r.name: i for i, r in enumerate(request.rooms)}
        picked = set()
        for day, entries in self.seed.items():
            for entry in entries:
                if entry.is_free:
                    continue
                c_i = class_idx[entry.class_name]
                subjects = [s.name for s in request.classes[c_i].subjects]
                key = (day, entry.time, c_i, subjects.index(entry.subject),
                       teacher_idx[entry.teacher], room_idx[entry.room])
                if key in self.assign_vars:
                    picked.add(key)
                else:
                    logger.warning("Greedy assignment %s has no CP-SAT variable", key)

        hours = [0] * len(request.teachers)
        for key, var in self.assign_vars.items():
            chosen = 1 if key in picked else 0
            self.model.add_hint(var, chosen)
            hours[key[4]] += chosen
        for t_i, load in enumerate(loads):
            self.model.add_hint(load, hours[t_i])
        return hours

    def _slot_runs(self) -> List[List[str]]:
        runs, current = [], []
        for slot in self.request.time_slots:
            if slot in self.request.breaks:
                if current:
                    runs.append(current)
                current = []
            else:
                current.append(slot)
        if current:
            runs.append(current)
        return runs

    def solve(self) -> Dict[str, List[ScheduleEntry]]:
        if not self.built:
            self.build_model()

        solver = cp_model.CpSolver()
        # Deterministic time keeps the result independent of machine load
        solver.parameters.max_deterministic_time = self.time_limit
        solver.parameters.num_search_workers = 1
        solver.parameters.random_seed = 42

        status = solver.solve(self.model)
        if status == cp_model.UNKNOWN and self.seed:
            logger.warning("CP-SAT found no solution within %ss of deterministic time, keeping the greedy timetable",
                           self.time_limit)
            return self.seed
        if status not in (cp_model.OPTIMAL, cp_model.FEASIBLE):
            raise SolverError(f"No feasible timetable found. Status: {solver.status_name(status)}")

        chosen = {}
        for key, var in self.assign_vars.items():
            if solver.boolean_value(var):
                day, slot, c_i, s_i, t_i, r_i = key
                chosen[(day, slot, c_i)] = (s_i, t_i, r_i)

        request = self.request
        entries = {day: [] for day in request.working_days()}
        for day in request.working_days():
            for slot in request.teaching_slots():
                for c_i, class_group in enumerate(request.classes):
                    pick = chosen.get((day, slot, c_i))
                    if pick is None:
                        entries[day].append(ScheduleEntry.free(slot, class_group.name))
                        continue
                    s_i, t_i, r_i = pick
                    entries[day].append(ScheduleEntry(
                        time=slot,
                        class_name=class_group.name,
                        subject=class_group.subjects[s_i].name,
                        teacher=request.teachers[t_i].name,
                        room=request.rooms[r_i].name,
                    ))

        logger.info("CP-SAT finished with status %s, %d class slots filled",
                    solver.status_name(status), len(chosen))
        return entries
