"""
Unit tests for the greedy slot assignment engine
Covers the hard-constraint guarantees and the reference scenarios
"""
import unittest
from collections import Counter

from formatter import ScheduleFormatter
from models.scheduling_model import DAYS, FREE, UNASSIGNED
from services.availability_service import time_range_availability
from services.conflict_service import check_timetable_conflicts
from services.schedule_service import ScheduleService
from tests.factories import WEEK, make_request, scenario_a
from validator import RequestValidator


def run(raw, **kwargs):
    request = RequestValidator(raw).normalize()
    entries = ScheduleService(**kwargs).generate_schedule(request)
    return request, ScheduleFormatter(request.time_slots).assemble(entries)


class TestHardConstraints(unittest.TestCase):

    def setUp(self):
        self.request, self.timetable = run(make_request())

    def test_completeness(self):
        for day in DAYS:
            keys = Counter((e.time, e.class_name) for e in self.timetable.day(day))
            expected = {(s, c.name) for s in self.request.teaching_slots() for c in self.request.classes}
            self.assertEqual(set(keys), expected)
            self.assertTrue(all(count == 1 for count in keys.values()))

    def test_no_conflicts(self):
        self.assertEqual(check_timetable_conflicts(self.request, self.timetable), [])

    def test_no_teacher_or_room_double_booking(self):
        for day in DAYS:
            for slot in self.request.time_slots:
                entries = [e for e in self.timetable.day(day) if e.time == slot]
                teachers = [e.teacher for e in entries if e.teacher != UNASSIGNED]
                rooms = [e.room for e in entries if e.room != UNASSIGNED]
                self.assertEqual(len(teachers), len(set(teachers)))
                self.assertEqual(len(rooms), len(set(rooms)))

    def test_hour_caps(self):
        hours = Counter(e.teacher for _, entries in self.timetable.items() for e in entries)
        for teacher in self.request.teachers:
            self.assertLessEqual(hours[teacher.name], teacher.max_hours)

    def test_breaks_excluded(self):
        for _, entries in self.timetable.items():
            self.assertNotIn("12:00-13:00", [e.time for e in entries])

    def test_entries_ordered_by_slot(self):
        order = {slot: i for i, slot in enumerate(self.request.time_slots)}
        for _, entries in self.timetable.items():
            positions = [order[e.time] for e in entries]
            self.assertEqual(positions, sorted(positions))

    def test_first_fit_choice(self):
        first = self.timetable.Monday[0]
        self.assertEqual(
            (first.time, first.class_name, first.subject, first.teacher, first.room),
            ("09:00-10:00", "Class 6A", "Math", "Mr. Rao", "Room 101"),
        )
        second = self.timetable.Monday[1]
        # Ms. Iyer teaches English to 7B; the classroom is taken so 7B moves to the lab
        self.assertEqual(
            (second.class_name, second.subject, second.teacher, second.room),
            ("Class 7B", "English", "Ms. Iyer", "Lab 1"),
        )

    def test_deterministic(self):
        _, again = run(make_request())
        self.assertEqual(self.timetable.model_dump(), again.model_dump())


class TestScenarios(unittest.TestCase):

    def test_single_teacher_until_hours_run_out(self):
        _, timetable = run(scenario_a())

        filled = [(day, e.time) for day, entries in timetable.items() for e in entries if not e.is_free]
        self.assertEqual(filled, [
            ("Monday", "09:00-10:00"), ("Monday", "10:00-11:00"),
            ("Tuesday", "09:00-10:00"), ("Tuesday", "10:00-11:00"),
            ("Wednesday", "09:00-10:00"),
        ])
        for entry in timetable.Wednesday[1:] + timetable.Thursday + timetable.Friday:
            self.assertEqual((entry.subject, entry.teacher, entry.room), (FREE, UNASSIGNED, UNASSIGNED))
        self.assertEqual(timetable.Monday[0].teacher, "Mr. Rao")
        self.assertEqual(timetable.Monday[0].room, "Room 1")

    def test_class_larger_than_every_room(self):
        raw = scenario_a()
        raw["classDetails"] = [{"name": "Class 1", "students": 40}]
        _, timetable = run(raw)

        entries = [e for _, day in timetable.items() for e in day]
        self.assertEqual(len(entries), 10)
        self.assertTrue(all(e.is_free for e in entries))

    def test_lab_subject_without_lab_room(self):
        raw = scenario_a()
        raw["subjectsPerClass"] = {"Class 1": ["Science Lab"]}
        raw["faculty"][0]["subjects"] = ["Science Lab"]
        _, timetable = run(raw)

        self.assertTrue(all(e.is_free for _, day in timetable.items() for e in day))

    def test_lab_subject_falls_through_to_next_subject(self):
        raw = scenario_a()
        raw["subjectsPerClass"] = {"Class 1": ["Science Lab", "Math"]}
        raw["faculty"][0]["subjects"] = ["Science Lab", "Math"]
        _, timetable = run(raw)

        self.assertEqual(timetable.Monday[0].subject, "Math")

    def test_holiday(self):
        raw = make_request(holidays=["Monday"])
        _, timetable = run(raw)

        self.assertEqual(timetable.Monday, [])
        self.assertTrue(timetable.Tuesday)

    def test_abbreviated_holiday(self):
        raw = make_request(holidays=["Mon", "fri"])
        _, timetable = run(raw)

        self.assertEqual(timetable.Monday, [])
        self.assertEqual(timetable.Friday, [])
        self.assertTrue(timetable.Tuesday)


class TestEngineBehaviour(unittest.TestCase):

    def test_consecutive_lecture_cap(self):
        raw = scenario_a()
        raw["timeSlots"] = ["08:00-09:00", "09:00-10:00", "10:00-11:00", "11:00-12:00", "12:00-13:00"]
        raw["faculty"][0]["maxHours"] = 40
        _, timetable = run(raw)

        self.assertEqual(
            [e.subject for e in timetable.Monday],
            ["Math", "Math", "Math", FREE, "Math"],
        )

    def test_break_resets_consecutive_run(self):
        raw = scenario_a()
        raw["timeSlots"] = ["08:00-09:00", "09:00-10:00", "10:00-10:30", "10:30-11:30", "11:30-12:30"]
        raw["breaks"] = ["10:00-10:30"]
        raw["faculty"][0]["maxHours"] = 40
        _, timetable = run(raw)

        self.assertEqual([e.subject for e in timetable.Monday], ["Math"] * 4)

    def test_custom_consecutive_cap(self):
        raw = scenario_a()
        raw["faculty"][0]["maxHours"] = 40
        _, timetable = run(raw, max_consecutive=1)

        self.assertEqual([e.subject for e in timetable.Monday], ["Math", FREE])

    def test_teacher_never_in_two_classes_at_once(self):
        raw = scenario_a()
        raw["subjectsPerClass"] = {"Class 1": ["Math"], "Class 2": ["Math"]}
        raw["classDetails"] = [{"name": "Class 1", "students": 20}, {"name": "Class 2", "students": 20}]
        raw["rooms"].append({"name": "Room 2", "type": "theory", "capacity": 30})
        raw["faculty"][0]["maxHours"] = 40
        _, timetable = run(raw)

        self.assertEqual([e.class_name for e in timetable.Monday if not e.is_free], ["Class 1", "Class 1"])

    def test_room_never_shared(self):
        raw = scenario_a()
        raw["subjectsPerClass"] = {"Class 1": ["Math"], "Class 2": ["Math"]}
        raw["classDetails"] = [{"name": "Class 1", "students": 20}, {"name": "Class 2", "students": 20}]
        raw["faculty"].append({"name": "Ms. Das", "subjects": ["Math"], "availability": WEEK, "maxHours": 40})
        raw["faculty"][0]["maxHours"] = 40
        _, timetable = run(raw)

        first_slot = [e for e in timetable.Monday if e.time == "09:00-10:00"]
        self.assertEqual([(e.class_name, e.room) for e in first_slot], [("Class 1", "Room 1"), ("Class 2", "-")])

    def test_availability_days(self):
        raw = scenario_a()
        raw["faculty"][0]["availability"] = "Tue, Thu"
        raw["faculty"][0]["maxHours"] = 40
        _, timetable = run(raw)

        busy_days = [day for day, entries in timetable.items() if any(not e.is_free for e in entries)]
        self.assertEqual(busy_days, ["Tuesday", "Thursday"])

    def test_pluggable_availability_policy(self):
        raw = scenario_a()
        raw["faculty"][0]["availability"] = "Mon-Fri 09:00-10:00"
        raw["faculty"][0]["maxHours"] = 40
        _, timetable = run(raw, availability_policy=time_range_availability)

        self.assertEqual([e.subject for e in timetable.Wednesday], ["Math", FREE])

    def test_empty_rosters_give_free_timetable(self):
        raw = scenario_a()
        raw["faculty"] = []
        raw["rooms"] = []
        _, timetable = run(raw)

        entries = [e for _, day in timetable.items() for e in day]
        self.assertEqual(len(entries), 10)
        self.assertTrue(all(e.is_free for e in entries))

    def test_no_classes(self):
        raw = make_request(classDetails=[], subjectsPerClass={})
        _, timetable = run(raw)
        self.assertTrue(all(entries == [] for _, entries in timetable.items()))

    def test_runs_are_independent(self):
        service = ScheduleService()
        request = RequestValidator(scenario_a()).normalize()
        first = service.generate_schedule(request)
        second = service.generate_schedule(request)
        self.assertEqual(first, second)


if __name__ == "__main__":
    unittest.main()
