import os
import unittest
from unittest import mock

import pydantic

from config import Settings


class TestSettings(unittest.TestCase):

    @mock.patch.dict(os.environ, {"TIMETABLE_STRATEGY": "cpsat", "AVAILABILITY_MODE": "strict"})
    def test_from_env(self):
        settings = Settings.from_env()
        self.assertEqual(settings.strategy, "cpsat")
        self.assertEqual(settings.availability_mode, "strict")

    @mock.patch.dict(os.environ, {"TIMETABLE_STRATEGY": "genetic"})
    def test_unknown_strategy_fails_at_startup(self):
        with self.assertRaises(pydantic.ValidationError) as ctx:
            Settings.from_env()
        self.assertEqual(ctx.exception.errors()[0]["loc"], ("strategy",))

    @mock.patch.dict(os.environ, {"AVAILABILITY_MODE": "fuzzy"})
    def test_unknown_availability_mode_fails_at_startup(self):
        with self.assertRaises(pydantic.ValidationError) as ctx:
            Settings.from_env()
        self.assertEqual(ctx.exception.errors()[0]["loc"], ("availability_mode",))

    def test_defaults(self):
        settings = Settings()
        self.assertEqual(settings.strategy, "greedy")
        self.assertEqual(settings.availability_mode, "day_token")


if __name__ == "__main__":
    unittest.main()
