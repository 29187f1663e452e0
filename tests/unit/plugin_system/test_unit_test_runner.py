"""
Tests for the command line options of the unit test runner.

@testCovers tests/unit-test-runner.py
"""

import importlib.util
import unittest
from pathlib import Path
from unittest.mock import patch

RUNNER_PATH = Path(__file__).parents[2] / "unit-test-runner.py"


def load_runner():
    spec = importlib.util.spec_from_file_location("unit_test_runner", RUNNER_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class TestParseArgs(unittest.TestCase):

    def setUp(self):
        self.runner = load_runner()

    def test_defaults(self):
        with patch("sys.argv", ["unit-test-runner.py"]):
            options = self.runner.parse_args()

        self.assertFalse(options["tap"])
        self.assertFalse(options["verbose"])
        self.assertEqual(options["paths"], self.runner.DEFAULT_PATHS)

    def test_options(self):
        argv = ["unit-test-runner.py", "--tap", "-v", "--grep", "chain", "tests/unit"]
        with patch("sys.argv", argv):
            options = self.runner.parse_args()

        self.assertTrue(options["tap"])
        self.assertTrue(options["verbose"])
        self.assertEqual(options["grep"], "chain")
        self.assertEqual(options["paths"], ["tests/unit"])


if __name__ == "__main__":
    unittest.main()
