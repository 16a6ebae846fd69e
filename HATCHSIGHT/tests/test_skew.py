"""
Tests for the skew pair pipeline.
"""

import copy
import os
import sys
import unittest

sys.path.append(os.path.join(os.path.dirname(__file__), "..", "src"))

from skew import NO_TARGET, SkewPairPipeline, SkewPairTargetProcessor  # type: ignore
from utils import DEFAULT_CONFIG  # type: ignore

from synthetic_frames import blank_frame


class TestSkewPairTargetProcessor(unittest.TestCase):

    def setUp(self):
        self.processor = SkewPairTargetProcessor(100, 100)

    def test_fewer_than_two_rects(self):
        self.assertEqual(self.processor.compute_result([]), NO_TARGET)
        self.assertEqual(self.processor.compute_result([(90, 90, 20, 20)]), NO_TARGET)

    def test_pair_result(self):
        # left rect taller than right
        result = self.processor.compute_result([(130, 80, 10, 10), (50, 70, 10, 20)])
        self.assertTrue(result.found_target)
        self.assertAlmostEqual(result.skew, 20 / 10 - 10 / 20)
        self.assertAlmostEqual(result.x_absolute, (55 + 135) / 2)
        self.assertAlmostEqual(result.y_absolute, (80 + 85) / 2)
        self.assertAlmostEqual(result.x_error, result.x_absolute - 100)
        self.assertAlmostEqual(result.y_error, result.y_absolute - 100)

    def test_equal_heights_have_no_skew(self):
        result = self.processor.compute_result([(60, 90, 10, 20), (130, 90, 10, 20)])
        self.assertAlmostEqual(result.skew, 0.0)

    def test_closest_two_to_crosshairs_are_used(self):
        far = (600, 400, 10, 40)
        result = self.processor.compute_result([far, (80, 90, 10, 20), (110, 90, 10, 20)])
        self.assertAlmostEqual(result.x_absolute, (85 + 115) / 2)

    def test_crosshairs_may_be_callables(self):
        position = {"x": 100}
        processor = SkewPairTargetProcessor(lambda: position["x"], lambda: 100)
        rects = [(80, 90, 10, 20), (110, 90, 10, 20)]
        first = processor.compute_result(rects)
        position["x"] = 0
        second = processor.compute_result(rects)
        self.assertAlmostEqual(second.x_error - first.x_error, 100)


class TestSkewPairPipeline(unittest.TestCase):

    def setUp(self):
        self.config = copy.deepcopy(DEFAULT_CONFIG)
        self.pipeline = SkewPairPipeline("Skew Pipeline", self.config)
        self.pipeline.initialize(640, 480)

    def test_requires_initialization(self):
        with self.assertRaises(RuntimeError):
            SkewPairPipeline("Other", copy.deepcopy(DEFAULT_CONFIG)).process(blank_frame())

    def test_crosshairs_come_from_vision_preferences(self):
        self.assertEqual(self.pipeline.processor.x_crosshairs(), 200)
        self.config["preferences"]["Vision"]["Crosshairs X"] = 320
        self.assertEqual(self.pipeline.processor.x_crosshairs(), 320)

    def test_blank_frame(self):
        self.assertEqual(self.pipeline.process(blank_frame()), NO_TARGET)

    def test_two_blobs(self):
        frame = blank_frame()
        frame[150:230, 150:170] = (0, 255, 0)  # taller, left
        frame[160:220, 230:250] = (0, 255, 0)
        result = self.pipeline.process(frame)
        self.assertTrue(result.found_target)
        self.assertGreater(result.skew, 0.0)
        self.assertIs(self.pipeline.last_result, result)

        canvas = blank_frame()
        self.pipeline.write_output(canvas)
        self.assertTrue(canvas.any())

    def test_telemetry(self):
        self.pipeline.process(blank_frame())
        self.assertEqual(self.pipeline.telemetry(), [])

        frame = blank_frame()
        frame[150:230, 150:170] = (0, 255, 0)
        frame[160:220, 230:250] = (0, 255, 0)
        result = self.pipeline.process(frame)
        self.assertEqual(
            self.pipeline.telemetry(),
            [{"x_error": result.x_error, "y_error": result.y_error, "skew": result.skew}],
        )

    def test_empty_config_receives_preferences(self):
        config = {}
        SkewPairPipeline("Skew Pipeline", config)
        self.assertEqual(config["preferences"]["Vision"]["Crosshairs X"], 200)
        self.assertIn("MinArea", config["preferences"]["Skew Pipeline"])


if __name__ == "__main__":
    unittest.main()
