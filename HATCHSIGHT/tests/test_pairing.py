"""
Tests for the left-to-right target pairing sweep.
"""

import os
import random
import sys
import unittest

sys.path.append(os.path.join(os.path.dirname(__file__), "..", "src"))

from pairing import TargetPair, pair_targets  # type: ignore
from targets import OrientedBox, TargetSide, classify_box  # type: ignore


def strip(x, side):
    """A LEFT ("/") or RIGHT ("\\") strip centred at x."""
    size = (10.0, 40.0) if side == "L" else (40.0, 10.0)
    return OrientedBox(center=(float(x), 50.0), size=size, angle=30.0)


class TestPairTargets(unittest.TestCase):

    def test_fixture_sides(self):
        self.assertIs(classify_box(strip(0, "L")), TargetSide.LEFT)
        self.assertIs(classify_box(strip(0, "R")), TargetSide.RIGHT)

    def test_two_adjacent_targets(self):
        boxes = [strip(1, "L"), strip(2, "R"), strip(5, "L"), strip(6, "R")]
        pairs = pair_targets(boxes)
        self.assertEqual(pairs, [TargetPair(boxes[0], boxes[1]), TargetPair(boxes[2], boxes[3])])

    def test_input_order_does_not_matter(self):
        boxes = [strip(1, "L"), strip(2, "R"), strip(5, "L"), strip(6, "R")]
        shuffled = [boxes[3], boxes[0], boxes[2], boxes[1]]
        self.assertEqual(pair_targets(shuffled), pair_targets(boxes))

    def test_second_left_replaces_pending(self):
        l1, l2, r3 = strip(1, "L"), strip(2, "L"), strip(3, "R")
        self.assertEqual(pair_targets([l1, l2, r3]), [TargetPair(l2, r3)])

    def test_right_without_pending_left_is_dropped(self):
        r1, l2, r3 = strip(1, "R"), strip(2, "L"), strip(3, "R")
        self.assertEqual(pair_targets([r1, l2, r3]), [TargetPair(l2, r3)])

    def test_trailing_left_is_dropped(self):
        self.assertEqual(pair_targets([strip(1, "L"), strip(2, "L")]), [])

    def test_consumed_left_is_not_reused(self):
        l1, r2, r3 = strip(1, "L"), strip(2, "R"), strip(3, "R")
        self.assertEqual(pair_targets([l1, r2, r3]), [TargetPair(l1, r2)])

    def test_empty(self):
        self.assertEqual(pair_targets([]), [])

    def test_random_sweeps_pair_opposite_sides_only(self):
        rng = random.Random(1234)
        for _ in range(200):
            n = rng.randint(0, 12)
            xs = rng.sample(range(1000), n)
            boxes = [strip(x, rng.choice("LR")) for x in xs]
            pairs = pair_targets(boxes)

            self.assertLessEqual(len(pairs), n // 2)
            used = set()
            for pair in pairs:
                self.assertIs(classify_box(pair.left), TargetSide.LEFT)
                self.assertIs(classify_box(pair.right), TargetSide.RIGHT)
                self.assertLess(pair.left.center[0], pair.right.center[0])
                self.assertNotIn(id(pair.left), used)
                self.assertNotIn(id(pair.right), used)
                used.update((id(pair.left), id(pair.right)))


if __name__ == "__main__":
    unittest.main()
