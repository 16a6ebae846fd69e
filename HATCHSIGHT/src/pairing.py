"""
Target pairing.

Groups classified strips into left/right target pairs with a single greedy
left-to-right sweep.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

import numpy as np

from targets import OrientedBox, TargetSide, classify_box, extract_corners

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class TargetPair:
    """One physical target candidate: a LEFT strip and a RIGHT strip."""

    left: OrientedBox
    right: OrientedBox

    def normalized(self) -> TargetPair:
        """Return the pair with ``left`` physically left of ``right``."""
        if self.left.center[0] > self.right.center[0]:
            return TargetPair(left=self.right, right=self.left)
        return self

    def corners(self) -> np.ndarray:
        pair = self.normalized()
        return extract_corners(pair.left, pair.right)


def pair_targets(boxes: Iterable[OrientedBox]) -> List[TargetPair]:
    """Pair adjacent LEFT/RIGHT boxes scanning by ascending center x.

    A LEFT replaces any pending LEFT, a RIGHT closes the pending LEFT into a
    pair, and a RIGHT with nothing pending is dropped. There is no
    backtracking.
    """
    ordered = sorted(boxes, key=lambda box: box.center[0])

    pairs: List[TargetPair] = []
    pending_left: Optional[OrientedBox] = None
    for box in ordered:
        if classify_box(box) is TargetSide.LEFT:
            if pending_left is not None:
                LOGGER.debug("Dropping unmatched left strip at x=%.1f", pending_left.center[0])
            pending_left = box
        elif pending_left is not None:
            pairs.append(TargetPair(left=pending_left, right=box))
            pending_left = None
        else:
            LOGGER.debug("Dropping unmatched right strip at x=%.1f", box.center[0])

    return pairs
