"""
Clock Position Extraction

Converts the hand, elbow and shoulder of one arm into a "clock position":
the direction the straightened arm points, as seen on a clock face centred
on the shoulder.

Reachable codes: 12, 1, 3, 4, 6, 7, 9, 10 (1/4/7/10 stand for the half
hours 1:30, 4:30, 7:30 and 10:30). Bent arms and poses outside every band
give None.

Checks, in order (first match wins):
1. Straightness: |elbow-hand| + |elbow-shoulder| within the tolerance
   of |hand-shoulder|
2. Vertical band around the shoulder x   -> 12 / 6
3. Horizontal band around the shoulder y -> 9 / 3
4. Diagonal band where |dx| is close to |dy| -> 10 / 7 / 1 / 4

Usage:
    from semaphore_speller.pose.clock_position import ClockPositionExtractor

    extractor = ClockPositionExtractor()
    left, right = extractor.extract_both(body)
"""

import math
import numpy as np
from typing import Optional, Sequence, Tuple, Union

from .joints import ARM_JOINTS, BodyFrame, JointPoint


CLOCK_CODES = (1, 3, 4, 6, 7, 9, 10, 12)

PointLike = Union[JointPoint, np.ndarray, Sequence[float]]


def _vertical_band(hand: np.ndarray, shoulder: np.ndarray, width: float) -> bool:
    return shoulder[0] - width < hand[0] < shoulder[0] + width


def _horizontal_band(hand: np.ndarray, shoulder: np.ndarray, width: float) -> bool:
    return shoulder[1] - width < hand[1] < shoulder[1] + width


def _diagonal_band(hand: np.ndarray, shoulder: np.ndarray, width: float) -> bool:
    dx = abs(hand[0] - shoulder[0])
    dy = abs(hand[1] - shoulder[1])
    return dy - width < dx < dy + width


def _vertical_code(hand: np.ndarray, shoulder: np.ndarray) -> int:
    # Display space: y grows downwards
    return 12 if hand[1] < shoulder[1] else 6


def _horizontal_code(hand: np.ndarray, shoulder: np.ndarray) -> int:
    return 9 if hand[0] < shoulder[0] else 3


def _diagonal_code(hand: np.ndarray, shoulder: np.ndarray) -> Optional[int]:
    up = hand[1] < shoulder[1]
    down = hand[1] > shoulder[1]
    left = hand[0] < shoulder[0]
    right = hand[0] > shoulder[0]

    if up and left:
        return 10
    if down and left:
        return 7
    if up and right:
        return 1
    if down and right:
        return 4
    return None


# (threshold attribute, band test, code resolver) in priority order
BAND_RULES = (
    ('vertical_band', _vertical_band, _vertical_code),
    ('horizontal_band', _horizontal_band, _horizontal_code),
    ('diagonal_band', _diagonal_band, _diagonal_code),
)


def _as_point(point: Optional[PointLike]) -> Optional[np.ndarray]:
    """Convert to a finite (x, y) array, or None."""
    if point is None:
        return None
    if isinstance(point, JointPoint):
        return point.as_array() if point.is_valid else None

    arr = np.asarray(point, dtype=np.float64).reshape(-1)
    if arr.size < 2 or not np.all(np.isfinite(arr[:2])):
        return None
    return arr[:2]


def _distance(a: np.ndarray, b: np.ndarray) -> float:
    return math.sqrt((a[0] - b[0]) ** 2 + (a[1] - b[1]) ** 2)


class ClockPositionExtractor:
    """
    Maps one arm's joints to a clock-position code.

    The same rules serve both arms; the side only selects which joints
    are read from a BodyFrame.
    """

    def __init__(
        self,
        straightness_tolerance: float = 4.0,
        vertical_band: float = 30.0,
        horizontal_band: float = 30.0,
        diagonal_band: float = 20.0
    ):
        """
        Args:
            straightness_tolerance: Allowed gap between the two-segment
                arm length and the hand-shoulder distance
            vertical_band: Half-width of the 12/6 band around shoulder x
            horizontal_band: Half-width of the 9/3 band around shoulder y
            diagonal_band: Allowed difference between |dx| and |dy| for
                the half-hour codes
        """
        self.straightness_tolerance = straightness_tolerance
        self.vertical_band = vertical_band
        self.horizontal_band = horizontal_band
        self.diagonal_band = diagonal_band

    def is_straight(
        self,
        hand: np.ndarray,
        elbow: np.ndarray,
        shoulder: np.ndarray
    ) -> bool:
        """Approximate collinearity via the triangle-inequality equality case."""
        ab = _distance(elbow, hand)
        bc = _distance(elbow, shoulder)
        ac = _distance(hand, shoulder)
        tol = self.straightness_tolerance
        return ac - tol < ab + bc < ac + tol

    def arm_code(
        self,
        hand: Optional[PointLike],
        elbow: Optional[PointLike],
        shoulder: Optional[PointLike]
    ) -> Optional[int]:
        """
        Compute the clock code of one arm.

        Args:
            hand: Hand position (x, y)
            elbow: Elbow position (x, y)
            shoulder: Shoulder position (x, y), also the direction reference

        Returns:
            One of CLOCK_CODES, or None when indeterminate
        """
        hand = _as_point(hand)
        elbow = _as_point(elbow)
        shoulder = _as_point(shoulder)

        if hand is None or elbow is None or shoulder is None:
            return None

        if not self.is_straight(hand, elbow, shoulder):
            return None

        for width_attr, in_band, resolve in BAND_RULES:
            if in_band(hand, shoulder, getattr(self, width_attr)):
                return resolve(hand, shoulder)

        return None

    def extract(self, body: Optional[BodyFrame], side: str) -> Optional[int]:
        """
        Compute the clock code of one arm of a tracked body.

        Args:
            body: Body joints for the current frame
            side: 'left' or 'right'
        """
        if side not in ARM_JOINTS:
            raise ValueError(f"side must be 'left' or 'right', got {side!r}")
        if body is None:
            return None

        hand_name, elbow_name, shoulder_name = ARM_JOINTS[side]
        return self.arm_code(
            body.get(hand_name),
            body.get(elbow_name),
            body.get(shoulder_name)
        )

    def extract_both(self, body: Optional[BodyFrame]) -> Tuple[Optional[int], Optional[int]]:
        """Get (left_code, right_code) for a body."""
        return self.extract(body, 'left'), self.extract(body, 'right')
