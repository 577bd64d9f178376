"""Arm pose processing module."""

from .joints import (
    JointPoint,
    BodyFrame,
    SkeletonFrame,
    SkeletonRecordingLoader,
    select_body,
    save_recording,
)
from .clock_position import ClockPositionExtractor, CLOCK_CODES
from .live_tracker import LivePoseTracker

__all__ = [
    "JointPoint",
    "BodyFrame",
    "SkeletonFrame",
    "SkeletonRecordingLoader",
    "select_body",
    "save_recording",
    "ClockPositionExtractor",
    "CLOCK_CODES",
    "LivePoseTracker",
]
