"""
Live Arm Tracking via MediaPipe Pose

Runs MediaPipe Pose on camera (or video) frames and hands the arm joints
to the speller as SkeletonFrames, in pixel coordinates.

MediaPipe Pose landmarks used:
    11 / 12: left / right shoulder
    13 / 14: left / right elbow
    15 / 16: left / right wrist (stands in for the hand joint)

Landmarks below the visibility threshold are reported as not tracked.

Usage:
    from semaphore_speller.pose.live_tracker import LivePoseTracker

    tracker = LivePoseTracker()
    for frame in tracker.frames():
        ...
    tracker.close()
"""

import time
import cv2
from typing import Iterator, Optional, Union

from ..utils.config import TrackerConfig
from ..utils.logging_utils import get_logger
from .joints import BodyFrame, JointPoint, SkeletonFrame, TRACKED, NOT_TRACKED

try:
    import mediapipe as mp
except ImportError:
    mp = None

logger = get_logger(__name__)


# MediaPipe Pose landmark index -> joint name
POSE_LANDMARK_JOINTS = {
    11: 'ShoulderLeft',
    12: 'ShoulderRight',
    13: 'ElbowLeft',
    14: 'ElbowRight',
    15: 'HandLeft',
    16: 'HandRight',
}


def landmarks_to_body(
    landmarks,
    width: int,
    height: int,
    min_visibility: float = 0.5
) -> BodyFrame:
    """
    Convert MediaPipe pose landmarks to a BodyFrame in pixel space.

    Args:
        landmarks: Sequence of objects with x, y (normalised) and visibility
        width: Frame width in pixels
        height: Frame height in pixels
        min_visibility: Landmarks below this are marked not tracked
    """
    joints = {}
    for idx, name in POSE_LANDMARK_JOINTS.items():
        if idx >= len(landmarks):
            continue
        lm = landmarks[idx]
        visibility = getattr(lm, 'visibility', 1.0)
        state = TRACKED if visibility >= min_visibility else NOT_TRACKED
        joints[name] = JointPoint(lm.x * width, lm.y * height, state)

    return BodyFrame(joints=joints, body_id=0, is_tracked=True)


class LivePoseTracker:
    """
    Feeds camera frames through MediaPipe Pose (video mode).

    MediaPipe Pose tracks a single person, so every SkeletonFrame holds
    at most one body.
    """

    def __init__(self, config: Optional[TrackerConfig] = None):
        if mp is None:
            raise ImportError(
                "mediapipe is required for live tracking. "
                "Install with: pip install mediapipe"
            )
        self.config = config or TrackerConfig()

        cfg = self.config
        self._pose = mp.solutions.pose.Pose(
            static_image_mode=False,
            model_complexity=cfg.model_complexity,
            min_detection_confidence=cfg.min_detection_confidence,
            min_tracking_confidence=cfg.min_tracking_confidence,
        )

    def detect(self, image_bgr, frame_idx: int, timestamp: float) -> SkeletonFrame:
        """
        Run pose tracking on one BGR frame.

        Args:
            image_bgr: Frame as returned by cv2
            frame_idx: Frame index
            timestamp: Capture time in seconds
        """
        height, width = image_bgr.shape[:2]

        # MediaPipe expects RGB
        results = self._pose.process(cv2.cvtColor(image_bgr, cv2.COLOR_BGR2RGB))

        bodies = []
        if results.pose_landmarks:
            bodies.append(landmarks_to_body(
                results.pose_landmarks.landmark,
                width,
                height,
                self.config.min_visibility
            ))

        return SkeletonFrame(frame_idx=frame_idx, timestamp=timestamp, bodies=bodies)

    def frames(
        self,
        source: Optional[Union[int, str]] = None,
        max_frames: Optional[int] = None
    ) -> Iterator[SkeletonFrame]:
        """
        Yield tracked frames from a camera or video file.

        Args:
            source: Camera index or video path (defaults to config camera)
            max_frames: Stop after this many frames (None = until exhausted)
        """
        cfg = self.config
        source = cfg.camera_index if source is None else source

        cap = cv2.VideoCapture(source)
        if not cap.isOpened():
            raise IOError(f"Cannot open video source: {source}")

        if isinstance(source, int):
            cap.set(cv2.CAP_PROP_FRAME_WIDTH, cfg.frame_width)
            cap.set(cv2.CAP_PROP_FRAME_HEIGHT, cfg.frame_height)

        logger.info(f"Tracking from source {source}")
        start = time.monotonic()
        frame_idx = 0

        try:
            while max_frames is None or frame_idx < max_frames:
                ret, image = cap.read()
                if not ret:
                    break

                if cfg.mirror:
                    image = cv2.flip(image, 1)

                yield self.detect(image, frame_idx, time.monotonic() - start)
                frame_idx += 1
        finally:
            cap.release()

        logger.info(f"Tracked {frame_idx} frames")

    def close(self):
        self._pose.close()
