"""
Skeleton Joint Frames

Per-frame joint data handed over by the body tracker, and a loader for
recorded skeleton sessions stored as JSON.

Joint identifiers follow the Kinect v2 body model. Only the six arm joints
feed the letter classifier:

    ShoulderLeft, ElbowLeft, HandLeft
    ShoulderRight, ElbowRight, HandRight

Recording format (either a list of frames or {"frames": [...]}):

    {
        "fps": 30,
        "frames": [
            {
                "timestamp": 0.0,
                "bodies": [
                    {"id": 0, "tracked": true,
                     "joints": {"HandLeft": [212.0, 140.5],
                                "ElbowLeft": {"x": 230.1, "y": 170.2,
                                              "state": "inferred"}}}
                ]
            }
        ]
    }

Usage:
    from semaphore_speller.pose.joints import SkeletonRecordingLoader

    loader = SkeletonRecordingLoader(fps=30.0)
    frames = loader.load("sessions/cat.json")
"""

import json
import math
import numpy as np
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union
from dataclasses import dataclass, field

from ..utils.logging_utils import get_logger

logger = get_logger(__name__)


# Joint tracking states reported by the tracker
TRACKED = 'tracked'
INFERRED = 'inferred'
NOT_TRACKED = 'not_tracked'
TRACKING_STATES = (TRACKED, INFERRED, NOT_TRACKED)

JOINT_NAMES = [
    'SpineBase', 'SpineMid', 'Neck', 'Head',
    'ShoulderLeft', 'ElbowLeft', 'WristLeft', 'HandLeft',
    'ShoulderRight', 'ElbowRight', 'WristRight', 'HandRight',
    'HipLeft', 'KneeLeft', 'AnkleLeft', 'FootLeft',
    'HipRight', 'KneeRight', 'AnkleRight', 'FootRight',
    'SpineShoulder', 'HandTipLeft', 'ThumbLeft', 'HandTipRight', 'ThumbRight'
]

# (hand, elbow, shoulder) per arm side
ARM_JOINTS = {
    'left': ('HandLeft', 'ElbowLeft', 'ShoulderLeft'),
    'right': ('HandRight', 'ElbowRight', 'ShoulderRight'),
}


@dataclass
class JointPoint:
    """A single joint position in display space."""
    x: float
    y: float
    state: str = TRACKED

    @property
    def is_valid(self) -> bool:
        """True when the joint can take part in geometry."""
        return (
            self.state != NOT_TRACKED
            and math.isfinite(self.x)
            and math.isfinite(self.y)
        )

    def as_array(self) -> np.ndarray:
        """Get (x, y) as a float array."""
        return np.array([self.x, self.y], dtype=np.float64)


@dataclass
class BodyFrame:
    """Joint positions of one body in one frame."""
    joints: Dict[str, JointPoint]
    body_id: int = 0
    is_tracked: bool = True

    def get(self, name: str) -> Optional[JointPoint]:
        """Get a joint, or None if it is missing or unusable."""
        joint = self.joints.get(name)
        if joint is None or not joint.is_valid:
            return None
        return joint

    def has_arm_joints(self) -> bool:
        """Check that all six arm joints are usable."""
        return all(
            self.get(name) is not None
            for names in ARM_JOINTS.values()
            for name in names
        )

    @classmethod
    def from_points(
        cls,
        points: Dict[str, Tuple[float, float]],
        body_id: int = 0
    ) -> 'BodyFrame':
        """Build a tracked body from a plain name -> (x, y) mapping."""
        joints = {
            name: JointPoint(float(xy[0]), float(xy[1]))
            for name, xy in points.items()
        }
        return cls(joints=joints, body_id=body_id)


@dataclass
class SkeletonFrame:
    """All bodies reported by the tracker for one frame."""
    frame_idx: int
    timestamp: float  # seconds
    bodies: List[BodyFrame] = field(default_factory=list)


def select_body(frame: SkeletonFrame) -> Optional[BodyFrame]:
    """
    Pick the single body whose arms feed the classifier.

    Prefers the first tracked body with all arm joints available, then
    the first tracked body at all.
    """
    tracked = [body for body in frame.bodies if body.is_tracked]
    for body in tracked:
        if body.has_arm_joints():
            return body
    return tracked[0] if tracked else None


class SkeletonRecordingLoader:
    """
    Loads recorded skeleton sessions from JSON files.

    Frames without a timestamp are timed from their index and the
    recording (or default) frame rate.
    """

    def __init__(self, fps: float = 30.0):
        """
        Args:
            fps: Frame rate used when frames carry no timestamp
        """
        self.fps = fps

    def load(self, path: Union[str, Path]) -> List[SkeletonFrame]:
        """
        Load a recorded session.

        Args:
            path: Path to JSON file

        Returns:
            List of SkeletonFrame in recording order
        """
        path = Path(path)

        if not path.exists():
            raise FileNotFoundError(f"Recording not found: {path}")

        with open(path, 'r') as f:
            data = json.load(f)

        frames = self.parse(data)
        logger.info(f"Loaded {len(frames)} frames from {path}")
        return frames

    def parse(self, data: Union[Dict, List]) -> List[SkeletonFrame]:
        """Parse decoded JSON data into SkeletonFrame objects."""
        fps = self.fps

        if isinstance(data, dict):
            if 'frames' not in data:
                raise ValueError("Recording dict must contain a 'frames' list")
            fps = float(data.get('fps', fps))
            raw_frames = data['frames']
        elif isinstance(data, list):
            raw_frames = data
        else:
            raise ValueError(f"Unsupported recording type: {type(data).__name__}")

        if not isinstance(raw_frames, list):
            raise ValueError("'frames' must be a list")

        for frame_idx, frame_data in enumerate(raw_frames):
            if not isinstance(frame_data, dict):
                raise ValueError(
                    f"Frame {frame_idx} must be an object, got {type(frame_data).__name__}"
                )

        return [
            self._parse_frame(frame_data, frame_idx, fps)
            for frame_idx, frame_data in enumerate(raw_frames)
        ]

    def _parse_frame(self, frame_data: Dict, frame_idx: int, fps: float) -> SkeletonFrame:
        """Parse a single frame's body data."""
        frame_idx = int(frame_data.get('frame_idx', frame_idx))
        timestamp = frame_data.get('timestamp')
        timestamp = float(timestamp) if timestamp is not None else frame_idx / fps

        if 'bodies' in frame_data:
            raw_bodies = frame_data['bodies'] or []
        elif 'joints' in frame_data:
            # Single-body shorthand
            raw_bodies = [frame_data]
        else:
            raw_bodies = []

        if not isinstance(raw_bodies, list):
            raise ValueError(f"Frame {frame_idx}: 'bodies' must be a list")

        bodies = [
            self._parse_body(body_data, body_idx)
            for body_idx, body_data in enumerate(raw_bodies)
            if isinstance(body_data, dict)
        ]
        return SkeletonFrame(frame_idx=frame_idx, timestamp=timestamp, bodies=bodies)

    def _parse_body(self, body_data: Dict, body_idx: int) -> BodyFrame:
        """Parse one body; tolerates a bare joint mapping."""
        joint_data = body_data.get('joints', body_data)
        if not isinstance(joint_data, dict):
            raise ValueError(
                f"Body {body_idx}: joints must be an object, got {type(joint_data).__name__}"
            )

        joints = {}
        for name in JOINT_NAMES:
            if name in joint_data:
                joint = self._parse_joint(joint_data[name])
                if joint is not None:
                    joints[name] = joint
                else:
                    logger.debug(f"Body {body_idx}: dropping malformed joint {name}")

        return BodyFrame(
            joints=joints,
            body_id=int(body_data.get('id', body_idx)),
            is_tracked=bool(body_data.get('tracked', True))
        )

    def _parse_joint(self, joint) -> Optional[JointPoint]:
        """Parse [x, y(, z)] or {"x", "y", "state"}; None if unusable."""
        state = TRACKED

        if isinstance(joint, dict):
            x, y = joint.get('x'), joint.get('y')
            state = joint.get('state', TRACKED)
        elif isinstance(joint, (list, tuple)) and len(joint) >= 2:
            x, y = joint[0], joint[1]
        else:
            return None

        if state not in TRACKING_STATES:
            return None

        try:
            point = JointPoint(float(x), float(y), state)
        except (TypeError, ValueError):
            return None

        if not (math.isfinite(point.x) and math.isfinite(point.y)):
            return None
        return point


def save_recording(
    frames: List[SkeletonFrame],
    path: Union[str, Path],
    fps: float = 30.0
):
    """Save frames in the recording format read by SkeletonRecordingLoader."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    data = {
        'fps': fps,
        'frames': [
            {
                'frame_idx': frame.frame_idx,
                'timestamp': frame.timestamp,
                'bodies': [
                    {
                        'id': body.body_id,
                        'tracked': body.is_tracked,
                        'joints': {
                            name: {'x': joint.x, 'y': joint.y, 'state': joint.state}
                            for name, joint in body.joints.items()
                        }
                    }
                    for body in frame.bodies
                ]
            }
            for frame in frames
        ]
    }

    with open(path, 'w') as f:
        json.dump(data, f)
