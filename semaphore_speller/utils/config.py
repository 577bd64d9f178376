"""
Configuration Management

Handles loading and merging configuration files.

Usage:
    from semaphore_speller.utils.config import load_config

    config = load_config('configs/default.yaml')
"""

import yaml
from pathlib import Path
from typing import Dict, Any
from dataclasses import dataclass, field


WORD_BREAK_POLICIES = ('space', 'flush')


@dataclass
class ClockConfig:
    """Clock-position geometry thresholds (display-space pixels)."""
    straightness_tolerance: float = 4.0
    vertical_band: float = 30.0
    horizontal_band: float = 30.0
    diagonal_band: float = 20.0

    def __post_init__(self):
        for name in ('straightness_tolerance', 'vertical_band',
                     'horizontal_band', 'diagonal_band'):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")


@dataclass
class DebounceConfig:
    """Hold-to-confirm configuration."""
    hold_duration: float = 3.0  # seconds
    word_break_policy: str = 'space'
    use_timer: bool = True

    def __post_init__(self):
        if self.hold_duration <= 0:
            raise ValueError("hold_duration must be positive")
        if self.word_break_policy not in WORD_BREAK_POLICIES:
            raise ValueError(
                f"word_break_policy must be one of {WORD_BREAK_POLICIES}, "
                f"got {self.word_break_policy!r}"
            )


@dataclass
class TrackerConfig:
    """Live pose tracker configuration."""
    camera_index: int = 0
    frame_width: int = 640
    frame_height: int = 480
    model_complexity: int = 1
    min_detection_confidence: float = 0.5
    min_tracking_confidence: float = 0.5
    min_visibility: float = 0.5
    mirror: bool = True

    def __post_init__(self):
        if self.camera_index < 0:
            raise ValueError("camera_index must be >= 0")
        if self.frame_width <= 0 or self.frame_height <= 0:
            raise ValueError("frame_width and frame_height must be positive")


@dataclass
class SessionConfig:
    """Recorded session replay configuration."""
    fps: float = 30.0

    def __post_init__(self):
        if self.fps <= 0:
            raise ValueError("fps must be positive")


@dataclass
class Config:
    """Main configuration container."""
    project_name: str = "semaphore-speller"
    version: str = "1.0.0"

    # Sub-configurations
    clock: ClockConfig = field(default_factory=ClockConfig)
    debounce: DebounceConfig = field(default_factory=DebounceConfig)
    tracker: TrackerConfig = field(default_factory=TrackerConfig)
    session: SessionConfig = field(default_factory=SessionConfig)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'Config':
        """Create Config from dictionary."""
        config = cls()
        config_dict = config_dict or {}

        # Project settings
        project = config_dict.get('project', {})
        config.project_name = project.get('name', config.project_name)
        config.version = project.get('version', config.version)

        # Clock-position geometry
        clock = config_dict.get('clock', {})
        bands = clock.get('bands', {})
        config.clock = ClockConfig(
            straightness_tolerance=clock.get('straightness_tolerance', 4.0),
            vertical_band=bands.get('vertical', 30.0),
            horizontal_band=bands.get('horizontal', 30.0),
            diagonal_band=bands.get('diagonal', 20.0)
        )

        # Debounce
        debounce = config_dict.get('debounce', {})
        config.debounce = DebounceConfig(
            hold_duration=debounce.get('hold_duration', 3.0),
            word_break_policy=debounce.get('word_break_policy', 'space'),
            use_timer=debounce.get('use_timer', True)
        )

        # Live tracker
        tracker = config_dict.get('tracker', {})
        mediapipe = tracker.get('mediapipe', {})
        config.tracker = TrackerConfig(
            camera_index=tracker.get('camera_index', 0),
            frame_width=tracker.get('frame_width', 640),
            frame_height=tracker.get('frame_height', 480),
            model_complexity=mediapipe.get('model_complexity', 1),
            min_detection_confidence=mediapipe.get('min_detection_confidence', 0.5),
            min_tracking_confidence=mediapipe.get('min_tracking_confidence', 0.5),
            min_visibility=mediapipe.get('min_visibility', 0.5),
            mirror=tracker.get('mirror', True)
        )

        # Session replay
        session = config_dict.get('session', {})
        config.session = SessionConfig(
            fps=session.get('fps', 30.0)
        )

        return config


def load_config(config_path: str) -> Config:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to YAML config file

    Returns:
        Config object
    """
    path = Path(config_path)

    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(path, 'r') as f:
        config_dict = yaml.safe_load(f)

    return Config.from_dict(config_dict)


def merge_configs(base: Dict, override: Dict) -> Dict:
    """
    Merge two config dictionaries.

    Args:
        base: Base configuration
        override: Override values

    Returns:
        Merged configuration
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_configs(result[key], value)
        else:
            result[key] = value

    return result


def config_to_dict(config: Config) -> Dict[str, Any]:
    """Convert a Config back into the nested YAML layout."""
    return {
        'project': {
            'name': config.project_name,
            'version': config.version
        },
        'clock': {
            'straightness_tolerance': config.clock.straightness_tolerance,
            'bands': {
                'vertical': config.clock.vertical_band,
                'horizontal': config.clock.horizontal_band,
                'diagonal': config.clock.diagonal_band
            }
        },
        'debounce': {
            'hold_duration': config.debounce.hold_duration,
            'word_break_policy': config.debounce.word_break_policy,
            'use_timer': config.debounce.use_timer
        },
        'tracker': {
            'camera_index': config.tracker.camera_index,
            'frame_width': config.tracker.frame_width,
            'frame_height': config.tracker.frame_height,
            'mirror': config.tracker.mirror,
            'mediapipe': {
                'model_complexity': config.tracker.model_complexity,
                'min_detection_confidence': config.tracker.min_detection_confidence,
                'min_tracking_confidence': config.tracker.min_tracking_confidence,
                'min_visibility': config.tracker.min_visibility
            }
        },
        'session': {
            'fps': config.session.fps
        }
    }


def save_config(config: Config, path: str):
    """Save configuration to YAML file."""
    with open(path, 'w') as f:
        yaml.dump(config_to_dict(config), f, default_flow_style=False)
