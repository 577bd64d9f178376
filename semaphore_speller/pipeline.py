"""
Arm Semaphore Spelling Pipeline

Main entry point for spelling words from arm poses.

Per frame:
1. Body selection - one tracked body feeds the classifier
2. Clock positions - each straight arm is mapped to a clock code
3. Letter lookup - the (right, left) code pair becomes a symbol
4. Debounce - a symbol held for the hold duration is committed to the word

Usage:
    python -m semaphore_speller.pipeline --config configs/default.yaml --input session.json
    python -m semaphore_speller.pipeline --live --record sessions/new.json
"""

import argparse
import logging
import sys
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional

from .classify.letters import LetterClassifier, Symbol
from .pose.clock_position import ClockPositionExtractor
from .pose.joints import SkeletonFrame, SkeletonRecordingLoader, select_body, save_recording
from .pose.live_tracker import LivePoseTracker
from .spelling.debounce import DebounceStateMachine
from .spelling.word_buffer import WordBuffer
from .utils.config import Config, load_config
from .utils.logging_utils import setup_logging, get_logger

logger = get_logger(__name__)


@dataclass
class FrameResult:
    """What the display shows after one frame."""
    frame_idx: int
    left_code: Optional[int]
    right_code: Optional[int]
    symbol: Optional[Symbol]  # transient classification
    committed: Optional[Symbol]  # symbol committed during this frame
    word: str


class SpellingPipeline:
    """
    End-to-end pipeline from joint frames to a spelled word.

    With a hold timer (live use) commits can also happen between frames;
    register a listener to see them. Without one (replay), frame
    timestamps drive the hold.
    """

    def __init__(self, config: Optional[Config] = None, use_timer: Optional[bool] = None):
        """
        Initialize pipeline with configuration.

        Args:
            config: Configuration object
            use_timer: Override config.debounce.use_timer
        """
        self.config = config or Config()
        cfg = self.config

        self.extractor = ClockPositionExtractor(
            straightness_tolerance=cfg.clock.straightness_tolerance,
            vertical_band=cfg.clock.vertical_band,
            horizontal_band=cfg.clock.horizontal_band,
            diagonal_band=cfg.clock.diagonal_band
        )
        self.classifier = LetterClassifier()
        self.word_buffer = WordBuffer()
        self.debounce = DebounceStateMachine(
            self.word_buffer,
            hold_duration=cfg.debounce.hold_duration,
            word_break_policy=cfg.debounce.word_break_policy,
            use_timer=cfg.debounce.use_timer if use_timer is None else use_timer
        )

        self.latest_symbol: Optional[Symbol] = None

        logger.info(
            f"Pipeline initialized (hold={cfg.debounce.hold_duration}s, "
            f"word_break={cfg.debounce.word_break_policy}, "
            f"timer={self.debounce.uses_timer})"
        )

    @property
    def word(self) -> str:
        return self.word_buffer.text

    @property
    def completed_words(self) -> List[str]:
        return self.word_buffer.completed_words

    def add_listener(self, callback: Callable[[Symbol, str], None]):
        """Register a callable(symbol, word) run after every commit."""
        self.debounce.add_listener(callback)

    def process_frame(self, frame: SkeletonFrame, now: Optional[float] = None) -> FrameResult:
        """
        Process one tracker frame.

        Args:
            frame: Joints of all bodies in this frame
            now: Frame time in seconds; defaults to the debounce clock

        Returns:
            FrameResult for the display
        """
        body = select_body(frame)
        left_code, right_code = self.extractor.extract_both(body)
        symbol = self.classifier.classify(right_code, left_code)
        self.latest_symbol = symbol

        committed = None
        if not self.debounce.uses_timer:
            # The hold would have expired before this frame arrived
            committed = self.debounce.poll(now)

        frame_commit = self.debounce.update(symbol, now)
        committed = committed or frame_commit

        return FrameResult(
            frame_idx=frame.frame_idx,
            left_code=left_code,
            right_code=right_code,
            symbol=symbol,
            committed=committed,
            word=self.word
        )

    def run(self, frames: Iterable[SkeletonFrame]) -> str:
        """
        Replay a recorded session using its frame timestamps.

        Returns:
            The word at the end of the session
        """
        for frame in frames:
            self.process_frame(frame, now=frame.timestamp)
        return self.word

    def close(self):
        self.debounce.close()


def run_live(pipeline: SpellingPipeline, config: Config, record_path: Optional[str] = None):
    """Spell from the live pose tracker until the source ends or Ctrl+C."""
    tracker = LivePoseTracker(config.tracker)
    recorded = []
    last_symbol = None

    try:
        for frame in tracker.frames():
            if record_path:
                recorded.append(frame)

            result = pipeline.process_frame(frame)
            if result.symbol != last_symbol:
                shown = result.symbol.value if result.symbol else '-'
                logger.debug(
                    f"Frame {result.frame_idx}: L={result.left_code} "
                    f"R={result.right_code} -> {shown}"
                )
                last_symbol = result.symbol
    except KeyboardInterrupt:
        logger.info("Stopped by user")
    finally:
        tracker.close()
        if record_path:
            save_recording(recorded, record_path, fps=config.session.fps)
            logger.info(f"Saved {len(recorded)} frames to {record_path}")


def main():
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(
        description="Arm Semaphore Speller"
    )
    parser.add_argument(
        "--config",
        type=str,
        default="configs/default.yaml",
        help="Configuration file"
    )
    parser.add_argument(
        "--input",
        type=str,
        help="Recorded skeleton session (JSON)"
    )
    parser.add_argument(
        "--live",
        action="store_true",
        help="Track arms from the camera"
    )
    parser.add_argument(
        "--record",
        type=str,
        help="Save live frames to this JSON file"
    )
    parser.add_argument(
        "--log_file",
        type=str,
        help="Also write logs to this file"
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Verbose output"
    )

    args = parser.parse_args()

    setup_logging(
        level=logging.DEBUG if args.verbose else logging.INFO,
        log_file=args.log_file
    )

    logger.info("Arm Semaphore Speller")
    logger.info(f"Config: {args.config}")

    if not args.live and not args.input:
        parser.error("either --input or --live is required")

    try:
        config = load_config(args.config)
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    if args.live:
        pipeline = SpellingPipeline(config, use_timer=True)
        try:
            run_live(pipeline, config, record_path=args.record)
        except (ImportError, IOError) as e:
            logger.error(str(e))
            sys.exit(1)
        finally:
            pipeline.close()
    else:
        loader = SkeletonRecordingLoader(fps=config.session.fps)
        try:
            frames = loader.load(args.input)
        except (FileNotFoundError, ValueError) as e:
            logger.error(f"Cannot load recording: {e}")
            sys.exit(1)

        pipeline = SpellingPipeline(config, use_timer=False)
        try:
            pipeline.run(frames)
        finally:
            pipeline.close()

    for finished in pipeline.completed_words:
        logger.info(f"Completed word: {finished}")
    logger.info(f"Word: {pipeline.word!r}")


if __name__ == "__main__":
    main()
