"""Tests for the spelling pipeline and configuration."""

import pytest
import logging
import threading
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from semaphore_speller.classify.letters import LetterClassifier, Symbol
from semaphore_speller.pipeline import SpellingPipeline, FrameResult, main
from semaphore_speller.pose.joints import BodyFrame, SkeletonFrame, save_recording
from semaphore_speller.utils.config import (
    Config,
    DebounceConfig,
    load_config,
    save_config,
    merge_configs,
)
from semaphore_speller.utils.logging_utils import TqdmLoggingHandler, get_logger, setup_logging

CONFIG_PATH = Path(__file__).parent.parent / "configs" / "default.yaml"
FPS = 30.0

# Hand offsets from the shoulder that point straight at each code
DIRECTIONS = {
    12: (0, -100),
    1: (70, -70),
    3: (100, 0),
    4: (70, 70),
    6: (0, 100),
    7: (-70, 70),
    9: (-100, 0),
    10: (-70, -70),
}

SHOULDERS = {'Right': (200.0, 200.0), 'Left': (300.0, 200.0)}


def make_body(right_code, left_code, body_id=0):
    """Body whose arms point at the given codes; None bends the arm."""
    points = {}
    for side, code in (('Right', right_code), ('Left', left_code)):
        sx, sy = SHOULDERS[side]
        if code is None:
            elbow = (sx + 50, sy)
            hand = (sx + 50, sy + 50)
        else:
            dx, dy = DIRECTIONS[code]
            elbow = (sx + dx / 2, sy + dy / 2)
            hand = (sx + dx, sy + dy)
        points[f'Shoulder{side}'] = (sx, sy)
        points[f'Elbow{side}'] = elbow
        points[f'Hand{side}'] = hand
    return BodyFrame.from_points(points, body_id=body_id)


def session(*segments):
    """
    Build frames from (symbol_or_codes, seconds) segments.

    A segment pose is a Symbol (spelled with its table pose) or a
    (right_code, left_code) tuple.
    """
    classifier = LetterClassifier()
    frames = []
    for pose, seconds in segments:
        codes = classifier.pose_for(pose) if isinstance(pose, Symbol) else pose
        for _ in range(int(round(seconds * FPS))):
            idx = len(frames)
            frames.append(SkeletonFrame(
                frame_idx=idx,
                timestamp=idx / FPS,
                bodies=[make_body(*codes)]
            ))
    return frames


BENT = (None, None)


class TestSpellingPipeline:
    """Tests for SpellingPipeline class."""

    @pytest.fixture
    def pipeline(self):
        pipeline = SpellingPipeline(Config(), use_timer=False)
        yield pipeline
        pipeline.close()

    def test_init(self, pipeline):
        """Test initialization from default config."""
        assert pipeline.debounce.hold_duration == 3.0
        assert pipeline.debounce.uses_timer is False
        assert pipeline.extractor.vertical_band == 30.0
        assert pipeline.word == ""

    def test_process_frame(self, pipeline):
        """A single frame reports codes and the transient symbol."""
        frame = SkeletonFrame(frame_idx=5, timestamp=0.0, bodies=[make_body(4, 6)])

        result = pipeline.process_frame(frame, now=0.0)

        assert isinstance(result, FrameResult)
        assert result.frame_idx == 5
        assert (result.right_code, result.left_code) == (4, 6)
        assert result.symbol is Symbol.A
        assert result.committed is None
        assert result.word == ""
        assert pipeline.latest_symbol is Symbol.A

    def test_empty_frame(self, pipeline):
        """A frame without bodies classifies as None."""
        result = pipeline.process_frame(SkeletonFrame(frame_idx=0, timestamp=0.0), now=0.0)

        assert result.symbol is None
        assert (result.left_code, result.right_code) == (None, None)

    def test_spell_cat(self, pipeline):
        """Letters held long enough, separated by bent arms, spell a word."""
        frames = session(
            (Symbol.C, 3.5), (BENT, 0.5),
            (Symbol.A, 3.5), (BENT, 0.5),
            (Symbol.T, 3.5),
        )

        assert pipeline.run(frames) == "CAT"

    def test_short_transitions_ignored(self, pipeline):
        """Letters passed through briefly are not committed."""
        frames = session(
            (Symbol.C, 3.5), (Symbol.E, 1.0),
            (Symbol.A, 3.5), (Symbol.W, 0.5),
            (Symbol.T, 3.5),
        )

        assert pipeline.run(frames) == "CAT"

    def test_short_hold_discarded(self, pipeline):
        """A letter held under the hold duration never appears."""
        frames = session((Symbol.Q, 2.0), (Symbol.B, 1.0))

        assert pipeline.run(frames) == ""

    def test_commit_reported_once(self, pipeline):
        """Exactly one frame reports each commit."""
        frames = session((Symbol.C, 3.5))

        results = [pipeline.process_frame(f, now=f.timestamp) for f in frames]
        committed = [r for r in results if r.committed is not None]

        assert len(committed) == 1
        assert committed[0].committed is Symbol.C
        assert committed[0].frame_idx == 90

    def test_gap_completes_hold(self, pipeline):
        """The hold completes during a None gap, as the timer would."""
        frames = session((Symbol.D, 2.5), (BENT, 1.0))

        assert pipeline.run(frames) == "D"

    def test_reset(self, pipeline):
        """RESET wipes the word."""
        frames = session(
            (Symbol.N, 3.5), (BENT, 0.5),
            (Symbol.O, 3.5), (BENT, 0.5),
            (Symbol.RESET, 3.5),
        )

        assert pipeline.run(frames) == ""

    def test_word_break(self, pipeline):
        """WORD_BREAK appends a space with the default policy."""
        frames = session(
            (Symbol.H, 3.5), (BENT, 0.5),
            (Symbol.WORD_BREAK, 3.5), (BENT, 0.5),
            (Symbol.I, 3.5),
        )

        assert pipeline.run(frames) == "H I"

    def test_word_break_flush(self):
        """The flush policy moves finished words to the history."""
        config = Config()
        config.debounce = DebounceConfig(word_break_policy='flush')
        pipeline = SpellingPipeline(config, use_timer=False)
        frames = session(
            (Symbol.G, 3.5), (BENT, 0.5),
            (Symbol.O, 3.5), (BENT, 0.5),
            (Symbol.WORD_BREAK, 3.5),
        )

        assert pipeline.run(frames) == ""
        assert pipeline.completed_words == ["GO"]
        pipeline.close()

    def test_only_one_body_spells(self, pipeline):
        """Untracked bodies are ignored in favour of the tracked one."""
        ghost = make_body(7, 7, body_id=0)
        ghost.is_tracked = False
        frame = SkeletonFrame(frame_idx=0, timestamp=0.0, bodies=[ghost, make_body(4, 6, body_id=1)])

        assert pipeline.process_frame(frame, now=0.0).symbol is Symbol.A

    def test_listener(self, pipeline):
        """Listeners see every commit."""
        events = []
        pipeline.add_listener(lambda symbol, word: events.append((symbol, word)))

        pipeline.run(session((Symbol.U, 3.5)))

        assert events == [(Symbol.U, "U")]

    def test_timer_mode(self):
        """With the timer running, a commit arrives without further frames."""
        config = Config()
        config.debounce = DebounceConfig(hold_duration=0.05)
        pipeline = SpellingPipeline(config)
        done = threading.Event()
        pipeline.add_listener(lambda symbol, word: done.set())

        try:
            pipeline.process_frame(SkeletonFrame(frame_idx=0, timestamp=0.0, bodies=[make_body(12, 9)]))

            assert done.wait(2.0)
            assert pipeline.word == "J"
        finally:
            pipeline.close()


class TestConfig:
    """Tests for configuration loading."""

    def test_defaults(self):
        """Default config carries the standard thresholds."""
        config = Config()

        assert config.clock.straightness_tolerance == 4.0
        assert config.clock.diagonal_band == 20.0
        assert config.debounce.hold_duration == 3.0
        assert config.debounce.word_break_policy == 'space'

    def test_load_default_file(self):
        """The shipped config matches the defaults."""
        config = load_config(str(CONFIG_PATH))

        assert config.project_name == "semaphore-speller"
        assert config.clock.vertical_band == 30.0
        assert config.clock.horizontal_band == 30.0
        assert config.debounce.hold_duration == 3.0
        assert config.session.fps == 30.0

    def test_from_dict_overrides(self):
        """Nested values override defaults."""
        config = Config.from_dict({
            'clock': {'bands': {'diagonal': 25.0}},
            'debounce': {'hold_duration': 1.5, 'word_break_policy': 'flush'},
        })

        assert config.clock.diagonal_band == 25.0
        assert config.clock.vertical_band == 30.0
        assert config.debounce.hold_duration == 1.5
        assert config.debounce.word_break_policy == 'flush'

    def test_from_empty(self):
        """An empty YAML document gives the defaults."""
        assert Config.from_dict(None).debounce.hold_duration == 3.0

    def test_invalid_values(self):
        """Invalid values raise ValueError."""
        with pytest.raises(ValueError):
            Config.from_dict({'debounce': {'word_break_policy': 'newline'}})
        with pytest.raises(ValueError):
            Config.from_dict({'debounce': {'hold_duration': -1}})
        with pytest.raises(ValueError):
            Config.from_dict({'clock': {'straightness_tolerance': 0}})

    def test_missing_file(self, tmp_path):
        """Missing config files raise FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "missing.yaml"))

    def test_save_and_load(self, tmp_path):
        """Saved configs load back unchanged."""
        config = Config.from_dict({'debounce': {'hold_duration': 2.0}, 'tracker': {'camera_index': 1}})
        path = tmp_path / "config.yaml"

        save_config(config, str(path))
        loaded = load_config(str(path))

        assert loaded == config

    def test_merge_configs(self):
        """Nested dictionaries merge key by key."""
        merged = merge_configs(
            {'clock': {'bands': {'vertical': 30.0, 'horizontal': 30.0}}},
            {'clock': {'bands': {'vertical': 35.0}}}
        )

        assert merged == {'clock': {'bands': {'vertical': 35.0, 'horizontal': 30.0}}}


class TestLogging:
    """Tests for logging setup."""

    @pytest.fixture(autouse=True)
    def restore_root(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        for handler in root.handlers:
            handler.close()
        root.handlers = handlers
        root.setLevel(level)

    def test_log_file(self, tmp_path):
        """Records reach the log file with the thread name."""
        log_file = tmp_path / "logs" / "session.log"
        setup_logging(level=logging.DEBUG, log_file=str(log_file))

        get_logger("semaphore_speller.test").debug("Committed A -> 'A'")
        for handler in logging.getLogger().handlers:
            handler.flush()

        text = log_file.read_text()
        assert "Committed A -> 'A'" in text
        assert "[MainThread]" in text

    def test_tqdm_console(self):
        """Batch mode routes console output through tqdm."""
        setup_logging(use_tqdm=True)
        handlers = logging.getLogger().handlers

        assert len(handlers) == 1
        assert isinstance(handlers[0], TqdmLoggingHandler)

    def test_repeated_setup_replaces_handlers(self):
        """Calling setup twice does not duplicate console output."""
        setup_logging()
        setup_logging(level=logging.WARNING)
        root = logging.getLogger()

        assert len(root.handlers) == 1
        assert root.level == logging.WARNING


class TestCommandLine:
    """Tests for the pipeline entry point."""

    def test_replay(self, tmp_path, monkeypatch):
        """Replaying a recording runs to completion."""
        path = tmp_path / "cat.json"
        save_recording(session((Symbol.C, 3.5)), path, fps=FPS)
        monkeypatch.setattr(sys, "argv", [
            "pipeline", "--config", str(CONFIG_PATH), "--input", str(path)
        ])

        main()

    def test_missing_recording(self, tmp_path, monkeypatch):
        """A missing recording exits with an error."""
        monkeypatch.setattr(sys, "argv", [
            "pipeline", "--config", str(CONFIG_PATH), "--input", str(tmp_path / "none.json")
        ])

        with pytest.raises(SystemExit) as exc:
            main()
        assert exc.value.code == 1

    def test_malformed_recording(self, tmp_path, monkeypatch):
        """A recording with non-object frames exits with an error."""
        path = tmp_path / "bad.json"
        path.write_text('{"frames": [1, 2]}')
        monkeypatch.setattr(sys, "argv", [
            "pipeline", "--config", str(CONFIG_PATH), "--input", str(path)
        ])

        with pytest.raises(SystemExit) as exc:
            main()
        assert exc.value.code == 1

    def test_requires_source(self, monkeypatch):
        """Either a recording or live mode must be requested."""
        monkeypatch.setattr(sys, "argv", ["pipeline", "--config", str(CONFIG_PATH)])

        with pytest.raises(SystemExit):
            main()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
