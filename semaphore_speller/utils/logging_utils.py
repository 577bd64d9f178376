"""
Logging setup for the speller.

Commits can be logged from the hold-timer thread as well as the frame
loop, so the default format carries the thread name.

Usage:
    from semaphore_speller.utils.logging_utils import setup_logging, get_logger

    setup_logging(level=logging.DEBUG, log_file="logs/session.log")
    logger = get_logger(__name__)
"""

import logging
import sys
from pathlib import Path
from typing import Optional

from tqdm import tqdm


DEFAULT_FORMAT = '%(asctime)s [%(threadName)s] %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%H:%M:%S'


class TqdmLoggingHandler(logging.Handler):
    """Writes records through tqdm.write so batch progress bars stay intact."""

    def emit(self, record):
        try:
            tqdm.write(self.format(record))
        except Exception:
            self.handleError(record)


def _console_handler(use_tqdm: bool) -> logging.Handler:
    if use_tqdm:
        return TqdmLoggingHandler()
    return logging.StreamHandler(sys.stdout)


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    format_string: Optional[str] = None,
    use_tqdm: bool = False
) -> None:
    """
    Configure the root logger for a live session, a replay or a batch run.

    Args:
        level: Level for the root logger and every handler
        log_file: Also append records to this file (parent dirs are created)
        format_string: Overrides DEFAULT_FORMAT
        use_tqdm: Console output goes through tqdm (batch replays)
    """
    formatter = logging.Formatter(format_string or DEFAULT_FORMAT, datefmt=DATE_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    # Replaces handlers from an earlier call
    root_logger.handlers = []

    handlers = [_console_handler(use_tqdm)]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
