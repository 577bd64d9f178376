"""Word assembly module."""

from .word_buffer import WordBuffer
from .debounce import DebounceStateMachine, DebounceState, HoldTimer

__all__ = [
    "WordBuffer",
    "DebounceStateMachine",
    "DebounceState",
    "HoldTimer",
]
