"""Letter classification module."""

from .letters import LetterClassifier, Symbol, LETTER_TABLE

__all__ = [
    "LetterClassifier",
    "Symbol",
    "LETTER_TABLE",
]
