"""
Letter Classification

Maps a pair of arm clock codes to a letter or a control symbol using a
fixed table keyed by (right_code, left_code).

Usage:
    from semaphore_speller.classify.letters import LetterClassifier

    classifier = LetterClassifier()
    symbol = classifier.classify(right_code=4, left_code=6)  # Symbol.A
"""

from enum import Enum
from typing import Dict, Optional, Tuple


class Symbol(str, Enum):
    """Classifier output: a letter or a control symbol."""
    A = 'A'
    B = 'B'
    C = 'C'
    D = 'D'
    E = 'E'
    F = 'F'
    G = 'G'
    H = 'H'
    I = 'I'
    J = 'J'
    K = 'K'
    L = 'L'
    M = 'M'
    N = 'N'
    O = 'O'
    P = 'P'
    Q = 'Q'
    R = 'R'
    S = 'S'
    T = 'T'
    U = 'U'
    V = 'V'
    W = 'W'
    X = 'X'
    Y = 'Y'
    Z = 'Z'
    RESET = 'RESET'
    WORD_BREAK = 'WORD_BREAK'

    @property
    def is_letter(self) -> bool:
        return len(self.value) == 1


# (right_code, left_code) -> symbol
LETTER_TABLE: Dict[Tuple[int, int], Symbol] = {
    (4, 6): Symbol.A,
    (4, 12): Symbol.K,
    (4, 10): Symbol.L,
    (4, 9): Symbol.M,
    (4, 7): Symbol.N,

    (3, 6): Symbol.B,
    (3, 4): Symbol.H,
    (3, 1): Symbol.O,
    (3, 12): Symbol.P,
    (3, 10): Symbol.Q,
    (3, 9): Symbol.R,
    (3, 7): Symbol.S,

    (1, 6): Symbol.C,
    (1, 12): Symbol.T,
    (1, 10): Symbol.U,
    (1, 9): Symbol.Y,
    (1, 7): Symbol.RESET,

    (12, 6): Symbol.D,
    (12, 4): Symbol.I,
    (12, 9): Symbol.J,
    (12, 7): Symbol.V,

    (6, 10): Symbol.E,
    (6, 9): Symbol.F,
    (6, 7): Symbol.G,
    (6, 6): Symbol.WORD_BREAK,

    (10, 9): Symbol.W,
    (10, 7): Symbol.X,

    (7, 7): Symbol.Z,
}


class LetterClassifier:
    """Lookup from arm code pairs to symbols."""

    def __init__(self, table: Optional[Dict[Tuple[int, int], Symbol]] = None):
        """
        Args:
            table: Override mapping, defaults to LETTER_TABLE
        """
        self.table = dict(LETTER_TABLE if table is None else table)
        self._poses = {symbol: pair for pair, symbol in self.table.items()}

    def classify(
        self,
        right_code: Optional[int],
        left_code: Optional[int]
    ) -> Optional[Symbol]:
        """
        Classify an arm pose.

        Args:
            right_code: Clock code of the right arm (or None)
            left_code: Clock code of the left arm (or None)

        Returns:
            Symbol, or None for pairs outside the table
        """
        if right_code is None or left_code is None:
            return None
        return self.table.get((right_code, left_code))

    def pose_for(self, symbol: Symbol) -> Optional[Tuple[int, int]]:
        """Get the (right_code, left_code) pair that spells a symbol."""
        return self._poses.get(symbol)
