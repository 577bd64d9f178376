"""Word assembled from committed letters."""

import threading
from typing import List


class WordBuffer:
    """
    Ordered, append-only sequence of committed characters.

    Only the debounce state machine mutates the buffer; readers use
    `text` and `completed_words`.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._chars: List[str] = []
        self._completed: List[str] = []

    def append(self, char: str):
        with self._lock:
            self._chars.append(char)

    def reset(self):
        """Clear the current word."""
        with self._lock:
            self._chars.clear()

    def finalize(self) -> str:
        """Move the current word into the completed history and clear it."""
        with self._lock:
            word = ''.join(self._chars)
            if word:
                self._completed.append(word)
            self._chars.clear()
            return word

    @property
    def text(self) -> str:
        with self._lock:
            return ''.join(self._chars)

    @property
    def completed_words(self) -> List[str]:
        with self._lock:
            return list(self._completed)

    def __len__(self) -> int:
        with self._lock:
            return len(self._chars)

    def __str__(self) -> str:
        return self.text
