"""
Hold-to-Confirm Debounce

A classified symbol is only committed to the word after it has been
observed continuously for the hold duration (3 s by default).

States:
    Idle        no candidate, or the last hold already committed
    Holding     candidate seen, hold timer running
    Committed   candidate written to the word; the next frame showing the
                same symbol starts a fresh hold

Frames classified as None do not touch the hold. A different symbol
abandons the pending hold and starts a new one.

Two sources drive the machine: the frame path (`update`) and the hold
timer, a single persistent thread whose deadline is moved on every
candidate change. Both go through one lock. Each hold carries a
generation number so a timer that fires for an abandoned hold, or for a
hold the frame path already committed, is ignored.

Without a timer (`use_timer=False`) the owner drives completion with
`poll(now)`, which is how recorded sessions are replayed.

Usage:
    from semaphore_speller.spelling.debounce import DebounceStateMachine

    machine = DebounceStateMachine(hold_duration=3.0)
    machine.add_listener(lambda symbol, word: print(symbol, word))
    machine.update(Symbol.A)
    ...
    machine.close()
"""

import threading
import time
from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Tuple

from ..classify.letters import Symbol
from ..utils.config import WORD_BREAK_POLICIES
from ..utils.logging_utils import get_logger
from .word_buffer import WordBuffer

logger = get_logger(__name__)


CommitListener = Callable[[Symbol, str], None]


@dataclass
class DebounceState:
    """Snapshot of the pending hold."""
    candidate: Optional[Symbol] = None
    hold_start_time: Optional[float] = None
    committed: bool = False

    @property
    def is_holding(self) -> bool:
        return self.candidate is not None and not self.committed


class HoldTimer:
    """
    One persistent timer thread with a movable deadline.

    `arm` replaces any pending deadline, `cancel` drops it. The callback
    receives the token given to `arm`.
    """

    def __init__(self, callback: Callable[[int], None], name: str = 'hold-timer'):
        self._callback = callback
        self._name = name
        self._cond = threading.Condition()
        self._deadline: Optional[float] = None
        self._token: Optional[int] = None
        self._closed = False
        self._thread: Optional[threading.Thread] = None

    @property
    def pending(self) -> bool:
        with self._cond:
            return self._deadline is not None

    def arm(self, delay: float, token: int):
        with self._cond:
            if self._closed:
                return
            self._deadline = time.monotonic() + delay
            self._token = token
            if self._thread is None or not self._thread.is_alive():
                self._thread = threading.Thread(
                    target=self._run, name=self._name, daemon=True
                )
                self._thread.start()
            self._cond.notify()

    def cancel(self):
        with self._cond:
            self._deadline = None
            self._token = None
            self._cond.notify()

    def close(self, timeout: float = 1.0):
        """Stop the timer thread; pending deadlines are dropped."""
        with self._cond:
            self._closed = True
            self._deadline = None
            self._token = None
            self._cond.notify()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    def _run(self):
        while True:
            with self._cond:
                while not self._closed:
                    if self._deadline is None:
                        self._cond.wait()
                        continue
                    remaining = self._deadline - time.monotonic()
                    if remaining <= 0:
                        break
                    self._cond.wait(remaining)

                if self._closed:
                    return

                token = self._token
                self._deadline = None
                self._token = None

            try:
                self._callback(token)
            except Exception:
                logger.exception(f"Hold timer callback failed for token {token}")


class DebounceStateMachine:
    """
    Commits a symbol to a WordBuffer once it has been held long enough.

    RESET clears the word. WORD_BREAK either appends a space ('space')
    or moves the word to the completed history ('flush').
    """

    def __init__(
        self,
        word_buffer: Optional[WordBuffer] = None,
        hold_duration: float = 3.0,
        word_break_policy: str = 'space',
        use_timer: bool = True,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Args:
            word_buffer: Buffer receiving committed letters
            hold_duration: Seconds a symbol must persist before commit
            word_break_policy: 'space' or 'flush'
            use_timer: Run a hold timer thread; if False, call poll()
            clock: Time source used when no explicit time is given
        """
        if hold_duration <= 0:
            raise ValueError("hold_duration must be positive")
        if word_break_policy not in WORD_BREAK_POLICIES:
            raise ValueError(
                f"word_break_policy must be one of {WORD_BREAK_POLICIES}, "
                f"got {word_break_policy!r}"
            )

        self.word_buffer = word_buffer if word_buffer is not None else WordBuffer()
        self.hold_duration = hold_duration
        self.word_break_policy = word_break_policy
        self._clock = clock

        self._lock = threading.Lock()
        self._state = DebounceState()
        self._generation = 0
        self._listeners: List[CommitListener] = []
        self._closed = False

        self._timer = HoldTimer(self._on_hold_elapsed) if use_timer else None

    @property
    def uses_timer(self) -> bool:
        return self._timer is not None

    @property
    def state(self) -> DebounceState:
        """Copy of the current state."""
        with self._lock:
            return replace(self._state)

    @property
    def word(self) -> str:
        return self.word_buffer.text

    def add_listener(self, callback: CommitListener):
        """
        Register a callable(symbol, word) invoked after every commit.

        A listener that raises is logged and does not stop later listeners
        or the hold timer.
        """
        self._listeners.append(callback)

    def update(self, symbol: Optional[Symbol], now: Optional[float] = None) -> Optional[Symbol]:
        """
        Feed the symbol classified for the current frame.

        Args:
            symbol: Classified symbol, or None
            now: Frame time in seconds (defaults to the machine clock)

        Returns:
            The committed symbol if this frame completed a hold, else None
        """
        with self._lock:
            now = self._clock() if now is None else now
            result = self._step(symbol, now)

        return self._notify(result)

    def poll(self, now: Optional[float] = None) -> Optional[Symbol]:
        """
        Commit the pending hold if its duration has elapsed.

        Stands in for the hold timer when running without one.
        """
        with self._lock:
            now = self._clock() if now is None else now
            state = self._state
            if state.is_holding and now - state.hold_start_time >= self.hold_duration:
                result = self._commit()
            else:
                result = None

        return self._notify(result)

    def close(self):
        """Cancel the hold timer and stop its thread."""
        with self._lock:
            self._closed = True
            self._generation += 1
        if self._timer is not None:
            self._timer.close()

    def _step(self, symbol: Optional[Symbol], now: float) -> Optional[Tuple[Symbol, str]]:
        state = self._state

        if symbol is None:
            return None

        if symbol != state.candidate or state.committed:
            self._start_hold(symbol, now)
            return None

        if now - state.hold_start_time >= self.hold_duration:
            return self._commit()

        return None

    def _start_hold(self, symbol: Symbol, now: float):
        previous = self._state
        if previous.is_holding:
            logger.debug(
                f"Abandoned hold on {previous.candidate.value} after "
                f"{now - previous.hold_start_time:.2f}s"
            )

        self._generation += 1
        self._state = DebounceState(candidate=symbol, hold_start_time=now)

        if self._timer is not None and not self._closed:
            self._timer.arm(self.hold_duration, self._generation)

        logger.debug(f"Holding {symbol.value}")

    def _commit(self) -> Tuple[Symbol, str]:
        symbol = self._state.candidate
        self._state.committed = True
        self._generation += 1

        if self._timer is not None:
            self._timer.cancel()

        if symbol is Symbol.RESET:
            self.word_buffer.reset()
        elif symbol is Symbol.WORD_BREAK:
            if self.word_break_policy == 'flush':
                finished = self.word_buffer.finalize()
                logger.info(f"Finished word: {finished!r}")
            else:
                self.word_buffer.append(' ')
        else:
            self.word_buffer.append(symbol.value)

        word = self.word_buffer.text
        logger.info(f"Committed {symbol.value} -> {word!r}")
        return symbol, word

    def _on_hold_elapsed(self, generation: int):
        with self._lock:
            if self._closed or generation != self._generation or not self._state.is_holding:
                logger.debug("Ignoring stale hold timer")
                return
            result = self._commit()

        self._notify(result)

    def _notify(self, result: Optional[Tuple[Symbol, str]]) -> Optional[Symbol]:
        if result is None:
            return None

        symbol, word = result
        for callback in list(self._listeners):
            try:
                callback(symbol, word)
            except Exception:
                logger.exception(f"Commit listener failed on {symbol.value}")
        return symbol
