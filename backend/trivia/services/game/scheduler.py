import logging
import threading
import time
from typing import Callable, Optional

from trivia import socketio

log = logging.getLogger(__name__)


def scheduler_enabled(app) -> bool:
    return not app.config.get('TESTING') or bool(app.config.get('ENABLE_SCHEDULER_IN_TESTS'))


class CountdownTimer:
    """Calls ``on_tick`` once per second against a monotonic deadline.

    - Tick k fires at ``start + k`` seconds, so slow callbacks do not drift
    - ``cancel()`` (or a new ``start()``) bumps the generation and the
      running worker exits at its next wake-up
    - No-ops in TESTING mode; tests drive ticks by hand
    """

    def __init__(self, app, clock: Callable[[], float] = time.monotonic):
        self.app = app
        self.clock = clock
        self.started_at: Optional[float] = None
        self.deadline: Optional[float] = None
        self._generation = 0
        self._lock = threading.Lock()

    @property
    def generation(self) -> int:
        return self._generation

    def is_current(self, generation: int) -> bool:
        with self._lock:
            return generation == self._generation and self.deadline is not None

    def remaining(self) -> Optional[float]:
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - self.clock())

    def start(self, seconds: int, on_tick: Callable[[], None]) -> int:
        with self._lock:
            self._generation += 1
            generation = self._generation
            self.started_at = self.clock()
            self.deadline = self.started_at + seconds
        log.info(f"[timer-set] generation={generation} duration={seconds}s")
        if scheduler_enabled(self.app):
            socketio.start_background_task(self._worker, generation, self.started_at, seconds, on_tick)
        return generation

    def cancel(self) -> None:
        with self._lock:
            if self.deadline is None:
                return
            self._generation += 1
            self.deadline = None
            self.started_at = None
        log.info(f"[timer-cancel] generation={self._generation}")

    def _worker(self, generation: int, started_at: float, seconds: int, on_tick: Callable[[], None]) -> None:
        try:
            hb = int(self.app.config.get('TIMER_HEARTBEAT_SEC', 0))
        except (TypeError, ValueError):
            hb = 0
        for k in range(1, seconds + 1):
            socketio.sleep(max(0.0, started_at + k - self.clock()))
            with self.app.app_context():
                if not self.is_current(generation):
                    log.info(f"[timer-abort] generation={generation} superseded")
                    return
                if hb > 0 and k % hb == 0:
                    log.info(f"[timer-heartbeat] generation={generation} remaining={seconds - k}s")
                if k == seconds:
                    log.info(f"[timer-fire] generation={generation}")
                on_tick()
