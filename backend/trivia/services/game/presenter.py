"""Presenter view controller.

Pipeline: LOBBY -> ROULETTE -> QUESTION -> RECAP -> ROULETTE -> ...

The presenter is the only writer of Game Control. Operator actions and
countdown ticks are serialized by one lock; a spin in flight blocks further
spins. The countdown deactivates the question at zero, which locks out late
answers for every participant at the same instant.
"""

import logging
import random
import threading
import time
from typing import Any, Dict, List, Optional

from flask import current_app

from trivia import socketio
from trivia.errors import EmptyPool, InvalidTransition, TriviaError
from trivia.models import SETTINGS_ID
from .control import CLOSED, GameControlMachine, derive_state
from .leaderboard import Leaderboard
from .roulette import select_next
from .scheduler import CountdownTimer, scheduler_enabled

log = logging.getLogger(__name__)

LOBBY = 'LOBBY'
ROULETTE = 'ROULETTE'
QUESTION = 'QUESTION'
RECAP = 'RECAP'


class PresenterController:
    def __init__(self, app, store, rng: Optional[random.Random] = None, clock=time.monotonic):
        self.app = app
        self.store = store
        self.rng = rng
        self.control = GameControlMachine(store)
        self.leaderboard = Leaderboard(store, size=int(app.config.get('LEADERBOARD_SIZE', 20)),
                                       on_update=self._broadcast)
        self.timer = CountdownTimer(app, clock=clock)
        self.phase = LOBBY
        self.spinning = False
        self.current_question: Optional[Dict[str, Any]] = None
        self.remaining: Optional[int] = None
        self._lock = threading.RLock()
        self._loaded = False

    def settings(self) -> Dict[str, Any]:
        return self.store.get('settings', SETTINGS_ID)

    def pool(self) -> List[Dict[str, Any]]:
        return self.store.query('questions')

    def warnings(self, pool_size: int) -> List[str]:
        out = []
        if pool_size == 0:
            out.append('No questions loaded.')
        limit = self.settings().get('questions_limit')
        if limit and limit > pool_size:
            out.append(f'questions_limit is {limit} but only {pool_size} questions are available.')
        return out

    def load(self) -> 'PresenterController':
        """Attach to the store. A game left open by a previous presenter resumes
        at the roulette with no live question."""
        with self._lock:
            if self._loaded:
                return self
            self.settings()
            self.leaderboard.watch()
            if derive_state(self.control.snapshot()) != CLOSED:
                self.control.deactivate()
                self.phase = ROULETTE
            self._loaded = True
        return self

    def start_roulette(self) -> Dict[str, Any]:
        with self._lock:
            if self.phase != LOBBY:
                raise InvalidTransition(f'start_roulette is not available in {self.phase}')
            self.control.open()
            self.phase = ROULETTE
            log.info("[roulette] presenter entered roulette")
        self._broadcast()
        return self.snapshot()

    def spin(self) -> Optional[Dict[str, Any]]:
        """Pick and publish the next question. Returns the pick, or None when a
        spin is already running."""
        with self._lock:
            if self.spinning:
                log.info("[spin-refused] already spinning")
                return None
            if self.phase != ROULETTE:
                raise InvalidTransition(f'spin is not available in {self.phase}')
            pool = self.pool()
            if not pool:
                raise EmptyPool('No questions loaded.')
            self.spinning = True
            self.current_question = None
            try:
                self.control.deactivate()
                selected = select_next(pool, self.rng)
            except Exception:
                self.spinning = False
                raise
            log.info(f"[spin] selected question={selected['id']} pool={len(pool)}")
        self._broadcast()

        delay = float(self.app.config.get('SPIN_DURATION_SEC', 0) or 0)
        if scheduler_enabled(self.app):
            socketio.start_background_task(self._spin_worker, selected, delay)
        else:
            if delay > 0:
                socketio.sleep(delay)
            self._publish(selected)
        return selected

    def _spin_worker(self, selected: Dict[str, Any], delay: float) -> None:
        socketio.sleep(delay)
        with self.app.app_context():
            try:
                self._publish(selected)
            except TriviaError as exc:
                log.warning(f"[spin-failed] question={selected['id']} {exc.message}")

    def _publish(self, selected: Dict[str, Any]) -> None:
        with self._lock:
            try:
                if self.phase != ROULETTE:
                    log.info(f"[spin-abort] phase changed to {self.phase} during spin")
                    return
                self.control.activate(selected['id'])
            finally:
                self.spinning = False
            timer = int(self.settings()['question_timer'])
            self.current_question = selected
            self.remaining = timer
            self.phase = QUESTION
            self.timer.start(timer, self.tick)
        self._broadcast()

    def tick(self) -> None:
        """One countdown second. At zero the question is deactivated."""
        with self._lock:
            if self.phase != QUESTION or self.remaining is None:
                return
            self.remaining = max(0, self.remaining - 1)
            if self.remaining == 0:
                self._end_question('timer')
        self._broadcast()

    def skip(self) -> Dict[str, Any]:
        with self._lock:
            if self.phase != QUESTION:
                raise InvalidTransition(f'skip is not available in {self.phase}')
            self._end_question('skip')
        self._broadcast()
        return self.snapshot()

    def _end_question(self, reason: str) -> None:
        self.timer.cancel()
        self.control.deactivate()
        self.remaining = 0
        self.phase = RECAP
        qid = self.current_question['id'] if self.current_question else None
        log.info(f"[recap] question={qid} reason={reason}")

    def next_round(self) -> Dict[str, Any]:
        with self._lock:
            if self.phase != RECAP:
                raise InvalidTransition(f'next_round is not available in {self.phase}')
            self.current_question = None
            self.remaining = None
            self.phase = ROULETTE
        self._broadcast()
        return self.snapshot()

    def end_session(self) -> Dict[str, Any]:
        with self._lock:
            self.timer.cancel()
            self.control.close()
            self.current_question = None
            self.remaining = None
            self.spinning = False
            self.phase = LOBBY
            log.info("[end] presenter closed the game")
        self._broadcast()
        return self.snapshot()

    def stop(self) -> None:
        """Detach from the store. A spin still in flight will not publish."""
        with self._lock:
            self.timer.cancel()
            self.leaderboard.stop()
            self.phase = LOBBY
            self._loaded = False

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            pool_size = self.store.count('questions')
            question = None
            if self.current_question:
                question = dict(self.current_question)
                if self.phase != RECAP:
                    question.pop('correct_option', None)
            remaining = self.timer.remaining()
            return {
                'phase': self.phase,
                'spinning': self.spinning,
                'question': question,
                'remaining': self.remaining,
                'deadline': time.time() + remaining if (remaining is not None and self.phase == QUESTION) else None,
                'leaderboard': self.leaderboard.to_dict(),
                'pool_size': pool_size,
                'warnings': self.warnings(pool_size),
                'control': self.control.snapshot(),
            }

    def _broadcast(self) -> None:
        if not self._loaded:
            return
        socketio.emit('presenter_update', {'phase': self.phase, 'remaining': self.remaining,
                                           'spinning': self.spinning},
                      to='presenter', namespace='/ws')


def get_presenter(app=None) -> PresenterController:
    """The app's single presenter controller, created and loaded on first use."""
    from trivia import store
    app = app or current_app._get_current_object()
    presenter = app.extensions.get('trivia_presenter')
    if presenter is None:
        presenter = PresenterController(app, store)
        app.extensions['trivia_presenter'] = presenter
    return presenter.load()
