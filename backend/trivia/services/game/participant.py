"""Participant controller: one device's view of the game.

The controller never trusts notification payloads. Every Game Control event
triggers a re-fetch of the singleton and a re-derivation of the local
phase, so duplicate or reordered notifications converge on the same state.

Phases: LOADING, CLOSED, JOIN, WAITING, QUESTION, RESULT.
"""

import logging
import time
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from trivia.errors import InvalidTransition, NotFound, StaleIdentity
from trivia.models import GAME_CONTROL_ID, SETTINGS_ID, STATUS_CLOSED
from trivia.store import DELETE, INSERT, UPDATE
from .answers import join_game, player_exists, submit_answer
from .control import OPEN_QUESTION, derive_state
from .session import DeviceSession

log = logging.getLogger(__name__)

LOADING = 'LOADING'
CLOSED = 'CLOSED'
JOIN = 'JOIN'
WAITING = 'WAITING'
QUESTION = 'QUESTION'
RESULT = 'RESULT'

RESET_NOTICE = 'The game has been reset by the presenter.'


class ParticipantController:
    def __init__(self, store, session: Optional[DeviceSession] = None, clock=time.monotonic):
        self.store = store
        self.session = session if session is not None else DeviceSession()
        self.clock = clock
        self.settings: Optional[Dict[str, Any]] = None
        self.game_status = STATUS_CLOSED
        self.player_id: Optional[int] = None
        self.nickname: Optional[str] = None
        self.current_question: Optional[Dict[str, Any]] = None
        self.rendered_at: Optional[float] = None
        self.result: Optional[Dict[str, Any]] = None
        self.notice: Optional[str] = None
        self._subscriptions = []

    @property
    def joined(self) -> bool:
        return self.player_id is not None

    @property
    def phase(self) -> str:
        if self.settings is None:
            return LOADING
        if self.game_status == STATUS_CLOSED:
            return CLOSED
        if not self.joined:
            return JOIN
        if self.result is not None:
            return RESULT
        if self.current_question is not None:
            return QUESTION
        return WAITING

    def load(self) -> 'ParticipantController':
        # Missing Settings is fatal for the view: NotFound propagates
        self.settings = self.store.get('settings', SETTINGS_ID)
        identity = self.session.identity()
        if identity:
            self.player_id, self.nickname = identity
        if not self._subscriptions:
            self._subscriptions = [
                self.store.subscribe('game_control', self._on_control, event_types=[INSERT, UPDATE]),
                self.store.subscribe('players', self._on_player_deleted, event_types=[DELETE],
                                     predicate=self._is_own_row),
            ]
        self.refresh()
        return self

    def close(self) -> None:
        for sub in self._subscriptions:
            sub.cancel()
        self._subscriptions = []

    def verify_identity(self) -> None:
        """Raise StaleIdentity (after logging out) if our player row is gone."""
        if not self.joined:
            return
        if not player_exists(self.store, self.player_id):
            stale = self.player_id
            self.logout(forced=True)
            raise StaleIdentity(f'Player {stale} no longer exists')

    def refresh(self) -> str:
        try:
            control = self.store.get('game_control', GAME_CONTROL_ID)
        except SQLAlchemyError as exc:
            log.warning(f"[refresh-skipped] store read failed: {exc}")
            return self.phase
        try:
            self.verify_identity()
        except StaleIdentity:
            pass
        self.game_status = control['game_status']
        if derive_state(control) == OPEN_QUESTION:
            self._show_question(control['active_question_id'])
        else:
            self.current_question = None
            self.rendered_at = None
            self.result = None
        return self.phase

    def _show_question(self, question_id) -> None:
        if self.current_question and self.current_question['id'] == question_id:
            # Same question re-announced; keep the original render time
            return
        try:
            question = self.store.get('questions', question_id)
        except NotFound:
            log.warning(f"[refresh-skipped] active question {question_id} not readable yet")
            return
        self.current_question = question
        self.rendered_at = self.clock()
        self.result = None
        if self.joined and not self.session.can_answer(question_id):
            self.result = self.session.cached_result(question_id) or {'correct': False, 'score': 0}

    def _is_own_row(self, event) -> bool:
        return self.joined and bool(event.old) and event.old.get('id') == self.player_id

    def _on_control(self, event) -> None:
        self.refresh()

    def _on_player_deleted(self, event) -> None:
        self.logout(forced=True)

    def join(self, nickname: str) -> Dict[str, Any]:
        if self.joined:
            raise InvalidTransition('Already joined')
        player = join_game(self.store, nickname)
        self.session.clear_all()
        self.session.save_identity(player['id'], player['nickname'])
        self.player_id = player['id']
        self.nickname = player['nickname']
        self.notice = None
        if self.current_question is not None:
            self.rendered_at = self.clock()
        return player

    def submit_answer(self, option_index: int) -> Dict[str, Any]:
        if self.phase == RESULT:
            return self.result
        if self.phase != QUESTION:
            raise InvalidTransition(f'Cannot answer in phase {self.phase}')
        question_id = self.current_question['id']
        if not self.session.can_answer(question_id):
            self.result = self.session.cached_result(question_id)
            return self.result
        elapsed = self.clock() - (self.rendered_at if self.rendered_at is not None else self.clock())
        try:
            outcome = submit_answer(self.store, self.player_id, question_id, option_index, elapsed)
        except StaleIdentity:
            self.logout(forced=True)
            raise
        result = {'correct': outcome['correct'], 'score': outcome['score']}
        self.session.record_answer(question_id, result)
        self.result = result
        return result

    def logout(self, forced: bool = False) -> None:
        if forced:
            log.info(f"[forced-logout] player={self.player_id}")
            self.notice = RESET_NOTICE
        self.session.logout()
        self.player_id = None
        self.nickname = None
        self.result = None

    def view(self) -> Dict[str, Any]:
        question = None
        if self.current_question is not None:
            question = dict(self.current_question)
            if self.phase != RESULT:
                question.pop('correct_option', None)
        return {
            'phase': self.phase,
            'player_id': self.player_id,
            'nickname': self.nickname,
            'question': question,
            'result': self.result,
            'notice': self.notice,
            'settings': self.settings,
        }
