"""Game Control state machine over the GameControl singleton.

States are derived from the persisted record every time, never cached:

    CLOSED         game_status == CLOSED
    OPEN_IDLE      game_status == OPEN, no active question
    OPEN_QUESTION  game_status == OPEN, a question is active

Only the presenter writes this record. Each transition commits before it
returns, and re-applying a transition is a no-op, so a retried call after a
lost response is always safe.
"""

import logging
from typing import Any, Dict

from trivia.errors import InvalidTransition, NotFound
from trivia.models import GAME_CONTROL_ID, STATUS_CLOSED, STATUS_OPEN

log = logging.getLogger(__name__)

CLOSED = 'CLOSED'
OPEN_IDLE = 'OPEN_IDLE'
OPEN_QUESTION = 'OPEN_QUESTION'


def derive_state(record: Dict[str, Any]) -> str:
    if record.get('game_status') != STATUS_OPEN:
        return CLOSED
    if record.get('is_active') and record.get('active_question_id') is not None:
        return OPEN_QUESTION
    return OPEN_IDLE


class GameControlMachine:
    def __init__(self, store, control_id: int = GAME_CONTROL_ID):
        self.store = store
        self.control_id = control_id

    def snapshot(self) -> Dict[str, Any]:
        return self.store.get('game_control', self.control_id)

    def state(self) -> str:
        return derive_state(self.snapshot())

    def _write(self, current: Dict[str, Any], **values) -> Dict[str, Any]:
        if all(current.get(k) == v for k, v in values.items()):
            return current
        return self.store.update('game_control', self.control_id, values)

    def open(self) -> Dict[str, Any]:
        current = self.snapshot()
        if derive_state(current) != CLOSED:
            return current
        log.info(f"[open] control={self.control_id}")
        return self._write(current, game_status=STATUS_OPEN, is_active=False, active_question_id=None)

    def close(self) -> Dict[str, Any]:
        current = self.snapshot()
        log.info(f"[close] control={self.control_id} from={derive_state(current)}")
        # Closing also clears the active question
        return self._write(current, game_status=STATUS_CLOSED, is_active=False, active_question_id=None)

    def activate(self, question_id) -> Dict[str, Any]:
        current = self.snapshot()
        if derive_state(current) == CLOSED:
            raise InvalidTransition('Cannot activate a question while the game is closed')
        if question_id is None or not self.store.exists('questions', question_id):
            raise InvalidTransition(f'Question {question_id} does not exist')
        log.info(f"[activate] control={self.control_id} question={question_id}")
        return self._write(current, is_active=True, active_question_id=question_id)

    def deactivate(self) -> Dict[str, Any]:
        current = self.snapshot()
        if derive_state(current) != OPEN_QUESTION:
            return current
        log.info(f"[deactivate] control={self.control_id} question={current.get('active_question_id')}")
        return self._write(current, is_active=False, active_question_id=None)


def ensure_control(store, control_id: int = GAME_CONTROL_ID) -> Dict[str, Any]:
    try:
        return store.get('game_control', control_id)
    except NotFound:
        return store.insert('game_control', {
            'id': control_id,
            'game_status': STATUS_CLOSED,
            'is_active': False,
            'active_question_id': None,
        })
