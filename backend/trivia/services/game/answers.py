"""Participant writes: joining the roster and submitting a scored answer.

Shared by the HTTP endpoints and the in-process participant controller so
both paths enforce the same rules.
"""

import logging
from typing import Any, Dict

from trivia.errors import Conflict, InvalidTransition, NotFound, StaleIdentity, ValidationError
from trivia.models import GAME_CONTROL_ID, SETTINGS_ID
from .control import CLOSED, OPEN_QUESTION, derive_state
from .scoring import score

log = logging.getLogger(__name__)

NICKNAME_MAX_LENGTH = 15


def join_game(store, nickname: str) -> Dict[str, Any]:
    nickname = (nickname or '').strip()
    if not nickname:
        raise ValidationError('Nickname is required')
    if len(nickname) > NICKNAME_MAX_LENGTH:
        raise ValidationError(f'Nickname must be at most {NICKNAME_MAX_LENGTH} characters')
    control = store.get('game_control', GAME_CONTROL_ID)
    if derive_state(control) == CLOSED:
        raise InvalidTransition('The game is not open for players')
    if store.count('players', {'nickname': nickname}):
        raise Conflict('Nickname already taken, try another!')
    player = store.insert('players', {'nickname': nickname, 'score': 0})
    log.info(f"[join] player={player['id']} nickname={nickname!r}")
    return player


def player_exists(store, player_id) -> bool:
    return store.exists('players', player_id)


def submit_answer(store, player_id, question_id, option_index, elapsed_seconds) -> Dict[str, Any]:
    """Score one answer and add it to the player's total.

    The Answer row is inserted before the score moves, so a duplicate
    submission fails with Conflict without touching the player. The score
    update itself is a plain read-modify-write on the player's own row.
    """
    try:
        option_index = int(option_index)
        elapsed_seconds = float(elapsed_seconds)
    except (TypeError, ValueError):
        raise ValidationError('option_index and elapsed_seconds must be numbers')

    control = store.get('game_control', GAME_CONTROL_ID)
    state = derive_state(control)
    if state == CLOSED:
        raise InvalidTransition('The game is closed')
    if state != OPEN_QUESTION or control['active_question_id'] != question_id:
        raise InvalidTransition(f'Question {question_id} is not accepting answers')

    if not store.exists('players', player_id):
        raise StaleIdentity(f'Player {player_id} no longer exists')
    try:
        question = store.get('questions', question_id)
    except NotFound:
        raise InvalidTransition(f'Question {question_id} does not exist')
    if not 0 <= option_index < len(question['options']):
        raise ValidationError(f'Option {option_index} is out of range')

    settings = store.get('settings', SETTINGS_ID)
    correct = option_index == question['correct_option']
    points = score(correct, elapsed_seconds, settings)

    try:
        store.insert('answers', {
            'player_id': player_id,
            'question_id': question_id,
            'option_index': option_index,
            'correct': correct,
            'points': points,
            'elapsed_seconds': max(0.0, elapsed_seconds),
        })
    except Conflict:
        raise Conflict(f'Player {player_id} already answered question {question_id}')

    current = store.get('players', player_id)
    total = current['score'] or 0
    if points:
        total = store.update('players', player_id, {'score': total + points})['score']
    log.info(f"[answer] player={player_id} question={question_id} correct={correct} points={points} total={total}")
    return {
        'question_id': question_id,
        'correct': correct,
        'points': points,
        'score': total,
        'correct_option': question['correct_option'],
    }
