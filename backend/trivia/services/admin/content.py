import logging
import re
from typing import Any, Dict, List, Optional

from trivia import bcrypt, db
from trivia.errors import Conflict, NotFound, ValidationError
from trivia.models import GAME_CONTROL_ID, SETTINGS_ID, Settings
from trivia.services.game.control import GameControlMachine, ensure_control

log = logging.getLogger(__name__)

MIN_OPTIONS = 3
MAX_OPTIONS = 4

_COLOR_RE = re.compile(r'^#(?:[0-9a-fA-F]{3}){1,2}$')
_INT_FIELDS = {
    # name: minimum accepted value
    'question_timer': 1,
    'points_base': 0,
    'points_factor': 0,
}


def seed_defaults(config) -> None:
    """Create the Settings and GameControl singletons if they are missing."""
    if db.session.get(Settings, SETTINGS_ID) is None:
        settings = Settings(
            id=SETTINGS_ID,
            question_timer=int(config.get('DEFAULT_QUESTION_TIMER_SEC', 20)),
            points_base=int(config.get('DEFAULT_POINTS_BASE', 1000)),
            points_factor=int(config.get('DEFAULT_POINTS_FACTOR', 10)),
        )
        settings.set_password(config.get('ADMIN_PASSWORD', 'admin'))
        db.session.add(settings)
        db.session.commit()
    from trivia import store
    ensure_control(store, GAME_CONTROL_ID)


def check_admin_password(password: Optional[str]) -> bool:
    settings = db.session.get(Settings, SETTINGS_ID)
    if settings is None:
        raise NotFound('Settings have not been initialised')
    return settings.check_password(password)


def update_settings(store, data: Dict[str, Any]) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    if 'game_title' in data:
        title = (data.get('game_title') or '').strip()
        if not title:
            raise ValidationError('game_title cannot be empty')
        values['game_title'] = title
    if 'logo_url' in data:
        values['logo_url'] = data.get('logo_url') or None
    for name in ('primary_color', 'secondary_color'):
        if name in data:
            color = data.get(name) or ''
            if not _COLOR_RE.match(color):
                raise ValidationError(f'{name} must be a hex color like #1a2b3c')
            values[name] = color
    for name, minimum in _INT_FIELDS.items():
        if name in data:
            try:
                number = int(data.get(name))
            except (TypeError, ValueError):
                raise ValidationError(f'{name} must be an integer')
            if number < minimum:
                raise ValidationError(f'{name} must be at least {minimum}')
            values[name] = number
    if 'questions_limit' in data:
        limit = data.get('questions_limit')
        if limit in (None, ''):
            values['questions_limit'] = None
        else:
            try:
                limit = int(limit)
            except (TypeError, ValueError):
                raise ValidationError('questions_limit must be an integer')
            if limit < 1:
                raise ValidationError('questions_limit must be at least 1')
            values['questions_limit'] = limit
    if data.get('admin_password'):
        values['admin_password'] = bcrypt.generate_password_hash(data['admin_password']).decode('utf-8')
    if not values:
        return store.get('settings', SETTINGS_ID)
    log.info(f"[settings] updated fields={sorted(k for k in values if k != 'admin_password')}")
    return store.update('settings', SETTINGS_ID, values)


def validate_question(data: Dict[str, Any]) -> Dict[str, Any]:
    text = (data.get('question_text') or '').strip()
    if not text:
        raise ValidationError('question_text is required')
    options = data.get('options')
    if not isinstance(options, (list, tuple)):
        raise ValidationError('options must be a list')
    options = [str(o).strip() if o is not None else '' for o in options]
    if not MIN_OPTIONS <= len(options) <= MAX_OPTIONS:
        raise ValidationError(f'A question needs {MIN_OPTIONS} to {MAX_OPTIONS} options')
    if any(not o for o in options):
        raise ValidationError('Options cannot be empty')
    try:
        correct = int(data.get('correct_option', 0))
    except (TypeError, ValueError):
        raise ValidationError('correct_option must be an integer')
    if not 0 <= correct < len(options):
        raise ValidationError('correct_option must index one of the options')
    return {'question_text': text, 'options': options, 'correct_option': correct}


def create_question(store, data: Dict[str, Any]) -> Dict[str, Any]:
    question = store.insert('questions', validate_question(data))
    log.info(f"[question] created id={question['id']}")
    return question


def list_questions(store) -> List[Dict[str, Any]]:
    return store.query('questions', order_by='created_at', descending=True)


def delete_question(store, question_id) -> None:
    control = store.get('game_control', GAME_CONTROL_ID)
    if control.get('is_active') and control.get('active_question_id') == question_id:
        raise Conflict('Cannot delete the question that is currently live')
    store.delete('questions', question_id)
    log.info(f"[question] deleted id={question_id}")


def clear_roster(store) -> int:
    """Delete every player and their answers; Game Control is left alone."""
    store.delete('answers')
    removed = store.delete('players')
    log.info(f"[roster] cleared players={removed}")
    return removed


def reset_game(store, presenter=None) -> Dict[str, Any]:
    """Delete all players and close the game.

    Participants find out through their own player-row DELETE notification
    or, failing that, the identity check on their next state refresh.
    """
    removed = clear_roster(store)
    if presenter is not None:
        presenter.end_session()
        control = presenter.control.snapshot()
    else:
        control = GameControlMachine(store).close()
    log.info(f"[reset] players_removed={removed}")
    return {'players_removed': removed, 'control': control}
