from flask import Blueprint, jsonify, request, current_app
from trivia import store
from trivia.errors import StaleIdentity, ValidationError
from trivia.models import GAME_CONTROL_ID, SETTINGS_ID
from trivia.services.game.answers import join_game, player_exists, submit_answer
from trivia.services.game.control import derive_state
from trivia.services.game.leaderboard import rank


game = Blueprint('game', __name__)


def _int_arg(data, name):
    try:
        return int(data.get(name))
    except (TypeError, ValueError):
        raise ValidationError(f'{name} must be an integer')


@game.route('/settings', methods=['GET'])
def get_settings():
    return jsonify(store.get('settings', SETTINGS_ID))


@game.route('/control', methods=['GET'])
def get_control():
    control = store.get('game_control', GAME_CONTROL_ID)
    payload = dict(control)
    payload['state'] = derive_state(control)
    return jsonify(payload)


@game.route('/questions/<int:question_id>', methods=['GET'])
def get_question(question_id):
    question = store.get('questions', question_id)
    # Participants learn the correct option from their own answer result only
    question.pop('correct_option', None)
    return jsonify(question)


@game.route('/players', methods=['POST'])
def join():
    data = request.get_json(silent=True) or {}
    player = join_game(store, data.get('nickname'))
    return jsonify(player), 201


@game.route('/players/<int:player_id>', methods=['GET'])
def get_player(player_id):
    if not player_exists(store, player_id):
        raise StaleIdentity(f'Player {player_id} no longer exists')
    return jsonify(store.get('players', player_id))


@game.route('/players/<int:player_id>/answers', methods=['POST'])
def answer(player_id):
    data = request.get_json(silent=True) or {}
    question_id = _int_arg(data, 'question_id')
    option_index = _int_arg(data, 'option_index')
    elapsed = data.get('elapsed_seconds', 0)
    result = submit_answer(store, player_id, question_id, option_index, elapsed)
    return jsonify(result), 201


@game.route('/leaderboard', methods=['GET'])
def leaderboard():
    size = int(current_app.config.get('LEADERBOARD_SIZE', 20))
    players = rank(store.query('players', order_by='score', descending=True, limit=size))
    return jsonify({
        'players': [dict(p, rank=i + 1) for i, p in enumerate(players)],
        'total': store.count('players'),
    })
