from flask import Blueprint, jsonify, current_app
from flask_login import login_required
from trivia.errors import EmptyPool, InvalidTransition
from trivia.services.game.presenter import get_presenter


presenter = Blueprint('presenter', __name__)


def _refused(exc):
    # Invalid operator actions are refused without changing state
    current_app.logger.info(f"[presenter-refused] {exc.__class__.__name__}: {exc.message}")
    payload = get_presenter().snapshot()
    payload['refused'] = exc.message
    return jsonify(payload), exc.status_code


@presenter.route('/state', methods=['GET'])
@login_required
def state():
    return jsonify(get_presenter().snapshot())


@presenter.route('/roulette', methods=['POST'])
@login_required
def start_roulette():
    try:
        return jsonify(get_presenter().start_roulette())
    except InvalidTransition as exc:
        return _refused(exc)


@presenter.route('/spin', methods=['POST'])
@login_required
def spin():
    ctl = get_presenter()
    try:
        selected = ctl.spin()
    except (InvalidTransition, EmptyPool) as exc:
        return _refused(exc)
    payload = ctl.snapshot()
    if selected is None:
        payload['refused'] = 'Already spinning'
    return jsonify(payload), 202 if selected is not None and ctl.spinning else 200


@presenter.route('/skip', methods=['POST'])
@login_required
def skip():
    try:
        return jsonify(get_presenter().skip())
    except InvalidTransition as exc:
        return _refused(exc)


@presenter.route('/next', methods=['POST'])
@login_required
def next_round():
    try:
        return jsonify(get_presenter().next_round())
    except InvalidTransition as exc:
        return _refused(exc)


@presenter.route('/end', methods=['POST'])
@login_required
def end_session():
    return jsonify(get_presenter().end_session())
