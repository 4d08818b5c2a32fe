from flask import Blueprint, request, jsonify
from flask_login import login_user, logout_user, login_required, current_user
from trivia.models import AdminUser
from trivia.services.admin.content import check_admin_password

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the trivia game server!'})


@main.route('/login', methods=['POST', 'OPTIONS'])
def login():
    if request.method == 'OPTIONS':
        return jsonify({'status': 'ok'}), 200
    data = request.get_json(silent=True) or {}
    if check_admin_password(data.get('password')):
        login_user(AdminUser(), remember=True)
        return jsonify({'success': True})
    return jsonify({'success': False, 'message': 'Invalid password'}), 401


@main.route('/check_login', methods=['GET', 'OPTIONS'])
def check_login():
    if request.method == 'OPTIONS':
        return jsonify({'status': 'ok'}), 200
    return jsonify({'success': bool(current_user.is_authenticated)})


@main.route('/logout', methods=['POST', 'OPTIONS'])
@login_required
def logout():
    logout_user()
    return jsonify({'success': True})
