import io

from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required
from trivia import store
from trivia.errors import ValidationError
from trivia.models import SETTINGS_ID
from trivia.services.admin import content
from trivia.services.admin.importer import import_questions, import_workbook, is_workbook


admin = Blueprint('admin', __name__)


@admin.route('/settings', methods=['GET'])
@login_required
def get_settings():
    return jsonify(store.get('settings', SETTINGS_ID))


@admin.route('/settings', methods=['PUT'])
@login_required
def put_settings():
    data = request.get_json(silent=True) or {}
    return jsonify(content.update_settings(store, data))


@admin.route('/questions', methods=['GET'])
@login_required
def list_questions():
    return jsonify(content.list_questions(store))


@admin.route('/questions', methods=['POST'])
@login_required
def create_question():
    data = request.get_json(silent=True) or {}
    return jsonify(content.create_question(store, data)), 201


@admin.route('/questions/<int:question_id>', methods=['DELETE'])
@login_required
def delete_question(question_id):
    content.delete_question(store, question_id)
    return jsonify({'success': True})


@admin.route('/questions/import', methods=['POST'])
@login_required
def import_csv():
    upload = request.files.get('file')
    if upload is None:
        raise ValidationError('A CSV or .xlsx file is required in the "file" field')
    if is_workbook(upload.filename):
        created = import_workbook(store, io.BytesIO(upload.read()))
    else:
        text = upload.read().decode('utf-8-sig')
        created = import_questions(store, io.StringIO(text, newline=''))
    return jsonify({'imported': len(created), 'questions': created}), 201


@admin.route('/reset', methods=['POST'])
@login_required
def reset():
    presenter = current_app.extensions.get('trivia_presenter')
    return jsonify(content.reset_game(store, presenter))


@admin.route('/roster/clear', methods=['POST'])
@login_required
def clear_roster():
    return jsonify({'players_removed': content.clear_roster(store)})
