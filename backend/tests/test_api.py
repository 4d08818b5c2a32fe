import io


def _live_question(admin_client):
    admin_client.post('/api/presenter/roulette')
    res = admin_client.post('/api/presenter/spin')
    assert res.status_code == 200
    return res.get_json()['question']


def test_login_rejects_bad_password(client):
    res = client.post('/login', json={'password': 'nope'})
    assert res.status_code == 401
    assert client.get('/check_login').get_json()['success'] is False


def test_admin_routes_require_login(client):
    assert client.get('/api/admin/settings').status_code == 401
    assert client.post('/api/presenter/spin').status_code == 401
    assert client.post('/api/admin/reset').status_code == 401


def test_public_settings_hide_password(client):
    data = client.get('/api/game/settings').get_json()
    assert data['question_timer'] == 20
    assert data['points_base'] == 1000
    assert 'admin_password' not in data


def test_update_settings(admin_client, client):
    res = admin_client.put('/api/admin/settings', json={'game_title': 'Pub Quiz', 'question_timer': 30,
                                                         'primary_color': '#123abc'})
    assert res.status_code == 200
    assert client.get('/api/game/settings').get_json()['game_title'] == 'Pub Quiz'

    res = admin_client.put('/api/admin/settings', json={'question_timer': 0})
    assert res.status_code == 400
    res = admin_client.put('/api/admin/settings', json={'primary_color': 'red'})
    assert res.status_code == 400


def test_changed_admin_password_is_used_for_login(admin_client, client):
    admin_client.put('/api/admin/settings', json={'admin_password': 's3cret'})
    assert client.post('/login', json={'password': 'letmein'}).status_code == 401
    assert client.post('/login', json={'password': 's3cret'}).status_code == 200


def test_question_crud(admin_client):
    res = admin_client.post('/api/admin/questions', json={
        'question_text': 'Colour of the sky?', 'options': ['Blue', 'Green', 'Red'], 'correct_option': 0,
    })
    assert res.status_code == 201
    qid = res.get_json()['id']

    res = admin_client.post('/api/admin/questions', json={
        'question_text': 'Too few', 'options': ['a', 'b'], 'correct_option': 0,
    })
    assert res.status_code == 400
    res = admin_client.post('/api/admin/questions', json={
        'question_text': 'Bad index', 'options': ['a', 'b', 'c'], 'correct_option': 3,
    })
    assert res.status_code == 400

    listed = admin_client.get('/api/admin/questions').get_json()
    assert [q['id'] for q in listed] == [qid]

    assert admin_client.delete(f'/api/admin/questions/{qid}').status_code == 200
    assert admin_client.delete(f'/api/admin/questions/{qid}').status_code == 404


def test_live_question_cannot_be_deleted(admin_client, questions):
    live = _live_question(admin_client)
    res = admin_client.delete(f"/api/admin/questions/{live['id']}")
    assert res.status_code == 409


def test_csv_import(admin_client):
    csv_text = (
        'Question,Opt1,Opt2,Opt3,Correct\n'
        'Capital of Peru?,Lima,Quito,Bogota,1\n'
        'Short row,a,b\n'
        'Largest ocean?,Atlantic,Indian,Pacific,3\n'
    )
    res = admin_client.post('/api/admin/questions/import',
                            data={'file': (io.BytesIO(csv_text.encode('utf-8')), 'questions.csv')},
                            content_type='multipart/form-data')
    assert res.status_code == 201
    body = res.get_json()
    assert body['imported'] == 2
    assert [q['correct_option'] for q in body['questions']] == [0, 2]


def test_csv_import_without_valid_rows(admin_client):
    res = admin_client.post('/api/admin/questions/import',
                            data={'file': (io.BytesIO(b'Question,Opt1\n'), 'empty.csv')},
                            content_type='multipart/form-data')
    assert res.status_code == 400


def test_join_and_answer_over_http(admin_client, client, questions):
    assert client.post('/api/game/players', json={'nickname': 'ana'}).status_code == 409

    admin_client.post('/api/presenter/roulette')
    assert client.get('/api/game/control').get_json()['state'] == 'OPEN_IDLE'

    res = client.post('/api/game/players', json={'nickname': 'ana'})
    assert res.status_code == 201
    player = res.get_json()
    assert client.post('/api/game/players', json={'nickname': 'ana'}).status_code == 409
    assert client.post('/api/game/players', json={'nickname': ''}).status_code == 400

    res = admin_client.post('/api/presenter/spin')
    live = res.get_json()['question']
    assert 'correct_option' not in live
    assert 'correct_option' not in client.get(f"/api/game/questions/{live['id']}").get_json()

    correct = next(q['correct_option'] for q in questions if q['id'] == live['id'])
    res = client.post(f"/api/game/players/{player['id']}/answers", json={
        'question_id': live['id'], 'option_index': correct, 'elapsed_seconds': 4.25,
    })
    assert res.status_code == 201
    assert res.get_json()['score'] == 1157

    res = client.post(f"/api/game/players/{player['id']}/answers", json={
        'question_id': live['id'], 'option_index': correct, 'elapsed_seconds': 5,
    })
    assert res.status_code == 409

    board = client.get('/api/game/leaderboard').get_json()
    assert board['players'][0] == {'id': player['id'], 'nickname': 'ana', 'score': 1157, 'rank': 1}


def test_answer_after_skip_is_rejected(admin_client, client, questions):
    admin_client.post('/api/presenter/roulette')
    player = client.post('/api/game/players', json={'nickname': 'bo'}).get_json()
    live = admin_client.post('/api/presenter/spin').get_json()['question']
    res = admin_client.post('/api/presenter/skip')
    assert res.get_json()['phase'] == 'RECAP'
    assert 'correct_option' in res.get_json()['question']

    res = client.post(f"/api/game/players/{player['id']}/answers", json={
        'question_id': live['id'], 'option_index': 0, 'elapsed_seconds': 1,
    })
    assert res.status_code == 409
    assert res.get_json()['kind'] == 'InvalidTransition'


def test_presenter_refusals(admin_client):
    res = admin_client.post('/api/presenter/spin')
    assert res.status_code == 409
    assert res.get_json()['phase'] == 'LOBBY'

    admin_client.post('/api/presenter/roulette')
    res = admin_client.post('/api/presenter/spin')
    assert res.status_code == 409
    assert res.get_json()['refused'] == 'No questions loaded.'
    assert res.get_json()['phase'] == 'ROULETTE'


def test_reset_removes_players(admin_client, client, questions):
    admin_client.post('/api/presenter/roulette')
    player = client.post('/api/game/players', json={'nickname': 'ana'}).get_json()
    admin_client.post('/api/presenter/spin')

    res = admin_client.post('/api/admin/reset')
    assert res.status_code == 200
    assert res.get_json()['players_removed'] == 1
    assert res.get_json()['control']['game_status'] == 'CLOSED'

    res = client.get(f"/api/game/players/{player['id']}")
    assert res.status_code == 410
    assert res.get_json()['kind'] == 'StaleIdentity'
    res = client.post(f"/api/game/players/{player['id']}/answers", json={
        'question_id': questions[0]['id'], 'option_index': 0, 'elapsed_seconds': 1,
    })
    assert res.status_code == 409
    assert admin_client.get('/api/presenter/state').get_json()['phase'] == 'LOBBY'


def test_stale_player_answer_is_gone(admin_client, client, questions):
    admin_client.post('/api/presenter/roulette')
    player = client.post('/api/game/players', json={'nickname': 'cy'}).get_json()
    live = admin_client.post('/api/presenter/spin').get_json()['question']
    assert admin_client.post('/api/admin/roster/clear').get_json() == {'players_removed': 1}
    res = client.post(f"/api/game/players/{player['id']}/answers", json={
        'question_id': live['id'], 'option_index': 0, 'elapsed_seconds': 1,
    })
    assert res.status_code == 410


def test_public_question_never_reveals_answer(client, questions):
    for question in questions:
        res = client.get(f"/api/game/questions/{question['id']}")
        assert res.status_code == 200
        assert 'correct_option' not in res.get_json()
        assert res.get_json()['options'] == question['options']


def test_unknown_player_is_stale(client):
    res = client.get('/api/game/players/4242')
    assert res.status_code == 410
    assert res.get_json()['kind'] == 'StaleIdentity'


def test_xlsx_import(admin_client):
    from openpyxl import Workbook

    workbook = Workbook()
    sheet = workbook.active
    sheet.append(['Pregunta', 'Opcion 1', 'Opcion 2', 'Opcion 3', 'Correcta'])
    sheet.append(['Capital of Peru?', 'Lima', 'Quito', 'Bogota', 1])
    sheet.append(['Largest ocean?', 'Atlantic', 'Indian', 'Pacific', 3])
    buf = io.BytesIO()
    workbook.save(buf)
    buf.seek(0)

    res = admin_client.post('/api/admin/questions/import', data={'file': (buf, 'questions.xlsx')},
                            content_type='multipart/form-data')
    assert res.status_code == 201
    body = res.get_json()
    assert body['imported'] == 2
    assert [q['correct_option'] for q in body['questions']] == [0, 2]


def test_broken_xlsx_is_rejected(admin_client):
    res = admin_client.post('/api/admin/questions/import',
                            data={'file': (io.BytesIO(b'not a workbook'), 'questions.xlsx')},
                            content_type='multipart/form-data')
    assert res.status_code == 400
