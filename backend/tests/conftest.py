import os
import sys
import pytest

# Ensure the backend root (containing the `trivia` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from trivia import create_app, db, socketio, store as trivia_store


ADMIN_PASSWORD = 'letmein'


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_ENABLED = False
    CORS_ORIGINS = []
    BCRYPT_LOG_ROUNDS = 4
    ADMIN_PASSWORD = ADMIN_PASSWORD
    DEFAULT_QUESTION_TIMER_SEC = 20
    DEFAULT_POINTS_BASE = 1000
    DEFAULT_POINTS_FACTOR = 10
    SPIN_DURATION_SEC = 0
    LEADERBOARD_SIZE = 20
    TIMER_HEARTBEAT_SEC = 0


class ScheduledTestConfig(TestConfig):
    ENABLE_SCHEDULER_IN_TESTS = True
    SPIN_DURATION_SEC = 0.5


def _app_for(config_class):
    application = create_app(config_class)
    with application.app_context():
        # Ensure models are imported so tables are created
        import trivia.models  # noqa: F401
        from trivia.services.admin.content import seed_defaults
        db.create_all()
        seed_defaults(application.config)
        yield application
        presenter = application.extensions.get('trivia_presenter')
        if presenter is not None:
            presenter.stop()
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def flask_app():
    yield from _app_for(TestConfig)


@pytest.fixture()
def scheduled_app():
    """App whose spin delay and countdown run as real background tasks."""
    yield from _app_for(ScheduledTestConfig)


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def admin_client(flask_app):
    test_client = flask_app.test_client()
    res = test_client.post('/login', json={'password': ADMIN_PASSWORD})
    assert res.status_code == 200
    return test_client


@pytest.fixture()
def store(flask_app):
    return trivia_store


@pytest.fixture()
def questions(store):
    return [
        store.insert('questions', {'question_text': 'Capital of France?', 'options': ['Paris', 'Rome', 'Madrid'], 'correct_option': 0}),
        store.insert('questions', {'question_text': '2 + 2 = ?', 'options': ['3', '4', '5', '22'], 'correct_option': 1}),
        store.insert('questions', {'question_text': 'Largest planet?', 'options': ['Mars', 'Venus', 'Jupiter'], 'correct_option': 2}),
    ]


@pytest.fixture()
def presenter(flask_app):
    from trivia.services.game.presenter import get_presenter
    return get_presenter(flask_app)


class FakeClock:
    """Monotonic clock the test advances by hand."""

    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass
