import time

import pytest

from trivia import store as trivia_store
from trivia.services.game.control import OPEN_IDLE, OPEN_QUESTION
from trivia.services.game.presenter import QUESTION, RECAP, ROULETTE, get_presenter
from trivia.services.game.scheduler import CountdownTimer


def _wait_for(predicate, timeout=5.0):
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(0.05)
    return predicate()


@pytest.fixture()
def live_presenter(scheduled_app):
    trivia_store.insert('questions', {'question_text': 'Capital of Italy?', 'options': ['Rome', 'Milan', 'Turin'],
                                      'correct_option': 0})
    trivia_store.update('settings', 1, {'question_timer': 2})
    presenter = get_presenter(scheduled_app)
    presenter.start_roulette()
    return presenter


def test_countdown_runs_down_to_recap(live_presenter):
    selected = live_presenter.spin()
    assert selected is not None
    assert live_presenter.spinning is True

    assert _wait_for(lambda: live_presenter.phase == QUESTION)
    time.sleep(0.2)
    assert live_presenter.spinning is False
    assert live_presenter.remaining == 2
    assert live_presenter.control.state() == OPEN_QUESTION

    assert _wait_for(lambda: live_presenter.phase == RECAP)
    time.sleep(0.2)  # let the worker leave its app context
    assert live_presenter.remaining == 0
    assert live_presenter.control.state() == OPEN_IDLE


def test_second_spin_while_spinning_is_ignored(live_presenter):
    first = live_presenter.spin()
    assert first is not None
    assert live_presenter.spin() is None
    assert live_presenter.phase == ROULETTE

    assert _wait_for(lambda: live_presenter.phase == QUESTION)
    assert live_presenter.current_question['id'] == first['id']


def test_skip_stops_the_running_countdown(live_presenter):
    live_presenter.spin()
    assert _wait_for(lambda: live_presenter.phase == QUESTION)
    time.sleep(0.2)
    generation = live_presenter.timer.generation

    live_presenter.skip()
    assert not live_presenter.timer.is_current(generation)
    assert live_presenter.timer.remaining() is None

    time.sleep(2.5)
    assert live_presenter.phase == RECAP
    assert live_presenter.remaining == 0
    assert live_presenter.control.state() == OPEN_IDLE


def test_cancel_drops_later_ticks(scheduled_app):
    timer = CountdownTimer(scheduled_app)
    ticks = []
    generation = timer.start(3, lambda: ticks.append(1))
    assert _wait_for(lambda: len(ticks) >= 1, timeout=3.0)
    timer.cancel()
    assert not timer.is_current(generation)

    time.sleep(2.5)
    assert ticks == [1]


def test_restart_supersedes_previous_countdown(scheduled_app):
    timer = CountdownTimer(scheduled_app)
    first, second = [], []
    timer.start(3, lambda: first.append(1))
    assert _wait_for(lambda: len(first) >= 1, timeout=3.0)
    timer.start(1, lambda: second.append(1))

    time.sleep(2.5)
    assert first == [1]
    assert second == [1]
