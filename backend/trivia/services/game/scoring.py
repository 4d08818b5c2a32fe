import math
from typing import Any, Mapping


def _setting(settings: Any, name: str):
    if isinstance(settings, Mapping):
        return settings[name]
    return getattr(settings, name)


def score(is_correct: bool, elapsed_seconds: float, settings) -> int:
    """Points awarded for one answer.

    Correct answers earn ``points_base`` plus ``points_factor`` for every
    second left on the question timer, so the award decays linearly to
    ``points_base`` at the deadline and stays there for late answers.
    Incorrect answers earn nothing. ``settings`` may be a Settings row or
    its ``to_dict()`` form.
    """
    if not is_correct:
        return 0
    timer = float(_setting(settings, 'question_timer'))
    base = int(_setting(settings, 'points_base'))
    factor = float(_setting(settings, 'points_factor'))
    elapsed = max(0.0, float(elapsed_seconds))
    remaining = max(0.0, timer - elapsed)
    return base + int(math.floor(remaining * factor))
