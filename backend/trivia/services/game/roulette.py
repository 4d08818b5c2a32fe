import random
from typing import Optional, Sequence, TypeVar

from trivia.errors import EmptyPool

T = TypeVar('T')


def select_next(pool: Sequence[T], rng: Optional[random.Random] = None) -> T:
    """Pick the next question uniformly at random, with replacement.

    Questions already asked stay in the pool, so repeats within a session
    are expected.
    """
    if not pool:
        raise EmptyPool('No questions available to spin')
    return (rng or random).choice(list(pool))
