"""Error taxonomy shared by the store, the game services and the HTTP layer."""


class TriviaError(Exception):
    status_code = 400

    def __init__(self, message=None):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__

    def to_dict(self):
        return {'error': self.message, 'kind': self.__class__.__name__}


class NotFound(TriviaError):
    """A record (or a singleton row) is missing from the store."""
    status_code = 404


class Conflict(TriviaError):
    """A uniqueness rule was violated (nickname taken, question already answered)."""
    status_code = 409


class InvalidTransition(TriviaError):
    """A state machine refused an operation in its current state."""
    status_code = 409


class EmptyPool(TriviaError):
    """The roulette was asked to pick from zero questions."""
    status_code = 409


class StaleIdentity(TriviaError):
    """A device holds a player id the store no longer knows."""
    status_code = 410


class ValidationError(TriviaError):
    status_code = 400
