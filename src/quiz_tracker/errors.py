"""Error types surfaced by the tracker."""


class QuizTrackerError(Exception):
    """Base class for all tracker errors."""


class NotFound(QuizTrackerError):
    """A referenced user, course or test does not exist."""


class Conflict(QuizTrackerError):
    """A unique field (email, course order number) is already taken."""


class InvalidInput(QuizTrackerError):
    """Malformed input such as an empty option list or a bad answer index."""


class StoreFailure(QuizTrackerError):
    """The underlying database failed; the unit of work was rolled back."""
