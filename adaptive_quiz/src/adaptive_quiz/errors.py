"""
Quiz session errors.

Every failure the controller reports derives from QuizError so the
embedding caller can surface it for display or retry.
"""


class QuizError(Exception):
    """Base class for quiz session failures."""


class MissingIdentity(QuizError):
    """No learner identity was available to start a session."""


class ValidationError(QuizError):
    """An operation was rejected locally before any network call."""


class SessionBusy(QuizError):
    """A request for this session is still outstanding."""


class SessionAlreadyStarted(QuizError):
    """initialize() was called after the first question arrived."""


class ProviderFailure(QuizError):
    """Question generation failed or returned success=false."""


class EvaluatorFailure(QuizError):
    """Answer evaluation failed or returned success=false."""


class MasteryStoreFailure(QuizError):
    """The stored mastery value could not be read."""
