"""Exceptions raised by the scoring services. The API layer maps them to HTTP codes."""


class ScoringError(Exception):
    pass


class ScoringValidationError(ScoringError, ValueError):
    """Bad input. Raised before anything is written."""


class NotFoundError(ScoringError, LookupError):
    """A referenced league, episode, team or player does not exist."""


class LockedError(ScoringError):
    """The thing being edited is past its deadline or already scored."""
