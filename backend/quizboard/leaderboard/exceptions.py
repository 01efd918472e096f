"""Leaderboard fetch error taxonomy."""

from .models import Scope


class FetchError(Exception):
    """Base exception for a failed leaderboard fetch."""

    def __init__(self, message: str, scope: Scope | None = None):
        super().__init__(message)
        self.scope = scope


class TransientFetchError(FetchError):
    """Provider or network failure."""

    pass


class MalformedResponseError(FetchError):
    """Provider returned rows violating the entry contract."""

    pass


class StaleActivationError(Exception):
    """Fetch resolved after its activation was invalidated."""

    def __init__(self, token: int, current: int):
        super().__init__(f"activation {token} superseded by {current}")
        self.token = token
        self.current = current
