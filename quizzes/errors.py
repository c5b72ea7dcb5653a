"""Domain errors raised by the quiz services.

Malformed input is reported with ``django.core.exceptions.ValidationError``;
everything else the services can refuse is one of the classes below.
"""

from __future__ import annotations


class TriviaError(RuntimeError):
    """Base class for service-level failures surfaced to API callers."""


class NotFound(TriviaError):
    """Raised when a user, profile or quiz session id is unknown."""


class InsufficientFunds(TriviaError):
    """Raised when a debit exceeds the user's coin balance."""

    def __init__(self, *, balance: int, requested: int) -> None:
        super().__init__(f"Insufficient coins: balance {balance}, requested {requested}.")
        self.balance = balance
        self.requested = requested


class UpstreamUnavailable(TriviaError):
    """Raised when the external trivia source cannot be reached or parsed."""


class Conflict(TriviaError):
    """Raised when an operation hits a terminal state, e.g. completing twice."""
