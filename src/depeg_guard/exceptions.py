# src/depeg_guard/exceptions.py

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from depeg_guard.models import PolicyDecision


class GuardError(Exception):
    """Base class for every error raised by the guard."""

    pass


class InvalidConfig(GuardError):
    """A configuration failed validation. The instance must not be used."""

    pass


class ConfigError(InvalidConfig):
    """Settings could not be loaded from file or environment."""

    pass


class EmptyLog(GuardError):
    """An observation log was queried before anything was appended."""

    pass


class NonMonotonicTimestamp(GuardError):
    """An append carried a timestamp older than the newest observation."""

    pass


class TradeRejected(GuardError):
    """
    Raised by the pre-trade hook when a trade must not proceed.
    The full decision is attached so the caller can decide whether to re-submit.
    """

    def __init__(self, decision: "PolicyDecision", message: str | None = None):
        self.decision = decision
        super().__init__(message or f"[{decision.pool_id}] trade rejected: {decision.reason}")


class StaleReference(TradeRejected):
    pass


class SizeExceeded(TradeRejected):
    pass


class CriticalDeviation(TradeRejected):
    pass
