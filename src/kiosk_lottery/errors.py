from __future__ import annotations


class LotteryError(RuntimeError):
    """Base class for every error raised by the prize draw."""


class ConfigError(LotteryError):
    """config.json is unreadable or holds values of the wrong type."""


class ValidationError(LotteryError):
    """A prize tier or a participant ID is outside what the draw accepts."""


class DrawError(LotteryError):
    """A draw could not produce a winner."""

    def __init__(self, message: str, prize_tier: int) -> None:
        super().__init__(message)
        self.prize_tier = prize_tier


class PoolExhausted(DrawError):
    """No eligible participant is left in the pool serving the tier."""


class SelectionExhausted(DrawError):
    """Rejection sampling gave up; winner accounting and exclusions disagree."""


class PersistenceError(LotteryError):
    """The draw ledger could not be written or deleted."""


class VerificationError(LotteryError):
    """A ledger file failed the consistency audit."""
