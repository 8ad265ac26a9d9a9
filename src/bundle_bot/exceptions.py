"""Custom exceptions used across the bundle bot package."""

from __future__ import annotations


class BotError(Exception):
    """Base error for failures reported back to the sender as text."""


class CommandUsageError(BotError):
    """Raised when a command has the wrong shape or an unparsable number."""


class RuleViolationError(BotError):
    """Raised when well-formed input breaks a business rule."""


class NotFoundError(BotError):
    """Raised when an order, referral code or withdrawal does not exist."""


class InsufficientFundsError(RuleViolationError):
    """Raised when a withdrawal exceeds the available earnings."""


class IdentifierExhaustedError(RuntimeError):
    """Raised when no unique identifier could be generated."""
