"""Validation helpers for user-provided text."""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import Final

from .constants import DISALLOWED_PINS, SAFARICOM_PATTERN
from .exceptions import CommandUsageError, RuleViolationError

_SAFARICOM_RE: Final[re.Pattern[str]] = re.compile(SAFARICOM_PATTERN)
_PIN_RE: Final[re.Pattern[str]] = re.compile(r"^[0-9]{4}$")


def is_whole_number(text: str) -> bool:
    """True for plain ASCII digits, the only form ``int()`` ids accept here."""

    return text.isascii() and text.isdigit()


def is_safaricom_number(text: str) -> bool:
    return bool(_SAFARICOM_RE.match(text.strip()))


def validate_safaricom_number(text: str) -> str:
    """Return the trimmed number or raise if it is not a Safaricom line."""

    number = text.strip()
    if not is_safaricom_number(number):
        raise RuleViolationError(
            "❌ Invalid number. Must be Safaricom format (07XXXXXXXX or 01XXXXXXXX)."
        )
    return number


def parse_amount(text: str, *, usage: str | None = None) -> Decimal:
    """Parse a currency amount.

    Args:
        text: Raw token typed by the sender.
        usage: Optional usage hint used as the error message.

    Raises:
        CommandUsageError: If ``text`` is not a finite number.
    """

    try:
        amount = Decimal(text.strip().replace(",", ""))
    except InvalidOperation as exc:
        raise CommandUsageError(
            usage or f"❌ '{text}' is not a valid amount."
        ) from exc
    if not amount.is_finite():
        raise CommandUsageError(usage or f"❌ '{text}' is not a valid amount.")
    return amount


def parse_positive_amount(text: str) -> Decimal:
    try:
        amount = parse_amount(text)
    except CommandUsageError as exc:
        raise RuleViolationError("❌ Amount must be a positive number.") from exc
    if amount <= 0:
        raise RuleViolationError("❌ Amount must be a positive number.")
    return amount


def validate_pin(text: str) -> str:
    pin = text.strip()
    if not _PIN_RE.match(pin):
        raise RuleViolationError("❌ PIN must be exactly 4 digits.")
    if pin in DISALLOWED_PINS:
        raise RuleViolationError(
            "❌ That PIN is too easy to guess."
            " Choose something other than 1234 or 0000."
        )
    return pin


def mask_identifier(identifier: str) -> str:
    """Hide the middle of a user identifier, e.g. ``2547****678``."""

    visible = identifier.split("@", 1)[0]
    if len(visible) <= 4:
        return "*" * len(visible)
    if len(visible) <= 7:
        return f"{visible[:2]}{'*' * (len(visible) - 4)}{visible[-2:]}"
    return f"{visible[:4]}{'*' * (len(visible) - 7)}{visible[-3:]}"
