from __future__ import annotations

from enum import StrEnum


class ProductFamily(StrEnum):
    """Catalog product families editable by the administrator."""

    DATA = "data"
    SMS = "sms"


class OrderStatus(StrEnum):
    """Well-known order states.

    The admin path stores any uppercase status verbatim, so ``Order.status``
    is a plain string and these values are only the ones with dedicated
    customer notifications.
    """

    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


class WithdrawalStatus(StrEnum):
    """Withdrawal request status assigned on creation."""

    PENDING = "PENDING"
