"""Shared constants for the bundle bot."""

from __future__ import annotations

from decimal import Decimal
from typing import Final

SERVICE_NAME: Final[str] = "bundle-bot"
DEFAULT_ENV_FILE: Final[str] = ".env"
SENDER_CTX_KEY: Final[str] = "sender_id"

DEFAULT_BOT_NAME: Final[str] = "FY'S ULTRA BOT"
DEFAULT_PAYMENT_INFO: Final[str] = "0701339573 (Camlus)"
DEFAULT_ORDER_ID_PREFIX: Final[str] = "FY'S-"

# Safaricom numbers: 07XXXXXXXX or 01XXXXXXXX.
SAFARICOM_PATTERN: Final[str] = r"^0[17][0-9]{8}$"

DISALLOWED_PINS: frozenset[str] = frozenset({"1234", "0000"})

REFERRAL_CODE_ALPHABET: Final[str] = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
REFERRAL_CODE_LENGTH: Final[int] = 6
WITHDRAWAL_ID_PREFIX: Final[str] = "WD-"
MAX_ID_ATTEMPTS: Final[int] = 20

DEFAULT_DATA_BUNDLES: dict[str, list[dict[str, object]]] = {
    "hourly": [
        {"id": 1, "name": "1GB", "price": Decimal("19"), "validity": "1 Hour"},
        {"id": 2, "name": "1.5GB", "price": Decimal("49"), "validity": "3 Hours"},
    ],
    "daily": [
        {
            "id": 1,
            "name": "1.25GB",
            "price": Decimal("55"),
            "validity": "Till Midnight",
        },
        {"id": 2, "name": "1GB", "price": Decimal("99"), "validity": "24 Hours"},
        {"id": 3, "name": "250MB", "price": Decimal("20"), "validity": "24 Hours"},
    ],
    "weekly": [
        {"id": 1, "name": "6GB", "price": Decimal("700"), "validity": "7 Days"},
        {"id": 2, "name": "2.5GB", "price": Decimal("300"), "validity": "7 Days"},
        {"id": 3, "name": "350MB", "price": Decimal("50"), "validity": "7 Days"},
    ],
    "monthly": [
        {"id": 1, "name": "1.2GB", "price": Decimal("250"), "validity": "30 Days"},
        {"id": 2, "name": "500MB", "price": Decimal("100"), "validity": "30 Days"},
    ],
}

DEFAULT_SMS_BUNDLES: dict[str, list[dict[str, object]]] = {
    "daily": [
        {"id": 1, "name": "200 SMS", "price": Decimal("10"), "validity": "Daily"},
    ],
    "weekly": [
        {"id": 1, "name": "1000 SMS", "price": Decimal("29"), "validity": "Weekly"},
    ],
}
