"""Runtime-mutable shop configuration shared by the dialogue and admin paths."""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal
from threading import RLock

from .config import Settings


class ShopProfile:
    """Display and policy values, some of which the admin may change live."""

    def __init__(
        self,
        *,
        bot_name: str,
        payment_info: str,
        admin_ids: Iterable[str],
        bot_number: str | None = None,
        commission_rate: Decimal = Decimal("0"),
        airtime_min: Decimal = Decimal("10"),
        airtime_max: Decimal = Decimal("10000"),
    ) -> None:
        self.bot_name = bot_name
        self.bot_number = bot_number
        self.admin_ids = frozenset(admin_ids)
        self.commission_rate = commission_rate
        self.airtime_min = airtime_min
        self.airtime_max = airtime_max
        self._payment_info = payment_info
        self._lock = RLock()

    @classmethod
    def from_settings(cls, settings: Settings) -> ShopProfile:
        return cls(
            bot_name=settings.bot_name,
            payment_info=settings.payment_info,
            admin_ids=settings.admin_ids,
            bot_number=settings.bot_number,
            commission_rate=settings.referral.commission_rate,
            airtime_min=settings.airtime.min_amount,
            airtime_max=settings.airtime.max_amount,
        )

    @property
    def payment_info(self) -> str:
        with self._lock:
            return self._payment_info

    def set_payment_info(self, mpesa_number: str, name: str) -> str:
        with self._lock:
            self._payment_info = f"{mpesa_number} ({name})"
            return self._payment_info

    def is_admin(self, sender_id: str) -> bool:
        return sender_id in self.admin_ids

    def admin_recipients(self) -> list[str]:
        return sorted(self.admin_ids)
