"""Referral ledger: codes, attributions, earnings and withdrawals."""

from __future__ import annotations

import secrets
from collections.abc import Callable
from dataclasses import dataclass
from decimal import Decimal
from threading import RLock

import structlog

from .constants import (
    MAX_ID_ATTEMPTS,
    REFERRAL_CODE_ALPHABET,
    REFERRAL_CODE_LENGTH,
    WITHDRAWAL_ID_PREFIX,
)
from .exceptions import (
    IdentifierExhaustedError,
    InsufficientFundsError,
    NotFoundError,
    RuleViolationError,
)
from .models import ReferralRecord, WithdrawalRequest, format_amount, quantize
from .stores import InMemoryStore, Store
from .validators import validate_pin, validate_safaricom_number


def random_referral_code() -> str:
    return "".join(
        secrets.choice(REFERRAL_CODE_ALPHABET) for _ in range(REFERRAL_CODE_LENGTH)
    )


def random_withdrawal_id() -> str:
    return f"{WITHDRAWAL_ID_PREFIX}{100_000 + secrets.randbelow(900_000)}"


@dataclass(frozen=True, slots=True)
class WithdrawalBounds:
    minimum: Decimal
    maximum: Decimal


@dataclass(frozen=True, slots=True)
class Commission:
    """Earnings credited to a referrer for one completed order."""

    record: ReferralRecord
    amount: Decimal


class ReferralLedger:
    """One record per referring user plus the attribution of referred users."""

    def __init__(
        self,
        bounds: WithdrawalBounds,
        *,
        records: Store[str, ReferralRecord] | None = None,
        codes: Store[str, str] | None = None,
        attributions: Store[str, str] | None = None,
        withdrawal_owners: Store[str, str] | None = None,
        code_factory: Callable[[], str] = random_referral_code,
        withdrawal_id_factory: Callable[[], str] = random_withdrawal_id,
    ) -> None:
        self._records: Store[str, ReferralRecord] = (
            records if records is not None else InMemoryStore()
        )
        # code -> owner
        self._codes: Store[str, str] = codes if codes is not None else InMemoryStore()
        # referred user -> referrer code
        self._attributions: Store[str, str] = (
            attributions if attributions is not None else InMemoryStore()
        )
        # withdrawal id -> owner
        self._withdrawal_owners: Store[str, str] = (
            withdrawal_owners if withdrawal_owners is not None else InMemoryStore()
        )
        self._code_factory = code_factory
        self._withdrawal_id_factory = withdrawal_id_factory
        self._bounds = bounds
        self._bounds_lock = RLock()
        self._logger = structlog.get_logger(__name__)

    # -- bounds -----------------------------------------------------------

    @property
    def bounds(self) -> WithdrawalBounds:
        with self._bounds_lock:
            return self._bounds

    def set_bounds(self, minimum: Decimal, maximum: Decimal) -> WithdrawalBounds:
        if not (Decimal("0") < minimum < maximum):
            raise RuleViolationError(
                "❌ Withdrawal limits must satisfy 0 < min < max."
            )
        with self._bounds_lock:
            self._bounds = WithdrawalBounds(minimum=minimum, maximum=maximum)
        self._logger.info(
            "withdrawal_bounds_updated", minimum=str(minimum), maximum=str(maximum)
        )
        return self._bounds

    # -- records ----------------------------------------------------------

    def get(self, owner: str) -> ReferralRecord | None:
        return self._records.get(owner)

    def require(self, owner: str) -> ReferralRecord:
        return _require(self._records.get(owner), owner)

    def by_code(self, code: str) -> ReferralRecord | None:
        owner = self._codes.get(code.strip().upper())
        if owner is None:
            return None
        return self._records.get(owner)

    def require_code(self, code: str) -> ReferralRecord:
        record = self.by_code(code)
        if record is None:
            raise NotFoundError(f"❌ Referral code {code.upper()} not found.")
        return record

    def all(self) -> list[ReferralRecord]:
        return [record for _, record in self._records.items()]

    def get_or_create(self, owner: str) -> ReferralRecord:
        """Return the owner's record, creating it with a fresh unique code."""

        existing = self._records.get(owner)
        if existing is not None:
            return existing

        code = self._claim_code(owner)
        created = ReferralRecord(owner=owner, code=code)
        if not self._records.put_if_absent(owner, created):
            # Lost a race: release the unused code.
            self._codes.delete(code)
            return self.require(owner)
        self._logger.info("referral_record_created", owner=owner, code=code)
        return created

    def _claim_code(self, owner: str) -> str:
        for _ in range(MAX_ID_ATTEMPTS):
            code = self._code_factory().upper()
            if self._codes.put_if_absent(code, owner):
                return code
        raise IdentifierExhaustedError("Failed to generate unique referral code")

    # -- attribution ------------------------------------------------------

    def referrer_of(self, user: str) -> ReferralRecord | None:
        code = self._attributions.get(user)
        if code is None:
            return None
        return self.by_code(code)

    def record_referral(self, user: str, code: str) -> bool:
        """Attribute ``user`` to the owner of ``code``.

        Returns ``True`` only when a new attribution was stored. Self-referral
        and repeated redemption by an already-attributed user are no-ops.

        Raises:
            NotFoundError: If no record carries ``code``.
        """

        referrer = self.require_code(code)
        if referrer.owner == user:
            return False
        if not self._attributions.put_if_absent(user, referrer.code):
            return False

        def _append(current: ReferralRecord | None) -> ReferralRecord:
            record = _require(current, referrer.owner)
            if user in record.referred:
                return record
            return record.model_copy(update={"referred": [*record.referred, user]})

        self._records.update(referrer.owner, _append)
        self._logger.info("referral_recorded", referrer=referrer.owner, user=user)
        return True

    # -- pin --------------------------------------------------------------

    def set_pin(self, owner: str, pin: str) -> ReferralRecord:
        pin = validate_pin(pin)
        self.get_or_create(owner)
        record = self._records.update(
            owner,
            lambda current: _require(current, owner).model_copy(update={"pin": pin}),
        )
        self._logger.info("referral_pin_set", owner=owner)
        return record

    def verify_pin(self, owner: str, pin: str) -> bool:
        record = self._records.get(owner)
        if record is None or record.pin is None:
            return False
        return secrets.compare_digest(
            record.pin.encode("utf-8"), pin.strip().encode("utf-8")
        )

    # -- earnings ---------------------------------------------------------

    def credit(self, owner: str, amount: Decimal) -> ReferralRecord:
        if amount <= 0:
            raise RuleViolationError("❌ Credit amount must be positive.")
        def _add(current: ReferralRecord | None) -> ReferralRecord:
            record = _require(current, owner)
            return record.model_copy(
                update={"earnings": quantize(record.earnings + amount)}
            )

        record = self._records.update(owner, _add)
        self._logger.info("referral_earnings_credited", owner=owner, amount=str(amount))
        return record

    def accrue_commission(
        self, customer: str, order_amount: Decimal, rate: Decimal
    ) -> Commission | None:
        """Credit the customer's referrer with ``rate`` of the order amount."""

        referrer = self.referrer_of(customer)
        if referrer is None:
            return None
        commission = quantize(order_amount * rate)
        if commission <= 0:
            return None
        record = self.credit(referrer.owner, commission)
        return Commission(record=record, amount=commission)

    # -- withdrawals ------------------------------------------------------

    def check_withdrawal(self, owner: str, amount: Decimal, mpesa_number: str) -> None:
        """Validate a withdrawal request without moving funds."""

        if amount <= 0:
            raise RuleViolationError("❌ Amount must be a positive number.")
        validate_safaricom_number(mpesa_number)
        record = self._records.get(owner)
        earnings = record.earnings if record is not None else Decimal("0")
        bounds = self.bounds
        if amount > earnings:
            raise InsufficientFundsError(
                f"❌ Insufficient earnings. Available: KES {format_amount(earnings)}."
            )
        if amount > bounds.maximum:
            raise RuleViolationError(
                f"❌ Maximum withdrawal is KES {format_amount(bounds.maximum)}."
            )
        if amount < bounds.minimum:
            raise RuleViolationError(
                f"❌ Minimum withdrawal is KES {format_amount(bounds.minimum)}."
            )

    def request_withdrawal(
        self, owner: str, amount: Decimal, mpesa_number: str
    ) -> WithdrawalRequest:
        """Create a PENDING withdrawal and debit the earnings immediately.

        The debit is never reversed automatically; rejecting the request later
        leaves the balance untouched.
        """

        withdrawal_id = self._claim_withdrawal_id(owner)
        created: list[WithdrawalRequest] = []

        def _debit(current: ReferralRecord | None) -> ReferralRecord:
            record = _require(current, owner)
            self.check_withdrawal(owner, amount, mpesa_number)
            withdrawal = WithdrawalRequest(
                id=withdrawal_id,
                amount=quantize(amount),
                mpesa_number=mpesa_number.strip(),
            )
            created.append(withdrawal)
            return record.model_copy(
                update={
                    "earnings": quantize(record.earnings - amount),
                    "withdrawals": [*record.withdrawals, withdrawal],
                }
            )

        try:
            self._records.update(owner, _debit)
        except Exception:
            self._withdrawal_owners.delete(withdrawal_id)
            raise
        withdrawal = created[0]
        self._logger.info(
            "withdrawal_requested",
            owner=owner,
            withdrawal_id=withdrawal.id,
            amount=str(withdrawal.amount),
        )
        return withdrawal

    def update_withdrawal(
        self, code: str, withdrawal_id: str, status: str, remarks: str = ""
    ) -> tuple[ReferralRecord, WithdrawalRequest]:
        referrer = self.require_code(code)
        updated: list[WithdrawalRequest] = []

        def _apply(current: ReferralRecord | None) -> ReferralRecord:
            record = _require(current, referrer.owner)
            withdrawals: list[WithdrawalRequest] = []
            for withdrawal in record.withdrawals:
                if withdrawal.id == withdrawal_id:
                    withdrawal = withdrawal.model_copy(
                        update={"status": status, "remarks": remarks}
                    )
                    updated.append(withdrawal)
                withdrawals.append(withdrawal)
            if not updated:
                raise NotFoundError(
                    f"❌ Withdrawal {withdrawal_id} not found for {referrer.code}."
                )
            return record.model_copy(update={"withdrawals": withdrawals})

        record = self._records.update(referrer.owner, _apply)
        self._logger.info(
            "withdrawal_status_updated",
            owner=record.owner,
            withdrawal_id=withdrawal_id,
            status=status,
        )
        return record, updated[0]

    def _claim_withdrawal_id(self, owner: str) -> str:
        for _ in range(MAX_ID_ATTEMPTS):
            withdrawal_id = self._withdrawal_id_factory()
            if self._withdrawal_owners.put_if_absent(withdrawal_id, owner):
                return withdrawal_id
        raise IdentifierExhaustedError("Failed to generate unique withdrawal id")


def _require(record: ReferralRecord | None, owner: str) -> ReferralRecord:
    if record is None:
        raise NotFoundError(f"❌ No referral account found for {owner}.")
    return record
