from __future__ import annotations

from decimal import Decimal

import pytest

from bundle_bot.enums import WithdrawalStatus
from bundle_bot.exceptions import (
    InsufficientFundsError,
    NotFoundError,
    RuleViolationError,
)
from bundle_bot.referrals import ReferralLedger, WithdrawalBounds

from tests.factories import CUSTOMER, REFERRER, sequence


def _funded(referrals: ReferralLedger, amount: str = "100") -> None:
    referrals.set_pin(REFERRER, "2468")
    referrals.credit(REFERRER, Decimal(amount))


def test_get_or_create_is_idempotent(referrals: ReferralLedger) -> None:
    first = referrals.get_or_create(REFERRER)
    second = referrals.get_or_create(REFERRER)

    assert first.code == "REF1"
    assert second == first
    assert referrals.by_code("ref1") == first


def test_codes_are_unique_across_owners() -> None:
    codes = iter(["SAME", "SAME", "OTHER"])
    ledger = ReferralLedger(
        WithdrawalBounds(minimum=Decimal("20"), maximum=Decimal("1000")),
        code_factory=lambda: next(codes),
    )

    assert ledger.get_or_create("a").code == "SAME"
    assert ledger.get_or_create("b").code == "OTHER"


def test_record_referral_attributes_user_once(referrals: ReferralLedger) -> None:
    record = referrals.get_or_create(REFERRER)

    assert referrals.record_referral(CUSTOMER, record.code) is True
    assert referrals.record_referral(CUSTOMER, record.code) is False

    stored = referrals.get(REFERRER)
    assert stored is not None
    assert stored.referred == [CUSTOMER]
    assert referrals.referrer_of(CUSTOMER) == stored


def test_self_referral_is_ignored(referrals: ReferralLedger) -> None:
    record = referrals.get_or_create(REFERRER)

    assert referrals.record_referral(REFERRER, record.code) is False
    assert referrals.referrer_of(REFERRER) is None


def test_first_referrer_wins(referrals: ReferralLedger) -> None:
    first = referrals.get_or_create(REFERRER)
    second = referrals.get_or_create("254733333333")
    referrals.record_referral(CUSTOMER, first.code)

    assert referrals.record_referral(CUSTOMER, second.code) is False
    assert referrals.referrer_of(CUSTOMER).owner == REFERRER  # type: ignore[union-attr]


def test_unknown_code_is_rejected(referrals: ReferralLedger) -> None:
    with pytest.raises(NotFoundError):
        referrals.record_referral(CUSTOMER, "NOPE99")


def test_accrue_commission_credits_referrer(referrals: ReferralLedger) -> None:
    record = referrals.get_or_create(REFERRER)
    referrals.record_referral(CUSTOMER, record.code)

    commission = referrals.accrue_commission(CUSTOMER, Decimal("99"), Decimal("0.05"))

    assert commission is not None
    assert commission.amount == Decimal("4.95")
    assert commission.record.earnings == Decimal("4.95")


def test_accrue_commission_without_referrer(referrals: ReferralLedger) -> None:
    assert referrals.accrue_commission(CUSTOMER, Decimal("99"), Decimal("0.05")) is None


def test_set_pin_rejects_weak_pin(referrals: ReferralLedger) -> None:
    with pytest.raises(RuleViolationError):
        referrals.set_pin(REFERRER, "1234")
    assert not referrals.verify_pin(REFERRER, "1234")


def test_verify_pin(referrals: ReferralLedger) -> None:
    referrals.set_pin(REFERRER, "2468")

    assert referrals.verify_pin(REFERRER, "2468")
    assert not referrals.verify_pin(REFERRER, "8642")
    assert not referrals.verify_pin(CUSTOMER, "2468")
    assert not referrals.verify_pin(REFERRER, "24é8")


def test_request_withdrawal_debits_earnings(referrals: ReferralLedger) -> None:
    _funded(referrals)

    withdrawal = referrals.request_withdrawal(REFERRER, Decimal("50"), "0712345678")

    record = referrals.get(REFERRER)
    assert record is not None
    assert withdrawal.id == "WD-1"
    assert withdrawal.status == WithdrawalStatus.PENDING
    assert record.earnings == Decimal("50")
    assert record.withdrawals == [withdrawal]


@pytest.mark.parametrize(
    "amount,number,error",
    [
        ("150", "0712345678", InsufficientFundsError),
        ("10", "0712345678", RuleViolationError),
        ("0", "0712345678", RuleViolationError),
        ("50", "0812345678", RuleViolationError),
    ],
)
def test_request_withdrawal_rejections_leave_balance(
    referrals: ReferralLedger, amount: str, number: str, error: type[Exception]
) -> None:
    _funded(referrals)

    with pytest.raises(error):
        referrals.request_withdrawal(REFERRER, Decimal(amount), number)

    record = referrals.get(REFERRER)
    assert record is not None
    assert record.earnings == Decimal("100")
    assert record.withdrawals == []


def test_withdrawal_above_maximum_is_rejected(referrals: ReferralLedger) -> None:
    _funded(referrals, "5000")

    with pytest.raises(RuleViolationError) as exc:
        referrals.request_withdrawal(REFERRER, Decimal("1500"), "0712345678")
    assert "Maximum" in str(exc.value)


def test_earnings_never_go_negative(referrals: ReferralLedger) -> None:
    _funded(referrals, "60")
    referrals.request_withdrawal(REFERRER, Decimal("40"), "0712345678")

    with pytest.raises(InsufficientFundsError):
        referrals.request_withdrawal(REFERRER, Decimal("40"), "0712345678")

    record = referrals.get(REFERRER)
    assert record is not None
    assert record.earnings == Decimal("20")


def test_set_bounds_requires_ordered_positive_limits(referrals: ReferralLedger) -> None:
    assert referrals.set_bounds(Decimal("50"), Decimal("500")) == WithdrawalBounds(
        minimum=Decimal("50"), maximum=Decimal("500")
    )
    for minimum, maximum in (("0", "10"), ("100", "100"), ("200", "100")):
        with pytest.raises(RuleViolationError):
            referrals.set_bounds(Decimal(minimum), Decimal(maximum))
    assert referrals.bounds.minimum == Decimal("50")


def test_update_withdrawal_does_not_recredit(referrals: ReferralLedger) -> None:
    _funded(referrals)
    withdrawal = referrals.request_withdrawal(REFERRER, Decimal("50"), "0712345678")
    code = referrals.get_or_create(REFERRER).code

    record, updated = referrals.update_withdrawal(
        code, withdrawal.id, "REJECTED", "Wrong number"
    )

    assert updated.status == "REJECTED"
    assert updated.remarks == "Wrong number"
    assert record.earnings == Decimal("50")


def test_update_unknown_withdrawal(referrals: ReferralLedger) -> None:
    _funded(referrals)
    code = referrals.get_or_create(REFERRER).code

    with pytest.raises(NotFoundError):
        referrals.update_withdrawal(code, "WD-404", "APPROVED")


def test_withdrawal_ids_are_unique() -> None:
    ledger = ReferralLedger(
        WithdrawalBounds(minimum=Decimal("1"), maximum=Decimal("1000")),
        code_factory=sequence("C"),
    )
    ledger.set_pin(REFERRER, "2468")
    ledger.credit(REFERRER, Decimal("500"))

    ids = {
        ledger.request_withdrawal(REFERRER, Decimal("1"), "0712345678").id
        for _ in range(100)
    }
    assert len(ids) == 100


def test_require_raises_for_missing_account(referrals: ReferralLedger) -> None:
    with pytest.raises(NotFoundError):
        referrals.require(CUSTOMER)

    created = referrals.get_or_create(CUSTOMER)
    assert referrals.require(CUSTOMER) == created
