from __future__ import annotations

from decimal import Decimal

import pytest

from bundle_bot.dialogue import DialogueEngine
from bundle_bot.enums import OrderStatus
from bundle_bot.fsm import Step
from bundle_bot.orders import OrderLedger
from bundle_bot.referrals import ReferralLedger
from bundle_bot.sessions import SessionStore

from tests.factories import ADMIN, CUSTOMER, REFERRER, texts_for


def _send(dialogue: DialogueEngine, *texts: str, sender: str = CUSTOMER) -> list[str]:
    """Send ``texts`` in order and return the texts of the last reply batch."""

    replies = []
    for text in texts:
        replies = dialogue.handle(sender, text)
    return texts_for(replies, sender)


def test_menu_resets_session(dialogue: DialogueEngine, sessions: SessionStore) -> None:
    _send(dialogue, "1", "2")
    assert sessions.get(CUSTOMER).step is Step.DATA_ITEMS

    texts = _send(dialogue, "MENU")

    assert "Main Menu" in texts[0]
    assert sessions.get(CUSTOMER).step is Step.MAIN


def test_unknown_text_at_main_shows_help(dialogue: DialogueEngine) -> None:
    texts = _send(dialogue, "hello there")
    assert 'Type "menu"' in texts[0]


def test_data_order_flow(
    dialogue: DialogueEngine, orders: OrderLedger, sessions: SessionStore
) -> None:
    texts = _send(dialogue, "menu", "1")
    assert "1) Hourly" in texts[0]

    texts = _send(dialogue, "daily")
    assert "1) 1.25GB @ KES 55 (Valid Till Midnight)" in texts[0]

    texts = _send(dialogue, "2")
    assert "FY'S-100001" in texts[0]
    order = orders.require("FY'S-100001")
    assert order.package == "1GB (Daily DATA, 24 Hours)"
    assert order.amount == Decimal("99")
    assert order.status == OrderStatus.PENDING

    texts = _send(dialogue, "0712345678")
    assert "payment number" in texts[0]

    replies = dialogue.handle(CUSTOMER, "0798765432")
    summary = texts_for(replies, CUSTOMER)[0]
    assert "Order Summary" in summary
    assert "0701339573 (Camlus)" in summary
    assert "PAID FY'S-100001" in summary
    admin_notice = texts_for(replies, ADMIN)[0]
    assert "update FY'S-100001 COMPLETED" in admin_notice

    order = orders.require("FY'S-100001")
    assert order.recipient == "0712345678"
    assert order.payment == "0798765432"
    assert sessions.get(CUSTOMER).step is Step.MAIN


def test_sms_subcategory_by_number(
    dialogue: DialogueEngine, orders: OrderLedger
) -> None:
    _send(dialogue, "2", "2", "1")

    assert orders.require("FY'S-100001").package == "1000 SMS (Weekly SMS, Weekly)"


def test_invalid_recipient_keeps_step(
    dialogue: DialogueEngine, sessions: SessionStore
) -> None:
    texts = _send(dialogue, "1", "1", "1", "0812345678")

    assert "Invalid number" in texts[0]
    assert sessions.get(CUSTOMER).step is Step.ORDER_RECIPIENT


@pytest.mark.parametrize("choice", ["9", "²"])
def test_invalid_bundle_number(
    dialogue: DialogueEngine, orders: OrderLedger, choice: str
) -> None:
    texts = _send(dialogue, "1", "1", choice)

    assert "Invalid bundle number" in texts[0]
    assert orders.all() == []


def test_airtime_order(dialogue: DialogueEngine, orders: OrderLedger) -> None:
    texts = _send(dialogue, "3", "5")
    assert "AIRTIME" in texts[0]
    assert orders.all() == []

    _send(dialogue, "150")

    order = orders.require("FY'S-100001")
    assert order.package == "Airtime KES 150"
    assert order.amount == Decimal("150")


def test_back_navigation(dialogue: DialogueEngine, sessions: SessionStore) -> None:
    _send(dialogue, "1", "weekly")
    assert sessions.get(CUSTOMER).step is Step.DATA_ITEMS

    texts = _send(dialogue, "0")
    assert sessions.get(CUSTOMER).step is Step.DATA_CATEGORIES
    assert "DATA BUNDLES" in texts[0]

    _send(dialogue, "0")
    assert sessions.get(CUSTOMER).step is Step.MAIN

    texts = _send(dialogue, "0")
    assert "Main Menu" in texts[0]


def test_back_from_payment_returns_to_recipient(
    dialogue: DialogueEngine, sessions: SessionStore
) -> None:
    _send(dialogue, "1", "1", "1", "0712345678")
    assert sessions.get(CUSTOMER).step is Step.ORDER_PAYMENT

    texts = _send(dialogue, "0")

    session = sessions.get(CUSTOMER)
    assert session.step is Step.ORDER_RECIPIENT
    assert session.order_id == "FY'S-100001"
    assert "FY'S-100001" in texts[0]


def test_status_only_shows_own_orders(dialogue: DialogueEngine) -> None:
    _send(dialogue, "1", "1", "1")

    own = _send(dialogue, "status fy's-100001")
    other = _send(dialogue, "status FY'S-100001", sender=REFERRER)

    assert "Status: *PENDING*" in own[0]
    assert "not found" in other[0]


def test_paid_confirms_and_notifies_admin(
    dialogue: DialogueEngine, orders: OrderLedger
) -> None:
    _send(dialogue, "1", "1", "1", "0712345678", "0712345678")

    replies = dialogue.handle(CUSTOMER, "PAID FY'S-100001")

    assert "CONFIRMED" in texts_for(replies, CUSTOMER)[0]
    assert texts_for(replies, ADMIN)
    assert orders.require("FY'S-100001").status == OrderStatus.CONFIRMED

    again = _send(dialogue, "paid FY'S-100001")
    assert "already" in again[0]


def test_ref_command_records_referral(
    dialogue: DialogueEngine, referrals: ReferralLedger
) -> None:
    code = referrals.get_or_create(REFERRER).code

    texts = _send(dialogue, f"ref {code.lower()}")

    assert "applied" in texts[0]
    assert referrals.referrer_of(CUSTOMER).owner == REFERRER  # type: ignore[union-attr]
    assert "No changes" in _send(dialogue, f"ref {code}")[0]
    assert "not found" in _send(dialogue, "ref ZZZZZZ")[0]


def test_referral_link_creates_code(
    dialogue: DialogueEngine, referrals: ReferralLedger
) -> None:
    texts = _send(dialogue, "4", "3", sender=REFERRER)

    assert "REF1" in texts[0]
    assert "https://wa.me/254700000009?text=ref%20REF1" in texts[0]
    assert referrals.get(REFERRER) is not None


def test_withdraw_below_minimum_without_account(
    dialogue: DialogueEngine, referrals: ReferralLedger, sessions: SessionStore
) -> None:
    texts = _send(dialogue, "menu", "4", "2")

    assert "Minimum withdrawal is KES 20" in texts[0]
    assert referrals.get(CUSTOMER) is None
    assert sessions.get(CUSTOMER).step is Step.MY_REFERRALS_MENU


def test_withdraw_requires_pin(
    dialogue: DialogueEngine, referrals: ReferralLedger
) -> None:
    referrals.get_or_create(CUSTOMER)
    referrals.credit(CUSTOMER, Decimal("100"))

    texts = _send(dialogue, "4", "2")

    assert "set a withdrawal PIN" in texts[0]


@pytest.fixture()
def funded_customer(referrals: ReferralLedger) -> None:
    referrals.set_pin(CUSTOMER, "2468")
    referrals.credit(CUSTOMER, Decimal("100"))


@pytest.mark.usefixtures("funded_customer")
def test_withdrawal_with_correct_pin(
    dialogue: DialogueEngine, referrals: ReferralLedger, sessions: SessionStore
) -> None:
    _send(dialogue, "menu", "4", "2")
    assert sessions.get(CUSTOMER).step is Step.WITHDRAW_REQUEST
    texts = _send(dialogue, "50 0712345678")
    assert "Enter your PIN" in texts[0]

    replies = dialogue.handle(CUSTOMER, "2468")

    record = referrals.get(CUSTOMER)
    assert record is not None
    assert len(record.withdrawals) == 1
    withdrawal = record.withdrawals[0]
    assert withdrawal.amount == Decimal("50")
    assert withdrawal.status == "PENDING"
    assert record.earnings == Decimal("50")
    assert "Withdrawal Requested" in texts_for(replies, CUSTOMER)[0]
    assert f"withdraw update {record.code} {withdrawal.id} APPROVED" in texts_for(
        replies, ADMIN
    )[0]
    assert sessions.get(CUSTOMER).step is Step.MY_REFERRALS_MENU


@pytest.mark.usefixtures("funded_customer")
@pytest.mark.parametrize("pin", ["1357", "24é8", "٢٤٦٨"])
def test_wrong_pin_discards_withdrawal(
    dialogue: DialogueEngine,
    referrals: ReferralLedger,
    sessions: SessionStore,
    pin: str,
) -> None:
    _send(dialogue, "menu", "4", "2", "50 0712345678")

    texts = _send(dialogue, pin)

    record = referrals.get(CUSTOMER)
    assert record is not None
    assert record.withdrawals == []
    assert record.earnings == Decimal("100")
    assert "Wrong PIN" in texts[0]
    session = sessions.get(CUSTOMER)
    assert session.step is Step.MY_REFERRALS_MENU
    assert session.pending_amount is None


@pytest.mark.usefixtures("funded_customer")
@pytest.mark.parametrize(
    "request_text,expected",
    [
        ("500 0712345678", "Insufficient earnings"),
        ("10 0712345678", "Minimum withdrawal"),
        ("50", "Usage"),
        ("fifty 0712345678", "positive number"),
        ("50 0812345678", "Invalid number"),
    ],
)
def test_withdraw_request_validation(
    dialogue: DialogueEngine, sessions: SessionStore, request_text: str, expected: str
) -> None:
    _send(dialogue, "4", "2")

    texts = _send(dialogue, request_text)

    assert expected in texts[0]
    assert sessions.get(CUSTOMER).step is Step.WITHDRAW_REQUEST


def test_set_pin_from_referrals_menu(
    dialogue: DialogueEngine, referrals: ReferralLedger, sessions: SessionStore
) -> None:
    _send(dialogue, "4", "4")
    assert sessions.get(CUSTOMER).step is Step.SET_PIN

    weak = _send(dialogue, "1234")
    assert "too easy" in weak[0]
    assert sessions.get(CUSTOMER).step is Step.SET_PIN

    texts = _send(dialogue, "2468")

    assert "PIN saved" in texts[0]
    assert referrals.verify_pin(CUSTOMER, "2468")
    assert sessions.get(CUSTOMER).step is Step.MY_REFERRALS_MENU


def test_referred_users_are_masked(
    dialogue: DialogueEngine, referrals: ReferralLedger, orders: OrderLedger
) -> None:
    code = referrals.get_or_create(REFERRER).code
    referrals.record_referral(CUSTOMER, code)
    first = orders.create(customer=CUSTOMER, package="p", amount=Decimal("10"))
    orders.create(customer=CUSTOMER, package="q", amount=Decimal("10"))
    orders.update_status(first.order_id, "CANCELLED")

    texts = _send(dialogue, "4", "5", sender=REFERRER)

    assert "2547*****111 - 2 orders, 1 cancelled" in texts[0]
    assert CUSTOMER not in texts[0]


def test_earnings_view_lists_withdrawals(
    dialogue: DialogueEngine, referrals: ReferralLedger
) -> None:
    referrals.set_pin(CUSTOMER, "2468")
    referrals.credit(CUSTOMER, Decimal("80"))
    referrals.request_withdrawal(CUSTOMER, Decimal("30"), "0712345678")

    texts = _send(dialogue, "4", "1")

    assert "Balance: *KES 50*" in texts[0]
    assert "WD-1: KES 30 to 0712345678 [PENDING]" in texts[0]
