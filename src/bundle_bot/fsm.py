"""Dialogue steps and the transition table driving them."""

from __future__ import annotations

from enum import StrEnum
from typing import Final


class Step(StrEnum):
    MAIN = "main"
    DATA_CATEGORIES = "data_categories"
    DATA_ITEMS = "data_items"
    SMS_CATEGORIES = "sms_categories"
    SMS_ITEMS = "sms_items"
    AIRTIME_AMOUNT = "airtime_amount"
    ORDER_RECIPIENT = "order_recipient"
    ORDER_PAYMENT = "order_payment"
    MY_REFERRALS_MENU = "my_referrals_menu"
    WITHDRAW_REQUEST = "withdraw_request"
    WITHDRAW_PIN = "withdraw_pin"
    SET_PIN = "set_pin"


class Signal(StrEnum):
    """Input classes that move a session out of its current step.

    Numbered menu choices are matched by their literal text instead.
    """

    ACCEPTED = "accepted"
    REJECTED = "rejected"


class IllegalTransitionError(LookupError):
    """Raised when a step has no outgoing edge for the given input."""


TRANSITIONS: Final[dict[tuple[Step, str], Step]] = {
    (Step.MAIN, "1"): Step.DATA_CATEGORIES,
    (Step.MAIN, "2"): Step.SMS_CATEGORIES,
    (Step.MAIN, "3"): Step.AIRTIME_AMOUNT,
    (Step.MAIN, "4"): Step.MY_REFERRALS_MENU,
    (Step.DATA_CATEGORIES, Signal.ACCEPTED): Step.DATA_ITEMS,
    (Step.DATA_ITEMS, Signal.ACCEPTED): Step.ORDER_RECIPIENT,
    (Step.SMS_CATEGORIES, Signal.ACCEPTED): Step.SMS_ITEMS,
    (Step.SMS_ITEMS, Signal.ACCEPTED): Step.ORDER_RECIPIENT,
    (Step.AIRTIME_AMOUNT, Signal.ACCEPTED): Step.ORDER_RECIPIENT,
    (Step.ORDER_RECIPIENT, Signal.ACCEPTED): Step.ORDER_PAYMENT,
    (Step.ORDER_PAYMENT, Signal.ACCEPTED): Step.MAIN,
    (Step.MY_REFERRALS_MENU, "2"): Step.WITHDRAW_REQUEST,
    (Step.MY_REFERRALS_MENU, "4"): Step.SET_PIN,
    (Step.WITHDRAW_REQUEST, Signal.ACCEPTED): Step.WITHDRAW_PIN,
    (Step.WITHDRAW_PIN, Signal.ACCEPTED): Step.MY_REFERRALS_MENU,
    (Step.WITHDRAW_PIN, Signal.REJECTED): Step.MY_REFERRALS_MENU,
    (Step.SET_PIN, Signal.ACCEPTED): Step.MY_REFERRALS_MENU,
}

# Where "0" leads from each step.
PARENTS: Final[dict[Step, Step | None]] = {
    Step.MAIN: None,
    Step.DATA_CATEGORIES: Step.MAIN,
    Step.DATA_ITEMS: Step.DATA_CATEGORIES,
    Step.SMS_CATEGORIES: Step.MAIN,
    Step.SMS_ITEMS: Step.SMS_CATEGORIES,
    Step.AIRTIME_AMOUNT: Step.MAIN,
    Step.ORDER_RECIPIENT: Step.MAIN,
    Step.ORDER_PAYMENT: Step.ORDER_RECIPIENT,
    Step.MY_REFERRALS_MENU: Step.MAIN,
    Step.WITHDRAW_REQUEST: Step.MY_REFERRALS_MENU,
    Step.WITHDRAW_PIN: Step.WITHDRAW_REQUEST,
    Step.SET_PIN: Step.MY_REFERRALS_MENU,
}


def transition(step: Step, signal: str) -> Step:
    """Return the step reached from ``step`` on ``signal``."""

    try:
        return TRANSITIONS[(step, signal)]
    except KeyError as exc:
        raise IllegalTransitionError(
            f"No transition from {step} on {signal!r}"
        ) from exc


def has_transition(step: Step, signal: str) -> bool:
    return (step, signal) in TRANSITIONS


def parent_of(step: Step) -> Step | None:
    return PARENTS[step]
