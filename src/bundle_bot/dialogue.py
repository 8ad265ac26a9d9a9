"""User-facing state machine turning free text into orders and withdrawals."""

from __future__ import annotations

from collections.abc import Callable
from decimal import Decimal

import structlog

from . import messages
from .catalog import CatalogStore
from .enums import OrderStatus, ProductFamily
from .exceptions import BotError, CommandUsageError, RuleViolationError
from .fsm import Signal, Step, has_transition, transition
from .models import OutboundMessage, Session, format_amount
from .orders import OrderLedger
from .referrals import ReferralLedger
from .sessions import SessionStore
from .shop import ShopProfile
from .validators import (
    is_whole_number,
    mask_identifier,
    parse_amount,
    parse_positive_amount,
    validate_safaricom_number,
)

Replies = list[OutboundMessage]
StepHandler = Callable[[str, Session, str], Replies]

RESET_WORDS = frozenset({"menu", "start", "00"})
BACK_WORD = "0"

_CATEGORY_STEPS = {
    ProductFamily.DATA: Step.DATA_CATEGORIES,
    ProductFamily.SMS: Step.SMS_CATEGORIES,
}
_FAMILY_CHOICES = {"1": ProductFamily.DATA, "2": ProductFamily.SMS}


def _reply(recipient: str, *texts: str) -> Replies:
    return [OutboundMessage(recipient=recipient, text=text) for text in texts]


class DialogueEngine:
    """Interpret one inbound message against the sender's session.

    ``handle`` never raises for user input: business-rule failures become
    reply texts and leave the session where it was.
    """

    def __init__(
        self,
        *,
        catalog: CatalogStore,
        orders: OrderLedger,
        referrals: ReferralLedger,
        sessions: SessionStore,
        shop: ShopProfile,
    ) -> None:
        self._catalog = catalog
        self._orders = orders
        self._referrals = referrals
        self._sessions = sessions
        self._shop = shop
        self._logger = structlog.get_logger(__name__)
        self._handlers: dict[Step, StepHandler] = {
            Step.MAIN: self._on_main,
            Step.DATA_CATEGORIES: self._on_category,
            Step.SMS_CATEGORIES: self._on_category,
            Step.DATA_ITEMS: self._on_item,
            Step.SMS_ITEMS: self._on_item,
            Step.AIRTIME_AMOUNT: self._on_airtime_amount,
            Step.ORDER_RECIPIENT: self._on_recipient,
            Step.ORDER_PAYMENT: self._on_payment,
            Step.MY_REFERRALS_MENU: self._on_referrals_menu,
            Step.WITHDRAW_REQUEST: self._on_withdraw_request,
            Step.WITHDRAW_PIN: self._on_withdraw_pin,
            Step.SET_PIN: self._on_set_pin,
        }

    def handle(self, sender: str, raw_text: str) -> Replies:
        text = raw_text.strip()
        try:
            return self._dispatch(sender, text)
        except BotError as exc:
            return _reply(sender, str(exc))

    def _dispatch(self, sender: str, text: str) -> Replies:
        lowered = text.lower()
        words = text.split()
        verb = words[0].lower() if words else ""

        if lowered in RESET_WORDS:
            self._sessions.reset(sender)
            return _reply(sender, messages.main_menu(self._shop.bot_name))
        if lowered == BACK_WORD:
            return self._go_back(sender)
        if verb == "ref":
            return self._redeem_referral(sender, words)
        if verb == "status":
            return self._order_status(sender, words)
        if verb == "paid":
            return self._assert_paid(sender, words)

        session = self._sessions.get(sender)
        return self._handlers[session.step](sender, session, text)

    # -- global commands --------------------------------------------------

    def _go_back(self, sender: str) -> Replies:
        session = self._sessions.get(sender)
        if session.prev_step is None:
            self._sessions.reset(sender)
            return _reply(sender, messages.main_menu(self._shop.bot_name))
        target = self._sessions.enter(
            sender,
            session.prev_step,
            family=session.family,
            subcategory=session.subcategory,
            order_id=session.order_id,
        )
        return _reply(sender, self._render(sender, target))

    def _redeem_referral(self, sender: str, words: list[str]) -> Replies:
        if len(words) != 2:
            raise CommandUsageError("❌ Usage: ref <CODE>")
        if self._referrals.record_referral(sender, words[1]):
            return _reply(sender, messages.referral_recorded())
        return _reply(sender, "ℹ️ Referral code noted. No changes were needed.")

    def _order_status(self, sender: str, words: list[str]) -> Replies:
        if len(words) != 2:
            raise CommandUsageError("❌ Usage: status <ORDER_ID>")
        order = self._orders.find_for_customer(words[1].upper(), sender)
        return _reply(sender, order.to_message())

    def _assert_paid(self, sender: str, words: list[str]) -> Replies:
        if len(words) != 2:
            raise CommandUsageError("❌ Usage: PAID <ORDER_ID>")
        order = self._orders.confirm_payment(words[1].upper(), sender)
        replies = _reply(sender, messages.payment_asserted(order))
        for admin in self._shop.admin_recipients():
            replies += _reply(admin, messages.admin_payment_asserted(order))
        return replies

    # -- rendering --------------------------------------------------------

    def _render(self, sender: str, session: Session) -> str:
        """Prompt shown when a session (re-)enters its step."""

        step = session.step
        if step is Step.MAIN:
            return messages.main_menu(self._shop.bot_name)
        if step in (Step.DATA_CATEGORIES, Step.SMS_CATEGORIES):
            family = self._family_of(session)
            return messages.category_list(family, self._catalog.subcategories(family))
        if step in (Step.DATA_ITEMS, Step.SMS_ITEMS):
            family = self._family_of(session)
            subcategory = session.subcategory or ""
            return messages.item_list(
                family, subcategory, self._catalog.items(family, subcategory)
            )
        if step is Step.AIRTIME_AMOUNT:
            return messages.airtime_prompt(
                self._shop.airtime_min, self._shop.airtime_max
            )
        if step is Step.ORDER_RECIPIENT:
            return messages.recipient_prompt(session.order_id)
        if step is Step.ORDER_PAYMENT:
            order = self._orders.require(session.order_id or "")
            return messages.payment_prompt(order.recipient or "-")
        if step is Step.MY_REFERRALS_MENU:
            return messages.referrals_menu()
        if step is Step.WITHDRAW_REQUEST:
            return messages.withdraw_prompt(
                self._earnings(sender), self._referrals.bounds
            )
        if step is Step.SET_PIN:
            return messages.set_pin_prompt()
        return messages.help_text(self._shop.bot_name)

    @staticmethod
    def _family_of(session: Session) -> ProductFamily:
        if session.family is not None:
            return session.family
        if session.step in (Step.SMS_CATEGORIES, Step.SMS_ITEMS):
            return ProductFamily.SMS
        return ProductFamily.DATA

    def _earnings(self, sender: str) -> Decimal:
        record = self._referrals.get(sender)
        return record.earnings if record is not None else Decimal("0")

    # -- step handlers ----------------------------------------------------

    def _on_main(self, sender: str, session: Session, text: str) -> Replies:
        choice = text.strip()
        if not has_transition(Step.MAIN, choice):
            return _reply(sender, messages.help_text(self._shop.bot_name))
        family = _FAMILY_CHOICES.get(choice)
        target = self._sessions.enter(
            sender, transition(Step.MAIN, choice), family=family
        )
        return _reply(sender, self._render(sender, target))

    def _on_category(self, sender: str, session: Session, text: str) -> Replies:
        family = self._family_of(session)
        subcategory = self._catalog.resolve_subcategory(family, text)
        if subcategory is None:
            return _reply(
                sender,
                "❌ Invalid category.",
                messages.category_list(family, self._catalog.subcategories(family)),
            )
        target = self._sessions.enter(
            sender,
            transition(session.step, Signal.ACCEPTED),
            family=family,
            subcategory=subcategory,
        )
        return _reply(sender, self._render(sender, target))

    def _on_item(self, sender: str, session: Session, text: str) -> Replies:
        family = self._family_of(session)
        subcategory = session.subcategory or ""
        item = None
        if is_whole_number(text):
            item = self._catalog.find_item(family, subcategory, int(text))
        if item is None:
            return _reply(
                sender, f"❌ Invalid bundle number. {messages.NAVIGATION_HINT}"
            )
        order = self._orders.create(
            customer=sender,
            package=f"{item.name} ({subcategory.title()} {family.value.upper()},"
            f" {item.validity})",
            amount=item.price,
        )
        self._sessions.enter(
            sender,
            transition(session.step, Signal.ACCEPTED),
            family=family,
            subcategory=subcategory,
            order_id=order.order_id,
        )
        return _reply(sender, messages.order_created(order))

    def _on_airtime_amount(self, sender: str, session: Session, text: str) -> Replies:
        amount = parse_positive_amount(text)
        if not (self._shop.airtime_min <= amount <= self._shop.airtime_max):
            raise RuleViolationError(
                messages.airtime_prompt(self._shop.airtime_min, self._shop.airtime_max)
            )
        order = self._orders.create(
            customer=sender,
            package=f"Airtime KES {format_amount(amount)}",
            amount=amount,
        )
        self._sessions.enter(
            sender,
            transition(session.step, Signal.ACCEPTED),
            order_id=order.order_id,
        )
        return _reply(sender, messages.order_created(order))

    def _on_recipient(self, sender: str, session: Session, text: str) -> Replies:
        number = validate_safaricom_number(text)
        order = self._orders.set_recipient(session.order_id or "", number)
        self._sessions.enter(
            sender,
            transition(session.step, Signal.ACCEPTED),
            order_id=order.order_id,
        )
        return _reply(sender, messages.payment_prompt(number))

    def _on_payment(self, sender: str, session: Session, text: str) -> Replies:
        try:
            number = validate_safaricom_number(text)
        except RuleViolationError as exc:
            raise RuleViolationError(
                "❌ Invalid payment number. Must be Safaricom format."
            ) from exc
        order = self._orders.set_payment(session.order_id or "", number)
        self._sessions.enter(sender, transition(session.step, Signal.ACCEPTED))
        self._logger.info("order_details_completed", order_id=order.order_id)
        replies = _reply(sender, messages.order_summary(order, self._shop.payment_info))
        for admin in self._shop.admin_recipients():
            replies += _reply(admin, messages.admin_new_order(order))
        return replies

    def _on_referrals_menu(self, sender: str, session: Session, text: str) -> Replies:
        choice = text.strip()
        if choice == "1":
            return _reply(
                sender,
                messages.earnings_view(
                    self._referrals.get(sender), self._referrals.bounds
                ),
            )
        if choice == "2":
            return self._start_withdrawal(sender)
        if choice == "3":
            record = self._referrals.get_or_create(sender)
            return _reply(
                sender, messages.referral_link(record.code, self._shop.bot_number)
            )
        if choice == "4":
            target = self._sessions.enter(
                sender, transition(Step.MY_REFERRALS_MENU, "4")
            )
            return _reply(sender, self._render(sender, target))
        if choice == "5":
            return _reply(sender, messages.referred_users(self._referred_rows(sender)))
        return _reply(sender, messages.referrals_menu())

    def _start_withdrawal(self, sender: str) -> Replies:
        bounds = self._referrals.bounds
        record = self._referrals.get(sender)
        earnings = self._earnings(sender)
        if earnings < bounds.minimum:
            return _reply(sender, messages.minimum_not_reached(earnings, bounds))
        if record is None or record.pin is None:
            return _reply(sender, messages.pin_required())
        target = self._sessions.enter(sender, transition(Step.MY_REFERRALS_MENU, "2"))
        return _reply(sender, self._render(sender, target))

    def _referred_rows(self, sender: str) -> list[tuple[str, int, int]]:
        record = self._referrals.get(sender)
        if record is None:
            return []
        rows: list[tuple[str, int, int]] = []
        for user in record.referred:
            placed = self._orders.by_customer(user)
            cancelled = sum(1 for o in placed if o.status == OrderStatus.CANCELLED)
            rows.append((mask_identifier(user), len(placed), cancelled))
        return rows

    def _on_withdraw_request(self, sender: str, session: Session, text: str) -> Replies:
        parts = text.split()
        if len(parts) != 2:
            raise CommandUsageError(messages.withdraw_usage())
        try:
            amount = parse_amount(parts[0])
        except CommandUsageError as exc:
            raise RuleViolationError("❌ Amount must be a positive number.") from exc
        self._referrals.check_withdrawal(sender, amount, parts[1])
        self._sessions.enter(
            sender,
            transition(session.step, Signal.ACCEPTED),
            pending_amount=amount,
            pending_number=parts[1],
        )
        return _reply(sender, messages.withdraw_pin_prompt(amount, parts[1]))

    def _on_withdraw_pin(self, sender: str, session: Session, text: str) -> Replies:
        amount = session.pending_amount
        number = session.pending_number
        pin_ok = self._referrals.verify_pin(sender, text)
        if amount is None or number is None or not pin_ok:
            self._sessions.enter(sender, transition(session.step, Signal.REJECTED))
            self._logger.info("withdrawal_cancelled", reason="pin_mismatch")
            return _reply(sender, messages.wrong_pin(), messages.referrals_menu())

        self._sessions.enter(sender, transition(session.step, Signal.ACCEPTED))
        try:
            withdrawal = self._referrals.request_withdrawal(sender, amount, number)
        except BotError as exc:
            return _reply(sender, str(exc), messages.referrals_menu())

        record = self._referrals.require(sender)
        replies = _reply(
            sender, messages.withdrawal_created(withdrawal, record.earnings)
        )
        for admin in self._shop.admin_recipients():
            replies += _reply(
                admin, messages.admin_withdrawal_notice(record, withdrawal)
            )
        return replies

    def _on_set_pin(self, sender: str, session: Session, text: str) -> Replies:
        self._referrals.set_pin(sender, text)
        self._sessions.enter(sender, transition(session.step, Signal.ACCEPTED))
        return _reply(sender, messages.pin_saved(), messages.referrals_menu())
