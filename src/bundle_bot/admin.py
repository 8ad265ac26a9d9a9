"""Privileged single-message commands for the shop administrator."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import StrEnum
from typing import Any

import structlog

from . import messages
from .catalog import CatalogStore
from .enums import OrderStatus, ProductFamily
from .exceptions import BotError, CommandUsageError
from .models import OutboundMessage, format_amount
from .orders import OrderLedger
from .referrals import ReferralLedger
from .shop import ShopProfile
from .tokenizer import tokenize
from .validators import is_whole_number, validate_safaricom_number

Replies = list[OutboundMessage]
Args = dict[str, Any]


class ArgKind(StrEnum):
    TEXT = "text"
    UPPER = "upper"
    LOWER = "lower"
    DECIMAL = "decimal"
    INTEGER = "integer"
    FAMILY = "family"
    REST = "rest"


@dataclass(frozen=True, slots=True)
class Arg:
    name: str
    kind: ArgKind = ArgKind.TEXT
    optional: bool = False

    def placeholder(self) -> str:
        if self.kind is ArgKind.REST:
            return f"[{self.name}...]" if self.optional else f"<{self.name}...>"
        if self.kind is ArgKind.FAMILY:
            return "data|sms"
        return f"[{self.name}]" if self.optional else f"<{self.name}>"


@dataclass(frozen=True, slots=True)
class CommandSpec:
    verb: tuple[str, ...]
    args: tuple[Arg, ...]
    handler: Callable[[str, Args], Replies]
    summary: str

    @property
    def usage(self) -> str:
        parts = [*self.verb, *(arg.placeholder() for arg in self.args)]
        return " ".join(parts)

    def parse(self, tokens: Sequence[str]) -> Args:
        """Convert the tokens following the verb into typed arguments."""

        values: Args = {}
        remaining = list(tokens)
        for arg in self.args:
            if arg.kind is ArgKind.REST:
                if not remaining and not arg.optional:
                    raise CommandUsageError(f"❌ Usage: {self.usage}")
                values[arg.name] = " ".join(remaining)
                remaining = []
                continue
            if not remaining:
                if arg.optional:
                    values[arg.name] = None
                    continue
                raise CommandUsageError(f"❌ Usage: {self.usage}")
            values[arg.name] = _convert(arg, remaining.pop(0))
        if remaining:
            raise CommandUsageError(f"❌ Usage: {self.usage}")
        return values


def _convert(arg: Arg, token: str) -> Any:
    if arg.kind is ArgKind.UPPER:
        return token.upper()
    if arg.kind is ArgKind.LOWER:
        return token.lower()
    if arg.kind is ArgKind.DECIMAL:
        try:
            value = Decimal(token.replace(",", ""))
        except InvalidOperation as exc:
            raise CommandUsageError(
                f"❌ {arg.name.title()} must be a number."
            ) from exc
        if not value.is_finite():
            raise CommandUsageError(f"❌ {arg.name.title()} must be a number.")
        return value
    if arg.kind is ArgKind.INTEGER:
        if not is_whole_number(token):
            raise CommandUsageError(f"❌ {arg.name.title()} must be a whole number.")
        return int(token)
    if arg.kind is ArgKind.FAMILY:
        try:
            return ProductFamily(token.lower())
        except ValueError as exc:
            raise CommandUsageError("❌ Product family must be data or sms.") from exc
    return token


class AdminCommandInterpreter:
    """Dispatch table of admin verbs.

    Every command answers the admin with a confirmation or a specific
    rejection; affected users are notified in the same reply batch.
    """

    def __init__(
        self,
        *,
        catalog: CatalogStore,
        orders: OrderLedger,
        referrals: ReferralLedger,
        shop: ShopProfile,
    ) -> None:
        self._catalog = catalog
        self._orders = orders
        self._referrals = referrals
        self._shop = shop
        self._logger = structlog.get_logger(__name__)
        item_args = (
            Arg("family", ArgKind.FAMILY),
            Arg("subcategory", ArgKind.LOWER),
        )
        self._commands: tuple[CommandSpec, ...] = (
            CommandSpec(
                ("update",),
                (
                    Arg("order_id", ArgKind.UPPER),
                    Arg("status", ArgKind.UPPER),
                    Arg("remark", ArgKind.REST, optional=True),
                ),
                self._update_order,
                "Set an order's status and notify the customer",
            ),
            CommandSpec(
                ("set", "payment"),
                (Arg("mpesa_number"), Arg("name", ArgKind.REST)),
                self._set_payment,
                "Change the payment details shown to customers",
            ),
            CommandSpec(
                ("set", "withdrawal"),
                (Arg("min", ArgKind.DECIMAL), Arg("max", ArgKind.DECIMAL)),
                self._set_withdrawal,
                "Change the withdrawal limits",
            ),
            CommandSpec(
                ("add",),
                (
                    *item_args,
                    Arg("name"),
                    Arg("price", ArgKind.DECIMAL),
                    Arg("validity", ArgKind.REST),
                ),
                self._add_item,
                "Add a bundle to a subcategory",
            ),
            CommandSpec(
                ("remove",),
                (*item_args, Arg("id", ArgKind.INTEGER)),
                self._remove_item,
                "Remove a bundle",
            ),
            CommandSpec(
                ("edit",),
                (
                    *item_args,
                    Arg("id", ArgKind.INTEGER),
                    Arg("name"),
                    Arg("price", ArgKind.DECIMAL),
                    Arg("validity", ArgKind.REST),
                ),
                self._edit_item,
                "Replace a bundle's name, price and validity",
            ),
            CommandSpec(
                ("referrals", "all"),
                (),
                self._list_referrals,
                "Summarise every referral account",
            ),
            CommandSpec(
                ("withdraw", "update"),
                (
                    Arg("ref_code", ArgKind.UPPER),
                    Arg("withdrawal_id", ArgKind.UPPER),
                    Arg("status", ArgKind.UPPER),
                    Arg("remarks", ArgKind.REST, optional=True),
                ),
                self._update_withdrawal,
                "Set a withdrawal's status (earnings are not re-credited)",
            ),
            CommandSpec(
                ("credit",),
                (
                    Arg("ref_code", ArgKind.UPPER),
                    Arg("amount", ArgKind.DECIMAL),
                    Arg("remarks", ArgKind.REST, optional=True),
                ),
                self._credit,
                "Manually credit a referrer's earnings",
            ),
            CommandSpec(
                ("orders",),
                (Arg("status", ArgKind.UPPER, optional=True),),
                self._list_orders,
                "List orders, optionally filtered by status",
            ),
            CommandSpec(("help",), (), self._help, "Show this reference"),
        )
        self._leading_words = frozenset(spec.verb[0] for spec in self._commands)

    @property
    def commands(self) -> tuple[CommandSpec, ...]:
        return self._commands

    def accepts(self, text: str) -> bool:
        """Whether ``text`` starts with an admin verb."""

        words = text.split(maxsplit=1)
        return bool(words) and words[0].lower() in self._leading_words

    def handle(self, sender: str, text: str) -> Replies:
        tokens = tokenize(text.strip())
        try:
            spec = self._resolve(tokens)
            args = spec.parse(tokens[len(spec.verb) :])
            replies = spec.handler(sender, args)
        except BotError as exc:
            self._logger.info("admin_command_rejected", reason=str(exc))
            return _reply(sender, str(exc))
        self._logger.info("admin_command_applied", command=" ".join(spec.verb))
        return replies

    def _resolve(self, tokens: Sequence[str]) -> CommandSpec:
        lowered = [token.lower() for token in tokens]
        best: CommandSpec | None = None
        for spec in self._commands:
            if tuple(lowered[: len(spec.verb)]) == spec.verb:
                if best is None or len(spec.verb) > len(best.verb):
                    best = spec
        if best is not None:
            return best
        leading = lowered[0] if lowered else ""
        usages = [
            f"• {spec.usage}" for spec in self._commands if spec.verb[0] == leading
        ]
        raise CommandUsageError("❌ Usage:\n" + "\n".join(usages or ["• help"]))

    # -- orders -----------------------------------------------------------

    def _update_order(self, sender: str, args: Args) -> Replies:
        order_id: str = args["order_id"]
        status: str = args["status"]
        order = self._orders.update_status(order_id, status, args["remark"] or "")
        replies = _reply(order.customer, messages.order_status_update(order))
        replies += _reply(sender, f"✅ Updated *{order.order_id}* to *{status}*.")
        if status == OrderStatus.COMPLETED:
            replies += self._pay_commission(order.order_id)
        return replies

    def _pay_commission(self, order_id: str) -> Replies:
        order = self._orders.require(order_id)
        if self._referrals.referrer_of(order.customer) is None:
            return []
        if not self._orders.mark_commission_paid(order_id):
            return []
        commission = self._referrals.accrue_commission(
            order.customer, order.amount, self._shop.commission_rate
        )
        if commission is None:
            return []
        self._logger.info(
            "referral_commission_paid",
            order_id=order_id,
            referrer=commission.record.owner,
            amount=str(commission.amount),
        )
        return _reply(
            commission.record.owner,
            messages.commission_earned(commission.amount, commission.record.earnings),
        )

    def _list_orders(self, sender: str, args: Args) -> Replies:
        status: str | None = args["status"]
        orders = [
            order
            for order in self._orders.all()
            if status is None or order.status == status
        ]
        if not orders:
            return _reply(sender, "📭 No orders found.")
        lines = [f"📋 *Orders* ({len(orders)})", ""]
        lines.extend(
            f"• {order.order_id} {order.package} KES {format_amount(order.amount)}"
            f" [{order.status}] {order.customer}"
            for order in orders
        )
        return _reply(sender, "\n".join(lines))

    # -- shop settings ----------------------------------------------------

    def _set_payment(self, sender: str, args: Args) -> Replies:
        number = validate_safaricom_number(args["mpesa_number"])
        info = self._shop.set_payment_info(number, args["name"])
        return _reply(sender, f"✅ Payment details updated to *{info}*.")

    def _set_withdrawal(self, sender: str, args: Args) -> Replies:
        bounds = self._referrals.set_bounds(args["min"], args["max"])
        return _reply(
            sender,
            f"✅ Withdrawal limits set to KES {format_amount(bounds.minimum)}"
            f" - {format_amount(bounds.maximum)}.",
        )

    # -- catalog ----------------------------------------------------------

    def _add_item(self, sender: str, args: Args) -> Replies:
        family: ProductFamily = args["family"]
        item = self._catalog.add_item(
            family,
            args["subcategory"],
            name=args["name"],
            price=args["price"],
            validity=args["validity"],
        )
        return _reply(
            sender,
            f"✅ Added to {family.value} {args['subcategory']}: {item.to_line()}",
        )

    def _remove_item(self, sender: str, args: Args) -> Replies:
        family: ProductFamily = args["family"]
        item = self._catalog.remove_item(family, args["subcategory"], args["id"])
        return _reply(
            sender,
            f"✅ Removed from {family.value} {args['subcategory']}: {item.to_line()}",
        )

    def _edit_item(self, sender: str, args: Args) -> Replies:
        family: ProductFamily = args["family"]
        item = self._catalog.edit_item(
            family,
            args["subcategory"],
            args["id"],
            name=args["name"],
            price=args["price"],
            validity=args["validity"],
        )
        return _reply(
            sender,
            f"✅ Updated {family.value} {args['subcategory']}: {item.to_line()}",
        )

    # -- referrals --------------------------------------------------------

    def _list_referrals(self, sender: str, args: Args) -> Replies:
        bounds = self._referrals.bounds
        records = self._referrals.all()
        lines = ["📊 *Referral Accounts*", ""]
        if not records:
            lines.append("No referral accounts yet.")
        lines.extend(record.to_summary() for record in records)
        lines.append("")
        lines.append(
            f"Withdrawal limits: KES {format_amount(bounds.minimum)}"
            f" - {format_amount(bounds.maximum)}"
        )
        return _reply(sender, "\n".join(lines))

    def _update_withdrawal(self, sender: str, args: Args) -> Replies:
        record, withdrawal = self._referrals.update_withdrawal(
            args["ref_code"],
            args["withdrawal_id"],
            args["status"],
            args["remarks"] or "",
        )
        replies = _reply(record.owner, messages.withdrawal_status_update(withdrawal))
        replies += _reply(
            sender, f"✅ Withdrawal *{withdrawal.id}* set to *{withdrawal.status}*."
        )
        return replies

    def _credit(self, sender: str, args: Args) -> Replies:
        referrer = self._referrals.require_code(args["ref_code"])
        record = self._referrals.credit(referrer.owner, args["amount"])
        note = f" ({args['remarks']})" if args["remarks"] else ""
        replies = _reply(
            record.owner,
            f"💰 KES {format_amount(args['amount'])} was credited to your earnings"
            f"{note}. Balance: KES {format_amount(record.earnings)}.",
        )
        replies += _reply(
            sender,
            f"✅ Credited KES {format_amount(args['amount'])} to {record.code}."
            f" Balance: KES {format_amount(record.earnings)}.",
        )
        return replies

    def _help(self, sender: str, args: Args) -> Replies:
        lines = ["🛠️ *Admin Commands*", ""]
        lines.extend(f"• {spec.usage}\n  {spec.summary}" for spec in self._commands)
        return _reply(sender, "\n".join(lines))


def _reply(recipient: str, text: str) -> Replies:
    return [OutboundMessage(recipient=recipient, text=text)]

