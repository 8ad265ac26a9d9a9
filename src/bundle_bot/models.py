"""Data models shared by the stores, the dialogue engine and the admin path."""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal

from pydantic import BaseModel, ConfigDict, Field

from .enums import OrderStatus, ProductFamily, WithdrawalStatus
from .fsm import Step

_CENTS = Decimal("0.01")


def quantize(amount: Decimal) -> Decimal:
    return amount.quantize(_CENTS, rounding=ROUND_HALF_UP)


def format_amount(amount: Decimal) -> str:
    """Render a currency amount without trailing zero cents."""

    value = quantize(amount)
    if value == value.to_integral_value():
        return f"{value:.0f}"
    return f"{value:.2f}"


def format_timestamp(moment: datetime) -> str:
    return moment.strftime("%Y-%m-%d %H:%M UTC")


def _utcnow() -> datetime:
    return datetime.now(UTC)


class CatalogItem(BaseModel):
    """A purchasable line item inside a catalog subcategory."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(ge=1)
    name: str
    price: Decimal = Field(ge=Decimal("0"))
    validity: str

    def to_line(self) -> str:
        return (
            f"{self.id}) {self.name} @ KES {format_amount(self.price)}"
            f" (Valid {self.validity})"
        )


class Order(BaseModel):
    """A purchase created by the dialogue engine and advanced by the admin."""

    order_id: str
    customer: str
    package: str
    amount: Decimal = Field(ge=Decimal("0"))
    recipient: str | None = None
    payment: str | None = None
    status: str = OrderStatus.PENDING.value
    timestamp: datetime = Field(default_factory=_utcnow)
    remark: str = ""
    commission_paid: bool = False

    def to_message(self) -> str:
        lines = [
            "📦 *Order Status*",
            "",
            f"🆔 {self.order_id}",
            f"📦 {self.package}",
            f"💰 KES {format_amount(self.amount)}",
            f"📞 Recipient: {self.recipient or '-'}",
            f"📱 Payment: {self.payment or '-'}",
            f"📌 Status: *{self.status}*",
        ]
        if self.remark:
            lines.append(f"📝 Remark: {self.remark}")
        return "\n".join(lines)


class WithdrawalRequest(BaseModel):
    """A PIN-confirmed claim against referral earnings."""

    id: str
    amount: Decimal = Field(gt=Decimal("0"))
    mpesa_number: str
    status: str = WithdrawalStatus.PENDING.value
    timestamp: datetime = Field(default_factory=_utcnow)
    remarks: str = ""

    def to_line(self) -> str:
        line = (
            f"• {self.id}: KES {format_amount(self.amount)} to {self.mpesa_number}"
            f" [{self.status}] {format_timestamp(self.timestamp)}"
        )
        if self.remarks:
            line += f" ({self.remarks})"
        return line


class ReferralRecord(BaseModel):
    """Referral ledger entry owned by one referring user."""

    owner: str
    code: str
    referred: list[str] = Field(default_factory=list)
    earnings: Decimal = Field(default=Decimal("0"), ge=Decimal("0"))
    pin: str | None = None
    withdrawals: list[WithdrawalRequest] = Field(default_factory=list)

    def to_summary(self) -> str:
        pending = sum(
            1 for item in self.withdrawals if item.status == WithdrawalStatus.PENDING
        )
        return (
            f"• {self.code} ({self.owner}): {len(self.referred)} referred,"
            f" KES {format_amount(self.earnings)} earned,"
            f" {len(self.withdrawals)} withdrawals ({pending} pending)"
        )


class Session(BaseModel):
    """Ephemeral dialogue position of a single user."""

    model_config = ConfigDict(frozen=True)

    step: Step = Step.MAIN
    prev_step: Step | None = None
    family: ProductFamily | None = None
    subcategory: str | None = None
    order_id: str | None = None
    pending_amount: Decimal | None = None
    pending_number: str | None = None


class OutboundMessage(BaseModel):
    """Text addressed to one recipient on the chat channel."""

    model_config = ConfigDict(frozen=True)

    recipient: str
    text: str
