"""Outbound message texts."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from decimal import Decimal
from urllib.parse import quote

from .enums import OrderStatus, ProductFamily
from .models import (
    CatalogItem,
    Order,
    ReferralRecord,
    WithdrawalRequest,
    format_amount,
    format_timestamp,
)
from .referrals import WithdrawalBounds

_FAMILY_TITLES = {
    ProductFamily.DATA: "📶 *DATA BUNDLES*",
    ProductFamily.SMS: "✉️ *SMS BUNDLES*",
}

_STATUS_NOTES = {
    OrderStatus.CONFIRMED: "✅ Payment confirmed! Processing your bundle soon.",
    OrderStatus.COMPLETED: "🎉 Your order is now complete. Enjoy!",
    OrderStatus.CANCELLED: "🚫 Your order was cancelled. Contact support if needed.",
    OrderStatus.REFUNDED: "💰 Your order was refunded. Check your M-Pesa balance.",
}

NAVIGATION_HINT = "Reply *0* to go back or *00* for the main menu."
APOLOGY = "⚠️ Something went wrong on our side. Please try again shortly."


def main_menu(bot_name: str) -> str:
    return (
        f"🌟 *Hello and Welcome to {bot_name}!* 🌟\n\n"
        "I'm here to help you purchase Data Bundles, SMS and Airtime quickly.\n\n"
        "Main Menu:\n"
        "1️⃣ Buy Data Bundles\n"
        "2️⃣ Buy SMS Bundles\n"
        "3️⃣ Buy Airtime\n"
        "4️⃣ My Referrals\n\n"
        "You can also check an order by typing: status <ORDER_ID>\n"
        "Or confirm payment by typing: PAID <ORDER_ID>\n\n"
        "*Reply with a number to begin.*"
    )


def help_text(bot_name: str) -> str:
    return (
        f"🤖 *{bot_name}*\n"
        'Type "menu" to see the main menu.\n'
        'Or "status <ORDERID>" to check an order.\n'
        'Or "PAID <ORDERID>" after paying.\n'
        'Got a referral code? Type "ref <CODE>".'
    )


def category_list(family: ProductFamily, names: Sequence[str]) -> str:
    lines = [_FAMILY_TITLES[family], ""]
    if not names:
        lines.append("No bundles available right now.")
    for index, name in enumerate(names, start=1):
        lines.append(f"{index}) {name.title()}")
    lines.append("")
    lines.append("Reply with the *number* or *name* of a category.")
    lines.append(NAVIGATION_HINT)
    return "\n".join(lines)


def item_list(
    family: ProductFamily, subcategory: str, items: Iterable[CatalogItem]
) -> str:
    lines = [f"✅ *{subcategory.upper()} {family.value.upper()} BUNDLES:*", ""]
    found = False
    for item in items:
        found = True
        lines.append(item.to_line())
    if not found:
        lines.append("No bundles in this category yet.")
    lines.append("")
    lines.append('Reply with the bundle *number* (e.g. "1") to select it.')
    lines.append(NAVIGATION_HINT)
    return "\n".join(lines)


def airtime_prompt(minimum: Decimal, maximum: Decimal) -> str:
    return (
        "📱 *AIRTIME*\n\n"
        f"Enter the amount to buy (KES {format_amount(minimum)}"
        f" - {format_amount(maximum)}).\n"
        f"{NAVIGATION_HINT}"
    )


def order_created(order: Order) -> str:
    return (
        "🛒 *Order Created!*\n\n"
        f"🆔 Order ID: *{order.order_id}*\n"
        f"📦 Package: *{order.package}*\n"
        f"💰 Price: *KES {format_amount(order.amount)}*\n\n"
        "👉 Please enter the *recipient number* (Safaricom, e.g. 07XXXXXXXX):"
    )


def recipient_prompt(order_id: str | None) -> str:
    suffix = f" for order *{order_id}*" if order_id else ""
    return (
        f"👉 Please enter the *recipient number*{suffix}"
        " (Safaricom, e.g. 07XXXXXXXX):"
    )


def payment_prompt(recipient: str) -> str:
    return (
        f"✅ Recipient set to *{recipient}*.\n"
        "Now enter your *payment number* (Safaricom)."
    )


def order_summary(order: Order, payment_info: str) -> str:
    return (
        "🎉 *Order Summary* 🎉\n\n"
        f"🆔 Order ID: *{order.order_id}*\n"
        f"📦 Package: *{order.package}*\n"
        f"💰 Amount: *KES {format_amount(order.amount)}*\n"
        f"📞 Recipient: *{order.recipient}*\n"
        f"📱 Payment Number: *{order.payment}*\n"
        f"🕒 Time: {format_timestamp(order.timestamp)}\n\n"
        f"👉 Please send *KES {format_amount(order.amount)}* to *{payment_info}*.\n"
        f"Then type: *PAID {order.order_id}* when done."
    )


def admin_new_order(order: Order) -> str:
    hints = "\n".join(
        f"update {order.order_id} {status.value}"
        for status in (
            OrderStatus.CONFIRMED,
            OrderStatus.COMPLETED,
            OrderStatus.REFUNDED,
            OrderStatus.CANCELLED,
        )
    )
    return (
        "🔔 *New Order* 🔔\n\n"
        f"🆔 {order.order_id}\n"
        f"📦 {order.package}\n"
        f"💰 KES {format_amount(order.amount)}\n"
        f"📞 Recipient: {order.recipient}\n"
        f"📱 Payment: {order.payment}\n"
        f"User: {order.customer}\n\n"
        "*Admin Commands:*\n"
        f"{hints}\n"
    )


def payment_asserted(order: Order) -> str:
    return (
        f"✅ Payment noted! Your order *{order.order_id}* is now *{order.status}*.\n"
        "We'll process it shortly."
    )


def admin_payment_asserted(order: Order) -> str:
    return f"🔔 Order *{order.order_id}* marked as CONFIRMED by the user."


def order_status_update(order: Order) -> str:
    """Customer notice after the admin changes an order's status."""

    try:
        note = _STATUS_NOTES[OrderStatus(order.status)]
    except (KeyError, ValueError):
        note = "ℹ️ Contact support if you have any questions."
    lines = [
        "🔔 *Order Update*",
        f"Your order *{order.order_id}* ({order.package}) is now *{order.status}*.",
        note,
    ]
    if order.remark:
        lines.append(f"📝 Remark: {order.remark}")
    return "\n".join(lines)


def referrals_menu() -> str:
    return (
        "🤝 *My Referrals*\n\n"
        "1️⃣ View earnings & withdrawals\n"
        "2️⃣ Withdraw earnings\n"
        "3️⃣ Get my referral link\n"
        "4️⃣ Set withdrawal PIN\n"
        "5️⃣ My referred users\n\n"
        f"{NAVIGATION_HINT}"
    )


def earnings_view(record: ReferralRecord | None, bounds: WithdrawalBounds) -> str:
    if record is None:
        return (
            "💼 *Your Earnings*\n\n"
            "You have no referral account yet. Choose 3 to get your link.\n"
            f"Minimum withdrawal: KES {format_amount(bounds.minimum)}"
        )
    lines = [
        "💼 *Your Earnings*",
        "",
        f"🔑 Code: *{record.code}*",
        f"👥 Referred users: {len(record.referred)}",
        f"💰 Balance: *KES {format_amount(record.earnings)}*",
        f"Limits: KES {format_amount(bounds.minimum)}"
        f" - {format_amount(bounds.maximum)} per withdrawal",
        "",
        "🧾 *Withdrawals*",
    ]
    if not record.withdrawals:
        lines.append("No withdrawals yet.")
    lines.extend(withdrawal.to_line() for withdrawal in record.withdrawals)
    return "\n".join(lines)


def referral_link(code: str, bot_number: str | None) -> str:
    share_text = f"ref {code}"
    if bot_number:
        link = f"https://wa.me/{bot_number}?text={quote(share_text)}"
        how = f"🔗 {link}"
    else:
        how = f'Ask friends to send *{share_text}* to this number.'
    return (
        "📣 *Your Referral Link*\n\n"
        f"🔑 Code: *{code}*\n"
        f"{how}\n\n"
        "You earn a commission on every completed order they place."
    )


def referred_users(rows: Sequence[tuple[str, int, int]]) -> str:
    lines = ["👥 *Your Referred Users*", ""]
    if not rows:
        lines.append("You have not referred anyone yet.")
    for index, (masked, orders, cancelled) in enumerate(rows, start=1):
        lines.append(f"{index}. {masked} - {orders} orders, {cancelled} cancelled")
    return "\n".join(lines)


def set_pin_prompt() -> str:
    return (
        "🔐 Enter a new 4-digit withdrawal PIN (not 1234 or 0000).\n"
        f"{NAVIGATION_HINT}"
    )


def pin_saved() -> str:
    return "✅ Withdrawal PIN saved."


def withdraw_prompt(earnings: Decimal, bounds: WithdrawalBounds) -> str:
    return (
        "💸 *Withdraw Earnings*\n\n"
        f"Available: *KES {format_amount(earnings)}*\n"
        f"Limits: KES {format_amount(bounds.minimum)}"
        f" - {format_amount(bounds.maximum)}\n\n"
        "Send the amount and your M-Pesa number, e.g. *50 0712345678*.\n"
        f"{NAVIGATION_HINT}"
    )


def withdraw_usage() -> str:
    return "❌ Usage: <AMOUNT> <MPESA_NUMBER>, e.g. 50 0712345678"


def withdraw_pin_prompt(amount: Decimal, mpesa_number: str) -> str:
    return (
        f"🔐 Enter your PIN to withdraw *KES {format_amount(amount)}*"
        f" to *{mpesa_number}*."
    )


def minimum_not_reached(earnings: Decimal, bounds: WithdrawalBounds) -> str:
    return (
        f"❌ Minimum withdrawal is KES {format_amount(bounds.minimum)}."
        f" Your earnings: KES {format_amount(earnings)}."
    )


def pin_required() -> str:
    return "🔐 Please set a withdrawal PIN first (option 4)."


def wrong_pin() -> str:
    return "❌ Wrong PIN. The withdrawal has been cancelled."


def withdrawal_created(withdrawal: WithdrawalRequest, balance: Decimal) -> str:
    return (
        "✅ *Withdrawal Requested*\n\n"
        f"🆔 {withdrawal.id}\n"
        f"💰 KES {format_amount(withdrawal.amount)} to {withdrawal.mpesa_number}\n"
        f"📌 Status: *{withdrawal.status}*\n"
        f"Remaining balance: KES {format_amount(balance)}"
    )


def admin_withdrawal_notice(
    record: ReferralRecord, withdrawal: WithdrawalRequest
) -> str:
    return (
        "🔔 *Withdrawal Request* 🔔\n\n"
        f"👤 {record.owner} (code {record.code})\n"
        f"🆔 {withdrawal.id}\n"
        f"💰 KES {format_amount(withdrawal.amount)} to {withdrawal.mpesa_number}\n\n"
        "*Admin Commands:*\n"
        f"withdraw update {record.code} {withdrawal.id} APPROVED\n"
        f'withdraw update {record.code} {withdrawal.id} REJECTED "reason"'
    )


def withdrawal_status_update(withdrawal: WithdrawalRequest) -> str:
    lines = [
        "🔔 *Withdrawal Update*",
        f"Your withdrawal *{withdrawal.id}* of KES {format_amount(withdrawal.amount)}"
        f" is now *{withdrawal.status}*.",
    ]
    if withdrawal.remarks:
        lines.append(f"📝 Remarks: {withdrawal.remarks}")
    return "\n".join(lines)


def referral_recorded() -> str:
    return "🤝 Referral code applied. Welcome aboard!"


def commission_earned(amount: Decimal, balance: Decimal) -> str:
    return (
        f"💰 You earned KES {format_amount(amount)} from a referral order."
        f" Balance: KES {format_amount(balance)}."
    )
