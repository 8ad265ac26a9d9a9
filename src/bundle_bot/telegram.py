"""Telegram transport: aiogram handlers feeding the message router."""

from __future__ import annotations

from aiogram import Bot, F, Router
from aiogram.types import Message

from .router import Event, MessageRouter
from .validators import is_whole_number

__all__ = ["TelegramChannel", "create_telegram_router"]


class TelegramChannel:
    """Deliver replies through the Bot API. Recipient ids are chat ids."""

    def __init__(self, bot: Bot) -> None:
        self._bot = bot

    async def send(self, recipient_id: str, text: str) -> None:
        chat_id: int | str = recipient_id
        if is_whole_number(recipient_id.removeprefix("-")):
            chat_id = int(recipient_id)
        await self._bot.send_message(chat_id=chat_id, text=text)


def create_telegram_router(message_router: MessageRouter) -> Router:
    """Forward every private text message to ``message_router``."""

    router = Router(name="bundle_bot")

    @router.message(F.text)
    async def handle_text(message: Message) -> None:
        if message.text is None:
            return
        event = Event(sender_id=str(message.chat.id), body=message.text)
        await message_router.receive(event)

    return router
