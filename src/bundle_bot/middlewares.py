from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

from aiogram import BaseMiddleware
from aiogram.types import Message, TelegramObject, Update
from structlog.stdlib import BoundLogger

from .messages import APOLOGY

__all__ = ["UpdateGuardMiddleware"]


Handler = Callable[[TelegramObject, dict[str, Any]], Awaitable[Any]]


class UpdateGuardMiddleware(BaseMiddleware):
    """Log each incoming update and keep polling alive when a handler fails."""

    def __init__(self, logger: BoundLogger) -> None:
        super().__init__()
        self._logger = logger

    async def __call__(
        self,
        handler: Handler,
        event: TelegramObject,
        data: dict[str, Any],
    ) -> Any:
        update_id = getattr(event, "update_id", None)
        self._logger.debug("telegram_update_received", update_id=update_id)
        try:
            return await handler(event, data)
        except Exception as exc:
            message = _message_of(event)
            chat_id = message.chat.id if message is not None else None
            self._logger.exception(
                "telegram_update_failed",
                update_id=update_id,
                chat_id=chat_id,
                exc_info=exc,
            )
            if message is not None:
                try:
                    await message.answer(APOLOGY)
                except Exception:  # pragma: no cover - network failure
                    self._logger.warning("telegram_apology_failed", chat_id=chat_id)
            return None


def _message_of(event: TelegramObject) -> Message | None:
    if isinstance(event, Message):
        return event
    if isinstance(event, Update) and isinstance(event.message, Message):
        return event.message
    return None
