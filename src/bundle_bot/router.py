"""Entry point for inbound chat events."""

from __future__ import annotations

import asyncio

import structlog
from pydantic import BaseModel, ConfigDict

from .admin import AdminCommandInterpreter
from .channels import Channel, LoggingChannel
from .dialogue import DialogueEngine
from .logging import bind_sender_context, clear_sender_context
from .messages import APOLOGY
from .models import OutboundMessage
from .shop import ShopProfile

__all__ = ["Event", "MessageRouter"]


class Event(BaseModel):
    """One inbound text from the chat channel."""

    model_config = ConfigDict(frozen=True)

    sender_id: str
    body: str


class MessageRouter:
    """Route events to the admin interpreter or the dialogue engine.

    Events are handled one at a time under a process-wide lock; outbound
    messages are delivered after the state change has been committed and a
    failed delivery never undoes it.
    """

    def __init__(
        self,
        *,
        dialogue: DialogueEngine,
        admin: AdminCommandInterpreter,
        shop: ShopProfile,
        channel: Channel | None = None,
    ) -> None:
        self._dialogue = dialogue
        self._admin = admin
        self._shop = shop
        self._channel: Channel = channel or LoggingChannel()
        self._lock = asyncio.Lock()
        self._logger = structlog.get_logger(__name__)

    @property
    def channel(self) -> Channel:
        return self._channel

    def attach(self, channel: Channel) -> None:
        self._channel = channel

    async def receive(self, event: Event) -> list[OutboundMessage]:
        async with self._lock:
            bind_sender_context(event.sender_id)
            try:
                replies = self.route(event)
            finally:
                clear_sender_context()
        await self.deliver(replies)
        return replies

    def route(self, event: Event) -> list[OutboundMessage]:
        is_admin_command = self._shop.is_admin(event.sender_id) and self._admin.accepts(
            event.body
        )
        self._logger.info(
            "message_received",
            sender_id=event.sender_id,
            admin_command=is_admin_command,
        )
        try:
            if is_admin_command:
                return self._admin.handle(event.sender_id, event.body)
            return self._dialogue.handle(event.sender_id, event.body)
        except Exception:
            self._logger.exception("message_handling_failed", sender_id=event.sender_id)
            return [OutboundMessage(recipient=event.sender_id, text=APOLOGY)]

    async def deliver(self, replies: list[OutboundMessage]) -> None:
        for reply in replies:
            try:
                await self._channel.send(reply.recipient, reply.text)
            except Exception as exc:
                self._logger.warning(
                    "outbound_delivery_failed",
                    recipient=reply.recipient,
                    error=str(exc),
                )
