"""Outbound side of the chat channel."""

from __future__ import annotations

from typing import Protocol

import structlog

__all__ = ["Channel", "LoggingChannel"]


class Channel(Protocol):
    """Best-effort delivery of a text to one recipient."""

    async def send(self, recipient_id: str, text: str) -> None:
        """Deliver ``text``. Implementations may raise on transport failure."""


class LoggingChannel:
    """Default channel that logs deliveries in lieu of a chat transport."""

    def __init__(self) -> None:
        self._logger = structlog.get_logger(__name__)

    async def send(self, recipient_id: str, text: str) -> None:
        self._logger.info("outbound_message", recipient_id=recipient_id, text=text)
