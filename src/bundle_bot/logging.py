"""JSON logging for the bot process, with the sender bound per message."""

from __future__ import annotations

import logging
import logging.config
from typing import Any

import structlog
import structlog.contextvars
import structlog.stdlib

from bundle_bot.config import Settings
from bundle_bot.constants import SENDER_CTX_KEY, SERVICE_NAME

_configured = False


def _shared_processors() -> list[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]


def configure_logging(settings: Settings) -> None:
    """Route structlog and stdlib records (aiogram, uvicorn) to one JSON stream.

    Safe to call more than once; only the first call has an effect.
    """

    global _configured
    if _configured:
        return

    level = settings.log_level.upper()
    if not isinstance(logging.getLevelName(level), int):
        level = "INFO"

    structlog.configure(
        processors=[
            *_shared_processors(),
            structlog.processors.dict_tracebacks,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "json": {
                    "()": structlog.stdlib.ProcessorFormatter,
                    "foreign_pre_chain": _shared_processors(),
                    "processors": [
                        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                        structlog.processors.JSONRenderer(),
                    ],
                }
            },
            "handlers": {
                "stream": {"class": "logging.StreamHandler", "formatter": "json"}
            },
            "root": {"handlers": ["stream"], "level": level},
        }
    )
    structlog.contextvars.bind_contextvars(service=SERVICE_NAME)
    _configured = True


def bind_sender_context(sender_id: str, **kwargs: Any) -> None:
    structlog.contextvars.bind_contextvars(**{SENDER_CTX_KEY: sender_id, **kwargs})


def clear_sender_context() -> None:
    structlog.contextvars.unbind_contextvars(SENDER_CTX_KEY)
