from __future__ import annotations

import asyncio
import sys

import structlog
import uvicorn

from bundle_bot.config import Settings, get_settings
from bundle_bot.logging import configure_logging
from bundle_bot.router import Event
from bundle_bot.runtime import BotRuntime
from bundle_bot.status import create_status_app


def _status_server(settings: Settings, runtime: BotRuntime) -> uvicorn.Server:
    config = uvicorn.Config(
        create_status_app(runtime),
        host=settings.status_host,
        port=settings.status_port,
        log_config=None,
        lifespan="off",
    )
    return uvicorn.Server(config)


async def _console_loop(settings: Settings, runtime: BotRuntime) -> None:
    """Feed stdin lines to the router as messages from ``console_sender_id``."""

    logger = structlog.get_logger(__name__)
    logger.info("console_mode_started", sender_id=settings.console_sender_id)
    while True:
        line = await asyncio.to_thread(sys.stdin.readline)
        if not line:
            break
        text = line.rstrip("\n")
        if not text.strip():
            continue
        replies = await runtime.router.receive(
            Event(sender_id=settings.console_sender_id, body=text)
        )
        for reply in replies:
            print(f"[to {reply.recipient}]\n{reply.text}\n", flush=True)


async def _run() -> None:
    settings = get_settings()
    configure_logging(settings)

    runtime = BotRuntime(settings)
    await runtime.startup()
    server = _status_server(settings, runtime)
    status_task = asyncio.create_task(server.serve())

    try:
        if runtime.uses_telegram:
            await runtime.start_polling()
        else:
            await _console_loop(settings, runtime)
    finally:
        server.should_exit = True
        await status_task
        await runtime.shutdown()


def main() -> None:
    asyncio.run(_run())


if __name__ == "__main__":
    main()
