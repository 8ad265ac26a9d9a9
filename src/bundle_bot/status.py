"""Minimal HTTP surface reporting whether the bot is up."""

from __future__ import annotations

from typing import Literal

from fastapi import FastAPI
from pydantic import BaseModel

from bundle_bot.constants import SERVICE_NAME
from bundle_bot.runtime import BotRuntime

__all__ = ["HealthResponse", "create_status_app"]


class HealthResponse(BaseModel):
    status: Literal["ok"] = "ok"
    ready: bool
    service: str
    telegram: bool
    orders: int
    referrers: int


def create_status_app(runtime: BotRuntime) -> FastAPI:
    app = FastAPI(title=SERVICE_NAME, docs_url=None, redoc_url=None)

    @app.get("/", response_model=HealthResponse, tags=["Health"])
    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health() -> HealthResponse:
        core = runtime.core
        return HealthResponse(
            ready=runtime.ready,
            service=SERVICE_NAME,
            telegram=runtime.uses_telegram,
            orders=len(core.orders.all()),
            referrers=len(core.referrals.all()),
        )

    return app
