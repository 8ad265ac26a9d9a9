from __future__ import annotations

from dataclasses import dataclass

import structlog
from aiogram import Bot, Dispatcher

from bundle_bot.admin import AdminCommandInterpreter
from bundle_bot.catalog import CatalogStore
from bundle_bot.channels import Channel, LoggingChannel
from bundle_bot.config import Settings
from bundle_bot.dialogue import DialogueEngine
from bundle_bot.middlewares import UpdateGuardMiddleware
from bundle_bot.orders import OrderLedger
from bundle_bot.referrals import ReferralLedger, WithdrawalBounds
from bundle_bot.router import MessageRouter
from bundle_bot.sessions import SessionStore
from bundle_bot.shop import ShopProfile
from bundle_bot.telegram import TelegramChannel, create_telegram_router

__all__ = ["BotCore", "BotRuntime", "build_core"]


@dataclass(slots=True)
class BotCore:
    """The in-memory stores and the engines wired on top of them."""

    shop: ShopProfile
    catalog: CatalogStore
    orders: OrderLedger
    referrals: ReferralLedger
    sessions: SessionStore
    dialogue: DialogueEngine
    admin: AdminCommandInterpreter
    router: MessageRouter


def build_core(settings: Settings, *, channel: Channel | None = None) -> BotCore:
    shop = ShopProfile.from_settings(settings)
    catalog = CatalogStore.in_memory()
    orders = OrderLedger(prefix=settings.order_id_prefix)
    referrals = ReferralLedger(
        WithdrawalBounds(
            minimum=settings.referral.min_withdrawal,
            maximum=settings.referral.max_withdrawal,
        )
    )
    sessions = SessionStore()
    dialogue = DialogueEngine(
        catalog=catalog,
        orders=orders,
        referrals=referrals,
        sessions=sessions,
        shop=shop,
    )
    admin = AdminCommandInterpreter(
        catalog=catalog, orders=orders, referrals=referrals, shop=shop
    )
    router = MessageRouter(dialogue=dialogue, admin=admin, shop=shop, channel=channel)
    return BotCore(
        shop=shop,
        catalog=catalog,
        orders=orders,
        referrals=referrals,
        sessions=sessions,
        dialogue=dialogue,
        admin=admin,
        router=router,
    )


class BotRuntime:
    """Container responsible for initialising and shutting down bot resources."""

    def __init__(self, settings: Settings, *, channel: Channel | None = None) -> None:
        self._settings = settings
        self.core = build_core(settings, channel=channel)
        self._owns_channel = channel is None

        self.bot: Bot | None = None
        self.dispatcher: Dispatcher | None = None
        self.ready = False

        self._logger = structlog.get_logger(__name__).bind(component="bot_runtime")

    @property
    def router(self) -> MessageRouter:
        return self.core.router

    @property
    def uses_telegram(self) -> bool:
        return self.bot is not None

    async def startup(self) -> None:
        token = self._settings.telegram_bot_token
        if token is not None and self._owns_channel:
            self.bot = Bot(token=token.get_secret_value())
            self.dispatcher = Dispatcher()
            logger = structlog.get_logger("bundle_bot.dispatcher")
            self.dispatcher.update.middleware.register(UpdateGuardMiddleware(logger))
            self.dispatcher.include_router(create_telegram_router(self.router))
            self.router.attach(TelegramChannel(self.bot))
        elif self._owns_channel:
            self._logger.warning("telegram_token_missing_using_log_channel")
            self.router.attach(LoggingChannel())

        self.ready = True
        self._logger.info(
            "bot_runtime_started",
            admins=len(self.core.shop.admin_ids),
            telegram=self.uses_telegram,
        )

    async def shutdown(self) -> None:
        self._logger.info("bot_runtime_shutting_down")
        self.ready = False

        if self.dispatcher is not None:
            await self.dispatcher.storage.close()
        if self.bot is not None:
            await self.bot.session.close()

        self.dispatcher = None
        self.bot = None
        self._logger.info("bot_runtime_stopped")

    async def start_polling(self) -> None:
        if self.bot is None or self.dispatcher is None:
            raise RuntimeError(
                "Bot runtime must be started with a Telegram token before polling"
            )

        await self.dispatcher.start_polling(self.bot)
