from __future__ import annotations

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from bundle_bot.admin import AdminCommandInterpreter
from bundle_bot.catalog import CatalogStore
from bundle_bot.config import Settings
from bundle_bot.dialogue import DialogueEngine
from bundle_bot.orders import OrderLedger
from bundle_bot.referrals import ReferralLedger, WithdrawalBounds
from bundle_bot.router import MessageRouter
from bundle_bot.sessions import SessionStore
from bundle_bot.shop import ShopProfile

from tests.factories import ADMIN, sequence


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        _env_file=None,
        admin_ids=ADMIN,
        bot_number="254700000009",
    )


@pytest.fixture()
def shop(settings: Settings) -> ShopProfile:
    return ShopProfile.from_settings(settings)


@pytest.fixture()
def catalog() -> CatalogStore:
    return CatalogStore.in_memory()


@pytest.fixture()
def orders() -> OrderLedger:
    return OrderLedger(prefix="FY'S-", suffix_factory=sequence("", 100001))


@pytest.fixture()
def referrals() -> ReferralLedger:
    return ReferralLedger(
        WithdrawalBounds(minimum=Decimal("20"), maximum=Decimal("1000")),
        code_factory=sequence("REF"),
        withdrawal_id_factory=sequence("WD-"),
    )


@pytest.fixture()
def sessions() -> SessionStore:
    return SessionStore()


@pytest.fixture()
def dialogue(
    catalog: CatalogStore,
    orders: OrderLedger,
    referrals: ReferralLedger,
    sessions: SessionStore,
    shop: ShopProfile,
) -> DialogueEngine:
    return DialogueEngine(
        catalog=catalog,
        orders=orders,
        referrals=referrals,
        sessions=sessions,
        shop=shop,
    )


@pytest.fixture()
def admin(
    catalog: CatalogStore,
    orders: OrderLedger,
    referrals: ReferralLedger,
    shop: ShopProfile,
) -> AdminCommandInterpreter:
    return AdminCommandInterpreter(
        catalog=catalog, orders=orders, referrals=referrals, shop=shop
    )


@pytest.fixture()
def channel() -> AsyncMock:
    channel = AsyncMock()
    channel.send = AsyncMock()
    return channel


@pytest.fixture()
def router(
    dialogue: DialogueEngine,
    admin: AdminCommandInterpreter,
    shop: ShopProfile,
    channel: AsyncMock,
) -> MessageRouter:
    return MessageRouter(dialogue=dialogue, admin=admin, shop=shop, channel=channel)
