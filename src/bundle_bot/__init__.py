"""Chat-driven bundle shop: catalog, orders, referrals and the admin console."""

from .admin import AdminCommandInterpreter
from .catalog import CatalogStore
from .config import Settings, get_settings
from .dialogue import DialogueEngine
from .orders import OrderLedger
from .referrals import ReferralLedger, WithdrawalBounds
from .router import Event, MessageRouter
from .runtime import BotCore, BotRuntime, build_core
from .sessions import SessionStore
from .shop import ShopProfile

__all__ = (
    "AdminCommandInterpreter",
    "BotCore",
    "BotRuntime",
    "CatalogStore",
    "DialogueEngine",
    "Event",
    "MessageRouter",
    "OrderLedger",
    "ReferralLedger",
    "SessionStore",
    "Settings",
    "ShopProfile",
    "WithdrawalBounds",
    "build_core",
    "get_settings",
)
