from __future__ import annotations

import logging
from decimal import Decimal

import pytest
import structlog
from pydantic import ValidationError

from bundle_bot.config import ReferralSettings, Settings
from bundle_bot.constants import SENDER_CTX_KEY
from bundle_bot.logging import (
    bind_sender_context,
    clear_sender_context,
    configure_logging,
)


def test_admin_ids_split_on_commas() -> None:
    settings = Settings(_env_file=None, admin_ids=" 2547001, 2547002 ,,")

    assert settings.admin_ids == frozenset({"2547001", "2547002"})


def test_nested_referral_settings_from_environment(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("REFERRAL__MIN_WITHDRAWAL", "50")
    monkeypatch.setenv("REFERRAL__COMMISSION_RATE", "0.1")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = Settings(_env_file=None)

    assert settings.referral.min_withdrawal == Decimal("50")
    assert settings.referral.max_withdrawal == Decimal("1000")
    assert settings.referral.commission_rate == Decimal("0.1")
    assert settings.log_level == "DEBUG"
    assert not settings.is_production


def test_referral_bounds_must_be_ordered() -> None:
    with pytest.raises(ValidationError):
        ReferralSettings(min_withdrawal=Decimal("500"), max_withdrawal=Decimal("100"))


def test_sender_context_is_bound_and_cleared() -> None:
    configure_logging(Settings(_env_file=None))
    configure_logging(Settings(_env_file=None))

    bind_sender_context("2547001")
    assert structlog.contextvars.get_contextvars()[SENDER_CTX_KEY] == "2547001"

    clear_sender_context()
    assert SENDER_CTX_KEY not in structlog.contextvars.get_contextvars()


def test_stdlib_records_share_the_json_formatter() -> None:
    configure_logging(Settings(_env_file=None))

    handlers = logging.getLogger().handlers
    assert any(
        isinstance(handler.formatter, structlog.stdlib.ProcessorFormatter)
        for handler in handlers
    )
    assert logging.getLogger("aiogram").propagate
