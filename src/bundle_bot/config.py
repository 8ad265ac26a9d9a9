from __future__ import annotations

from decimal import Decimal
from enum import StrEnum
from functools import lru_cache
from typing import Annotated

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    computed_field,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from bundle_bot.constants import (
    DEFAULT_BOT_NAME,
    DEFAULT_ENV_FILE,
    DEFAULT_ORDER_ID_PREFIX,
    DEFAULT_PAYMENT_INFO,
)


class Environment(StrEnum):
    """Deployment environments supported by the bot."""

    DEVELOPMENT = "development"
    TEST = "test"
    PRODUCTION = "production"


class ReferralSettings(BaseModel):
    """Withdrawal bounds and commission applied to referred orders."""

    model_config = ConfigDict(extra="ignore")

    min_withdrawal: Decimal = Field(
        default=Decimal("20"),
        gt=Decimal("0"),
        validation_alias=AliasChoices(
            "REFERRAL__MIN_WITHDRAWAL", "referral__min_withdrawal", "min_withdrawal"
        ),
    )
    max_withdrawal: Decimal = Field(
        default=Decimal("1000"),
        gt=Decimal("0"),
        validation_alias=AliasChoices(
            "REFERRAL__MAX_WITHDRAWAL", "referral__max_withdrawal", "max_withdrawal"
        ),
    )
    commission_rate: Decimal = Field(
        default=Decimal("0.05"),
        ge=Decimal("0"),
        le=Decimal("1"),
        validation_alias=AliasChoices(
            "REFERRAL__COMMISSION_RATE",
            "referral__commission_rate",
            "commission_rate",
        ),
    )

    @model_validator(mode="after")
    def _check_bounds(self) -> ReferralSettings:
        if self.min_withdrawal >= self.max_withdrawal:
            raise ValueError("min_withdrawal must be lower than max_withdrawal")
        return self


class AirtimeSettings(BaseModel):
    """Bounds for free-amount airtime orders."""

    model_config = ConfigDict(extra="ignore")

    min_amount: Decimal = Field(default=Decimal("10"), gt=Decimal("0"))
    max_amount: Decimal = Field(default=Decimal("10000"), gt=Decimal("0"))


class Settings(BaseSettings):
    """Bot settings loaded from the environment or a ``.env`` file."""

    model_config = SettingsConfigDict(
        env_file=DEFAULT_ENV_FILE,
        env_nested_delimiter="__",
        extra="ignore",
        validate_default=True,
        case_sensitive=False,
    )

    environment: Environment = Environment.DEVELOPMENT
    log_level: str = "INFO"

    bot_name: str = DEFAULT_BOT_NAME
    bot_number: str | None = Field(
        default=None,
        validation_alias=AliasChoices("BOT_NUMBER", "bot_number", "BOT__NUMBER"),
    )
    admin_ids: Annotated[frozenset[str], NoDecode] = Field(
        default_factory=frozenset,
        validation_alias=AliasChoices(
            "ADMIN_IDS", "admin_ids", "ADMIN_NUMBER", "admin_number"
        ),
    )
    payment_info: str = DEFAULT_PAYMENT_INFO
    order_id_prefix: str = DEFAULT_ORDER_ID_PREFIX

    referral: ReferralSettings = Field(default_factory=ReferralSettings)
    airtime: AirtimeSettings = Field(default_factory=AirtimeSettings)

    telegram_bot_token: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "TELEGRAM__BOT_TOKEN",
            "telegram__bot_token",
            "TELEGRAM_BOT_TOKEN",
        ),
    )
    status_host: str = "127.0.0.1"
    status_port: int = Field(default=3000, ge=1, le=65_535)
    console_sender_id: str = "console"

    @field_validator("admin_ids", mode="before")
    @classmethod
    def _split_admin_ids(cls, value: object) -> object:
        if isinstance(value, str):
            return frozenset(part.strip() for part in value.split(",") if part.strip())
        return value

    @model_validator(mode="after")
    def _normalize(self) -> Settings:
        self.log_level = self.log_level.upper()
        return self

    @computed_field
    @property
    def is_production(self) -> bool:
        return self.environment is Environment.PRODUCTION


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached instance of the bot settings."""

    return Settings()
