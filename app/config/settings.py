"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
"""

import json
from decimal import Decimal

from loguru import logger
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str
    database_echo: bool = False
    database_pool_size: int = Field(default=10, gt=0)
    database_max_overflow: int = Field(default=20, ge=0)
    db_command_timeout: int = Field(
        default=30,
        gt=0,
        description="asyncpg statement timeout in seconds",
    )

    # Redis (dramatiq broker)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: str | None = None
    redis_db: int = 0

    # Environment
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"
    log_file: str = "logs/ledger.log"

    # Business calendar
    business_timezone: str = Field(
        default="Asia/Dhaka",
        description="Timezone that defines the calendar day for caps and payouts",
    )

    # Referral commissions
    commission_depth: int = Field(default=3, gt=0, le=10)
    commission_min_payable: Decimal = Field(default=Decimal("0.01"), gt=0)
    commission_event_types: str = "deposit,withdrawal,purchase"
    commission_tiers: str = Field(
        default="",
        description=(
            "JSON list of tiers: "
            '[{"name": "gold", "rate": "0.10", "min_referrals": 50, "daily_cap": "5000"}]. '
            "Empty means built-in defaults."
        ),
    )
    referral_signup_bonus: Decimal = Field(default=Decimal("0"), ge=0)
    referral_code_length: int = Field(default=8, ge=6, le=32)

    # Withdrawals
    withdrawal_fee_percent: Decimal = Field(default=Decimal("5"), ge=0, lt=100)
    min_withdrawal_amount: Decimal = Field(default=Decimal("200"), ge=0)

    # Users
    initial_user_balance: Decimal = Field(default=Decimal("0"), ge=0)

    # Daily income scheduler
    daily_income_interval_hours: int = Field(default=24, gt=0)
    daily_income_check_interval_minutes: int = Field(default=60, gt=0)
    scheduler_lease_seconds: int = Field(default=900, gt=0)
    scheduler_health_enabled: bool = True
    scheduler_health_host: str = "0.0.0.0"
    scheduler_health_port: int = Field(default=8081, gt=0, lt=65536)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate database URL."""
        if not v.startswith(
            ("postgresql://", "postgresql+asyncpg://", "sqlite+aiosqlite://")
        ):
            raise ValueError(
                "DATABASE_URL must start with postgresql+asyncpg:// "
                "(or sqlite+aiosqlite:// for local runs)"
            )
        return v

    @field_validator("commission_tiers")
    @classmethod
    def validate_commission_tiers(cls, v: str) -> str:
        """Validate that commission tiers are a JSON list when set."""
        if not v.strip():
            return ""
        try:
            parsed = json.loads(v)
        except json.JSONDecodeError as exc:
            raise ValueError(f"COMMISSION_TIERS is not valid JSON: {exc}") from exc
        if not isinstance(parsed, list) or not parsed:
            raise ValueError("COMMISSION_TIERS must be a non-empty JSON list")
        return v

    @model_validator(mode="after")
    def validate_production(self) -> "Settings":
        """Validate production-specific requirements."""
        if self.environment == "production":
            if self.debug:
                raise ValueError(
                    "DEBUG must be False in production environment. "
                    "Set DEBUG=false in your .env file."
                )
            if self.database_url.startswith("sqlite"):
                raise ValueError("SQLite is not supported in production")
            if self.database_echo:
                logger.warning("DATABASE_ECHO is enabled in production")
        return self

    def get_commission_event_types(self) -> set[str]:
        """Parse enabled commission event types from comma-separated string."""
        return {
            item.strip().lower()
            for item in self.commission_event_types.split(",")
            if item.strip()
        }


# Global settings instance
settings = Settings()
