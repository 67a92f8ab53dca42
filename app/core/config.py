from functools import lru_cache
import json
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


def parse_cors_origins(value: str) -> list[str]:
    if not value:
        return []

    parsed: list[str]
    raw = value.strip()
    if raw.startswith("["):
        try:
            items = json.loads(raw)
            parsed = [str(item).strip() for item in items if str(item).strip()]
        except (TypeError, ValueError):
            parsed = []
    else:
        parsed = [origin.strip() for origin in raw.split(",") if origin.strip()]

    # Preserve order and remove duplicates.
    return list(dict.fromkeys(parsed))


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    app_name: str = "IBEFXWIN Sportsbook"
    environment: str = "development"
    api_v1_prefix: str = "/api/v1"
    log_level: str = "INFO"

    # Security
    secret_key: str
    access_token_expire_minutes: int = 30
    refresh_token_expire_days: int = 7
    password_bcrypt_rounds: int = 12

    # Database
    database_url: str
    db_pool_size: int = 5
    db_max_overflow: int = 5
    db_pool_timeout: int = 15
    db_pool_recycle: int = 1200
    db_pool_pre_ping: bool = True

    # Redis (optional, backs the rate limiter when set)
    redis_url: Optional[str] = None
    rate_limit_enabled: bool = True

    # Wallet and betting defaults, in minor units (paise). Admins can override
    # these at runtime through system settings.
    default_min_bet_amount: int = 1_000
    default_max_bet_amount: int = 5_000_000
    default_min_deposit_amount: int = 10_000
    default_min_withdrawal_amount: int = 50_000

    # Game data providers (The Odds API style)
    odds_provider_timeout_seconds: int = 15
    odds_provider_retry_count: int = 2
    odds_provider_regions: str = "uk"

    # Frontend URLs (used as the default deposit redirect target)
    frontend_base_url: str = "http://localhost:5173"

    # CORS
    cors_origins: str = "http://localhost:5173,http://localhost:3000"
    auto_create_tables: bool = False

    # Ops: bootstrap admin users (comma-separated emails). Useful when the platform
    # doesn't provide a shell/psql access on free plans.
    bootstrap_admin_emails: str = ""


@lru_cache
def get_settings() -> Settings:
    return Settings()
