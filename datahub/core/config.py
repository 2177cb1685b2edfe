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

    app_name: str = "MaxHub Fulfillment"
    environment: str = "development"
    api_v1_prefix: str = "/api/v1"
    log_level: str = "INFO"

    # Database
    database_url: str = "sqlite:///./datahub.db"
    db_pool_size: int = 5
    db_max_overflow: int = 5
    db_pool_timeout: int = 15
    db_pool_recycle: int = 1200
    db_pool_pre_ping: bool = True

    # Portal-02 provider
    portal02_base_url: str = "https://www.portal-02.com/api/v1"
    portal02_api_key: Optional[str] = None
    portal02_timeout_seconds: float = 15
    offers_cache_ttl_seconds: int = 600

    # Callback URL precedence: backend_url, then frontend_url + "/api", then the fallback.
    backend_url: Optional[str] = None
    frontend_url: Optional[str] = None
    callback_fallback_base_url: str = "https://maxhub-nu.vercel.com/api"
    portal02_webhook_path: str = "/webhooks/portal02"
    webhook_rate_limit: str = "120/minute"

    system_currency: str = "GHS"

    # Fulfillment loops
    queue_batch_size: int = 5
    queue_max_retries: int = 5
    # 0 keeps retries on the timer cadence; otherwise base seconds, doubled per retry.
    queue_retry_backoff_seconds: float = 0
    sync_batch_size: int = 20
    background_jobs_enabled: bool = True
    background_jobs_initial_delay_seconds: float = 10
    background_jobs_interval_seconds: float = 60

    # CORS
    cors_origins: str = "http://localhost:5173,http://localhost:3000"
    auto_create_tables: bool = False


@lru_cache
def get_settings() -> Settings:
    return Settings()
