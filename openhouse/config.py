"""Application settings loaded from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration.

    Values are read from environment variables (or a `.env` file).
    """

    # Supabase
    supabase_url: str
    supabase_anon_key: str
    supabase_service_key: str
    supabase_http_max_connections: int = 100
    supabase_http_max_keepalive_connections: int = 50
    supabase_postgrest_timeout_seconds: int = 30

    # App
    app_name: str = "Open House Rewards API"
    app_version: str = "1.0.0"
    environment: str = "development"
    log_level: str = "INFO"
    allowed_origins: str = "http://localhost:3000"
    enable_scheduler: bool = True
    site_url: str = "https://ratemyopenhouse.com"

    # Scheduling
    timezone: str = "UTC"
    pending_gift_sweep_minutes: int = 10
    stalled_gift_minutes: int = 30

    # Giftbit
    giftbit_api_key: str = ""
    giftbit_api_url: str = "https://api-testbed.giftbit.com/papi/v1"
    giftbit_timeout_seconds: float = 15.0
    brand_cache_ttl_seconds: int = 3600

    # Email
    resend_api_key: str = ""
    email_from_address: str = ""
    email_from_name: str = "RateMyOpenHouse Notifications"

    # Gifts and balances
    min_gift_amount_cents: int = 500
    low_balance_threshold_cents: int = 2500
    ledger_max_retries: int = 3

    # Performance tuning
    auth_token_cache_ttl_seconds: int = 15
    auth_token_cache_max_entries: int = 1024
    slow_request_log_threshold_ms: int = 0
    slow_query_log_threshold_ms: int = 0

    @property
    def origins_list(self) -> list[str]:
        """Parse comma-separated ALLOWED_ORIGINS into a list."""
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]

    @property
    def email_configured(self) -> bool:
        """Return True when outbound email can be delivered."""
        return bool(self.resend_api_key and self.email_from_address)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


settings = Settings()  # type: ignore[call-arg]
