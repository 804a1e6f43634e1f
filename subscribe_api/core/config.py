from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables or a .env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False)

    app_name: str = "Blue Beacon Subscribe API"
    app_version: str = "0.1.0"
    environment: str = "local"

    convertkit_api_key: str | None = None
    convertkit_form_id: str = "9005443"
    convertkit_api_base: str = "https://api.convertkit.com/v3"
    provider_timeout_seconds: float = 10.0

    allowed_origins: list[str] = [
        "https://bluebeaconshow.com",
        "https://www.bluebeaconshow.com",
        "https://bluebeacon.show",
        "https://www.bluebeacon.show",
        "https://blue-beacon.vercel.app",
    ]
    dev_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
    ]
    cors_max_age_seconds: int = 86400

    csrf_cookie_name: str = "csrf_token"
    csrf_header_name: str = "X-CSRF-Token"
    csrf_min_length: int = 32

    rate_limit_max_requests: int = 5
    rate_limit_window_seconds: int = 60
    redis_url: str | None = None

    max_body_bytes: int = 1024
    email_max_length: int = 254
    honeypot_field: str = "website"
    honeypot_delay_min_seconds: float = 0.2
    honeypot_delay_max_seconds: float = 0.6

    secure_cookies: bool = True
    log_json: bool = False

    sentry_dsn: str | None = None
    sentry_traces_sample_rate: float = 0.0
    sentry_enable_logs: bool = False
    sentry_log_level: str = "error"

    @property
    def is_production(self) -> bool:
        return (self.environment or "").strip().lower() in {"prod", "production"}

    def effective_origins(self) -> list[str]:
        if self.is_production:
            return list(self.allowed_origins)
        return [*self.allowed_origins, *self.dev_origins]


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
