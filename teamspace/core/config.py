"""
Application configuration via environment variables.
Supports .env file auto-loading via pydantic-settings.
"""
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # ── Application ────────────────────────────────────
    app_name: str = "Teamspace Calls"
    env: str = "dev"
    debug: bool = False

    # ── Database ───────────────────────────────────────
    database_url: str = "sqlite:///./teamspace.db"
    db_ssl_verify: bool = True

    # ── CORS / Hosts ───────────────────────────────────
    cors_origins: str = "http://localhost:3000,http://localhost:5173"
    cors_allow_methods: str = "GET,POST,PATCH,DELETE,OPTIONS"
    cors_allow_headers: str = "Authorization,Content-Type"
    trusted_hosts: str = ""

    # ── Rate Limiting ──────────────────────────────────
    rate_limit_per_minute: int = 60
    call_create_rate_limit: str = "20/minute"

    # ── Video Room Provider (Daily) ────────────────────
    daily_api_key: str = ""
    daily_api_base: str = "https://api.daily.co/v1"
    room_max_participants: int = 6
    room_expiry_hours: int = 24
    room_max_expiry_hours: int = 168   # 1 week
    meeting_token_expiry_minutes: int = 60
    provider_timeout_seconds: float = 10.0

    # ── Identity Provider ──────────────────────────────
    identity_jwt_key: str = "change-me-in-production"  # HMAC secret or PEM public key
    identity_jwt_algorithm: str = "HS256"
    identity_jwt_issuer: str | None = None
    identity_api_base: str = "https://api.clerk.com/v1"
    identity_api_key: str = ""

    @property
    def cors_origins_list(self) -> list[str]:
        return [v.strip() for v in self.cors_origins.split(",") if v.strip()]

    @property
    def cors_allow_methods_list(self) -> list[str]:
        return [v.strip() for v in self.cors_allow_methods.split(",") if v.strip()]

    @property
    def cors_allow_headers_list(self) -> list[str]:
        return [v.strip() for v in self.cors_allow_headers.split(",") if v.strip()]

    @property
    def trusted_hosts_list(self) -> list[str]:
        return [v.strip() for v in self.trusted_hosts.split(",") if v.strip()]

    @property
    def is_production(self) -> bool:
        return self.env.lower() in ("prod", "production")

    @field_validator("identity_jwt_key")
    @classmethod
    def warn_default_jwt_key(cls, v: str) -> str:
        if v == "change-me-in-production":
            import logging
            logging.getLogger("teamspace.config").warning(
                "Using default identity token key. Set IDENTITY_JWT_KEY for production!"
            )
        return v

    @field_validator("daily_api_key")
    @classmethod
    def warn_missing_daily_key(cls, v: str) -> str:
        if not v:
            import logging
            logging.getLogger("teamspace.config").warning(
                "DAILY_API_KEY is not set. Video calls will not work."
            )
        return v

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8-sig",
        case_sensitive=False,
        extra="ignore",
    )


settings = Settings()
