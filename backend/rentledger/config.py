# backend/rentledger/config.py
from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ---- App ----
    app_env: str = "local"  # local|dev|prod
    database_url: str = "sqlite:///./rentledger.db"
    api_version: str = "2026-10-01.v1"

    # create tables from metadata on startup (local/dev); prod runs alembic
    auto_create_tables: bool = True

    # ---- CORS (used by main.py) ----
    cors_allow_origins: list[str] | str = ["*"]

    # ---- Payments ----
    cash_reference_prefix: str = "CASH"
    default_payment_method: str = "mpesa"

    # ---- History ----
    # guard against entry dates far in the past (bad data) blowing up the timeline
    history_max_months: int = 600

    def model_post_init(self, __context) -> None:
        env = (self.app_env or "local").strip().lower()
        is_prod = env in ("prod", "production")

        if is_prod:
            origins = self.cors_allow_origins
            if origins == "*" or origins == ["*"] or (isinstance(origins, str) and "*" in origins):
                raise ValueError("SECURITY: cors_allow_origins wildcard is not allowed in prod")


settings = Settings()
