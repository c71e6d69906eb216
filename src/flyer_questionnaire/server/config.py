from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Runtime config.

    - Loaded from environment variables (`FLYER_` prefix)
    - Also reads `.env` if present (via pydantic-settings + python-dotenv)
    """

    model_config = SettingsConfigDict(env_file=".env", env_prefix="FLYER_", extra="ignore")

    application_title: str = "Bee Flyer Application"

    # Email relay (Resend REST API). The key is also read without the prefix,
    # matching how the hosted send-email function is configured.
    resend_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("FLYER_RESEND_API_KEY", "RESEND_API_KEY"),
    )
    resend_base_url: str = "https://api.resend.com"
    resend_timeout_s: float = 20.0
    mail_from: str = "Bee Flyer <onboarding@resend.dev>"
    mail_to: list[str] = ["zvio@hotmail.co.uk"]

    # Where submissions go. Unset: hand straight to the in-process relay.
    delivery_url: str | None = None
    # None leaves the transport's own timeout in charge.
    delivery_timeout_s: float | None = None

    # Per-session key-value storage; unset keeps state in memory only.
    storage_path: Path | None = None
    static_dir: Path = Path("public")

    default_stroke_width: float = 3.0

    # Debugging
    debug_log_msgs: bool = False
    log_level: str = "INFO"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


def configure_logging(settings: Settings) -> None:
    level = logging.DEBUG if settings.debug_log_msgs else settings.log_level.upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
