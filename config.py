"""
Process configuration — read once from the environment (and .env) at startup.

Required:
    TELEGRAM_BOT_TOKEN      Telegram bot token
    REPLICATE_API_TOKEN     Replicate API token

Optional:
    PORT                    HTTP port for the health server (default 3000)
    PUBLIC_DOMAIN           switch to webhook mode, e.g. hooty.up.railway.app
    WEBHOOK_SECRET          secret echoed back by Telegram on every webhook call
    REPLICATE_MODEL_VERSION model version hash
    REPLICATE_API_URL       API base URL
    LOG_LEVEL               logging level (default INFO)
"""

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_PORT = 3000
DEFAULT_MODEL_VERSION = "db21e45a3f183e8600d17d7e8917f4a7c19cc7f38e38f8c69c8b27c8de2bff13"
DEFAULT_API_URL = "https://api.replicate.com/v1"


class ConfigError(RuntimeError):
    """Startup configuration is missing or malformed."""


@dataclass(frozen=True)
class Settings:
    telegram_bot_token: str
    replicate_api_token: str
    port: int = DEFAULT_PORT
    public_domain: Optional[str] = None
    webhook_secret: Optional[str] = None
    replicate_model_version: str = DEFAULT_MODEL_VERSION
    replicate_api_url: str = DEFAULT_API_URL
    log_level: str = "INFO"

    @property
    def webhook_mode(self) -> bool:
        return bool(self.public_domain)

    @property
    def webhook_url(self) -> Optional[str]:
        if not self.public_domain:
            return None
        domain = self.public_domain.removeprefix("https://").removeprefix("http://")
        return f"https://{domain.rstrip('/')}/telegram/webhook"


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    """
    Build Settings from `env` (defaults to os.environ after loading .env).

    Raises ConfigError when a required secret is missing or PORT is not an integer.
    """
    if env is None:
        load_dotenv()
        env = os.environ

    telegram_token = env.get("TELEGRAM_BOT_TOKEN", "").strip()
    replicate_token = env.get("REPLICATE_API_TOKEN", "").strip()

    logger.info(
        "Checking configuration",
        extra={
            "telegram_bot_token": "found" if telegram_token else "missing",
            "replicate_api_token": "found" if replicate_token else "missing",
        },
    )

    missing = [
        name
        for name, value in (
            ("TELEGRAM_BOT_TOKEN", telegram_token),
            ("REPLICATE_API_TOKEN", replicate_token),
        )
        if not value
    ]
    if missing:
        raise ConfigError(
            f"Missing required environment variables: {', '.join(missing)}"
        )

    raw_port = env.get("PORT", "").strip() or str(DEFAULT_PORT)
    try:
        port = int(raw_port)
    except ValueError:
        raise ConfigError(f"PORT must be an integer, got {raw_port!r}") from None

    return Settings(
        telegram_bot_token=telegram_token,
        replicate_api_token=replicate_token,
        port=port,
        public_domain=env.get("PUBLIC_DOMAIN", "").strip() or None,
        webhook_secret=env.get("WEBHOOK_SECRET", "").strip() or None,
        replicate_model_version=(
            env.get("REPLICATE_MODEL_VERSION", "").strip() or DEFAULT_MODEL_VERSION
        ),
        replicate_api_url=(
            env.get("REPLICATE_API_URL", "").strip() or DEFAULT_API_URL
        ).rstrip("/"),
        log_level=env.get("LOG_LEVEL", "").strip() or "INFO",
    )
