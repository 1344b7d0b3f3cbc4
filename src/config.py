"""Configuration management for Random Raindrop Telegram Bot."""

import os
from dataclasses import dataclass, field

from .exceptions import ConfigurationError


@dataclass(frozen=True)
class RaindropConfig:
    """Configuration for the Raindrop.io REST API."""

    token: str = field(repr=False)
    collection_id: str
    base_url: str = "https://api.raindrop.io/rest/v1"
    timeout: float = 10.0


@dataclass(frozen=True)
class TelegramConfig:
    """Configuration for Telegram Bot API."""

    bot_token: str = field(repr=False)
    chat_id: str
    base_url: str = "https://api.telegram.org"
    timeout: float = 10.0


@dataclass(frozen=True)
class BotSettings:
    """Everything one invocation needs, resolved once at start."""

    raindrop: RaindropConfig
    telegram: TelegramConfig


class Config:
    """Main configuration manager."""

    DEFAULT_RAINDROP_API_BASE = "https://api.raindrop.io/rest/v1"
    DEFAULT_TELEGRAM_API_BASE = "https://api.telegram.org"
    DEFAULT_TIMEOUT_SECONDS = 10.0

    def __init__(self):
        """Initialize configuration from environment variables."""
        self.collection_id = os.getenv("RAINDROP_COLLECTION_ID", "").strip()
        self.chat_id = os.getenv("TELEGRAM_CHAT_ID", "").strip()
        self.raindrop_token = os.getenv("RAINDROP_TOKEN", "").strip()
        self.telegram_token = os.getenv("TELEGRAM_BOT_TOKEN", "").strip()
        self.raindrop_secret_name = os.getenv(
            "RAINDROP_SECRET_NAME", "random-raindrop-token"
        )
        self.telegram_secret_name = os.getenv(
            "TELEGRAM_SECRET_NAME", "random-raindrop-telegram-token"
        )
        self.raindrop_api_base = os.getenv(
            "RAINDROP_API_BASE", self.DEFAULT_RAINDROP_API_BASE
        ).rstrip("/")
        self.telegram_api_base = os.getenv(
            "TELEGRAM_API_BASE", self.DEFAULT_TELEGRAM_API_BASE
        ).rstrip("/")
        self.aws_region = os.getenv(
            "CURRENT_AWS_REGION", os.getenv("AWS_DEFAULT_REGION", "us-east-1")
        )
        self.timeout = self._parse_timeout(os.getenv("HTTP_TIMEOUT_SECONDS", ""))

    def _parse_timeout(self, raw: str) -> float:
        if not raw.strip():
            return self.DEFAULT_TIMEOUT_SECONDS
        try:
            timeout = float(raw)
        except ValueError:
            raise ConfigurationError(f"HTTP_TIMEOUT_SECONDS must be a number: {raw!r}")
        if timeout <= 0:
            raise ConfigurationError("HTTP_TIMEOUT_SECONDS must be positive")
        return timeout

    def get_raindrop_config(self, token: str) -> RaindropConfig:
        """Get Raindrop.io configuration bound to ``token``."""
        if not self.collection_id:
            raise ConfigurationError("RAINDROP_COLLECTION_ID is not set")
        if not token or not token.strip():
            raise ConfigurationError("Raindrop.io token cannot be empty")
        return RaindropConfig(
            token=token.strip(),
            collection_id=self.collection_id,
            base_url=self.raindrop_api_base,
            timeout=self.timeout,
        )

    def get_telegram_config(self, bot_token: str) -> TelegramConfig:
        """Get Telegram configuration bound to ``bot_token``."""
        if not self.chat_id:
            raise ConfigurationError("TELEGRAM_CHAT_ID is not set")
        if not bot_token or not bot_token.strip():
            raise ConfigurationError("Telegram bot token cannot be empty")
        return TelegramConfig(
            bot_token=bot_token.strip(),
            chat_id=self.chat_id,
            base_url=self.telegram_api_base,
            timeout=self.timeout,
        )

    def build_settings(self, raindrop_token: str, telegram_token: str) -> BotSettings:
        """Validate and freeze the configuration for one invocation."""
        return BotSettings(
            raindrop=self.get_raindrop_config(raindrop_token),
            telegram=self.get_telegram_config(telegram_token),
        )
