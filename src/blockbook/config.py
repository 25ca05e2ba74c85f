"""
Configuration management using pydantic-settings.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from blockbook.constants import DEFAULT_GAP_LIMIT, DEFAULT_POLL_INTERVAL, DEFAULT_TIMEOUT


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="BLOCKBOOK_", env_file=".env", env_file_encoding="utf-8", case_sensitive=False
    )

    # Ordered backend endpoints, e.g. BLOCKBOOK_URLS='["https://btc1.trezor.io"]'
    urls: list[str] = Field(default_factory=list)
    # Shortcut of the expected coin (BTC, LTC, ...); resolved from the genesis block if unset
    coin: str | None = None

    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)
    gap_limit: int = Field(default=DEFAULT_GAP_LIMIT, ge=1)
    poll_interval: float = Field(default=DEFAULT_POLL_INTERVAL, gt=0)

    log_level: str = "INFO"


def get_settings() -> Settings:
    return Settings()
