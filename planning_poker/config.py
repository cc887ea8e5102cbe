"""Application configuration from environment variables."""

from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DEFAULT_CARD_DECK = ["0", "1", "2", "3", "5", "8", "13", "?"]


# =============================================================================
# Settings
# =============================================================================


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="POKER_",
        case_sensitive=False,
        extra="ignore",
    )

    # Server settings
    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=8887, description="HTTP port the extension talks to")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Logging level")

    # Voting settings
    card_deck: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_CARD_DECK),
        description="Cards offered to clients",
    )
    default_duration_secs: int | None = Field(
        default=20,
        description="Advisory countdown for a voting round (None disables it)",
    )
    max_name_length: int = Field(default=64, description="Longest accepted display name")

    # Streaming settings
    subscriber_queue_size: int = Field(
        default=32, description="Pending events per subscriber before it is dropped"
    )
    sse_ping_interval: int = Field(
        default=15, description="Seconds between SSE keep-alive pings"
    )
    reconnect_delay_secs: float = Field(
        default=5.0, description="Client retry delay advertised on the SSE stream"
    )

    @field_validator("card_deck", mode="before")
    @classmethod
    def split_card_deck(cls, v: str | list[str]) -> list[str]:
        """Accept a comma-separated deck from the environment."""
        if isinstance(v, str):
            return [card.strip() for card in v.split(",") if card.strip()]
        return v

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Upper-case the level name for logging."""
        return v.upper()

    @property
    def reconnect_delay_ms(self) -> int:
        """Reconnect delay in the unit the SSE `retry` field uses."""
        return int(self.reconnect_delay_secs * 1000)


# =============================================================================
# Singleton
# =============================================================================


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get cached settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset settings (for testing)."""
    global _settings
    _settings = None
