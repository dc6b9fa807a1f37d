"""Configuration management for kbbot."""

from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .logging_utils import LogProfile, configure_logging


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="KBBOT_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Localization Configuration
    default_locale: str = Field(default="en-us", description="Locale used when none is stored or hinted")
    locales: list[str] = Field(default_factory=lambda: ["en-us", "es-es"], description="Supported locales")
    locales_path: Optional[Path] = Field(None, description="Directory holding <locale>.yaml string tables")

    # Answer Service Configuration
    answer_min_score: float = Field(default=0.5, description="Minimum score for a knowledge-base answer")

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Log level")
    log_profile: LogProfile = Field(default="default", description="Log profile (default, chat)")

    @field_validator("default_locale")
    @classmethod
    def _lower_locale(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("locales")
    @classmethod
    def _lower_locales(cls, value: list[str]) -> list[str]:
        return [item.strip().lower() for item in value if item.strip()]

    def supported_locales(self) -> list[str]:
        """Configured locales, always including the default one."""
        if self.default_locale in self.locales:
            return list(self.locales)
        return [self.default_locale, *self.locales]


def get_settings(**overrides: object) -> Settings:
    """Get application settings.

    Args:
        overrides: Optional field overrides

    Returns:
        Settings instance
    """
    # pydantic-settings loads the environment and the .env file on its own
    settings = Settings(**overrides)  # type: ignore[arg-type]

    configure_logging(profile=settings.log_profile, level=settings.log_level)

    return settings
