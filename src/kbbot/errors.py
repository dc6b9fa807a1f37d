"""Application-level exception types for kbbot."""

from __future__ import annotations


class KbBotError(Exception):
    """Base exception for kbbot."""


class ConfigurationError(KbBotError):
    """Base exception for configuration and startup validation errors."""


class MissingParameterError(ConfigurationError):
    """Raised when a required construction parameter is missing."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Missing parameter. {name} is required")
        self.name = name


class UnsupportedLocaleError(ConfigurationError):
    """Raised when a configured locale has no adapter or resource file."""


class LocalizationError(KbBotError):
    """Raised when a string key is missing from every locale."""


class DialogNotFoundError(KbBotError):
    """Raised when a dialog id is not registered on the dialog set."""
