from __future__ import annotations

import pytest

from kbbot.config import Settings


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("KBBOT_DEFAULT_LOCALE", raising=False)
    monkeypatch.delenv("KBBOT_LOCALES", raising=False)

    settings = Settings(_env_file=None)  # type: ignore[call-arg]

    assert settings.default_locale == "en-us"
    assert settings.supported_locales() == ["en-us", "es-es"]
    assert settings.answer_min_score == 0.5


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("KBBOT_DEFAULT_LOCALE", "ES-ES")
    monkeypatch.setenv("KBBOT_LOCALES", '["EN-US"]')
    monkeypatch.setenv("KBBOT_ANSWER_MIN_SCORE", "0.8")

    settings = Settings(_env_file=None)  # type: ignore[call-arg]

    assert settings.default_locale == "es-es"
    assert settings.supported_locales() == ["es-es", "en-us"]
    assert settings.answer_min_score == 0.8
