"""Locale string tables."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from pathlib import Path

import yaml
from loguru import logger

from kbbot.errors import LocalizationError, UnsupportedLocaleError

BUNDLED_LOCALES_PATH = Path(__file__).parent / "locales"
LOCALE_FILE_SUFFIX = ".yaml"


class Localizer:
    """Explicit localization context: locale -> key -> text."""

    def __init__(self, tables: Mapping[str, Mapping[str, str]], default_locale: str) -> None:
        self._tables = {locale.lower(): dict(table) for locale, table in tables.items()}
        self._default_locale = default_locale.lower()
        if self._default_locale not in self._tables:
            raise UnsupportedLocaleError(f"default locale {default_locale!r} has no string table")

    @classmethod
    def from_directory(
        cls,
        path: Path | None = None,
        default_locale: str = "en-us",
        locales: Iterable[str] | None = None,
    ) -> Localizer:
        """Load one `<locale>.yaml` table per locale from a directory."""
        root = path or BUNDLED_LOCALES_PATH
        wanted = {item.lower() for item in locales} if locales is not None else None
        tables: dict[str, dict[str, str]] = {}
        for file in sorted(root.glob(f"*{LOCALE_FILE_SUFFIX}")):
            locale = file.stem.lower()
            if wanted is not None and locale not in wanted:
                continue
            tables[locale] = _read_table(file)

        if wanted is not None:
            missing = sorted(wanted - tables.keys())
            if missing:
                raise UnsupportedLocaleError(f"no string table for locales: {', '.join(missing)}")
        return cls(tables, default_locale)

    @property
    def default_locale(self) -> str:
        return self._default_locale

    @property
    def locales(self) -> frozenset[str]:
        return frozenset(self._tables)

    def supports(self, locale: str | None) -> bool:
        if not locale:
            return False
        return locale.lower() in self._tables

    def gettext(self, locale: str, key: str) -> str:
        table = self._tables.get(locale.lower(), {})
        if key in table:
            return table[key]
        fallback = self._tables[self._default_locale]
        if key in fallback:
            logger.debug("kbbot.localization.fallback locale={} key={}", locale, key)
            return fallback[key]
        raise LocalizationError(f"missing localized text for key {key!r}")


def _read_table(path: Path) -> dict[str, str]:
    payload = yaml.safe_load(path.read_text(encoding="utf-8"))
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise UnsupportedLocaleError(f"string table {path.name} is not a mapping")
    return {str(key): str(value) for key, value in payload.items()}
