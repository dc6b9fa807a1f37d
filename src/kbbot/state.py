"""Per-user and per-conversation state."""

from __future__ import annotations

import copy
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

from loguru import logger

from kbbot.turn import TurnContext

type KeyFn = Callable[[TurnContext], str]


@dataclass
class UserData:
    """Persisted per-user record."""

    locale: str = ""
    name: str = ""


class StateAccessor[T](Protocol):
    """Keyed access to one durable property."""

    async def get(self, context: TurnContext, default: T | None = None) -> T | None: ...

    async def set(self, context: TurnContext, value: T) -> None: ...


class MemoryStorage:
    """Process-local key/value storage.

    Values are deep-copied on the way in and out so callers never share
    mutable objects with the store.
    """

    def __init__(self) -> None:
        self._items: dict[str, Any] = {}
        self.writes = 0

    async def read(self, key: str) -> Any | None:
        if key not in self._items:
            return None
        return copy.deepcopy(self._items[key])

    async def write(self, key: str, value: Any) -> None:
        self._items[key] = copy.deepcopy(value)
        self.writes += 1

    def keys(self) -> list[str]:
        return sorted(self._items)


def user_scope(context: TurnContext) -> str:
    return f"user/{context.turn.user_key}"


def conversation_scope(context: TurnContext) -> str:
    return f"conversation/{context.turn.conversation_key}"


class StatePropertyAccessor[T]:
    """One named property stored under a user or conversation key."""

    def __init__(self, storage: MemoryStorage, name: str, key_fn: KeyFn) -> None:
        self._storage = storage
        self.name = name
        self._key_fn = key_fn

    def _key(self, context: TurnContext) -> str:
        return f"{self._key_fn(context)}/{self.name}"

    async def get(self, context: TurnContext, default: T | None = None) -> T | None:
        value = await self._storage.read(self._key(context))
        if value is None:
            # The default is only persisted once the caller sets it.
            return default
        return value

    async def set(self, context: TurnContext, value: T) -> None:
        await self._storage.write(self._key(context), value)


class UserState:
    """Factory for properties scoped to the sending user."""

    def __init__(self, storage: MemoryStorage) -> None:
        self.storage = storage

    def create_property[T](self, name: str) -> StatePropertyAccessor[T]:
        return StatePropertyAccessor(self.storage, name, user_scope)


class ConversationState:
    """Factory for properties scoped to the conversation."""

    def __init__(self, storage: MemoryStorage) -> None:
        self.storage = storage

    def create_property[T](self, name: str) -> StatePropertyAccessor[T]:
        return StatePropertyAccessor(self.storage, name, conversation_scope)


class LocaleStore:
    """Read and write the locale kept in each user's UserData."""

    def __init__(self, accessor: StateAccessor[UserData]) -> None:
        self._accessor = accessor

    async def get(self, context: TurnContext) -> str | None:
        user_data = await self._accessor.get(context)
        if user_data is None or not user_data.locale:
            return None
        return user_data.locale

    async def set(self, context: TurnContext, locale: str) -> bool:
        """Persist a new locale; returns False when nothing had to be written."""
        if not locale:
            return False
        user_data = await self._accessor.get(context, UserData())
        if user_data is None:
            user_data = UserData()
        if user_data.locale == locale:
            return False
        user_data.locale = locale
        await self._accessor.set(context, user_data)
        logger.debug("kbbot.locale.set user={} locale={}", context.turn.user_key, locale)
        return True

    async def reset(self, context: TurnContext, locale: str) -> UserData:
        """Replace the user's record with a fresh one that keeps only the locale."""
        user_data = UserData(locale=locale)
        await self._accessor.set(context, user_data)
        return user_data
