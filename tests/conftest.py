from __future__ import annotations

import pytest

from kbbot.localization import Localizer
from kbbot.state import MemoryStorage, UserState


@pytest.fixture()
def localizer() -> Localizer:
    return Localizer.from_directory(default_locale="en-us")


@pytest.fixture()
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture()
def user_state(storage: MemoryStorage) -> UserState:
    return UserState(storage)
