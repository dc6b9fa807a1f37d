"""Interruption policies."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol

from loguru import logger

from kbbot.dialogs.builtin import CANCEL_DIALOG
from kbbot.dialogs.stack import DialogStack

CANCEL_INTENT = "Cancel"
HELP_INTENT = "Help"
DEFAULT_INTERRUPTING_INTENTS = frozenset({CANCEL_INTENT, HELP_INTENT})


class InterruptionPolicy(Protocol):
    async def is_interruption(self, stack: DialogStack, top_intent: str) -> bool: ...


class IntentInterruptionPolicy:
    """Treat a fixed set of intents as interruptions of a running dialog.

    A cancel intent also opens the cancel confirmation on top of the running
    dialog, so the interrupted dialog resumes if the user declines.
    """

    def __init__(
        self,
        intents: Iterable[str] = DEFAULT_INTERRUPTING_INTENTS,
        *,
        cancel_intents: Iterable[str] = (CANCEL_INTENT,),
    ) -> None:
        self.intents = frozenset(intents)
        self.cancel_intents = frozenset(cancel_intents)

    async def is_interruption(self, stack: DialogStack, top_intent: str) -> bool:
        active_id = stack.active_dialog_id
        if active_id is None or top_intent not in self.intents:
            return False
        if top_intent in self.cancel_intents and active_id != CANCEL_DIALOG:
            logger.info("kbbot.interruption.cancel active={}", active_id)
            await stack.begin_dialog(CANCEL_DIALOG)
        return True
