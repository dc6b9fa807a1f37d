"""In-memory dialog stack engine."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from loguru import logger

from kbbot.errors import ConfigurationError, DialogNotFoundError
from kbbot.turn import TurnContext


class DialogTurnStatus(str, Enum):
    EMPTY = "empty"
    WAITING = "waiting"
    COMPLETE = "complete"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class DialogTurnResult:
    """Outcome of one stack operation.

    `responded` is True when at least one reply was sent while the operation ran.
    """

    status: DialogTurnStatus
    result: Any = None
    responded: bool = False


@dataclass
class DialogInstance:
    id: str
    state: dict[str, Any] = field(default_factory=dict)


@dataclass
class DialogState:
    """Persisted stack of running dialogs; the last item is the active one."""

    stack: list[DialogInstance] = field(default_factory=list)


class Dialog(ABC):
    """Base class for named dialogs run by a DialogStack."""

    id: str = "Dialog"

    @abstractmethod
    async def begin(self, stack: DialogStack, options: dict[str, Any] | None = None) -> DialogTurnResult:
        """Start the dialog; it is already on top of the stack."""

    async def continue_dialog(self, stack: DialogStack) -> DialogTurnResult:
        return await stack.end_dialog()

    async def resume(self, stack: DialogStack, result: Any = None) -> DialogTurnResult:
        """Called when a child dialog ended and this dialog is active again."""
        return await stack.end_dialog(result)

    async def reprompt(self, stack: DialogStack, instance: DialogInstance) -> None:
        return None


class DialogSet:
    """Registry of dialogs by id."""

    def __init__(self) -> None:
        self._dialogs: dict[str, Dialog] = {}

    def add(self, dialog: Dialog) -> DialogSet:
        if dialog.id in self._dialogs:
            raise ConfigurationError(f"dialog {dialog.id!r} is already registered")
        self._dialogs[dialog.id] = dialog
        return self

    def find(self, dialog_id: str) -> Dialog | None:
        return self._dialogs.get(dialog_id)

    def ids(self) -> list[str]:
        return list(self._dialogs)

    def create_stack(self, context: TurnContext, state: DialogState | None = None) -> DialogStack:
        return DialogStack(self, state if state is not None else DialogState(), context)


class DialogStack:
    """Ordered stack of dialog instances for one conversation and one turn."""

    def __init__(self, dialogs: DialogSet, state: DialogState, context: TurnContext) -> None:
        self.dialogs = dialogs
        self.state = state
        self.context = context
        # Instances begun during this turn; they already own the current utterance.
        self._begun: list[DialogInstance] = []

    @property
    def active_dialog(self) -> DialogInstance | None:
        if not self.state.stack:
            return None
        return self.state.stack[-1]

    @property
    def active_dialog_id(self) -> str | None:
        active = self.active_dialog
        return active.id if active is not None else None

    def end_of_turn(self) -> DialogTurnResult:
        return DialogTurnResult(DialogTurnStatus.WAITING)

    async def begin_dialog(self, dialog_id: str, options: dict[str, Any] | None = None) -> DialogTurnResult:
        dialog = self._require(dialog_id)
        sent = self.context.sent_count
        instance = DialogInstance(dialog_id)
        self.state.stack.append(instance)
        self._begun.append(instance)
        logger.debug("kbbot.stack.begin dialog={} depth={}", dialog_id, len(self.state.stack))
        result = await dialog.begin(self, options)
        return self._mark(result, sent)

    async def continue_dialog(self) -> DialogTurnResult:
        active = self.active_dialog
        if active is None:
            return DialogTurnResult(DialogTurnStatus.EMPTY)
        if any(active is begun for begun in self._begun):
            logger.debug("kbbot.stack.continue.skipped dialog={}", active.id)
            return self.end_of_turn()
        sent = self.context.sent_count
        result = await self._require(active.id).continue_dialog(self)
        return self._mark(result, sent)

    async def reprompt_dialog(self) -> bool:
        """Ask the active dialog to repeat its prompt; returns whether it replied."""
        active = self.active_dialog
        if active is None:
            return False
        sent = self.context.sent_count
        await self._require(active.id).reprompt(self, active)
        return self.context.sent_count > sent

    async def end_dialog(self, result: Any = None) -> DialogTurnResult:
        if self.state.stack:
            ended = self.state.stack.pop()
            logger.debug("kbbot.stack.end dialog={} depth={}", ended.id, len(self.state.stack))
        parent = self.active_dialog
        if parent is not None:
            return await self._require(parent.id).resume(self, result)
        return DialogTurnResult(DialogTurnStatus.COMPLETE, result)

    async def cancel_all_dialogs(self) -> DialogTurnResult:
        if not self.state.stack:
            return DialogTurnResult(DialogTurnStatus.EMPTY)
        cancelled = [instance.id for instance in self.state.stack]
        self.state.stack.clear()
        logger.debug("kbbot.stack.cancel_all dialogs={}", cancelled)
        return DialogTurnResult(DialogTurnStatus.CANCELLED)

    def _require(self, dialog_id: str) -> Dialog:
        dialog = self.dialogs.find(dialog_id)
        if dialog is None:
            raise DialogNotFoundError(f"dialog {dialog_id!r} is not registered")
        return dialog

    def _mark(self, result: DialogTurnResult, sent: int) -> DialogTurnResult:
        if result.responded or self.context.sent_count == sent:
            return result
        return replace(result, responded=True)
