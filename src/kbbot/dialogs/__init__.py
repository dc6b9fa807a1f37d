"""Dialogs and the dialog stack engine."""

from kbbot.dialogs.builtin import (
    ANSWER_DIALOG,
    CANCEL_DIALOG,
    GREETING_DIALOG,
    WELCOME_DIALOG,
    AnswerDialog,
    CancelDialog,
    GreetingDialog,
    WelcomeDialog,
)
from kbbot.dialogs.interruption import IntentInterruptionPolicy, InterruptionPolicy
from kbbot.dialogs.stack import (
    Dialog,
    DialogInstance,
    DialogSet,
    DialogStack,
    DialogState,
    DialogTurnResult,
    DialogTurnStatus,
)

__all__ = [
    "ANSWER_DIALOG",
    "CANCEL_DIALOG",
    "GREETING_DIALOG",
    "WELCOME_DIALOG",
    "AnswerDialog",
    "CancelDialog",
    "Dialog",
    "DialogInstance",
    "DialogSet",
    "DialogStack",
    "DialogState",
    "DialogTurnResult",
    "DialogTurnStatus",
    "GreetingDialog",
    "IntentInterruptionPolicy",
    "InterruptionPolicy",
    "WelcomeDialog",
]
