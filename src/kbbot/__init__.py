"""kbbot - turn routing for knowledge-base bots."""

from .dialogs import DialogStack, DialogTurnResult, DialogTurnStatus
from .router import TurnRouter
from .runtime import BotRuntime, TurnOutcome, build_default_runtime
from .turn import ActivityKind, Attachment, ChannelAccount, ConversationTurn, TurnContext

__version__ = "0.1.0"

__all__ = [
    "ActivityKind",
    "Attachment",
    "BotRuntime",
    "ChannelAccount",
    "ConversationTurn",
    "DialogStack",
    "DialogTurnResult",
    "DialogTurnStatus",
    "TurnContext",
    "TurnOutcome",
    "TurnRouter",
    "build_default_runtime",
]
