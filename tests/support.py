"""Fakes and builders shared by the test modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from kbbot.answers import Answer
from kbbot.dialogs import DialogStack, DialogState, DialogTurnResult, InterruptionPolicy
from kbbot.localization import Localizer
from kbbot.recognizers import RecognitionResult
from kbbot.router import TurnRouter
from kbbot.state import UserState
from kbbot.turn import ActivityKind, Attachment, ChannelAccount, ConversationTurn, TurnContext

BOT = ChannelAccount("bot", "bot")
USER = ChannelAccount("u1", "User")


@dataclass
class FakeRecognizer:
    """Returns a fixed recognition result and counts calls."""

    intents: dict[str, float] = field(default_factory=dict)
    entities: dict[str, Any] = field(default_factory=dict)
    calls: int = 0

    async def recognize(self, context: TurnContext) -> RecognitionResult:
        self.calls += 1
        return RecognitionResult(text=context.turn.text, intents=dict(self.intents), entities=dict(self.entities))


@dataclass
class FakeAnswerService:
    answers: list[Answer] = field(default_factory=list)
    queries: list[str] = field(default_factory=list)

    async def query(self, context: TurnContext) -> list[Answer]:
        self.queries.append(context.turn.text)
        return list(self.answers)


@dataclass
class FixedPolicy:
    interrupt: bool = False
    seen: list[tuple[str | None, str]] = field(default_factory=list)

    async def is_interruption(self, stack: DialogStack, top_intent: str) -> bool:
        self.seen.append((stack.active_dialog_id, top_intent))
        return self.interrupt


def message(
    text: str = "",
    *,
    attachments: tuple[Attachment, ...] = (),
    locale: str | None = None,
    sender: ChannelAccount = USER,
) -> ConversationTurn:
    return ConversationTurn(
        kind=ActivityKind.MESSAGE,
        conversation_id="c1",
        sender=sender,
        recipient=BOT,
        text=text,
        attachments=attachments,
        locale=locale,
    )


def members_added(*members: ChannelAccount) -> ConversationTurn:
    return ConversationTurn(
        kind=ActivityKind.CONVERSATION_UPDATE,
        conversation_id="c1",
        sender=USER,
        recipient=BOT,
        members_added=members,
    )


@dataclass
class RouterHarness:
    """A router plus the conversation state it runs against."""

    router: TurnRouter
    localizer: Localizer
    recognizer: FakeRecognizer
    answers: FakeAnswerService
    policy: InterruptionPolicy
    state: DialogState = field(default_factory=DialogState)

    async def run(self, turn: ConversationTurn) -> tuple[TurnContext, DialogStack, DialogTurnResult]:
        context = TurnContext(turn, self.localizer)
        stack = self.router.dialogs.create_stack(context, self.state)
        result = await self.router.handle_turn(context, stack)
        return context, stack, result

    @property
    def active_ids(self) -> list[str]:
        return [instance.id for instance in self.state.stack]


def build_harness(
    user_state: UserState,
    localizer: Localizer,
    *,
    recognizer: FakeRecognizer | None = None,
    answers: FakeAnswerService | None = None,
    policy: InterruptionPolicy | None = None,
    intent_dialogs: dict[str, str] | None = None,
) -> RouterHarness:
    recognizer = recognizer or FakeRecognizer()
    answers = answers or FakeAnswerService()
    policy = policy or FixedPolicy()
    router = TurnRouter(
        {"en-us": recognizer, "es-es": recognizer},
        {"en-us": answers, "es-es": answers},
        user_state,
        policy=policy,
        intent_dialogs=intent_dialogs,
    )
    return RouterHarness(router, localizer, recognizer, answers, policy)
