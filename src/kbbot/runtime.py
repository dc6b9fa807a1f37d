"""Bot runtime: per-conversation state and turn serialisation."""

from __future__ import annotations

import asyncio
import weakref
from collections.abc import Callable
from dataclasses import dataclass, field

from loguru import logger

from kbbot.answers import build_static_answer_services
from kbbot.bus import OutboundReply, TurnBus
from kbbot.config import Settings, get_settings
from kbbot.dialogs.interruption import InterruptionPolicy
from kbbot.dialogs.stack import DialogState, DialogTurnResult
from kbbot.errors import UnsupportedLocaleError
from kbbot.localization import Localizer
from kbbot.logging_utils import conversation_scope
from kbbot.recognizers import build_keyword_recognizers
from kbbot.router import TurnRouter
from kbbot.state import ConversationState, MemoryStorage, StatePropertyAccessor, UserState
from kbbot.turn import ConversationTurn, TurnContext

DIALOG_STATE_PROPERTY = "dialogState"


@dataclass(frozen=True)
class TurnOutcome:
    """Result of one processed turn."""

    result: DialogTurnResult
    locale: str
    replies: list[str] = field(default_factory=list)


class BotRuntime:
    """Run turns through the router, one at a time per conversation."""

    def __init__(self, router: TurnRouter, storage: MemoryStorage, localizer: Localizer) -> None:
        if localizer.default_locale not in router.locales:
            raise UnsupportedLocaleError(f"default locale {localizer.default_locale!r} has no recognizer")
        uncovered = sorted(localizer.locales - router.locales)
        if uncovered:
            logger.warning("kbbot.runtime.locales.uncovered locales={}", uncovered)

        self.router = router
        self.storage = storage
        self.localizer = localizer
        self._dialog_state: StatePropertyAccessor[DialogState] = ConversationState(storage).create_property(
            DIALOG_STATE_PROPERTY
        )
        # Locks drop out once no turn for the conversation holds or awaits them.
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def _lock_for(self, conversation_key: str) -> asyncio.Lock:
        lock = self._locks.get(conversation_key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[conversation_key] = lock
        return lock

    async def process(self, turn: ConversationTurn) -> TurnOutcome:
        context = TurnContext(turn, self.localizer)
        async with self._lock_for(turn.conversation_key):
            with conversation_scope(turn.conversation_key):
                state = await self._dialog_state.get(context) or DialogState()
                stack = self.router.dialogs.create_stack(context, state)
                result = await self.router.handle_turn(context, stack)
                await self._dialog_state.set(context, stack.state)
                logger.info(
                    "kbbot.turn.done kind={} status={} active={} replies={}",
                    turn.kind.value,
                    result.status.value,
                    stack.active_dialog_id,
                    len(context.replies),
                )
        return TurnOutcome(result=result, locale=context.locale, replies=list(context.replies))

    async def active_dialog_id(self, turn: ConversationTurn) -> str | None:
        state = await self._dialog_state.get(TurnContext(turn, self.localizer))
        if state is None or not state.stack:
            return None
        return state.stack[-1].id

    def attach(self, bus: TurnBus) -> Callable[[], None]:
        """Serve inbound turns from `bus` and publish every reply back on it."""

        async def _handle(turn: ConversationTurn) -> None:
            try:
                outcome = await self.process(turn)
            except Exception:
                logger.exception("kbbot.runtime.turn.error conversation={}", turn.conversation_key)
                return
            for content in outcome.replies:
                await bus.publish_outbound(
                    OutboundReply(
                        channel=turn.channel,
                        conversation_id=turn.conversation_id,
                        recipient_id=turn.sender.id,
                        content=content,
                        metadata={"locale": outcome.locale},
                    )
                )

        return bus.on_inbound(_handle)


def build_default_runtime(
    settings: Settings | None = None,
    *,
    policy: InterruptionPolicy | None = None,
    storage: MemoryStorage | None = None,
) -> BotRuntime:
    """Wire the reference recognizers and knowledge bases for every configured locale."""
    settings = settings or get_settings()
    localizer = Localizer.from_directory(
        settings.locales_path,
        default_locale=settings.default_locale,
        locales=settings.supported_locales(),
    )
    locales = sorted(localizer.locales)
    storage = storage or MemoryStorage()
    router = TurnRouter(
        build_keyword_recognizers(locales),
        build_static_answer_services(locales),
        UserState(storage),
        policy=policy,
        answer_min_score=settings.answer_min_score,
    )
    return BotRuntime(router, storage, localizer)
