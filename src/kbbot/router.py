"""Turn routing: decide which dialog handles each inbound event."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from loguru import logger

from kbbot.answers import AnswerServiceDictionary
from kbbot.dialogs.builtin import (
    ANSWER_DIALOG,
    CANCEL_DIALOG,
    DEFAULT_MIN_SCORE,
    GREETING_DIALOG,
    WELCOME_DIALOG,
    AnswerDialog,
    CancelDialog,
    GreetingDialog,
    WelcomeDialog,
)
from kbbot.dialogs.interruption import IntentInterruptionPolicy, InterruptionPolicy
from kbbot.dialogs.stack import DialogSet, DialogStack, DialogTurnResult, DialogTurnStatus
from kbbot.errors import ConfigurationError, MissingParameterError, UnsupportedLocaleError
from kbbot.recognizers import NONE_INTENT, RecognizerDictionary
from kbbot.state import LocaleStore, StatePropertyAccessor, UserData, UserState
from kbbot.turn import ActivityKind, TurnContext

GREETING_INTENT = "Greeting"
CONFIDENCE_THRESHOLD = 0.7
USER_DATA_PROPERTY = "userDataProperty"
DIALOG_TURN_RESULT_DEFAULT = DialogTurnResult(DialogTurnStatus.WAITING)


class TurnRouter:
    """Stateless orchestration of one turn over a conversation's dialog stack.

    All state lives in the dialog stack and in the user's UserData record; the
    router only decides which stack operation runs for the current event.
    """

    def __init__(
        self,
        recognizers: RecognizerDictionary | None,
        answer_services: AnswerServiceDictionary | None,
        user_state: UserState | None,
        *,
        policy: InterruptionPolicy | None = None,
        intent_dialogs: Mapping[str, str] | None = None,
        answer_min_score: float = DEFAULT_MIN_SCORE,
    ) -> None:
        if recognizers is None:
            raise MissingParameterError("recognizers")
        if answer_services is None:
            raise MissingParameterError("answer_services")
        if user_state is None:
            raise MissingParameterError("user_state")
        if not recognizers:
            raise ConfigurationError("at least one recognizer is required")
        if set(recognizers) != set(answer_services):
            raise ConfigurationError(
                f"recognizers ({', '.join(sorted(recognizers))}) and answer services "
                f"({', '.join(sorted(answer_services))}) must cover the same locales"
            )

        self._recognizers = dict(recognizers)
        self.user_data: StatePropertyAccessor[UserData] = user_state.create_property(USER_DATA_PROPERTY)
        self._locales = LocaleStore(self.user_data)
        self._policy: InterruptionPolicy = policy or IntentInterruptionPolicy()
        self._intent_dialogs = dict(intent_dialogs) if intent_dialogs is not None else {GREETING_INTENT: GREETING_DIALOG}

        self.dialogs = (
            DialogSet()
            .add(AnswerDialog(dict(answer_services), min_score=answer_min_score))
            .add(CancelDialog())
            .add(GreetingDialog(self.user_data))
            .add(WelcomeDialog(self.user_data))
        )
        unknown = sorted(set(self._intent_dialogs.values()) - set(self.dialogs.ids()))
        if unknown:
            raise ConfigurationError(f"intent bindings refer to unknown dialogs: {', '.join(unknown)}")

    @property
    def locales(self) -> frozenset[str]:
        return frozenset(self._recognizers)

    async def handle_turn(self, context: TurnContext, stack: DialogStack) -> DialogTurnResult:
        """Process one inbound event to completion."""
        return await self.continue_turn(context, stack)

    async def begin_turn(self, context: TurnContext, stack: DialogStack) -> DialogTurnResult:
        return await self.continue_turn(context, stack)

    async def continue_turn(self, context: TurnContext, stack: DialogStack) -> DialogTurnResult:
        locale = await self.resolve_locale(context)
        turn = context.turn

        if turn.kind is ActivityKind.MESSAGE:
            return await self._route_message(context, stack, locale)
        if turn.kind is ActivityKind.CONVERSATION_UPDATE:
            return await self._welcome_user(context, stack)
        logger.debug("kbbot.router.ignored kind={}", turn.kind.value)
        return DIALOG_TURN_RESULT_DEFAULT

    async def resolve_locale(self, context: TurnContext) -> str:
        """Pick the user's locale, persisting it when it changed."""
        localizer = context.localizer
        stored = await self._locales.get(context)
        locale = (stored or context.turn.locale or localizer.default_locale).strip().lower()
        if not localizer.supports(locale) or locale not in self._recognizers:
            locale = localizer.default_locale
        if locale not in self._recognizers:
            raise UnsupportedLocaleError(f"default locale {locale!r} has no recognizer")

        if locale != stored:
            await self._locales.set(context, locale)
        context.locale = locale
        return locale

    async def _route_message(self, context: TurnContext, stack: DialogStack, locale: str) -> DialogTurnResult:
        turn = context.turn
        utterance = turn.utterance

        if not utterance and turn.attachments:
            await context.send(context.gettext("attachmentResponse"))
            return replace(DIALOG_TURN_RESULT_DEFAULT, responded=True)

        if utterance == context.gettext("restartCommand").strip().lower():
            return await self._restart(context, stack, locale)

        sent = context.sent_count
        result = DIALOG_TURN_RESULT_DEFAULT
        answer_continued = False

        if stack.active_dialog_id == ANSWER_DIALOG:
            result = await stack.continue_dialog()
            answer_continued = True
            if result.status is DialogTurnStatus.COMPLETE:
                # A dialog that just finished leaves nothing active.
                result = replace(result, status=DialogTurnStatus.EMPTY)

        recognition = await self._recognizers[locale].recognize(context)
        top_intent = recognition.top_intent(CONFIDENCE_THRESHOLD, default=NONE_INTENT)
        interrupted = await self._policy.is_interruption(stack, top_intent)
        active_id = stack.active_dialog_id
        logger.debug(
            "kbbot.router.classified intent={} active={} interrupted={}", top_intent, active_id, interrupted
        )

        if interrupted:
            if active_id is not None and active_id != CANCEL_DIALOG:
                await stack.reprompt_dialog()
            elif active_id == CANCEL_DIALOG:
                result = await stack.continue_dialog()
        elif answer_continued and active_id == ANSWER_DIALOG:
            # The answer dialog already consumed this turn above.
            pass
        else:
            result = await stack.continue_dialog()

        if context.sent_count > sent:
            return replace(result, responded=True)

        if result.status is DialogTurnStatus.EMPTY:
            dialog_id = self._intent_dialogs.get(top_intent) if top_intent != NONE_INTENT else None
            if dialog_id is not None:
                logger.info("kbbot.router.fallback intent={} dialog={}", top_intent, dialog_id)
                result = await stack.begin_dialog(dialog_id, {"entities": dict(recognition.entities)})
            else:
                logger.info("kbbot.router.fallback intent={} dialog={}", top_intent, ANSWER_DIALOG)
                result = await stack.begin_dialog(ANSWER_DIALOG)
        elif result.status in (DialogTurnStatus.WAITING, DialogTurnStatus.COMPLETE):
            pass
        else:
            logger.warning("kbbot.router.reset status={} active={}", result.status.value, stack.active_dialog_id)
            await stack.cancel_all_dialogs()

        return result

    async def _restart(self, context: TurnContext, stack: DialogStack, locale: str) -> DialogTurnResult:
        logger.info("kbbot.router.restart user={}", context.turn.user_key)
        await self._locales.reset(context, locale)
        await stack.cancel_all_dialogs()
        return await stack.begin_dialog(WELCOME_DIALOG)

    async def _welcome_user(self, context: TurnContext, stack: DialogStack) -> DialogTurnResult:
        turn = context.turn
        if any(member.id == turn.recipient.id for member in turn.members_added):
            return await stack.begin_dialog(WELCOME_DIALOG)
        return DIALOG_TURN_RESULT_DEFAULT
