"""Built-in dialogs used by the turn router."""

from __future__ import annotations

from typing import Any

from loguru import logger
from rapidfuzz import fuzz, process, utils

from kbbot.answers import Answer, AnswerService
from kbbot.dialogs.stack import Dialog, DialogInstance, DialogStack, DialogTurnResult, DialogTurnStatus
from kbbot.recognizers import extract_entities
from kbbot.state import LocaleStore, StateAccessor, UserData

WELCOME_DIALOG = "WelcomeDialog"
GREETING_DIALOG = "GreetingDialog"
CANCEL_DIALOG = "CancelDialog"
ANSWER_DIALOG = "AnswerDialog"

DEFAULT_MIN_SCORE = 0.5
PROMPT_MATCH_SCORE = 85


class WelcomeDialog(Dialog):
    """Welcome the user and offer a language switch.

    The dialog stays on the stack waiting for a language choice. Any other
    utterance ends it without a reply so normal routing takes over.
    """

    id = WELCOME_DIALOG

    def __init__(self, user_data: StateAccessor[UserData]) -> None:
        self._locales = LocaleStore(user_data)

    async def begin(self, stack: DialogStack, options: dict[str, Any] | None = None) -> DialogTurnResult:
        context = stack.context
        await context.send(context.gettext("welcome"))
        await context.send(context.gettext("usage"))
        await self._send_choices(stack)
        return stack.end_of_turn()

    async def continue_dialog(self, stack: DialogStack) -> DialogTurnResult:
        context = stack.context
        choice = self._match_locale(stack, context.turn.utterance)
        if choice is None:
            await stack.end_dialog()
            return DialogTurnResult(DialogTurnStatus.EMPTY)

        await self._locales.set(context, choice)
        context.locale = choice
        await context.send(context.gettext("languageChanged"))
        return await stack.end_dialog(choice)

    async def resume(self, stack: DialogStack, result: Any = None) -> DialogTurnResult:
        await self._send_choices(stack)
        return stack.end_of_turn()

    async def reprompt(self, stack: DialogStack, instance: DialogInstance) -> None:
        await self._send_choices(stack)

    async def _send_choices(self, stack: DialogStack) -> None:
        context = stack.context
        localizer = context.localizer
        lines = [context.gettext("chooseLanguage")]
        for locale in sorted(localizer.locales):
            lines.append(f"- {localizer.gettext(locale, 'languageName')} ({locale})")
        await context.send("\n".join(lines))

    @staticmethod
    def _match_locale(stack: DialogStack, utterance: str) -> str | None:
        localizer = stack.context.localizer
        for locale in localizer.locales:
            name = localizer.gettext(locale, "languageName").lower()
            if utterance in {locale, name, f"{name} ({locale})"}:
                return locale
        return None


class GreetingDialog(Dialog):
    """Greet the user by name, asking for it when it is not known yet."""

    id = GREETING_DIALOG

    def __init__(self, user_data: StateAccessor[UserData]) -> None:
        self._user_data = user_data

    async def begin(self, stack: DialogStack, options: dict[str, Any] | None = None) -> DialogTurnResult:
        context = stack.context
        entities = (options or {}).get("entities") or {}
        user_data = await self._user_data.get(context, UserData()) or UserData()

        name = str(entities.get("name") or user_data.name or "")
        if not name:
            await context.send(context.gettext("askName"))
            return stack.end_of_turn()

        await self._remember(stack, user_data, name)
        return await stack.end_dialog(name)

    async def continue_dialog(self, stack: DialogStack) -> DialogTurnResult:
        context = stack.context
        text = context.turn.text.strip()
        name = (extract_entities(text).get("name") or text.split(" ")[0].capitalize()) if text else ""
        if not name:
            await context.send(context.gettext("askName"))
            return stack.end_of_turn()

        user_data = await self._user_data.get(context, UserData()) or UserData()
        await self._remember(stack, user_data, name)
        return await stack.end_dialog(name)

    async def resume(self, stack: DialogStack, result: Any = None) -> DialogTurnResult:
        await stack.context.send(stack.context.gettext("askName"))
        return stack.end_of_turn()

    async def reprompt(self, stack: DialogStack, instance: DialogInstance) -> None:
        await stack.context.send(stack.context.gettext("askName"))

    async def _remember(self, stack: DialogStack, user_data: UserData, name: str) -> None:
        context = stack.context
        if user_data.name != name:
            user_data.name = name
            await self._user_data.set(context, user_data)
        await context.send(context.gettext("greetingWithName").format(name=name))


class CancelDialog(Dialog):
    """Confirm, then cancel every dialog on the stack."""

    id = CANCEL_DIALOG

    async def begin(self, stack: DialogStack, options: dict[str, Any] | None = None) -> DialogTurnResult:
        await stack.context.send(stack.context.gettext("cancelPrompt"))
        return stack.end_of_turn()

    async def continue_dialog(self, stack: DialogStack) -> DialogTurnResult:
        context = stack.context
        if context.turn.utterance in _yes_words(stack):
            await context.send(context.gettext("cancelled"))
            return await stack.cancel_all_dialogs()
        await context.send(context.gettext("notCancelled"))
        return await stack.end_dialog(False)

    async def reprompt(self, stack: DialogStack, instance: DialogInstance) -> None:
        await stack.context.send(stack.context.gettext("cancelPrompt"))


class AnswerDialog(Dialog):
    """Answer the utterance from the locale's knowledge base.

    When the best answer carries follow-up prompts they are offered and the
    dialog waits; a matching follow-up is answered on the next turn.
    """

    id = ANSWER_DIALOG

    def __init__(self, answer_services: dict[str, AnswerService], *, min_score: float = DEFAULT_MIN_SCORE) -> None:
        self._services = answer_services
        self._min_score = min_score

    async def begin(self, stack: DialogStack, options: dict[str, Any] | None = None) -> DialogTurnResult:
        context = stack.context
        best = await self._best_answer(stack)
        if best is None:
            await context.send(context.gettext("noAnswer"))
            return await stack.end_dialog()

        await context.send(best.answer)
        if not best.prompts:
            return await stack.end_dialog(best.answer)

        await context.send("\n".join([context.gettext("followUps"), *(f"- {prompt}" for prompt in best.prompts)]))
        active = stack.active_dialog
        if active is not None:
            active.state["prompts"] = list(best.prompts)
        return stack.end_of_turn()

    async def continue_dialog(self, stack: DialogStack) -> DialogTurnResult:
        context = stack.context
        active = stack.active_dialog
        prompts = [str(prompt) for prompt in (active.state.get("prompts", []) if active else [])]
        match = process.extractOne(
            context.turn.text,
            prompts,
            scorer=fuzz.WRatio,
            processor=utils.default_process,
            score_cutoff=PROMPT_MATCH_SCORE,
        )
        if match is None:
            # Not a follow-up; hand the utterance back to the router.
            return await stack.end_dialog()

        best = await self._best_answer(stack)
        if best is None:
            await context.send(context.gettext("noAnswer"))
            return await stack.end_dialog()
        await context.send(best.answer)
        return await stack.end_dialog(best.answer)

    async def _best_answer(self, stack: DialogStack) -> Answer | None:
        context = stack.context
        answers = await self._services[context.locale].query(context)
        if answers and answers[0].score >= self._min_score:
            return answers[0]
        logger.info("kbbot.answer.miss locale={} text={!r}", context.locale, context.turn.text)
        return None


def _yes_words(stack: DialogStack) -> set[str]:
    raw = stack.context.gettext("yesWords")
    return {word.strip().lower() for word in raw.split(",") if word.strip()}

