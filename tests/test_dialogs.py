from __future__ import annotations

import pytest
from support import FakeAnswerService, message

from kbbot.answers import Answer
from kbbot.dialogs import (
    ANSWER_DIALOG,
    CANCEL_DIALOG,
    GREETING_DIALOG,
    WELCOME_DIALOG,
    AnswerDialog,
    CancelDialog,
    DialogSet,
    DialogStack,
    DialogState,
    DialogTurnStatus,
    GreetingDialog,
    WelcomeDialog,
)
from kbbot.localization import Localizer
from kbbot.state import StatePropertyAccessor, UserData, UserState
from kbbot.turn import TurnContext


class Conversation:
    """Runs built-in dialogs turn by turn against shared state."""

    def __init__(self, localizer: Localizer, user_state: UserState, answers: FakeAnswerService | None = None) -> None:
        self.localizer = localizer
        self.user_data: StatePropertyAccessor[UserData] = user_state.create_property("userDataProperty")
        self.answers = answers or FakeAnswerService()
        self.dialogs = (
            DialogSet()
            .add(WelcomeDialog(self.user_data))
            .add(GreetingDialog(self.user_data))
            .add(CancelDialog())
            .add(AnswerDialog({"en-us": self.answers, "es-es": self.answers}))
        )
        self.state = DialogState()

    def stack(self, text: str = "", locale: str = "en-us") -> DialogStack:
        context = TurnContext(message(text), self.localizer, locale=locale)
        return self.dialogs.create_stack(context, self.state)


@pytest.mark.asyncio
async def test_welcome_offers_every_locale(localizer: Localizer, user_state: UserState) -> None:
    stack = Conversation(localizer, user_state).stack()

    result = await stack.begin_dialog(WELCOME_DIALOG)

    assert result.status is DialogTurnStatus.WAITING
    assert stack.context.replies[-1].splitlines() == [
        localizer.gettext("en-us", "chooseLanguage"),
        "- English (en-us)",
        "- Español (es-es)",
    ]


@pytest.mark.asyncio
@pytest.mark.parametrize("choice", ["es-es", "Español", "ESPAÑOL (es-es)"])
async def test_welcome_switches_language(localizer: Localizer, user_state: UserState, choice: str) -> None:
    conversation = Conversation(localizer, user_state)
    await conversation.stack().begin_dialog(WELCOME_DIALOG)

    stack = conversation.stack(choice)
    result = await stack.continue_dialog()

    assert result.status is DialogTurnStatus.COMPLETE
    assert result.result == "es-es"
    assert stack.context.replies == [localizer.gettext("es-es", "languageChanged")]
    assert (await conversation.user_data.get(stack.context)).locale == "es-es"  # type: ignore[union-attr]


@pytest.mark.asyncio
async def test_welcome_hands_back_other_utterances(localizer: Localizer, user_state: UserState) -> None:
    conversation = Conversation(localizer, user_state)
    await conversation.stack().begin_dialog(WELCOME_DIALOG)

    stack = conversation.stack("what are your opening hours?")
    result = await stack.continue_dialog()

    assert result.status is DialogTurnStatus.EMPTY
    assert stack.context.replies == []
    assert conversation.state.stack == []


@pytest.mark.asyncio
async def test_greeting_uses_remembered_name(localizer: Localizer, user_state: UserState) -> None:
    conversation = Conversation(localizer, user_state)
    stack = conversation.stack("hello")
    await conversation.user_data.set(stack.context, UserData(locale="en-us", name="Luis"))

    result = await stack.begin_dialog(GREETING_DIALOG, {"entities": {}})

    assert result.status is DialogTurnStatus.COMPLETE
    assert stack.context.replies == ["Hello Luis! How can I help you today?"]


@pytest.mark.asyncio
async def test_greeting_asks_for_name_then_remembers_it(localizer: Localizer, user_state: UserState) -> None:
    conversation = Conversation(localizer, user_state)
    first = conversation.stack("hi")
    await first.begin_dialog(GREETING_DIALOG)
    assert first.context.replies == [localizer.gettext("en-us", "askName")]

    second = conversation.stack("I'm carmen")
    result = await second.continue_dialog()

    assert result.result == "Carmen"
    assert second.context.replies == ["Hello Carmen! How can I help you today?"]
    assert (await conversation.user_data.get(second.context)).name == "Carmen"  # type: ignore[union-attr]


@pytest.mark.asyncio
async def test_cancel_declined_ends_quietly(localizer: Localizer, user_state: UserState) -> None:
    conversation = Conversation(localizer, user_state)
    await conversation.stack().begin_dialog(CANCEL_DIALOG)

    stack = conversation.stack("no")
    result = await stack.continue_dialog()

    assert result.status is DialogTurnStatus.COMPLETE
    assert result.result is False
    assert stack.context.replies == [localizer.gettext("en-us", "notCancelled")]


@pytest.mark.asyncio
async def test_cancel_confirmed_in_spanish(localizer: Localizer, user_state: UserState) -> None:
    conversation = Conversation(localizer, user_state)
    await conversation.stack(locale="es-es").begin_dialog(CANCEL_DIALOG)

    stack = conversation.stack("Sí", locale="es-es")
    result = await stack.continue_dialog()

    assert result.status is DialogTurnStatus.CANCELLED
    assert stack.context.replies == [localizer.gettext("es-es", "cancelled")]


@pytest.mark.asyncio
async def test_answer_below_min_score_is_a_miss(localizer: Localizer, user_state: UserState) -> None:
    answers = FakeAnswerService([Answer("maybe this", 0.3)])
    stack = Conversation(localizer, user_state, answers).stack("something vague")

    result = await stack.begin_dialog(ANSWER_DIALOG)

    assert result.status is DialogTurnStatus.COMPLETE
    assert stack.context.replies == [localizer.gettext("en-us", "noAnswer")]


@pytest.mark.asyncio
async def test_answer_offers_follow_up_prompts(localizer: Localizer, user_state: UserState) -> None:
    answers = FakeAnswerService([Answer("Open 9 to 6.", 0.9, prompts=("Open on holidays?", "Open on Sunday?"))])
    conversation = Conversation(localizer, user_state, answers)
    stack = conversation.stack("opening hours")

    result = await stack.begin_dialog(ANSWER_DIALOG)

    assert result.status is DialogTurnStatus.WAITING
    assert stack.context.replies == [
        "Open 9 to 6.",
        "You can also ask:\n- Open on holidays?\n- Open on Sunday?",
    ]
    assert conversation.state.stack[-1].state["prompts"] == ["Open on holidays?", "Open on Sunday?"]


@pytest.mark.asyncio
async def test_follow_up_below_min_score_is_a_miss(localizer: Localizer, user_state: UserState) -> None:
    answers = FakeAnswerService([Answer("Open 9 to 6.", 0.9, prompts=("Open on holidays?",))])
    conversation = Conversation(localizer, user_state, answers)
    await conversation.stack("opening hours").begin_dialog(ANSWER_DIALOG)
    answers.answers = [Answer("maybe this", 0.2)]

    stack = conversation.stack("open on holidays")
    result = await stack.continue_dialog()

    assert result.status is DialogTurnStatus.COMPLETE
    assert stack.context.replies == [localizer.gettext("en-us", "noAnswer")]
    assert conversation.state.stack == []


@pytest.mark.asyncio
async def test_follow_up_matching_tolerates_typos(localizer: Localizer, user_state: UserState) -> None:
    answers = FakeAnswerService([Answer("Open 9 to 6.", 0.9, prompts=("Open on holidays?",))])
    conversation = Conversation(localizer, user_state, answers)
    await conversation.stack("opening hours").begin_dialog(ANSWER_DIALOG)
    answers.answers = [Answer("Closed on holidays.", 0.8)]

    stack = conversation.stack("open on holidys?")
    result = await stack.continue_dialog()

    assert result.result == "Closed on holidays."
    assert stack.context.replies == ["Closed on holidays."]


@pytest.mark.asyncio
async def test_greeting_asks_again_after_declined_cancel(localizer: Localizer, user_state: UserState) -> None:
    conversation = Conversation(localizer, user_state)
    await conversation.stack("hi").begin_dialog(GREETING_DIALOG)
    await conversation.stack("cancel").begin_dialog(CANCEL_DIALOG)

    stack = conversation.stack("no")
    result = await stack.continue_dialog()

    assert result.status is DialogTurnStatus.WAITING
    assert stack.context.replies == [
        localizer.gettext("en-us", "notCancelled"),
        localizer.gettext("en-us", "askName"),
    ]
    assert [instance.id for instance in conversation.state.stack] == [GREETING_DIALOG]
