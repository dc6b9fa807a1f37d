"""Developer CLI for talking to the bot locally."""

from __future__ import annotations

import asyncio

import typer
from prompt_toolkit import PromptSession
from prompt_toolkit.patch_stdout import patch_stdout
from rich.console import Console

from kbbot.config import get_settings
from kbbot.runtime import BotRuntime, TurnOutcome, build_default_runtime
from kbbot.turn import ActivityKind, ChannelAccount, ConversationTurn

BOT = ChannelAccount("kbbot", "kbbot")
EXIT_WORDS = {"quit", "exit", ":q"}

app = typer.Typer(name="kbbot", help="Knowledge-base bot turn router", add_completion=False, rich_markup_mode="rich")


class Renderer:
    """Terminal output for bot replies."""

    def __init__(self) -> None:
        self.console = Console()

    def replies(self, outcome: TurnOutcome) -> None:
        for reply in outcome.replies:
            self.console.print(f"[bold yellow]bot:[/bold yellow] {reply}", markup=True, highlight=False)

    def status(self, outcome: TurnOutcome) -> None:
        self.console.print(f"[dim]status={outcome.result.status.value} locale={outcome.locale}[/dim]")


def _message(text: str, user: str, conversation: str, locale: str | None) -> ConversationTurn:
    return ConversationTurn(
        kind=ActivityKind.MESSAGE,
        conversation_id=conversation,
        sender=ChannelAccount(user, user),
        recipient=BOT,
        text=text,
        locale=locale,
        channel="cli",
    )


def _joined(user: str, conversation: str, locale: str | None) -> ConversationTurn:
    return ConversationTurn(
        kind=ActivityKind.CONVERSATION_UPDATE,
        conversation_id=conversation,
        sender=ChannelAccount(user, user),
        recipient=BOT,
        locale=locale,
        members_added=(BOT, ChannelAccount(user, user)),
        channel="cli",
    )


async def _chat(runtime: BotRuntime, renderer: Renderer, *, user: str, locale: str | None, debug: bool) -> None:
    conversation = f"{user}-local"
    outcome = await runtime.process(_joined(user, conversation, locale))
    renderer.replies(outcome)

    session: PromptSession[str] = PromptSession()
    while True:
        with patch_stdout():
            try:
                text = await session.prompt_async("you> ")
            except (EOFError, KeyboardInterrupt):
                return
        if text.strip().lower() in EXIT_WORDS:
            return
        outcome = await runtime.process(_message(text, user, conversation, locale))
        renderer.replies(outcome)
        if debug:
            renderer.status(outcome)


@app.command()
def chat(
    locale: str | None = typer.Option(None, "--locale", "-l", help="Locale hint sent with every turn"),
    user: str = typer.Option("user", "--user", "-u", help="User id"),
    debug: bool = typer.Option(False, "--debug", help="Show the turn status after each reply"),
) -> None:
    """Chat with the bot in the terminal."""
    settings = get_settings(log_profile="chat", log_level="DEBUG" if debug else "WARNING")
    runtime = build_default_runtime(settings)
    asyncio.run(_chat(runtime, Renderer(), user=user, locale=locale, debug=debug))


@app.command()
def turn(
    text: str = typer.Argument(..., help="Message text"),
    locale: str | None = typer.Option(None, "--locale", "-l", help="Locale hint"),
    user: str = typer.Option("user", "--user", "-u", help="User id"),
) -> None:
    """Run a single message turn and print the replies."""
    settings = get_settings(log_level="WARNING")
    runtime = build_default_runtime(settings)
    outcome = asyncio.run(runtime.process(_message(text, user, f"{user}-local", locale)))
    renderer = Renderer()
    renderer.replies(outcome)
    renderer.status(outcome)
