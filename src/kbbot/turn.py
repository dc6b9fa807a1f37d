"""Inbound turn models and the per-turn context."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from kbbot.localization import Localizer


class ActivityKind(str, Enum):
    MESSAGE = "message"
    CONVERSATION_UPDATE = "conversation_update"
    OTHER = "other"


@dataclass(frozen=True)
class ChannelAccount:
    """One participant of a conversation."""

    id: str
    name: str = ""


@dataclass(frozen=True)
class Attachment:
    content_type: str
    url: str = ""
    name: str = ""


@dataclass(frozen=True)
class ConversationTurn:
    """One inbound event received from a channel."""

    kind: ActivityKind
    conversation_id: str
    sender: ChannelAccount
    recipient: ChannelAccount
    text: str = ""
    attachments: tuple[Attachment, ...] = ()
    locale: str | None = None
    members_added: tuple[ChannelAccount, ...] = ()
    channel: str = "direct"

    @property
    def user_key(self) -> str:
        return f"{self.channel}:{self.sender.id}"

    @property
    def conversation_key(self) -> str:
        return f"{self.channel}:{self.conversation_id}"

    @property
    def utterance(self) -> str:
        """Normalized text used for routing decisions."""
        return self.text.strip().lower()


@dataclass
class TurnContext:
    """State shared by everything that handles one turn.

    `locale` is filled in by the router once the user's locale is resolved.
    `replies` collects every message sent back to the user during the turn.
    """

    turn: ConversationTurn
    localizer: Localizer
    locale: str = ""
    replies: list[str] = field(default_factory=list)

    async def send(self, text: str) -> None:
        self.replies.append(text)

    def gettext(self, key: str) -> str:
        return self.localizer.gettext(self.locale or self.localizer.default_locale, key)

    @property
    def sent_count(self) -> int:
        return len(self.replies)
