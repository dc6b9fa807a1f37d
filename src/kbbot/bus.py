"""Signal-based turn bus between channel adapters and the bot runtime."""

from __future__ import annotations

from collections.abc import Callable, Coroutine
from dataclasses import dataclass, field
from typing import Any

from blinker import Signal

from kbbot.turn import ConversationTurn

InboundHandler = Callable[[ConversationTurn], Coroutine[Any, Any, None]]
OutboundHandler = Callable[["OutboundReply"], Coroutine[Any, Any, None]]


@dataclass(frozen=True)
class OutboundReply:
    """Message to be delivered back to one conversation."""

    channel: str
    conversation_id: str
    recipient_id: str
    content: str
    metadata: dict[str, Any] = field(default_factory=dict)


class TurnBus:
    """In-process bus backed by blinker signals."""

    def __init__(self) -> None:
        self._inbound = Signal("kbbot.inbound")
        self._outbound = Signal("kbbot.outbound")

    async def publish_inbound(self, turn: ConversationTurn) -> None:
        await self._inbound.send_async(self, turn=turn)

    async def publish_outbound(self, reply: OutboundReply) -> None:
        await self._outbound.send_async(self, reply=reply)

    def on_inbound(self, handler: InboundHandler) -> Callable[[], None]:
        async def _receiver(sender: Any, *, turn: ConversationTurn) -> None:
            await handler(turn)

        self._inbound.connect(_receiver, weak=False)
        return lambda: self._inbound.disconnect(_receiver)

    def on_outbound(self, handler: OutboundHandler) -> Callable[[], None]:
        async def _receiver(sender: Any, *, reply: OutboundReply) -> None:
            await handler(reply)

        self._outbound.connect(_receiver, weak=False)
        return lambda: self._outbound.disconnect(_receiver)
