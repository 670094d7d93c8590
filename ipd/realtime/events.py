"""
Server-pushed chat events.

The hub pushes a closed set of event kinds.  Each kind is a
:class:`ServerEvent` member plus a frozen dataclass; encoding and
decoding refuse anything outside that set.  Events travel through the
channel layer as ``{"type": "chat.event", ...}`` messages, which
Channels dispatches to ``ChatHubConsumer.chat_event``.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Union

LAYER_MESSAGE_TYPE = "chat.event"


class ServerEvent(str, Enum):
    NEW_MESSAGE = "newMessage"


@dataclass(frozen=True)
class NewMessage:
    """A message was persisted in ``room``; ``message`` is its wire payload."""
    room: str
    message: dict
    kind: ClassVar[ServerEvent] = ServerEvent.NEW_MESSAGE


OutboundEvent = Union[NewMessage]


def to_layer_message(event: OutboundEvent) -> dict:
    if isinstance(event, NewMessage):
        return {
            "type": LAYER_MESSAGE_TYPE,
            "event": event.kind.value,
            "room": event.room,
            "data": event.message,
        }
    raise TypeError(f"unsupported outbound event: {event!r}")


def from_layer_message(message: dict) -> OutboundEvent:
    kind = ServerEvent(message.get("event"))
    if kind is ServerEvent.NEW_MESSAGE:
        return NewMessage(room=message["room"], message=message["data"])
    raise ValueError(f"unhandled event kind: {kind}")


def client_frame(event: OutboundEvent) -> dict:
    """JSON frame sent to a socket client for ``event``."""
    if isinstance(event, NewMessage):
        return {"type": event.kind.value, "data": event.message}
    raise TypeError(f"unsupported outbound event: {event!r}")
