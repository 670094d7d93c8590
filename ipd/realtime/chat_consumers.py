import json
import logging
from enum import Enum

from asgiref.sync import sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer
from django.http import QueryDict
from rest_framework.exceptions import ValidationError

from ipd.realtime.events import client_frame, from_layer_message
from ipd.realtime.rooms import rooms
from ipd.serializers.chat import message_payload
from ipd.services.chat import PATIENT_ID_MAX, PATIENT_ID_MIN, normalize_room, recent_by_room
from ipd.services.publish import apost_message

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    CONNECTING = "connecting"
    JOINED = "joined"
    DISCONNECTED = "disconnected"


class ProtocolError(Exception):
    def __init__(self, code: int, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


async def _ws_error(ws, code: int, message: str, *, call_id=None):
    """
    Uniform error frame.
    App codes: 4xxx for caller errors, 5xxx for server errors.
    """
    payload = {"type": "error", "code": code, "message": message}
    if call_id is not None:
        payload["id"] = call_id
    await ws.send(json.dumps(payload))


def _validation_message(exc: ValidationError) -> str:
    detail = exc.detail
    if isinstance(detail, dict):
        detail = next(iter(detail.values()), "")
    if isinstance(detail, list):
        detail = detail[0] if detail else ""
    return str(detail) or "invalid_message"


def _text_arg(args: dict, key: str):
    value = args.get(key)
    if value is None or isinstance(value, str):
        return value
    raise ProtocolError(4005, f"{key} must be a string")


def _int_arg(args: dict, key: str, *, minimum=None, maximum=None):
    value = args.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ProtocolError(4005, f"{key} must be an integer")
    if (minimum is not None and value < minimum) or (maximum is not None and value > maximum):
        raise ProtocolError(4005, f"{key} is out of range")
    return value


class ChatHubConsumer(AsyncWebsocketConsumer):
    """
    Chat hub endpoint (``/hubs/chat``).

    The handshake has already passed the access gate by the time
    ``connect`` runs.  Client frames are JSON objects whose ``type`` names
    an operation; arguments are given by name or, hub style, as a
    positional ``arguments`` list.  An optional ``id`` is echoed in the
    reply so clients can match results to calls.
    """

    # operation -> (handler, positional argument names)
    OPERATIONS = {
        "JoinRoom": ("join_room", ("room",)),
        "LeaveRoom": ("leave_room", ("room",)),
        "SendMessage": ("send_message", ("room", "sender", "text", "patientId")),
        "GetRecent": ("get_recent", ("room", "take")),
    }

    async def connect(self):
        self.connection_state = ConnectionState.CONNECTING
        self.joined_rooms: set[str] = set()
        await self.accept()
        self.connection_state = ConnectionState.JOINED
        logger.info("chat connection %s opened (via %s)", self.channel_name,
                    getattr(self.scope.get("access_gate"), "via", None))

        # optional room declared on the handshake URL: /hubs/chat?room=patient-2
        declared = QueryDict(self.scope.get("query_string", b"")).get("room")
        if declared is not None:
            await self._join(normalize_room(declared))

    async def disconnect(self, close_code):
        self.connection_state = ConnectionState.DISCONNECTED
        left = await rooms.disconnect(self.channel_name)
        self.joined_rooms = set()
        logger.info("chat connection %s closed (code=%s, rooms=%d)", self.channel_name, close_code, len(left))

    async def receive(self, text_data=None, bytes_data=None):
        if not text_data:
            return

        try:
            data = json.loads(text_data)
        except (ValueError, RecursionError):
            # RecursionError: nesting deeper than the decoder allows
            await _ws_error(self, 4000, "invalid_json")
            return

        if not isinstance(data, dict):
            await _ws_error(self, 4001, "invalid_payload")
            return

        call_id = data.get("id")
        op_type = data.get("type")
        operation = self.OPERATIONS.get(op_type) if isinstance(op_type, str) else None
        if operation is None:
            await _ws_error(self, 4002, "unsupported_type", call_id=call_id)
            return
        handler_name, names = operation

        args = data
        if isinstance(data.get("arguments"), list):
            args = dict(zip(names, data["arguments"]))

        try:
            result = await getattr(self, handler_name)(args)
        except ProtocolError as exc:
            await _ws_error(self, exc.code, exc.message, call_id=call_id)
            return
        except ValidationError as exc:
            await _ws_error(self, 4004, _validation_message(exc), call_id=call_id)
            return
        except Exception:
            # no broadcast happened; keep internals out of the frame
            logger.exception("chat operation %s failed on %s", data.get("type"), self.channel_name)
            await _ws_error(self, 5000, "server_error", call_id=call_id)
            return

        reply = {"type": "result", "ok": True, "data": result}
        if call_id is not None:
            reply["id"] = call_id
        await self.send(json.dumps(reply))

    # -----------------------------------------------------------------
    # operations
    # -----------------------------------------------------------------
    async def _join(self, room: str):
        await rooms.join(self.channel_name, room)
        self.joined_rooms.add(room)

    async def join_room(self, args):
        room = normalize_room(_text_arg(args, "room"))
        await self._join(room)
        return {"room": room}

    async def leave_room(self, args):
        room = normalize_room(_text_arg(args, "room"))
        self.joined_rooms.discard(room)
        await rooms.leave(self.channel_name, room)
        return {"room": room}

    async def send_message(self, args):
        return await apost_message(
            room=_text_arg(args, "room"),
            sender=_text_arg(args, "sender"),
            text=_text_arg(args, "text"),
            patient_id=_int_arg(args, "patientId", minimum=PATIENT_ID_MIN, maximum=PATIENT_ID_MAX),
        )

    async def get_recent(self, args):
        room = _text_arg(args, "room")
        take = _int_arg(args, "take")
        messages = await sync_to_async(recent_by_room)(room, 50 if take is None else take)
        return [message_payload(m) for m in messages]

    # -----------------------------------------------------------------
    # channel layer events: rooms.broadcast() -> {"type": "chat.event", ...}
    # -----------------------------------------------------------------
    async def chat_event(self, message):
        try:
            event = from_layer_message(message)
        except (KeyError, ValueError):
            logger.warning("dropping unknown chat event %r", message.get("event"))
            return
        # a leave processed after the event was queued still wins
        if event.room not in self.joined_rooms:
            return
        await self.send(json.dumps(client_frame(event)))
