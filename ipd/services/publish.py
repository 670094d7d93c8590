"""
Append-then-broadcast for chat sends.

Persistence is the success criterion of a send.  The broadcast that
follows is best effort: a failure is logged and the caller still gets
the stored message back.
"""
import logging
from typing import Optional

from asgiref.sync import async_to_sync, sync_to_async

from ipd.realtime.events import NewMessage
from ipd.realtime.rooms import rooms
from ipd.serializers.chat import message_payload
from ipd.services.chat import append_message

logger = logging.getLogger(__name__)


async def announce(room: str, payload: dict) -> bool:
    try:
        await rooms.broadcast(room, NewMessage(room=room, message=payload))
    except Exception:
        logger.warning("broadcast of message %s to room %r failed", payload.get('id'), room, exc_info=True)
        return False
    return True


def post_message(*, room: Optional[str], sender: Optional[str], text: Optional[str],
                 patient_id: Optional[int] = None) -> dict:
    """Store a message and fan it out; for sync callers (HTTP views)."""
    msg = append_message(room, sender, text, patient_id)
    payload = message_payload(msg)
    async_to_sync(announce)(msg.room, payload)
    return payload


async def apost_message(*, room: Optional[str], sender: Optional[str], text: Optional[str],
                        patient_id: Optional[int] = None) -> dict:
    """Async twin of :func:`post_message` for socket consumers."""
    msg = await sync_to_async(append_message)(room, sender, text, patient_id)
    payload = message_payload(msg)
    await announce(msg.room, payload)
    return payload
