"""
Chat message store.

Plain data access over :class:`~ipd.models.ChatMessage`: append, the two
"recent" read paths, lookup and hard delete.  Fan-out is not done here;
see :mod:`ipd.services.publish`.
"""
import logging
from typing import Optional

from django.conf import settings
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from ipd.models import ChatMessage

logger = logging.getLogger(__name__)

ROOM_MAX_LENGTH = ChatMessage._meta.get_field('room').max_length
SENDER_MAX_LENGTH = ChatMessage._meta.get_field('sender').max_length
TEXT_MAX_LENGTH = ChatMessage._meta.get_field('text').max_length
# patient_id is a 32-bit integer column
PATIENT_ID_MIN = -(2 ** 31)
PATIENT_ID_MAX = 2 ** 31 - 1


def normalize_room(room: Optional[str]) -> str:
    """Trim ``room``; blank or missing rooms become the fallback room."""
    room = (room or '').strip()
    return room or settings.CHAT_FALLBACK_ROOM


def clamp_take(take: int, maximum: int) -> int:
    return max(1, min(int(take), maximum))


def append_message(room: Optional[str], sender: Optional[str], text: Optional[str],
                   patient_id: Optional[int] = None) -> ChatMessage:
    text = (text or '').strip()
    if not text:
        raise ValidationError({'text': ['Message text is required.']})
    if len(text) > TEXT_MAX_LENGTH:
        raise ValidationError({'text': [f'Message text is limited to {TEXT_MAX_LENGTH} characters.']})

    room = normalize_room(room)
    if len(room) > ROOM_MAX_LENGTH:
        raise ValidationError({'room': [f'Room name is limited to {ROOM_MAX_LENGTH} characters.']})
    sender = (sender or '').strip()
    if len(sender) > SENDER_MAX_LENGTH:
        raise ValidationError({'sender': [f'Sender is limited to {SENDER_MAX_LENGTH} characters.']})

    # patient_id is a loose tag; it is deliberately not checked against patients
    msg = ChatMessage.objects.create(
        room=room,
        sender=sender,
        text=text,
        patient_id=patient_id,
        sent_at=timezone.now(),
    )
    logger.debug("chat message %s stored in room %r", msg.id, msg.room)
    return msg


def _newest_first_then_reverse(qs, take: int) -> list[ChatMessage]:
    rows = qs.order_by('-sent_at', '-id')[:take]
    return list(reversed(list(rows)))


def recent_by_room(room: Optional[str], take: int = 50) -> list[ChatMessage]:
    """Latest ``take`` messages of ``room``, oldest first."""
    take = clamp_take(take, settings.CHAT_ROOM_TAKE_MAX)
    return _newest_first_then_reverse(ChatMessage.objects.filter(room=normalize_room(room)), take)


def recent_by_patient(patient_id: int, take: int = 100) -> list[ChatMessage]:
    """Latest ``take`` messages tagged with ``patient_id``, oldest first."""
    take = clamp_take(take, settings.CHAT_PATIENT_TAKE_MAX)
    return _newest_first_then_reverse(ChatMessage.objects.filter(patient_id=patient_id), take)


def get_message(pk: int) -> ChatMessage:
    try:
        return ChatMessage.objects.get(pk=pk)
    except ChatMessage.DoesNotExist:
        raise NotFound('chat message not found')


def delete_message(pk: int) -> None:
    deleted, _ = ChatMessage.objects.filter(pk=pk).delete()
    if not deleted:
        raise NotFound('chat message not found')
    logger.debug("chat message %s deleted", pk)
