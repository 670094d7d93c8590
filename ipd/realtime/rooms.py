"""
Room membership registry for the chat hub.

A process-wide directory of which live connections (Channels channel
names) are joined to which room.  Fan-out itself goes through the
channel layer groups, so it is best effort: a full or stale channel
simply drops the event and nobody is told.

Only the operations below are public; the membership maps stay private
and are mutated under a lock.
"""
from __future__ import annotations

import hashlib
import logging
import threading

from channels.layers import get_channel_layer

from .events import OutboundEvent, to_layer_message

logger = logging.getLogger(__name__)


def group_name(room: str) -> str:
    """Channel-layer group for ``room``.

    Group names only allow ASCII letters, digits, ``-``, ``_`` and ``.``
    and must stay under 100 characters, while room names are free text.
    """
    return "chat." + hashlib.sha1(room.encode("utf-8")).hexdigest()


class RoomRegistry:
    def __init__(self, channel_layer=None):
        self._channel_layer = channel_layer
        self._lock = threading.Lock()
        self._members: dict[str, set[str]] = {}
        self._rooms_by_connection: dict[str, set[str]] = {}

    @property
    def channel_layer(self):
        if self._channel_layer is not None:
            return self._channel_layer
        return get_channel_layer()

    # -----------------------------------------------------------------
    # membership
    # -----------------------------------------------------------------
    def _add(self, connection_id: str, room: str) -> bool:
        with self._lock:
            members = self._members.setdefault(room, set())
            if connection_id in members:
                return False
            members.add(connection_id)
            self._rooms_by_connection.setdefault(connection_id, set()).add(room)
            return True

    def _remove(self, connection_id: str, room: str) -> bool:
        with self._lock:
            members = self._members.get(room)
            if not members or connection_id not in members:
                return False
            members.discard(connection_id)
            if not members:
                del self._members[room]
            rooms = self._rooms_by_connection.get(connection_id)
            if rooms is not None:
                rooms.discard(room)
                if not rooms:
                    del self._rooms_by_connection[connection_id]
            return True

    async def join(self, connection_id: str, room: str) -> bool:
        """Add ``connection_id`` to ``room``; False if it was already there."""
        if not self._add(connection_id, room):
            return False
        try:
            await self.channel_layer.group_add(group_name(room), connection_id)
        except Exception:
            self._remove(connection_id, room)
            raise
        logger.debug("%s joined room %r", connection_id, room)
        return True

    async def leave(self, connection_id: str, room: str) -> bool:
        """Remove ``connection_id`` from ``room``; False if it was not there."""
        if not self._remove(connection_id, room):
            return False
        await self.channel_layer.group_discard(group_name(room), connection_id)
        logger.debug("%s left room %r", connection_id, room)
        return True

    async def disconnect(self, connection_id: str) -> frozenset[str]:
        """Drop ``connection_id`` from every room it belonged to."""
        with self._lock:
            rooms = self._rooms_by_connection.pop(connection_id, set())
            for room in rooms:
                members = self._members.get(room)
                if members is not None:
                    members.discard(connection_id)
                    if not members:
                        del self._members[room]
        for room in rooms:
            await self.channel_layer.group_discard(group_name(room), connection_id)
        return frozenset(rooms)

    # -----------------------------------------------------------------
    # fan-out
    # -----------------------------------------------------------------
    async def broadcast(self, room: str, event: OutboundEvent) -> None:
        """Deliver ``event`` to every connection joined to ``room``.

        At most once, no acknowledgement, no retry.
        """
        await self.channel_layer.group_send(group_name(room), to_layer_message(event))

    # -----------------------------------------------------------------
    # snapshots
    # -----------------------------------------------------------------
    def members(self, room: str) -> frozenset[str]:
        with self._lock:
            return frozenset(self._members.get(room, ()))

    def rooms_of(self, connection_id: str) -> frozenset[str]:
        with self._lock:
            return frozenset(self._rooms_by_connection.get(connection_id, ()))


rooms = RoomRegistry()
