"""
HTTP surface of the chat hub.

Mirrors the socket operations for clients that cannot hold a socket
open.  A POST goes through the same append-then-broadcast path as
``SendMessage``, so joined sockets see HTTP-sent messages too.

Endpoints:

* ``GET /api/chat?room=&take=`` – recent messages of a room.
* ``GET /api/chat/byPatient/<patientId>?take=`` – recent messages
  tagged with a patient.
* ``POST /api/chat`` – send a message; 201 with ``Location``.
* ``GET /api/chat/<id>`` – one message.
* ``DELETE /api/chat/<id>`` – hard delete.  Connected clients are not
  told; there is no retraction event.
"""
from __future__ import annotations

from django.urls import reverse
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from ipd.permissions import GateCleared
from ipd.serializers.chat import (
    ChatCreateSerializer,
    ChatMessageSerializer,
    ChatRecentQuerySerializer,
    ChatTakeQuerySerializer,
)
from ipd.services.chat import delete_message, get_message, recent_by_patient, recent_by_room
from ipd.services.publish import post_message


@api_view(['GET', 'POST'])
@permission_classes([GateCleared])
def chat_messages(request):
    if request.method == 'POST':
        return _create_message(request)

    q = ChatRecentQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    rows = recent_by_room(q.validated_data.get('room'), q.validated_data.get('take', 50))
    return Response(ChatMessageSerializer(rows, many=True).data)


def _create_message(request):
    s = ChatCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    payload = post_message(
        room=vd.get('room'),
        sender=vd.get('sender'),
        text=vd.get('text'),
        patient_id=vd.get('patientId'),
    )
    location = request.build_absolute_uri(reverse('chat_message_detail', kwargs={'pk': payload['id']}))
    return Response(payload, status=status.HTTP_201_CREATED, headers={'Location': location})


@api_view(['GET'])
@permission_classes([GateCleared])
def chat_by_patient(request, patient_id: int):
    q = ChatTakeQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    rows = recent_by_patient(patient_id, q.validated_data.get('take', 100))
    return Response(ChatMessageSerializer(rows, many=True).data)


@api_view(['GET', 'DELETE'])
@permission_classes([GateCleared])
def chat_message_detail(request, pk: int):
    if request.method == 'DELETE':
        delete_message(pk)
        return Response(status=status.HTTP_204_NO_CONTENT)
    return Response(ChatMessageSerializer(get_message(pk)).data)
