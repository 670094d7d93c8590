from datetime import timezone

from rest_framework import serializers

from ipd.models import ChatMessage
from ipd.services.chat import PATIENT_ID_MAX, PATIENT_ID_MIN


class ChatMessageSerializer(serializers.ModelSerializer):
    """Wire shape shared by HTTP responses and ``newMessage`` pushes."""
    sentAt = serializers.DateTimeField(source='sent_at', read_only=True, format='iso-8601',
                                       default_timezone=timezone.utc)
    patientId = serializers.IntegerField(source='patient_id', read_only=True, allow_null=True)

    class Meta:
        model = ChatMessage
        fields = ['id', 'room', 'sender', 'text', 'sentAt', 'patientId']


def message_payload(msg: ChatMessage) -> dict:
    """Plain dict (safe for the channel layer) for one message."""
    return dict(ChatMessageSerializer(msg).data)


class ChatCreateSerializer(serializers.Serializer):
    # blank checks and trimming happen in the store so sockets get the same rules
    room = serializers.CharField(required=False, allow_blank=True, allow_null=True, trim_whitespace=False)
    sender = serializers.CharField(required=False, allow_blank=True, allow_null=True, trim_whitespace=False)
    text = serializers.CharField(required=False, allow_blank=True, allow_null=True, trim_whitespace=False)
    patientId = serializers.IntegerField(required=False, allow_null=True,
                                         min_value=PATIENT_ID_MIN, max_value=PATIENT_ID_MAX)


class ChatRecentQuerySerializer(serializers.Serializer):
    room = serializers.CharField(required=False, allow_blank=True)
    take = serializers.IntegerField(required=False)


class ChatTakeQuerySerializer(serializers.Serializer):
    take = serializers.IntegerField(required=False)
