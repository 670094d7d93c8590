"""
Database models for the IPD portal backend.

Only two tables live here: the staff ``User`` used for bearer identities
and the ``ChatMessage`` log behind the realtime chat.  Patients,
admissions, vitals and billing are owned by other services; a chat
message only carries a loose ``patient_id`` pointing at them.
"""
from __future__ import annotations

from django.contrib.auth.models import AbstractUser
from django.db import models
from django.utils import timezone


class User(AbstractUser):
    """Portal staff account.

    Roles mirror the portal's staff roles.  ``full_name`` and
    ``department`` are display fields shown next to chat senders.
    """
    ROLE_CHOICES = [
        ('admin', 'Administrator'),
        ('doctor', 'Doctor'),
        ('nurse', 'Nurse'),
        ('clerk', 'Clerk'),
    ]
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default='clerk')
    full_name = models.CharField(max_length=150, blank=True)
    department = models.CharField(max_length=100, blank=True)

    def __str__(self) -> str:
        return f"{self.username} ({self.role})"


class ChatMessage(models.Model):
    """One persisted chat line.

    Rows are append-only: every field is fixed at insert time and the
    only allowed mutation is a hard delete.  ``patient_id`` is not a
    foreign key; rooms are ad hoc strings.
    """
    room = models.CharField(max_length=100, default='lobby')
    # e.g. "patient:42", "staff:alice"
    sender = models.CharField(max_length=120, blank=True, default='')
    text = models.TextField(max_length=4000)
    sent_at = models.DateTimeField(default=timezone.now, editable=False)
    patient_id = models.IntegerField(null=True, blank=True)

    class Meta:
        indexes = [
            models.Index(fields=['room', 'sent_at'], name='chat_room_sent_idx'),
            models.Index(fields=['patient_id', 'sent_at'], name='chat_patient_sent_idx'),
        ]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError('chat messages are immutable once written')
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"[{self.room}] {self.sender}: {self.text[:40]}"
