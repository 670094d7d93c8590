"""
Django admin registrations for the ipd models.

Chat messages are append-only, so the admin can browse and delete them
but never add or edit them.
"""

from django.contrib import admin

from .models import ChatMessage, User


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('username', 'full_name', 'role', 'department', 'is_staff', 'is_active')
    list_filter = ('role', 'department')
    search_fields = ('username', 'email', 'full_name')


@admin.register(ChatMessage)
class ChatMessageAdmin(admin.ModelAdmin):
    list_display = ('id', 'room', 'sender', 'patient_id', 'sent_at')
    list_filter = ('room',)
    search_fields = ('room', 'sender', 'text')
    readonly_fields = ('room', 'sender', 'text', 'patient_id', 'sent_at')
    ordering = ('-sent_at', '-id')

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
