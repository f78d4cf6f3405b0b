"""Admin registrations for notifications."""

from __future__ import annotations

from django.contrib import admin

from .models import Notification, WebSocketSession


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("title", "user", "type", "category", "priority", "is_read", "created_at")
    list_filter = ("category", "priority", "is_read")
    search_fields = ("title", "message", "user__email")
    readonly_fields = ("created_at", "read_at")


@admin.register(WebSocketSession)
class WebSocketSessionAdmin(admin.ModelAdmin):
    list_display = ("connection_id", "user", "is_active", "last_active")
    list_filter = ("is_active",)
    search_fields = ("connection_id", "user__email")
