"""Notification models.

In-app notifications are created by the booking lifecycle (new requests,
acceptances, auto-rejections) and listed by their recipients. Websocket
sessions record the API Gateway connections a notification can be pushed
to in real time.
"""

from __future__ import annotations

from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore


class NotificationQuerySet(models.QuerySet):
    def unread(self):
        return self.filter(is_read=False)

    def live(self):
        """Notifications that have not passed their expiry."""
        return self.filter(models.Q(expires_at__isnull=True) | models.Q(expires_at__gt=timezone.now()))


class Notification(models.Model):
    """A message sent to a user about some event."""

    class Category(models.TextChoices):
        BOOKING = "booking", "Booking"
        SYSTEM = "system", "System"
        MESSAGE = "message", "Message"

    class Priority(models.TextChoices):
        LOW = "low", "Low"
        MEDIUM = "medium", "Medium"
        HIGH = "high", "High"

    user = models.ForeignKey(
        "users.CustomUser", on_delete=models.CASCADE, related_name="notifications"
    )
    sender = models.ForeignKey(
        "users.CustomUser",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="sent_notifications",
    )
    type = models.CharField(max_length=50)
    category = models.CharField(max_length=20, choices=Category.choices, default=Category.SYSTEM)
    priority = models.CharField(max_length=10, choices=Priority.choices, default=Priority.MEDIUM)
    title = models.CharField(max_length=255)
    message = models.TextField()
    data = models.JSONField(default=dict, blank=True)
    action_url = models.CharField(max_length=255, blank=True)
    is_read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)
    expires_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = NotificationQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at", "-pk"]
        indexes = [
            models.Index(fields=["user", "is_read"], name="notification_user_read_idx"),
            models.Index(fields=["expires_at"], name="notification_expiry_idx"),
        ]

    def __str__(self) -> str:
        return f"Notification to {self.user_id}: {self.title}"

    def mark_read(self) -> None:
        if self.is_read:
            return
        self.is_read = True
        self.read_at = timezone.now()
        self.save(update_fields=["is_read", "read_at"])

    def as_payload(self) -> dict:
        """Shape pushed over the websocket channel."""
        return {
            "id": self.pk,
            "type": self.type,
            "category": self.category,
            "priority": self.priority,
            "title": self.title,
            "message": self.message,
            "data": self.data,
            "action_url": self.action_url,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class WebSocketSession(models.Model):
    """An open API Gateway websocket connection for a user."""

    user = models.ForeignKey(
        "users.CustomUser", on_delete=models.CASCADE, related_name="websocket_sessions"
    )
    connection_id = models.CharField(max_length=128, unique=True)
    is_active = models.BooleanField(default=True)
    last_active = models.DateTimeField(default=timezone.now)
    expires_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-last_active"]

    def __str__(self) -> str:
        return f"WebSocket {self.connection_id} ({self.user_id})"
