"""Serializers for notifications."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .models import Notification


class NotificationSerializer(serializers.ModelSerializer):
    """Serializer for notifications."""

    sender_id = serializers.ReadOnlyField()

    class Meta:
        model = Notification
        fields = [
            'id',
            'type',
            'category',
            'priority',
            'title',
            'message',
            'data',
            'action_url',
            'sender_id',
            'is_read',
            'read_at',
            'expires_at',
            'created_at',
        ]
        read_only_fields = fields
