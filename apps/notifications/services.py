"""Notification services: in-app records and real-time websocket pushes."""

from __future__ import annotations

import json
import logging
from datetime import timedelta
from typing import TYPE_CHECKING, Any

import boto3  # type: ignore
from botocore.exceptions import ClientError  # type: ignore
from django.conf import settings  # type: ignore
from django.core.serializers.json import DjangoJSONEncoder  # type: ignore
from django.utils import timezone  # type: ignore

from .models import Notification, WebSocketSession

if TYPE_CHECKING:  # pragma: no cover
    from apps.users.models import CustomUser

logger = logging.getLogger(__name__)


# ============================================================================
# IN-APP NOTIFICATIONS
# ============================================================================

def create_in_app_notification(
    user: "CustomUser",
    *,
    type: str,
    title: str,
    message: str,
    category: str = Notification.Category.SYSTEM,
    priority: str = Notification.Priority.MEDIUM,
    data: dict[str, Any] | None = None,
    action_url: str = "",
    sender: "CustomUser" | None = None,
) -> Notification:
    """Store a notification for the user; it expires after NOTIFICATION_TTL_DAYS."""
    ttl_days = getattr(settings, "NOTIFICATION_TTL_DAYS", 30)
    notification = Notification.objects.create(
        user=user,
        sender=sender,
        type=type,
        category=category,
        priority=priority,
        title=title,
        message=message,
        data=data or {},
        action_url=action_url,
        expires_at=timezone.now() + timedelta(days=ttl_days),
    )
    logger.info(f"Notification {notification.pk} ({type}) created for user {user.pk}")
    return notification


# ============================================================================
# REAL-TIME PUSH (API Gateway websocket)
# ============================================================================

def _gateway_client():
    return boto3.client(
        "apigatewaymanagementapi",
        endpoint_url=settings.WEBSOCKET_ENDPOINT,
        region_name=getattr(settings, "AWS_REGION", "us-east-1"),
    )


def push_realtime(notification: Notification) -> bool:
    """
    Push a notification to the recipient's active websocket session.

    Returns False when pushing is not configured, the user has no active
    session, or the gateway call fails. A gone connection is deactivated.
    """
    if not getattr(settings, "WEBSOCKET_ENDPOINT", ""):
        return False

    session = (
        WebSocketSession.objects.filter(user_id=notification.user_id, is_active=True)
        .order_by("-last_active")
        .first()
    )
    if session is None:
        return False

    payload = json.dumps(
        {"action": "notification", "notification": notification.as_payload()},
        cls=DjangoJSONEncoder,
    )
    try:
        _gateway_client().post_to_connection(
            ConnectionId=session.connection_id,
            Data=payload.encode("utf-8"),
        )
    except ClientError as e:
        code = e.response.get("Error", {}).get("Code", "")
        if code == "GoneException":
            WebSocketSession.objects.filter(pk=session.pk).update(is_active=False)
            logger.info(f"WebSocket connection {session.connection_id} is gone, deactivated")
        else:
            logger.error(f"Failed to push notification {notification.pk}: {e}", exc_info=True)
        return False
    except Exception as e:
        logger.error(f"Failed to push notification {notification.pk}: {e}", exc_info=True)
        return False

    WebSocketSession.objects.filter(pk=session.pk).update(last_active=timezone.now())
    return True


def notify_user(user: "CustomUser", **kwargs: Any) -> Notification:
    """Create an in-app notification and try to push it in real time."""
    notification = create_in_app_notification(user, **kwargs)
    push_realtime(notification)
    return notification


def purge_expired(now=None) -> int:
    """Delete notifications past their expiry; returns the number removed."""
    now = now or timezone.now()
    deleted, _ = Notification.objects.filter(expires_at__lte=now).delete()
    return deleted
