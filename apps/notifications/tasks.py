"""Celery tasks for notifications."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore

from .services import purge_expired

logger = logging.getLogger(__name__)


@shared_task(name="notifications.purge_expired_notifications")
def purge_expired_notifications() -> dict[str, int]:
    """
    Remove notifications whose expiry has passed.

    Runs daily through Celery Beat.
    """
    deleted = purge_expired()
    if deleted:
        logger.info(f"Purged {deleted} expired notifications")
    return {"deleted": deleted}
