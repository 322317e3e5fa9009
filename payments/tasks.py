"""
Celery tasks for the payments app.

Webhook events are only remembered long enough to catch redeliveries;
``prune_webhook_events`` runs from the beat schedule in settings.
"""
from __future__ import annotations

import logging
from datetime import timedelta

from celery import shared_task
from django.conf import settings
from django.utils import timezone

from .models import WebhookEvent

logger = logging.getLogger(__name__)


@shared_task
def prune_webhook_events(retention_days: int | None = None) -> int:
    """Forget processed webhook events older than the retention window.

    Args:
        retention_days: Days to keep.  Defaults to
            ``settings.WEBHOOK_EVENT_RETENTION_DAYS``.
    """
    if retention_days is None:
        retention_days = getattr(settings, "WEBHOOK_EVENT_RETENTION_DAYS", 30)
    cutoff = timezone.now() - timedelta(days=retention_days)
    deleted = WebhookEvent.prune(cutoff)
    logger.info("Pruned %s webhook events received before %s", deleted, cutoff.isoformat())
    return deleted
