"""
Database models for the payments app.

Payment state lives on ``registrants.Registrant``.  This app only stores
the ids of gateway webhook events it has already processed, so that a
redelivered event is acknowledged without being dispatched again.  Stripe
stops redelivering an event after three days, so rows older than
``WEBHOOK_EVENT_RETENTION_DAYS`` are pruned by a periodic task.
"""
from __future__ import annotations

from django.db import models


class WebhookEvent(models.Model):
    """A gateway webhook event that has been dispatched."""

    event_id = models.CharField(max_length=255, unique=True)
    event_type = models.CharField(max_length=100)
    outcome = models.CharField(max_length=50, blank=True)
    received_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ["-received_at"]

    @classmethod
    def prune(cls, before) -> int:
        """Delete events received before ``before``; return how many went."""
        deleted, _ = cls.objects.filter(received_at__lt=before).delete()
        return deleted

    def __str__(self) -> str:
        return f"{self.event_type} {self.event_id} ({self.outcome or 'received'})"
