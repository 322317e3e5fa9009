"""
Models for the activity log app.

``ActivityLog`` stores one row per registration or payment action.
Entries are written inside the same transaction as the change they
describe, so a rolled-back refund or payment leaves no trace here.
Additional metadata (amounts, gateway references) lives in a JSON field
so the admin can render entries without querying the gateway.
"""
from django.conf import settings
from django.db import models


class ActivityLog(models.Model):
    """A single audited action on a tournament or registrant."""

    REGISTRATION_CREATED = "registration_created"
    PAYMENT_COMPLETED = "payment_completed"
    PAYMENT_RECORDED = "payment_recorded"
    REGISTRANT_REFUNDED = "registrant_refunded"
    REGISTRANT_CANCELLED = "registrant_cancelled"
    REGISTRANT_PROMOTED = "registrant_promoted"
    ACTION_CHOICES = [
        (REGISTRATION_CREATED, "Registration created"),
        (PAYMENT_COMPLETED, "Payment completed"),
        (PAYMENT_RECORDED, "Payment recorded"),
        (REGISTRANT_REFUNDED, "Registrant refunded"),
        (REGISTRANT_CANCELLED, "Registrant cancelled"),
        (REGISTRANT_PROMOTED, "Registrant promoted"),
    ]

    tournament = models.ForeignKey(
        "tournaments.Tournament",
        on_delete=models.CASCADE,
        related_name="activity_logs",
    )
    registrant = models.ForeignKey(
        "registrants.Registrant",
        on_delete=models.SET_NULL,
        related_name="activity_logs",
        blank=True,
        null=True,
    )
    # Null for self-service actions (public registration, gateway webhooks)
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="activity_logs",
        blank=True,
        null=True,
    )
    action = models.CharField(max_length=64, choices=ACTION_CHOICES, db_index=True)
    details = models.TextField(blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=["tournament", "created_at"], name="activity_log_tournament_idx"),
            models.Index(fields=["registrant", "created_at"], name="activity_log_registrant_idx"),
        ]
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.action} by {self.actor_id} on {self.created_at.isoformat()}"

    @classmethod
    def log(cls, *, action, registrant=None, tournament=None, actor=None, details="", metadata=None):
        """Record an action; the tournament defaults to the registrant's."""
        if tournament is None:
            tournament = registrant.tournament
        if actor is not None and not getattr(actor, "is_authenticated", False):
            actor = None
        return cls.objects.create(
            tournament=tournament,
            registrant=registrant,
            actor=actor,
            action=action,
            details=details,
            metadata=metadata or {},
        )
