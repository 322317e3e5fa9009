"""
Database models for the registrants app.

``Registrant`` is the paying entity.  Its admission status is decided by
the capacity ledger when it is created; its payment status is moved only
by the payments app (reconciler, refund processor, manual payment
recording) once a checkout has started.  Correlation fields tie the row to
the payment gateway: ``checkout_session_id`` for the current checkout,
``payment_intent_id`` once paid and ``refund_id`` once refunded.
"""
from django.conf import settings
from django.db import models
from django.db.models import Q
from django.db.models.functions import Lower

from tournaments.models import Group, Tournament


class Registrant(models.Model):
    """A golfer registered for a tournament."""

    ADMISSION_CONFIRMED = "confirmed"
    ADMISSION_WAITLISTED = "waitlisted"
    ADMISSION_CANCELLED = "cancelled"
    ADMISSION_CHOICES = [
        (ADMISSION_CONFIRMED, "Confirmed"),
        (ADMISSION_WAITLISTED, "Waitlisted"),
        (ADMISSION_CANCELLED, "Cancelled"),
    ]

    PAYMENT_UNPAID = "unpaid"
    PAYMENT_PAID = "paid"
    PAYMENT_REFUNDED = "refunded"
    PAYMENT_STATUS_CHOICES = [
        (PAYMENT_UNPAID, "Unpaid"),
        (PAYMENT_PAID, "Paid"),
        (PAYMENT_REFUNDED, "Refunded"),
    ]

    PAYMENT_TYPE_GATEWAY = "gateway"
    PAYMENT_TYPE_MANUAL = "manual"
    PAYMENT_TYPE_CHOICES = [
        (PAYMENT_TYPE_GATEWAY, "Card (online)"),
        (PAYMENT_TYPE_MANUAL, "Cash/check on the day"),
    ]

    tournament = models.ForeignKey(Tournament, on_delete=models.PROTECT, related_name="registrants")

    name = models.CharField(max_length=255)
    email = models.EmailField()
    phone = models.CharField(max_length=40)
    mobile = models.CharField(max_length=40, blank=True)
    company = models.CharField(max_length=255, blank=True)
    address = models.CharField(max_length=500, blank=True)
    waiver_accepted_at = models.DateTimeField()

    admission_status = models.CharField(
        max_length=12, choices=ADMISSION_CHOICES, default=ADMISSION_CONFIRMED, db_index=True
    )
    payment_status = models.CharField(
        max_length=10, choices=PAYMENT_STATUS_CHOICES, default=PAYMENT_UNPAID, db_index=True
    )
    payment_type = models.CharField(max_length=10, choices=PAYMENT_TYPE_CHOICES, default=PAYMENT_TYPE_GATEWAY)

    checkout_session_id = models.CharField(max_length=255, null=True, blank=True, unique=True)
    payment_intent_id = models.CharField(max_length=255, null=True, blank=True, db_index=True)
    refund_id = models.CharField(max_length=255, null=True, blank=True, unique=True)
    payment_token = models.CharField(max_length=64, null=True, blank=True, unique=True)

    payment_amount = models.PositiveIntegerField(null=True, blank=True, help_text="Captured amount in cents")
    payment_method_brand = models.CharField(max_length=32, blank=True)
    payment_method_last4 = models.CharField(max_length=4, blank=True)
    payment_notes = models.TextField(blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)

    refund_amount = models.PositiveIntegerField(null=True, blank=True, help_text="Refunded amount in cents")
    refund_reason = models.TextField(blank=True)
    refunded_at = models.DateTimeField(null=True, blank=True)
    refunded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="refunded_registrants",
    )

    group = models.ForeignKey(
        Group,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="registrants",
    )
    position = models.PositiveSmallIntegerField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["tournament", "admission_status"], name="registrant_admission_idx"),
            models.Index(fields=["tournament", "payment_status"], name="registrant_payment_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                Lower("email"), "tournament", name="uniq_registrant_email_per_tournament"
            ),
            models.CheckConstraint(
                condition=~Q(payment_status="paid") | Q(payment_intent_id__isnull=False),
                name="paid_requires_payment_intent",
            ),
            models.CheckConstraint(
                condition=~Q(payment_status="refunded") | Q(refund_id__isnull=False),
                name="refunded_requires_refund_id",
            ),
            models.CheckConstraint(
                condition=~Q(admission_status="cancelled") | Q(group__isnull=True),
                name="cancelled_holds_no_group",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.name} <{self.email}> ({self.tournament_id})"

    @property
    def is_paid(self) -> bool:
        return self.payment_status == self.PAYMENT_PAID

    @property
    def is_refunded(self) -> bool:
        return self.payment_status == self.PAYMENT_REFUNDED

    @property
    def is_cancelled(self) -> bool:
        return self.admission_status == self.ADMISSION_CANCELLED

    def can_refund(self) -> bool:
        return (
            self.payment_status == self.PAYMENT_PAID
            and self.payment_type == self.PAYMENT_TYPE_GATEWAY
            and bool(self.payment_intent_id)
        )

    def can_receive_payment_link(self) -> bool:
        return not (self.is_paid or self.is_refunded or self.is_cancelled)

    def payment_link_url(self) -> str | None:
        if not self.payment_token:
            return None
        return f"{settings.FRONTEND_URL}/pay/{self.payment_token}"

    def append_note(self, line: str) -> None:
        self.payment_notes = f"{self.payment_notes}\n{line}" if self.payment_notes else line

    def detach_from_group(self) -> bool:
        """Drop the slot assignment in memory; the caller saves."""
        if self.group_id is None and self.position is None:
            return False
        self.group = None
        self.position = None
        return True
