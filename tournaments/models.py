"""
Models for the tournaments app.

A ``Tournament`` carries the registration window, pricing (in cents) and
the capacity configuration consulted when registrants are admitted.
A ``Group`` is a tee-time slot container (a foursome) that confirmed
registrants are assigned to.
"""
from django.db import models
from django.utils import timezone
from django.utils.text import slugify

from .capacity import CapacitySnapshot


class Tournament(models.Model):
    """A capacity-limited tournament that golfers register and pay for."""

    STATUS_DRAFT = "draft"
    STATUS_OPEN = "open"
    STATUS_CLOSED = "closed"
    STATUS_IN_PROGRESS = "in_progress"
    STATUS_COMPLETED = "completed"
    STATUS_ARCHIVED = "archived"
    STATUS_CHOICES = [
        (STATUS_DRAFT, "Draft"),
        (STATUS_OPEN, "Open"),
        (STATUS_CLOSED, "Closed"),
        (STATUS_IN_PROGRESS, "In Progress"),
        (STATUS_COMPLETED, "Completed"),
        (STATUS_ARCHIVED, "Archived"),
    ]

    name = models.CharField(max_length=255)
    year = models.PositiveIntegerField()
    slug = models.SlugField(max_length=255, unique=True, blank=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_DRAFT)
    event_date = models.DateField(null=True, blank=True)
    registration_open = models.BooleanField(default=False)
    registration_deadline = models.DateTimeField(null=True, blank=True)
    max_capacity = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text="Total number of confirmed golfers; empty means unlimited",
    )
    reserved_slots = models.PositiveIntegerField(
        default=0,
        help_text="Slots held back from public registration for admins",
    )
    entry_fee = models.PositiveIntegerField(default=12500, help_text="Entry fee in cents")
    early_bird_fee = models.PositiveIntegerField(null=True, blank=True, help_text="Early bird fee in cents")
    early_bird_deadline = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-year", "-created_at"]

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = slugify(f"{self.name}-{self.year}")
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.name} ({self.year})"

    def registration_deadline_passed(self) -> bool:
        return self.registration_deadline is not None and timezone.now() >= self.registration_deadline

    def accepting_registrations(self) -> bool:
        # Capacity is not part of this: a full tournament waitlists
        return (
            self.status == self.STATUS_OPEN
            and self.registration_open
            and not self.registration_deadline_passed()
        )

    def early_bird_active(self) -> bool:
        if self.early_bird_fee is None or self.early_bird_deadline is None:
            return False
        return timezone.now() < self.early_bird_deadline

    def current_fee(self) -> int:
        return self.early_bird_fee if self.early_bird_active() else self.entry_fee

    def confirmed_count(self) -> int:
        return self.registrants.filter(admission_status="confirmed").count()

    def capacity_snapshot(self) -> CapacitySnapshot:
        return CapacitySnapshot(
            max_capacity=self.max_capacity,
            reserved_slots=self.reserved_slots,
            confirmed_count=self.confirmed_count(),
        )


class Group(models.Model):
    """A tee-time slot container holding up to ``max_golfers`` registrants."""

    tournament = models.ForeignKey(Tournament, on_delete=models.CASCADE, related_name="groups")
    group_number = models.PositiveIntegerField()
    hole_number = models.PositiveIntegerField(null=True, blank=True)
    max_golfers = models.PositiveSmallIntegerField(default=4)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["tournament", "group_number"]
        constraints = [
            models.UniqueConstraint(fields=["tournament", "group_number"], name="uniq_group_number_per_tournament"),
        ]

    def __str__(self) -> str:
        return f"Group {self.group_number} ({self.tournament_id})"

    def is_full(self) -> bool:
        return self.registrants.count() >= self.max_golfers
