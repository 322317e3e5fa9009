"""
Registration admission controller.

Every path that creates a registrant or changes whether it holds a
confirmed spot goes through this module.  The confirmed count that
decides between ``confirmed`` and ``waitlisted`` is read while the
tournament row is locked, so two concurrent registrations for the last
public spot are serialized: one is confirmed, the other waitlisted.
Locks are always taken tournament first, then registrant.

Notifications are not sent from ``admit``; callers enqueue them through
``registrants.notifications`` once they know the outcome.  The admin
operations below enqueue their own.
"""
from __future__ import annotations

import logging
import secrets

from django.db import transaction
from django.shortcuts import get_object_or_404

from activity_log.models import ActivityLog
from payments.exceptions import (
    AlreadyCancelled,
    AlreadyPaid,
    AlreadyRefunded,
    CapacityExceeded,
    NotCancellable,
    RegistrationClosed,
    ValidationFailed,
)
from tournaments.capacity import admission_status_for, can_promote
from tournaments.models import Tournament

from . import notifications
from .models import Registrant
from .serializers import RegistrantAdmissionSerializer

logger = logging.getLogger(__name__)


def lock_tournament(tournament_id: int) -> Tournament:
    return get_object_or_404(Tournament.objects.select_for_update(), pk=tournament_id)


def lock_registrant(registrant_id: int) -> Registrant:
    return get_object_or_404(Registrant.objects.select_for_update(), pk=registrant_id)


def validate_registration(data) -> dict:
    """Validate submitted registration details; return model field values."""
    serializer = RegistrantAdmissionSerializer(data=data)
    if not serializer.is_valid():
        raise ValidationFailed(errors=serializer.errors)
    return serializer.registrant_fields()


def email_taken(tournament_id: int, email: str) -> bool:
    return Registrant.objects.filter(tournament_id=tournament_id, email__iexact=email).exists()


def admit_locked(tournament: Tournament, fields: dict, *, use_reserved_slots: bool = False) -> Registrant:
    """
    Insert a registrant with the status the capacity ledger decides.

    The caller must hold the lock on ``tournament`` and be inside the
    transaction that will commit the insert.
    """
    snapshot = tournament.capacity_snapshot()
    status = admission_status_for(snapshot, use_reserved_slots=use_reserved_slots)
    registrant = Registrant.objects.create(tournament=tournament, admission_status=status, **fields)
    logger.info(
        "Admitted registrant %s to tournament %s as %s (%s/%s confirmed)",
        registrant.id,
        tournament.id,
        status,
        snapshot.confirmed_count,
        snapshot.max_capacity if snapshot.max_capacity is not None else "unlimited",
    )
    return registrant


def admit(tournament_id: int, data, *, use_reserved_slots: bool = False, actor=None) -> Registrant:
    """
    Admit a registrant to a tournament as ``confirmed`` or ``waitlisted``.

    A full tournament waitlists, it never refuses.  ``RegistrationClosed``
    is raised only when the tournament is not accepting registrations.
    Admins pass ``use_reserved_slots=True`` so their admissions are
    measured against the total capacity rather than the public one.
    """
    fields = validate_registration(data)
    with transaction.atomic():
        tournament = lock_tournament(tournament_id)
        if not tournament.accepting_registrations():
            raise RegistrationClosed()
        if email_taken(tournament.id, fields["email"]):
            raise ValidationFailed(errors={"email": ["This email is already registered for this tournament."]})
        registrant = admit_locked(tournament, fields, use_reserved_slots=use_reserved_slots)
        ActivityLog.log(
            action=ActivityLog.REGISTRATION_CREATED,
            registrant=registrant,
            tournament=tournament,
            actor=actor,
            details=f"{registrant.name} registered ({registrant.admission_status})",
            metadata={"admission_status": registrant.admission_status, "use_reserved_slots": use_reserved_slots},
        )
    return registrant


def cancel_registration(registrant_id: int, *, actor=None, reason: str = "") -> Registrant:
    """Cancel a registration that has not been paid through the gateway."""
    tournament_id = get_object_or_404(Registrant.objects.only("tournament_id"), pk=registrant_id).tournament_id
    with transaction.atomic():
        lock_tournament(tournament_id)
        registrant = lock_registrant(registrant_id)
        if registrant.is_cancelled:
            raise AlreadyCancelled()
        if registrant.is_paid and registrant.payment_type == Registrant.PAYMENT_TYPE_GATEWAY:
            raise NotCancellable("This registration was paid online; refund it instead of cancelling.")
        registrant.admission_status = Registrant.ADMISSION_CANCELLED
        registrant.detach_from_group()
        registrant.save(update_fields=["admission_status", "group", "position", "updated_at"])
        ActivityLog.log(
            action=ActivityLog.REGISTRANT_CANCELLED,
            registrant=registrant,
            actor=actor,
            details=f"Cancelled {registrant.name}" + (f": {reason}" if reason else ""),
            metadata={"reason": reason},
        )
        notifications.registration_cancelled(registrant)
    logger.info("Registrant %s cancelled", registrant.id)
    return registrant


def promote_from_waitlist(registrant_id: int, *, actor=None) -> Registrant:
    """Move a waitlisted registrant to confirmed if the total capacity allows it."""
    tournament_id = get_object_or_404(Registrant.objects.only("tournament_id"), pk=registrant_id).tournament_id
    with transaction.atomic():
        tournament = lock_tournament(tournament_id)
        registrant = lock_registrant(registrant_id)
        if registrant.admission_status != Registrant.ADMISSION_WAITLISTED:
            raise ValidationFailed("Only waitlisted registrants can be promoted.")
        snapshot = tournament.capacity_snapshot()
        if not can_promote(snapshot):
            raise CapacityExceeded(capacity=snapshot.as_dict())
        registrant.admission_status = Registrant.ADMISSION_CONFIRMED
        registrant.save(update_fields=["admission_status", "updated_at"])
        ActivityLog.log(
            action=ActivityLog.REGISTRANT_PROMOTED,
            registrant=registrant,
            tournament=tournament,
            actor=actor,
            details=f"Promoted {registrant.name} from the waitlist",
        )
        notifications.registrant_promoted(registrant)
    logger.info("Registrant %s promoted from waitlist", registrant.id)
    return registrant


def issue_payment_token(registrant_id: int, *, regenerate: bool = False, send_email: bool = True) -> Registrant:
    """Give an unpaid registrant a token for an emailed payment link."""
    with transaction.atomic():
        registrant = lock_registrant(registrant_id)
        if registrant.is_paid:
            raise AlreadyPaid()
        if registrant.is_refunded:
            raise AlreadyRefunded()
        if registrant.is_cancelled:
            raise ValidationFailed("Cancelled registrations cannot receive a payment link.")
        if regenerate or not registrant.payment_token:
            registrant.payment_token = secrets.token_urlsafe(32)
            registrant.save(update_fields=["payment_token", "updated_at"])
        if send_email:
            notifications.payment_link_issued(registrant)
    return registrant
