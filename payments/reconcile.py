"""
Payment confirmation reconciler.

The browser redirect after checkout (``POST /api/checkout/confirm/``) and
the gateway webhook race to report the same payment.  Both end up in
``reconcile``, which makes the registrant paid exactly once:

1. the registrant is resolved locally (by session id, by the caller's
   hint, or from the cached registration draft);
2. the gateway is asked whether the session is paid, outside any lock;
3. inside one transaction the registrant row is locked (materialized
   from the draft first if needed) and, unless it is already paid, the
   payment is written;
4. notifications are enqueued only after that transaction commits.

Whoever loses the race sees ``already_paid`` and writes nothing.
"""
from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from zoneinfo import ZoneInfo

from django.db import transaction
from django.utils import timezone

from activity_log.models import ActivityLog
from registrants import notifications
from registrants.admission import admit_locked, lock_registrant
from registrants.models import Registrant
from tournaments.models import Tournament

from .config import PaymentConfig
from .drafts import discard_draft, draft_from_metadata, draft_tournament_id, load_draft, registrant_fields
from .exceptions import AlreadyPaid, AlreadyRefunded, GatewayError, UnknownSession, ValidationFailed
from .gateway import PaymentDiagnostics, SessionStatus, gateway_for_session, is_test_session

logger = logging.getLogger(__name__)

PAID = "paid"
ALREADY_PAID = "already_paid"
PENDING = "pending"

CHANNEL_CONFIRM = "confirm"
CHANNEL_WEBHOOK = "webhook"


@dataclass(frozen=True)
class ReconcileResult:
    outcome: str
    registrant: Registrant | None
    session: SessionStatus

    @property
    def paid(self) -> bool:
        return self.outcome in (PAID, ALREADY_PAID)


def payment_note(when, config: PaymentConfig, *, test_mode: bool) -> str:
    local = timezone.localtime(when, ZoneInfo(config.note_time_zone))
    stamp = local.strftime("%B %d, %Y at %I:%M %p")
    via = "simulated checkout (test mode)" if test_mode else "Stripe"
    return f"Paid via {via} on {stamp} ({config.note_time_zone} time)"


def _parse_id(value) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _resolve_local(session_id: str, registrant_hint) -> int | None:
    registrant_id = (
        Registrant.objects.filter(checkout_session_id=session_id).values_list("id", flat=True).first()
    )
    if registrant_id is not None:
        return registrant_id
    hint = _parse_id(registrant_hint)
    if hint is not None and Registrant.objects.filter(pk=hint).exists():
        return hint
    return None


def _diagnostics(gateway, session: SessionStatus) -> PaymentDiagnostics:
    if not session.payment_intent_id:
        return PaymentDiagnostics()
    try:
        return gateway.lookup_payment_method(session.payment_intent_id)
    except GatewayError as exc:
        logger.warning("Could not read card details for %s: %s", session.payment_intent_id, exc)
        return PaymentDiagnostics()


def _materialize(draft: dict) -> Registrant:
    """
    Lock the draft's tournament and return the registrant it describes.

    An existing registrant with the same email is reused; otherwise a new
    one is admitted through the capacity ledger.  Whether registration is
    still open is not checked: the money has already been taken.
    """
    tournament = Tournament.objects.select_for_update().filter(pk=draft_tournament_id(draft)).first()
    if tournament is None:
        raise UnknownSession("The tournament for this checkout no longer exists.")
    fields = registrant_fields(draft)
    existing = (
        Registrant.objects.select_for_update()
        .filter(tournament=tournament, email__iexact=fields["email"])
        .first()
    )
    if existing is not None:
        return existing
    registrant = admit_locked(tournament, fields)
    ActivityLog.log(
        action=ActivityLog.REGISTRATION_CREATED,
        registrant=registrant,
        tournament=tournament,
        details=f"{registrant.name} registered through checkout ({registrant.admission_status})",
        metadata={"admission_status": registrant.admission_status, "source": "checkout"},
    )
    return registrant


def reconcile(
    session_id: str,
    *,
    config: PaymentConfig,
    registrant_hint=None,
    channel: str = CHANNEL_CONFIRM,
) -> ReconcileResult:
    """
    Make the registrant behind ``session_id`` paid if the gateway says so.

    Returns ``pending`` when the session is not paid yet.  Raises
    ``UnknownSession`` when no registrant or draft can be found for a
    paid session, and ``GatewayError`` subclasses when the gateway
    cannot be asked; nothing is written in either case.
    """
    registrant_id = _resolve_local(session_id, registrant_hint)
    draft = load_draft(session_id) if registrant_id is None else None

    gateway = gateway_for_session(session_id, config)
    session = gateway.retrieve_session(session_id)

    if not session.paid:
        logger.info("Session %s not paid yet (%s/%s)", session_id, session.status, session.payment_status)
        registrant = Registrant.objects.filter(pk=registrant_id).first() if registrant_id else None
        return ReconcileResult(PENDING, registrant, session)

    if registrant_id is None and draft is None:
        registrant_id = _resolve_local(session_id, session.metadata.get("registrant_id"))
        if registrant_id is None:
            draft = draft_from_metadata(session.metadata)
        if registrant_id is None and draft is None:
            logger.warning("Paid session %s has no registrant or draft", session_id)
            raise UnknownSession()

    diagnostics = _diagnostics(gateway, session)
    intent_id = session.payment_intent_id
    if not intent_id:
        logger.warning("Paid session %s reported no payment intent; using the session id", session_id)
        intent_id = session_id

    with transaction.atomic():
        if registrant_id is None:
            registrant = lock_registrant(_materialize(draft).pk)
        else:
            registrant = lock_registrant(registrant_id)

        if registrant.is_refunded or (registrant.is_paid and registrant.payment_intent_id):
            logger.info("Registrant %s already paid; session %s via %s is a no-op", registrant.id, session_id, channel)
            return ReconcileResult(ALREADY_PAID, registrant, session)

        if registrant.is_cancelled:
            logger.warning("Payment received for cancelled registrant %s (session %s)", registrant.id, session_id)

        now = timezone.now()
        amount = session.amount_total
        if amount is None and draft is not None:
            amount = _parse_id(draft.get("payment_amount"))
        if amount is None:
            amount = registrant.payment_amount or registrant.tournament.current_fee()

        registrant.payment_status = Registrant.PAYMENT_PAID
        registrant.payment_type = Registrant.PAYMENT_TYPE_GATEWAY
        registrant.checkout_session_id = session_id
        registrant.payment_intent_id = intent_id
        registrant.payment_amount = amount
        registrant.payment_method_brand = diagnostics.brand or ""
        registrant.payment_method_last4 = diagnostics.last4 or ""
        registrant.paid_at = now
        registrant.append_note(payment_note(now, config, test_mode=is_test_session(session_id)))
        registrant.save()

        ActivityLog.log(
            action=ActivityLog.PAYMENT_COMPLETED,
            registrant=registrant,
            details=f"Payment of {amount} cents received for {registrant.name}",
            metadata={
                "session_id": session_id,
                "payment_intent_id": intent_id,
                "amount": amount,
                "channel": channel,
            },
        )
        transaction.on_commit(lambda: discard_draft(session_id))
        notifications.payment_confirmed(registrant)

    logger.info("Registrant %s paid via %s (session %s)", registrant.id, channel, session_id)
    return ReconcileResult(PAID, registrant, session)


def record_manual_payment(registrant_id: int, *, actor=None, amount: int | None = None, notes: str = "") -> Registrant:
    """Record a cash or check payment taken by an organiser."""
    with transaction.atomic():
        registrant = lock_registrant(registrant_id)
        if registrant.is_refunded:
            raise AlreadyRefunded()
        if registrant.is_paid:
            raise AlreadyPaid()
        if registrant.is_cancelled:
            raise ValidationFailed("Cancelled registrations cannot be marked as paid.")

        now = timezone.now()
        amount = amount or registrant.tournament.current_fee()
        who = getattr(actor, "email", "") or getattr(actor, "username", "") or "an organiser"
        registrant.payment_status = Registrant.PAYMENT_PAID
        registrant.payment_type = Registrant.PAYMENT_TYPE_MANUAL
        registrant.payment_intent_id = f"manual_{secrets.token_hex(12)}"
        registrant.payment_amount = amount
        registrant.paid_at = now
        line = f"Paid by cash/check, recorded by {who} on {timezone.localtime(now).strftime('%Y-%m-%d %H:%M')}"
        registrant.append_note(f"{line}: {notes}" if notes else line)
        registrant.save()

        ActivityLog.log(
            action=ActivityLog.PAYMENT_RECORDED,
            registrant=registrant,
            actor=actor,
            details=f"Manual payment of {amount} cents recorded for {registrant.name}",
            metadata={"payment_reference": registrant.payment_intent_id, "amount": amount, "notes": notes},
        )
        notifications.payment_confirmed(registrant)
    logger.info("Manual payment recorded for registrant %s", registrant.id)
    return registrant
