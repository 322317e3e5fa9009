"""
Refund processor.

A refund releases the registrant's slot and returns the money in one
transaction: the registrant row stays locked while the gateway refund is
created, so two admins pressing "refund" at once produce one refund.
If the gateway call fails, the transaction rolls back and the registrant
keeps both the payment and the slot.  Stripe additionally receives an
idempotency key derived from the registrant and payment intent.
"""
from __future__ import annotations

import logging
import secrets

from django.db import transaction
from django.utils import timezone

from activity_log.models import ActivityLog
from common.money import format_cents
from registrants import notifications
from registrants.admission import lock_registrant
from registrants.models import Registrant

from .config import PaymentConfig
from .exceptions import AlreadyRefunded, NotRefundable, ValidationFailed
from .gateway import RefundRecord, gateway_for_intent

logger = logging.getLogger(__name__)


def _require_reason(reason: str) -> str:
    reason = (reason or "").strip()
    if not reason:
        raise ValidationFailed(errors={"reason": ["A refund reason is required."]})
    return reason


def _staff(actor):
    return actor if actor is not None and getattr(actor, "is_authenticated", False) else None


def _who(actor) -> str:
    return getattr(actor, "email", "") or getattr(actor, "username", "") or "an organiser"


def _apply_refund(registrant: Registrant, *, refund_id: str, amount: int | None, reason: str, actor) -> None:
    now = timezone.now()
    registrant.detach_from_group()
    registrant.payment_status = Registrant.PAYMENT_REFUNDED
    registrant.admission_status = Registrant.ADMISSION_CANCELLED
    registrant.refund_id = refund_id
    registrant.refund_amount = amount
    registrant.refund_reason = reason
    registrant.refunded_at = now
    registrant.refunded_by = _staff(actor)
    registrant.append_note(
        f"Refunded {format_cents(amount) if amount is not None else 'in full'} by {_who(actor)} "
        f"on {timezone.localtime(now).strftime('%Y-%m-%d %H:%M')}: {reason}"
    )
    registrant.save()


def refund(registrant_id: int, *, config: PaymentConfig, reason: str, actor=None) -> RefundRecord:
    """Refund a gateway payment in full and release the registrant's slot."""
    reason = _require_reason(reason)
    with transaction.atomic():
        registrant = lock_registrant(registrant_id)
        if registrant.is_refunded:
            raise AlreadyRefunded()
        if registrant.payment_type != Registrant.PAYMENT_TYPE_GATEWAY:
            raise NotRefundable("This registration was paid by cash or check; mark it refunded instead.")
        if not registrant.is_paid:
            raise NotRefundable("Only paid registrations can be refunded.")
        if not registrant.payment_intent_id:
            raise NotRefundable("This registration has no gateway payment to refund.")

        intent_id = registrant.payment_intent_id
        record = gateway_for_intent(intent_id, config).create_refund(
            intent_id,
            amount=registrant.payment_amount,
            reason=reason,
            idempotency_key=f"refund-{registrant.id}-{intent_id}",
        )
        amount = record.amount if record.amount is not None else registrant.payment_amount
        _apply_refund(registrant, refund_id=record.refund_id, amount=amount, reason=reason, actor=actor)

        ActivityLog.log(
            action=ActivityLog.REGISTRANT_REFUNDED,
            registrant=registrant,
            actor=_staff(actor),
            details=f"Refunded {registrant.name}: {reason}",
            metadata={"refund_id": record.refund_id, "amount": amount, "payment_intent_id": intent_id},
        )
        notifications.refund_processed(registrant)
    logger.info("Refund %s issued for registrant %s", record.refund_id, registrant.id)
    return record


def mark_refunded(registrant_id: int, *, reason: str, actor=None, amount: int | None = None) -> Registrant:
    """Record that a cash or check payment was handed back."""
    reason = _require_reason(reason)
    with transaction.atomic():
        registrant = lock_registrant(registrant_id)
        if registrant.is_refunded:
            raise AlreadyRefunded()
        if registrant.payment_type == Registrant.PAYMENT_TYPE_GATEWAY:
            raise NotRefundable("This registration was paid online; use the refund action instead.")
        if not registrant.is_paid:
            raise NotRefundable("Only paid registrations can be refunded.")

        refund_id = f"manual_re_{secrets.token_hex(12)}"
        amount = amount or registrant.payment_amount
        _apply_refund(registrant, refund_id=refund_id, amount=amount, reason=reason, actor=actor)

        ActivityLog.log(
            action=ActivityLog.REGISTRANT_REFUNDED,
            registrant=registrant,
            actor=_staff(actor),
            details=f"Marked {registrant.name} as refunded: {reason}",
            metadata={"refund_id": refund_id, "amount": amount, "manual": True},
        )
        notifications.refund_processed(registrant)
    logger.info("Registrant %s marked refunded (%s)", registrant.id, refund_id)
    return registrant
