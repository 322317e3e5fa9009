"""
Webhook ingestion gate.

Verifies and dispatches gateway webhook deliveries.  With a webhook
secret configured, every delivery must carry a valid Stripe signature.
Without one, deliveries are parsed unsigned and a warning is logged on
each; deployments are expected to set ``STRIPE_WEBHOOK_SECRET``.

Events are dispatched through ``HANDLERS``.  Each handled event id is
remembered in ``WebhookEvent`` so redeliveries are acknowledged without
running the handler again.  A handler that hits a transient gateway
error lets it propagate: the view answers 503, the event is not
remembered, and the gateway redelivers it later.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from django.db import transaction
from django.utils import timezone

from registrants.models import Registrant

from .config import PaymentConfig
from .drafts import discard_draft
from .exceptions import GatewayError, GatewayUnavailable, SignatureInvalid, UnknownSession
from .gateway import GatewayEvent, gateway_for_intent, parse_unverified_event, verify_webhook
from .models import WebhookEvent
from .reconcile import CHANNEL_WEBHOOK, PAID, reconcile

logger = logging.getLogger(__name__)

PROCESSED = "processed"
DUPLICATE = "duplicate"
IGNORED = "ignored"


class GatewayEventType(str, Enum):
    CHECKOUT_COMPLETED = "checkout.session.completed"
    CHECKOUT_EXPIRED = "checkout.session.expired"
    PAYMENT_SUCCEEDED = "payment_intent.succeeded"
    PAYMENT_FAILED = "payment_intent.payment_failed"


@dataclass(frozen=True)
class WebhookOutcome:
    event_id: str
    event_type: str
    status: str
    detail: str = ""


def _metadata(obj: dict) -> dict:
    return obj.get("metadata") or {}


def _registrant_from_hint(hint) -> Registrant | None:
    try:
        return Registrant.objects.filter(pk=int(hint)).first()
    except (TypeError, ValueError):
        return None


def _reconcile_session(session_id: str | None, hint, config: PaymentConfig) -> str:
    if not session_id:
        logger.warning("Webhook carried no checkout session id")
        return "unknown_session"
    try:
        result = reconcile(session_id, config=config, registrant_hint=hint, channel=CHANNEL_WEBHOOK)
    except UnknownSession:
        logger.warning("Webhook for session %s matches no registrant or draft", session_id)
        return "unknown_session"
    if result.outcome != PAID:
        logger.info("Webhook for session %s reconciled as %s", session_id, result.outcome)
    return result.outcome


def handle_checkout_completed(event: GatewayEvent, config: PaymentConfig) -> str:
    obj = event.data_object
    return _reconcile_session(obj.get("id"), _metadata(obj).get("registrant_id"), config)


def handle_payment_succeeded(event: GatewayEvent, config: PaymentConfig) -> str:
    obj = event.data_object
    intent_id = obj.get("id")
    hint = _metadata(obj).get("registrant_id")
    registrant = _registrant_from_hint(hint)
    if (
        registrant is not None
        and registrant.payment_intent_id == intent_id
        and registrant.payment_status != Registrant.PAYMENT_UNPAID
    ):
        return "already_paid"

    session_id = gateway_for_intent(intent_id, config).find_session_for_intent(intent_id) if intent_id else None
    if session_id is None and registrant is not None:
        session_id = registrant.checkout_session_id
    return _reconcile_session(session_id, hint, config)


def handle_checkout_expired(event: GatewayEvent, config: PaymentConfig) -> str:
    session_id = event.data_object.get("id")
    if not session_id:
        return "unknown_session"
    with transaction.atomic():
        registrant = Registrant.objects.select_for_update().filter(checkout_session_id=session_id).first()
        if registrant is None:
            transaction.on_commit(lambda: discard_draft(session_id))
            return "no_registrant"
        if registrant.payment_status != Registrant.PAYMENT_UNPAID:
            return "already_settled"
        registrant.checkout_session_id = None
        registrant.save(update_fields=["checkout_session_id", "updated_at"])
    logger.info("Cleared expired checkout session %s from registrant %s", session_id, registrant.id)
    return "session_cleared"


def handle_payment_failed(event: GatewayEvent, config: PaymentConfig) -> str:
    obj = event.data_object
    error = obj.get("last_payment_error") or {}
    reason = error.get("message") or error.get("code") or "no reason given"
    registrant = _registrant_from_hint(_metadata(obj).get("registrant_id"))
    if registrant is None:
        logger.info("Payment failure for intent %s with no known registrant: %s", obj.get("id"), reason)
        return "no_registrant"
    with transaction.atomic():
        registrant = Registrant.objects.select_for_update().get(pk=registrant.pk)
        if registrant.payment_status != Registrant.PAYMENT_UNPAID:
            return "already_settled"
        stamp = timezone.localtime(timezone.now()).strftime("%Y-%m-%d %H:%M")
        registrant.append_note(f"Payment attempt failed on {stamp}: {reason}")
        registrant.save(update_fields=["payment_notes", "updated_at"])
    logger.info("Payment failed for registrant %s: %s", registrant.id, reason)
    return "noted"


HANDLERS = {
    GatewayEventType.CHECKOUT_COMPLETED: handle_checkout_completed,
    GatewayEventType.CHECKOUT_EXPIRED: handle_checkout_expired,
    GatewayEventType.PAYMENT_SUCCEEDED: handle_payment_succeeded,
    GatewayEventType.PAYMENT_FAILED: handle_payment_failed,
}


def _remember(event: GatewayEvent, outcome: str) -> None:
    WebhookEvent.objects.get_or_create(
        event_id=event.event_id,
        defaults={"event_type": event.event_type, "outcome": outcome[:50]},
    )


def _parse(payload: bytes, signature: str | None, config: PaymentConfig) -> GatewayEvent:
    if config.webhook_secret:
        try:
            return verify_webhook(payload, signature, config.webhook_secret)
        except SignatureInvalid as exc:
            logger.error("Rejected webhook: %s", exc.message)
            raise
    logger.warning("STRIPE_WEBHOOK_SECRET is not set; accepting an unsigned webhook delivery")
    return parse_unverified_event(payload)


def ingest(payload: bytes, signature: str | None, *, config: PaymentConfig) -> WebhookOutcome:
    """Verify, deduplicate and dispatch one webhook delivery."""
    if not config.gateway_configured:
        logger.error("Webhook received but STRIPE_SECRET_KEY is not configured")
        raise GatewayUnavailable()

    event = _parse(payload, signature, config)

    if WebhookEvent.objects.filter(event_id=event.event_id).exists():
        logger.info("Duplicate webhook %s (%s) acknowledged", event.event_id, event.event_type)
        return WebhookOutcome(event.event_id, event.event_type, DUPLICATE)

    try:
        event_type = GatewayEventType(event.event_type)
    except ValueError:
        logger.info("Ignoring webhook event type %s (%s)", event.event_type, event.event_id)
        _remember(event, IGNORED)
        return WebhookOutcome(event.event_id, event.event_type, IGNORED)

    try:
        detail = HANDLERS[event_type](event, config)
    except GatewayUnavailable:
        logger.warning("Gateway unavailable while handling %s; asking for redelivery", event.event_id)
        raise
    except GatewayError as exc:
        logger.error("Gateway rejected a call while handling %s: %s", event.event_id, exc.message)
        detail = "gateway_error"

    _remember(event, detail)
    logger.info("Webhook %s (%s) handled: %s", event.event_id, event.event_type, detail)
    return WebhookOutcome(event.event_id, event.event_type, PROCESSED, detail)
