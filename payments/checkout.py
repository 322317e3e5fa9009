"""
Checkout session manager.

Starts a hosted (or embedded) checkout with the gateway for either an
existing registrant or a registration draft.  The gateway is always
called without holding a row lock; for an existing registrant the row is
locked only afterwards, to re-check that it is still payable and to
record the new session id.  A session id that is overwritten this way is
simply orphaned: if it is paid anyway, the webhook reconciles it through
the ``registrant_id`` in its metadata.
"""
from __future__ import annotations

import logging

from django.db import transaction
from django.shortcuts import get_object_or_404

from registrants.admission import email_taken
from registrants.models import Registrant
from tournaments.models import Tournament

from .config import PaymentConfig
from .drafts import draft_tournament_id, store_draft
from .exceptions import AlreadyPaid, AlreadyRefunded, RegistrationClosed, ValidationFailed
from .gateway import SessionHandle, SessionStatus, build_gateway, gateway_for_session

logger = logging.getLogger(__name__)


def _check_payable(registrant: Registrant) -> None:
    if registrant.is_paid:
        raise AlreadyPaid()
    if registrant.is_refunded:
        raise AlreadyRefunded()
    if registrant.is_cancelled:
        raise ValidationFailed("This registration has been cancelled.")


def create_session(
    *,
    config: PaymentConfig,
    amount: int,
    registrant: Registrant | None = None,
    draft: dict | None = None,
    embedded: bool = False,
) -> SessionHandle:
    """
    Create a checkout session for ``registrant`` or for ``draft``.

    Exactly one of the two must be given.  Draft checkouts are always
    embedded: the registrant is created only once the payment succeeds.
    """
    if (registrant is None) == (draft is None):
        raise ValueError("create_session needs exactly one of registrant or draft")
    if registrant is not None:
        return _session_for_registrant(config, registrant, amount, embedded=embedded)
    return _session_for_draft(config, draft, amount)


def _session_for_registrant(config: PaymentConfig, registrant: Registrant, amount: int, *, embedded: bool):
    _check_payable(registrant)
    gateway = build_gateway(config)
    handle = gateway.create_checkout_session(
        amount,
        {"registrant_id": registrant.id, "tournament_id": registrant.tournament_id},
        embedded=embedded,
        customer_email=registrant.email,
        description=f"{registrant.tournament.name} entry fee",
    )

    with transaction.atomic():
        locked = Registrant.objects.select_for_update().get(pk=registrant.pk)
        _check_payable(locked)
        if locked.checkout_session_id and locked.checkout_session_id != handle.session_id:
            logger.info(
                "Registrant %s: checkout session %s replaced by %s",
                locked.id,
                locked.checkout_session_id,
                handle.session_id,
            )
        locked.checkout_session_id = handle.session_id
        locked.save(update_fields=["checkout_session_id", "updated_at"])

    registrant.checkout_session_id = handle.session_id
    return handle


def _session_for_draft(config: PaymentConfig, draft: dict, amount: int) -> SessionHandle:
    tournament = get_object_or_404(Tournament, pk=draft_tournament_id(draft))
    if not tournament.accepting_registrations():
        raise RegistrationClosed()
    if email_taken(tournament.id, draft["email"]):
        raise ValidationFailed(errors={"email": ["This email is already registered for this tournament."]})

    gateway = build_gateway(config)
    handle = gateway.create_checkout_session(
        amount,
        draft,
        embedded=True,
        customer_email=draft["email"],
        description=f"{tournament.name} entry fee",
    )
    store_draft(handle.session_id, draft, config)
    logger.info("Stored registration draft for session %s (tournament %s)", handle.session_id, tournament.id)
    return handle


def session_status(session_id: str, *, config: PaymentConfig) -> SessionStatus:
    """Read-only view of a session as the gateway reports it."""
    return gateway_for_session(session_id, config).retrieve_session(session_id)
