"""
Celery tasks for the registrants app.

Emails and live dashboard updates are sent from here so that the
request that changed a registration never waits on SMTP or the channel
layer.  Every task re-reads the registrant by id; by the time a task
runs the transaction that enqueued it has committed.
"""
from __future__ import annotations

import logging

from asgiref.sync import async_to_sync
from celery import shared_task
from channels.layers import get_channel_layer
from django.conf import settings
from django.core.mail import send_mail

from common.money import format_cents

from .models import Registrant

logger = logging.getLogger(__name__)


def _load(registrant_id: int) -> Registrant | None:
    try:
        return Registrant.objects.select_related("tournament").get(pk=registrant_id)
    except Registrant.DoesNotExist:
        logger.warning("Registrant %s vanished before its notification was sent", registrant_id)
        return None


def _mail(subject: str, lines: list[str], recipients: list[str]) -> bool:
    if not recipients:
        return False
    send_mail(
        subject=subject,
        message="\n".join(lines),
        from_email=settings.DEFAULT_FROM_EMAIL,
        recipient_list=recipients,
        fail_silently=False,
    )
    return True


@shared_task
def send_registration_email(registrant_id: int) -> bool:
    registrant = _load(registrant_id)
    if registrant is None:
        return False
    tournament = registrant.tournament
    if registrant.admission_status == Registrant.ADMISSION_WAITLISTED:
        status_line = "The field is currently full, so you have been placed on the waitlist."
    else:
        status_line = "Your spot is confirmed."
    lines = [
        f"Hi {registrant.name},",
        "",
        f"Thanks for registering for {tournament.name}.",
        status_line,
    ]
    if registrant.payment_type == Registrant.PAYMENT_TYPE_MANUAL:
        lines.append(f"Please bring {format_cents(tournament.current_fee())} (cash or check) on the day.")
    sent = _mail(f"Registration received - {tournament.name}", lines, [registrant.email])
    logger.info("Registration email sent to %s for tournament %s", registrant.email, tournament.id)
    return sent


@shared_task
def send_payment_confirmation_email(registrant_id: int) -> bool:
    registrant = _load(registrant_id)
    if registrant is None:
        return False
    tournament = registrant.tournament
    lines = [
        f"Hi {registrant.name},",
        "",
        f"We received your payment of {format_cents(registrant.payment_amount)} for {tournament.name}.",
    ]
    if registrant.payment_method_last4:
        lines.append(f"Card: {registrant.payment_method_brand} ending in {registrant.payment_method_last4}")
    if registrant.admission_status == Registrant.ADMISSION_WAITLISTED:
        lines.append("You are on the waitlist; we will let you know as soon as a spot opens.")
    sent = _mail(f"Payment confirmed - {tournament.name}", lines, [registrant.email])
    logger.info("Payment confirmation sent to %s (registrant %s)", registrant.email, registrant.id)
    return sent


@shared_task
def send_admin_payment_notification(registrant_id: int) -> bool:
    registrant = _load(registrant_id)
    if registrant is None:
        return False
    tournament = registrant.tournament
    lines = [
        f"{registrant.name} <{registrant.email}> paid {format_cents(registrant.payment_amount)}.",
        f"Tournament: {tournament.name}",
        f"Admission: {registrant.get_admission_status_display()}",
        f"Reference: {registrant.payment_intent_id}",
    ]
    return _mail(
        f"New payment - {tournament.name}",
        lines,
        list(getattr(settings, "ADMIN_NOTIFICATION_EMAILS", [])),
    )


@shared_task
def send_refund_email(registrant_id: int) -> bool:
    registrant = _load(registrant_id)
    if registrant is None:
        return False
    tournament = registrant.tournament
    lines = [
        f"Hi {registrant.name},",
        "",
        f"Your registration for {tournament.name} has been refunded ({format_cents(registrant.refund_amount)}).",
        "Refunds usually appear on your statement within 5-10 business days.",
    ]
    return _mail(f"Refund processed - {tournament.name}", lines, [registrant.email])


@shared_task
def send_cancellation_email(registrant_id: int) -> bool:
    registrant = _load(registrant_id)
    if registrant is None:
        return False
    tournament = registrant.tournament
    lines = [
        f"Hi {registrant.name},",
        "",
        f"Your registration for {tournament.name} has been cancelled.",
    ]
    return _mail(f"Registration cancelled - {tournament.name}", lines, [registrant.email])


@shared_task
def send_promotion_email(registrant_id: int) -> bool:
    registrant = _load(registrant_id)
    if registrant is None:
        return False
    tournament = registrant.tournament
    lines = [
        f"Hi {registrant.name},",
        "",
        f"Good news: a spot opened up and you are now confirmed for {tournament.name}.",
    ]
    if registrant.payment_status == Registrant.PAYMENT_UNPAID and registrant.payment_link_url():
        lines.append(f"Complete your payment here: {registrant.payment_link_url()}")
    return _mail(f"You're in - {tournament.name}", lines, [registrant.email])


@shared_task
def send_payment_link_email(registrant_id: int) -> bool:
    registrant = _load(registrant_id)
    if registrant is None or not registrant.payment_token:
        return False
    tournament = registrant.tournament
    lines = [
        f"Hi {registrant.name},",
        "",
        f"Use the link below to pay your entry fee for {tournament.name}:",
        registrant.payment_link_url(),
    ]
    return _mail(f"Complete your payment - {tournament.name}", lines, [registrant.email])


@shared_task
def broadcast_registrant_update(registrant_id: int, action: str) -> None:
    """Push the current registrant state to the tournament's admin dashboards."""
    from .serializers import RegistrantSerializer

    registrant = _load(registrant_id)
    if registrant is None:
        return
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return
    async_to_sync(channel_layer.group_send)(
        f"registrants_{registrant.tournament_id}",
        {
            "type": "registrant.update",
            "action": action,
            "registrant": RegistrantSerializer(registrant).data,
        },
    )
