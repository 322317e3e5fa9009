"""
Post-commit notification hooks.

Services call these after changing a registrant.  Each hook registers
``transaction.on_commit`` callbacks that enqueue Celery tasks, so nothing
is sent for a transaction that rolls back.  Enqueue failures (broker
down, misconfiguration) are logged and never propagate: the state change
has already been committed and must be reported as a success.
"""
import logging

from django.db import transaction

from . import tasks

logger = logging.getLogger(__name__)

REGISTERED = "registered"
PAYMENT_CONFIRMED = "payment_confirmed"
REFUNDED = "refunded"
CANCELLED = "cancelled"
PROMOTED = "promoted"


def _enqueue(task, *args) -> None:
    def _send():
        try:
            task.delay(*args)
        except Exception:
            logger.exception("Could not enqueue %s%r", task.name, args)

    transaction.on_commit(_send)


def registration_created(registrant) -> None:
    _enqueue(tasks.send_registration_email, registrant.id)
    _enqueue(tasks.broadcast_registrant_update, registrant.id, REGISTERED)


def payment_confirmed(registrant) -> None:
    _enqueue(tasks.send_payment_confirmation_email, registrant.id)
    _enqueue(tasks.send_admin_payment_notification, registrant.id)
    _enqueue(tasks.broadcast_registrant_update, registrant.id, PAYMENT_CONFIRMED)


def refund_processed(registrant) -> None:
    _enqueue(tasks.send_refund_email, registrant.id)
    _enqueue(tasks.broadcast_registrant_update, registrant.id, REFUNDED)


def registration_cancelled(registrant) -> None:
    _enqueue(tasks.send_cancellation_email, registrant.id)
    _enqueue(tasks.broadcast_registrant_update, registrant.id, CANCELLED)


def registrant_promoted(registrant) -> None:
    _enqueue(tasks.send_promotion_email, registrant.id)
    _enqueue(tasks.broadcast_registrant_update, registrant.id, PROMOTED)


def payment_link_issued(registrant) -> None:
    _enqueue(tasks.send_payment_link_email, registrant.id)
