"""
Tests for the refund processor.
"""
from types import SimpleNamespace
from unittest import mock

import pytest
import stripe
from django.utils import timezone

from activity_log.models import ActivityLog
from payments.exceptions import AlreadyRefunded, GatewayError, NotRefundable, ValidationFailed
from payments.refunds import mark_refunded, refund
from registrants.models import Registrant
from tournaments.models import Group


@pytest.fixture
def paid_registrant(tournament, make_registrant):
    group = Group.objects.create(tournament=tournament, group_number=1)
    return make_registrant(
        tournament,
        payment_status="paid",
        payment_intent_id="test_pi_abc",
        payment_amount=12500,
        paid_at=timezone.now(),
        group=group,
        position=1,
    )


@pytest.mark.django_db
def test_simulated_refund_releases_slot(
    paid_registrant, test_config, admin_user, mailoutbox, django_capture_on_commit_callbacks
):
    with django_capture_on_commit_callbacks(execute=True):
        record = refund(paid_registrant.id, config=test_config, reason="Injured", actor=admin_user)

    assert record.refund_id.startswith("test_re_")
    paid_registrant.refresh_from_db()
    assert paid_registrant.payment_status == Registrant.PAYMENT_REFUNDED
    assert paid_registrant.admission_status == Registrant.ADMISSION_CANCELLED
    assert paid_registrant.refund_id == record.refund_id
    assert paid_registrant.refund_amount == 12500
    assert paid_registrant.refund_reason == "Injured"
    assert paid_registrant.refunded_by == admin_user
    assert paid_registrant.group is None and paid_registrant.position is None
    assert ActivityLog.objects.get(action=ActivityLog.REGISTRANT_REFUNDED).actor == admin_user
    assert any("refund" in m.subject.lower() for m in mailoutbox)

    with pytest.raises(AlreadyRefunded):
        refund(paid_registrant.id, config=test_config, reason="Again")


@pytest.mark.django_db
def test_stripe_refund_uses_idempotency_key(tournament, make_registrant, stripe_config):
    registrant = make_registrant(tournament, payment_status="paid", payment_intent_id="pi_live_1", payment_amount=10000)
    created = SimpleNamespace(id="re_live_1", amount=10000, status="succeeded")
    with mock.patch("stripe.Refund.create", return_value=created) as create:
        record = refund(registrant.id, config=stripe_config, reason="Duplicate entry")

    kwargs = create.call_args.kwargs
    assert kwargs["payment_intent"] == "pi_live_1"
    assert kwargs["amount"] == 10000
    assert kwargs["api_key"] == "sk_test_123"
    assert kwargs["idempotency_key"] == f"refund-{registrant.id}-pi_live_1"
    assert record.refund_id == "re_live_1"


@pytest.mark.django_db
def test_gateway_failure_rolls_back_everything(paid_registrant, stripe_config):
    paid_registrant.payment_intent_id = "pi_live_2"
    paid_registrant.save()
    failure = stripe.InvalidRequestError("Charge has already been refunded.", param=None)
    with mock.patch("stripe.Refund.create", side_effect=failure):
        with pytest.raises(GatewayError):
            refund(paid_registrant.id, config=stripe_config, reason="Weather")

    paid_registrant.refresh_from_db()
    assert paid_registrant.payment_status == Registrant.PAYMENT_PAID
    assert paid_registrant.admission_status == Registrant.ADMISSION_CONFIRMED
    assert paid_registrant.group_id is not None
    assert not ActivityLog.objects.filter(action=ActivityLog.REGISTRANT_REFUNDED).exists()


@pytest.mark.django_db
def test_refund_preconditions(tournament, make_registrant, test_config):
    unpaid = make_registrant(tournament)
    with pytest.raises(NotRefundable):
        refund(unpaid.id, config=test_config, reason="x")

    manual = make_registrant(tournament, payment_status="paid", payment_type="manual", payment_intent_id="manual_1")
    with pytest.raises(NotRefundable):
        refund(manual.id, config=test_config, reason="x")

    with pytest.raises(ValidationFailed):
        refund(manual.id, config=test_config, reason="  ")


@pytest.mark.django_db
def test_mark_refunded_for_manual_payments(tournament, make_registrant, admin_user):
    manual = make_registrant(
        tournament, payment_status="paid", payment_type="manual", payment_intent_id="manual_1", payment_amount=12500
    )
    refunded = mark_refunded(manual.id, reason="Cash returned", actor=admin_user, amount=5000)
    assert refunded.payment_status == Registrant.PAYMENT_REFUNDED
    assert refunded.refund_id.startswith("manual_re_")
    assert refunded.refund_amount == 5000
    assert refunded.admission_status == Registrant.ADMISSION_CANCELLED

    with pytest.raises(AlreadyRefunded):
        mark_refunded(manual.id, reason="again", actor=admin_user)

    online = make_registrant(tournament, payment_status="paid", payment_intent_id="pi_1")
    with pytest.raises(NotRefundable):
        mark_refunded(online.id, reason="x", actor=admin_user)


@pytest.mark.django_db
def test_refund_endpoint(admin_client, paid_registrant):
    resp = admin_client.post(f"/api/registrants/{paid_registrant.id}/refund/", {"reason": "Injured"}, format="json")
    assert resp.status_code == 200
    body = resp.json()
    assert body["registrant"]["payment_status"] == "refunded"
    assert body["refund"]["refund_id"].startswith("test_re_")

    resp = admin_client.post(f"/api/registrants/{paid_registrant.id}/refund/", {"reason": "Again"}, format="json")
    assert resp.status_code == 422
    assert resp.json()["code"] == "already_refunded"

    resp = admin_client.post(f"/api/registrants/{paid_registrant.id}/refund/", {}, format="json")
    assert resp.status_code == 422
    assert "reason" in resp.json()["errors"]
