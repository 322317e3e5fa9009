"""
Tests for the payment confirmation reconciler and manual payments.
"""
from types import SimpleNamespace
from unittest import mock

import pytest
from django.utils import timezone

from activity_log.models import ActivityLog
from payments.checkout import create_session
from payments.drafts import build_draft, load_draft, store_draft
from payments.exceptions import AlreadyPaid, GatewayUnavailable, UnknownSession
from payments.gateway import SessionStatus, SimulatedGateway
from payments.reconcile import ALREADY_PAID, PAID, PENDING, reconcile, record_manual_payment
from registrants.models import Registrant


def _draft(tournament, email="embedded@example.com"):
    fields = {
        "name": "Embedded Golfer",
        "email": email,
        "phone": "671-555-0111",
        "company": "Reef Ltd",
        "waiver_accepted_at": timezone.now(),
    }
    return build_draft(tournament.id, fields, 12500)


def _stripe_session(session_id="cs_live_1", paid=True, metadata=None, intent="pi_live_1", amount=12500):
    return SimpleNamespace(
        id=session_id,
        payment_status="paid" if paid else "unpaid",
        status="complete" if paid else "open",
        amount_total=amount,
        payment_intent=intent,
        customer_email=None,
        customer_details=None,
        metadata=metadata or {},
    )


def _card(brand="mastercard", last4="4444"):
    return SimpleNamespace(payment_method=SimpleNamespace(card=SimpleNamespace(brand=brand, last4=last4)))


@pytest.mark.django_db
def test_confirm_marks_registrant_paid_once(
    tournament, make_registrant, test_config, mailoutbox, django_capture_on_commit_callbacks
):
    registrant = make_registrant(tournament)
    handle = create_session(config=test_config, amount=12500, registrant=registrant)

    with django_capture_on_commit_callbacks(execute=True):
        result = reconcile(handle.session_id, config=test_config)
    assert result.outcome == PAID
    registrant.refresh_from_db()
    assert registrant.payment_status == Registrant.PAYMENT_PAID
    assert registrant.payment_type == Registrant.PAYMENT_TYPE_GATEWAY
    assert registrant.payment_intent_id == SimulatedGateway.intent_for_session(handle.session_id)
    assert registrant.payment_amount == 12500
    assert registrant.payment_method_last4 == "4242"
    assert "Paid via simulated checkout (test mode)" in registrant.payment_notes
    assert "Pacific/Guam" in registrant.payment_notes
    sent = len(mailoutbox)
    assert sent == 2  # golfer confirmation and admin notification

    with django_capture_on_commit_callbacks(execute=True) as callbacks:
        again = reconcile(handle.session_id, config=test_config)
    assert again.outcome == ALREADY_PAID
    assert callbacks == []
    assert len(mailoutbox) == sent
    assert ActivityLog.objects.filter(action=ActivityLog.PAYMENT_COMPLETED).count() == 1


@pytest.mark.django_db
def test_embedded_draft_is_materialized_and_discarded(tournament, test_config, django_capture_on_commit_callbacks):
    handle = create_session(config=test_config, amount=12500, draft=_draft(tournament))

    with django_capture_on_commit_callbacks(execute=True):
        result = reconcile(handle.session_id, config=test_config)
    registrant = result.registrant
    assert result.outcome == PAID
    assert registrant.email == "embedded@example.com"
    assert registrant.company == "Reef Ltd"
    assert registrant.admission_status == Registrant.ADMISSION_CONFIRMED
    assert registrant.checkout_session_id == handle.session_id
    assert load_draft(handle.session_id) is None
    assert ActivityLog.objects.filter(registrant=registrant, action=ActivityLog.REGISTRATION_CREATED).exists()

    assert reconcile(handle.session_id, config=test_config).outcome == ALREADY_PAID
    assert Registrant.objects.count() == 1


@pytest.mark.django_db
def test_materialization_waitlists_when_full_and_ignores_closed_registration(
    tournament, make_registrant, test_config
):
    for _ in range(3):
        make_registrant(tournament)
    handle = create_session(config=test_config, amount=12500, draft=_draft(tournament))
    tournament.registration_open = False
    tournament.save()

    result = reconcile(handle.session_id, config=test_config)
    assert result.outcome == PAID
    assert result.registrant.admission_status == Registrant.ADMISSION_WAITLISTED
    assert result.registrant.payment_status == Registrant.PAYMENT_PAID


@pytest.mark.django_db
def test_materialization_reuses_registrant_with_same_email(tournament, make_registrant, test_config):
    handle = create_session(config=test_config, amount=12500, draft=_draft(tournament))
    existing = make_registrant(tournament, email="embedded@example.com")

    result = reconcile(handle.session_id, config=test_config)
    assert result.registrant.pk == existing.pk
    assert Registrant.objects.count() == 1


@pytest.mark.django_db
def test_pending_session_writes_nothing(tournament, make_registrant, test_config):
    registrant = make_registrant(tournament)
    handle = create_session(config=test_config, amount=12500, registrant=registrant)
    unpaid = SessionStatus(session_id=handle.session_id, paid=False, status="open", payment_status="unpaid")
    with mock.patch.object(SimulatedGateway, "retrieve_session", return_value=unpaid):
        result = reconcile(handle.session_id, config=test_config)
    assert result.outcome == PENDING
    assert result.registrant == registrant
    registrant.refresh_from_db()
    assert registrant.payment_status == Registrant.PAYMENT_UNPAID


@pytest.mark.django_db
def test_unknown_session(test_config, stripe_config):
    with pytest.raises(UnknownSession):
        reconcile("test_session_nobody", config=test_config)
    with mock.patch("stripe.checkout.Session.retrieve", return_value=_stripe_session()):
        with pytest.raises(UnknownSession):
            reconcile("cs_live_1", config=stripe_config)


@pytest.mark.django_db
def test_test_session_ids_are_not_honoured_in_production(tournament, make_registrant, stripe_config):
    import stripe

    registrant = make_registrant(tournament, checkout_session_id="test_session_abc")
    missing = stripe.InvalidRequestError("No such checkout.session", param="id", code="resource_missing")
    with mock.patch("stripe.checkout.Session.retrieve", side_effect=missing):
        with pytest.raises(UnknownSession):
            reconcile("test_session_abc", config=stripe_config)
    registrant.refresh_from_db()
    assert registrant.payment_status == Registrant.PAYMENT_UNPAID


@pytest.mark.django_db
def test_stripe_metadata_draft_survives_cache_eviction(tournament, stripe_config):
    draft = _draft(tournament)
    session = _stripe_session(metadata=dict(draft))
    with mock.patch("stripe.checkout.Session.retrieve", return_value=session), mock.patch(
        "stripe.PaymentIntent.retrieve", return_value=_card()
    ):
        result = reconcile("cs_live_1", config=stripe_config)
    registrant = result.registrant
    assert result.outcome == PAID
    assert registrant.email == "embedded@example.com"
    assert registrant.payment_intent_id == "pi_live_1"
    assert (registrant.payment_method_brand, registrant.payment_method_last4) == ("mastercard", "4444")
    assert "Paid via Stripe" in registrant.payment_notes


@pytest.mark.django_db
def test_orphaned_session_resolved_through_metadata(tournament, make_registrant, stripe_config):
    registrant = make_registrant(tournament, checkout_session_id="cs_newer")
    session = _stripe_session(session_id="cs_older", metadata={"registrant_id": str(registrant.id)})
    with mock.patch("stripe.checkout.Session.retrieve", return_value=session), mock.patch(
        "stripe.PaymentIntent.retrieve", return_value=_card()
    ):
        result = reconcile("cs_older", config=stripe_config)
    assert result.outcome == PAID
    registrant.refresh_from_db()
    assert registrant.checkout_session_id == "cs_older"
    assert registrant.payment_status == Registrant.PAYMENT_PAID


@pytest.mark.django_db
def test_card_lookup_failure_is_tolerated(tournament, make_registrant, stripe_config):
    import stripe

    registrant = make_registrant(tournament, checkout_session_id="cs_live_1")
    with mock.patch("stripe.checkout.Session.retrieve", return_value=_stripe_session()), mock.patch(
        "stripe.PaymentIntent.retrieve", side_effect=stripe.APIConnectionError("boom")
    ):
        result = reconcile("cs_live_1", config=stripe_config)
    assert result.outcome == PAID
    assert result.registrant.payment_method_last4 == ""


@pytest.mark.django_db
def test_gateway_outage_writes_nothing(tournament, make_registrant, stripe_config):
    import stripe

    registrant = make_registrant(tournament, checkout_session_id="cs_live_1")
    with mock.patch("stripe.checkout.Session.retrieve", side_effect=stripe.APIConnectionError("down")):
        with pytest.raises(GatewayUnavailable):
            reconcile("cs_live_1", config=stripe_config)
    registrant.refresh_from_db()
    assert registrant.payment_status == Registrant.PAYMENT_UNPAID


@pytest.mark.django_db
def test_draft_in_cache_is_used_before_metadata(tournament, stripe_config):
    draft = _draft(tournament, email="cached@example.com")
    store_draft("cs_live_1", draft, stripe_config)
    with mock.patch("stripe.checkout.Session.retrieve", return_value=_stripe_session()), mock.patch(
        "stripe.PaymentIntent.retrieve", return_value=_card()
    ):
        result = reconcile("cs_live_1", config=stripe_config)
    assert result.registrant.email == "cached@example.com"


@pytest.mark.django_db
def test_record_manual_payment(tournament, make_registrant, admin_user):
    registrant = make_registrant(tournament, payment_type="manual")
    paid = record_manual_payment(registrant.id, actor=admin_user, notes="Check #1001")
    assert paid.payment_status == Registrant.PAYMENT_PAID
    assert paid.payment_type == Registrant.PAYMENT_TYPE_MANUAL
    assert paid.payment_intent_id.startswith("manual_")
    assert paid.payment_amount == 12500
    assert "Check #1001" in paid.payment_notes
    assert ActivityLog.objects.get(action=ActivityLog.PAYMENT_RECORDED).actor == admin_user

    with pytest.raises(AlreadyPaid):
        record_manual_payment(registrant.id, actor=admin_user)
