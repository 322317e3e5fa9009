"""
Tests for the checkout session manager.
"""
from types import SimpleNamespace
from unittest import mock

import pytest
from django.utils import timezone

from payments.checkout import create_session
from payments.config import PaymentConfig
from payments.drafts import build_draft, load_draft
from payments.exceptions import AlreadyPaid, AlreadyRefunded, GatewayUnavailable, RegistrationClosed, ValidationFailed
from registrants.models import Registrant


def _draft(tournament, email="new@example.com"):
    fields = {
        "name": "New Golfer",
        "email": email,
        "phone": "671-555-0123",
        "waiver_accepted_at": timezone.now(),
    }
    return build_draft(tournament.id, fields, tournament.current_fee())


@pytest.mark.django_db
def test_session_for_registrant_replaces_previous_session(tournament, make_registrant, test_config):
    registrant = make_registrant(tournament)
    first = create_session(config=test_config, amount=12500, registrant=registrant)
    assert first.test_mode
    assert first.session_id.startswith("test_session_")
    assert first.url == f"http://frontend.test/payment/success?session_id={first.session_id}"

    second = create_session(config=test_config, amount=12500, registrant=registrant)
    registrant.refresh_from_db()
    assert registrant.checkout_session_id == second.session_id != first.session_id


@pytest.mark.django_db
def test_session_refused_for_settled_registrants(tournament, make_registrant, test_config):
    paid = make_registrant(tournament, payment_status="paid", payment_intent_id="pi_1")
    with pytest.raises(AlreadyPaid):
        create_session(config=test_config, amount=12500, registrant=paid)

    refunded = make_registrant(
        tournament, payment_status="refunded", payment_intent_id="pi_2", refund_id="re_2", admission_status="cancelled"
    )
    with pytest.raises(AlreadyRefunded):
        create_session(config=test_config, amount=12500, registrant=refunded)

    cancelled = make_registrant(tournament, admission_status="cancelled")
    with pytest.raises(ValidationFailed):
        create_session(config=test_config, amount=12500, registrant=cancelled)


@pytest.mark.django_db
def test_registrant_paid_while_gateway_was_called_is_not_overwritten(tournament, make_registrant, test_config):
    registrant = make_registrant(tournament)
    Registrant.objects.filter(pk=registrant.pk).update(payment_status="paid", payment_intent_id="pi_race")
    with pytest.raises(AlreadyPaid):
        # the in-memory copy is stale; the locked re-check sees the payment
        create_session(config=test_config, amount=12500, registrant=registrant)
    registrant.refresh_from_db()
    assert registrant.checkout_session_id is None


@pytest.mark.django_db
def test_draft_session_caches_draft(tournament, test_config):
    draft = _draft(tournament)
    handle = create_session(config=test_config, amount=12500, draft=draft)
    assert handle.session_id.startswith("test_embedded_")
    assert handle.client_secret == f"test_secret_{handle.session_id}"
    assert load_draft(handle.session_id) == draft
    assert not Registrant.objects.exists()


@pytest.mark.django_db
def test_draft_session_refused_when_closed_or_duplicate(tournament, make_registrant, test_config):
    make_registrant(tournament, email="taken@example.com")
    with pytest.raises(ValidationFailed):
        create_session(config=test_config, amount=12500, draft=_draft(tournament, email="TAKEN@example.com"))

    tournament.registration_open = False
    tournament.save()
    with pytest.raises(RegistrationClosed):
        create_session(config=test_config, amount=12500, draft=_draft(tournament))


@pytest.mark.django_db
def test_production_without_secret_key_is_unavailable(tournament, make_registrant):
    registrant = make_registrant(tournament)
    with pytest.raises(GatewayUnavailable):
        create_session(config=PaymentConfig(mode="production"), amount=12500, registrant=registrant)
    registrant.refresh_from_db()
    assert registrant.checkout_session_id is None


@pytest.mark.django_db
def test_stripe_session_carries_metadata_and_key(tournament, make_registrant, stripe_config):
    registrant = make_registrant(tournament)
    fake = SimpleNamespace(id="cs_test_1", url="https://checkout.stripe.com/c/cs_test_1", client_secret=None)
    with mock.patch("stripe.checkout.Session.create", return_value=fake) as create:
        handle = create_session(config=stripe_config, amount=12500, registrant=registrant)

    kwargs = create.call_args.kwargs
    assert kwargs["api_key"] == "sk_test_123"
    assert kwargs["metadata"]["registrant_id"] == str(registrant.id)
    assert kwargs["payment_intent_data"]["metadata"]["registrant_id"] == str(registrant.id)
    assert kwargs["line_items"][0]["price_data"]["unit_amount"] == 12500
    assert handle.session_id == "cs_test_1"
    assert handle.publishable_key == "pk_test_123"
    registrant.refresh_from_db()
    assert registrant.checkout_session_id == "cs_test_1"


@pytest.mark.django_db
def test_stripe_draft_session_is_embedded_with_draft_metadata(tournament, stripe_config):
    draft = _draft(tournament)
    fake = SimpleNamespace(id="cs_test_2", url=None, client_secret="cs_test_2_secret")
    with mock.patch("stripe.checkout.Session.create", return_value=fake) as create:
        handle = create_session(config=stripe_config, amount=12500, draft=draft)

    kwargs = create.call_args.kwargs
    assert kwargs["ui_mode"] == "embedded"
    assert kwargs["metadata"]["email"] == "new@example.com"
    assert kwargs["metadata"]["tournament_id"] == str(tournament.id)
    assert handle.client_secret == "cs_test_2_secret"
    assert load_draft("cs_test_2") == draft
