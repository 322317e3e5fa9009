"""
API tests for the checkout, confirmation and payment-link endpoints.
"""
from unittest import mock

import pytest

from payments.gateway import SessionStatus, SimulatedGateway
from registrants.models import Registrant


@pytest.mark.django_db
def test_checkout_then_confirm(api_client, tournament, make_registrant):
    registrant = make_registrant(tournament)
    resp = api_client.post("/api/checkout/", {"registrant_id": registrant.id}, format="json")
    assert resp.status_code == 201
    body = resp.json()
    assert body["amount"] == 12500
    assert body["test_mode"] is True
    assert body["session_id"].startswith("test_session_")
    assert body["checkout_url"].startswith("http://frontend.test/")

    resp = api_client.post("/api/checkout/confirm/", {"session_id": body["session_id"]}, format="json")
    assert resp.status_code == 200
    assert resp.json()["outcome"] == "paid"
    assert resp.json()["registrant"]["payment_status"] == "paid"
    assert resp.json()["registrant"]["payment_method_last4"] == "4242"

    resp = api_client.post("/api/checkout/confirm/", {"session_id": body["session_id"]}, format="json")
    assert resp.status_code == 200
    assert resp.json()["outcome"] == "already_paid"

    resp = api_client.post("/api/checkout/", {"registrant_id": registrant.id}, format="json")
    assert resp.status_code == 422
    assert resp.json()["code"] == "already_paid"


@pytest.mark.django_db
def test_checkout_for_missing_registrant(api_client, tournament):
    resp = api_client.post("/api/checkout/", {"registrant_id": 9999}, format="json")
    assert resp.status_code == 404
    resp = api_client.post("/api/checkout/", {}, format="json")
    assert resp.status_code == 422


@pytest.mark.django_db
def test_embedded_checkout_creates_registrant_on_confirm(api_client, tournament, payload):
    resp = api_client.post(
        "/api/checkout/embedded/", {**payload(), "tournament_id": tournament.id}, format="json"
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["session_id"].startswith("test_embedded_")
    assert body["client_secret"]
    assert body["checkout_url"] is None
    assert not Registrant.objects.exists()

    resp = api_client.post("/api/checkout/confirm/", {"session_id": body["session_id"]}, format="json")
    assert resp.status_code == 200
    registrant = Registrant.objects.get()
    assert registrant.email == "pat@example.com"
    assert registrant.payment_status == Registrant.PAYMENT_PAID


@pytest.mark.django_db
def test_embedded_checkout_rejects_bad_data(api_client, tournament, payload, make_registrant):
    resp = api_client.post(
        "/api/checkout/embedded/",
        {**payload(waiver_accepted=False), "tournament_id": tournament.id},
        format="json",
    )
    assert resp.status_code == 422
    assert "waiver_accepted" in resp.json()["errors"]

    make_registrant(tournament, email="pat@example.com")
    resp = api_client.post(
        "/api/checkout/embedded/", {**payload(), "tournament_id": tournament.id}, format="json"
    )
    assert resp.status_code == 422
    assert "email" in resp.json()["errors"]


@pytest.mark.django_db
def test_confirm_pending_and_unknown(api_client, tournament, make_registrant):
    registrant = make_registrant(tournament)
    session_id = api_client.post("/api/checkout/", {"registrant_id": registrant.id}, format="json").json()[
        "session_id"
    ]
    unpaid = SessionStatus(session_id=session_id, paid=False, status="open", payment_status="unpaid")
    with mock.patch.object(SimulatedGateway, "retrieve_session", return_value=unpaid):
        resp = api_client.post("/api/checkout/confirm/", {"session_id": session_id}, format="json")
    assert resp.status_code == 402
    assert resp.json() == {
        "error": "Payment has not been completed yet.",
        "code": "payment_pending",
        "payment_status": "unpaid",
    }

    resp = api_client.post("/api/checkout/confirm/", {"session_id": "test_session_nobody"}, format="json")
    assert resp.status_code == 404
    assert resp.json()["code"] == "unknown_session"

    resp = api_client.post("/api/checkout/confirm/", {"session_id": ""}, format="json")
    assert resp.status_code == 422


@pytest.mark.django_db
def test_session_status(api_client, tournament, make_registrant):
    registrant = make_registrant(tournament)
    session_id = api_client.post("/api/checkout/", {"registrant_id": registrant.id}, format="json").json()[
        "session_id"
    ]
    resp = api_client.get(f"/api/checkout/session/{session_id}/")
    assert resp.status_code == 200
    assert resp.json() == {
        "session_id": session_id,
        "paid": True,
        "status": "complete",
        "payment_status": "paid",
        "amount_total": 12500,
    }
    registrant.refresh_from_db()
    assert registrant.payment_status == Registrant.PAYMENT_UNPAID


@pytest.mark.django_db
def test_payment_link_endpoints(api_client, tournament, make_registrant):
    registrant = make_registrant(tournament, payment_token="tok_abc")
    resp = api_client.get("/api/payment-links/tok_abc/")
    assert resp.status_code == 200
    body = resp.json()
    assert body["amount_due"] == 12500
    assert body["payable"] is True
    assert body["tournament"]["name"] == "Charity Classic"

    resp = api_client.post("/api/payment-links/tok_abc/checkout/")
    assert resp.status_code == 201
    registrant.refresh_from_db()
    assert registrant.checkout_session_id == resp.json()["session_id"]

    assert api_client.get("/api/payment-links/nope/").status_code == 404


@pytest.mark.django_db
def test_checkout_unavailable_without_secret_key(api_client, tournament, make_registrant, settings):
    settings.PAYMENT_MODE = "production"
    settings.STRIPE_SECRET_KEY = ""
    registrant = make_registrant(tournament)
    resp = api_client.post("/api/checkout/", {"registrant_id": registrant.id}, format="json")
    assert resp.status_code == 503
    assert resp.json()["code"] == "gateway_unavailable"
    registrant.refresh_from_db()
    assert registrant.checkout_session_id is None
