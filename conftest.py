"""
Common test fixtures.

Provides an admin user with an authenticated API client, an open
tournament with a small field, and payment configurations for the
simulated gateway and for Stripe.
"""
import pytest
from django.contrib.auth.models import User
from django.core.cache import cache
from django.utils import timezone
from rest_framework.test import APIClient

from payments.config import PaymentConfig
from registrants.models import Registrant
from tournaments.models import Tournament


@pytest.fixture(autouse=True)
def _clear_cache():
    """Drafts and simulated sessions live in the cache; start every test empty."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def admin_user(db):
    """Create a staff user."""
    return User.objects.create_user(
        username="organiser", password="pass12345", email="organiser@example.com", is_staff=True
    )


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def admin_client(api_client, admin_user):
    """Authenticate the API client with a JWT for the staff user."""
    resp = api_client.post(
        "/api/token/",
        {"username": "organiser", "password": "pass12345"},
        format="json",
    )
    assert resp.status_code == 200
    api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {resp.json()['access']}")
    return api_client


@pytest.fixture
def tournament(db):
    """An open tournament with 4 spots, 1 of them reserved for admins."""
    return Tournament.objects.create(
        name="Charity Classic",
        year=2026,
        status=Tournament.STATUS_OPEN,
        registration_open=True,
        max_capacity=4,
        reserved_slots=1,
        entry_fee=12500,
    )


@pytest.fixture
def test_config():
    return PaymentConfig(mode="test", frontend_url="http://frontend.test", note_time_zone="Pacific/Guam")


@pytest.fixture
def stripe_config():
    return PaymentConfig(
        mode="production",
        secret_key="sk_test_123",
        publishable_key="pk_test_123",
        webhook_secret="whsec_test",
        frontend_url="http://frontend.test",
        note_time_zone="Pacific/Guam",
    )


@pytest.fixture
def make_registrant(db):
    """Factory for registrants that skips admission."""
    counter = {"n": 0}

    def _make(tournament, **kwargs):
        counter["n"] += 1
        defaults = dict(
            name=f"Golfer {counter['n']}",
            email=f"golfer{counter['n']}@example.com",
            phone="671-555-0100",
            waiver_accepted_at=timezone.now(),
        )
        defaults.update(kwargs)
        return Registrant.objects.create(tournament=tournament, **defaults)

    return _make


def registration_payload(**overrides):
    data = {
        "name": "Pat Golfer",
        "email": "pat@example.com",
        "phone": "671-555-0199",
        "company": "Island Co",
        "waiver_accepted": True,
    }
    data.update(overrides)
    return data


@pytest.fixture
def payload():
    return registration_payload
