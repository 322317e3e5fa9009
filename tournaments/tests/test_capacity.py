"""
Tests for the capacity ledger and the tournament capacity helpers.
"""
from datetime import timedelta

import pytest
from django.utils import timezone

from tournaments.capacity import CONFIRMED, WAITLISTED, CapacitySnapshot, admission_status_for, can_promote
from tournaments.models import Tournament


def test_unlimited_tournament_always_confirms():
    snap = CapacitySnapshot(max_capacity=None, reserved_slots=5, confirmed_count=1000)
    assert snap.unlimited
    assert snap.public_capacity is None
    assert snap.capacity_remaining is None
    assert not snap.at_capacity
    assert admission_status_for(snap) == CONFIRMED


def test_public_capacity_excludes_reserved_slots():
    snap = CapacitySnapshot(max_capacity=4, reserved_slots=1, confirmed_count=2)
    assert snap.public_capacity == 3
    assert snap.public_capacity_remaining == 1
    assert snap.capacity_remaining == 2
    assert admission_status_for(snap) == CONFIRMED


def test_public_admission_waitlists_at_public_cap_but_admin_does_not():
    snap = CapacitySnapshot(max_capacity=4, reserved_slots=1, confirmed_count=3)
    assert snap.public_at_capacity
    assert not snap.at_capacity
    assert admission_status_for(snap) == WAITLISTED
    assert admission_status_for(snap, use_reserved_slots=True) == CONFIRMED
    assert can_promote(snap)


def test_full_tournament_waitlists_everyone():
    snap = CapacitySnapshot(max_capacity=4, reserved_slots=1, confirmed_count=4)
    assert admission_status_for(snap, use_reserved_slots=True) == WAITLISTED
    assert not can_promote(snap)
    assert snap.capacity_remaining == 0
    assert snap.public_capacity_remaining == 0


def test_remaining_never_negative_when_over_booked():
    snap = CapacitySnapshot(max_capacity=2, reserved_slots=5, confirmed_count=3)
    assert snap.public_capacity == 0
    assert snap.capacity_remaining == 0
    assert snap.public_capacity_remaining == 0
    assert snap.as_dict()["public_at_capacity"] is True


@pytest.mark.django_db
def test_snapshot_counts_only_confirmed(tournament, make_registrant):
    make_registrant(tournament)
    make_registrant(tournament, admission_status="waitlisted")
    make_registrant(tournament, admission_status="cancelled")
    snap = tournament.capacity_snapshot()
    assert snap.confirmed_count == 1
    assert snap.public_capacity_remaining == 2


@pytest.mark.django_db
def test_accepting_registrations_and_fees():
    t = Tournament.objects.create(name="Open", year=2026, status=Tournament.STATUS_OPEN, registration_open=True)
    assert t.slug == "open-2026"
    assert t.accepting_registrations()

    t.registration_deadline = timezone.now() - timedelta(minutes=1)
    assert not t.accepting_registrations()

    t.registration_deadline = None
    t.registration_open = False
    assert not t.accepting_registrations()

    t.early_bird_fee = 10000
    t.early_bird_deadline = timezone.now() + timedelta(days=1)
    assert t.current_fee() == 10000
    t.early_bird_deadline = timezone.now() - timedelta(days=1)
    assert t.current_fee() == t.entry_fee


@pytest.mark.django_db
def test_tournament_api_exposes_capacity(api_client, tournament):
    Tournament.objects.create(name="Hidden", year=2026)
    resp = api_client.get("/api/tournaments/")
    assert resp.status_code == 200
    results = resp.json()["results"]
    assert [t["id"] for t in results] == [tournament.id]
    assert results[0]["capacity"]["public_capacity"] == 3
    assert results[0]["current_fee"] == 12500
    assert results[0]["accepting_registrations"] is True

    detail = api_client.get(f"/api/tournaments/{tournament.id}/")
    assert detail.status_code == 200
    assert detail.json()["capacity"]["confirmed_count"] == 0
