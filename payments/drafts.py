"""
Checkout drafts.

An embedded checkout is started before the registrant exists.  The
validated registration fields are kept as a *draft* keyed by the
checkout session id: in the Django cache for ``draft_ttl_seconds`` and,
for Stripe sessions, in the session metadata as well, so a payment can
still be reconciled after the cache entry has been evicted.  The
reconciler materializes the registrant from the draft once the gateway
reports the session as paid, then deletes the cache entry.
"""
from __future__ import annotations

from django.core.cache import cache
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from .config import PaymentConfig

_DRAFT_KEY = "checkout:draft:{}"

DRAFT_FIELDS = ("name", "email", "phone", "mobile", "company", "address")


def draft_key(session_id: str) -> str:
    return _DRAFT_KEY.format(session_id)


def build_draft(tournament_id: int, fields: dict, amount: int) -> dict:
    """A JSON-safe draft from validated registrant fields."""
    draft = {"tournament_id": str(tournament_id), "payment_amount": str(amount)}
    for name in DRAFT_FIELDS:
        draft[name] = fields.get(name) or ""
    draft["waiver_accepted_at"] = fields["waiver_accepted_at"].isoformat()
    return draft


def store_draft(session_id: str, draft: dict, config: PaymentConfig) -> None:
    cache.set(draft_key(session_id), draft, config.draft_ttl_seconds)


def load_draft(session_id: str) -> dict | None:
    return cache.get(draft_key(session_id))


def discard_draft(session_id: str) -> None:
    cache.delete(draft_key(session_id))


def draft_from_metadata(metadata: dict | None) -> dict | None:
    """The draft carried in gateway session metadata, if there is one."""
    if not metadata or not metadata.get("tournament_id") or not metadata.get("email"):
        return None
    draft = {name: metadata.get(name, "") for name in DRAFT_FIELDS}
    draft["tournament_id"] = metadata["tournament_id"]
    draft["payment_amount"] = metadata.get("payment_amount", "")
    draft["waiver_accepted_at"] = metadata.get("waiver_accepted_at", "")
    return draft


def registrant_fields(draft: dict) -> dict:
    """Model field values for the registrant described by ``draft``."""
    fields = {name: draft.get(name) or "" for name in DRAFT_FIELDS}
    fields["email"] = fields["email"].strip().lower()
    fields["waiver_accepted_at"] = parse_datetime(draft.get("waiver_accepted_at") or "") or timezone.now()
    return fields


def draft_tournament_id(draft: dict) -> int:
    return int(draft["tournament_id"])
