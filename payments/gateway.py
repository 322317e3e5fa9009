"""
Payment gateway collaborators.

Two implementations share one interface:

* ``StripeGateway`` talks to Stripe through the ``stripe`` library.  Every
  call passes the secret key explicitly, runs under the bounded HTTP
  timeout configured in ``PaymentsConfig.ready`` and is never retried
  here; Stripe errors are translated into ``payments.exceptions``.
* ``SimulatedGateway`` is used in test mode.  It makes no network calls,
  keeps its sessions in the Django cache and hands out identifiers
  prefixed with ``test_`` so simulated payments are recognisable forever.

Services obtain a gateway through ``build_gateway``,
``gateway_for_session`` or ``gateway_for_intent`` and only ever see the
frozen value objects defined below, never raw Stripe objects.
"""
from __future__ import annotations

import hashlib
import json
import logging
import secrets
from dataclasses import asdict, dataclass, field

import requests
import stripe
from django.core.cache import cache

from .config import PaymentConfig
from .exceptions import (
    GatewayError,
    GatewayTimeout,
    GatewayUnavailable,
    SignatureInvalid,
    UnknownSession,
)

logger = logging.getLogger(__name__)

TEST_SESSION_PREFIX = "test_session_"
TEST_EMBEDDED_PREFIX = "test_embedded_"
TEST_INTENT_PREFIX = "test_pi_"
TEST_REFUND_PREFIX = "test_re_"

_SIMULATED_SESSION_KEY = "payments:simulated:session:{}"
_SIMULATED_INTENT_KEY = "payments:simulated:intent:{}"


@dataclass(frozen=True)
class SessionHandle:
    session_id: str
    url: str | None
    client_secret: str | None
    amount: int
    test_mode: bool
    publishable_key: str = ""

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class SessionStatus:
    session_id: str
    paid: bool
    status: str
    payment_status: str
    amount_total: int | None = None
    payment_intent_id: str | None = None
    customer_email: str | None = None
    metadata: dict = field(default_factory=dict)

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class PaymentDiagnostics:
    brand: str | None = None
    last4: str | None = None


@dataclass(frozen=True)
class RefundRecord:
    refund_id: str
    amount: int | None
    status: str
    payment_intent_id: str

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class GatewayEvent:
    event_id: str
    event_type: str
    data_object: dict
    livemode: bool = False


def is_test_session(session_id: str) -> bool:
    return session_id.startswith((TEST_SESSION_PREFIX, TEST_EMBEDDED_PREFIX))


def is_test_intent(intent_id: str | None) -> bool:
    return bool(intent_id) and intent_id.startswith(TEST_INTENT_PREFIX)


def _plain(obj) -> dict:
    """Convert a Stripe object (or ``None``) into a plain dict."""
    if obj is None:
        return {}
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    return dict(obj)


def _attr(obj, name: str, default=None):
    if obj is None:
        return default
    value = getattr(obj, name, default)
    return default if value is None else value


def _timed_out(exc: BaseException) -> bool:
    """True when the transport error behind a Stripe connection error is a timeout."""
    cause = exc.__cause__ or exc.__context__
    while cause is not None:
        if isinstance(cause, (requests.Timeout, TimeoutError)):
            return True
        cause = cause.__cause__ or cause.__context__
    return False


def _metadata_strings(metadata: dict) -> dict:
    # Stripe metadata values are strings of at most 500 characters
    return {str(k): "" if v is None else str(v)[:500] for k, v in metadata.items()}


class StripeGateway:
    """Gateway backed by the Stripe API."""

    def __init__(self, config: PaymentConfig):
        if not config.secret_key:
            raise GatewayUnavailable()
        self.config = config

    def _call(self, fn, *args, **kwargs):
        try:
            return fn(*args, api_key=self.config.secret_key, **kwargs)
        except stripe.APIConnectionError as exc:
            logger.warning("Stripe unreachable: %s", exc)
            if _timed_out(exc):
                raise GatewayTimeout() from exc
            raise GatewayUnavailable("The payment gateway is unreachable. Please try again.") from exc
        except (stripe.RateLimitError, stripe.APIError) as exc:
            logger.warning("Stripe temporarily failed: %s", exc)
            raise GatewayUnavailable("The payment gateway is temporarily unavailable. Please try again.") from exc
        except stripe.StripeError as exc:
            logger.error("Stripe rejected %s: %s", getattr(fn, "__qualname__", fn), exc)
            raise GatewayError(getattr(exc, "user_message", None) or str(exc) or None) from exc

    def create_checkout_session(
        self,
        amount: int,
        metadata: dict,
        *,
        embedded: bool = False,
        customer_email: str | None = None,
        description: str = "Tournament entry fee",
    ) -> SessionHandle:
        metadata = _metadata_strings(metadata)
        frontend = self.config.frontend_url
        params = {
            "mode": "payment",
            "payment_method_types": ["card"],
            "line_items": [
                {
                    "price_data": {
                        "currency": self.config.currency,
                        "product_data": {"name": description},
                        "unit_amount": amount,
                    },
                    "quantity": 1,
                }
            ],
            "metadata": metadata,
            "payment_intent_data": {"metadata": metadata, "description": description},
        }
        if customer_email:
            params["customer_email"] = customer_email
        if embedded:
            params["ui_mode"] = "embedded"
            params["return_url"] = f"{frontend}/registration/success?session_id={{CHECKOUT_SESSION_ID}}"
        else:
            params["success_url"] = f"{frontend}/payment/success?session_id={{CHECKOUT_SESSION_ID}}"
            params["cancel_url"] = f"{frontend}/payment/cancel?registrant_id={metadata.get('registrant_id', '')}"

        session = self._call(stripe.checkout.Session.create, **params)
        logger.info("Created Stripe checkout session %s for %s cents", session.id, amount)
        return SessionHandle(
            session_id=session.id,
            url=_attr(session, "url"),
            client_secret=_attr(session, "client_secret"),
            amount=amount,
            test_mode=False,
            publishable_key=self.config.publishable_key,
        )

    def retrieve_session(self, session_id: str) -> SessionStatus:
        try:
            session = self._call(stripe.checkout.Session.retrieve, session_id)
        except GatewayError as exc:
            cause = exc.__cause__
            if isinstance(cause, stripe.InvalidRequestError) and getattr(cause, "code", None) == "resource_missing":
                raise UnknownSession() from cause
            raise
        intent = _attr(session, "payment_intent")
        if intent is not None and not isinstance(intent, str):
            intent = _attr(intent, "id")
        payment_status = _attr(session, "payment_status", "")
        customer_details = _attr(session, "customer_details")
        return SessionStatus(
            session_id=session.id,
            paid=payment_status == "paid",
            status=_attr(session, "status", ""),
            payment_status=payment_status,
            amount_total=_attr(session, "amount_total"),
            payment_intent_id=intent,
            customer_email=_attr(session, "customer_email") or _attr(customer_details, "email"),
            metadata=_plain(_attr(session, "metadata")),
        )

    def lookup_payment_method(self, intent_id: str) -> PaymentDiagnostics:
        intent = self._call(stripe.PaymentIntent.retrieve, intent_id)
        method = _attr(intent, "payment_method")
        if method is None:
            return PaymentDiagnostics()
        if isinstance(method, str):
            method = self._call(stripe.PaymentMethod.retrieve, method)
        card = _attr(method, "card")
        return PaymentDiagnostics(brand=_attr(card, "brand"), last4=_attr(card, "last4"))

    def find_session_for_intent(self, intent_id: str) -> str | None:
        sessions = self._call(stripe.checkout.Session.list, payment_intent=intent_id, limit=1)
        data = _attr(sessions, "data", [])
        return data[0].id if data else None

    def create_refund(
        self,
        intent_id: str,
        *,
        amount: int | None = None,
        reason: str = "",
        idempotency_key: str | None = None,
    ) -> RefundRecord:
        params = {
            "payment_intent": intent_id,
            "reason": "requested_by_customer",
            "metadata": _metadata_strings({"reason": reason}),
        }
        if amount is not None:
            params["amount"] = amount
        if idempotency_key:
            params["idempotency_key"] = idempotency_key
        refund = self._call(stripe.Refund.create, **params)
        logger.info("Created Stripe refund %s for intent %s", refund.id, intent_id)
        return RefundRecord(
            refund_id=refund.id,
            amount=_attr(refund, "amount", amount),
            status=_attr(refund, "status", ""),
            payment_intent_id=intent_id,
        )


class SimulatedGateway:
    """
    Test-mode gateway.  Every session it creates is immediately paid.

    Identifiers are synthetic: ``test_session_``/``test_embedded_`` for
    sessions, ``test_pi_`` for payment intents (derived from the session
    id, so repeated confirmations see the same intent) and ``test_re_``
    for refunds.
    """

    def __init__(self, config: PaymentConfig):
        self.config = config

    @staticmethod
    def intent_for_session(session_id: str) -> str:
        return TEST_INTENT_PREFIX + hashlib.sha256(session_id.encode()).hexdigest()[:24]

    def create_checkout_session(
        self,
        amount: int,
        metadata: dict,
        *,
        embedded: bool = False,
        customer_email: str | None = None,
        description: str = "Tournament entry fee",
    ) -> SessionHandle:
        prefix = TEST_EMBEDDED_PREFIX if embedded else TEST_SESSION_PREFIX
        session_id = prefix + secrets.token_hex(16)
        intent_id = self.intent_for_session(session_id)
        record = {
            "amount": amount,
            "metadata": _metadata_strings(metadata),
            "customer_email": customer_email,
            "description": description,
        }
        ttl = self.config.draft_ttl_seconds
        cache.set(_SIMULATED_SESSION_KEY.format(session_id), json.dumps(record), ttl)
        cache.set(_SIMULATED_INTENT_KEY.format(intent_id), session_id, ttl)
        logger.info("Created simulated checkout session %s for %s cents", session_id, amount)
        if embedded:
            return SessionHandle(
                session_id=session_id,
                url=None,
                client_secret=f"test_secret_{session_id}",
                amount=amount,
                test_mode=True,
            )
        return SessionHandle(
            session_id=session_id,
            url=f"{self.config.frontend_url}/payment/success?session_id={session_id}",
            client_secret=None,
            amount=amount,
            test_mode=True,
        )

    def retrieve_session(self, session_id: str) -> SessionStatus:
        if not is_test_session(session_id):
            raise UnknownSession()
        raw = cache.get(_SIMULATED_SESSION_KEY.format(session_id))
        record = json.loads(raw) if raw else {}
        return SessionStatus(
            session_id=session_id,
            paid=True,
            status="complete",
            payment_status="paid",
            amount_total=record.get("amount"),
            payment_intent_id=self.intent_for_session(session_id),
            customer_email=record.get("customer_email"),
            metadata=record.get("metadata", {}),
        )

    def lookup_payment_method(self, intent_id: str) -> PaymentDiagnostics:
        return PaymentDiagnostics(brand="visa", last4="4242")

    def find_session_for_intent(self, intent_id: str) -> str | None:
        return cache.get(_SIMULATED_INTENT_KEY.format(intent_id))

    def create_refund(
        self,
        intent_id: str,
        *,
        amount: int | None = None,
        reason: str = "",
        idempotency_key: str | None = None,
    ) -> RefundRecord:
        refund_id = TEST_REFUND_PREFIX + secrets.token_hex(12)
        logger.info("Simulated refund %s for intent %s", refund_id, intent_id)
        return RefundRecord(refund_id=refund_id, amount=amount, status="succeeded", payment_intent_id=intent_id)


def build_gateway(config: PaymentConfig):
    """The gateway new checkouts are created against."""
    if config.test_mode:
        return SimulatedGateway(config)
    return StripeGateway(config)


def gateway_for_session(session_id: str, config: PaymentConfig):
    """
    The gateway that owns ``session_id``.

    Simulated sessions are honoured only in test mode; in production a
    ``test_`` id goes to Stripe, which does not know it.
    """
    if config.test_mode and is_test_session(session_id):
        return SimulatedGateway(config)
    return build_gateway(config)


def gateway_for_intent(intent_id: str, config: PaymentConfig):
    """The gateway that captured ``intent_id``; simulated payments are refunded in any mode."""
    if is_test_intent(intent_id):
        return SimulatedGateway(config)
    return StripeGateway(config)


def verify_webhook(payload: bytes, signature: str | None, secret: str) -> GatewayEvent:
    """Verify a Stripe-signed webhook and return the event it carries."""
    if not signature:
        raise SignatureInvalid("Missing webhook signature.")
    try:
        event = stripe.Webhook.construct_event(payload, signature, secret)
    except stripe.SignatureVerificationError as exc:
        raise SignatureInvalid() from exc
    except ValueError as exc:
        raise SignatureInvalid("Invalid webhook payload.") from exc
    return GatewayEvent(
        event_id=event.id,
        event_type=event.type,
        data_object=_plain(event.data.object),
        livemode=bool(_attr(event, "livemode", False)),
    )


def parse_unverified_event(payload: bytes) -> GatewayEvent:
    """Parse a webhook body without a signature check."""
    try:
        body = json.loads(payload)
    except ValueError as exc:
        raise SignatureInvalid("Invalid webhook payload.") from exc
    if not isinstance(body, dict):
        raise SignatureInvalid("Invalid webhook payload.")
    data = body.get("data")
    obj = data.get("object") if isinstance(data, dict) else None
    if not body.get("id") or not body.get("type") or not isinstance(obj, dict):
        raise SignatureInvalid("Webhook payload is missing id, type or data.object.")
    return GatewayEvent(
        event_id=body["id"],
        event_type=body["type"],
        data_object=obj,
        livemode=bool(body.get("livemode", False)),
    )
