"""
Views for the payments app.

This module exposes the public checkout endpoints (start a checkout for
an existing registrant or for a registration draft, confirm it after
the gateway redirect, read a session's status), the payment-link
endpoints behind emailed links, and the gateway webhook.  None of them
require authentication: checkout only ever charges the tournament's
current fee, and the webhook relies solely on signature verification.
Domain errors raised by the services are rendered by
``common.exceptions.api_exception_handler``.
"""
from __future__ import annotations

import logging

from django.shortcuts import get_object_or_404
from django.utils.decorators import method_decorator
from django.views.decorators.csrf import csrf_exempt
from rest_framework import permissions, status, views
from rest_framework.response import Response

from registrants.models import Registrant
from registrants.serializers import RegistrantPublicSerializer
from tournaments.models import Tournament

from .checkout import create_session, session_status
from .config import get_payment_config
from .drafts import build_draft
from .exceptions import ValidationFailed
from .reconcile import PAID, PENDING, reconcile
from .serializers import (
    CheckoutRequestSerializer,
    ConfirmRequestSerializer,
    EmbeddedCheckoutRequestSerializer,
    SessionHandleSerializer,
    SessionStatusSerializer,
)
from .webhooks import ingest

logger = logging.getLogger(__name__)


def _validated(serializer_class, data):
    serializer = serializer_class(data=data)
    if not serializer.is_valid():
        raise ValidationFailed(errors=serializer.errors)
    return serializer


class CheckoutView(views.APIView):
    """Start a hosted checkout for an existing registrant."""

    permission_classes = [permissions.AllowAny]

    def post(self, request):
        serializer = _validated(CheckoutRequestSerializer, request.data)
        registrant = get_object_or_404(
            Registrant.objects.select_related("tournament"), pk=serializer.validated_data["registrant_id"]
        )
        handle = create_session(
            config=get_payment_config(),
            amount=registrant.tournament.current_fee(),
            registrant=registrant,
        )
        return Response(SessionHandleSerializer(handle).data, status=status.HTTP_201_CREATED)


class EmbeddedCheckoutView(views.APIView):
    """Start an embedded checkout; the registrant is created once payment succeeds."""

    permission_classes = [permissions.AllowAny]

    def post(self, request):
        serializer = _validated(EmbeddedCheckoutRequestSerializer, request.data)
        tournament = get_object_or_404(Tournament, pk=serializer.validated_data["tournament_id"])
        amount = tournament.current_fee()
        fields = serializer.registrant_fields()
        fields.pop("tournament_id", None)
        fields.pop("payment_type", None)
        draft = build_draft(tournament.id, fields, amount)
        handle = create_session(config=get_payment_config(), amount=amount, draft=draft)
        return Response(SessionHandleSerializer(handle).data, status=status.HTTP_201_CREATED)


class CheckoutConfirmView(views.APIView):
    """Confirm a checkout after the gateway redirects the golfer back."""

    permission_classes = [permissions.AllowAny]

    def post(self, request):
        serializer = _validated(ConfirmRequestSerializer, request.data)
        result = reconcile(serializer.validated_data["session_id"], config=get_payment_config())
        if result.outcome == PENDING:
            return Response(
                {
                    "error": "Payment has not been completed yet.",
                    "code": "payment_pending",
                    "payment_status": result.session.payment_status,
                },
                status=status.HTTP_402_PAYMENT_REQUIRED,
            )
        message = "Payment confirmed!" if result.outcome == PAID else "Payment already confirmed."
        return Response(
            {
                "registrant": RegistrantPublicSerializer(result.registrant).data,
                "message": message,
                "outcome": result.outcome,
            }
        )


class CheckoutSessionView(views.APIView):
    """Read-only status of a checkout session as the gateway reports it."""

    permission_classes = [permissions.AllowAny]

    def get(self, request, session_id: str):
        state = session_status(session_id, config=get_payment_config())
        return Response(SessionStatusSerializer(state).data)


class PaymentLinkView(views.APIView):
    """Registration summary behind an emailed payment link."""

    permission_classes = [permissions.AllowAny]

    def get(self, request, token: str):
        registrant = get_object_or_404(Registrant.objects.select_related("tournament"), payment_token=token)
        tournament = registrant.tournament
        return Response(
            {
                "registrant": RegistrantPublicSerializer(registrant).data,
                "tournament": {"id": tournament.id, "name": tournament.name, "event_date": tournament.event_date},
                "amount_due": tournament.current_fee(),
                "payable": registrant.can_receive_payment_link(),
            }
        )


class PaymentLinkCheckoutView(views.APIView):
    """Start a hosted checkout for the registrant owning a payment link."""

    permission_classes = [permissions.AllowAny]

    def post(self, request, token: str):
        registrant = get_object_or_404(Registrant.objects.select_related("tournament"), payment_token=token)
        handle = create_session(
            config=get_payment_config(),
            amount=registrant.tournament.current_fee(),
            registrant=registrant,
        )
        return Response(SessionHandleSerializer(handle).data, status=status.HTTP_201_CREATED)


@method_decorator(csrf_exempt, name="dispatch")
class GatewayWebhookView(views.APIView):
    """Handle incoming Stripe webhook events."""

    permission_classes = []  # no authentication
    authentication_classes = []

    def post(self, request):
        outcome = ingest(
            request.body,
            request.META.get("HTTP_STRIPE_SIGNATURE"),
            config=get_payment_config(),
        )
        return Response({"received": True, "status": outcome.status})
