"""
Views for the registrants app.

``RegisterView`` is the public registration endpoint.  ``RegistrantViewSet``
is the admin dashboard: it lists registrants and exposes the admin
operations (refund, manual payment and refund recording, cancellation,
waitlist promotion, payment links).  Admin endpoints require a staff JWT.
Domain errors raised by the services are rendered by
``common.exceptions.api_exception_handler``.
"""
from __future__ import annotations

from django.db.models import Q
from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from common.pagination import DefaultPagination
from payments.config import get_payment_config
from payments.exceptions import ValidationFailed
from payments.reconcile import record_manual_payment
from payments import refunds

from . import notifications
from .admission import admit, cancel_registration, issue_payment_token, promote_from_waitlist
from .models import Registrant
from .serializers import (
    CancelRequestSerializer,
    MarkRefundedRequestSerializer,
    PaymentLinkRequestSerializer,
    RecordPaymentRequestSerializer,
    RefundRequestSerializer,
    RegistrantPublicSerializer,
    RegistrantSerializer,
)


def _validated(serializer_class, data) -> dict:
    serializer = serializer_class(data=data)
    if not serializer.is_valid():
        raise ValidationFailed(errors=serializer.errors)
    return serializer.validated_data


def _tournament_id(data):
    try:
        return int(data.get("tournament_id"))
    except (TypeError, ValueError):
        raise ValidationFailed(errors={"tournament_id": ["A valid tournament id is required."]})


def _registration_message(registrant: Registrant) -> str:
    if registrant.admission_status == Registrant.ADMISSION_WAITLISTED:
        return "The tournament is full. You have been added to the waitlist."
    if registrant.payment_type == Registrant.PAYMENT_TYPE_MANUAL:
        return "Registration received. Please pay on the day of the tournament."
    return "Registration received. Complete your payment to secure your spot."


class RegisterView(APIView):
    """Public self-service registration."""

    permission_classes = [permissions.AllowAny]

    def post(self, request):
        registrant = admit(_tournament_id(request.data), request.data)
        notifications.registration_created(registrant)
        return Response(
            {
                "registrant": RegistrantPublicSerializer(registrant).data,
                "message": _registration_message(registrant),
            },
            status=status.HTTP_201_CREATED,
        )


class RegistrantViewSet(viewsets.ReadOnlyModelViewSet):
    """Admin listing of registrants plus the admin registrant operations."""

    serializer_class = RegistrantSerializer
    permission_classes = [permissions.IsAdminUser]
    pagination_class = DefaultPagination
    lookup_value_regex = r"\d+"

    def get_queryset(self):
        qs = Registrant.objects.all().select_related("tournament")
        params = self.request.query_params
        tournament_id = params.get("tournament")
        if tournament_id:
            qs = qs.filter(tournament_id=tournament_id)
        admission_status = params.get("admission_status")
        if admission_status:
            qs = qs.filter(admission_status=admission_status)
        payment_status = params.get("payment_status")
        if payment_status:
            qs = qs.filter(payment_status=payment_status)
        search = params.get("search")
        if search:
            qs = qs.filter(Q(name__icontains=search) | Q(email__icontains=search) | Q(company__icontains=search))
        return qs.order_by("created_at")

    def create(self, request):
        """Admin registration; may use the slots reserved for admins."""
        registrant = admit(_tournament_id(request.data), request.data, use_reserved_slots=True, actor=request.user)
        notifications.registration_created(registrant)
        return Response(RegistrantSerializer(registrant).data, status=status.HTTP_201_CREATED)

    def _respond(self, registrant: Registrant, message: str, **extra) -> Response:
        registrant.refresh_from_db()
        return Response({"registrant": RegistrantSerializer(registrant).data, "message": message, **extra})

    @action(detail=True, methods=["post"])
    def refund(self, request, pk=None):
        data = _validated(RefundRequestSerializer, request.data)
        record = refunds.refund(int(pk), config=get_payment_config(), reason=data["reason"], actor=request.user)
        registrant = Registrant.objects.get(pk=pk)
        return self._respond(registrant, "Refund processed.", refund=record.as_dict())

    @action(detail=True, methods=["post"], url_path="mark-refunded")
    def mark_refunded(self, request, pk=None):
        data = _validated(MarkRefundedRequestSerializer, request.data)
        registrant = refunds.mark_refunded(int(pk), reason=data["reason"], amount=data.get("amount"), actor=request.user)
        return self._respond(registrant, "Registration marked as refunded.")

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        data = _validated(CancelRequestSerializer, request.data)
        registrant = cancel_registration(int(pk), actor=request.user, reason=data["reason"])
        return self._respond(registrant, "Registration cancelled.")

    @action(detail=True, methods=["post"])
    def promote(self, request, pk=None):
        registrant = promote_from_waitlist(int(pk), actor=request.user)
        return self._respond(registrant, "Registrant promoted from the waitlist.")

    @action(detail=True, methods=["post"], url_path="record-payment")
    def record_payment(self, request, pk=None):
        data = _validated(RecordPaymentRequestSerializer, request.data)
        registrant = record_manual_payment(int(pk), actor=request.user, amount=data.get("amount"), notes=data["notes"])
        return self._respond(registrant, "Payment recorded.")

    @action(detail=True, methods=["post"], url_path="payment-link")
    def payment_link(self, request, pk=None):
        data = _validated(PaymentLinkRequestSerializer, request.data)
        registrant = issue_payment_token(int(pk), regenerate=data["regenerate"], send_email=data["send_email"])
        return self._respond(registrant, "Payment link ready.", payment_link=registrant.payment_link_url())
