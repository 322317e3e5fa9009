"""
Serializers for the registrants app.

``RegistrantAdmissionSerializer`` validates the fields a golfer submits
when registering (publicly, through an embedded checkout draft, or via
an admin) and turns them into model field values.  The read serializers
come in two shapes: the full admin view and the public view returned to
the golfer after registering or paying.  The remaining serializers
validate the bodies of admin actions.
"""
from __future__ import annotations

from django.utils import timezone
from rest_framework import serializers

from .models import Registrant


class RegistrantAdmissionSerializer(serializers.Serializer):
    """Registration details submitted by or on behalf of a golfer."""

    name = serializers.CharField(max_length=255)
    email = serializers.EmailField()
    phone = serializers.CharField(max_length=40)
    mobile = serializers.CharField(max_length=40, required=False, allow_blank=True, default="")
    company = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    address = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")
    waiver_accepted = serializers.BooleanField()
    payment_type = serializers.ChoiceField(
        choices=Registrant.PAYMENT_TYPE_CHOICES,
        required=False,
        default=Registrant.PAYMENT_TYPE_GATEWAY,
    )

    def validate_email(self, value: str) -> str:
        return value.strip().lower()

    def validate_name(self, value: str) -> str:
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Name is required.")
        return value

    def validate_waiver_accepted(self, value: bool) -> bool:
        if not value:
            raise serializers.ValidationError("The waiver must be accepted to register.")
        return value

    def registrant_fields(self) -> dict:
        """Model field values for a new registrant built from validated data."""
        data = dict(self.validated_data)
        data.pop("waiver_accepted")
        data["waiver_accepted_at"] = timezone.now()
        return data


class RegistrationRequestSerializer(RegistrantAdmissionSerializer):
    tournament_id = serializers.IntegerField()


class RegistrantSerializer(serializers.ModelSerializer):
    """Full registrant record for the admin dashboard."""

    tournament_id = serializers.IntegerField(read_only=True)
    group_id = serializers.IntegerField(read_only=True)
    refunded_by_id = serializers.IntegerField(read_only=True)
    payment_link_url = serializers.SerializerMethodField()

    class Meta:
        model = Registrant
        fields = [
            "id",
            "tournament_id",
            "name",
            "email",
            "phone",
            "mobile",
            "company",
            "address",
            "waiver_accepted_at",
            "admission_status",
            "payment_status",
            "payment_type",
            "checkout_session_id",
            "payment_intent_id",
            "payment_amount",
            "payment_method_brand",
            "payment_method_last4",
            "payment_notes",
            "paid_at",
            "refund_id",
            "refund_amount",
            "refund_reason",
            "refunded_at",
            "refunded_by_id",
            "group_id",
            "position",
            "payment_link_url",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_payment_link_url(self, obj: Registrant) -> str | None:
        return obj.payment_link_url()


class RegistrantPublicSerializer(serializers.ModelSerializer):
    """What a golfer sees about their own registration."""

    tournament_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = Registrant
        fields = [
            "id",
            "tournament_id",
            "name",
            "email",
            "admission_status",
            "payment_status",
            "payment_type",
            "payment_amount",
            "payment_method_brand",
            "payment_method_last4",
            "paid_at",
        ]
        read_only_fields = fields


class RefundRequestSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=1000)


class MarkRefundedRequestSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=1000)
    amount = serializers.IntegerField(min_value=1, required=False, allow_null=True)


class CancelRequestSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=1000, required=False, allow_blank=True, default="")


class RecordPaymentRequestSerializer(serializers.Serializer):
    amount = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    notes = serializers.CharField(max_length=1000, required=False, allow_blank=True, default="")


class PaymentLinkRequestSerializer(serializers.Serializer):
    regenerate = serializers.BooleanField(required=False, default=False)
    send_email = serializers.BooleanField(required=False, default=True)
