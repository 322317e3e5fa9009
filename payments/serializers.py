"""
Serializers for the payments app.

Request bodies for the checkout endpoints are validated here.  The
registration fields of an embedded checkout reuse the registrants app's
admission serializer so a draft is validated exactly like a direct
registration.  Heavy lifting happens in the payment services.
"""
from __future__ import annotations

from rest_framework import serializers

from registrants.serializers import RegistrationRequestSerializer


class CheckoutRequestSerializer(serializers.Serializer):
    """Start a checkout for an existing registrant."""

    registrant_id = serializers.IntegerField()


class EmbeddedCheckoutRequestSerializer(RegistrationRequestSerializer):
    """Start an embedded checkout for a registration that does not exist yet."""


class ConfirmRequestSerializer(serializers.Serializer):
    session_id = serializers.CharField(max_length=255)

    def validate_session_id(self, value: str) -> str:
        value = value.strip()
        if not value:
            raise serializers.ValidationError("session_id is required.")
        return value


class SessionStatusSerializer(serializers.Serializer):
    """What the frontend may see about a checkout session."""

    session_id = serializers.CharField()
    paid = serializers.BooleanField()
    status = serializers.CharField()
    payment_status = serializers.CharField()
    amount_total = serializers.IntegerField(allow_null=True)


class SessionHandleSerializer(serializers.Serializer):
    session_id = serializers.CharField()
    checkout_url = serializers.CharField(source="url", allow_null=True)
    client_secret = serializers.CharField(allow_null=True)
    amount = serializers.IntegerField()
    test_mode = serializers.BooleanField()
    publishable_key = serializers.CharField(allow_blank=True)
