"""
URL configuration for the payments app.

Exposes the checkout, payment-link and gateway webhook endpoints.
Include this module under ``/api/`` in the project-level URL config.
"""
from django.urls import path
from .views import (
    CheckoutConfirmView,
    CheckoutSessionView,
    CheckoutView,
    EmbeddedCheckoutView,
    GatewayWebhookView,
    PaymentLinkCheckoutView,
    PaymentLinkView,
)


urlpatterns = [
    path("checkout/", CheckoutView.as_view(), name="checkout"),
    path("checkout/embedded/", EmbeddedCheckoutView.as_view(), name="checkout-embedded"),
    path("checkout/confirm/", CheckoutConfirmView.as_view(), name="checkout-confirm"),
    path("checkout/session/<str:session_id>/", CheckoutSessionView.as_view(), name="checkout-session"),
    path("payment-links/<str:token>/", PaymentLinkView.as_view(), name="payment-link"),
    path("payment-links/<str:token>/checkout/", PaymentLinkCheckoutView.as_view(), name="payment-link-checkout"),
    path("webhooks/gateway/", GatewayWebhookView.as_view(), name="gateway-webhook"),
    path("webhooks/stripe/", GatewayWebhookView.as_view(), name="stripe-webhook"),
]
