from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments app."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"

    def ready(self) -> None:
        import stripe
        from django.conf import settings

        from . import config  # noqa: F401  registers the setting_changed receiver

        # Bounded gateway calls, no automatic retries
        stripe.default_http_client = stripe.RequestsClient(
            timeout=float(getattr(settings, "STRIPE_TIMEOUT_SECONDS", 15))
        )
        stripe.max_network_retries = 0
