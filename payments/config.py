"""
Payment configuration.

Payment settings are read once from Django settings into an immutable
``PaymentConfig`` and passed explicitly into every payment service, so
the services never reach for module-level globals such as
``stripe.api_key``.  ``get_payment_config`` caches the instance per
process; the cache is cleared whenever a test overrides a setting.
"""
from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from django.conf import settings
from django.core.signals import setting_changed
from django.dispatch import receiver

MODE_TEST = "test"
MODE_PRODUCTION = "production"

_PAYMENT_SETTINGS = {
    "PAYMENT_MODE",
    "STRIPE_SECRET_KEY",
    "STRIPE_PUBLISHABLE_KEY",
    "STRIPE_WEBHOOK_SECRET",
    "STRIPE_TIMEOUT_SECONDS",
    "PAYMENT_CURRENCY",
    "PAYMENT_NOTE_TIME_ZONE",
    "CHECKOUT_DRAFT_TTL_SECONDS",
    "FRONTEND_URL",
}


@dataclass(frozen=True)
class PaymentConfig:
    mode: str = MODE_TEST
    secret_key: str = ""
    publishable_key: str = ""
    webhook_secret: str = ""
    timeout_seconds: float = 15
    currency: str = "usd"
    note_time_zone: str = "UTC"
    draft_ttl_seconds: int = 3600
    frontend_url: str = ""

    @classmethod
    def from_settings(cls) -> "PaymentConfig":
        mode = (getattr(settings, "PAYMENT_MODE", MODE_TEST) or MODE_TEST).lower()
        if mode not in (MODE_TEST, MODE_PRODUCTION):
            raise ValueError(f"PAYMENT_MODE must be '{MODE_TEST}' or '{MODE_PRODUCTION}', got {mode!r}")
        return cls(
            mode=mode,
            secret_key=getattr(settings, "STRIPE_SECRET_KEY", "") or "",
            publishable_key=getattr(settings, "STRIPE_PUBLISHABLE_KEY", "") or "",
            webhook_secret=getattr(settings, "STRIPE_WEBHOOK_SECRET", "") or "",
            timeout_seconds=float(getattr(settings, "STRIPE_TIMEOUT_SECONDS", 15)),
            currency=getattr(settings, "PAYMENT_CURRENCY", "usd"),
            note_time_zone=getattr(settings, "PAYMENT_NOTE_TIME_ZONE", "UTC"),
            draft_ttl_seconds=int(getattr(settings, "CHECKOUT_DRAFT_TTL_SECONDS", 3600)),
            frontend_url=getattr(settings, "FRONTEND_URL", ""),
        )

    @property
    def test_mode(self) -> bool:
        return self.mode == MODE_TEST

    @property
    def gateway_configured(self) -> bool:
        return bool(self.secret_key)


@lru_cache(maxsize=1)
def get_payment_config() -> PaymentConfig:
    return PaymentConfig.from_settings()


@receiver(setting_changed)
def _reset_payment_config(sender, setting, **kwargs):
    if setting in _PAYMENT_SETTINGS:
        get_payment_config.cache_clear()
