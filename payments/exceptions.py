"""
Error taxonomy for admission, checkout, reconciliation and refunds.

Every error carries the HTTP status the API layer should use and a
stable machine-readable ``code``.  ``AlreadyPaid`` and ``AlreadyRefunded``
are idempotency guards rather than failures: callers may treat them as
success-adjacent.  A payment that has not completed yet is not an error
at all; the reconciler reports it as a ``pending`` outcome.
"""
from __future__ import annotations


class DomainError(Exception):
    status_code = 422
    code = "domain_error"
    default_message = "The request could not be processed."

    def __init__(self, message: str | None = None, **extra):
        self.message = message or self.default_message
        self.extra = extra
        super().__init__(self.message)

    def as_dict(self) -> dict:
        return {"error": self.message, "code": self.code, **self.extra}


class ValidationFailed(DomainError):
    code = "validation_failed"
    default_message = "Registration details are invalid."

    def __init__(self, message: str | None = None, errors=None, **extra):
        if errors is not None:
            extra["errors"] = errors
        super().__init__(message, **extra)


class RegistrationClosed(DomainError):
    code = "registration_closed"
    default_message = "Registration is currently closed."


class CapacityExceeded(DomainError):
    code = "capacity_exceeded"
    default_message = "The tournament is at capacity."


class AlreadyPaid(DomainError):
    code = "already_paid"
    default_message = "This registration has already been paid."


class AlreadyRefunded(DomainError):
    code = "already_refunded"
    default_message = "This registration has already been refunded."


class AlreadyCancelled(DomainError):
    code = "already_cancelled"
    default_message = "This registration is already cancelled."


class NotRefundable(DomainError):
    code = "not_refundable"
    default_message = "This registration cannot be refunded."


class NotCancellable(DomainError):
    code = "not_cancellable"
    default_message = "This registration cannot be cancelled."


class UnknownSession(DomainError):
    status_code = 404
    code = "unknown_session"
    default_message = "No registration is associated with this checkout session."


class SignatureInvalid(DomainError):
    status_code = 400
    code = "signature_invalid"
    default_message = "Webhook signature verification failed."


class GatewayError(DomainError):
    """The payment gateway rejected a request.  Nothing local was written."""

    code = "gateway_error"
    default_message = "Payment processing error."


class GatewayUnavailable(GatewayError):
    """Gateway unreachable or not configured.  Safe to retry later."""

    status_code = 503
    code = "gateway_unavailable"
    default_message = "Payment processing is not configured. Please contact the administrator."


class GatewayTimeout(GatewayUnavailable):
    status_code = 504
    code = "gateway_timeout"
    default_message = "The payment gateway did not respond in time."
