"""
Tests for how Stripe errors are translated by ``StripeGateway``.
"""
from unittest import mock

import pytest
import requests
import stripe

from payments.exceptions import GatewayError, GatewayTimeout, GatewayUnavailable, UnknownSession
from payments.gateway import StripeGateway


def _connection_error(transport_error):
    """Raise the way stripe's RequestsClient does: inside the handler for the transport error."""

    def _raise(*args, **kwargs):
        try:
            raise transport_error
        except requests.RequestException:
            raise stripe.APIConnectionError("Unexpected error communicating with Stripe.")

    return _raise


def test_read_timeout_is_a_gateway_timeout(stripe_config):
    failing = _connection_error(requests.ReadTimeout("Read timed out. (read timeout=15)"))
    with mock.patch("stripe.checkout.Session.retrieve", side_effect=failing):
        with pytest.raises(GatewayTimeout) as exc:
            StripeGateway(stripe_config).retrieve_session("cs_live_1")
    assert exc.value.status_code == 504


def test_connection_refused_is_unavailable_not_timeout(stripe_config):
    failing = _connection_error(requests.ConnectionError("Connection refused"))
    with mock.patch("stripe.checkout.Session.retrieve", side_effect=failing):
        with pytest.raises(GatewayUnavailable) as exc:
            StripeGateway(stripe_config).retrieve_session("cs_live_1")
    assert not isinstance(exc.value, GatewayTimeout)
    assert exc.value.status_code == 503


def test_timeout_wording_alone_does_not_make_a_timeout(stripe_config):
    error = stripe.APIConnectionError("Request timed out while talking to Stripe")
    with mock.patch("stripe.checkout.Session.retrieve", side_effect=error):
        with pytest.raises(GatewayUnavailable) as exc:
            StripeGateway(stripe_config).retrieve_session("cs_live_1")
    assert not isinstance(exc.value, GatewayTimeout)


def test_rejections_and_missing_sessions(stripe_config):
    missing = stripe.InvalidRequestError("No such checkout.session: cs_gone", param="id", code="resource_missing")
    with mock.patch("stripe.checkout.Session.retrieve", side_effect=missing):
        with pytest.raises(UnknownSession):
            StripeGateway(stripe_config).retrieve_session("cs_gone")

    denied = stripe.AuthenticationError("Invalid API Key provided")
    with mock.patch("stripe.checkout.Session.retrieve", side_effect=denied):
        with pytest.raises(GatewayError) as exc:
            StripeGateway(stripe_config).retrieve_session("cs_live_1")
    assert not isinstance(exc.value, GatewayUnavailable)
