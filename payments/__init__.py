"""
Payments app package for the tournament registration backend.

This package takes registrants from unpaid to paid (and on to refunded)
against Stripe, or against a simulated gateway in test mode.  It
provides the checkout session manager, the payment confirmation
reconciler shared by the browser redirect and the Stripe webhook, the
webhook ingestion gate, and the refund processor.  See payments/views.py
for the API endpoints.
"""
