"""
Registrants app package.

A registrant is a golfer entered into a tournament.  This app owns the
registrant record, the capacity-gated admission path, the admin
operations that change a registration outside of the payment flow, and
the post-commit notifications (emails via Celery, live updates via
Channels) that follow every state change.
"""
