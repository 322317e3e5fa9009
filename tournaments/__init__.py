"""
Tournaments app package.

Holds tournament configuration (status, registration window, pricing,
capacity) and the tee-time groups registrants are slotted into.  The
capacity arithmetic lives in :mod:`tournaments.capacity` and is kept
free of database access.
"""
