"""
Activity log app package.

Keeps an audit trail of registration and payment actions so organisers
can see who admitted, paid, refunded or cancelled a registrant and when.
"""
