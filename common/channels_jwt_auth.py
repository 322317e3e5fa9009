"""
JWT authentication middleware for Django Channels.

The admin dashboard subscribes to live registrant updates over a
WebSocket.  Browsers cannot set an ``Authorization`` header on the
handshake, so the token may also arrive as a ``token`` query parameter.
The token is validated with SimpleJWT and ``scope['user']`` is set to the
matching user, or to ``AnonymousUser`` when validation fails.
"""
import logging
import urllib.parse
from typing import Callable

from channels.auth import AuthMiddlewareStack
from channels.db import database_sync_to_async
from channels.middleware import BaseMiddleware
from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from django.db import close_old_connections
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError
from rest_framework_simplejwt.tokens import AccessToken

logger = logging.getLogger(__name__)

User = get_user_model()


@database_sync_to_async
def get_user_from_token(raw_token: str):
    """Return the active user named by an access token, or ``None``."""
    try:
        token = AccessToken(raw_token)
    except (InvalidToken, TokenError) as exc:
        logger.info("Rejected websocket token: %s", exc)
        return None

    user_id = token.get("user_id")
    if not user_id:
        return None
    return User.objects.filter(pk=user_id, is_active=True).first()


def _token_from_scope(scope) -> str | None:
    headers = dict(scope.get("headers", []))
    auth_header = headers.get(b"authorization", b"").decode()
    if auth_header.lower().startswith("bearer "):
        return auth_header.split(" ", 1)[1].strip()

    qs = scope.get("query_string", b"").decode()
    params = urllib.parse.parse_qs(qs)
    return params.get("token", [None])[0]


class _JWTMiddleware(BaseMiddleware):
    """Populate ``scope['user']`` from a bearer token before routing."""

    async def __call__(self, scope, receive, send):
        scope["user"] = AnonymousUser()

        token = _token_from_scope(scope)
        if token:
            user = await get_user_from_token(token)
            if user:
                scope["user"] = user

        close_old_connections()
        return await super().__call__(scope, receive, send)


def JWTAuthMiddlewareStack(inner: Callable):
    """Entry point for the middleware stack used by Channels routing."""
    return _JWTMiddleware(AuthMiddlewareStack(inner))
