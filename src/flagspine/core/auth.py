"""
Stock authenticators.

Both satisfy :class:`flagspine.core.protocols.Authenticator`. Host
applications with their own credential flow (OAuth, SDK config objects)
pass any object with an ``authenticate()`` method instead.

Examples:
    >>> auth = BearerTokenAuthenticator("dapi-123")
    >>> auth.authenticate()
    {'Authorization': 'Bearer dapi-123'}

    Rotating tokens are re-read on every refresh cycle:

    >>> auth = BearerTokenAuthenticator(lambda: token_store.current())
"""

from __future__ import annotations

from collections.abc import Callable, Mapping

from flagspine.core.errors import AuthError


class StaticHeadersAuthenticator:
    """Returns the same headers on every call."""

    def __init__(self, headers: Mapping[str, str] | None = None):
        self._headers = dict(headers or {})

    def authenticate(self) -> dict[str, str]:
        return dict(self._headers)


class BearerTokenAuthenticator:
    """``Authorization: Bearer <token>`` from a fixed token or a token source.

    Args:
        token: Token string, or a zero-argument callable returning the
            current token. The callable is invoked on every authenticate().
    """

    def __init__(self, token: str | Callable[[], str]):
        self._token = token

    def authenticate(self) -> dict[str, str]:
        token = self._token() if callable(self._token) else self._token
        if not token:
            raise AuthError("Token source returned an empty token")
        return {"Authorization": f"Bearer {token}"}


__all__ = ["StaticHeadersAuthenticator", "BearerTokenAuthenticator"]
