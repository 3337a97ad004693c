"""Tests for the stock authenticators."""

import pytest

from flagspine.core.auth import BearerTokenAuthenticator, StaticHeadersAuthenticator
from flagspine.core.errors import AuthError
from flagspine.core.protocols import Authenticator


class TestStaticHeadersAuthenticator:
    """Tests for fixed headers."""

    def test_no_headers(self):
        """Default is an empty header set."""
        assert StaticHeadersAuthenticator().authenticate() == {}

    def test_returns_copy(self):
        """Callers cannot mutate the stored headers."""
        auth = StaticHeadersAuthenticator({"X-Key": "1"})
        headers = auth.authenticate()
        headers["X-Key"] = "2"
        assert auth.authenticate() == {"X-Key": "1"}

    def test_satisfies_protocol(self):
        """Both stock authenticators satisfy the protocol."""
        assert isinstance(StaticHeadersAuthenticator(), Authenticator)
        assert isinstance(BearerTokenAuthenticator("t"), Authenticator)


class TestBearerTokenAuthenticator:
    """Tests for bearer tokens."""

    def test_fixed_token(self):
        """A string token yields an Authorization header."""
        assert BearerTokenAuthenticator("dapi-123").authenticate() == {
            "Authorization": "Bearer dapi-123"
        }

    def test_token_source_called_each_time(self):
        """A callable token is re-read on every call."""
        tokens = iter(["one", "two"])
        auth = BearerTokenAuthenticator(lambda: next(tokens))
        assert auth.authenticate()["Authorization"] == "Bearer one"
        assert auth.authenticate()["Authorization"] == "Bearer two"

    @pytest.mark.parametrize("token", ["", None])
    def test_empty_token(self, token):
        """Empty tokens are an AuthError."""
        with pytest.raises(AuthError):
            BearerTokenAuthenticator(lambda: token).authenticate()
