"""flagspine core -- errors, logging, settings, and collaborator protocols.

Architecture::

    errors.py      Structured error hierarchy (FlagSpineError and subclasses)
    logging.py     Structured logging (structlog)
    settings.py    FlagSpineSettings (pydantic-settings)
    protocols.py   ComputeIdentity, Authenticator
    auth.py        Stock authenticators (static headers, bearer token)
"""

from __future__ import annotations

from .auth import BearerTokenAuthenticator, StaticHeadersAuthenticator
from .errors import (
    AuthError,
    ConfigError,
    ErrorCategory,
    ErrorContext,
    FlagSpineError,
    NetworkError,
    ParseError,
    SourceError,
)
from .logging import LogContext, configure_logging, get_logger
from .protocols import Authenticator, ComputeIdentity
from .settings import FlagSpineSettings, get_settings

__all__ = [
    "AuthError",
    "Authenticator",
    "BearerTokenAuthenticator",
    "ComputeIdentity",
    "ConfigError",
    "ErrorCategory",
    "ErrorContext",
    "FlagSpineError",
    "FlagSpineSettings",
    "LogContext",
    "NetworkError",
    "ParseError",
    "SourceError",
    "StaticHeadersAuthenticator",
    "configure_logging",
    "get_logger",
    "get_settings",
]
