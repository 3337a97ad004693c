"""
Collaborator protocols for flagspine.

The flag cache talks to the outside world through two small contracts:
an identity that says *which* endpoint to call and *how to key* the shared
cache, and an authenticator that says *which headers* to send. Anything
matching the shape works; no inheritance is required.

Architecture:
    ::

        protocols.py
        ├── ComputeIdentity  — stable unique key + reachable host name
        └── Authenticator    — request headers, re-derived on every call

    Consumers:
        flags/refresh.py, flags/context.py, flags/registry.py, gates.py

Guardrails:
    ❌ DON'T: Cache headers from Authenticator.authenticate() across cycles
    ✅ DO: Call it once per request, tokens rotate

    ❌ DON'T: Key the registry on the host name
    ✅ DO: Key on ``unique_id``; several resources can share a host

Tags:
    protocol, identity, authentication, flagspine, contracts
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol, runtime_checkable


@runtime_checkable
class ComputeIdentity(Protocol):
    """Identity of a remote compute endpoint.

    ``unique_id`` is the sharing key for the registry; ``host`` is the
    name the refresh engine connects to.
    """

    @property
    def unique_id(self) -> str: ...

    @property
    def host(self) -> str: ...


@runtime_checkable
class Authenticator(Protocol):
    """Produces the headers that authenticate one request."""

    def authenticate(self) -> Mapping[str, str]: ...


__all__ = ["ComputeIdentity", "Authenticator"]
