"""
Shared pytest fixtures and configuration for flagspine tests.

This module provides:
- FakeFlagServer, an in-process stand-in for the flag endpoint (httpx.MockTransport)
- Fast settings so background refresh can be observed in milliseconds
- Context/registry factories that always shut down what they start

Usage:
    def test_something(server, make_context):
        server.set_flags({"a": "true"}, ttl=30)
        ctx = make_context()
        assert ctx.is_enabled("a")
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Iterator
from typing import Any

import httpx
import pytest

from flagspine.core.settings import FlagSpineSettings
from flagspine.flags.context import FeatureFlagsContext
from flagspine.flags.identity import ComputeResource
from flagspine.flags.registry import FeatureFlagsRegistry


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Mark all tests without explicit markers as unit tests."""
    for item in items:
        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "slow"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Fake flag endpoint
# =============================================================================


class FakeFlagServer:
    """Serves the feature-flag resource through httpx.MockTransport.

    Every attribute can be changed between cycles; the next request sees it.
    """

    def __init__(self) -> None:
        self.status_code = 200
        self.payload: dict[str, Any] | None = {"flags": []}
        self.payload_by_host: dict[str, dict[str, Any]] = {}
        self.body: bytes | None = None
        self.error: Exception | None = None
        self.delay = 0.0
        self.requests: list[httpx.Request] = []
        self._lock = threading.Lock()

    def set_flags(self, flags: dict[str, str], ttl: Any = None, host: str | None = None) -> None:
        payload: dict[str, Any] = {
            "flags": [{"name": name, "value": value} for name, value in flags.items()]
        }
        if ttl is not None:
            payload["ttl_seconds"] = ttl
        if host is None:
            self.payload = payload
        else:
            self.payload_by_host[host] = payload

    def handler(self, request: httpx.Request) -> httpx.Response:
        with self._lock:
            self.requests.append(request)
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if self.body is not None:
            return httpx.Response(self.status_code, content=self.body)
        payload = self.payload_by_host.get(request.url.host, self.payload)
        return httpx.Response(self.status_code, json=payload)

    @property
    def call_count(self) -> int:
        with self._lock:
            return len(self.requests)

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler))


def wait_for(predicate: Callable[[], bool], timeout: float = 2.0, interval: float = 0.01) -> bool:
    """Poll ``predicate`` until it is true or ``timeout`` elapses."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture
def wait() -> Callable[..., bool]:
    return wait_for


@pytest.fixture
def server() -> FakeFlagServer:
    return FakeFlagServer()


@pytest.fixture
def client(server: FakeFlagServer) -> Iterator[httpx.Client]:
    c = server.client()
    yield c
    c.close()


@pytest.fixture
def identity() -> ComputeResource:
    return ComputeResource(host="adb-1234.example.net", unique_id="warehouse-abc")


@pytest.fixture
def settings() -> FlagSpineSettings:
    """Default cadence, short shutdown grace, no .env lookup."""
    return FlagSpineSettings(
        _env_file=None,
        shutdown_grace_seconds=1.0,
        product_version="1.2.3",
    )


@pytest.fixture
def fast_settings() -> FlagSpineSettings:
    """Background refresh every 50ms."""
    return FlagSpineSettings(
        _env_file=None,
        default_refresh_interval_seconds=0.05,
        shutdown_grace_seconds=1.0,
        product_version="1.2.3",
    )


@pytest.fixture
def make_context(
    identity: ComputeResource, client: httpx.Client, settings: FlagSpineSettings
) -> Iterator[Callable[..., FeatureFlagsContext]]:
    """Build contexts against the fake server; all are shut down afterwards."""
    created: list[FeatureFlagsContext] = []

    def _make(**kwargs: Any) -> FeatureFlagsContext:
        kwargs.setdefault("settings", settings)
        kwargs.setdefault("client", client)
        ctx = FeatureFlagsContext(kwargs.pop("identity", identity), kwargs.pop("authenticator", None), **kwargs)
        created.append(ctx)
        return ctx

    yield _make
    for ctx in created:
        ctx.shutdown()


@pytest.fixture
def registry(
    client: httpx.Client, settings: FlagSpineSettings
) -> Iterator[FeatureFlagsRegistry]:
    """Registry whose contexts talk to the fake server."""
    reg = FeatureFlagsRegistry(
        settings=settings,
        context_factory=lambda ident, auth: FeatureFlagsContext(
            ident, auth, settings=settings, client=client
        ),
    )
    yield reg
    reg.close()
