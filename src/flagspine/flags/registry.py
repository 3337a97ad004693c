"""
Reference-counted registry of feature flag contexts.

Many connections to the same compute endpoint share one flag context and
therefore one refresh thread. The registry hands out that shared context
and tears it down when the last holder releases it.

Manifesto:
    Shared background resources need a deterministic owner. Leaving
    teardown to garbage collection means refresh threads outlive the
    connections that wanted them, or die while someone still reads.

    - **Explicit object:** Constructed and owned by the host application
    - **One context per identity:** Concurrent first acquires build exactly one
    - **Explicit counts:** Teardown runs exactly once, at count zero
    - **Forgiving release:** Unknown or repeated releases are no-ops

Architecture:
    ::

        acquire(identity)
          │  with _lock:
          │     entry missing  → insert _RegistryEntry(ref_count=1), we build
          │     entry present  → ref_count += 1, we wait for it
          ▼
        build FeatureFlagsContext outside the lock (priming request)
          │  entry.resolve(context)  → wakes every waiter
          ▼
        return the shared context

        release(identity)
          │  with _lock:
          │     ref_count -= 1; at 0 remove entry
          ▼
        context.shutdown() outside the lock

    The lock is never held across network calls or thread joins, so one
    slow endpoint does not stall acquires for other identities.

Examples:
    >>> registry = FeatureFlagsRegistry()
    >>> with registry.lease(resource, auth) as flags:
    ...     if flags.is_enabled("enableArrowResults"):
    ...         ...
    >>> registry.close()

Tags:
    registry, reference-counting, lifecycle, concurrency, flagspine
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager

from flagspine.core.logging import get_logger
from flagspine.core.protocols import Authenticator, ComputeIdentity
from flagspine.core.settings import FlagSpineSettings, get_settings

from .context import FeatureFlagsContext

logger = get_logger(__name__)

ContextFactory = Callable[[ComputeIdentity, Authenticator | None], FeatureFlagsContext]


class _RegistryEntry:
    """A context (possibly still under construction) plus its count."""

    __slots__ = ("ref_count", "context", "error", "_ready")

    def __init__(self, ref_count: int = 1) -> None:
        self.ref_count = ref_count
        self.context: FeatureFlagsContext | None = None
        self.error: BaseException | None = None
        self._ready = threading.Event()

    def resolve(self, context: FeatureFlagsContext) -> None:
        self.context = context
        self._ready.set()

    def fail(self, error: BaseException) -> None:
        self.error = error
        self._ready.set()

    def wait(self) -> FeatureFlagsContext:
        self._ready.wait()
        if self.error is not None:
            raise self.error
        assert self.context is not None
        return self.context


class FeatureFlagsRegistry:
    """Directory of shared flag contexts keyed by ``identity.unique_id``.

    Args:
        settings: Passed to every context built by the default factory
        context_factory: Builds a context for ``(identity, authenticator)``.
            Defaults to :class:`FeatureFlagsContext`.
    """

    def __init__(
        self,
        *,
        settings: FlagSpineSettings | None = None,
        context_factory: ContextFactory | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._factory = context_factory or self._default_factory
        self._entries: dict[str, _RegistryEntry] = {}
        self._lock = threading.Lock()

    def _default_factory(
        self, identity: ComputeIdentity, authenticator: Authenticator | None
    ) -> FeatureFlagsContext:
        return FeatureFlagsContext(identity, authenticator, settings=self._settings)

    def acquire(
        self, identity: ComputeIdentity, authenticator: Authenticator | None = None
    ) -> FeatureFlagsContext:
        """Get the shared context for ``identity``, creating it if needed.

        The first caller for an identity blocks for the priming request;
        concurrent callers for the same identity wait for that one build.
        ``authenticator`` is only used when this call creates the context.
        """
        key = identity.unique_id
        with self._lock:
            entry = self._entries.get(key)
            creator = entry is None
            if entry is None:
                entry = _RegistryEntry()
                self._entries[key] = entry
            else:
                entry.ref_count += 1

        if not creator:
            return entry.wait()

        try:
            context = self._factory(identity, authenticator)
        except BaseException as e:
            with self._lock:
                if self._entries.get(key) is entry:
                    del self._entries[key]
            entry.fail(e)
            raise

        entry.resolve(context)
        logger.debug("feature_flags_context_created", identity=key)
        return context

    def release(self, identity: ComputeIdentity | None) -> bool:
        """Drop one reference to ``identity``'s context.

        Returns:
            True if this call shut the context down.
        """
        if identity is None:
            return False
        key = identity.unique_id
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                logger.debug("feature_flags_release_unknown", identity=key)
                return False
            entry.ref_count -= 1
            if entry.ref_count > 0:
                return False
            del self._entries[key]

        try:
            context = entry.wait()
        except Exception as e:
            logger.debug("feature_flags_release_failed_build", identity=key, error=str(e))
            return False
        context.shutdown()
        logger.debug("feature_flags_context_released", identity=key)
        return True

    @contextmanager
    def lease(
        self, identity: ComputeIdentity, authenticator: Authenticator | None = None
    ) -> Iterator[FeatureFlagsContext]:
        """``acquire`` on entry, ``release`` on exit."""
        context = self.acquire(identity, authenticator)
        try:
            yield context
        finally:
            self.release(identity)

    def install_for_testing(
        self,
        identity: ComputeIdentity,
        flags: Mapping[str, str],
        authenticator: Authenticator | None = None,
    ) -> FeatureFlagsContext:
        """Install a context preloaded with ``flags`` (no priming request).

        Replaces any existing entry for the identity with a fresh one at
        reference count 1; a replaced context is shut down.
        """
        context = FeatureFlagsContext(
            identity, authenticator, settings=self._settings, initial_flags=flags
        )
        entry = _RegistryEntry()
        entry.resolve(context)
        with self._lock:
            previous = self._entries.get(identity.unique_id)
            self._entries[identity.unique_id] = entry

        if previous is not None and previous.context is not None:
            previous.context.shutdown()
        return context

    def ref_count(self, identity: ComputeIdentity) -> int:
        """Current reference count for ``identity`` (0 if absent)."""
        with self._lock:
            entry = self._entries.get(identity.unique_id)
            return entry.ref_count if entry is not None else 0

    def close(self) -> None:
        """Shut down every live context and empty the registry."""
        with self._lock:
            entries = list(self._entries.items())
            self._entries.clear()

        for key, entry in entries:
            try:
                context = entry.wait()
            except Exception:
                # Build failed; the acquiring caller already got the error
                continue
            context.shutdown()
            logger.debug("feature_flags_context_closed", identity=key)

    def __enter__(self) -> FeatureFlagsRegistry:
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, identity: object) -> bool:
        key = getattr(identity, "unique_id", None)
        with self._lock:
            return key in self._entries
