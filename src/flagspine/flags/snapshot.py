"""
In-memory snapshot store for feature flags.

A snapshot is the complete name → value mapping from one server response.
The store holds exactly one snapshot at a time and swaps it wholesale.

Manifesto:
    Readers must never see a half-built view. Clearing a dict and then
    refilling it opens a window where every flag reads as disabled; a
    concurrent request that happens to land in that window silently takes
    the wrong code path.

    - **Immutable snapshots:** Each snapshot is a read-only mapping
    - **Reference swap:** ``replace()`` is a single attribute assignment
    - **Lock-free reads:** ``read()`` is one dict lookup on the current reference
    - **Single writer:** Only the owning context's refresh thread writes

Architecture:
    ::

        SnapshotStore
        ├── _snapshot: MappingProxyType  ◄── replaced, never mutated
        │
        ├── read(name)        → str | None
        ├── replace(mapping)  → installs a frozen copy
        └── snapshot()        → current mapping (safe to keep)

Examples:
    >>> store = SnapshotStore()
    >>> store.read("enableTelemetry") is None
    True
    >>> store.replace({"enableTelemetry": "true"})
    >>> is_truthy(store.read("enableTelemetry"))
    True

Tags:
    snapshot, cache, immutable, lock-free, flagspine
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from types import MappingProxyType

EMPTY_SNAPSHOT: Mapping[str, str] = MappingProxyType({})


def is_truthy(value: str | None) -> bool:
    """Interpret a raw flag value as a boolean.

    Only ``"true"`` (any case) is enabled. Everything else, including
    None and surrounding whitespace, is disabled.
    """
    return value is not None and value.lower() == "true"


def _freeze(flags: Mapping[str, str] | None) -> Mapping[str, str]:
    if not flags:
        return EMPTY_SNAPSHOT
    return MappingProxyType(dict(flags))


class SnapshotStore:
    """Holds the current flag snapshot for one context."""

    def __init__(self, initial: Mapping[str, str] | None = None) -> None:
        self._snapshot = _freeze(initial)
        self._version = 0 if initial is None else 1

    def read(self, name: str) -> str | None:
        """Raw value of ``name`` in the current snapshot, or None."""
        return self._snapshot.get(name)

    def replace(self, flags: Mapping[str, str]) -> None:
        """Install ``flags`` as the new snapshot, discarding the old one."""
        frozen = _freeze(flags)
        self._snapshot = frozen
        self._version += 1

    def snapshot(self) -> Mapping[str, str]:
        """The current snapshot. Never changes after it is returned."""
        return self._snapshot

    @property
    def version(self) -> int:
        """Number of snapshots installed so far."""
        return self._version

    def __len__(self) -> int:
        return len(self._snapshot)

    def __contains__(self, name: object) -> bool:
        return name in self._snapshot

    def __iter__(self) -> Iterator[str]:
        return iter(self._snapshot)

    def __repr__(self) -> str:
        return f"SnapshotStore(flags={len(self._snapshot)}, version={self._version})"
