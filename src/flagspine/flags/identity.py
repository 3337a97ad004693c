"""Concrete compute-endpoint identity."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ComputeResource:
    """A remote compute endpoint (warehouse, cluster) reachable at ``host``.

    Satisfies :class:`flagspine.core.protocols.ComputeIdentity`. Two
    resources with the same ``unique_id`` share one flag context, whatever
    their host spelling.

    Attributes:
        host: Host name, with or without scheme (``adb-1.example.net``)
        unique_id: Stable identifier of the resource (warehouse/cluster id)
    """

    host: str
    unique_id: str

    def __post_init__(self) -> None:
        if not self.host or not self.host.strip():
            raise ValueError("ComputeResource.host must not be empty")
        if not self.unique_id:
            raise ValueError("ComputeResource.unique_id must not be empty")

    def __str__(self) -> str:
        return f"{self.unique_id}@{self.host}"
