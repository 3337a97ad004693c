"""Remote feature flags: snapshot store, refresh engine, context, registry."""

from __future__ import annotations

from .context import ContextState, FeatureFlagsContext
from .identity import ComputeResource
from .models import FeatureFlagEntry, FeatureFlagsResponse
from .refresh import (
    FEATURE_FLAGS_PATH,
    RefreshEngine,
    RefreshPolicy,
    RefreshResult,
    build_feature_flags_url,
)
from .registry import FeatureFlagsRegistry
from .snapshot import EMPTY_SNAPSHOT, SnapshotStore, is_truthy

__all__ = [
    "ComputeResource",
    "ContextState",
    "EMPTY_SNAPSHOT",
    "FEATURE_FLAGS_PATH",
    "FeatureFlagEntry",
    "FeatureFlagsContext",
    "FeatureFlagsRegistry",
    "FeatureFlagsResponse",
    "RefreshEngine",
    "RefreshPolicy",
    "RefreshResult",
    "SnapshotStore",
    "build_feature_flags_url",
    "is_truthy",
]
