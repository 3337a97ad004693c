"""
flagspine - Shared, TTL-driven remote feature flag cache.

One background-refreshed flag view per compute endpoint, shared by every
caller through a reference-counted registry.

    >>> from flagspine import ComputeResource, FeatureFlagsRegistry
    >>> registry = FeatureFlagsRegistry()
    >>> flags = registry.acquire(ComputeResource("adb-1.example.net", "wh-1"))
    >>> flags.is_enabled("enableArrowResults")
    False
    >>> registry.release(ComputeResource("adb-1.example.net", "wh-1"))
    True
"""

__version__ = "0.1.0"

from flagspine.core import (  # noqa: E402
    BearerTokenAuthenticator,
    FlagSpineSettings,
    StaticHeadersAuthenticator,
    configure_logging,
)
from flagspine.flags import (  # noqa: E402
    ComputeResource,
    ContextState,
    FeatureFlagsContext,
    FeatureFlagsRegistry,
)
from flagspine.gates import TELEMETRY_FEATURE_FLAG_NAME, is_telemetry_allowed  # noqa: E402

__all__ = [
    "__version__",
    "BearerTokenAuthenticator",
    "ComputeResource",
    "ContextState",
    "FeatureFlagsContext",
    "FeatureFlagsRegistry",
    "FlagSpineSettings",
    "StaticHeadersAuthenticator",
    "TELEMETRY_FEATURE_FLAG_NAME",
    "configure_logging",
    "is_telemetry_allowed",
]
