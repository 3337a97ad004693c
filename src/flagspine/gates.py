"""
Feature gates backed by remote flags.

Gates combine a local opt-in with the remote flag so that a capability is
only active when both the user and the server allow it.
"""

from __future__ import annotations

from flagspine.core.protocols import Authenticator, ComputeIdentity
from flagspine.flags.registry import FeatureFlagsRegistry

TELEMETRY_FEATURE_FLAG_NAME = (
    "databricks.partnerplatform.clientConfigsFeatureFlags.enableTelemetry"
)


def is_telemetry_allowed(
    registry: FeatureFlagsRegistry,
    identity: ComputeIdentity | None,
    *,
    telemetry_enabled: bool,
    force_enable: bool = False,
    authenticator: Authenticator | None = None,
) -> bool:
    """Decide whether telemetry may be sent for a connection.

    Args:
        registry: Registry holding the shared flag contexts
        identity: Endpoint the connection talks to
        telemetry_enabled: The connection's own telemetry setting
        force_enable: Bypass both checks (diagnostics)
        authenticator: Used if the flag context has to be created

    Returns:
        True when forced, otherwise only if the connection enables telemetry
        and the remote flag is on. The remote flag is not consulted when the
        connection has telemetry disabled.
    """
    if force_enable:
        return True
    if identity is None or not telemetry_enabled:
        return False
    with registry.lease(identity, authenticator) as flags:
        return flags.is_enabled(TELEMETRY_FEATURE_FLAG_NAME)


__all__ = ["TELEMETRY_FEATURE_FLAG_NAME", "is_telemetry_allowed"]
