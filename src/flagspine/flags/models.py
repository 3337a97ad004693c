"""Wire models for the feature-flag endpoint.

Response shape::

    {
      "flags": [{"name": "enableTelemetry", "value": "true"}, ...],
      "ttl_seconds": 300
    }

``flags`` may be absent (treated as an empty list). ``ttl_seconds`` is only
honoured when it is a positive integer; any other value is dropped without
rejecting the rest of the body. Flag values that are JSON booleans or
numbers are kept as text.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FeatureFlagEntry(BaseModel):
    """One named flag with its raw string value.

    Scalar JSON values are kept as their text form (``true`` -> "true",
    ``1`` -> "1"). Objects, arrays and null are rejected.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    name: str
    value: str

    @field_validator("value", mode="before")
    @classmethod
    def _scalar_as_text(cls, value: Any) -> Any:
        # bool before int: bool is an int subclass
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, int | float):
            return str(value)
        return value


class FeatureFlagsResponse(BaseModel):
    """Decoded body of a successful flag fetch."""

    model_config = ConfigDict(extra="ignore")

    flags: list[FeatureFlagEntry] | None = Field(default=None)
    ttl_seconds: int | None = None

    @field_validator("ttl_seconds", mode="before")
    @classmethod
    def _drop_non_integer_ttl(cls, value: Any) -> Any:
        # bool is an int subclass; "30" and 30.5 are not integers either
        if isinstance(value, bool) or not isinstance(value, int):
            return None
        return value

    @property
    def effective_ttl(self) -> int | None:
        """The TTL to reschedule at, or None to keep the current interval."""
        if self.ttl_seconds is not None and self.ttl_seconds > 0:
            return self.ttl_seconds
        return None

    def to_snapshot(self) -> dict[str, str]:
        """Flatten into a name → value mapping. Later duplicates win."""
        return {flag.name: flag.value for flag in self.flags or []}
