"""Domain value objects following Domain-Driven Design principles.

These value objects wrap the identifiers that channel names are derived
from, so that a malformed name is rejected before it reaches the broker.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _reject_whitespace(v: str, label: str) -> str:
    if not v.strip():
        raise ValueError(f"{label} cannot be empty or whitespace")
    if any(c.isspace() or ord(c) < 32 for c in v):
        raise ValueError(f"{label} cannot contain whitespace or control characters")
    return v


class ChannelName(BaseModel):
    """Value object representing a logical channel name.

    Logical channel names may not contain ':' because the derived broker
    channel names use it as the direction separator; allowing it would let
    two different (channel, client) pairs map onto one broker channel.
    """

    model_config = ConfigDict(frozen=True, strict=True)

    value: str = Field(..., min_length=1, max_length=256, description="The logical channel name")

    @field_validator("value")
    @classmethod
    def validate_channel_name(cls, v: str) -> str:
        """Validate logical channel name format."""
        v = _reject_whitespace(v, "Channel name")
        if ":" in v:
            raise ValueError(f"Invalid channel name '{v}'. ':' is reserved as a separator")
        return v

    def __str__(self) -> str:
        """String representation returns the value."""
        return self.value

    def __eq__(self, other: Any) -> bool:
        """Equality comparison."""
        if isinstance(other, ChannelName):
            return self.value == other.value
        if isinstance(other, str):
            return self.value == other
        return False

    def __hash__(self) -> int:
        """Make hashable for use in sets and dicts."""
        return hash(self.value)


class ClientIdentity(BaseModel):
    """Value object representing a stable client identity.

    The identity selects the private response channel of a participant.
    """

    model_config = ConfigDict(frozen=True, strict=True)

    value: str = Field(..., min_length=1, max_length=128, description="The client identity")

    @field_validator("value")
    @classmethod
    def validate_client_identity(cls, v: str) -> str:
        """Validate client identity format."""
        return _reject_whitespace(v, "Client identity")

    def __str__(self) -> str:
        """String representation returns the value."""
        return self.value

    def __eq__(self, other: Any) -> bool:
        """Equality comparison."""
        if isinstance(other, ClientIdentity):
            return self.value == other.value
        if isinstance(other, str):
            return self.value == other
        return False

    def __hash__(self) -> int:
        """Make hashable for use in sets and dicts."""
        return hash(self.value)
