"""Configuration objects for the messenger following DDD principles."""

from __future__ import annotations

import os
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..domain.value_objects import ClientIdentity

TransportKind = Literal["nats", "redis", "memory"]


class MessengerConfig(BaseModel):
    """Strongly-typed configuration consumed by the messenger core.

    ``transport_options`` is opaque to the core and handed to the
    transport adapter unchanged (``nats.connect`` keyword arguments for
    NATS, ``redis.asyncio.Redis`` keyword arguments for Redis).
    """

    model_config = ConfigDict(
        extra="forbid",
        str_strip_whitespace=True,
        validate_assignment=True,
    )

    client_identity: str = Field(
        ...,
        min_length=1,
        description="Stable identity selecting this client's response channels",
    )
    channel_prefix: str | None = Field(
        default=None,
        description="Namespace prefix shared by all channels of one deployment",
    )
    default_timeout_ms: int = Field(
        default=5000,
        gt=0,
        description="Default query timeout in milliseconds",
    )
    transport: TransportKind = Field(
        default="nats",
        description="Which transport adapter to build",
    )
    transport_options: dict[str, Any] = Field(
        default_factory=dict,
        description="Options passed through to the transport adapter",
    )
    use_msgpack: bool = Field(
        default=False,
        description="Encode envelopes as MessagePack instead of JSON text",
    )

    @field_validator("client_identity")
    @classmethod
    def validate_client_identity(cls, v: str) -> str:
        """Validate client identity through its value object."""
        return str(ClientIdentity(value=v))

    @field_validator("channel_prefix")
    @classmethod
    def validate_channel_prefix(cls, v: str | None) -> str | None:
        """Normalize an empty prefix to None."""
        if v is None or not v:
            return None
        if any(c.isspace() for c in v):
            raise ValueError(f"Invalid channel prefix: {v!r}. Must not contain whitespace")
        return v

    @property
    def default_timeout(self) -> float:
        """Default query timeout in seconds."""
        return self.default_timeout_ms / 1000

    @classmethod
    def from_env(cls, **overrides: Any) -> MessengerConfig:
        """Build configuration from MESSENGER_* environment variables.

        Keyword overrides take precedence over the environment.
        """
        values: dict[str, Any] = {}

        if identity := os.getenv("MESSENGER_CLIENT_IDENTITY"):
            values["client_identity"] = identity
        if prefix := os.getenv("MESSENGER_CHANNEL_PREFIX"):
            values["channel_prefix"] = prefix
        if timeout := os.getenv("MESSENGER_DEFAULT_TIMEOUT_MS"):
            try:
                values["default_timeout_ms"] = int(timeout)
            except ValueError as e:
                raise ValueError(
                    f"MESSENGER_DEFAULT_TIMEOUT_MS must be an integer, got {timeout!r}"
                ) from e
        if transport := os.getenv("MESSENGER_TRANSPORT"):
            values["transport"] = transport.lower()

        options: dict[str, Any] = {}
        if servers := os.getenv("MESSENGER_SERVERS"):
            options["servers"] = [s.strip() for s in servers.split(",") if s.strip()]
        if redis_url := os.getenv("MESSENGER_REDIS_URL"):
            options["url"] = redis_url
        if options:
            values["transport_options"] = options

        values.update(overrides)
        return cls(**values)


class LogContext(BaseModel):
    """Correlation metadata attached to messenger log records.

    Components build one base context and bind per-message fields onto
    copies of it; ``to_dict()`` is splatted into logger keyword context.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    client_identity: str | None = Field(default=None, description="Local client identity")
    channel_name: str | None = Field(default=None, description="Logical channel name")
    channel: str | None = Field(default=None, description="Broker channel name")
    correlation_id: str | None = Field(default=None, description="Request correlation id")
    component: str | None = Field(default=None, description="Component emitting the record")
    error_type: str | None = Field(default=None, description="Qualified exception type")
    duration_ms: float | None = Field(default=None, ge=0, description="Duration in ms")

    def to_dict(self) -> dict[str, Any]:
        """Set fields only, ready for ``logger.info(msg, **ctx.to_dict())``."""
        return self.model_dump(exclude_none=True)

    def bind(self, **fields: Any) -> LogContext:
        """Copy with fields added or replaced."""
        return self.model_copy(update=fields)

    def with_error(self, error: BaseException) -> LogContext:
        """Copy carrying the qualified type of ``error``."""
        error_type = f"{type(error).__module__}.{type(error).__qualname__}"
        return self.bind(error_type=error_type)
