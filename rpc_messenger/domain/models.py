"""Envelope models using Pydantic for validation.

Field names on the wire are camelCase aliases shared with every other
implementation on the broker; unknown fields are ignored on decode so that
newer peers can add fields without breaking older ones.
"""

import uuid
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Envelope(BaseModel):
    """Base envelope model."""

    model_config = ConfigDict(
        extra="ignore",
        frozen=True,
        populate_by_name=True,
        strict=True,
    )


class RequestEnvelope(Envelope):
    """Request sent by a message channel to a logical channel's handler."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "correlationId": "123e4567-e89b-12d3-a456-426614174000",
                "clientIdentity": "node-client",
                "payload": {"message": "hello"},
            }
        },
    )

    correlation_id: str = Field(
        ...,
        alias="correlationId",
        min_length=1,
        description="Unique token matching the eventual response",
    )
    client_identity: str = Field(
        ...,
        alias="clientIdentity",
        min_length=1,
        description="Identity of the sender, selects the response channel",
    )
    payload: Any | None = Field(default=None, description="Application payload")

    @classmethod
    def new(cls, client_identity: str, payload: Any = None) -> "RequestEnvelope":
        """Build an outbound request with a fresh correlation id."""
        return cls(
            correlation_id=str(uuid.uuid4()), client_identity=client_identity, payload=payload
        )


class ResponseEnvelope(Envelope):
    """Response published by a dispatcher for exactly one request."""

    in_reply_to: str = Field(
        ...,
        alias="inReplyTo",
        min_length=1,
        description="Correlation id of the request being answered",
    )
    success: bool = Field(default=True, description="Whether the handler succeeded")
    error_text: str | None = Field(
        default=None, alias="errorText", description="Error message if failed"
    )
    payload: Any | None = Field(default=None, description="Handler result if successful")

    @model_validator(mode="after")
    def validate_error_consistency(self) -> "ResponseEnvelope":
        """Ensure error text is present iff the request failed."""
        if self.success and self.error_text is not None:
            raise ValueError("errorText must be absent when success is true")
        if not self.success and self.error_text is None:
            raise ValueError("errorText required when success is false")
        return self

    @classmethod
    def ok(cls, in_reply_to: str, payload: Any = None) -> "ResponseEnvelope":
        """Build a successful response."""
        return cls(in_reply_to=in_reply_to, success=True, payload=payload)

    @classmethod
    def failure(cls, in_reply_to: str, error_text: str) -> "ResponseEnvelope":
        """Build an error response; failures never carry a payload."""
        return cls(in_reply_to=in_reply_to, success=False, error_text=error_text)


E = TypeVar("E", bound=Envelope)


@dataclass(frozen=True)
class Decoded(Generic[E]):
    """A well-formed envelope produced by the decode step."""

    envelope: E


@dataclass(frozen=True)
class DecodeFailure:
    """Raw bytes that could not be decoded into the expected envelope."""

    reason: str
    raw: bytes


DecodeResult = Decoded[Any] | DecodeFailure
"""Either a decoded envelope or a decode failure; decoding never raises."""
