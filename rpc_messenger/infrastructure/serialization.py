"""Envelope serialization utilities for JSON and MessagePack."""

import json
from typing import TypeVar

import msgpack
from pydantic import BaseModel

from ..domain.exceptions import SerializationError
from ..domain.models import Decoded, DecodeFailure, DecodeResult, Envelope

T = TypeVar("T", bound=BaseModel)


def serialize_to_json(obj: BaseModel) -> bytes:
    """Serialize an envelope to JSON bytes using its wire field names."""
    try:
        return obj.model_dump_json(by_alias=True, exclude_none=True).encode()
    except Exception as e:
        raise SerializationError(f"Failed to serialize to JSON: {e}") from e


def deserialize_from_json(data: bytes, model_class: type[T]) -> T:
    """Deserialize JSON bytes to a Pydantic model."""
    try:
        json_str = data.decode() if isinstance(data, bytes) else data
        if not json_str or json_str.isspace():
            raise SerializationError("Empty or whitespace-only JSON data")
        decoded = json.loads(json_str)
        if not isinstance(decoded, dict):
            raise SerializationError(f"Expected a JSON object, got {type(decoded).__name__}")
        return model_class.model_validate(decoded)
    except SerializationError:
        raise
    except json.JSONDecodeError as e:
        raise SerializationError(f"Invalid JSON format: {e}") from e
    except Exception as e:
        raise SerializationError(f"Failed to deserialize from JSON: {e}") from e


def serialize_to_msgpack(obj: BaseModel) -> bytes:
    """Serialize an envelope to MessagePack bytes using its wire field names."""
    try:
        data = obj.model_dump(mode="json", by_alias=True, exclude_none=True)
        return bytes(msgpack.packb(data, use_bin_type=True))
    except Exception as e:
        raise SerializationError(f"Failed to serialize to msgpack: {e}") from e


def deserialize_from_msgpack(data: bytes, model_class: type[T]) -> T:
    """Deserialize MessagePack bytes to a Pydantic model."""
    try:
        unpacked = msgpack.unpackb(data, raw=False)
        if not isinstance(unpacked, dict):
            raise SerializationError(f"Expected a map, got {type(unpacked).__name__}")
        return model_class.model_validate(unpacked)
    except SerializationError:
        raise
    except Exception as e:
        raise SerializationError(f"Failed to deserialize from msgpack: {e}") from e


def is_msgpack(data: bytes) -> bool:
    """Check if data looks like MessagePack format."""
    if not data:
        return False

    # 0x80-0x8f fixmap, 0x90-0x9f fixarray, 0xc0-0xdf nil/bool/bin/ext/map16/map32.
    # JSON objects start with '{' (0x7b) or whitespace, outside these ranges.
    first_byte = data[0]
    return (
        0x80 <= first_byte <= 0x8F
        or 0x90 <= first_byte <= 0x9F
        or 0xC0 <= first_byte <= 0xDF
    )


def detect_and_deserialize(data: bytes, model_class: type[T]) -> T:
    """Automatically detect format and deserialize."""
    if not data:
        raise SerializationError("Empty data received")

    if is_msgpack(data):
        return deserialize_from_msgpack(data, model_class)
    else:
        return deserialize_from_json(data, model_class)


def decode_envelope(data: bytes, envelope_type: type[Envelope]) -> DecodeResult:
    """Decode raw bytes into a well-formed envelope or a decode failure.

    This is the single validation point for inbound envelopes; it never
    raises.
    """
    try:
        return Decoded(detect_and_deserialize(data, envelope_type))
    except SerializationError as e:
        return DecodeFailure(reason=e.message, raw=bytes(data or b""))
