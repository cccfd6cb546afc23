"""Message bus data types: events and publish/consume options."""

from __future__ import annotations

import base64
import binascii
import json
import time
from dataclasses import dataclass, field, fields
from typing import Any, Mapping

_HTML_SAFE = str.maketrans(
    {"<": "\\u003c", ">": "\\u003e", "&": "\\u0026", "\u2028": "\\u2028", "\u2029": "\\u2029"}
)


def _encode_json(value: Any) -> str:
    text = json.dumps(value, ensure_ascii=False, separators=(",", ":"), sort_keys=True)
    return text.translate(_HTML_SAFE)


def _non_empty(obj: Any) -> dict[str, Any]:
    return {f.name: getattr(obj, f.name) for f in fields(obj) if getattr(obj, f.name)}


def _string_field(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"field {key!r} must be a string")
    return value


@dataclass
class MessageEvent:
    """An event travelling over the bus.

    ``acknowledger`` and ``tag`` are set on delivery and never serialised.
    """

    action: str = ""
    application: str = ""
    event: str = ""
    metadata: dict[str, Any] | None = None
    payload: bytes | None = None
    timestamp: int = 0
    acknowledger: Any = field(default=None, repr=False, compare=False)
    tag: int = field(default=0, compare=False)

    def to_dict(self) -> dict[str, Any]:
        """Return the wire representation, leaving out empty fields."""
        result = {
            name: getattr(self, name)
            for name in ("action", "application", "event", "metadata", "timestamp")
            if getattr(self, name)
        }
        if self.payload:
            result["payload"] = base64.b64encode(bytes(self.payload)).decode("ascii")
        return result

    def to_json(self) -> str:
        """Return the event as compact JSON."""
        return _encode_json(self.to_dict())

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> MessageEvent:
        """Build an event from its wire representation; unknown keys are ignored."""
        if not isinstance(data, Mapping):
            raise TypeError(f"expected a mapping, got {type(data).__name__}")
        metadata = data.get("metadata")
        if metadata is not None and not isinstance(metadata, Mapping):
            raise ValueError("field 'metadata' must be an object")
        raw_payload = data.get("payload")
        payload = None
        if raw_payload is not None:
            try:
                payload = base64.b64decode(raw_payload, validate=True)
            except (binascii.Error, TypeError) as exc:
                raise ValueError(f"field 'payload' is not valid base64: {exc}") from exc
        timestamp = data.get("timestamp") or 0
        if isinstance(timestamp, bool) or not isinstance(timestamp, int):
            raise ValueError("field 'timestamp' must be an integer")
        return cls(
            action=_string_field(data, "action"),
            application=_string_field(data, "application"),
            event=_string_field(data, "event"),
            metadata=dict(metadata) if metadata is not None else None,
            payload=payload,
            timestamp=timestamp,
        )

    @classmethod
    def from_json(cls, data: str | bytes | bytearray) -> MessageEvent:
        """Parse an event from JSON text or bytes."""
        decoded = json.loads(data)
        if not isinstance(decoded, dict):
            raise ValueError("event JSON must be an object")
        return cls.from_dict(decoded)

    def __str__(self) -> str:
        return self.to_json()


@dataclass(frozen=True)
class BusEventResponse:
    """An empty response marker."""

    def __str__(self) -> str:
        return _encode_json({})


@dataclass
class PublishOptions:
    """Options controlling queue declaration and publishing."""

    args: dict[str, Any] | None = None
    auto_delete: bool = False
    content_type: str = ""
    durable: bool = False
    exclusive: bool = False
    exchange: str = ""
    mandatory: bool = False
    no_wait: bool = False
    immediately: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Return the options with empty values left out."""
        return _non_empty(self)


@dataclass
class ConsumeOptions:
    """Options controlling queue declaration and consumption."""

    args: dict[str, Any] | None = None
    auto_ack: bool = False
    auto_delete: bool = False
    consumer_name: str = ""
    exchange: str = ""
    queue_name: str = ""
    durable: bool = False
    exclusive: bool = False
    no_local: bool = False
    no_wait: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Return the options with empty values left out."""
        return _non_empty(self)


def new_event(application: str, event: str, action: str) -> MessageEvent:
    """Create an event without payload, stamped with the current time in milliseconds."""
    return new_event_with_payload(application, event, action, None)


def new_event_with_payload(
    application: str, event: str, action: str, payload: bytes | None
) -> MessageEvent:
    """Create an event carrying ``payload``, stamped with the current time in milliseconds."""
    return MessageEvent(
        action=action,
        application=application,
        event=event,
        payload=payload,
        timestamp=time.time_ns() // 1_000_000,
    )