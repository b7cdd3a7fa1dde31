"""Core entities for the LoRa adapter."""

import base64
import binascii
import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Union

from .errors import MalformedIdentityError, MalformedMessageError


# Wire contract with internal bus consumers
PROTOCOL = "lora"
CONTENT_TYPE = "application/json"


@dataclass(frozen=True)
class StructuredPayload:
    """Payload already decoded by the LoRa network server's codec."""

    object: Any

    def to_bytes(self) -> bytes:
        """Re-serialize the decoded object as a compact JSON document.

        Raises:
            MalformedMessageError: If the object is not JSON serializable
        """
        try:
            return json.dumps(
                self.object, separators=(",", ":"), allow_nan=False
            ).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise MalformedMessageError(
                f"cannot serialize decoded object: {e}"
            ) from e


@dataclass(frozen=True)
class RawPayload:
    """Raw radio payload, base64 encoded as received from the network server."""

    data: str = ""

    def to_bytes(self) -> bytes:
        """Decode the base64 data.

        Raises:
            MalformedMessageError: If data is not valid base64
        """
        try:
            return base64.b64decode(self.data, validate=True)
        except (binascii.Error, ValueError) as e:
            raise MalformedMessageError(f"invalid base64 data: {e}") from e


# A present decoded object always wins over the raw data
UplinkPayload = Union[StructuredPayload, RawPayload]


def _require_identity(document: Dict[str, Any], field_name: str) -> str:
    value = document.get(field_name)
    if not isinstance(value, str) or not value.strip():
        raise MalformedIdentityError(f"missing or invalid '{field_name}'")
    return value


@dataclass(frozen=True)
class InboundMessage:
    """One uplink message received from the LoRa network server."""

    device_eui: str
    application_id: str
    payload: UplinkPayload = field(default_factory=RawPayload)

    @classmethod
    def from_dict(cls, document: Dict[str, Any]) -> "InboundMessage":
        """Build a message from the network server's uplink document.

        Args:
            document: Uplink with devEUI, applicationID, data and object keys

        Returns:
            Parsed inbound message

        Raises:
            MalformedIdentityError: If devEUI or applicationID is missing
            MalformedMessageError: If data is present but not a string
        """
        if not isinstance(document, dict):
            raise MalformedMessageError("uplink must be a JSON object")

        device_eui = _require_identity(document, "devEUI")
        application_id = _require_identity(document, "applicationID")

        decoded = document.get("object")
        if decoded is not None:
            payload: UplinkPayload = StructuredPayload(decoded)
        else:
            data = document.get("data") or ""
            if not isinstance(data, str):
                raise MalformedMessageError("'data' must be a base64 string")
            payload = RawPayload(data)

        return cls(
            device_eui=device_eui,
            application_id=application_id,
            payload=payload,
        )

    @classmethod
    def from_json(cls, raw: Union[str, bytes]) -> "InboundMessage":
        """Parse an uplink JSON document."""
        try:
            document = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise MalformedMessageError(f"invalid uplink JSON: {e}") from e
        return cls.from_dict(document)


@dataclass(frozen=True)
class OutboundEnvelope:
    """Message published on the internal bus.

    created is the translation time; the device's own timestamp is not kept.
    """

    publisher: str
    channel: str
    payload: bytes
    created: datetime
    protocol: str = PROTOCOL
    content_type: str = CONTENT_TYPE
