"""Wire encoding of envelopes published on the internal bus."""

import base64
import binascii
import json
from datetime import timezone

from google.protobuf.timestamp_pb2 import Timestamp

from ...core.entities import OutboundEnvelope
from ...core.errors import MalformedMessageError


def encode_envelope(envelope: OutboundEnvelope) -> bytes:
    """Serialize an envelope to its JSON wire form.

    The payload is base64 encoded and created is an RFC 3339 timestamp.
    """
    created = Timestamp()
    created.FromDatetime(envelope.created)

    return json.dumps(
        {
            "channel": envelope.channel,
            "publisher": envelope.publisher,
            "protocol": envelope.protocol,
            "content_type": envelope.content_type,
            "payload": base64.b64encode(envelope.payload).decode("ascii"),
            "created": created.ToJsonString(),
        }
    ).encode("utf-8")


def decode_envelope(data: bytes) -> OutboundEnvelope:
    """Parse an envelope from its JSON wire form.

    Raises:
        MalformedMessageError: If the document is not a valid envelope
    """
    try:
        document = json.loads(data)
        created = Timestamp()
        created.FromJsonString(document["created"])
        return OutboundEnvelope(
            publisher=document["publisher"],
            channel=document["channel"],
            protocol=document["protocol"],
            content_type=document["content_type"],
            payload=base64.b64decode(document["payload"], validate=True),
            created=created.ToDatetime(tzinfo=timezone.utc),
        )
    except (KeyError, TypeError, ValueError, binascii.Error) as e:
        raise MalformedMessageError(f"invalid envelope: {e}") from e
