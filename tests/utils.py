"""Test utility functions."""

import base64
import json
from datetime import datetime, timezone
from typing import Any, Optional


FIXED_NOW = datetime(2024, 5, 1, 12, 30, 0, tzinfo=timezone.utc)


def uplink_json(
    dev_eui: Optional[str] = "AA:BB",
    app_id: Optional[str] = "app1",
    data: Optional[bytes] = b"hello",
    decoded: Any = None,
) -> bytes:
    """Build an uplink document as the LoRa network server publishes it."""
    document = {"fPort": 1, "fCnt": 42}
    if dev_eui is not None:
        document["devEUI"] = dev_eui
    if app_id is not None:
        document["applicationID"] = app_id
    if data is not None:
        document["data"] = base64.b64encode(data).decode("ascii")
    if decoded is not None:
        document["object"] = decoded
    return json.dumps(document).encode("utf-8")


def provisioning_event(operation: str, entity_id: Optional[str], **lora: str) -> bytes:
    """Build a provisioning event, with lora metadata when fields are given."""
    event = {"operation": operation}
    if entity_id is not None:
        event["id"] = entity_id
    if lora:
        event["metadata"] = {"lora": lora}
    return json.dumps(event).encode("utf-8")
