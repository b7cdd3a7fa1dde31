"""Core layer for the LoRa adapter.

Route map contracts, uplink/envelope entities and the forwarding service.
"""

from .entities import (
    CONTENT_TYPE,
    PROTOCOL,
    InboundMessage,
    OutboundEnvelope,
    RawPayload,
    StructuredPayload,
)
from .enums import ProvisioningOperation, RouteNamespace
from .interfaces import BusClient, RouteMapRepository
from .services import AdapterService, save_route

__all__ = [
    "CONTENT_TYPE",
    "PROTOCOL",
    "InboundMessage",
    "OutboundEnvelope",
    "RawPayload",
    "StructuredPayload",
    "ProvisioningOperation",
    "RouteNamespace",
    "BusClient",
    "RouteMapRepository",
    "AdapterService",
    "save_route",
]
