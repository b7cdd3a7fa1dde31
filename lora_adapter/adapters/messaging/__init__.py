"""Messaging infrastructure for the LoRa adapter service."""

from .codec import decode_envelope, encode_envelope
from .nats_client import MessageBusClient, MockBusClient, NATSBusClient, durable_name

__all__ = [
    "MessageBusClient",
    "MockBusClient",
    "NATSBusClient",
    "decode_envelope",
    "encode_envelope",
    "durable_name",
]
