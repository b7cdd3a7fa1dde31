"""LoRa network server adapters."""

from .mqtt_subscriber import LoRaMQTTSubscriber

__all__ = ["LoRaMQTTSubscriber"]
