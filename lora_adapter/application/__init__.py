"""Application layer for the LoRa adapter.

Handlers that drive the adapter service from the outside world: provisioning
events on the bus and uplinks from the LoRa network server.
"""

from .provisioning_consumer import ProvisioningConsumer
from .uplink_forwarder import UplinkForwarder

__all__ = ["ProvisioningConsumer", "UplinkForwarder"]
