"""Core enums for the LoRa adapter."""

from enum import Enum
from typing import Optional


class RouteNamespace(Enum):
    """Key space of a route map.

    Device EUIs and application IDs live in separate namespaces so a key of
    one kind can never resolve in the other table.
    """

    THING = "thing"
    CHANNEL = "channel"


class ProvisioningOperation(Enum):
    """Operations carried by provisioning events."""

    THING_CREATE = "thing.create"
    THING_UPDATE = "thing.update"
    THING_REMOVE = "thing.remove"
    CHANNEL_CREATE = "channel.create"
    CHANNEL_UPDATE = "channel.update"
    CHANNEL_REMOVE = "channel.remove"

    @classmethod
    def from_string(cls, value: str) -> Optional["ProvisioningOperation"]:
        """Look up an operation by its wire name, None if unknown."""
        for operation in cls:
            if operation.value == value:
                return operation
        return None

    @property
    def namespace(self) -> RouteNamespace:
        """Route map affected by this operation."""
        if self.value.startswith("thing."):
            return RouteNamespace.THING
        return RouteNamespace.CHANNEL

    @property
    def is_removal(self) -> bool:
        return self in (ProvisioningOperation.THING_REMOVE, ProvisioningOperation.CHANNEL_REMOVE)
