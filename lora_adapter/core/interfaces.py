"""Capability interfaces the adapter core depends on."""

from abc import ABC, abstractmethod
from typing import Protocol

from .entities import OutboundEnvelope


class RouteMapRepository(ABC):
    """Association between external keys and internal identifiers.

    Implementations must be safe for concurrent use by multiple callers.
    """

    @abstractmethod
    async def save(self, key: str, value: str) -> None:
        """Insert or overwrite the value stored for key.

        Raises:
            StoreUnavailableError: If the backing store cannot be reached
        """

    @abstractmethod
    async def get(self, key: str) -> str:
        """Get the internal value stored for key.

        Raises:
            RouteNotFoundError: If no association exists for key
            StoreUnavailableError: If the backing store cannot be reached
        """

    @abstractmethod
    async def remove(self, value: str) -> None:
        """Delete every association whose internal value equals value.

        Removing an unknown value is a no-op.

        Raises:
            StoreUnavailableError: If the backing store cannot be reached
        """


class BusClient(Protocol):
    """Protocol for internal message bus publishers."""

    async def publish(self, token: str, envelope: OutboundEnvelope) -> None:
        """Publish the envelope as one atomic message.

        The token is an opaque authorization credential.
        """
        ...
