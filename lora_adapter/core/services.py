"""Core services for the LoRa adapter."""

import logging
from datetime import datetime, timezone
from typing import Callable

from .entities import InboundMessage, OutboundEnvelope
from .errors import (
    MalformedIdentityError,
    NotFoundApplicationError,
    NotFoundDeviceError,
    RouteNotFoundError,
)
from .interfaces import BusClient, RouteMapRepository

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _validate_identity(name: str, value: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise MalformedIdentityError(f"{name} must be a non-empty string")


async def save_route(
    repository: RouteMapRepository, internal_id: str, external_id: str
) -> None:
    """Store a route from an external identity to an internal one.

    Provisioning names the internal identity first (thing_id, dev_eui), but
    route maps are keyed by the external identity because that is what every
    uplink carries. This is the single place where the order is swapped.

    Args:
        repository: Route map to write to
        internal_id: Thing or channel ID, stored as the value
        external_id: Device EUI or application ID, stored as the key
    """
    await repository.save(key=external_id, value=internal_id)


class AdapterService:
    """Translates LoRa uplinks into internal bus messages.

    Stateless: all state lives in the two route maps and the bus client,
    which are owned by the caller.
    """

    def __init__(
        self,
        bus: BusClient,
        things: RouteMapRepository,
        channels: RouteMapRepository,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """Initialize the adapter service.

        Args:
            bus: Internal bus publisher
            things: Route map keyed by device EUI, valued by thing ID
            channels: Route map keyed by application ID, valued by channel ID
            clock: Source of envelope creation timestamps
        """
        self.bus = bus
        self.things = things
        self.channels = channels
        self._clock = clock

    async def publish(self, token: str, message: InboundMessage) -> None:
        """Forward an uplink from the LoRa network server to the internal bus.

        Args:
            token: Opaque credential passed through to the bus client
            message: Uplink received from the LoRa network server

        Raises:
            NotFoundDeviceError: If the device EUI has no thing route
            NotFoundApplicationError: If the application ID has no channel route
            MalformedMessageError: If the payload cannot be decoded
            StoreUnavailableError: If a route map cannot be reached
        """
        try:
            thing = await self.things.get(message.device_eui)
        except RouteNotFoundError as e:
            raise NotFoundDeviceError(message.device_eui) from e

        try:
            channel = await self.channels.get(message.application_id)
        except RouteNotFoundError as e:
            raise NotFoundApplicationError(message.application_id) from e

        envelope = OutboundEnvelope(
            publisher=thing,
            channel=channel,
            payload=message.payload.to_bytes(),
            created=self._clock(),
        )

        await self.bus.publish(token, envelope)
        logger.debug(
            f"Forwarded uplink - Device: {message.device_eui} -> Thing: {thing}, "
            f"Application: {message.application_id} -> Channel: {channel}, "
            f"Size: {len(envelope.payload)} bytes"
        )

    async def create_thing(self, thing_id: str, dev_eui: str) -> None:
        """Create the dev_eui -> thing_id route map."""
        _validate_identity("thing ID", thing_id)
        _validate_identity("device EUI", dev_eui)
        await save_route(self.things, thing_id, dev_eui)

    async def update_thing(self, thing_id: str, dev_eui: str) -> None:
        """Update the dev_eui -> thing_id route map."""
        _validate_identity("thing ID", thing_id)
        _validate_identity("device EUI", dev_eui)
        await save_route(self.things, thing_id, dev_eui)

    async def remove_thing(self, thing_id: str) -> None:
        """Remove every route map pointing at thing_id."""
        _validate_identity("thing ID", thing_id)
        await self.things.remove(thing_id)

    async def create_channel(self, chan_id: str, app_id: str) -> None:
        """Create the app_id -> chan_id route map."""
        _validate_identity("channel ID", chan_id)
        _validate_identity("application ID", app_id)
        await save_route(self.channels, chan_id, app_id)

    async def update_channel(self, chan_id: str, app_id: str) -> None:
        """Update the app_id -> chan_id route map."""
        _validate_identity("channel ID", chan_id)
        _validate_identity("application ID", app_id)
        await save_route(self.channels, chan_id, app_id)

    async def remove_channel(self, chan_id: str) -> None:
        """Remove every route map pointing at chan_id."""
        _validate_identity("channel ID", chan_id)
        await self.channels.remove(chan_id)
