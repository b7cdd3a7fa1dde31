"""Consumer of thing and channel provisioning events.

Events arrive as JSON on <provisioning subject>.* and are turned into route
map changes through the adapter service:

    {"operation": "thing.create", "id": "<thing id>",
     "metadata": {"lora": {"devEUI": "<device EUI>"}}}
"""

import json
import logging
from typing import Any, Dict, Optional

from ..core.enums import ProvisioningOperation, RouteNamespace
from ..core.errors import MalformedIdentityError, MalformedMessageError
from ..core.services import AdapterService
from ..adapters.messaging.nats_client import MessageBusClient

logger = logging.getLogger(__name__)

# Metadata key holding the external identity of each namespace
EXTERNAL_ID_FIELDS = {
    RouteNamespace.THING: "devEUI",
    RouteNamespace.CHANNEL: "appID",
}


def _lora_metadata(event: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Extract the "lora" section of an event's metadata, None if absent."""
    metadata = event.get("metadata")
    if metadata is None or metadata == "":
        return None

    if isinstance(metadata, str):
        try:
            metadata = json.loads(metadata)
        except ValueError as e:
            raise MalformedMessageError(f"invalid metadata JSON: {e}") from e

    if not isinstance(metadata, dict):
        raise MalformedMessageError("metadata must be a JSON object")

    lora = metadata.get("lora")
    if lora is None:
        return None
    if not isinstance(lora, dict):
        raise MalformedIdentityError("lora metadata must be a JSON object")
    return lora


class ProvisioningConsumer:
    """Applies provisioning events to the thing and channel route maps."""

    def __init__(self, service: AdapterService, bus: MessageBusClient, subject: str):
        """Initialize the consumer.

        Args:
            service: Adapter service owning the route maps
            bus: Message bus to subscribe on
            subject: Provisioning subject prefix (events on <subject>.*)
        """
        self.service = service
        self.bus = bus
        self.subject = subject

    async def start(self) -> None:
        """Subscribe to provisioning events."""
        await self.bus.subscribe(f"{self.subject}.*", self.handle)
        logger.info(f"Consuming provisioning events from {self.subject}.*")

    async def handle(self, data: bytes) -> None:
        """Handle one provisioning event.

        Events that can never succeed are logged and dropped; store failures
        propagate so the bus redelivers the event.
        """
        try:
            await self.apply(self.decode(data))
        except (MalformedIdentityError, MalformedMessageError) as e:
            logger.warning(f"Dropping provisioning event: {e}")

    def decode(self, data: bytes) -> Dict[str, Any]:
        """Parse a provisioning event document."""
        try:
            event = json.loads(data)
        except ValueError as e:
            raise MalformedMessageError(f"invalid provisioning event JSON: {e}") from e
        if not isinstance(event, dict):
            raise MalformedMessageError("provisioning event must be a JSON object")
        return event

    async def apply(self, event: Dict[str, Any]) -> bool:
        """Apply a decoded provisioning event.

        Returns:
            True if a route map was changed, False if the event was skipped

        Raises:
            MalformedMessageError: If the operation is unknown
            MalformedIdentityError: If an identity is missing or invalid
        """
        operation = ProvisioningOperation.from_string(event.get("operation", ""))
        if operation is None:
            raise MalformedMessageError(f"unknown operation {event.get('operation')!r}")

        internal_id = event.get("id")
        if not isinstance(internal_id, str) or not internal_id:
            raise MalformedIdentityError(f"{operation.value} event without id")

        if operation.is_removal:
            if operation.namespace == RouteNamespace.THING:
                await self.service.remove_thing(internal_id)
            else:
                await self.service.remove_channel(internal_id)
        else:
            lora = _lora_metadata(event)
            if lora is None:
                logger.debug(f"Skipping {operation.value} for {internal_id}: no lora metadata")
                return False

            field_name = EXTERNAL_ID_FIELDS[operation.namespace]
            external_id = lora.get(field_name)
            if not isinstance(external_id, str) or not external_id:
                raise MalformedIdentityError(
                    f"{operation.value} event for {internal_id} without lora.{field_name}"
                )

            if operation == ProvisioningOperation.THING_CREATE:
                await self.service.create_thing(internal_id, external_id)
            elif operation == ProvisioningOperation.THING_UPDATE:
                await self.service.update_thing(internal_id, external_id)
            elif operation == ProvisioningOperation.CHANNEL_CREATE:
                await self.service.create_channel(internal_id, external_id)
            else:
                await self.service.update_channel(internal_id, external_id)

        logger.info(f"Applied provisioning event {operation.value} for {internal_id}")
        return True
