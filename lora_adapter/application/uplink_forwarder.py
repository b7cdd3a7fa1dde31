"""Forwarding of raw LoRa uplinks to the internal bus."""

from typing import Union

import structlog

from ..core.entities import InboundMessage
from ..core.errors import (
    MalformedIdentityError,
    MalformedMessageError,
    NotFoundApplicationError,
    NotFoundDeviceError,
)
from ..core.services import AdapterService

logger = structlog.get_logger()


class UplinkForwarder:
    """Parses uplinks from the LoRa network server and forwards them.

    This is the immediate caller of AdapterService.publish and decides what
    happens to failed messages: unroutable or malformed uplinks are logged
    and dropped, store and bus failures propagate to the subscriber.
    """

    def __init__(self, service: AdapterService, token: str = ""):
        self.service = service
        self.token = token
        self.forwarded_count = 0
        self.dropped_count = 0

    async def handle(self, raw: Union[str, bytes], topic: str = "") -> bool:
        """Forward one uplink.

        Args:
            raw: Uplink JSON document as received over MQTT
            topic: Topic the uplink arrived on, used for logging only

        Returns:
            True if the uplink was published, False if it was dropped
        """
        try:
            message = InboundMessage.from_json(raw)
            await self.service.publish(self.token, message)
        except (NotFoundDeviceError, NotFoundApplicationError) as e:
            self.dropped_count += 1
            logger.warning("Dropping unroutable uplink", topic=topic, error=str(e))
            return False
        except (MalformedIdentityError, MalformedMessageError) as e:
            self.dropped_count += 1
            logger.warning("Dropping malformed uplink", topic=topic, error=str(e))
            return False

        self.forwarded_count += 1
        return True
