"""Main service class for the LoRa adapter."""

import asyncio
import logging
from typing import Optional

from lora_adapter.config import Config
from lora_adapter.core.enums import RouteNamespace
from lora_adapter.core.services import AdapterService
from lora_adapter.adapters.database import DatabaseManager, SQLRouteMapRepository
from lora_adapter.adapters.lora import LoRaMQTTSubscriber
from lora_adapter.adapters.messaging import MessageBusClient, NATSBusClient
from lora_adapter.application import ProvisioningConsumer, UplinkForwarder


logger = logging.getLogger(__name__)

HEALTH_CHECK_INTERVAL_SECONDS = 30


class LoRaAdapter:
    """Wires the route map store, NATS bus and LoRa MQTT feed together.

    The service directly manages its infrastructure components without a
    dependency injection framework.
    """

    def __init__(
        self, config: Config, message_bus_client: Optional[MessageBusClient] = None
    ):
        """Initialize the LoRa adapter.

        Args:
            config: Service configuration
            message_bus_client: Optional message bus client for dependency injection.
                               If not provided, will create NATSBusClient from config.
        """
        self.config = config
        self._running = False
        self._stopped = asyncio.Event()

        self._database_manager: Optional[DatabaseManager] = None
        self._message_bus_client: Optional[MessageBusClient] = None
        self._mqtt_subscriber: Optional[LoRaMQTTSubscriber] = None
        self.adapter_service: Optional[AdapterService] = None
        self.provisioning_consumer: Optional[ProvisioningConsumer] = None
        self.uplink_forwarder: Optional[UplinkForwarder] = None

        self._provided_message_bus_client = message_bus_client

    async def _initialize_infrastructure(self) -> None:
        """Create and connect all infrastructure components."""
        logger.info("Initializing route map store...")
        self._database_manager = DatabaseManager(self.config)
        await self._database_manager.initialize()
        await self._database_manager.create_tables()

        things = SQLRouteMapRepository(self._database_manager, RouteNamespace.THING)
        channels = SQLRouteMapRepository(self._database_manager, RouteNamespace.CHANNEL)

        logger.info("Connecting to message bus...")
        self._message_bus_client = self._provided_message_bus_client or NATSBusClient(
            servers=self.config.message_bus_url,
            timeout=self.config.message_bus_timeout_seconds,
            max_reconnect_attempts=self.config.message_bus_max_reconnect_attempts,
            reconnect_delay=self.config.message_bus_reconnect_delay_seconds,
            channels_stream=self.config.channels_stream,
            channels_subject=self.config.channels_subject,
            provisioning_events_stream=self.config.provisioning_events_stream,
            provisioning_events_subject=self.config.provisioning_events_subject,
            max_age_hours=self.config.jetstream_max_age_hours,
            storage=self.config.jetstream_storage,
        )
        await self._message_bus_client.connect()
        await self._message_bus_client.create_streams()

        self.adapter_service = AdapterService(
            bus=self._message_bus_client,
            things=things,
            channels=channels,
        )
        self.provisioning_consumer = ProvisioningConsumer(
            self.adapter_service,
            self._message_bus_client,
            self.config.provisioning_events_subject,
        )
        self.uplink_forwarder = UplinkForwarder(
            self.adapter_service, token=self.config.message_bus_token
        )

    async def start(self):
        """Start the LoRa adapter and run until stop() is called."""
        logger.info("Starting LoRa adapter")
        self._running = True

        try:
            await self._initialize_infrastructure()

            await self.provisioning_consumer.start()

            self._mqtt_subscriber = LoRaMQTTSubscriber(
                handler=self.uplink_forwarder.handle,
                host=self.config.lora_mqtt_host,
                port=self.config.lora_mqtt_port,
                topic=self.config.lora_mqtt_topic,
                username=self.config.lora_mqtt_username or None,
                password=self.config.lora_mqtt_password or None,
            )
            self._mqtt_subscriber.start(asyncio.get_running_loop())

            # Main service loop - handles health checks
            while self._running:
                if not await self._message_bus_client.is_connected():
                    await self._reconnect_message_bus()

                try:
                    await asyncio.wait_for(
                        self._stopped.wait(), timeout=HEALTH_CHECK_INTERVAL_SECONDS
                    )
                except asyncio.TimeoutError:
                    pass

        except Exception:
            self._running = False
            raise

    async def _reconnect_message_bus(self) -> None:
        """Reconnect the bus and restore the provisioning subscription."""
        logger.warning("Message bus connection lost, attempting to reconnect...")
        try:
            await self._message_bus_client.connect()
            await self._message_bus_client.create_streams()
            await self.provisioning_consumer.start()
            logger.info("Message bus reconnection successful")
        except Exception as e:
            logger.error(f"Failed to reconnect to message bus: {e}")

    async def stop(self):
        """Stop the LoRa adapter."""
        logger.info("Stopping LoRa adapter")
        self._running = False
        self._stopped.set()

        if self._mqtt_subscriber is not None:
            self._mqtt_subscriber.stop()
            self._mqtt_subscriber = None

        if self._message_bus_client is not None:
            await self._message_bus_client.disconnect()
            self._message_bus_client = None

        if self._database_manager is not None:
            await self._database_manager.close()
            self._database_manager = None

        logger.info("LoRa adapter stopped")
