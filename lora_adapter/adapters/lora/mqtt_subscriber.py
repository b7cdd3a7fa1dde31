"""MQTT subscriber for LoRa network server uplinks."""

import asyncio
from concurrent.futures import Future
from typing import Awaitable, Callable, Optional

import paho.mqtt.client as mqtt
import structlog

logger = structlog.get_logger()

UplinkHandler = Callable[[bytes, str], Awaitable[bool]]


class LoRaMQTTSubscriber:
    """Subscribes to the network server's uplink topic.

    paho runs its network loop in a background thread; every received
    payload is handed to the async handler on the service's event loop.
    """

    def __init__(
        self,
        handler: UplinkHandler,
        host: str = "localhost",
        port: int = 1883,
        topic: str = "application/+/device/+/rx",
        username: Optional[str] = None,
        password: Optional[str] = None,
        client_id: str = "lora-adapter",
    ):
        self.handler = handler
        self.host = host
        self.port = port
        self.topic = topic
        self.username = username
        self.password = password
        self.client_id = client_id

        self._client: Optional[mqtt.Client] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._connected = False

    def start(self, loop: asyncio.AbstractEventLoop) -> None:
        """Connect to the broker and start the network loop thread."""
        self._loop = loop
        self._client = mqtt.Client(
            client_id=self.client_id,
            protocol=mqtt.MQTTv311,
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
        )

        self._client.on_connect = self._on_connect
        self._client.on_disconnect = self._on_disconnect
        self._client.on_message = self._on_message

        if self.username:
            self._client.username_pw_set(self.username, self.password or None)

        logger.info("Connecting to LoRa MQTT broker", host=self.host, port=self.port)
        self._client.connect_async(self.host, self.port, keepalive=60)
        self._client.loop_start()

    def stop(self) -> None:
        """Disconnect and stop the network loop thread."""
        if self._client is None:
            return
        self._client.disconnect()
        self._client.loop_stop()
        self._client = None
        self._connected = False
        logger.info("LoRa MQTT subscriber stopped")

    @property
    def is_connected(self) -> bool:
        return self._connected

    def _on_connect(self, client, userdata, flags, reason_code, properties=None):
        if reason_code == 0:
            self._connected = True
            client.subscribe(self.topic, qos=1)
            logger.info("Subscribed to LoRa uplinks", topic=self.topic)
        else:
            self._connected = False
            logger.error("LoRa MQTT connection failed", reason_code=str(reason_code))

    def _on_disconnect(self, client, userdata, flags, reason_code, properties=None):
        self._connected = False
        logger.warning("Disconnected from LoRa MQTT broker", reason_code=str(reason_code))

    def _on_message(self, client, userdata, msg):
        """Schedule the handler on the event loop (called from paho's thread)."""
        if self._loop is None or self._loop.is_closed():
            logger.error("No event loop to handle uplink", topic=msg.topic)
            return

        future = asyncio.run_coroutine_threadsafe(
            self.handler(msg.payload, msg.topic), self._loop
        )
        future.add_done_callback(lambda f: self._log_failure(f, msg.topic))

    @staticmethod
    def _log_failure(future: Future, topic: str) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.error("Failed to forward uplink", topic=topic, error=str(error))
