"""Message bus client implementation using NATS with JetStream."""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Protocol, Tuple

import nats
from nats.aio.client import Client as NATSClient
from nats.js import JetStreamContext
import nats.errors
import nats.js.errors

from ...core.entities import OutboundEnvelope
from .codec import encode_envelope


logger = logging.getLogger(__name__)

MessageHandler = Callable[[bytes], Awaitable[None]]


class MessageBusClient(Protocol):
    """Protocol for message bus client implementations."""

    async def connect(self) -> None:
        """Connect to the message bus."""
        ...

    async def disconnect(self) -> None:
        """Disconnect from the message bus."""
        ...

    async def create_streams(self) -> None:
        """Create required JetStream streams."""
        ...

    async def is_connected(self) -> bool:
        """Check if client is connected to the message bus."""
        ...

    async def publish(self, token: str, envelope: OutboundEnvelope) -> None:
        """Publish an envelope on its channel subject."""
        ...

    async def subscribe(self, subject: str, handler: MessageHandler) -> None:
        """Subscribe to messages on the specified subject."""
        ...


def durable_name(subject: str) -> str:
    """Durable consumer name for a subject (wildcards are not allowed in names)."""
    sanitized = subject.replace(".", "_").replace("*", "all").replace(">", "all")
    return f"{sanitized}_consumer"


class NATSBusClient:
    """NATS message bus client with JetStream support."""

    def __init__(
        self,
        servers: str,
        timeout: int = 10,
        max_reconnect_attempts: int = 10,
        reconnect_delay: int = 2,
        channels_stream: str = "channels",
        channels_subject: str = "channels",
        provisioning_events_stream: str = "lora_provisioning",
        provisioning_events_subject: str = "lora.provisioning",
        max_age_hours: int = 24,
        storage: str = "file",
    ):
        """Initialize NATS client.

        Args:
            servers: NATS server URLs (e.g., "nats://localhost:4222")
            timeout: Connection timeout in seconds
            max_reconnect_attempts: Maximum reconnection attempts
            reconnect_delay: Delay between reconnection attempts in seconds
            channels_stream: Name of the JetStream stream holding channel messages
            channels_subject: Subject prefix; envelopes go to <prefix>.<channel>
            provisioning_events_stream: Name of the provisioning events stream
            provisioning_events_subject: Subject prefix of provisioning events
            max_age_hours: Retention of both streams
            storage: JetStream storage backend ("file" or "memory")
        """
        self.servers = servers
        self.timeout = timeout
        self.max_reconnect_attempts = max_reconnect_attempts
        self.reconnect_delay = reconnect_delay
        self.channels_stream = channels_stream
        self.channels_subject = channels_subject
        self.provisioning_events_stream = provisioning_events_stream
        self.provisioning_events_subject = provisioning_events_subject
        self.max_age_hours = max_age_hours
        self.storage = storage

        self._client: Optional[NATSClient] = None
        self._js: Optional[JetStreamContext] = None
        self._connected = False
        self._tasks: List[asyncio.Task] = []

    async def connect(self) -> None:
        """Connect to NATS server with JetStream."""
        if self._connected:
            logger.warning("Already connected to NATS")
            return

        # Drop a client left over from a lost connection with its subscriptions
        await self._close_client()

        logger.info(f"Connecting to NATS at {self.servers}")
        try:
            self._client = await nats.connect(
                servers=self.servers,
                connect_timeout=self.timeout,
                max_reconnect_attempts=self.max_reconnect_attempts,
                reconnect_time_wait=self.reconnect_delay,
                error_cb=self._error_callback,
                disconnected_cb=self._disconnected_callback,
                reconnected_cb=self._reconnected_callback,
            )
        except Exception as e:
            logger.error(f"Failed to connect to NATS: {e}")
            self._connected = False
            raise

        self._js = self._client.jetstream()
        self._connected = True
        logger.info("Connected to NATS with JetStream")

    async def disconnect(self) -> None:
        """Stop the message processors and close the connection."""
        await self._close_client()

    async def _close_client(self) -> None:
        for task in self._tasks:
            task.cancel()
        self._tasks.clear()

        if self._client is None:
            return

        client, self._client, self._js = self._client, None, None
        self._connected = False
        try:
            await client.close()
            logger.info("Disconnected from NATS")
        except Exception as e:
            logger.error(f"Error during NATS disconnect: {e}")

    def _stream_configs(self) -> List[dict]:
        return [
            {
                "name": self.channels_stream,
                "subjects": [f"{self.channels_subject}.>"],
                "description": "Messages published on internal channels",
            },
            {
                "name": self.provisioning_events_stream,
                "subjects": [f"{self.provisioning_events_subject}.*"],
                "description": "LoRa thing and channel provisioning events",
            },
        ]

    async def create_streams(self) -> None:
        """Create the channel and provisioning streams that don't exist yet."""
        if not self._js:
            raise RuntimeError("Not connected to NATS JetStream")

        for stream in self._stream_configs():
            name = stream["name"]
            try:
                await self._js.stream_info(name)
                logger.info(f"JetStream stream '{name}' already exists")
                continue
            except nats.js.errors.NotFoundError:
                pass

            try:
                await self._js.add_stream(
                    name=name,
                    subjects=stream["subjects"],
                    description=stream["description"],
                    retention="limits",
                    max_age=self.max_age_hours * 60 * 60,
                    storage=self.storage,
                )
            except Exception as e:
                logger.error(f"Failed to create stream '{name}': {e}")
                raise
            logger.info(f"Created JetStream stream '{name}' for {stream['subjects']}")

    async def is_connected(self) -> bool:
        """Check if client is connected to NATS."""
        return (
            self._connected and self._client is not None and self._client.is_connected
        )

    def subject_for(self, envelope: OutboundEnvelope) -> str:
        """Subject an envelope is published on."""
        return f"{self.channels_subject}.{envelope.channel}"

    async def publish(self, token: str, envelope: OutboundEnvelope) -> None:
        """Publish an envelope on its channel subject using JetStream.

        A non-empty token travels in the Authorization header.
        """
        if not self._js:
            raise RuntimeError("Not connected to NATS JetStream")

        subject = self.subject_for(envelope)
        data = encode_envelope(envelope)
        headers = {"Authorization": token} if token else None

        try:
            ack = await self._js.publish(subject, data, headers=headers)
        except Exception as e:
            logger.error(f"Failed to publish message to {subject}: {e}")
            raise

        logger.debug(
            f"Published {len(data)} bytes to {subject} (stream {ack.stream}, seq {ack.seq})"
        )

    async def subscribe(self, subject: str, handler: MessageHandler) -> None:
        """Pull-subscribe a durable consumer on subject.

        Each message is acked once the handler returns and nak'ed for
        redelivery if it raises.
        """
        if not self._js:
            raise RuntimeError("Not connected to NATS JetStream")

        durable = durable_name(subject)
        try:
            psub = await self._js.pull_subscribe(subject, durable=durable)
        except Exception as e:
            logger.error(f"Failed to subscribe to {subject}: {e}")
            raise

        logger.info(f"Subscribed to {subject} as durable consumer {durable}")
        self._tasks.append(
            asyncio.create_task(self._message_processor(psub, handler, subject))
        )

    async def _message_processor(self, subscription, handler: MessageHandler, subject: str) -> None:
        """Fetch and dispatch messages until the client is closed."""
        try:
            while self._client is not None:
                if not self._connected:
                    # wait for the reconnected callback
                    await asyncio.sleep(self.reconnect_delay)
                    continue

                try:
                    msgs = await subscription.fetch(1, timeout=1.0)
                except (asyncio.TimeoutError, nats.errors.TimeoutError):
                    continue
                except Exception as e:
                    logger.error(f"Error fetching messages from {subject}: {e}")
                    await asyncio.sleep(self.reconnect_delay)
                    continue

                for msg in msgs:
                    try:
                        await handler(msg.data)
                    except Exception as e:
                        logger.error(f"Error handling message from {subject}: {e}")
                        await msg.nak()
                    else:
                        await msg.ack()

        except asyncio.CancelledError:
            logger.info(f"Message processor for {subject} cancelled")
            raise

    async def _error_callback(self, error):
        logger.error(f"NATS error: {error}")

    async def _disconnected_callback(self):
        logger.warning("Disconnected from NATS")
        self._connected = False

    async def _reconnected_callback(self):
        logger.info("Reconnected to NATS")
        self._connected = True

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()


class MockBusClient:
    """Bus client for tests that records envelopes instead of publishing them."""

    def __init__(self, channels_subject: str = "channels"):
        self.channels_subject = channels_subject
        self.published_messages: List[Tuple[str, OutboundEnvelope]] = []
        self.handlers: dict = {}
        self._connected = False

    async def connect(self) -> None:
        """Mock connect - no NATS server involved."""
        self._connected = True
        logger.info("Mock: Bus client connected")

    async def disconnect(self) -> None:
        """Mock disconnect."""
        self._connected = False
        logger.info("Mock: Bus client disconnected")

    async def create_streams(self) -> None:
        """Mock stream creation - no actual NATS streams."""
        logger.info("Mock: Skipping stream creation")

    async def is_connected(self) -> bool:
        return self._connected

    async def publish(self, token: str, envelope: OutboundEnvelope) -> None:
        """Capture the envelope, validating that it serializes."""
        encode_envelope(envelope)
        self.published_messages.append((token, envelope))
        logger.debug(
            f"Mock: Captured envelope for {self.channels_subject}.{envelope.channel}"
        )

    async def subscribe(self, subject: str, handler: MessageHandler) -> None:
        """Register a handler that tests can drive with deliver()."""
        self.handlers[subject] = handler

    async def deliver(self, subject: str, data: bytes) -> None:
        """Hand a message to the handler registered for subject."""
        await self.handlers[subject](data)
