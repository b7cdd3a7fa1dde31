"""Configuration management for the LoRa adapter service."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from decouple import Choices
from decouple import config


class Environment(Enum):
    """Supported deployment environments."""

    DEVELOPMENT = "development"
    CI = "CI"
    PRODUCTION = "production"


LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


@dataclass
class Config:
    """Configuration for the LoRa adapter service."""

    # Required fields
    database_url: str

    database_name: str = "lora_adapter_db"

    # Environment configuration
    environment: Environment = Environment.DEVELOPMENT

    # Message bus configuration (NATS)
    message_bus_url: str = "nats://localhost:4222"
    message_bus_timeout_seconds: int = 10
    message_bus_max_reconnect_attempts: int = 10
    message_bus_reconnect_delay_seconds: int = 2
    message_bus_token: str = ""
    channels_subject: str = "channels"
    provisioning_events_subject: str = "lora.provisioning"

    # JetStream configuration
    channels_stream: str = "channels"
    provisioning_events_stream: str = "lora_provisioning"
    jetstream_max_age_hours: int = 24
    jetstream_storage: str = "file"

    # LoRa network server MQTT configuration
    lora_mqtt_host: str = "localhost"
    lora_mqtt_port: int = 1883
    lora_mqtt_username: str = ""
    lora_mqtt_password: str = ""
    lora_mqtt_topic: str = "application/+/device/+/rx"

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "text"

    @classmethod
    def from_env(cls) -> "Config":
        """Create configuration from environment variables."""
        # Helper function to simplify config calls
        def get_value(key: str, default=None, cast=None):
            if default is not None:
                if cast is not None:
                    return config(key, default=default, cast=cast)
                else:
                    return config(key, default=default)
            else:
                return config(key)

        env = Environment(
            get_value("ENVIRONMENT", "development", Choices(["development", "CI", "production"]))
        )

        # Environment-specific defaults
        default_message_bus = "nats://nats:4222" if env == Environment.PRODUCTION else "nats://localhost:4222"

        return cls(
            # Required
            database_url=get_value("DATABASE_URL"),
            database_name=get_value("DATABASE_NAME", "lora_adapter_db"),
            # Environment
            environment=env,
            # Message bus
            message_bus_url=get_value("MESSAGE_BUS_URL", default_message_bus),
            message_bus_timeout_seconds=get_value("MESSAGE_BUS_TIMEOUT_SECONDS", 10, int),
            message_bus_max_reconnect_attempts=get_value("MESSAGE_BUS_MAX_RECONNECT_ATTEMPTS", 10, int),
            message_bus_reconnect_delay_seconds=get_value("MESSAGE_BUS_RECONNECT_DELAY_SECONDS", 2, int),
            message_bus_token=get_value("MESSAGE_BUS_TOKEN", ""),
            channels_subject=get_value("CHANNELS_SUBJECT", "channels"),
            provisioning_events_subject=get_value("PROVISIONING_EVENTS_SUBJECT", "lora.provisioning"),
            # JetStream
            channels_stream=get_value("CHANNELS_STREAM", "channels"),
            provisioning_events_stream=get_value("PROVISIONING_EVENTS_STREAM", "lora_provisioning"),
            jetstream_max_age_hours=get_value("JETSTREAM_MAX_AGE_HOURS", 24, int),
            jetstream_storage=get_value("JETSTREAM_STORAGE", "file", Choices(["file", "memory"])),
            # LoRa MQTT
            lora_mqtt_host=get_value("LORA_MQTT_HOST", "localhost"),
            lora_mqtt_port=get_value("LORA_MQTT_PORT", 1883, int),
            lora_mqtt_username=get_value("LORA_MQTT_USERNAME", ""),
            lora_mqtt_password=get_value("LORA_MQTT_PASSWORD", ""),
            lora_mqtt_topic=get_value("LORA_MQTT_TOPIC", "application/+/device/+/rx"),
            # Logging
            log_level=get_value("LOG_LEVEL", "INFO", Choices(LOG_LEVELS)),
            log_format=get_value("LOG_FORMAT", "text", Choices(["json", "text"])),
        )

    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == Environment.DEVELOPMENT

    def is_test(self) -> bool:
        """Check if running in test environment."""
        return self.environment == Environment.CI

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == Environment.PRODUCTION

    def get_database_url(self) -> str:
        """Construct the full database URL.

        PostgreSQL URLs get the asyncpg driver and the configured database
        name; sqlite URLs are used as given.
        """
        from urllib.parse import urlparse, urlunparse

        parsed = urlparse(self.database_url)

        scheme = parsed.scheme
        if scheme.startswith("sqlite"):
            return self.database_url

        if scheme in ("postgres", "postgresql"):
            scheme = "postgresql+asyncpg"

        # The path includes the leading '/', so we prepend it to database_name
        path = f"/{self.database_name}"

        return urlunparse(
            (scheme, parsed.netloc, path, parsed.params, parsed.query, parsed.fragment)
        )


# Global configuration instance
_config: Optional[Config] = None


def init_config() -> Config:
    """Load the global configuration from the environment."""
    global _config
    _config = Config.from_env()
    return _config


def get_config() -> Config:
    """Get the global configuration instance."""
    if _config is None:
        raise RuntimeError("Configuration not initialized. Call init_config() first.")
    return _config


def is_config_initialized() -> bool:
    """Check whether the global configuration has been loaded."""
    return _config is not None


def reset_config() -> None:
    """Forget the global configuration. Used by tests."""
    global _config
    _config = None
