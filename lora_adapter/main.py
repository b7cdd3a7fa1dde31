#!/usr/bin/env python3
"""
LoRa Adapter Service - Main entry point

This service forwards uplinks from a LoRa network server's MQTT feed to the
internal NATS bus, translating device EUIs and application IDs into thing and
channel identities.
"""
import argparse
import asyncio
import logging
import signal
import sys

import structlog

from lora_adapter.config import Config
from lora_adapter.service import LoRaAdapter


logger = logging.getLogger(__name__)


def configure_logging(config: Config) -> None:
    """Configure stdlib and structlog output from the service configuration.

    Both loggers share one renderer, so LOG_FORMAT=json yields one JSON
    document per line whichever API emitted the record.
    """
    shared_processors = [
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    renderer = (
        structlog.processors.JSONRenderer()
        if config.log_format == "json"
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(config.log_level)
        ),
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=[structlog.stdlib.add_logger_name, *shared_processors],
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )
    logging.basicConfig(level=config.log_level, handlers=[handler], force=True)

    # paho logs every reconnect attempt at INFO
    logging.getLogger("paho").setLevel(logging.WARNING)


async def main(create_tables_only: bool = False):
    """Main entry point for the LoRa adapter service.

    Args:
        create_tables_only: Create the route map tables and exit
    """
    config = Config.from_env()
    configure_logging(config)

    if create_tables_only:
        from lora_adapter.adapters.database import DatabaseManager

        manager = DatabaseManager(config)
        await manager.initialize()
        try:
            await manager.create_tables()
        finally:
            await manager.close()
        return

    logger.info("Starting LoRa adapter service")

    service = LoRaAdapter(config)

    loop = asyncio.get_running_loop()

    # Handle graceful shutdown
    def signal_handler(sig):
        logger.info(f"Received signal {sig.name}, shutting down gracefully...")
        asyncio.ensure_future(service.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler, sig)

    try:
        await service.start()
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, shutting down...")
    except Exception as e:
        logger.error(f"Service failed with error: {e}")
        sys.exit(1)
    finally:
        await service.stop()
        logger.info("LoRa adapter service stopped")


def run():
    """Console script entry point."""
    parser = argparse.ArgumentParser(description="LoRa Adapter Service")
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create the route map tables and exit",
    )
    args = parser.parse_args()

    asyncio.run(main(create_tables_only=args.create_tables))


if __name__ == "__main__":
    run()
