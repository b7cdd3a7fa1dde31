"""LoRa adapter service."""
