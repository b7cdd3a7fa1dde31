"""Adapters layer for the LoRa adapter service.

This layer contains all adapters that translate between the core and
external systems (route map store, NATS bus, LoRa network server MQTT).
"""
