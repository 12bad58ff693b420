"""LIFX light driver: bridges channel commands on an MQTT bus to LIFX LAN bulbs."""

__version__ = "0.3.0"
