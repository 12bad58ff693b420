"""MQTT bus integration."""
