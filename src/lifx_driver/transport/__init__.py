"""LIFX LAN access, backed by lifx-async."""
