"""Outbound HTTP clients. Views never call ``requests`` directly."""
