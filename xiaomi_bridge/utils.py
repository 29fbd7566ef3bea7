"""
Utility functions for building MQTT topics and identifiers.
"""

from .constants import BRIDGE_STATE_SUFFIX, MQTT_DISCOVERY_PREFIX


def bridge_state_topic(base_topic: str) -> str:
    """Topic carrying the bridge availability (online/offline)."""
    return f"{base_topic}/{BRIDGE_STATE_SUFFIX}"


def discovery_topic(component: str, sid: str, subtype: str) -> str:
    """Home Assistant discovery config topic for one sub-sensor."""
    return f"{MQTT_DISCOVERY_PREFIX}/{component}/{sid}/{subtype}/config"


def device_identifier(app_name: str, sid: str) -> str:
    return f"{app_name}_{sid}"
