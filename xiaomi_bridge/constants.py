"""
Constants used throughout the Xiaomi bridge.
"""

# Settings
SETTINGS_FILE = "settings.json"
SETTINGS_ENV_VAR = "XIAOMI_BRIDGE_SETTINGS"
LOG_LEVEL_ENV_VAR = "XIAOMI_BRIDGE_LOG_LEVEL"

# MQTT Configuration
MQTT_DISCOVERY_PREFIX = "homeassistant"
DEFAULT_BASE_TOPIC = "xiaomi"
BRIDGE_STATE_SUFFIX = "bridge/state"
PAYLOAD_ONLINE = "online"
PAYLOAD_OFFLINE = "offline"

# Device registry
MANUFACTURER = "Xiaomi"
UNKNOWN_MODEL_NAME = "unknown"

DEVICE_NAMES = {
    "motion": "MiJia human body movement sensor (RTCGQ01LM)",
    "sensor_motion.aq2": "Aqara human body movement and illuminance sensor (RTCGQ11LM)",
    "sensor_ht": "MiJia temperature & humidity sensor (WSDCGQ01LM)",
    "weather.v1": "Aqara temperature, humidity and pressure sensor (WSDCGQ11LM)",
    "magnet": "MiJia door & window contact sensor (MCCGQ01LM)",
    "sensor_magnet.aq2": "Aqara door & window contact sensor (MCCGQ11LM)",
}
