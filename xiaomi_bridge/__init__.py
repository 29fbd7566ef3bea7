"""
Xiaomi sensor bridge for Home Assistant.
Announces Xiaomi/Aqara sensors through MQTT Discovery and forwards their state.
"""

__version__ = "1.0.0"

from .constants import (
    SETTINGS_FILE,
    MQTT_DISCOVERY_PREFIX,
    DEVICE_NAMES,
)
from .utils import bridge_state_topic, discovery_topic
from .models import Sensor, SensorFamily, SubSensor, family_for_model, sub_sensors_for
from .config import AppConfig, MqttConfig, DeviceConfig, Config, load_config
from .mqtt_client import MQTTClient, PublishError
from .discovery import DiscoveryPropagator, PropagatedSet

__all__ = [
    '__version__',
    'SETTINGS_FILE',
    'MQTT_DISCOVERY_PREFIX',
    'DEVICE_NAMES',
    'bridge_state_topic',
    'discovery_topic',
    'Sensor',
    'SensorFamily',
    'SubSensor',
    'family_for_model',
    'sub_sensors_for',
    'AppConfig',
    'MqttConfig',
    'DeviceConfig',
    'Config',
    'load_config',
    'MQTTClient',
    'PublishError',
    'DiscoveryPropagator',
    'PropagatedSet',
]
