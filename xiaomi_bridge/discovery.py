"""
Home Assistant MQTT Discovery module.
Announces the virtual sub-sensors of each Xiaomi sensor to Home Assistant.
"""

import json
import logging
import threading

from .config import Config, DeviceConfig
from .constants import DEVICE_NAMES, MANUFACTURER, UNKNOWN_MODEL_NAME
from .models import Sensor, SubSensor, family_for_model, sub_sensors_for
from .utils import bridge_state_topic, device_identifier, discovery_topic

logger = logging.getLogger(__name__)


class PropagatedSet:
    """Append-only set of sensor ids that have already been announced."""

    def __init__(self):
        self._sids = set()
        self._lock = threading.Lock()

    def add(self, sid: str) -> bool:
        """Record a sid. Returns False if it was already present."""
        with self._lock:
            if sid in self._sids:
                return False
            self._sids.add(sid)
            return True

    def __contains__(self, sid: str) -> bool:
        with self._lock:
            return sid in self._sids

    def __len__(self) -> int:
        with self._lock:
            return len(self._sids)


class DiscoveryPropagator:
    """Publishes Home Assistant discovery configs, once per sensor."""

    def __init__(self, mqtt_client, config: Config):
        self.mqtt_client = mqtt_client
        self.config = config
        self.propagated = PropagatedSet()

    def has_been_propagated(self, sensor: Sensor) -> bool:
        return not self.config.homeassistant or sensor.sid in self.propagated

    async def propagate(self, sensor: Sensor, device_config: DeviceConfig, topic: str):
        """
        Announce a sensor's sub-sensors to Home Assistant.

        The sid is recorded before anything is published, so a sensor whose
        publish fails is not announced again during this process lifetime.

        Args:
            sensor: Sensor as reported by the gateway
            device_config: Per-device settings (friendly name, qos)
            topic: Topic the sensor state is published to

        Raises:
            PublishError: if the MQTT client fails to publish a config.
        """
        if not self.config.homeassistant or not self.propagated.add(sensor.sid):
            return

        family = family_for_model(sensor.model)
        if family is None:
            logger.warning(f"{sensor.model} not implemented, no discovery published for {sensor.sid}")
            return

        for sub_sensor in sub_sensors_for(family, sensor.model):
            await self.publish_sub_sensor(sensor, device_config, topic, sub_sensor)

    async def publish_sub_sensor(self, sensor: Sensor, device_config: DeviceConfig,
                                 topic: str, sub_sensor: SubSensor):
        """Publish the discovery config of one sub-sensor."""
        config = self.get_base_payload(sensor, device_config, topic)
        config.update(sub_sensor.fields())
        config["unique_id"] = f"{sensor.sid}_{sub_sensor.subtype}_{self.config.app.name}"
        config["name"] = f"{device_config.friendly_name}_{sub_sensor.subtype}"

        await self.mqtt_client.publish(
            discovery_topic(sub_sensor.component, sensor.sid, sub_sensor.subtype),
            json.dumps(config),
            qos=device_config.qos,
            retain=True,
        )

    def get_device_info(self, sensor: Sensor, device_config: DeviceConfig) -> dict:
        """Get the device info block for MQTT Discovery."""
        app = self.config.app
        return {
            "identifiers": [device_identifier(app.name, sensor.sid)],
            "name": device_config.friendly_name,
            "sw_version": f"{app.name} {app.version}",
            "model": DEVICE_NAMES.get(sensor.model, UNKNOWN_MODEL_NAME),
            "manufacturer": MANUFACTURER,
        }

    def get_base_payload(self, sensor: Sensor, device_config: DeviceConfig, topic: str) -> dict:
        """Fields shared by every sub-sensor of a device."""
        return {
            "state_topic": topic,
            "json_attributes_topic": topic,
            "device": self.get_device_info(sensor, device_config),
            "availability_topic": bridge_state_topic(self.config.mqtt.base_topic),
        }
