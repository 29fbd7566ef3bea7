"""
Xiaomi sensor bridge for Home Assistant.
Reads gateway reports and forwards them to MQTT, announcing each sensor to
Home Assistant via MQTT Discovery the first time it is seen.

Features:
- MQTT Last Will message to automatically mark the bridge as offline when disconnected
- Automatic sensor registration with Home Assistant Discovery
- Retained sensor state on <base_topic>/<friendly_name>
"""

import asyncio
import json
import logging
import os
import sys
from pathlib import Path

from .config import Config, DeviceConfig, load_config
from .constants import LOG_LEVEL_ENV_VAR, SETTINGS_ENV_VAR, SETTINGS_FILE
from .discovery import DiscoveryPropagator
from .models import Sensor
from .mqtt_client import MQTTClient, PublishError

logger = logging.getLogger(__name__)


class Bridge:
    """Forwards gateway reports to MQTT and Home Assistant."""

    def __init__(self, config: Config, mqtt_client: MQTTClient = None):
        self.config = config
        self.mqtt_client = mqtt_client or MQTTClient(publish_timeout=config.mqtt.publish_timeout)
        self.discovery = DiscoveryPropagator(self.mqtt_client, config)

    def connect_mqtt(self) -> bool:
        """Connect to the MQTT broker configured in the settings."""
        mqtt_config = self.config.mqtt
        self.mqtt_client.configure(
            mqtt_config.host,
            mqtt_config.port,
            mqtt_config.username,
            mqtt_config.password,
            mqtt_config.base_topic
        )
        success = self.mqtt_client.connect()
        if not success:
            logger.error(f"Could not connect to MQTT broker at {mqtt_config.host}:{mqtt_config.port}")
        return success

    def disconnect_mqtt(self):
        """Disconnect from the MQTT broker."""
        self.mqtt_client.disconnect()

    def device_config(self, sid: str) -> DeviceConfig:
        return self.config.device_config(sid)

    def state_topic(self, device_config: DeviceConfig) -> str:
        """Topic the sensor's measurements are published to."""
        return f"{self.config.mqtt.base_topic}/{device_config.friendly_name}"

    async def handle_report(self, report: dict) -> bool:
        """
        Announce and publish a single gateway report.

        Args:
            report: Gateway report with "sid", "model" and "data" keys

        Returns:
            True if the sensor state was published.
        """
        try:
            sensor = Sensor.from_report(report)
        except ValueError as e:
            logger.warning(f"Dropping malformed report: {e}")
            return False

        device_config = self.device_config(sensor.sid)
        topic = self.state_topic(device_config)
        try:
            await self.discovery.propagate(sensor, device_config, topic)
            await self.mqtt_client.publish(
                topic,
                json.dumps(sensor.data),
                qos=device_config.qos,
                retain=True
            )
        except PublishError as e:
            logger.error(f"Error publishing report for {sensor.sid}: {e}")
            return False

        logger.debug(f"Published state for {sensor.sid}: {sensor.data}")
        return True

    async def run(self, stream) -> int:
        """
        Process newline-delimited JSON reports until the stream ends.

        Returns:
            Number of reports that were published.
        """
        published = 0
        while True:
            line = await asyncio.to_thread(stream.readline)
            if not line:
                break
            line = line.strip()
            if not line:
                continue
            try:
                report = json.loads(line)
            except json.JSONDecodeError as e:
                logger.warning(f"Skipping invalid JSON report: {e}")
                continue
            if not isinstance(report, dict):
                logger.warning(f"Skipping report that is not an object: {line}")
                continue
            if await self.handle_report(report):
                published += 1
        return published


def get_settings_path() -> Path:
    """Get the path to the settings file."""
    return Path(os.environ.get(SETTINGS_ENV_VAR, SETTINGS_FILE))


async def _main() -> int:
    config = load_config(get_settings_path())
    bridge = Bridge(config)

    logger.info(f"{config.app.name} {config.app.version} starting...")
    if not bridge.connect_mqtt():
        bridge.disconnect_mqtt()
        return 1

    try:
        published = await bridge.run(sys.stdin)
        logger.info(f"Input closed after {published} published reports")
    finally:
        bridge.disconnect_mqtt()
        logger.info(f"{config.app.name} stopped")
    return 0


def main() -> int:
    logging.basicConfig(
        level=os.environ.get(LOG_LEVEL_ENV_VAR, "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return asyncio.run(_main())
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
