"""
MQTT Client module for the Xiaomi bridge.
Handles MQTT connection, bridge availability and publishing.
"""

import asyncio
import logging
import time
from typing import Optional

import paho.mqtt.client as mqtt

from .constants import PAYLOAD_OFFLINE, PAYLOAD_ONLINE
from .utils import bridge_state_topic

logger = logging.getLogger(__name__)


class PublishError(Exception):
    """Raised when a message could not be handed to or acknowledged by the broker."""


class MQTTClient:
    """Handles MQTT connection and publishing."""

    def __init__(self, publish_timeout: Optional[float] = None):
        self.client = None
        self.connected = False
        self.host = ""
        self.port = 1883
        self.username = ""
        self.password = ""
        self.status_topic = ""
        self.publish_timeout = publish_timeout

    def configure(self, host: str, port: int, username: str, password: str, base_topic: str = ""):
        """Configure MQTT connection parameters."""
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.status_topic = bridge_state_topic(base_topic) if base_topic else ""

    def connect(self) -> bool:
        """Connect to the MQTT broker."""
        try:
            if self.client:
                self.disconnect()

            self.client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2)

            if self.username and self.password:
                self.client.username_pw_set(self.username, self.password)

            # Broker marks the bridge offline if we drop without a clean disconnect
            if self.status_topic:
                self.client.will_set(
                    topic=self.status_topic,
                    payload=PAYLOAD_OFFLINE,
                    qos=1,
                    retain=True
                )
                logger.info(f"Last Will message set for topic: {self.status_topic}")

            def on_connect(client, userdata, flags, reason_code, properties):
                if reason_code == 0:
                    self.connected = True
                    logger.info(f"Connected to MQTT broker at {self.host}:{self.port}")
                    if self.status_topic:
                        self._publish_status(PAYLOAD_ONLINE)
                else:
                    self.connected = False
                    logger.error(f"Failed to connect to MQTT broker: {reason_code}")

            def on_disconnect(client, userdata, flags, reason_code, properties):
                self.connected = False
                logger.info("Disconnected from MQTT broker")

            self.client.on_connect = on_connect
            self.client.on_disconnect = on_disconnect

            self.client.connect(self.host, self.port, keepalive=60)
            self.client.loop_start()

            # Wait briefly for connection
            for _ in range(10):
                if self.connected:
                    return True
                time.sleep(0.1)

            return self.connected
        except (OSError, ValueError) as e:
            logger.error(f"Error connecting to MQTT: {e}")
            self.connected = False
            return False

    def disconnect(self):
        """Disconnect from the MQTT broker."""
        if self.client:
            if self.connected and self.status_topic:
                if self._publish_status(PAYLOAD_OFFLINE):
                    # Brief wait to ensure message is sent before disconnecting
                    time.sleep(0.1)
            self.client.loop_stop()
            self.client.disconnect()
            self.client = None
        self.connected = False

    def _publish_status(self, payload: str) -> bool:
        """Publish the retained bridge availability state."""
        result = self.client.publish(self.status_topic, payload, qos=1, retain=True)
        if result.rc == mqtt.MQTT_ERR_SUCCESS:
            logger.info(f"Published {payload} status to {self.status_topic}")
            return True
        logger.warning(f"Failed to publish {payload} status to {self.status_topic}")
        return False

    async def publish(self, topic: str, payload: str, qos: int = 0, retain: bool = False) -> None:
        """Publish a message and wait until the broker has taken it.

        Raises:
            PublishError: when not connected, when paho refuses the message,
                or when no acknowledgement arrives within ``publish_timeout``.
        """
        if not self.client or not self.connected:
            raise PublishError(f"Not connected to MQTT, cannot publish to {topic}")

        try:
            info = self.client.publish(topic, payload, qos=qos, retain=retain)
        except ValueError as e:
            raise PublishError(f"Error publishing to {topic}: {e}") from e
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise PublishError(f"Error publishing to {topic}: {mqtt.error_string(info.rc)}")

        try:
            await asyncio.to_thread(info.wait_for_publish, self.publish_timeout)
        except (RuntimeError, ValueError) as e:
            raise PublishError(f"Error publishing to {topic}: {e}") from e

        if not info.is_published():
            raise PublishError(f"Timed out waiting for broker to accept message on {topic}")
        logger.debug(f"Published to {topic} (qos={qos}, retain={retain})")
