"""Shared pytest configuration and fixtures for the bridge test suite."""

import json
import sys
from pathlib import Path

import pytest

# Ensure the project root is in the path for imports
PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from xiaomi_bridge import AppConfig, Config, DeviceConfig, MqttConfig, PublishError  # noqa: E402


class RecordingClient:
    """Stands in for MQTTClient, recording every publish."""

    def __init__(self, fail_on=None):
        self.published = []
        self.fail_on = fail_on

    async def publish(self, topic, payload, qos=0, retain=False):
        if self.fail_on and self.fail_on in topic:
            raise PublishError(f"Error publishing to {topic}: broker unavailable")
        self.published.append({
            "topic": topic,
            "payload": json.loads(payload),
            "qos": qos,
            "retain": retain,
        })

    @property
    def topics(self):
        return [message["topic"] for message in self.published]


@pytest.fixture
def client():
    return RecordingClient()


@pytest.fixture
def config():
    return Config(
        app=AppConfig(name="xiaomi-bridge", version="1.2.3"),
        mqtt=MqttConfig(base_topic="xiaomi"),
        homeassistant=True,
        devices={"158d0001a2b3c4": DeviceConfig(friendly_name="hallway", qos=1)},
    )


@pytest.fixture
def device_config():
    return DeviceConfig(friendly_name="hallway", qos=1)
