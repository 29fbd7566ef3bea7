"""
Bridge configuration.
Loads settings from a JSON file, merging in defaults for missing keys.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from . import __version__
from .constants import DEFAULT_BASE_TOPIC

logger = logging.getLogger(__name__)

DEFAULT_APP_NAME = "xiaomi-bridge"
DEFAULT_QOS = 0


@dataclass(frozen=True)
class AppConfig:
    name: str = DEFAULT_APP_NAME
    version: str = __version__


@dataclass(frozen=True)
class MqttConfig:
    host: str = "localhost"
    port: int = 1883
    username: str = ""
    password: str = ""
    base_topic: str = DEFAULT_BASE_TOPIC
    publish_timeout: Optional[float] = None


@dataclass(frozen=True)
class DeviceConfig:
    """Per-device settings."""

    friendly_name: str
    qos: int = DEFAULT_QOS


@dataclass
class Config:
    """Process-wide bridge configuration."""

    app: AppConfig = field(default_factory=AppConfig)
    mqtt: MqttConfig = field(default_factory=MqttConfig)
    homeassistant: bool = True
    devices: dict = field(default_factory=dict)

    def device_config(self, sid: str) -> DeviceConfig:
        """Configured settings for a device, or defaults named after its sid."""
        return self.devices.get(sid) or DeviceConfig(friendly_name=sid)


def get_default_settings() -> dict:
    """Get default settings."""
    return {
        "app": {
            "name": DEFAULT_APP_NAME,
            "version": __version__,
        },
        "homeassistant": True,
        "mqtt": {
            "host": "localhost",
            "port": 1883,
            "username": "",
            "password": "",
            "base_topic": DEFAULT_BASE_TOPIC,
            "publish_timeout": None,
        },
        "devices": {},
    }


def merge_settings(loaded: dict) -> dict:
    """Merge loaded settings with defaults to ensure all keys exist."""
    settings = get_default_settings()
    for key, value in loaded.items():
        if isinstance(settings.get(key), dict) and isinstance(value, dict):
            settings[key].update(value)
        else:
            settings[key] = value
    return settings


def _parse_qos(sid: str, value) -> int:
    qos = int(value)
    if qos not in (0, 1, 2):
        raise ValueError(f"Invalid qos {value!r} for device {sid}")
    return qos


def _parse_publish_timeout(value) -> Optional[float]:
    if value is None:
        return None
    timeout = float(value)
    if timeout <= 0:
        raise ValueError(f"Invalid publish_timeout {value!r}, must be positive")
    return timeout


def config_from_settings(settings: dict) -> Config:
    """Build a Config from a (merged) settings dict.

    Raises:
        ValueError: on a malformed section, device entry, qos level or flag.
    """
    settings = merge_settings(settings)
    for section in ("app", "mqtt", "devices"):
        if not isinstance(settings[section], dict):
            raise ValueError(f"Settings section {section!r} must be an object")
    if not isinstance(settings["homeassistant"], bool):
        raise ValueError(f"homeassistant must be true or false, got {settings['homeassistant']!r}")
    app = settings["app"]
    mqtt = settings["mqtt"]

    devices = {}
    for sid, device in settings["devices"].items():
        if not isinstance(device, dict):
            raise ValueError(f"Device entry for {sid} must be an object")
        devices[sid] = DeviceConfig(
            friendly_name=str(device.get("friendly_name") or sid),
            qos=_parse_qos(sid, device.get("qos", DEFAULT_QOS)),
        )

    return Config(
        app=AppConfig(name=str(app["name"]), version=str(app["version"])),
        mqtt=MqttConfig(
            host=str(mqtt["host"]),
            port=int(mqtt["port"]),
            username=str(mqtt["username"] or ""),
            password=str(mqtt["password"] or ""),
            base_topic=str(mqtt["base_topic"]),
            publish_timeout=_parse_publish_timeout(mqtt["publish_timeout"]),
        ),
        homeassistant=settings["homeassistant"],
        devices=devices,
    )


def load_config(settings_path: Path) -> Config:
    """Load configuration from a JSON settings file.

    A missing file yields the defaults; an unreadable or invalid one is
    logged and also yields the defaults.
    """
    if not settings_path.exists():
        logger.info(f"No settings file at {settings_path}, using defaults")
        return config_from_settings({})

    try:
        with open(settings_path, "r") as f:
            loaded = json.load(f)
        if not isinstance(loaded, dict):
            raise ValueError("settings root must be an object")
        config = config_from_settings(loaded)
        logger.info(f"Settings loaded from {settings_path}")
        return config
    except (OSError, ValueError, TypeError) as e:
        logger.error(f"Error loading settings from {settings_path}: {e}")
        return config_from_settings({})
