"""
Sensor data types and the sub-sensor catalogue.

A physical Xiaomi/Aqara device is announced to Home Assistant as a handful of
virtual sub-sensors. Which ones depends on the device family, which in turn
is derived from the model string reported by the gateway.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


@dataclass
class Sensor:
    """A sensor as reported by the gateway."""

    sid: str
    model: str
    data: dict = field(default_factory=dict)

    @classmethod
    def from_report(cls, report: dict) -> "Sensor":
        """Build a sensor from a gateway report dict.

        Raises:
            ValueError: if the report has no sid or model.
        """
        sid = report.get("sid")
        model = report.get("model")
        if not sid or not model:
            raise ValueError(f"Report is missing sid or model: {report}")
        data = report.get("data") or {}
        if not isinstance(data, dict):
            raise ValueError(f"Report data for {sid} is not an object: {data!r}")
        return cls(sid=str(sid), model=str(model), data=data)


class SensorFamily(Enum):
    """Device families with a known set of sub-sensors."""

    MOTION = "motion"
    WEATHER = "weather"
    MAGNET = "magnet"


MODEL_FAMILIES = {
    "motion": SensorFamily.MOTION,
    "sensor_motion.aq2": SensorFamily.MOTION,
    "sensor_ht": SensorFamily.WEATHER,
    "weather.v1": SensorFamily.WEATHER,
    "magnet": SensorFamily.MAGNET,
    "sensor_magnet.aq2": SensorFamily.MAGNET,
}

# Weather models that also measure barometric pressure
PRESSURE_MODELS = frozenset({"weather.v1"})


def family_for_model(model: str) -> Optional[SensorFamily]:
    """Map a model string to its family, or None when unsupported."""
    return MODEL_FAMILIES.get(model)


@dataclass(frozen=True)
class SubSensor:
    """Static description of one virtual sub-sensor."""

    subtype: str
    component: str
    value_field: str
    device_class: Optional[str] = None
    unit: Optional[str] = None
    icon: Optional[str] = None
    payload_on: Optional[bool] = None
    payload_off: Optional[bool] = None

    @property
    def value_template(self) -> str:
        return f"{{{{ value_json.{self.value_field} }}}}"

    def fields(self) -> dict:
        """Type-specific discovery fields, omitting the ones that do not apply."""
        result = {}
        if self.payload_on is not None:
            result["payload_on"] = self.payload_on
            result["payload_off"] = self.payload_off
        if self.unit is not None:
            result["unit_of_measurement"] = self.unit
        if self.device_class is not None:
            result["device_class"] = self.device_class
        if self.icon is not None:
            result["icon"] = self.icon
        result["value_template"] = self.value_template
        return result


OCCUPANCY = SubSensor(
    subtype="occupancy",
    component="binary_sensor",
    value_field="occupancy",
    device_class="motion",
    payload_on=True,
    payload_off=False,
)

# contact=true means the door is closed
CONTACT = SubSensor(
    subtype="contact",
    component="binary_sensor",
    value_field="contact",
    device_class="door",
    payload_on=False,
    payload_off=True,
)

BATTERY = SubSensor(
    subtype="battery",
    component="sensor",
    value_field="battery",
    device_class="battery",
    unit="%",
)

VOLTAGE = SubSensor(
    subtype="voltage",
    component="sensor",
    value_field="voltage",
    unit="mV",
    icon="mdi:battery-charging",
)

TEMPERATURE = SubSensor(
    subtype="temperature",
    component="sensor",
    value_field="temperature",
    device_class="temperature",
    unit="°C",
)

HUMIDITY = SubSensor(
    subtype="humidity",
    component="sensor",
    value_field="humidity",
    device_class="humidity",
    unit="%",
)

PRESSURE = SubSensor(
    subtype="pressure",
    component="sensor",
    value_field="pressure",
    device_class="pressure",
    unit="hPa",
)


def sub_sensors_for(family: SensorFamily, model: str) -> list:
    """Ordered sub-sensors announced for a device of the given family."""
    if family is SensorFamily.MOTION:
        primary = [OCCUPANCY]
    elif family is SensorFamily.MAGNET:
        primary = [CONTACT]
    elif family is SensorFamily.WEATHER:
        primary = [TEMPERATURE, HUMIDITY]
        if model in PRESSURE_MODELS:
            primary.append(PRESSURE)
    else:
        raise ValueError(f"Unhandled sensor family: {family}")
    return primary + [BATTERY, VOLTAGE]
