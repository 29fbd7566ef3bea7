"""Tests for Home Assistant discovery propagation."""

import asyncio
import logging
from dataclasses import replace

import pytest

from conftest import RecordingClient
from xiaomi_bridge import DeviceConfig, DiscoveryPropagator, PropagatedSet, PublishError, Sensor
from xiaomi_bridge import discovery

SID = "158d0001a2b3c4"
TOPIC = "xiaomi/hallway"


async def propagate(client, config, model, device_config=None, sid=SID):
    propagator = DiscoveryPropagator(client, config)
    device_config = device_config or DeviceConfig(friendly_name="hallway", qos=1)
    await propagator.propagate(Sensor(sid=sid, model=model), device_config, TOPIC)
    return propagator


class TestPropagatedSet:

    def test_add_reports_first_insert_only(self):
        propagated = PropagatedSet()
        assert propagated.add("a") is True
        assert propagated.add("a") is False
        assert "a" in propagated
        assert len(propagated) == 1


class TestIdempotence:

    @pytest.mark.asyncio
    async def test_second_call_publishes_nothing(self, client, config, device_config):
        propagator = DiscoveryPropagator(client, config)
        sensor = Sensor(sid=SID, model="motion")

        await propagator.propagate(sensor, device_config, TOPIC)
        await propagator.propagate(sensor, device_config, TOPIC)

        assert len(client.published) == 3

    @pytest.mark.asyncio
    async def test_concurrent_calls_for_same_sensor_publish_once(self, client, config, device_config):
        propagator = DiscoveryPropagator(client, config)
        sensor = Sensor(sid=SID, model="weather.v1")

        await asyncio.gather(*[propagator.propagate(sensor, device_config, TOPIC) for _ in range(5)])

        assert len(client.published) == 5

    @pytest.mark.asyncio
    async def test_disabled_integration_never_publishes(self, client, config, device_config):
        config.homeassistant = False
        propagator = DiscoveryPropagator(client, config)

        for model in ("motion", "weather.v1", "magnet", "unknown_model_x"):
            await propagator.propagate(Sensor(sid=model, model=model), device_config, TOPIC)

        assert client.published == []
        assert propagator.has_been_propagated(Sensor(sid="never-seen", model="motion"))

    @pytest.mark.asyncio
    async def test_failed_sensor_stays_propagated(self, config, device_config):
        client = RecordingClient(fail_on="/battery/")
        propagator = DiscoveryPropagator(client, config)
        sensor = Sensor(sid=SID, model="motion")

        with pytest.raises(PublishError):
            await propagator.propagate(sensor, device_config, TOPIC)
        assert client.topics == [f"homeassistant/binary_sensor/{SID}/occupancy/config"]

        await propagator.propagate(sensor, device_config, TOPIC)
        assert len(client.published) == 1
        assert propagator.has_been_propagated(sensor)


class TestDispatch:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("model", ["motion", "sensor_motion.aq2"])
    async def test_motion(self, client, config, model):
        await propagate(client, config, model)

        assert client.topics == [
            f"homeassistant/binary_sensor/{SID}/occupancy/config",
            f"homeassistant/sensor/{SID}/battery/config",
            f"homeassistant/sensor/{SID}/voltage/config",
        ]

    @pytest.mark.asyncio
    async def test_weather_v1_includes_pressure(self, client, config):
        await propagate(client, config, "weather.v1")

        assert client.topics == [
            f"homeassistant/sensor/{SID}/temperature/config",
            f"homeassistant/sensor/{SID}/humidity/config",
            f"homeassistant/sensor/{SID}/pressure/config",
            f"homeassistant/sensor/{SID}/battery/config",
            f"homeassistant/sensor/{SID}/voltage/config",
        ]

    @pytest.mark.asyncio
    async def test_sensor_ht_omits_pressure(self, client, config):
        await propagate(client, config, "sensor_ht")

        assert len(client.published) == 4
        assert not any("pressure" in topic for topic in client.topics)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("model", ["magnet", "sensor_magnet.aq2"])
    async def test_magnet(self, client, config, model):
        await propagate(client, config, model)

        assert client.topics == [
            f"homeassistant/binary_sensor/{SID}/contact/config",
            f"homeassistant/sensor/{SID}/battery/config",
            f"homeassistant/sensor/{SID}/voltage/config",
        ]

    @pytest.mark.asyncio
    async def test_unknown_model_warns_without_publishing(self, client, config, caplog):
        with caplog.at_level(logging.WARNING, logger="xiaomi_bridge.discovery"):
            propagator = await propagate(client, config, "unknown_model_x")

        assert client.published == []
        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1
        assert "unknown_model_x" in warnings[0].getMessage()
        assert propagator.has_been_propagated(Sensor(sid=SID, model="unknown_model_x"))


class TestPayloads:

    @pytest.mark.asyncio
    async def test_occupancy_payload(self, client, config):
        await propagate(client, config, "motion")

        assert client.published[0]["payload"] == {
            "state_topic": TOPIC,
            "json_attributes_topic": TOPIC,
            "device": {
                "identifiers": [f"xiaomi-bridge_{SID}"],
                "name": "hallway",
                "sw_version": "xiaomi-bridge 1.2.3",
                "model": "MiJia human body movement sensor (RTCGQ01LM)",
                "manufacturer": "Xiaomi",
            },
            "availability_topic": "xiaomi/bridge/state",
            "payload_on": True,
            "payload_off": False,
            "device_class": "motion",
            "value_template": "{{ value_json.occupancy }}",
            "unique_id": f"{SID}_occupancy_xiaomi-bridge",
            "name": "hallway_occupancy",
        }

    @pytest.mark.asyncio
    async def test_contact_payload_is_inverted(self, client, config):
        await propagate(client, config, "sensor_magnet.aq2")

        payload = client.published[0]["payload"]
        assert payload["payload_on"] is False
        assert payload["payload_off"] is True
        assert payload["device_class"] == "door"
        assert payload["value_template"] == "{{ value_json.contact }}"
        assert payload["device"]["model"] == "Aqara door & window contact sensor (MCCGQ11LM)"

    @pytest.mark.asyncio
    async def test_voltage_payload_has_icon_and_no_device_class(self, client, config):
        await propagate(client, config, "motion")

        payload = client.published[2]["payload"]
        assert payload["unit_of_measurement"] == "mV"
        assert payload["icon"] == "mdi:battery-charging"
        assert "device_class" not in payload
        assert payload["name"] == "hallway_voltage"

    @pytest.mark.asyncio
    async def test_weather_units(self, client, config):
        await propagate(client, config, "weather.v1")

        fields = {
            message["topic"].split("/")[3]: (
                message["payload"]["unit_of_measurement"],
                message["payload"].get("device_class"),
                message["payload"]["value_template"],
            )
            for message in client.published
        }
        assert fields == {
            "temperature": ("°C", "temperature", "{{ value_json.temperature }}"),
            "humidity": ("%", "humidity", "{{ value_json.humidity }}"),
            "pressure": ("hPa", "pressure", "{{ value_json.pressure }}"),
            "battery": ("%", "battery", "{{ value_json.battery }}"),
            "voltage": ("mV", None, "{{ value_json.voltage }}"),
        }

    def test_device_model_defaults_to_unknown(self, client, config, device_config):
        propagator = DiscoveryPropagator(client, config)

        payload = propagator.get_base_payload(Sensor(sid=SID, model="lumi.new"), device_config, TOPIC)

        assert payload["device"]["model"] == "unknown"

    @pytest.mark.asyncio
    async def test_unmapped_device_name_still_publishes(self, client, config, monkeypatch):
        monkeypatch.setattr(discovery, "DEVICE_NAMES", {})

        await propagate(client, config, "sensor_ht")

        assert len(client.published) == 4
        assert {m["payload"]["device"]["model"] for m in client.published} == {"unknown"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("qos", [0, 1, 2])
    @pytest.mark.parametrize("model", ["motion", "weather.v1", "magnet"])
    async def test_retain_and_qos(self, client, config, model, qos):
        device_config = DeviceConfig(friendly_name="hallway", qos=qos)

        await propagate(client, config, model, device_config=device_config)

        assert client.published
        assert all(message["retain"] is True for message in client.published)
        assert all(message["qos"] == qos for message in client.published)

    @pytest.mark.asyncio
    async def test_availability_follows_base_topic(self, client, config):
        config.mqtt = replace(config.mqtt, base_topic="gateway")

        await propagate(client, config, "magnet")

        assert {m["payload"]["availability_topic"] for m in client.published} == {"gateway/bridge/state"}
