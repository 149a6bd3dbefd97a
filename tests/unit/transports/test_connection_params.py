"""Tests for transport connection parameters."""

from __future__ import annotations

import pytest

from pyvictron.exceptions import ConfigurationError
from pyvictron.transports.config import (
    ModbusParams,
    MqttParams,
    TransportType,
    build_connection_params,
    connection_params_from_dict,
)


class TestTransportType:
    """Tests for TransportType enum."""

    def test_values(self) -> None:
        assert TransportType.MODBUS.value == "modbus"
        assert TransportType.MQTT.value == "mqtt"

    def test_string_comparison(self) -> None:
        assert TransportType.MQTT == "mqtt"


class TestModbusParams:
    """Tests for ModbusParams."""

    def test_defaults(self) -> None:
        params = ModbusParams(host="192.168.1.50")

        assert params.port == 502
        assert params.unit_id == 100
        assert params.transport == TransportType.MODBUS

    def test_validate_requires_host(self) -> None:
        with pytest.raises(ConfigurationError, match="Host is required"):
            ModbusParams(host="").validate()

    @pytest.mark.parametrize("unit_id", [-1, 256])
    def test_validate_unit_id_range(self, unit_id: int) -> None:
        with pytest.raises(ConfigurationError, match="unit ID"):
            ModbusParams(host="gx", unit_id=unit_id).validate()

    def test_validate_port_range(self) -> None:
        with pytest.raises(ConfigurationError, match="port"):
            ModbusParams(host="gx", port=70000).validate()

    def test_dict_round_trip(self) -> None:
        params = ModbusParams(host="192.168.1.50", port=5020, unit_id=225)

        data = params.to_dict()

        assert data == {"transport": "modbus", "host": "192.168.1.50", "port": 5020, "unit_id": 225}
        assert connection_params_from_dict(data) == params


class TestMqttParams:
    """Tests for MqttParams."""

    def test_defaults(self) -> None:
        params = MqttParams(host="192.168.1.50", portal_id="abc123")

        assert params.port == 1883
        assert params.device_instance is None
        assert params.transport == TransportType.MQTT

    def test_validate_requires_host(self) -> None:
        with pytest.raises(ConfigurationError, match="MQTT host is required"):
            MqttParams(host="", portal_id="abc123").validate()

    def test_validate_requires_portal_id(self) -> None:
        with pytest.raises(ConfigurationError, match="Portal ID is required"):
            MqttParams(host="gx", portal_id="").validate()

    def test_dict_round_trip(self) -> None:
        params = MqttParams(host="gx", portal_id="abc123", device_instance="512")
        assert connection_params_from_dict(params.to_dict()) == params

    def test_from_dict_stringifies_instance(self) -> None:
        data = {"transport": "mqtt", "host": "gx", "portal_id": "abc123", "device_instance": 512}
        assert connection_params_from_dict(data).device_instance == "512"


class TestFromDict:
    """Tests for connection_params_from_dict."""

    def test_defaults_to_modbus(self) -> None:
        assert isinstance(connection_params_from_dict({"host": "gx"}), ModbusParams)

    def test_unknown_transport(self) -> None:
        with pytest.raises(ConfigurationError, match="Invalid transport"):
            connection_params_from_dict({"transport": "serial", "host": "gx"})


class TestBuildConnectionParams:
    """Tests for build_connection_params."""

    def test_default_is_modbus(self) -> None:
        params = build_connection_params(host="192.168.1.50")
        assert params == ModbusParams(host="192.168.1.50", port=502, unit_id=100)

    def test_modbus_overrides(self) -> None:
        params = build_connection_params(transport="modbus", host="gx", port=5020, unit_id=0)

        assert isinstance(params, ModbusParams)
        assert params.port == 5020
        assert params.unit_id == 0

    def test_mqtt_host_takes_precedence(self) -> None:
        params = build_connection_params(
            transport="mqtt",
            host="192.168.1.50",
            mqtt_host="broker.local",
            mqtt_port=8883,
            portal_id="abc123",
            device_instance=512,
        )

        assert params == MqttParams(
            host="broker.local", port=8883, portal_id="abc123", device_instance="512"
        )

    def test_mqtt_falls_back_to_host(self) -> None:
        params = build_connection_params(transport=TransportType.MQTT, host="gx", portal_id="p")
        assert params.host == "gx"
        assert params.port == 1883

    def test_mqtt_requires_portal_id(self) -> None:
        with pytest.raises(ConfigurationError, match="Portal ID is required"):
            build_connection_params(transport="mqtt", host="gx")

    def test_invalid_transport(self) -> None:
        with pytest.raises(ConfigurationError, match='must be "modbus" or "mqtt"'):
            build_connection_params(transport="bluetooth", host="gx")

    def test_configuration_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            build_connection_params(host="")
