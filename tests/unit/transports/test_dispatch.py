"""Tests for the transport-agnostic read entry point."""

from __future__ import annotations

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from pyvictron.exceptions import ConfigurationError
from pyvictron.registers.definitions import RegisterCategory, RegisterDefinition
from pyvictron.transports.config import ModbusParams, MqttParams
from pyvictron.transports.data import RegisterReadResult
from pyvictron.transports.factory import read_category, read_device_registers

REGISTERS = (
    RegisterDefinition(address=259, name="Voltage", unit="V", dbus_path="/Dc/0/Voltage"),
    RegisterDefinition(address=266, name="SOC", unit="%", dbus_path="/Soc"),
)

RESULTS = [
    RegisterReadResult(name="Voltage", description="", raw_value=5320, value=53.2, unit="V"),
    RegisterReadResult(name="SOC", description="", raw_value=482, value=48.2, unit="%"),
]


def _session_factory(client: MagicMock) -> MagicMock:
    """Build a mock session factory yielding *client*."""
    calls = MagicMock()

    @asynccontextmanager
    async def session(*args, **kwargs):
        calls(*args, **kwargs)
        yield client

    calls.session = session
    return calls


class TestReadDeviceRegisters:
    """Tests for read_device_registers."""

    @pytest.mark.asyncio
    async def test_modbus_params_use_modbus_session(self) -> None:
        client = MagicMock()
        client.read_registers = AsyncMock(return_value=RESULTS)
        factory = _session_factory(client)
        params = ModbusParams(host="192.168.1.50", port=5020, unit_id=225)

        with patch("pyvictron.transports.factory.modbus_session", factory.session):
            results = await read_device_registers(params, "com.victronenergy.battery", REGISTERS)

        assert results == RESULTS
        factory.assert_called_once_with("192.168.1.50", 5020, 225)
        client.read_registers.assert_awaited_once_with(REGISTERS)

    @pytest.mark.asyncio
    async def test_mqtt_params_with_instance(self) -> None:
        client = MagicMock()
        client.read_registers = AsyncMock(return_value=RESULTS)
        client.read_registers_wildcard = AsyncMock()
        factory = _session_factory(client)
        params = MqttParams(host="gx", portal_id="abc123", device_instance="512")

        with patch("pyvictron.transports.factory.mqtt_session", factory.session):
            results = await read_device_registers(params, "com.victronenergy.battery", REGISTERS)

        assert results == RESULTS
        factory.assert_called_once_with("gx", 1883, "abc123")
        client.read_registers.assert_awaited_once_with(
            "com.victronenergy.battery", "512", REGISTERS
        )
        client.read_registers_wildcard.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_mqtt_params_without_instance_use_wildcard(self) -> None:
        client = MagicMock()
        client.read_registers = AsyncMock()
        client.read_registers_wildcard = AsyncMock(return_value=RESULTS)
        factory = _session_factory(client)
        params = MqttParams(host="gx", portal_id="abc123")

        with patch("pyvictron.transports.factory.mqtt_session", factory.session):
            results = await read_device_registers(params, "com.victronenergy.battery", REGISTERS)

        assert results == RESULTS
        client.read_registers_wildcard.assert_awaited_once_with(
            "com.victronenergy.battery", REGISTERS
        )
        client.read_registers.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalid_params_fail_before_connecting(self) -> None:
        factory = _session_factory(MagicMock())

        with (
            patch("pyvictron.transports.factory.mqtt_session", factory.session),
            pytest.raises(ConfigurationError, match="Portal ID is required"),
        ):
            await read_device_registers(MqttParams(host="gx", portal_id=""), "battery", REGISTERS)

        factory.assert_not_called()

    @pytest.mark.asyncio
    async def test_read_category(self) -> None:
        client = MagicMock()
        client.read_registers = AsyncMock(return_value=RESULTS)
        factory = _session_factory(client)
        category = RegisterCategory(
            service="com.victronenergy.battery",
            description="Battery monitor",
            default_unit_id=225,
            registers=REGISTERS,
        )

        with patch("pyvictron.transports.factory.modbus_session", factory.session):
            results = await read_category(ModbusParams(host="gx"), category)

        assert results == RESULTS
        client.read_registers.assert_awaited_once_with(REGISTERS)
