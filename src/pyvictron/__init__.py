"""Python client library for reading Victron GX devices over Modbus TCP and MQTT.

Usage:
    Read a register category:
        from pyvictron import ModbusParams, find_category, load_catalog, read_category

        catalog = load_catalog("ccgx-registers.json")
        battery = find_category(catalog, "battery")
        results = await read_category(
            ModbusParams(host="192.168.1.50", unit_id=225), battery
        )
        for result in results:
            print(result.description, result.value, result.unit)

    Same read over MQTT:
        from pyvictron import MqttClient, MqttParams

        portal_id = await MqttClient.discover_portal_id("192.168.1.50")
        results = await read_category(
            MqttParams(host="192.168.1.50", portal_id=portal_id), battery
        )
"""

from __future__ import annotations

from .exceptions import ConfigurationError, VictronError
from .registers import (
    DataType,
    RegisterCategory,
    RegisterDefinition,
    find_category,
    load_catalog,
    load_catalogs,
)
from .transports import (
    ModbusClient,
    ModbusExceptionError,
    ModbusParams,
    MqttClient,
    MqttParams,
    RegisterReadResult,
    TransportConnectionError,
    TransportError,
    TransportReadError,
    TransportTimeoutError,
    TransportType,
    build_connection_params,
    read_category,
    read_device_registers,
)

__version__ = "0.1.0"
__all__ = [
    "read_category",
    "read_device_registers",
    "build_connection_params",
    "ModbusParams",
    "MqttParams",
    "TransportType",
    "ModbusClient",
    "MqttClient",
    # Catalog
    "DataType",
    "RegisterCategory",
    "RegisterDefinition",
    "RegisterReadResult",
    "find_category",
    "load_catalog",
    "load_catalogs",
    # Exceptions
    "VictronError",
    "ConfigurationError",
    "TransportError",
    "TransportConnectionError",
    "TransportReadError",
    "TransportTimeoutError",
    "ModbusExceptionError",
]
