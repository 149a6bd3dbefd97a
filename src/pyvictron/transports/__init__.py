"""Transport layer for pyvictron.

Two transports read the same register catalog and return the same result
shape:

- Modbus TCP (:class:`ModbusClient`): raw holding registers, decoded and
  scaled locally.
- MQTT (:class:`MqttClient`): values published by Venus OS, already scaled.

Usage:
    from pyvictron.transports import ModbusParams, MqttParams, read_category

    results = await read_category(
        ModbusParams(host="192.168.1.50", unit_id=225), battery
    )
    results = await read_category(
        MqttParams(host="192.168.1.50", portal_id="c0619ab1c2d3",
                   device_instance="512"),
        battery,
    )  # Same result shape!
"""

from __future__ import annotations

from .batching import batch_span, plan_batches
from .config import (
    ConnectionParams,
    ModbusParams,
    MqttParams,
    TransportType,
    build_connection_params,
    connection_params_from_dict,
)
from .data import RegisterReadResult
from .decoding import (
    decode_numeric,
    decode_string,
    decode_value,
    is_disconnected,
    resolve_enum_label,
)
from .exceptions import (
    ModbusExceptionError,
    TransportConnectionError,
    TransportError,
    TransportReadError,
    TransportTimeoutError,
)
from .factory import read_category, read_device_registers
from .modbus import ClientState, ModbusClient, modbus_session
from .mqtt import MqttClient, ServiceInstance, mqtt_session
from .topics import build_topic, parse_payload, parse_topic, service_type_from_service

__all__ = [
    # Dispatcher (recommended)
    "read_category",
    "read_device_registers",
    # Connection parameters
    "ConnectionParams",
    "ModbusParams",
    "MqttParams",
    "TransportType",
    "build_connection_params",
    "connection_params_from_dict",
    # Transport implementations
    "ClientState",
    "ModbusClient",
    "MqttClient",
    "ServiceInstance",
    "modbus_session",
    "mqtt_session",
    # Data model
    "RegisterReadResult",
    # Decoding and batching
    "batch_span",
    "decode_numeric",
    "decode_string",
    "decode_value",
    "is_disconnected",
    "plan_batches",
    "resolve_enum_label",
    # Topics
    "build_topic",
    "parse_payload",
    "parse_topic",
    "service_type_from_service",
    # Exceptions
    "ModbusExceptionError",
    "TransportConnectionError",
    "TransportError",
    "TransportReadError",
    "TransportTimeoutError",
]
