"""Connection parameters for the two transports.

A read is driven by one fully resolved connection-parameter value.
:class:`ModbusParams` selects the Modbus TCP path and :class:`MqttParams`
selects the MQTT path.  The ``transport`` tag on each lets callers serialize
and restore them without knowing the concrete type.

The library never reads environment variables itself; callers (such as the
CLI) resolve their own configuration and pass it to
:func:`build_connection_params`.

Example:
    params = build_connection_params(transport="mqtt", host="192.168.1.50",
                                     portal_id="c0619ab1c2d3")
    params.validate()
    data = params.to_dict()
    restored = connection_params_from_dict(data)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pyvictron.constants import DEFAULT_MODBUS_PORT, DEFAULT_MQTT_PORT, DEFAULT_UNIT_ID
from pyvictron.exceptions import ConfigurationError


class TransportType(str, Enum):
    """Transport type enumeration.

    String enum for easy serialization and comparison.
    """

    # Modbus TCP, raw holding registers
    MODBUS = "modbus"

    # MQTT on the GX device's local broker
    MQTT = "mqtt"


@dataclass
class ModbusParams:
    """Parameters for a Modbus TCP read.

    Attributes:
        host: IP address or hostname of the GX device
        port: TCP port (default 502)
        unit_id: Modbus unit ID of the target device
    """

    host: str
    port: int = DEFAULT_MODBUS_PORT
    unit_id: int = DEFAULT_UNIT_ID
    transport: TransportType = field(default=TransportType.MODBUS, init=False)

    def validate(self) -> None:
        """Validate configuration completeness.

        Raises:
            ConfigurationError: If the host is missing or a number is out of range
        """
        if not self.host:
            raise ConfigurationError("Host is required for Modbus transport")
        if not 0 < self.port < 65536:
            raise ConfigurationError(f"Invalid Modbus port: {self.port}")
        if not 0 <= self.unit_id <= 255:
            raise ConfigurationError(f"Invalid unit ID: {self.unit_id}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "transport": self.transport.value,
            "host": self.host,
            "port": self.port,
            "unit_id": self.unit_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ModbusParams:
        return cls(
            host=data.get("host", ""),
            port=data.get("port", DEFAULT_MODBUS_PORT),
            unit_id=data.get("unit_id", DEFAULT_UNIT_ID),
        )


@dataclass
class MqttParams:
    """Parameters for an MQTT read.

    Attributes:
        host: Broker host, normally the GX device itself
        port: Broker port (default 1883)
        portal_id: Portal ID of the GX device (see
            :meth:`MqttClient.discover_portal_id`)
        device_instance: Device instance to read; None subscribes to all
            instances of the service and takes the first one seen
    """

    host: str
    portal_id: str
    port: int = DEFAULT_MQTT_PORT
    device_instance: str | None = None
    transport: TransportType = field(default=TransportType.MQTT, init=False)

    def validate(self) -> None:
        """Validate configuration completeness.

        Raises:
            ConfigurationError: If the host or portal ID is missing
        """
        if not self.host:
            raise ConfigurationError("MQTT host is required for MQTT transport")
        if not self.portal_id:
            raise ConfigurationError("Portal ID is required for MQTT transport")
        if not 0 < self.port < 65536:
            raise ConfigurationError(f"Invalid MQTT port: {self.port}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "transport": self.transport.value,
            "host": self.host,
            "port": self.port,
            "portal_id": self.portal_id,
            "device_instance": self.device_instance,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MqttParams:
        instance = data.get("device_instance")
        return cls(
            host=data.get("host", ""),
            port=data.get("port", DEFAULT_MQTT_PORT),
            portal_id=data.get("portal_id", ""),
            device_instance=str(instance) if instance is not None else None,
        )


ConnectionParams = ModbusParams | MqttParams


def connection_params_from_dict(data: dict[str, Any]) -> ConnectionParams:
    """Restore parameters serialized with ``to_dict()``.

    Raises:
        ConfigurationError: If the transport tag is unknown
    """
    try:
        transport = TransportType(data.get("transport", TransportType.MODBUS.value))
    except ValueError as err:
        raise ConfigurationError(f"Invalid transport: {data.get('transport')!r}") from err
    if transport is TransportType.MQTT:
        return MqttParams.from_dict(data)
    return ModbusParams.from_dict(data)


def build_connection_params(
    *,
    transport: str | TransportType | None = None,
    host: str | None = None,
    port: int | None = None,
    unit_id: int | None = None,
    mqtt_host: str | None = None,
    mqtt_port: int | None = None,
    portal_id: str | None = None,
    device_instance: str | int | None = None,
) -> ConnectionParams:
    """Resolve caller input into validated connection parameters.

    Modbus is the default transport.  For MQTT, *mqtt_host* and *mqtt_port*
    take precedence over *host* and the default broker port.

    Raises:
        ConfigurationError: If the transport is unknown or a required value
            is missing
    """
    try:
        kind = TransportType(transport or TransportType.MODBUS)
    except ValueError as err:
        raise ConfigurationError(
            f'Invalid transport: "{transport}" - must be "modbus" or "mqtt"'
        ) from err

    params: ConnectionParams
    if kind is TransportType.MQTT:
        params = MqttParams(
            host=mqtt_host or host or "",
            port=mqtt_port or DEFAULT_MQTT_PORT,
            portal_id=portal_id or "",
            device_instance=str(device_instance) if device_instance is not None else None,
        )
    else:
        params = ModbusParams(
            host=host or "",
            port=port or DEFAULT_MODBUS_PORT,
            unit_id=unit_id if unit_id is not None else DEFAULT_UNIT_ID,
        )
    params.validate()
    return params


__all__ = [
    "ConnectionParams",
    "ModbusParams",
    "MqttParams",
    "TransportType",
    "build_connection_params",
    "connection_params_from_dict",
]
