"""Transport-agnostic read operation.

:func:`read_device_registers` is the single entry point for reading
register values.  The concrete transport is chosen by the type of the
connection parameters:

- :class:`ModbusParams`: connect, select the unit, read holding registers
  in batches, close.
- :class:`MqttParams`: connect to the broker, collect the published values of
  one device instance (or of the first instance seen), disconnect.

Either way the result is one :class:`RegisterReadResult` per definition, in
the order given.  A connection is opened and closed for every call.

Example:
    params = ModbusParams(host="192.168.1.50", unit_id=225)
    results = await read_category(params, battery_category)
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from .config import ConnectionParams, ModbusParams, MqttParams
from .modbus import modbus_session
from .mqtt import mqtt_session

if TYPE_CHECKING:
    from pyvictron.registers.definitions import RegisterCategory, RegisterDefinition

    from .data import RegisterReadResult

_LOGGER = logging.getLogger(__name__)


async def read_device_registers(
    params: ConnectionParams,
    service: str,
    registers: Sequence[RegisterDefinition],
) -> list[RegisterReadResult]:
    """Read *registers* of *service* over the transport selected by *params*.

    Args:
        params: Resolved connection parameters
        service: Service name of the register category
            (``com.victronenergy.battery``); used to build MQTT topics
        registers: Definitions to read

    Returns:
        One result per definition, in input order.

    Raises:
        ConfigurationError: If *params* is incomplete
        TransportConnectionError: If the device or broker cannot be reached
    """
    params.validate()
    _LOGGER.debug(
        "Reading %d registers of %s via %s at %s:%s",
        len(registers),
        service,
        params.transport.value,
        params.host,
        params.port,
    )

    if isinstance(params, ModbusParams):
        async with modbus_session(params.host, params.port, params.unit_id) as client:
            return await client.read_registers(registers)

    assert isinstance(params, MqttParams)
    async with mqtt_session(params.host, params.port, params.portal_id) as client:
        if params.device_instance is not None:
            return await client.read_registers(service, params.device_instance, registers)
        return await client.read_registers_wildcard(service, registers)


async def read_category(
    params: ConnectionParams,
    category: RegisterCategory,
) -> list[RegisterReadResult]:
    """Read every register of *category*.

    Args:
        params: Resolved connection parameters
        category: Category whose registers to read

    Returns:
        One result per register of the category, in catalog order.
    """
    return await read_device_registers(params, category.service, category.registers)


__all__ = ["read_category", "read_device_registers"]
