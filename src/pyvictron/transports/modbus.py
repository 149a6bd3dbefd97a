"""Modbus TCP client for GX devices.

This module provides :class:`ModbusClient`, which owns one Modbus TCP
connection and reads catalog registers from it.  Register lists are read
in as few requests as the batching rules allow (see
:mod:`pyvictron.transports.batching`); when a batch fails the client falls
back to reading its registers one at a time, and a register that still
cannot be read degrades to ``"Error reading register"`` rather than aborting
the call.

Reads on one client are strictly sequential.  Modbus TCP has no pipelining,
and the GX device serves one request per connection at a time.

Example:
    async with modbus_session("192.168.1.50", 502, unit_id=225) as client:
        results = await client.read_registers(battery.registers)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from pymodbus.exceptions import ConnectionException, ModbusException, ModbusIOException

from pyvictron.constants import (
    DEFAULT_MODBUS_PORT,
    DEFAULT_UNIT_ID,
    MODBUS_CONNECT_TIMEOUT,
    MODBUS_EXCEPTION_CODES,
    MODBUS_READ_TIMEOUT,
    UNKNOWN_EXCEPTION_DESCRIPTION,
)

from .batching import batch_span, plan_batches
from .decoding import build_result, error_result
from .exceptions import (
    ModbusExceptionError,
    TransportConnectionError,
    TransportReadError,
    TransportTimeoutError,
)

if TYPE_CHECKING:
    from pymodbus.client import AsyncModbusTcpClient

    from pyvictron.registers.definitions import RegisterDefinition

    from .data import RegisterReadResult

_LOGGER = logging.getLogger(__name__)


class ClientState(StrEnum):
    """Connection lifecycle of a :class:`ModbusClient`."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    READING = "reading"
    CLOSED = "closed"


class ModbusClient:
    """Modbus TCP client reading holding registers from a GX device.

    Example:
        client = ModbusClient()
        await client.connect("192.168.1.50")
        client.set_unit_id(100)
        try:
            results = await client.read_registers(system.registers)
        finally:
            await client.close()
    """

    def __init__(
        self,
        *,
        connect_timeout: float = MODBUS_CONNECT_TIMEOUT,
        read_timeout: float = MODBUS_READ_TIMEOUT,
    ) -> None:
        """Initialize the client without opening a connection.

        Args:
            connect_timeout: Seconds allowed to establish the TCP session
            read_timeout: Seconds allowed for each read request
        """
        self._connect_timeout = connect_timeout
        self._read_timeout = read_timeout
        self._unit_id = DEFAULT_UNIT_ID
        self._client: AsyncModbusTcpClient | None = None
        self._state = ClientState.DISCONNECTED
        self._lock = asyncio.Lock()
        self._host = ""
        self._port = DEFAULT_MODBUS_PORT

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> ClientState:
        """Current connection state."""
        return self._state

    @property
    def is_connected(self) -> bool:
        """True while a session is open."""
        return self._state in (ClientState.CONNECTED, ClientState.READING)

    @property
    def unit_id(self) -> int:
        """Modbus unit ID targeted by reads."""
        return self._unit_id

    # ------------------------------------------------------------------
    # Connection management
    # ------------------------------------------------------------------

    async def connect(self, host: str, port: int = DEFAULT_MODBUS_PORT) -> None:
        """Open the Modbus TCP session.

        Raises:
            TransportConnectionError: If the connection is refused or not
                established within the connect timeout
        """
        from pymodbus.client import AsyncModbusTcpClient

        self._host = host
        self._port = port
        self._state = ClientState.CONNECTING
        # Retries are a caller concern.
        self._client = AsyncModbusTcpClient(
            host=host,
            port=port,
            timeout=self._read_timeout,
            retries=0,
        )

        try:
            connected = await asyncio.wait_for(
                self._client.connect(),
                timeout=self._connect_timeout,
            )
        except TimeoutError as err:
            self._drop_client()
            _LOGGER.error("Connection timeout to Modbus device at %s:%s", host, port)
            raise TransportConnectionError(
                f"Connection timeout to {host}:{port} after {self._connect_timeout}s"
            ) from err
        except (ModbusException, OSError) as err:
            self._drop_client()
            _LOGGER.error("Failed to connect to Modbus device at %s:%s: %s", host, port, err)
            raise TransportConnectionError(f"Failed to connect to {host}:{port}: {err}") from err

        if not connected:
            self._drop_client()
            raise TransportConnectionError(f"Failed to connect to Modbus device at {host}:{port}")

        self._state = ClientState.CONNECTED
        _LOGGER.info("Modbus client connected to %s:%s", host, port)

    def set_unit_id(self, unit_id: int) -> None:
        """Select the unit ID for subsequent reads."""
        self._unit_id = unit_id

    async def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        if self._client is not None:
            self._client.close()
            self._client = None
            _LOGGER.debug("Modbus client disconnected from %s:%s", self._host, self._port)
        self._state = ClientState.CLOSED

    def _drop_client(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
        self._state = ClientState.DISCONNECTED

    async def __aenter__(self) -> ModbusClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def read_raw_registers(self, address: int, count: int) -> list[int]:
        """Read *count* holding registers starting at *address*.

        Raises:
            TransportConnectionError: If the client is not connected
            ModbusExceptionError: If the device returns an exception response
            TransportTimeoutError: If the device does not answer in time
            TransportReadError: For any other read failure
        """
        if self._client is None or not self.is_connected:
            raise TransportConnectionError("Modbus client not connected")

        async with self._lock:
            self._state = ClientState.READING
            try:
                result = await self._client.read_holding_registers(
                    address=address,
                    count=count,
                    device_id=self._unit_id,
                )
            except ConnectionException as err:
                self._state = ClientState.DISCONNECTED
                _LOGGER.error("Modbus connection to %s:%s lost: %s", self._host, self._port, err)
                raise TransportConnectionError(
                    f"Modbus connection lost reading address {address}: {err}"
                ) from err
            except ModbusIOException as err:
                if "timeout" in str(err).lower():
                    raise TransportTimeoutError(
                        f"Timeout reading registers at address {address}"
                    ) from err
                raise TransportReadError(
                    f"Modbus read error at address {address}: {err}"
                ) from err
            except TimeoutError as err:
                raise TransportTimeoutError(
                    f"Timeout reading registers at address {address}"
                ) from err
            except (ModbusException, OSError) as err:
                raise TransportReadError(
                    f"Modbus read error at address {address}: {err}"
                ) from err
            finally:
                if self._state == ClientState.READING:
                    self._state = ClientState.CONNECTED

        if result.isError():
            code = getattr(result, "exception_code", None)
            if isinstance(code, int):
                description = MODBUS_EXCEPTION_CODES.get(code, UNKNOWN_EXCEPTION_DESCRIPTION)
                raise ModbusExceptionError(code, address, description)
            raise TransportReadError(f"Modbus read error at address {address}: {result}")

        registers = getattr(result, "registers", None)
        if registers is None or len(registers) < count:
            raise TransportReadError(
                f"Modbus read error at address {address}: expected {count} registers, "
                f"got {0 if registers is None else len(registers)}"
            )
        return list(registers[:count])

    async def read_register(self, definition: RegisterDefinition) -> RegisterReadResult:
        """Read and decode a single register. Errors propagate."""
        words = await self.read_raw_registers(definition.address, definition.word_count)
        return build_result(definition, words)

    async def read_registers(
        self,
        definitions: Sequence[RegisterDefinition],
    ) -> list[RegisterReadResult]:
        """Read a list of registers using as few requests as possible.

        Returns:
            One result per definition, in the order given. Registers that
            could not be read carry ``"Error reading register"``.

        Raises:
            TransportConnectionError: If the client is not connected
        """
        if self._client is None or not self.is_connected:
            raise TransportConnectionError("Modbus client not connected")

        order = sorted(range(len(definitions)), key=lambda i: definitions[i].address)
        ordered = [definitions[i] for i in order]
        results: list[RegisterReadResult | None] = [None] * len(definitions)

        position = 0
        for batch in plan_batches(ordered):
            for result in await self._read_batch(batch):
                results[order[position]] = result
                position += 1

        return [result for result in results if result is not None]

    async def _read_batch(
        self,
        batch: list[RegisterDefinition],
    ) -> list[RegisterReadResult]:
        start, count = batch_span(batch)
        _LOGGER.debug(
            "Reading %d registers at %d (%d words) from unit %d",
            len(batch),
            start,
            count,
            self._unit_id,
        )
        try:
            words = await self.read_raw_registers(start, count)
        except TransportConnectionError:
            raise
        except (TransportReadError, TransportTimeoutError) as err:
            _LOGGER.warning(
                "Batch read at %d failed (%s), reading %d registers individually",
                start,
                err,
                len(batch),
            )
            return [await self._read_single(reg) for reg in batch]

        results = []
        for reg in batch:
            offset = reg.address - start
            results.append(build_result(reg, words[offset : offset + reg.word_count]))
        return results

    async def _read_single(self, definition: RegisterDefinition) -> RegisterReadResult:
        try:
            return await self.read_register(definition)
        except TransportConnectionError:
            raise
        except (TransportReadError, TransportTimeoutError) as err:
            _LOGGER.debug("Register %s at %d unreadable: %s", definition.name, definition.address, err)
            return error_result(definition)


@asynccontextmanager
async def modbus_session(
    host: str,
    port: int = DEFAULT_MODBUS_PORT,
    unit_id: int = DEFAULT_UNIT_ID,
    *,
    connect_timeout: float = MODBUS_CONNECT_TIMEOUT,
    read_timeout: float = MODBUS_READ_TIMEOUT,
) -> AsyncIterator[ModbusClient]:
    """Connect, select *unit_id*, and always close when the block exits."""
    client = ModbusClient(connect_timeout=connect_timeout, read_timeout=read_timeout)
    try:
        await client.connect(host, port)
        client.set_unit_id(unit_id)
        yield client
    finally:
        await client.close()


__all__ = ["ClientState", "ModbusClient", "modbus_session"]
