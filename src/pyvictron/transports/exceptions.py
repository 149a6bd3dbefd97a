"""Transport-specific exceptions.

This module provides exception classes for transport operations,
allowing clients to handle errors appropriately.

All transport exceptions inherit from :class:`~pyvictron.exceptions.VictronError`.
Only connection-level failures escape a batched read; per-register failures
are reported in-band as sentinel values instead.
"""

from __future__ import annotations

from pyvictron.exceptions import VictronError


class TransportError(VictronError):
    """Base exception for all transport errors."""

    pass


class TransportConnectionError(TransportError):
    """Failed to connect to the device or broker."""

    pass


class TransportTimeoutError(TransportError):
    """Operation timed out."""

    pass


class TransportReadError(TransportError):
    """Failed to read data from device."""

    pass


class ModbusExceptionError(TransportReadError):
    """The device answered a read with a Modbus exception response."""

    def __init__(self, code: int, address: int, description: str) -> None:
        """Initialize with the exception details.

        Args:
            code: Modbus exception code from the response
            address: Starting register address of the failed request
            description: Human readable meaning of the code
        """
        self.code = code
        self.address = address
        self.description = description
        super().__init__(f"Modbus error at address {address}: {description} (code {code})")


__all__ = [
    "ModbusExceptionError",
    "TransportConnectionError",
    "TransportError",
    "TransportReadError",
    "TransportTimeoutError",
]
