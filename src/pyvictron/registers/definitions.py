"""Register catalog types.

A catalog is an ordered collection of :class:`RegisterCategory` objects, one
per GX service (``com.victronenergy.battery``, ``com.victronenergy.system``,
...).  Each category carries the :class:`RegisterDefinition` entries exposed
by that service, in catalog order.

Both types are frozen: a catalog is loaded once and shared read-only for the
lifetime of the process.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum


class DataType(StrEnum):
    """Wire data type of a register."""

    UINT16 = "uint16"
    INT16 = "int16"
    UINT32 = "uint32"
    INT32 = "int32"
    UINT64 = "uint64"
    STRING = "string"


WORD_COUNTS: dict[str, int] = {
    DataType.UINT16: 1,
    DataType.INT16: 1,
    DataType.UINT32: 2,
    DataType.INT32: 2,
    DataType.UINT64: 4,
    DataType.STRING: 6,
}
"""Default number of 16-bit words occupied by each data type."""


def words_required(data_type: str) -> int:
    """Minimum number of words needed to decode *data_type*.

    Strings decode from any number of words; numeric types need their full width.
    """
    if data_type == DataType.STRING:
        return 1
    return WORD_COUNTS.get(data_type, 1)


@dataclass(frozen=True)
class RegisterDefinition:
    """Single register definition.

    Attributes:
        address: Holding register address (word offset on the unit).
        name: Short display name.
        description: Human-readable description.
        data_type: Wire data type tag (see :class:`DataType`).
        scale_factor: Divisor applied to the raw integer. 0 and 1 mean
            "no scaling".
        unit: Engineering unit string ("V", "A", "%", ...).
        writable: True if the register accepts writes on the device.
        dbus_path: D-Bus path of the value (``/Dc/0/Voltage``), used to
            build MQTT topics.
        words: Explicit word count, overriding the data type default.
        enum_values: Optional mapping from raw integer to label.
    """

    address: int
    name: str
    description: str = ""
    data_type: str = DataType.UINT16
    scale_factor: float = 1
    unit: str = ""
    writable: bool = False
    dbus_path: str = ""
    words: int | None = None
    enum_values: Mapping[int, str] | None = field(default=None, compare=False)

    @property
    def word_count(self) -> int:
        """Number of 16-bit words this register spans."""
        if self.words:
            return self.words
        return WORD_COUNTS.get(self.data_type, 1)

    @property
    def end_address(self) -> int:
        """First address past this register."""
        return self.address + self.word_count


@dataclass(frozen=True)
class RegisterCategory:
    """All registers of one device service.

    Attributes:
        service: Service identifier, e.g. ``com.victronenergy.battery``.
        description: Human-readable description of the device category.
        default_unit_id: Modbus unit ID to use when the caller gives none.
        registers: Register definitions in catalog order.
    """

    service: str
    description: str
    default_unit_id: int
    registers: tuple[RegisterDefinition, ...] = ()

    @property
    def short_name(self) -> str:
        """Service name without its dotted prefix (``battery``)."""
        return self.service.rsplit(".", 1)[-1]


__all__ = [
    "DataType",
    "RegisterCategory",
    "RegisterDefinition",
    "WORD_COUNTS",
    "words_required",
]
