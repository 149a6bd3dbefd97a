"""Register wire-format decoding.

Pure functions converting raw Modbus words into typed values:

- Multi-word values are big-endian (high word first).
- ``int16``/``int32`` are two's complement.
- Each numeric type reserves its maximum value as a "disconnected" sentinel,
  reported as ``"Not available"`` instead of a number.
- Strings pack two ASCII characters per word, high byte first.

``uint64`` registers span four words but are reconstructed from the low two
words only; no catalog entry needs the full range.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from pyvictron.constants import NOT_AVAILABLE, READ_ERROR
from pyvictron.registers.definitions import DataType, RegisterDefinition, words_required

from .data import RegisterReadResult, Value

_LOGGER = logging.getLogger(__name__)

DISCONNECTED_SENTINELS: dict[str, int] = {
    DataType.UINT16: 0xFFFF,
    DataType.INT16: 0x7FFF,
    DataType.UINT32: 0xFFFFFFFF,
    DataType.INT32: 0x7FFFFFFF,
}


def decode_numeric(words: Sequence[int], data_type: str) -> int:
    """Decode big-endian words into an integer.

    Args:
        words: Raw 16-bit register values
        data_type: Register data type tag

    Returns:
        Decoded integer. Unknown types return the first word.

    Example:
        >>> decode_numeric([0xFFFF], "int16")
        -1
        >>> decode_numeric([0x0001, 0x0002], "uint32")
        65538
    """
    if data_type == DataType.INT16:
        value = words[0]
        return value - 0x10000 if value >= 0x8000 else value
    if data_type == DataType.UINT32:
        return (words[0] << 16) | words[1]
    if data_type == DataType.INT32:
        value = (words[0] << 16) | words[1]
        return value - 0x100000000 if value >= 0x80000000 else value
    if data_type == DataType.UINT64:
        # Only the low 32 bits are reconstructed.
        return (words[2] << 16) | words[3]
    return words[0]


def decode_string(words: Sequence[int]) -> str:
    """Decode words holding two characters each, high byte first.

    Null bytes are dropped and surrounding whitespace is trimmed.
    """
    data = bytearray()
    for word in words:
        data.append((word >> 8) & 0xFF)
        data.append(word & 0xFF)
    return data.replace(b"\x00", b"").decode("latin-1").strip()


def is_disconnected(value: int, data_type: str) -> bool:
    """Check whether *value* is the "no data" sentinel for *data_type*.

    ``uint64`` and ``string`` have no sentinel.
    """
    sentinel = DISCONNECTED_SENTINELS.get(data_type)
    return sentinel is not None and value == sentinel


def apply_scale(value: int, scale_factor: float) -> int | float:
    """Divide by *scale_factor*; 0 and 1 leave the value untouched."""
    if scale_factor in (0, 1):
        return value
    return value / scale_factor


def decode_value(words: Sequence[int], definition: RegisterDefinition) -> Value:
    """Decode the words of one register into its engineering value.

    Returns:
        The decoded string for ``string`` registers, ``"Not available"`` when
        the disconnect sentinel is present, otherwise the scaled number.
    """
    if definition.data_type == DataType.STRING:
        return decode_string(words)

    numeric = decode_numeric(words, definition.data_type)
    if is_disconnected(numeric, definition.data_type):
        return NOT_AVAILABLE
    return apply_scale(numeric, definition.scale_factor)


def _format_number(value: int | float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def resolve_enum_label(definition: RegisterDefinition, value: object) -> str | None:
    """Look up the enum label for a decoded value.

    Returns:
        None when the register has no enum table or the value is not a
        number; the table label on an exact match; otherwise
        ``"Unknown (<value>)"``.
    """
    if not definition.enum_values:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    label = definition.enum_values.get(value)  # type: ignore[call-overload]
    if label is not None:
        return label
    return f"Unknown ({_format_number(value)})"


def build_result(definition: RegisterDefinition, words: Sequence[int]) -> RegisterReadResult:
    """Assemble a read result from the words belonging to *definition*.

    Too few words for the data type degrade to the read error result.
    """
    if len(words) < words_required(definition.data_type):
        _LOGGER.warning(
            "Register %s at %d has %d words, %s needs %d",
            definition.name,
            definition.address,
            len(words),
            definition.data_type,
            words_required(definition.data_type),
        )
        return error_result(definition)
    value = decode_value(words, definition)
    raw: int | list[int] = words[0] if len(words) == 1 else list(words)
    return RegisterReadResult(
        name=definition.name,
        description=definition.description,
        raw_value=raw,
        value=value,
        unit=definition.unit,
        enum_label=resolve_enum_label(definition, value),
    )


def error_result(definition: RegisterDefinition) -> RegisterReadResult:
    """Result used when a register could not be read at all."""
    return RegisterReadResult(
        name=definition.name,
        description=definition.description,
        raw_value=0,
        value=READ_ERROR,
        unit=definition.unit,
    )


__all__ = [
    "DISCONNECTED_SENTINELS",
    "apply_scale",
    "build_result",
    "decode_numeric",
    "decode_string",
    "decode_value",
    "error_result",
    "is_disconnected",
    "resolve_enum_label",
]
