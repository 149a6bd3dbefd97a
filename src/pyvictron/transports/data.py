"""Transport-agnostic read result.

Both the Modbus and MQTT transports produce :class:`RegisterReadResult`
objects, so callers never need to know which transport was used.

Scaling is already applied to ``value``.  Registers that could not be read
carry one of the sentinel strings from :mod:`pyvictron.constants` instead of
a number; a read call never drops an entry.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pyvictron.constants import NOT_AVAILABLE, READ_ERROR

RawValue = int | float | list[int]
Value = int | float | str


@dataclass
class RegisterReadResult:
    """Result of reading one register.

    Attributes:
        name: Register display name
        description: Human-readable description
        raw_value: Wire value: one word as an int, several words as a list,
            or the numeric MQTT payload
        value: Decoded value, or a sentinel string
        unit: Engineering unit
        enum_label: Label for enumerated registers, if the value is numeric
    """

    name: str
    description: str
    raw_value: RawValue
    value: Value
    unit: str
    enum_label: str | None = None

    @property
    def is_available(self) -> bool:
        """True if the value is real data rather than a sentinel."""
        return self.value not in (NOT_AVAILABLE, READ_ERROR)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        data: dict[str, Any] = {
            "name": self.name,
            "description": self.description,
            "raw_value": self.raw_value,
            "value": self.value,
            "unit": self.unit,
        }
        if self.enum_label is not None:
            data["enum_label"] = self.enum_label
        return data


__all__ = ["RegisterReadResult"]
