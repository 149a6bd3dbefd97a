"""Load register catalogs from JSON definition files.

The file format is the one produced by the catalog converter::

    {
      "source": "CCGX-Modbus-TCP-register-list.xlsx",
      "version": "3.60",
      "categories": [
        {
          "service": "com.victronenergy.battery",
          "description": "Battery",
          "defaultUnitId": 225,
          "registers": [
            {"address": 259, "name": "Voltage", "dataType": "uint16",
             "scaleFactor": 100, "unit": "V DC", "writable": false,
             "dbusPath": "/Dc/0/Voltage"}
          ]
        }
      ]
    }

JSON object keys are always strings, so ``enumValues`` keys are converted
back to integers here.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any

from pyvictron.exceptions import ConfigurationError
from pyvictron.registers.definitions import (
    DataType,
    RegisterCategory,
    RegisterDefinition,
    words_required,
)

_LOGGER = logging.getLogger(__name__)

SERVICE_PREFIX = "com.victronenergy."

_KNOWN_DATA_TYPES = frozenset(t.value for t in DataType)


def _convert_enum_values(raw: dict[str, str]) -> dict[int, str]:
    return {int(key): label for key, label in raw.items()}


def register_from_dict(data: dict[str, Any]) -> RegisterDefinition:
    """Create a register definition from one catalog entry.

    Raises:
        ConfigurationError: If a required field is missing or malformed
    """
    try:
        data_type = data["dataType"]
        if data_type not in _KNOWN_DATA_TYPES:
            _LOGGER.warning(
                "Register %s at %s has unknown data type %r",
                data.get("name"),
                data.get("address"),
                data_type,
            )
        words = data.get("words") or None
        if words is not None and words < words_required(data_type):
            raise ConfigurationError(
                f"Register {data.get('name')} at {data.get('address')}: "
                f"{words} words is too few for {data_type}"
            )
        enum_values = data.get("enumValues")
        return RegisterDefinition(
            address=int(data["address"]),
            name=data["name"],
            description=data.get("description", ""),
            data_type=data_type,
            scale_factor=data.get("scaleFactor", 1),
            unit=data.get("unit", ""),
            writable=bool(data.get("writable", False)),
            dbus_path=data.get("dbusPath", ""),
            words=words,
            enum_values=_convert_enum_values(enum_values) if enum_values else None,
        )
    except ConfigurationError:
        raise
    except (KeyError, TypeError, ValueError) as err:
        raise ConfigurationError(f"Invalid register entry {data!r}: {err}") from err


def category_from_dict(data: dict[str, Any]) -> RegisterCategory:
    """Create a register category from one catalog category entry.

    Raises:
        ConfigurationError: If a required field is missing or malformed
    """
    try:
        return RegisterCategory(
            service=data["service"],
            description=data.get("description", ""),
            default_unit_id=int(data["defaultUnitId"]),
            registers=tuple(register_from_dict(reg) for reg in data["registers"]),
        )
    except ConfigurationError:
        raise
    except (KeyError, TypeError, ValueError) as err:
        raise ConfigurationError(f"Invalid category entry: {err}") from err


def categories_from_dict(data: dict[str, Any]) -> list[RegisterCategory]:
    """Parse an in-memory catalog document."""
    if not isinstance(data, dict) or "categories" not in data:
        raise ConfigurationError("Catalog document has no 'categories' list")
    return [category_from_dict(cat) for cat in data["categories"]]


def load_catalog(path: str | Path) -> list[RegisterCategory]:
    """Load every category from a JSON catalog file.

    Raises:
        ConfigurationError: If the file cannot be read or parsed
    """
    path = Path(path)
    try:
        with path.open(encoding="utf-8") as fh:
            data = json.load(fh)
    except (OSError, json.JSONDecodeError) as err:
        raise ConfigurationError(f"Cannot load register catalog {path}: {err}") from err

    categories = categories_from_dict(data)
    _LOGGER.debug(
        "Loaded %d categories from %s (version %s)",
        len(categories),
        path,
        data.get("version"),
    )
    return categories


def load_catalogs(*paths: str | Path) -> list[RegisterCategory]:
    """Load and concatenate several catalog files, in the given order."""
    categories: list[RegisterCategory] = []
    for path in paths:
        categories.extend(load_catalog(path))
    return categories


def find_category(
    categories: Iterable[RegisterCategory],
    term: str,
) -> RegisterCategory | None:
    """Find a category by service name.

    Matching is case-insensitive and tries, in order: the exact service
    name, the service name with the ``com.victronenergy.`` prefix added, and
    finally any service containing *term*.

    Example:
        >>> find_category(catalog, "battery").service
        'com.victronenergy.battery'
    """
    search = term.lower()
    candidates: Sequence[RegisterCategory] = list(categories)

    for category in candidates:
        if category.service.lower() == search:
            return category
    for category in candidates:
        if category.service.lower() == f"{SERVICE_PREFIX}{search}":
            return category
    for category in candidates:
        if search in category.service.lower():
            return category
    return None


__all__ = [
    "categories_from_dict",
    "category_from_dict",
    "find_category",
    "load_catalog",
    "load_catalogs",
    "register_from_dict",
]
