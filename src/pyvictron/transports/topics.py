"""MQTT topic and payload helpers for Venus OS.

Venus OS publishes every D-Bus value on its local broker as::

    N/<portal_id>/<service_type>/<device_instance>/<dbus_path>

with a JSON payload ``{"value": ...}``.  Publishing to
``R/<portal_id>/keepalive`` asks the GX device to (re)publish all values.

Values on these topics are already scaled by Venus OS.  They are passed
through as-is: the catalog scale factor applies to raw Modbus words only.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from pyvictron.constants import NOT_AVAILABLE
from pyvictron.registers.definitions import RegisterDefinition

from .data import RegisterReadResult
from .decoding import resolve_enum_label

_LOGGER = logging.getLogger(__name__)

SERIAL_TOPIC_PATTERN = "N/+/system/+/Serial"
"""Published by every GX device; used to learn its portal ID."""


@dataclass(frozen=True)
class TopicParts:
    """Components of an ``N/...`` notification topic."""

    portal_id: str
    service_type: str
    device_instance: str
    dbus_path: str


def service_type_from_service(service: str) -> str:
    """Return the last dotted segment (``com.victronenergy.battery`` -> ``battery``)."""
    return service.rsplit(".", 1)[-1]


def normalize_path(dbus_path: str) -> str:
    """Ensure *dbus_path* starts with exactly one ``/``."""
    return "/" + dbus_path.lstrip("/")


def build_topic(
    portal_id: str,
    service_type: str,
    device_instance: str | int,
    dbus_path: str,
) -> str:
    """Build the notification topic for one value.

    Example:
        >>> build_topic("abc123", "battery", 256, "/Soc")
        'N/abc123/battery/256/Soc'
    """
    return f"N/{portal_id}/{service_type}/{device_instance}{normalize_path(dbus_path)}"


def keepalive_topic(portal_id: str) -> str:
    """Topic that requests a replay of all retained values."""
    return f"R/{portal_id}/keepalive"


def wildcard_topic(portal_id: str, service_type: str) -> str:
    """Topic filter covering every instance of *service_type*."""
    return f"N/{portal_id}/{service_type}/+/#"


def discovery_topic(portal_id: str) -> str:
    """Topic filter covering every service and instance."""
    return f"N/{portal_id}/+/+/#"


def parse_topic(topic: str) -> TopicParts | None:
    """Split a notification topic into its parts.

    Returns:
        None if the topic has fewer than four segments.
    """
    parts = topic.split("/")
    if len(parts) < 4:
        return None
    return TopicParts(
        portal_id=parts[1],
        service_type=parts[2],
        device_instance=parts[3],
        dbus_path="/" + "/".join(parts[4:]),
    )


def parse_payload(payload: bytes | str) -> Any:
    """Extract the ``value`` field of a JSON payload.

    Malformed payloads yield None, exactly like a missing value.
    """
    try:
        data = json.loads(payload)
    except (ValueError, TypeError):
        _LOGGER.debug("Ignoring malformed MQTT payload %r", payload)
        return None
    if not isinstance(data, dict):
        return None
    return data.get("value")


def value_to_result(definition: RegisterDefinition, value: Any) -> RegisterReadResult:
    """Convert a payload value to a read result.

    The value is used unscaled.  Numbers keep their raw value and get an
    enum label when the register defines one.
    """
    if value is None:
        return RegisterReadResult(
            name=definition.name,
            description=definition.description,
            raw_value=0,
            value=NOT_AVAILABLE,
            unit=definition.unit,
        )

    if isinstance(value, bool):
        text = "true" if value else "false"
    elif isinstance(value, (int, float)):
        return RegisterReadResult(
            name=definition.name,
            description=definition.description,
            raw_value=value,
            value=value,
            unit=definition.unit,
            enum_label=resolve_enum_label(definition, value),
        )
    elif isinstance(value, str):
        text = value
    else:
        text = json.dumps(value)

    return RegisterReadResult(
        name=definition.name,
        description=definition.description,
        raw_value=0,
        value=text,
        unit=definition.unit,
    )


__all__ = [
    "SERIAL_TOPIC_PATTERN",
    "TopicParts",
    "build_topic",
    "discovery_topic",
    "keepalive_topic",
    "normalize_path",
    "parse_payload",
    "parse_topic",
    "service_type_from_service",
    "value_to_result",
    "wildcard_topic",
]
