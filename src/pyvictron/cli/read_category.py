#!/usr/bin/env python3
"""Read Victron GX devices from the command line.

Connection settings come from flags, falling back to environment variables:

    VICTRON_TRANSPORT    modbus (default) or mqtt
    VICTRON_HOST         GX device IP address or hostname
    VICTRON_MODBUS_PORT  Modbus TCP port (default 502)
    VICTRON_MQTT_PORT    MQTT broker port (default 1883)
    VICTRON_PORTAL_ID    Portal ID for MQTT topics
    VICTRON_UNIT_ID      Modbus unit ID
    VICTRON_CATALOG      Path to the register catalog JSON file

Usage:
    pyvictron-read category battery --host 192.168.1.50 --unit-id 225
    pyvictron-read category battery --transport mqtt --portal-id c0619ab1c2d3
    pyvictron-read register --host 192.168.1.50 --unit-id 100 --address 840 --scale 10
    pyvictron-read list solarcharger
    pyvictron-read discover --host 192.168.1.50
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from collections.abc import Mapping, Sequence
from typing import Any

from pyvictron import __version__
from pyvictron.constants import DEFAULT_MODBUS_PORT, DEFAULT_MQTT_PORT, DEFAULT_UNIT_ID
from pyvictron.exceptions import ConfigurationError, VictronError
from pyvictron.registers import (
    DataType,
    RegisterCategory,
    RegisterDefinition,
    find_category,
    load_catalog,
    words_required,
)
from pyvictron.transports import (
    ModbusParams,
    MqttClient,
    RegisterReadResult,
    build_connection_params,
    modbus_session,
    mqtt_session,
    read_category,
)

_LOGGER = logging.getLogger(__name__)

NO_DATA_MESSAGE = (
    "No data available. The device may be disconnected or the unit ID may be incorrect."
)


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        prog="pyvictron-read",
        description="Read register values from Victron GX devices over Modbus TCP or MQTT.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    parser.add_argument("--json", action="store_true", help="Print results as JSON")

    conn = argparse.ArgumentParser(add_help=False)
    conn_group = conn.add_argument_group("Connection Options")
    conn_group.add_argument("--host", "-H", help="GX device IP address or hostname")
    conn_group.add_argument("--port", "-p", type=int, help="Modbus TCP port (default: 502)")
    conn_group.add_argument(
        "--transport",
        "-t",
        choices=["modbus", "mqtt"],
        help="Transport to use (default: modbus)",
    )
    conn_group.add_argument("--unit-id", "-u", type=int, help="Modbus unit ID")
    conn_group.add_argument("--mqtt-host", help="MQTT broker host (default: --host)")
    conn_group.add_argument("--mqtt-port", type=int, help="MQTT broker port (default: 1883)")
    conn_group.add_argument("--portal-id", help="Portal ID of the GX device (MQTT)")
    conn_group.add_argument("--device-instance", help="Device instance to read (MQTT)")

    catalog = argparse.ArgumentParser(add_help=False)
    catalog.add_argument("--catalog", "-c", help="Register catalog JSON file")

    sub = parser.add_subparsers(dest="command", required=True)

    cmd = sub.add_parser(
        "category", parents=[conn, catalog], help="Read every register of a category"
    )
    cmd.add_argument("name", help='Category service name, e.g. "battery" or "com.victronenergy.grid"')

    cmd = sub.add_parser("register", parents=[conn], help="Read raw Modbus registers")
    cmd.add_argument("--address", "-a", type=int, required=True, help="Starting register address")
    cmd.add_argument(
        "--count", type=int, help="Number of words to read (default: size of the data type)"
    )
    cmd.add_argument(
        "--data-type",
        choices=[t.value for t in DataType],
        default=DataType.UINT16.value,
        help="How to interpret the words (default: uint16)",
    )
    cmd.add_argument("--scale", type=float, default=1, help="Scale factor (value = raw / scale)")

    cmd = sub.add_parser("list", parents=[catalog], help="List the registers of a category")
    cmd.add_argument("name", help="Category service name")

    sub.add_parser("discover", parents=[conn], help="Discover portal ID and services over MQTT")

    return parser


def _env_int(environ: Mapping[str, str], name: str) -> int | None:
    value = environ.get(name)
    if not value:
        return None
    try:
        return int(value)
    except ValueError as err:
        raise ConfigurationError(f'Invalid {name}: "{value}" - must be a number') from err


def resolve_settings(args: argparse.Namespace, environ: Mapping[str, str]) -> dict[str, Any]:
    """Merge command line flags over environment variables."""
    return {
        "transport": getattr(args, "transport", None) or environ.get("VICTRON_TRANSPORT"),
        "host": getattr(args, "host", None) or environ.get("VICTRON_HOST"),
        "port": getattr(args, "port", None) or _env_int(environ, "VICTRON_MODBUS_PORT"),
        "unit_id": _first(getattr(args, "unit_id", None), _env_int(environ, "VICTRON_UNIT_ID")),
        "mqtt_host": getattr(args, "mqtt_host", None),
        "mqtt_port": getattr(args, "mqtt_port", None) or _env_int(environ, "VICTRON_MQTT_PORT"),
        "portal_id": getattr(args, "portal_id", None) or environ.get("VICTRON_PORTAL_ID"),
        "device_instance": getattr(args, "device_instance", None),
    }


def _first(*values: Any) -> Any:
    for value in values:
        if value is not None:
            return value
    return None


def _load_category(args: argparse.Namespace, environ: Mapping[str, str]) -> RegisterCategory:
    path = args.catalog or environ.get("VICTRON_CATALOG")
    if not path:
        raise ConfigurationError("Register catalog is required. Use --catalog or set VICTRON_CATALOG.")
    categories = load_catalog(path)
    category = find_category(categories, args.name)
    if category is None:
        available = ", ".join(c.short_name for c in categories)
        raise ConfigurationError(f'Category "{args.name}" not found. Available: {available}')
    return category


def format_results(title: str, results: Sequence[RegisterReadResult]) -> str:
    """Render available results as a Markdown list, skipping sentinels."""
    lines = [f"# {title}", ""]
    for result in results:
        if not result.is_available:
            continue
        if result.enum_label is not None:
            text = result.enum_label
        else:
            text = f"{result.value} {result.unit}".rstrip()
        lines.append(f"- **{result.description}**: {text}")
    if len(lines) == 2:
        lines.append(NO_DATA_MESSAGE)
    return "\n".join(lines)


def format_register_table(category: RegisterCategory) -> str:
    """Render the register list of a category as a Markdown table."""
    lines = [
        f"# {category.description} Registers",
        f"**Service**: {category.service}",
        f"**Default Unit ID**: {category.default_unit_id}",
        f"**Register Count**: {len(category.registers)}",
        "",
        "| Address | Description | Type | Scale | Unit | Writable |",
        "|---------|-------------|------|-------|------|----------|",
    ]
    for reg in category.registers:
        writable = "Yes" if reg.writable else "No"
        lines.append(
            f"| {reg.address} | {reg.description} | {reg.data_type} | "
            f"{reg.scale_factor} | {reg.unit} | {writable} |"
        )
    return "\n".join(lines)


async def run_category(args: argparse.Namespace, environ: Mapping[str, str]) -> str:
    category = _load_category(args, environ)
    settings = resolve_settings(args, environ)
    if settings["unit_id"] is None:
        settings["unit_id"] = category.default_unit_id
    params = build_connection_params(**settings)

    results = await read_category(params, category)
    if args.json:
        return json.dumps([r.to_dict() for r in results], indent=2)
    return format_results(f"{category.description} ({category.service})", results)


async def run_register(args: argparse.Namespace, environ: Mapping[str, str]) -> str:
    settings = resolve_settings(args, environ)
    params = ModbusParams(
        host=settings["host"] or "",
        port=settings["port"] or DEFAULT_MODBUS_PORT,
        unit_id=_first(settings["unit_id"], DEFAULT_UNIT_ID),
    )
    params.validate()
    definition = RegisterDefinition(
        address=args.address,
        name=f"register_{args.address}",
        description=f"Register at address {args.address}",
        data_type=args.data_type,
        scale_factor=args.scale,
        words=args.count,
    )
    minimum = words_required(args.data_type)
    if definition.word_count < minimum:
        raise ConfigurationError(
            f"--count {args.count} is too small for {args.data_type} "
            f"({minimum} words)"
        )

    async with modbus_session(params.host, params.port, params.unit_id) as client:
        result = await client.read_register(definition)

    if args.json:
        return json.dumps(result.to_dict(), indent=2)
    return "\n".join(
        [
            "# Raw Register Read",
            "",
            f"- **Address**: {args.address}",
            f"- **Unit ID**: {params.unit_id}",
            f"- **Data Type**: {args.data_type}",
            f"- **Scale Factor**: {args.scale:g}",
            f"- **Raw Value**: {json.dumps(result.raw_value)}",
            f"- **Decoded Value**: {result.value}",
        ]
    )


async def run_list(args: argparse.Namespace, environ: Mapping[str, str]) -> str:
    category = _load_category(args, environ)
    if args.json:
        return json.dumps(
            [
                {
                    "address": reg.address,
                    "name": reg.name,
                    "description": reg.description,
                    "data_type": str(reg.data_type),
                    "scale_factor": reg.scale_factor,
                    "unit": reg.unit,
                    "writable": reg.writable,
                }
                for reg in category.registers
            ],
            indent=2,
        )
    return format_register_table(category)


async def run_discover(args: argparse.Namespace, environ: Mapping[str, str]) -> str:
    settings = resolve_settings(args, environ)
    host = settings["mqtt_host"] or settings["host"]
    if not host:
        raise ConfigurationError("MQTT host is required. Use --host or set VICTRON_HOST.")
    port = settings["mqtt_port"] or DEFAULT_MQTT_PORT

    portal_id = settings["portal_id"] or await MqttClient.discover_portal_id(host, port)
    async with mqtt_session(host, port, portal_id) as client:
        services = await client.discover_services()

    if args.json:
        return json.dumps(
            {
                "host": host,
                "port": port,
                "portal_id": portal_id,
                "services": [
                    {"service_type": s.service_type, "device_instance": s.device_instance}
                    for s in services
                ],
            },
            indent=2,
        )

    grouped: dict[str, list[str]] = {}
    for service in services:
        grouped.setdefault(service.service_type, []).append(service.device_instance)

    lines = [
        "# MQTT Discovery",
        "",
        f"- **Host**: `{host}`",
        f"- **MQTT Port**: `{port}`",
        f"- **Portal ID**: `{portal_id}`",
        "",
        "## Available Services",
        "",
    ]
    lines.extend(f"- **{name}** [{', '.join(instances)}]" for name, instances in grouped.items())
    if not grouped:
        lines.append("No services published any data.")
    return "\n".join(lines)


COMMANDS = {
    "category": run_category,
    "register": run_register,
    "list": run_list,
    "discover": run_discover,
}


def main(argv: Sequence[str] | None = None, environ: Mapping[str, str] | None = None) -> int:
    """CLI entry point."""
    args = create_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    env = os.environ if environ is None else environ

    try:
        output = asyncio.run(COMMANDS[args.command](args, env))
    except VictronError as err:
        _LOGGER.debug("Command %s failed", args.command, exc_info=True)
        print(f"Error: {err}", file=sys.stderr)
        return 1

    print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
