"""Pytest configuration and fixtures for pyvictron tests."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest


@pytest.fixture
def catalog_data() -> dict[str, Any]:
    """A small catalog document in the converter's JSON format."""
    return {
        "source": "CCGX-Modbus-TCP-register-list.xlsx",
        "version": "3.60",
        "categories": [
            {
                "service": "com.victronenergy.system",
                "description": "System",
                "defaultUnitId": 100,
                "registers": [
                    {
                        "address": 800,
                        "name": "Serial",
                        "description": "Serial (System)",
                        "dataType": "string",
                        "scaleFactor": 1,
                        "unit": "",
                        "writable": False,
                        "dbusPath": "/Serial",
                    },
                    {
                        "address": 840,
                        "name": "BatteryVoltage",
                        "description": "Battery Voltage (System)",
                        "dataType": "uint16",
                        "scaleFactor": 10,
                        "unit": "V DC",
                        "writable": False,
                        "dbusPath": "/Dc/Battery/Voltage",
                    },
                ],
            },
            {
                "service": "com.victronenergy.battery",
                "description": "Battery",
                "defaultUnitId": 225,
                "registers": [
                    {
                        "address": 259,
                        "name": "Voltage",
                        "description": "Battery voltage",
                        "dataType": "uint16",
                        "scaleFactor": 100,
                        "unit": "V DC",
                        "writable": False,
                        "dbusPath": "/Dc/0/Voltage",
                    },
                    {
                        "address": 261,
                        "name": "Current",
                        "description": "Current",
                        "dataType": "int16",
                        "scaleFactor": 10,
                        "unit": "A DC",
                        "writable": False,
                        "dbusPath": "/Dc/0/Current",
                    },
                    {
                        "address": 1282,
                        "name": "State",
                        "description": "Battery state",
                        "dataType": "uint16",
                        "scaleFactor": 1,
                        "unit": "",
                        "writable": False,
                        "dbusPath": "/State",
                        "enumValues": {"0": "Initializing", "9": "Running", "14": "Standby"},
                    },
                ],
            },
            {
                "service": "com.victronenergy.solarcharger",
                "description": "Solar Charger",
                "defaultUnitId": 226,
                "registers": [],
            },
        ],
    }


@pytest.fixture
def catalog_file(tmp_path: Path, catalog_data: dict[str, Any]) -> Path:
    """The sample catalog written to disk."""
    path = tmp_path / "registers.json"
    path.write_text(json.dumps(catalog_data), encoding="utf-8")
    return path
