"""Constants shared by the Modbus and MQTT transports."""

from __future__ import annotations

# =============================================================================
# DEFAULT PORTS AND UNIT
# =============================================================================

DEFAULT_MODBUS_PORT = 502
DEFAULT_MQTT_PORT = 1883

# Unit ID of the GX device itself (com.victronenergy.system)
DEFAULT_UNIT_ID = 100

# =============================================================================
# TIMEOUTS (seconds)
# =============================================================================

MODBUS_CONNECT_TIMEOUT = 5.0
MODBUS_READ_TIMEOUT = 5.0

MQTT_CONNECT_TIMEOUT = 5.0
MQTT_READ_TIMEOUT = 8.0
MQTT_KEEPALIVE = 30

# =============================================================================
# IN-BAND SENTINEL VALUES
# =============================================================================

NOT_AVAILABLE = "Not available"
"""Value reported when the device signals "no data" or a topic never arrived."""

READ_ERROR = "Error reading register"
"""Value reported when a single register could not be read at all."""

# =============================================================================
# BATCHING
# =============================================================================

MAX_BATCH_WORDS = 100
"""Upper bound on the number of words requested in one Modbus read."""

# =============================================================================
# MODBUS EXCEPTION CODES
# =============================================================================

MODBUS_EXCEPTION_CODES: dict[int, str] = {
    1: "Illegal Function - the register exists but does not support this function code",
    2: (
        "Illegal Data Address - the register address does not exist for this unit ID. "
        "Check the register list for valid addresses"
    ),
    3: "Illegal Data Value - the write value is out of range for this register",
    4: "Server Device Failure - internal error on the GX device",
    5: "Acknowledge - request accepted but processing not complete",
    6: "Server Device Busy - the GX device is busy, retry later",
    10: (
        "Gateway Path Unavailable - the unit ID is defined in the GX but the underlying "
        "device was not found on the mapped port. The device may be disconnected"
    ),
    11: (
        "Gateway Target Device Failed to Respond - the unit ID does not match any device. "
        "Run discovery to find valid unit IDs"
    ),
}

UNKNOWN_EXCEPTION_DESCRIPTION = "Unknown error"
