"""
Protocol constants for the SDS011 serial protocol.

Reference: Nova Fitness SDS011 laser dust sensor control protocol V1.3
"""

from enum import IntEnum

# Frame delimiters
HEAD = 0xAA
TAIL = 0xAB
COMMAND_ID = 0xB4

# Inbound frames: HEAD, TYPE, DATA1..DATA6, CHECKSUM, TAIL
PACKET_LENGTH = 10

# Outbound frames: HEAD, 0xB4, CMD, DATA1..DATA12, ID1, ID2, CHECKSUM, TAIL
PAYLOAD_LENGTH = 12
COMMAND_LENGTH = 19

# Device ID that every sensor answers to
BROADCAST_ID = 0xFFFF

# Working period limits in minutes (0 means continuous)
MIN_WORKING_PERIOD = 0
MAX_WORKING_PERIOD = 30

# Serial defaults
DEFAULT_BAUDRATE = 9600
DEFAULT_PORT_TIMEOUT = 0.25

# Deadline for a matching response, in seconds
DEFAULT_READ_TIMEOUT = 2.0

# Payload selector for commands that can either read or change a setting
QUERY_SETTING = 0x00
SET_SETTING = 0x01


class ResponseType(IntEnum):
    """Response frame types (sensor -> host)."""
    QUERY = 0xC0
    GENERAL = 0xC5


class Command(IntEnum):
    """Command IDs (host -> sensor)."""
    SET_MODE = 0x02
    QUERY = 0x04
    SET_DEVICE_ID = 0x05
    SLEEP_WAKE = 0x06
    FIRMWARE_VERSION = 0x07
    WORKING_PERIOD = 0x08

    @property
    def response_type(self) -> ResponseType:
        """Type of the frame the sensor answers this command with."""
        if self is Command.QUERY:
            return ResponseType.QUERY
        return ResponseType.GENERAL

    @classmethod
    def name_of(cls, command: int) -> str:
        """Get command name from ID."""
        try:
            return cls(command).name
        except ValueError:
            return f"Unknown(0x{command:02X})"


class Mode(IntEnum):
    """Data reporting modes."""
    ACTIVE = 0x00
    QUERY = 0x01


class SleepState(IntEnum):
    """Sleep/work states."""
    SLEEP = 0x00
    WORK = 0x01
