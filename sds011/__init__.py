"""
SDS011 - Python driver for the Nova SDS011 laser particulate matter sensor.

This package provides:
- Protocol constants and command IDs
- Frame encoding, decoding and validation
- Serial transport layer
- High-level sensor client with a continuous listen mode
"""

from .constants import (
    HEAD, TAIL, PACKET_LENGTH, BROADCAST_ID,
    Command, ResponseType, Mode, SleepState
)
from .exceptions import (
    SDS011Error, ConnectionError, FrameError, LengthError, HeaderError,
    TailError, ResponseTypeError, CommandEchoError, ChecksumError, SettingValueError,
    TimeoutError, ValidationError, AlreadyListeningError
)
from .frame import (
    Frame, FrameBuilder, checksum, encode_command, decode_frame,
    validate, decode_measurement, format_bytes
)
from .measurement import Measurement
from .transport import BaseTransport, SerialTransport
from .client import SDS011

__version__ = "1.0.0"
__all__ = [
    # Constants
    "HEAD", "TAIL", "PACKET_LENGTH", "BROADCAST_ID",
    "Command", "ResponseType", "Mode", "SleepState",
    # Exceptions
    "SDS011Error", "ConnectionError", "FrameError", "LengthError",
    "HeaderError", "TailError", "ResponseTypeError", "CommandEchoError",
    "ChecksumError", "SettingValueError", "TimeoutError", "ValidationError",
    "AlreadyListeningError",
    # Frame
    "Frame", "FrameBuilder", "checksum", "encode_command", "decode_frame",
    "validate", "decode_measurement", "format_bytes",
    # Measurement
    "Measurement",
    # Transport
    "BaseTransport", "SerialTransport",
    # Client
    "SDS011",
]
