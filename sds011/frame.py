"""
Frame encoding, decoding and validation.

Command frame (host -> sensor), 19 bytes:
    [HEAD][0xB4][CMD][DATA1..DATA12][ID_HI][ID_LO][CHECKSUM][TAIL]
- CHECKSUM: low byte of the sum of CMD, DATA1..DATA12 and both ID bytes

Response frame (sensor -> host), 10 bytes:
    [HEAD][TYPE][DATA1..DATA6][CHECKSUM][TAIL]
- TYPE: 0xC0 for measurements, 0xC5 for command acknowledgments
- CHECKSUM: low byte of the sum of DATA1..DATA6
"""

from dataclasses import dataclass
from typing import Iterable, Optional

from .constants import (
    HEAD, TAIL, COMMAND_ID, PACKET_LENGTH, PAYLOAD_LENGTH, BROADCAST_ID,
    QUERY_SETTING, SET_SETTING, Command, Mode, ResponseType, SleepState
)
from .exceptions import (
    ChecksumError, CommandEchoError, HeaderError, LengthError,
    ResponseTypeError, TailError, ValidationError
)
from .measurement import Measurement


def checksum(data: Optional[Iterable[int]]) -> int:
    """Low 8 bits of the byte sum. Empty or None input gives 0."""
    if not data:
        return 0
    return sum(data) & 0xFF


def format_bytes(data: Optional[bytes]) -> str:
    """Render bytes as ``[0xaa, 0xc0, ...]`` for logs and error messages."""
    if data is None:
        return "<nil>"
    return "[" + ", ".join(f"0x{b:x}" for b in data) + "]"


@dataclass(frozen=True)
class Frame:
    """Response frame structure."""
    type: int
    payload: bytes
    checksum: int

    @property
    def command_id(self) -> int:
        """Echoed command ID (general-type frames only)."""
        return self.payload[0]

    @property
    def device_id(self) -> int:
        return int.from_bytes(self.payload[4:6], 'big')


class FrameBuilder:
    """Builds command frames for transmission."""

    @staticmethod
    def build(command: int, payload: bytes = b'', device_id: int = BROADCAST_ID) -> bytes:
        """
        Build complete command frame with checksum.

        Args:
            command: Command ID
            payload: Command data, zero-padded to 12 bytes
            device_id: Target device ID (0xFFFF addresses any sensor)

        Returns:
            Complete 19-byte frame ready for transmission

        Raises:
            ValidationError: If the payload or device ID does not fit
        """
        payload = bytes(payload)
        if len(payload) > PAYLOAD_LENGTH:
            raise ValidationError(
                f"payload exceeds maximum size ({PAYLOAD_LENGTH}), got {len(payload)}"
            )
        if not 0 <= device_id <= 0xFFFF:
            raise ValidationError(f"device ID out of range: {device_id}")

        # Checksum covers: CMD + DATA1..DATA12 + ID
        body = bytes([command]) + payload.ljust(PAYLOAD_LENGTH, b'\x00') + device_id.to_bytes(2, 'big')
        return bytes([HEAD, COMMAND_ID]) + body + bytes([checksum(body), TAIL])

    @staticmethod
    def build_query(device_id: int = BROADCAST_ID) -> bytes:
        """Build QUERY command frame."""
        return FrameBuilder.build(Command.QUERY, b'', device_id)

    @staticmethod
    def build_set_mode(mode: Mode, device_id: int = BROADCAST_ID) -> bytes:
        """Build SET_MODE command frame."""
        return FrameBuilder.build(Command.SET_MODE, bytes([SET_SETTING, mode]), device_id)

    @staticmethod
    def build_get_mode(device_id: int = BROADCAST_ID) -> bytes:
        """Build SET_MODE command frame that reads the current mode."""
        return FrameBuilder.build(Command.SET_MODE, bytes([QUERY_SETTING]), device_id)

    @staticmethod
    def build_set_device_id(new_id: int, device_id: int = BROADCAST_ID) -> bytes:
        """Build SET_DEVICE_ID command frame. The new ID fills DATA11..DATA12."""
        if not 0 <= new_id <= 0xFFFF:
            raise ValidationError(f"device ID out of range: {new_id}")
        payload = bytes(PAYLOAD_LENGTH - 2) + new_id.to_bytes(2, 'big')
        return FrameBuilder.build(Command.SET_DEVICE_ID, payload, device_id)

    @staticmethod
    def build_sleep_wake(state: SleepState, device_id: int = BROADCAST_ID) -> bytes:
        """Build SLEEP_WAKE command frame."""
        return FrameBuilder.build(Command.SLEEP_WAKE, bytes([SET_SETTING, state]), device_id)

    @staticmethod
    def build_get_sleep_state(device_id: int = BROADCAST_ID) -> bytes:
        """Build SLEEP_WAKE command frame that reads the current state."""
        return FrameBuilder.build(Command.SLEEP_WAKE, bytes([QUERY_SETTING]), device_id)

    @staticmethod
    def build_set_working_period(minutes: int, device_id: int = BROADCAST_ID) -> bytes:
        """Build WORKING_PERIOD command frame."""
        return FrameBuilder.build(Command.WORKING_PERIOD, bytes([SET_SETTING, minutes]), device_id)

    @staticmethod
    def build_get_working_period(device_id: int = BROADCAST_ID) -> bytes:
        """Build WORKING_PERIOD command frame that reads the current period."""
        return FrameBuilder.build(Command.WORKING_PERIOD, bytes([QUERY_SETTING]), device_id)

    @staticmethod
    def build_firmware_version(device_id: int = BROADCAST_ID) -> bytes:
        """Build FIRMWARE_VERSION command frame."""
        return FrameBuilder.build(Command.FIRMWARE_VERSION, b'', device_id)


def encode_command(command: int, payload: bytes = b'', device_id: int = BROADCAST_ID) -> bytes:
    """Encode a command frame. See FrameBuilder.build."""
    return FrameBuilder.build(command, payload, device_id)


def _check_length(data: bytes) -> None:
    if data is None or len(data) != PACKET_LENGTH:
        raise LengthError(0 if data is None else len(data), PACKET_LENGTH)


def decode_frame(data: bytes) -> Frame:
    """
    Check just enough of a response to know its structure is sound.

    Checksum and command echo are left to validate().

    Args:
        data: Raw bytes as read from the port

    Returns:
        Decoded Frame

    Raises:
        LengthError, HeaderError, ResponseTypeError, TailError
    """
    _check_length(data)
    if data[0] != HEAD:
        raise HeaderError(data[0])
    if data[1] not in (ResponseType.QUERY, ResponseType.GENERAL):
        raise ResponseTypeError(data[1])
    if data[-1] != TAIL:
        raise TailError(data[-1])
    return Frame(data[1], bytes(data[2:8]), data[8])


def validate(data: bytes, expected_type: int, expected_cmd: Optional[int] = None) -> Frame:
    """
    Fully validate a response against the command that was sent.

    Query responses carry no command ID since all of their data bytes are
    taken up by the measurement, so the echo check only applies to general
    frames.

    Args:
        data: Raw 10-byte response
        expected_type: Expected ResponseType
        expected_cmd: Command ID the acknowledgment must echo

    Returns:
        Decoded Frame

    Raises:
        FrameError: Subclass describing the first check that failed
    """
    _check_length(data)
    if data[0] != HEAD:
        raise HeaderError(data[0])
    if data[-1] != TAIL:
        raise TailError(data[-1])
    frame = Frame(data[1], bytes(data[2:8]), data[8])
    if frame.type != expected_type:
        raise ResponseTypeError(frame.type, expected_type)
    if expected_type != ResponseType.QUERY and expected_cmd is not None and frame.command_id != expected_cmd:
        raise CommandEchoError(frame.command_id, expected_cmd)

    expected_sum = checksum(frame.payload)
    if frame.checksum != expected_sum:
        raise ChecksumError(expected_sum, frame.checksum)

    return frame


def decode_measurement(data: bytes) -> Measurement:
    """Decode PM2.5 and PM10 from a 10-byte query response."""
    _check_length(data)
    return Measurement.from_bytes(data[2:6])
