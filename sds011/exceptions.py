"""
Custom exceptions for the SDS011 driver.
"""

from typing import Optional

from .constants import Command


class SDS011Error(Exception):
    """Base exception for SDS011 driver errors."""
    pass


class ConnectionError(SDS011Error):
    """Serial port could not be opened, read or written."""
    pass


class FrameError(SDS011Error):
    """Received frame is malformed or is not the expected response."""
    pass


class LengthError(FrameError):
    """Frame does not have the fixed packet length."""

    def __init__(self, received: int, expected: int):
        self.received = received
        self.expected = expected
        super().__init__(
            f"bad packet length, got {received}, expected {expected}"
        )


class HeaderError(FrameError):
    """First byte is not the frame head."""

    def __init__(self, received: int):
        self.received = received
        super().__init__(f"bad header 0x{received:02X}")


class TailError(FrameError):
    """Last byte is not the frame tail."""

    def __init__(self, received: int):
        self.received = received
        super().__init__(f"bad tail 0x{received:02X}")


class ResponseTypeError(FrameError):
    """Frame type is unknown or not the one expected."""

    def __init__(self, received: int, expected: Optional[int] = None):
        self.received = received
        self.expected = expected
        if expected is None:
            msg = f"bad command type 0x{received:02X}"
        else:
            msg = f"incorrect command type, got 0x{received:02X}, want 0x{expected:02X}"
        super().__init__(msg)


class CommandEchoError(FrameError):
    """Acknowledgment echoes a different command ID."""

    def __init__(self, received: int, expected: int):
        self.received = received
        self.expected = expected
        super().__init__(
            f"incorrect command ID, got 0x{received:02X}, want 0x{expected:02X}"
        )


class ChecksumError(FrameError):
    """Checksum verification failed."""

    def __init__(self, expected: int, received: int):
        self.expected = expected
        self.received = received
        super().__init__(
            f"bad checksum: expected 0x{expected:02X}, received 0x{received:02X}"
        )


class SettingValueError(FrameError):
    """Acknowledgment reports a setting value outside the known range."""

    def __init__(self, command: int, received: int):
        self.command = command
        self.received = received
        super().__init__(
            f"unexpected value 0x{received:02X} in {Command.name_of(command)} response"
        )


class TimeoutError(SDS011Error):
    """No matching response before the read deadline.

    Carries the last frame read and the reason it was rejected so callers
    can tell a silent sensor from a noisy line.
    """

    def __init__(
        self,
        timeout: float,
        last_frame: Optional[bytes] = None,
        last_error: Optional[FrameError] = None
    ):
        self.timeout = timeout
        self.last_frame = last_frame
        self.last_error = last_error
        msg = f"read timeout: no matching response within {timeout}s"
        if last_error is not None:
            msg += f" (last frame rejected: {last_error})"
        super().__init__(msg)


class ValidationError(SDS011Error, ValueError):
    """Argument out of range, rejected before any I/O."""
    pass


class AlreadyListeningError(SDS011Error):
    """start_listen called while a listen loop is already running."""

    def __init__(self):
        super().__init__("already listening")
