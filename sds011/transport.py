"""
Serial transport layer.

The driver only needs a half-duplex byte stream: a blocking read bounded
by a per-call timeout and a blocking write.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

import serial

from .constants import DEFAULT_BAUDRATE, DEFAULT_PORT_TIMEOUT
from .exceptions import ConnectionError

logger = logging.getLogger(__name__)


class BaseTransport(ABC):
    """
    Abstract byte stream consumed by the SDS011 client.

    Implementations own the physical line configuration (baud rate,
    parity, stop bits) and the per-call read timeout.
    """

    @abstractmethod
    def read(self, size: int) -> bytes:
        """
        Read up to size bytes.

        Returns:
            Bytes read; fewer than size if the per-call timeout expired

        Raises:
            ConnectionError: If the underlying stream failed
        """
        ...

    @abstractmethod
    def write(self, data: bytes) -> int:
        """
        Write data.

        Returns:
            Number of bytes written

        Raises:
            ConnectionError: If the underlying stream failed
        """
        ...

    def close(self) -> None:
        """Release the underlying stream."""

    def __enter__(self) -> 'BaseTransport':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class SerialTransport(BaseTransport):
    """pyserial-backed transport, 8N1."""

    def __init__(
        self,
        port: str,
        baudrate: int = DEFAULT_BAUDRATE,
        timeout: float = DEFAULT_PORT_TIMEOUT
    ):
        """
        Initialize serial transport.

        Args:
            port: Serial port name (e.g., '/dev/ttyUSB0' or 'COM3')
            baudrate: Baud rate (default: 9600)
            timeout: Per-call read timeout in seconds. Without one, reads
                would either block forever or return immediately.
        """
        self.port = port
        self.baudrate = baudrate
        self.timeout = timeout
        self._serial: Optional[serial.Serial] = None

    def open(self) -> None:
        """Open serial port."""
        try:
            self._serial = serial.Serial(
                port=self.port,
                baudrate=self.baudrate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                timeout=self.timeout
            )
            logger.info(f"Opened serial port {self.port} at {self.baudrate} bps")
        except serial.SerialException as e:
            raise ConnectionError(f"Failed to open {self.port}: {e}") from e

    def close(self) -> None:
        """Close serial port."""
        if self._serial:
            try:
                self._serial.close()
            except serial.SerialException as e:
                logger.warning(f"Error closing {self.port}: {e}")
            self._serial = None
            logger.info(f"Closed serial port {self.port}")

    def write(self, data: bytes) -> int:
        """
        Send data over serial port.

        Args:
            data: Bytes to send

        Returns:
            Number of bytes sent

        Raises:
            ConnectionError: If port is not open or the write failed
        """
        if not self.is_open:
            raise ConnectionError("Serial port not open")

        try:
            count = self._serial.write(data)
            logger.debug(f"TX ({count} bytes): {data.hex(' ')}")
            return count
        except serial.SerialException as e:
            raise ConnectionError(f"Send failed: {e}") from e

    def read(self, size: int) -> bytes:
        """
        Read up to size bytes, waiting at most the per-call timeout.

        Raises:
            ConnectionError: If port is not open or the read failed
        """
        if not self.is_open:
            raise ConnectionError("Serial port not open")

        try:
            data = self._serial.read(size)
        except serial.SerialException as e:
            raise ConnectionError(f"Receive failed: {e}") from e
        if data:
            logger.debug(f"RX ({len(data)} bytes): {data.hex(' ')}")
        return data

    @property
    def is_open(self) -> bool:
        """Check if port is open."""
        return self._serial is not None and self._serial.is_open

    def __enter__(self) -> 'SerialTransport':
        if not self.is_open:
            self.open()
        return self

    def __repr__(self) -> str:
        status = "open" if self.is_open else "closed"
        return f"SerialTransport({self.port}, {self.baudrate}, {status})"
