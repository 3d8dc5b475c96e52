"""Shared fixtures: a scripted in-memory transport and frame helpers."""

import threading
import time
from collections import deque
from typing import List, Optional

import pytest

from sds011.constants import HEAD, TAIL, ResponseType
from sds011.frame import checksum
from sds011.transport import BaseTransport


def response(frame_type: int, payload: bytes) -> bytes:
    """Build a valid 10-byte response frame around a 6-byte payload."""
    payload = bytes(payload).ljust(6, b"\x00")
    return bytes([HEAD, frame_type]) + payload + bytes([checksum(payload), TAIL])


def measurement_frame(pm25_raw: int, pm10_raw: int, device_id: int = 0x546F) -> bytes:
    payload = (
        pm25_raw.to_bytes(2, "little")
        + pm10_raw.to_bytes(2, "little")
        + device_id.to_bytes(2, "big")
    )
    return response(ResponseType.QUERY, payload)


def ack_frame(command: int, *data: int, device_id: int = 0x546F) -> bytes:
    payload = bytes([command, *data]).ljust(4, b"\x00") + device_id.to_bytes(2, "big")
    return response(ResponseType.GENERAL, payload)


class FakeTransport(BaseTransport):
    """
    Replays scripted reads and records writes.

    Each read returns the next scripted item (raising it if it is an
    exception). Once the script runs out, reads return ``default`` after
    ``delay`` seconds, mimicking the serial port's per-call timeout.
    """

    def __init__(self, reads=(), default: bytes = b"", delay: float = 0.001):
        self.reads = deque(reads)
        self.default = default
        self.delay = delay
        self.writes: List[bytes] = []
        self.read_count = 0
        self.closed = False
        self._lock = threading.Lock()

    def read(self, size: int) -> bytes:
        with self._lock:
            self.read_count += 1
            item: Optional[object] = self.reads.popleft() if self.reads else None
        if item is None:
            time.sleep(self.delay)
            return self.default[:size]
        if isinstance(item, Exception):
            raise item
        return item[:size]

    def write(self, data: bytes) -> int:
        self.writes.append(bytes(data))
        return len(data)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def transport():
    return FakeTransport()
