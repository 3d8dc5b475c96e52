"""
Measurement data structures.

Concentrations travel as little-endian uint16 values in tenths of ug/m3.
"""

from dataclasses import dataclass
import struct


@dataclass(frozen=True)
class Measurement:
    """Particulate matter concentrations in ug/m3."""
    pm25: float
    pm10: float

    @classmethod
    def from_raw(cls, pm25_raw: int, pm10_raw: int) -> 'Measurement':
        """Build from raw tenths of ug/m3."""
        return cls(pm25_raw / 10, pm10_raw / 10)

    @classmethod
    def from_bytes(cls, data: bytes) -> 'Measurement':
        """Deserialize from the first 4 payload bytes of a query frame."""
        pm25_raw, pm10_raw = struct.unpack('<HH', data[:4])
        return cls.from_raw(pm25_raw, pm10_raw)

    @property
    def pm25_raw(self) -> int:
        """PM2.5 in tenths of ug/m3, as sent on the wire."""
        return round(self.pm25 * 10)

    @property
    def pm10_raw(self) -> int:
        """PM10 in tenths of ug/m3, as sent on the wire."""
        return round(self.pm10 * 10)

    def __str__(self) -> str:
        return f"PM2.5 = {self.pm25} μg/m³  PM10 = {self.pm10} μg/m³"
