"""Tests for the SDS011 command API and its read loop."""

import logging
import time
from unittest.mock import patch

import pytest

from sds011.client import SDS011
from sds011.constants import BROADCAST_ID, Command, Mode, ResponseType, SleepState
from sds011.exceptions import (
    ConnectionError, ResponseTypeError, SettingValueError, TimeoutError, ValidationError
)
from sds011.frame import FrameBuilder
from sds011.measurement import Measurement

from conftest import FakeTransport, ack_frame, measurement_frame


def make_sensor(reads=(), default=b"", timeout=0.2, **kwargs):
    transport = FakeTransport(reads, default=default)
    return SDS011(transport, read_timeout=timeout, **kwargs), transport


def test_defaults(transport):
    sensor = SDS011(transport)
    assert sensor.device_id == BROADCAST_ID
    assert sensor.read_timeout == 2.0
    assert not sensor.is_listening


def test_query_once():
    sensor, transport = make_sensor([measurement_frame(45, 184)])
    assert sensor.query_once() == Measurement(4.5, 18.4)
    assert transport.writes == [FrameBuilder.build_query()]


def test_query_once_skips_stray_frames():
    """Acks, short reads and corrupt frames ahead of the response are skipped."""
    corrupt = bytearray(measurement_frame(1, 1))
    corrupt[8] ^= 0xFF
    sensor, transport = make_sensor([
        ack_frame(Command.SLEEP_WAKE, 0x01, 0x01),
        b"\xaa\xc0\x01",
        bytes(corrupt),
        measurement_frame(100, 200),
    ])
    assert sensor.query_once() == Measurement(10.0, 20.0)
    assert transport.read_count == 4


def test_commands_use_device_id():
    sensor, transport = make_sensor([measurement_frame(0, 0)], device_id=0xA160)
    sensor.query_once()
    assert transport.writes[0][15:17] == bytes([0xA1, 0x60])


def test_set_mode():
    sensor, transport = make_sensor([
        measurement_frame(1, 2),
        ack_frame(Command.SET_MODE, 0x01, Mode.QUERY),
    ])
    sensor.set_mode(Mode.QUERY)
    assert transport.writes == [FrameBuilder.build_set_mode(Mode.QUERY)]


def test_set_mode_invalid():
    sensor, transport = make_sensor()
    with pytest.raises(ValidationError):
        sensor.set_mode(7)
    assert transport.writes == []


def test_get_mode():
    sensor, transport = make_sensor([ack_frame(Command.SET_MODE, 0x00, Mode.ACTIVE)])
    assert sensor.get_mode() == Mode.ACTIVE
    assert transport.writes == [FrameBuilder.build_get_mode()]


def test_set_mode_wrong_echo_times_out():
    sensor, _ = make_sensor([ack_frame(Command.SLEEP_WAKE, 0x01, 0x01)])
    with pytest.raises(TimeoutError):
        sensor.set_mode(Mode.ACTIVE)


def test_set_device_id_keeps_cached_id():
    sensor, transport = make_sensor([ack_frame(Command.SET_DEVICE_ID, device_id=0xA160)])
    sensor.set_device_id(0xA160)
    assert transport.writes == [FrameBuilder.build_set_device_id(0xA160)]
    assert sensor.device_id == BROADCAST_ID


@pytest.mark.parametrize("new_id", [-1, 0x10000, "1", True])
def test_set_device_id_invalid(new_id):
    sensor, transport = make_sensor()
    with pytest.raises(ValidationError):
        sensor.set_device_id(new_id)
    assert transport.writes == []


def test_sleep_and_wake():
    sensor, transport = make_sensor([
        ack_frame(Command.SLEEP_WAKE, 0x01, SleepState.SLEEP),
        ack_frame(Command.SLEEP_WAKE, 0x01, SleepState.WORK),
    ])
    sensor.sleep()
    sensor.wake()
    assert [w[3:5] for w in transport.writes] == [b"\x01\x00", b"\x01\x01"]
    assert all(w[2] == Command.SLEEP_WAKE for w in transport.writes)


def test_get_sleep_state():
    sensor, _ = make_sensor([ack_frame(Command.SLEEP_WAKE, 0x00, SleepState.WORK)])
    assert sensor.get_sleep_state() == SleepState.WORK


@pytest.mark.parametrize("minutes", [0, 30])
def test_set_working_period(minutes):
    sensor, transport = make_sensor([ack_frame(Command.WORKING_PERIOD, 0x01, minutes)])
    sensor.set_working_period(minutes)
    assert transport.writes == [FrameBuilder.build_set_working_period(minutes)]


@pytest.mark.parametrize("minutes", [-1, 31, 2.5, True])
def test_set_working_period_invalid(minutes):
    sensor, transport = make_sensor()
    with pytest.raises(ValidationError):
        sensor.set_working_period(minutes)
    assert transport.writes == []
    assert transport.read_count == 0


def test_get_working_period():
    sensor, _ = make_sensor([ack_frame(Command.WORKING_PERIOD, 0x00, 5)])
    assert sensor.get_working_period() == 5


def test_get_firmware_version():
    sensor, transport = make_sensor([ack_frame(Command.FIRMWARE_VERSION, 0x0F, 0x07, 0x0A)])
    assert sensor.get_firmware_version() == bytes([0x0F, 0x07, 0x0A])
    assert transport.writes == [FrameBuilder.build_firmware_version()]


def test_timeout_on_mismatched_stream():
    """A stream of valid but unrelated frames ends in a timeout."""
    stray = ack_frame(Command.SET_MODE, 0x01, 0x00)
    sensor, _ = make_sensor(default=stray, timeout=0.1)

    start = time.monotonic()
    with pytest.raises(TimeoutError) as excinfo:
        sensor.query_once()
    elapsed = time.monotonic() - start

    assert 0.1 <= elapsed < 0.5
    assert excinfo.value.timeout == 0.1
    assert excinfo.value.last_frame == stray
    assert isinstance(excinfo.value.last_error, ResponseTypeError)


def test_timeout_on_silence():
    sensor, _ = make_sensor(timeout=0.05)
    with pytest.raises(TimeoutError) as excinfo:
        sensor.get_firmware_version()
    assert excinfo.value.last_frame == b""


def test_connection_error_propagates():
    sensor, transport = make_sensor([ConnectionError("port gone"), measurement_frame(1, 1)])
    with pytest.raises(ConnectionError):
        sensor.query_once()
    assert transport.read_count == 1


def test_close_releases_transport():
    sensor, transport = make_sensor()
    with sensor:
        pass
    assert transport.closed


def test_response_type_mapping():
    assert Command.QUERY.response_type == ResponseType.QUERY
    assert Command.SET_MODE.response_type == ResponseType.GENERAL
    assert Command.name_of(0x07) == "FIRMWARE_VERSION"
    assert Command.name_of(0x99) == "Unknown(0x99)"


def test_from_config():
    with patch("sds011.client.SerialTransport") as transport_cls:
        sensor = SDS011.from_config({"port": "COM4", "timeout": 5.0, "device_id": 0xA160})

    transport_cls.assert_called_once_with("COM4", baudrate=9600, timeout=0.25)
    transport_cls.return_value.open.assert_called_once()
    assert sensor.transport is transport_cls.return_value
    assert sensor.read_timeout == 5.0
    assert sensor.device_id == 0xA160


@pytest.mark.parametrize("method, frame", [
    ("get_mode", ack_frame(Command.SET_MODE, 0x00, 0x07)),
    ("get_sleep_state", ack_frame(Command.SLEEP_WAKE, 0x00, 0x02)),
    ("get_working_period", ack_frame(Command.WORKING_PERIOD, 0x00, 31)),
])
def test_get_setting_unexpected_value(method, frame):
    """A well-formed ack with an unknown setting byte is a frame error."""
    sensor, _ = make_sensor([frame])
    with pytest.raises(SettingValueError) as excinfo:
        getattr(sensor, method)()
    assert excinfo.value.received == frame[4]
    assert f"0x{frame[4]:02X}" in str(excinfo.value)


def test_set_device_id_warns_about_cached_id(caplog):
    sensor, _ = make_sensor([ack_frame(Command.SET_DEVICE_ID, device_id=0xA160)])
    with caplog.at_level(logging.WARNING, logger="sds011.client"):
        sensor.set_device_id(0xA160)
    assert "still addresses 0xFFFF" in caplog.text
