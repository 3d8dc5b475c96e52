"""
High-level SDS011 client.

Provides the command API and the continuous listen loop on top of a
transport.
"""

import time
import logging
import threading
from typing import Any, Callable, Dict, Optional

from .constants import (
    BROADCAST_ID, DEFAULT_BAUDRATE, DEFAULT_PORT_TIMEOUT, DEFAULT_READ_TIMEOUT,
    MAX_WORKING_PERIOD, MIN_WORKING_PERIOD, PACKET_LENGTH,
    Command, Mode, ResponseType, SleepState
)
from .exceptions import (
    AlreadyListeningError, FrameError, SettingValueError, TimeoutError, ValidationError
)
from .frame import FrameBuilder, decode_frame, decode_measurement, format_bytes, validate
from .measurement import Measurement
from .transport import BaseTransport, SerialTransport

logger = logging.getLogger(__name__)

Handler = Callable[[Measurement], Any]


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class SDS011:
    """Client for one SDS011 sensor."""

    def __init__(
        self,
        transport: BaseTransport,
        device_id: int = BROADCAST_ID,
        read_timeout: float = DEFAULT_READ_TIMEOUT
    ):
        """
        Initialize SDS011 client.

        Args:
            transport: Open transport, owned by this client from now on
            device_id: ID written into every command frame
            read_timeout: Deadline in seconds for a matching response
        """
        self.transport = transport
        self.device_id = device_id
        self.read_timeout = read_timeout

        self._lock = threading.Lock()
        self._done: Optional[threading.Event] = None

    @classmethod
    def open(
        cls,
        port: str,
        baudrate: int = DEFAULT_BAUDRATE,
        port_timeout: float = DEFAULT_PORT_TIMEOUT,
        **kwargs
    ) -> 'SDS011':
        """
        Open a serial port and return a client for the sensor on it.

        Raises:
            ConnectionError: If the port cannot be opened
        """
        transport = SerialTransport(port, baudrate=baudrate, timeout=port_timeout)
        transport.open()
        return cls(transport, **kwargs)

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'SDS011':
        """
        Open a client from a configuration dictionary.

        Args:
            config: Configuration with keys:
                - port: Serial port (default: "/dev/ttyUSB0")
                - baudrate: Baud rate (default: 9600)
                - port_timeout: Per-read timeout (default: 0.25)
                - timeout: Response deadline (default: 2.0)
                - device_id: Target device ID (default: 0xFFFF)
        """
        return cls.open(
            config.get("port", "/dev/ttyUSB0"),
            baudrate=config.get("baudrate", DEFAULT_BAUDRATE),
            port_timeout=config.get("port_timeout", DEFAULT_PORT_TIMEOUT),
            device_id=config.get("device_id", BROADCAST_ID),
            read_timeout=config.get("timeout", DEFAULT_READ_TIMEOUT),
        )

    def close(self) -> None:
        """Stop listening and release the transport."""
        self.stop_listen()
        self.transport.close()

    def __enter__(self) -> 'SDS011':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # === Frame I/O ===

    def _read_and_validate(self, expected_type: ResponseType, expected_cmd: Command) -> bytes:
        """
        Read frames until one matches the expected response.

        The sensor may be streaming measurements while a command is in
        flight, so mismatched or corrupt frames are skipped rather than
        reported. Short or empty reads count as corrupt frames. Transport
        failures are not retried: a ConnectionError ends the loop at once.

        Returns:
            The matching 10-byte frame

        Raises:
            TimeoutError: If no matching frame arrived within read_timeout
            ConnectionError: If the transport failed
        """
        start = time.monotonic()

        while True:
            data = self.transport.read(PACKET_LENGTH)
            try:
                decode_frame(data)
                frame = validate(data, expected_type, expected_cmd)
                logger.debug(f"Accepted frame from device 0x{frame.device_id:04X}")
                return data
            except FrameError as e:
                last_error = e
                logger.debug(f"Skipping frame {format_bytes(data)}: {e}")

            if time.monotonic() - start > self.read_timeout:
                raise TimeoutError(self.read_timeout, data, last_error)

    def _execute(self, frame_data: bytes, command: Command) -> bytes:
        """Send a command frame and wait for its response."""
        logger.debug(f"Sending {command.name}: {format_bytes(frame_data)}")
        self.transport.write(frame_data)
        return self._read_and_validate(command.response_type, command)

    # === Commands ===

    def query_once(self) -> Measurement:
        """
        Request one measurement.

        Returns:
            Measurement decoded from the query response
        """
        data = self._execute(FrameBuilder.build_query(self.device_id), Command.QUERY)
        return decode_measurement(data)

    def set_mode(self, mode: Mode) -> None:
        """
        Set data reporting mode.

        Args:
            mode: Mode.ACTIVE to stream measurements, Mode.QUERY to report on request
        """
        try:
            mode = Mode(mode)
        except ValueError:
            raise ValidationError(f"unknown reporting mode: {mode!r}") from None

        self._execute(FrameBuilder.build_set_mode(mode, self.device_id), Command.SET_MODE)
        logger.info(f"Reporting mode set to {mode.name}")

    def get_mode(self) -> Mode:
        """Read the current data reporting mode."""
        data = self._execute(FrameBuilder.build_get_mode(self.device_id), Command.SET_MODE)
        return self._setting(Mode, data, Command.SET_MODE)

    @staticmethod
    def _setting(enum_cls, data: bytes, command: Command):
        """Decode the setting value reported in DATA3 of an acknowledgment."""
        try:
            return enum_cls(data[4])
        except ValueError:
            raise SettingValueError(command, data[4]) from None

    def set_device_id(self, new_id: int) -> None:
        """
        Change the sensor's device ID.

        The client keeps addressing self.device_id afterwards; assign the
        new ID to it when targeting the sensor individually.

        Args:
            new_id: New 16-bit device ID
        """
        if not _is_int(new_id) or not 0 <= new_id <= 0xFFFF:
            raise ValidationError(f"device ID must be in [0, 0xFFFF], got {new_id!r}")

        self._execute(
            FrameBuilder.build_set_device_id(new_id, self.device_id),
            Command.SET_DEVICE_ID
        )
        logger.warning(f"Device ID set to 0x{new_id:04X}, client still addresses 0x{self.device_id:04X}")

    def _sleep_wake(self, state: SleepState) -> None:
        self._execute(FrameBuilder.build_sleep_wake(state, self.device_id), Command.SLEEP_WAKE)
        logger.info(f"Sensor state set to {state.name}")

    def sleep(self) -> None:
        """Stop the fan and laser."""
        self._sleep_wake(SleepState.SLEEP)

    def wake(self) -> None:
        """Start the fan and laser."""
        self._sleep_wake(SleepState.WORK)

    def get_sleep_state(self) -> SleepState:
        data = self._execute(FrameBuilder.build_get_sleep_state(self.device_id), Command.SLEEP_WAKE)
        return self._setting(SleepState, data, Command.SLEEP_WAKE)

    def set_working_period(self, minutes: int) -> None:
        """
        Set the working period.

        Args:
            minutes: 0 for continuous reporting (about once per second),
                otherwise one measurement every n minutes, up to 30

        Raises:
            ValidationError: If minutes is out of range; nothing is sent
        """
        if not _is_int(minutes) or not MIN_WORKING_PERIOD <= minutes <= MAX_WORKING_PERIOD:
            raise ValidationError(
                f"working period must be in [{MIN_WORKING_PERIOD}, {MAX_WORKING_PERIOD}], got {minutes!r}"
            )

        self._execute(
            FrameBuilder.build_set_working_period(minutes, self.device_id),
            Command.WORKING_PERIOD
        )
        logger.info(f"Working period set to {minutes} min")

    def get_working_period(self) -> int:
        """Read the current working period in minutes."""
        data = self._execute(
            FrameBuilder.build_get_working_period(self.device_id),
            Command.WORKING_PERIOD
        )
        if not MIN_WORKING_PERIOD <= data[4] <= MAX_WORKING_PERIOD:
            raise SettingValueError(Command.WORKING_PERIOD, data[4])
        return data[4]

    def get_firmware_version(self) -> bytes:
        """
        Read the firmware version.

        Returns:
            3 bytes: year, month and day of the firmware build
        """
        data = self._execute(
            FrameBuilder.build_firmware_version(self.device_id),
            Command.FIRMWARE_VERSION
        )
        return data[3:6]

    # === Listening ===

    @property
    def is_listening(self) -> bool:
        with self._lock:
            return self._done is not None

    def start_listen(self, callback: Handler) -> None:
        """
        Deliver measurements streamed by the sensor until stop_listen().

        Blocks the calling thread. Each measurement is passed to callback
        on its own thread, so callbacks may overlap and finish out of
        order. Exceptions raised by callback are logged and ignored.

        Args:
            callback: Called with each Measurement

        Raises:
            AlreadyListeningError: If a listen loop is already running
            ConnectionError: If the transport failed; listening stops
        """
        with self._lock:
            if self._done is not None:
                raise AlreadyListeningError()
            self._done = done = threading.Event()

        logger.info("Listening for measurements")
        try:
            while not done.is_set():
                try:
                    data = self._read_and_validate(ResponseType.QUERY, Command.QUERY)
                except TimeoutError:
                    continue

                measurement = decode_measurement(data)
                threading.Thread(
                    target=self._dispatch,
                    args=(callback, measurement),
                    daemon=True
                ).start()
        finally:
            with self._lock:
                self._done = None
            logger.info("Stopped listening")

    def stop_listen(self) -> None:
        """Ask a running listen loop to return. No-op when not listening."""
        with self._lock:
            if self._done is None or self._done.is_set():
                return
            self._done.set()
        logger.debug("Listen cancellation requested")

    @staticmethod
    def _dispatch(callback: Handler, measurement: Measurement) -> None:
        try:
            callback(measurement)
        except Exception:
            logger.exception(f"Listener callback failed for {measurement}")

    def __repr__(self) -> str:
        return f"SDS011({self.transport!r}, device_id=0x{self.device_id:04X})"
