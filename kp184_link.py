import logging

import serial

from kp184_crc import hexdump
from kp184_errors import TransportError
from kp184_profile import DEFAULT_PROFILE_PATH, DeviceProfile, load_profile

logger = logging.getLogger(__name__)

# -------------------------------------------------------------------------------------------------
# SERIAL LINK
# KP184 rear RS232: 8 data bits, no parity, 1 stop bit, no flow control. Baudrate and node id are
# set on the front panel and must match the profile.
# -------------------------------------------------------------------------------------------------

WRITE_TIMEOUT_S = 0.100
READ_TIMEOUT_S = 0.250


class SerialLink:
    """Blocking, timeout-bounded byte channel to one serial port."""

    def __init__(self, port: str, baudrate: int):
        self.port = port
        self.baudrate = baudrate
        self._ser = None

    @property
    def is_open(self) -> bool:
        return self._ser is not None

    def open(self) -> "SerialLink":
        if self._ser is not None:
            return self
        try:
            self._ser = serial.Serial(
                port=self.port,
                baudrate=self.baudrate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                xonxoff=False,
                rtscts=False,
                dsrdtr=False,
                timeout=READ_TIMEOUT_S,
                write_timeout=WRITE_TIMEOUT_S,
            )
        except (serial.SerialException, ValueError) as e:
            raise TransportError(f"could not open {self.port} at {self.baudrate} baud: {e}") from e
        logger.debug("Opened %s at %d baud", self.port, self.baudrate)
        return self

    def close(self) -> None:
        if self._ser is None:
            return
        ser, self._ser = self._ser, None
        try:
            ser.close()
        except serial.SerialException as e:
            raise TransportError(f"could not close {self.port}: {e}") from e
        logger.debug("Closed %s", self.port)

    def _require_open(self) -> serial.Serial:
        if self._ser is None:
            raise TransportError(f"{self.port} is not open")
        return self._ser

    def write(self, data: bytes, timeout: float = WRITE_TIMEOUT_S) -> int:
        ser = self._require_open()
        logger.debug("TX (%d): %s", len(data), hexdump(data))
        try:
            ser.reset_input_buffer()  # stale bytes must not end up in the next response
            if ser.write_timeout != timeout:  # each assignment reconfigures the port
                ser.write_timeout = timeout
            n = ser.write(data)
            ser.flush()
        except serial.SerialException as e:  # SerialTimeoutException included
            raise TransportError(f"write to {self.port} failed: {e}") from e
        if n != len(data):
            raise TransportError(f"wrote {n} of {len(data)} bytes to {self.port}")
        return n

    def read(self, size: int, timeout: float = READ_TIMEOUT_S) -> bytes:
        # Short reads are returned as-is; the caller decides what a short frame means.
        ser = self._require_open()
        try:
            if ser.timeout != timeout:
                ser.timeout = timeout
            rx = ser.read(size)
        except serial.SerialException as e:
            raise TransportError(f"read from {self.port} failed: {e}") from e
        logger.debug("RX (%d): %s", len(rx), hexdump(rx))
        return rx

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc, tb):
        _close_after(self.close, exc_type)


def _close_after(close, exc_type) -> None:
    # An error already on its way out wins over a failing close.
    if exc_type is None:
        close()
        return
    try:
        close()
    except TransportError as e:
        logger.debug("Close failed while handling %s: %s", exc_type.__name__, e)


def configure_port(port: str, baudrate: int, link_factory=SerialLink) -> None:
    # Proves the port exists and takes the serial parameters before a profile is written for it.
    with link_factory(port, baudrate):
        pass


# -------------------------------------------------------------------------------------------------
# SESSION
# One per process. Nothing touches the profile or the port until a command needs them, and the
# port is closed once on the way out whatever happened in between.
# -------------------------------------------------------------------------------------------------


class Session:
    def __init__(self, profile_path: str = DEFAULT_PROFILE_PATH, link_factory=SerialLink):
        self.profile_path = profile_path
        self._link_factory = link_factory
        self._profile = None
        self._link = None
        self._closed = False

    @property
    def profile(self) -> DeviceProfile:
        if self._profile is None:
            self._profile = load_profile(self.profile_path)
        return self._profile

    @property
    def link(self):
        if self._closed:
            raise TransportError("session is closed")
        if self._link is None:
            profile = self.profile
            link = self._link_factory(profile.port, profile.baudrate)
            link.open()
            self._link = link
        return self._link

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        link, self._link = self._link, None
        if link is not None:
            link.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        _close_after(self.close, exc_type)
