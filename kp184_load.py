import logging
import os
import time
from dataclasses import dataclass

from kp184_errors import InvalidResponseError
from kp184_frames import (
    MODE_SETTINGS,
    RESPONSE_LEN,
    SCALE,
    Mode,
    Register,
    build_read_request,
    build_write_request,
    check_response,
    decode_measurement,
    decode_mode,
    encode_setting,
    parse_read_response,
)
from kp184_link import READ_TIMEOUT_S, WRITE_TIMEOUT_S

logger = logging.getLogger(__name__)

# -------------------------------------------------------------------------------------------------
# KUNKIN KP184 ELECTRONIC LOAD
#
# The firmware drops or garbles a command that arrives too soon after the previous one, so every
# multi-frame operation waits COMMAND_DELAY_S between frames. 200 ms is the smallest value seen to
# work, not a documented limit. No retries: a failed frame leaves the load in an unknown state
# and the caller has to re-synchronize.
# -------------------------------------------------------------------------------------------------

COMMAND_DELAY_S = 0.200


@dataclass(frozen=True)
class Timing:
    command_delay: float = COMMAND_DELAY_S
    write_timeout: float = WRITE_TIMEOUT_S
    read_timeout: float = READ_TIMEOUT_S

    @classmethod
    def from_env(cls, environ=None) -> "Timing":
        environ = os.environ if environ is None else environ
        delay_ms = environ.get("KP184_DELAY_MS", "").strip()
        if not delay_ms:
            return cls()
        try:
            ms = int(delay_ms)
        except ValueError:
            raise ValueError(f"KP184_DELAY_MS must be an integer, got {delay_ms!r}") from None
        if ms < 0:
            raise ValueError(f"KP184_DELAY_MS must not be negative, got {ms}")
        return cls(command_delay=ms / 1000.0)


@dataclass(frozen=True)
class Status:
    mode: Mode
    voltage: float
    current: float


def format_status(s: Status) -> str:
    return f"MODE: {s.mode.label} - REAL_VOLTAGE: {s.voltage:06.3f}V - REAL_CURRENT: {s.current:06.3f}A"


class KP184:
    def __init__(self, link, node: int, timing: Timing = Timing(), sleep=time.sleep):
        self.link = link
        self.node = node
        self.timing = timing
        self._sleep = sleep

    # ------------------------------ single exchanges ------------------------------

    def _exchange(self, request: bytes) -> bytes:
        self.link.write(request, self.timing.write_timeout)
        rx = self.link.read(RESPONSE_LEN, self.timing.read_timeout)
        check_response(rx)
        return rx

    def write_register(self, register: Register, value: int) -> None:
        wr = build_write_request(self.node, register, value)
        rx = self._exchange(wr.request)
        if rx != wr.expected_response:
            raise InvalidResponseError(f"invalid response to write of register 0x{register:04X}")

    def read_register(self, register: Register) -> int:
        rx = self._exchange(build_read_request(self.node, register))
        return parse_read_response(rx).value

    def _pause(self) -> None:
        self._sleep(self.timing.command_delay)

    # ------------------------------ operations ------------------------------

    def switch(self, on: bool) -> None:
        logger.debug("Switch load %s", "on" if on else "off")
        self.write_register(Register.LOAD_ON_OFF, 1 if on else 0)

    def set_mode(self, mode: Mode, value) -> None:
        register = MODE_SETTINGS[mode]
        raw = encode_setting(value, SCALE[register])
        logger.debug("Set mode %s, register 0x%04X = %d", mode.label, register, raw)

        self.write_register(Register.LOAD_MODE, int(mode))
        self._pause()
        self.write_register(register, raw)

    def read_status(self) -> Status:
        mode = decode_mode(self.read_register(Register.LOAD_MODE))
        self._pause()
        voltage = decode_measurement(self.read_register(Register.U_MEASURE), SCALE[Register.U_MEASURE])
        self._pause()
        current = decode_measurement(self.read_register(Register.I_MEASURE), SCALE[Register.I_MEASURE])
        return Status(mode=mode, voltage=voltage, current=current)
