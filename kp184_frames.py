from dataclasses import dataclass
from decimal import Decimal, DecimalException, InvalidOperation
from enum import IntEnum

from kp184_crc import append_crc, verify_crc
from kp184_errors import InvalidCrcError, InvalidResponseError

# -------------------------------------------------------------------------------------------------
# KP184 FRAMES
#
# Read one register (FC=03), 8 bytes:
#   [node][0x03][reg_hi][reg_lo][0x00][0x04][crc_hi][crc_lo]
#
# Write one register (FC=06), 13 bytes:
#   [node][0x06][reg_hi][reg_lo][0x00][0x01][0x04][v3][v2][v1][v0][crc_hi][crc_lo]
#
# Every response is 9 bytes:
#   read:  [node][0x03][0x04][v3][v2][v1][v0][crc_hi][crc_lo]
#   write: [node][0x06][reg_hi][reg_lo][0x00][0x01][0x04][crc_hi][crc_lo]
#
# Register values are 32-bit big-endian. FC=06 is "write single register" in name only: the
# KP184 wants the multi-register style quantity + byte count with it.
# -------------------------------------------------------------------------------------------------

FC_READ = 0x03
FC_WRITE = 0x06

READ_REQUEST_LEN = 8
WRITE_REQUEST_LEN = 13
RESPONSE_LEN = 9

VALUE_MAX = 0xFFFFFFFF


class Register(IntEnum):
    LOAD_ON_OFF = 0x010E
    LOAD_MODE = 0x0110
    CV_SETTING = 0x0112
    CC_SETTING = 0x0116
    CR_SETTING = 0x011A
    CW_SETTING = 0x011E
    U_MEASURE = 0x0122
    I_MEASURE = 0x0126


class Mode(IntEnum):
    CV = 0
    CC = 1
    CR = 2
    CP = 3

    @property
    def label(self) -> str:
        return self.name


MODE_LETTERS = {
    "v": Mode.CV,
    "c": Mode.CC,
    "r": Mode.CR,
    "p": Mode.CP,
}

# Fixed-point factors: wire integer = value * scale.
SCALE_VOLTAGE = 1000  # mV
SCALE_CURRENT = 1000  # mA
SCALE_RESISTANCE = 10  # 0.1 ohm
SCALE_POWER = 100  # 0.01 W

SCALE = {
    Register.CV_SETTING: SCALE_VOLTAGE,
    Register.CC_SETTING: SCALE_CURRENT,
    Register.CR_SETTING: SCALE_RESISTANCE,
    Register.CW_SETTING: SCALE_POWER,
    Register.U_MEASURE: SCALE_VOLTAGE,
    Register.I_MEASURE: SCALE_CURRENT,
}

MODE_SETTINGS = {
    Mode.CV: Register.CV_SETTING,
    Mode.CC: Register.CC_SETTING,
    Mode.CR: Register.CR_SETTING,
    Mode.CP: Register.CW_SETTING,
}


@dataclass(frozen=True)
class WriteRequest:
    request: bytes
    expected_response: bytes


@dataclass(frozen=True)
class ReadResponse:
    node: int
    function: int
    byte_count: int
    value: int


def _check_range(name: str, x: int, hi: int) -> None:
    if not 0 <= x <= hi:
        raise ValueError(f"{name} must be 0-{hi}, got {x}")


def build_write_request(node: int, register: int, value: int) -> WriteRequest:
    _check_range("node", node, 0xFF)
    _check_range("register", register, 0xFFFF)
    _check_range("value", value, VALUE_MAX)

    # The device echoes everything up to the byte count, then its own CRC over those 7 bytes.
    header = bytes([node, FC_WRITE, (register >> 8) & 0xFF, register & 0xFF, 0x00, 0x01, 0x04])
    request = append_crc(header + value.to_bytes(4, "big"))
    return WriteRequest(request=request, expected_response=append_crc(header))


def build_read_request(node: int, register: int) -> bytes:
    _check_range("node", node, 0xFF)
    _check_range("register", register, 0xFFFF)
    pdu = bytes([node, FC_READ, (register >> 8) & 0xFF, register & 0xFF, 0x00, 0x04])
    return append_crc(pdu)


def check_response(raw: bytes, expected_len: int = RESPONSE_LEN) -> None:
    if len(raw) != expected_len:
        raise InvalidResponseError(f"expected {expected_len} bytes but received {len(raw)} bytes")
    if not verify_crc(raw):
        raise InvalidCrcError("invalid CRC in response")


def parse_read_response(raw: bytes) -> ReadResponse:
    # Only length and CRC are checked. Node, function code and byte count are passed through
    # unverified, the way the KP184 tooling has always accepted them.
    check_response(raw)
    return ReadResponse(
        node=raw[0],
        function=raw[1],
        byte_count=raw[2],
        value=int.from_bytes(raw[3:7], "big"),
    )


def encode_setting(value, scale: int) -> int:
    # Truncates toward zero like the original C cast did, but on the exact decimal text so that
    # "0.29" at x100 gives 29 and not 28.
    try:
        d = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError(f"not a number: {value!r}") from None
    if not d.is_finite():
        raise ValueError(f"not a finite number: {value!r}")
    if d < 0:
        raise ValueError(f"value must not be negative: {value}")
    try:
        raw = int(d * scale)
    except DecimalException:
        raise ValueError(f"value out of range: {value}") from None
    if raw > VALUE_MAX:
        raise ValueError(f"value out of range: {value}")
    return raw


def decode_measurement(raw: int, scale: int) -> float:
    return raw / scale


def decode_mode(value: int) -> Mode:
    # Only the low byte carries the mode.
    index = value & 0xFF
    if index > Mode.CP:
        raise InvalidResponseError(f"invalid mode {index}")
    return Mode(index)
