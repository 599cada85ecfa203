import logging
import os
import struct
from dataclasses import dataclass

from kp184_errors import (
    ProfileOpenError,
    ProfileReadError,
    ProfileRemoveError,
    ProfileWriteError,
)

logger = logging.getLogger(__name__)

# -------------------------------------------------------------------------------------------------
# DEVICE PROFILE
#
# "kp184 i PORT BAUD NODE" stores how to reach the load; every later command reads it back.
#
# On-disk record, big-endian, fixed size (61 bytes):
#   magic     4s   b"KP84"
#   version   B    1
#   baudrate  I
#   node      B
#   port_len  B    bytes of port name actually used
#   port      50s  UTF-8 port name, zero padded
# -------------------------------------------------------------------------------------------------

DEFAULT_PROFILE_PATH = "kp184_conf"

PROFILE_MAGIC = b"KP84"
PROFILE_VERSION = 1
PORT_NAME_MAX = 50

_RECORD = struct.Struct(f">4sBIBB{PORT_NAME_MAX}s")


@dataclass(frozen=True)
class DeviceProfile:
    port: str
    baudrate: int
    node: int

    def __post_init__(self):
        if not self.port:
            raise ValueError("port name must not be empty")
        if len(self.port.encode("utf-8")) > PORT_NAME_MAX:
            raise ValueError(f"port name longer than {PORT_NAME_MAX} bytes: {self.port}")
        if not 0 < self.baudrate <= 0xFFFFFFFF:
            raise ValueError(f"baudrate out of range: {self.baudrate}")
        if not 0 <= self.node <= 0xFF:
            raise ValueError(f"node must be 0-255, got {self.node}")


def encode_profile(profile: DeviceProfile) -> bytes:
    port = profile.port.encode("utf-8")
    return _RECORD.pack(PROFILE_MAGIC, PROFILE_VERSION, profile.baudrate, profile.node, len(port), port)


def decode_profile(data: bytes) -> DeviceProfile:
    if len(data) != _RECORD.size:
        raise ProfileReadError(f"profile record is {len(data)} bytes, expected {_RECORD.size}")
    magic, version, baudrate, node, port_len, port = _RECORD.unpack(data)
    if magic != PROFILE_MAGIC:
        raise ProfileReadError("not a kp184 profile")
    if version != PROFILE_VERSION:
        raise ProfileReadError(f"unsupported profile version {version}")
    if not 0 < port_len <= PORT_NAME_MAX:
        raise ProfileReadError(f"bad port name length {port_len}")
    try:
        return DeviceProfile(port=port[:port_len].decode("utf-8"), baudrate=baudrate, node=node)
    except ValueError as e:  # UnicodeDecodeError included
        raise ProfileReadError(f"corrupt profile: {e}") from e


def save_profile(profile: DeviceProfile, path: str = DEFAULT_PROFILE_PATH) -> None:
    try:
        f = open(path, "wb")
    except OSError as e:
        raise ProfileOpenError(f"could not create internal config file {path}: {e}") from e
    try:
        with f:
            f.write(encode_profile(profile))
    except OSError as e:
        raise ProfileWriteError(f"could not write to internal config file {path}: {e}") from e
    logger.debug("Saved profile %s to %s", profile, path)


def load_profile(path: str = DEFAULT_PROFILE_PATH) -> DeviceProfile:
    try:
        f = open(path, "rb")
    except OSError as e:
        raise ProfileOpenError(f"could not open internal config file {path}: {e}") from e
    try:
        with f:
            data = f.read(_RECORD.size + 1)
    except OSError as e:
        raise ProfileReadError(f"could not read from internal config file {path}: {e}") from e
    return decode_profile(data)


def remove_profile(path: str = DEFAULT_PROFILE_PATH) -> None:
    try:
        os.remove(path)
    except OSError as e:
        raise ProfileRemoveError(f"failed to remove internal config file {path}: {e}") from e
    logger.debug("Removed profile %s", path)
