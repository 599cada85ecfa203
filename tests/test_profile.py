"""Tests for the on-disk device profile."""

import struct

import pytest

from kp184_errors import ProfileOpenError, ProfileReadError, ProfileRemoveError
from kp184_profile import (
    PROFILE_MAGIC,
    DeviceProfile,
    decode_profile,
    encode_profile,
    load_profile,
    remove_profile,
    save_profile,
)


def test_encode_layout():
    """Fixed size, magic + version first, integers big-endian."""
    data = encode_profile(DeviceProfile(port="/dev/ttyUSB0", baudrate=9600, node=1))
    assert len(data) == 61
    assert data[:5] == PROFILE_MAGIC + b"\x01"
    assert data[5:9] == struct.pack(">I", 9600)
    assert data[9] == 1
    assert data[10] == len("/dev/ttyUSB0")
    assert data[11:23] == b"/dev/ttyUSB0"
    assert data[23:] == bytes(38)


def test_save_and_load(tmp_path):
    path = str(tmp_path / "kp184_conf")
    profile = DeviceProfile(port="COM3", baudrate=115200, node=247)
    save_profile(profile, path)
    assert load_profile(path) == profile


def test_port_name_at_limit(tmp_path):
    path = str(tmp_path / "conf")
    profile = DeviceProfile(port="p" * 50, baudrate=9600, node=0)
    save_profile(profile, path)
    assert load_profile(path).port == "p" * 50


@pytest.mark.parametrize(
    "port, baudrate, node",
    [("", 9600, 1), ("p" * 51, 9600, 1), ("COM1", 0, 1), ("COM1", 2**32, 1), ("COM1", 9600, 256)],
)
def test_profile_validation(port, baudrate, node):
    with pytest.raises(ValueError):
        DeviceProfile(port=port, baudrate=baudrate, node=node)


def test_load_missing(tmp_path):
    with pytest.raises(ProfileOpenError):
        load_profile(str(tmp_path / "nope"))


def test_save_into_missing_dir(tmp_path):
    with pytest.raises(ProfileOpenError):
        save_profile(DeviceProfile(port="COM1", baudrate=9600, node=1), str(tmp_path / "a" / "b"))


@pytest.mark.parametrize("size", [0, 10, 60, 62])
def test_load_wrong_size(tmp_path, size):
    """Truncated or oversized files, e.g. an old raw-struct profile, are rejected."""
    path = tmp_path / "conf"
    data = encode_profile(DeviceProfile(port="COM1", baudrate=9600, node=1))
    path.write_bytes((data + b"\x00")[:size])
    with pytest.raises(ProfileReadError):
        load_profile(str(path))


def test_decode_bad_magic():
    data = bytearray(encode_profile(DeviceProfile(port="COM1", baudrate=9600, node=1)))
    data[0:4] = b"XXXX"
    with pytest.raises(ProfileReadError):
        decode_profile(bytes(data))


def test_decode_unknown_version():
    data = bytearray(encode_profile(DeviceProfile(port="COM1", baudrate=9600, node=1)))
    data[4] = 2
    with pytest.raises(ProfileReadError):
        decode_profile(bytes(data))


@pytest.mark.parametrize("port_len", [0, 51])
def test_decode_bad_port_length(port_len):
    data = bytearray(encode_profile(DeviceProfile(port="COM1", baudrate=9600, node=1)))
    data[10] = port_len
    with pytest.raises(ProfileReadError):
        decode_profile(bytes(data))


def test_decode_bad_encoding():
    data = bytearray(encode_profile(DeviceProfile(port="COM1", baudrate=9600, node=1)))
    data[11] = 0xFF
    with pytest.raises(ProfileReadError):
        decode_profile(bytes(data))


def test_decode_zero_baudrate():
    data = bytearray(encode_profile(DeviceProfile(port="COM1", baudrate=9600, node=1)))
    data[5:9] = bytes(4)
    with pytest.raises(ProfileReadError):
        decode_profile(bytes(data))


def test_remove(tmp_path):
    path = str(tmp_path / "conf")
    save_profile(DeviceProfile(port="COM1", baudrate=9600, node=1), path)
    remove_profile(path)
    with pytest.raises(ProfileOpenError):
        load_profile(path)


def test_remove_missing(tmp_path):
    with pytest.raises(ProfileRemoveError):
        remove_profile(str(tmp_path / "conf"))
