# -------------------------------------------------------------------------------------------------
# KP184 CRC16
#
# Standard Modbus CRC-16 (reflected poly 0xA001, init 0xFFFF). The KP184 firmware is NOT standard
# about byte order though: the checksum goes on the wire HIGH byte first, where Modbus RTU puts the
# low byte first. Every frame in both directions follows that order.
# -------------------------------------------------------------------------------------------------


def crc16(data: bytes) -> int:
    crc = 0xFFFF
    for b in data:
        crc ^= b
        for _ in range(8):
            crc = (crc >> 1) ^ 0xA001 if (crc & 1) else (crc >> 1)
    return crc & 0xFFFF


def append_crc(data: bytes) -> bytes:
    crc = crc16(data)
    return bytes(data) + bytes([(crc >> 8) & 0xFF, crc & 0xFF])


def verify_crc(frame: bytes) -> bool:
    if len(frame) < 2:
        return False
    crc_rx = (frame[-2] << 8) | frame[-1]
    return crc_rx == crc16(frame[:-2])


def hexdump(b: bytes) -> str:
    return " ".join(f"{x:02X}" for x in b)
