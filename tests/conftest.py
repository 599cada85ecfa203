"""Shared fakes: an in-memory serial link that answers like a KP184."""

import pytest

from kp184_crc import append_crc


def echo(request: bytes) -> bytes:
    """Correct reply to a write request: first 7 bytes echoed plus CRC."""
    return append_crc(request[:7])


def read_reply(node: int, value: int) -> bytes:
    """Correct reply to a read request carrying ``value``."""
    return append_crc(bytes([node, 0x03, 0x04]) + value.to_bytes(4, "big"))


class FakeLink:
    """Stand-in for SerialLink.

    Each entry of ``replies`` is either raw bytes or a callable that gets the
    last written request and returns the reply bytes.
    """

    def __init__(self, port="/dev/null", baudrate=9600, replies=None, events=None):
        self.port = port
        self.baudrate = baudrate
        self.replies = replies if replies is not None else []
        self.events = events if events is not None else []
        self.written = []
        self.opened = 0
        self.closed = 0
        self.close_error = None

    def open(self):
        self.opened += 1
        return self

    def close(self):
        self.closed += 1
        if self.close_error is not None:
            raise self.close_error

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def write(self, data, timeout):
        self.events.append(("write", bytes(data), timeout))
        self.written.append(bytes(data))
        return len(data)

    def read(self, size, timeout):
        self.events.append(("read", size, timeout))
        reply = self.replies.pop(0)
        return reply(self.written[-1]) if callable(reply) else reply


class FakeLinkFactory:
    """Callable with the SerialLink constructor signature; remembers every link it made."""

    def __init__(self, replies=None, events=None, close_error=None):
        self.replies = replies if replies is not None else []
        self.events = events if events is not None else []
        self.close_error = close_error
        self.links = []

    def __call__(self, port, baudrate):
        link = FakeLink(port, baudrate, self.replies, self.events)
        link.close_error = self.close_error
        self.links.append(link)
        return link


@pytest.fixture
def events():
    return []


@pytest.fixture
def fake_sleep(events):
    def sleep(seconds):
        events.append(("sleep", seconds))

    return sleep


@pytest.fixture
def link_factory(events):
    return FakeLinkFactory(events=events)
