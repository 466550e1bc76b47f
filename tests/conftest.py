"""Shared fakes for transport, spooler and UDP discovery tests."""

from __future__ import annotations

import socket
import sys
import time
from pathlib import Path

import pytest

# Ensure the package is importable when running tests without installation
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from sbpl_print_service.exceptions import PrinterIOError
from sbpl_print_service.transports import BaseTransport

STX, ETX, ENQ, ESC, FS = b'\x02', b'\x03', b'\x05', b'\x1b', b'\x1c'

# Ethernet padding seen in front of real STATUS4 replies
STATUS_PADDING = b'\x00\x00\x00' + FS + ENQ


def status_record(health: str = 'A', remaining: str = '000000', job_id: str = '  ',
                  name: str = '', padding: bytes = STATUS_PADDING) -> bytes:
    return (padding + STX + job_id.encode('ascii') + health.encode('ascii')
            + remaining.encode('ascii') + name.ljust(16).encode('ascii') + ETX)


def response_record(mac: bytes = bytes.fromhex('020000000001'), ip=(127, 0, 0, 1),
                    mask=(255, 0, 0, 0), gateway=(0, 0, 0, 0), name: bytes = b'Lesprit Series',
                    dhcp: bool = True, rarp: bool = True) -> bytes:
    return (STX + mac + b',' + bytes(ip) + b',' + bytes(mask) + b',' + bytes(gateway) + b','
            + name.ljust(32, b'\x00') + b',' + bytes([dhcp, rarp]) + ETX)


def page(*operations: str) -> bytes:
    return b''.join(ESC + op.encode('ascii') for op in operations)


class FakeTransport(BaseTransport):
    """In-memory transport. Status replies are served in order."""

    def __init__(self, connection_type: str = 'ip', replies=None):
        self.connection_type = connection_type
        self.replies = list(replies or [])
        self.writes = []
        self.close_calls = 0
        self._closed = False

    @property
    def supports_status(self) -> bool:
        return self.connection_type == 'ip'

    @property
    def closed(self) -> bool:
        return self._closed

    def describe(self) -> str:
        return 'fake:9100'

    def write(self, data: bytes) -> int:
        if self._closed:
            raise PrinterIOError('closed')
        self.writes.append(bytes(data))
        return len(data)

    def read(self, size: int, timeout: float) -> bytes:
        if not self.replies:
            raise PrinterIOError('The printer is not responding. endpoint: fake:9100')
        return self.replies.pop(0)

    def close(self):
        if self._closed:
            return
        self._closed = True
        self.close_calls += 1

    @property
    def data(self) -> bytes:
        """Everything written except status requests."""
        return b''.join(w for w in self.writes if w != ENQ)

    @property
    def queries(self) -> int:
        return sum(1 for w in self.writes if w == ENQ)


class FakeWin32Print:
    """Records spooler calls the way win32print would receive them."""

    def __init__(self, missing=(), fail_write=False):
        self.missing = set(missing)
        self.fail_write = fail_write
        self.calls = []
        self.written = []

    def OpenPrinter(self, name):
        self.calls.append('OpenPrinter')
        if name in self.missing:
            raise RuntimeError(f'(1801, "OpenPrinter", "The printer name is invalid.") {name}')
        return 42

    def StartDocPrinter(self, handle, level, info):
        self.calls.append('StartDocPrinter')
        self.doc_info = info
        return 1

    def StartPagePrinter(self, handle):
        self.calls.append('StartPagePrinter')

    def WritePrinter(self, handle, data):
        self.calls.append('WritePrinter')
        if self.fail_write:
            raise RuntimeError('(6, "WritePrinter", "The handle is invalid.")')
        self.written.append(data)
        return len(data)

    def EndPagePrinter(self, handle):
        self.calls.append('EndPagePrinter')

    def EndDocPrinter(self, handle):
        self.calls.append('EndDocPrinter')

    def ClosePrinter(self, handle):
        self.calls.append('ClosePrinter')


class FakeUdpSocket:
    """UDP socket serving queued datagrams, then timing out."""

    def __init__(self, datagrams, port=50123):
        self.datagrams = datagrams
        self.port = port
        self.sent = []
        self.options = {}
        self.timeout = None
        self.bound = None
        self.closed = False

    def setsockopt(self, level, option, value):
        self.options[(level, option)] = value

    def bind(self, address):
        self.bound = address

    def sendto(self, data, address):
        self.sent.append((data, address))
        return len(data)

    def getsockname(self):
        return ('0.0.0.0', self.port)

    def settimeout(self, timeout):
        self.timeout = timeout

    def recvfrom(self, size):
        if self.datagrams:
            return self.datagrams.pop(0), ('192.168.0.50', 19541)
        time.sleep(min(self.timeout or 0, 0.01))
        raise socket.timeout('timed out')

    def close(self):
        self.closed = True


class FakeSocketFactory:
    """Stands in for socket.socket; every socket shares one datagram queue."""

    def __init__(self, datagrams=()):
        self.datagrams = list(datagrams)
        self.sockets = []

    def __call__(self, family, kind):
        sock = FakeUdpSocket(self.datagrams)
        self.sockets.append(sock)
        return sock


@pytest.fixture
def ready_transport():
    """IP transport that reports ready for every query."""
    return FakeTransport('ip', [status_record('A')] * 10)


@pytest.fixture
def driver_transport():
    return FakeTransport('driver')
