"""TCP transport against a loopback server."""

from __future__ import annotations

import socket
import threading

import pytest

from conftest import ENQ, STX, status_record
from sbpl_print_service.exceptions import PrinterIOError, PrinterNotFoundError
from sbpl_print_service.printer import Printer
from sbpl_print_service.status import State, query
from sbpl_print_service.transports import TcpTransport


class FakePrinterServer:
    """Accepts one connection; answers every ENQ with the next reply."""

    def __init__(self, replies=()):
        self.replies = list(replies)
        self.received = b''
        self._server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._server.bind(('127.0.0.1', 0))
        self._server.listen(1)
        self.port = self._server.getsockname()[1]
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    def _serve(self):
        conn, _ = self._server.accept()
        with conn:
            while True:
                data = conn.recv(4096)
                if not data:
                    return
                self.received += data
                if data.endswith(ENQ):
                    if not self.replies:
                        return
                    conn.sendall(self.replies.pop(0))

    def stop(self):
        self._thread.join(2)
        self._server.close()


def unused_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(('127.0.0.1', 0))
        return sock.getsockname()[1]


def test_status_query_over_loopback() -> None:
    server = FakePrinterServer([status_record('G', remaining='000010')])
    transport = TcpTransport('127.0.0.1', server.port, timeout=2)
    try:
        status = query(transport, timeout=2)
    finally:
        transport.close()
        server.stop()

    assert server.received == ENQ
    assert status.health.state is State.ONLINE_PRINTING
    assert status.label_remaining == 10


def test_print_session_over_loopback() -> None:
    server = FakePrinterServer([status_record('A')] * 2)
    with Printer.connect('127.0.0.1', server.port, connect_timeout=2) as printer:
        printer.move_to_x(1)
        printer.send(timeout=2)
    server.stop()

    assert server.received.startswith(ENQ + STX)
    assert server.received.endswith(ENQ)


def test_connection_refused() -> None:
    with pytest.raises(PrinterNotFoundError):
        TcpTransport('127.0.0.1', unused_port(), timeout=1)


def test_peer_closes_before_reply() -> None:
    server = FakePrinterServer()
    transport = TcpTransport('127.0.0.1', server.port, timeout=2)
    try:
        with pytest.raises(PrinterIOError):
            query(transport, timeout=2)
    finally:
        transport.close()
        server.stop()


def test_closed_transport() -> None:
    server = FakePrinterServer()
    transport = TcpTransport('127.0.0.1', server.port, timeout=2)
    transport.close()
    transport.close()
    server.stop()

    assert transport.closed
    with pytest.raises(PrinterIOError):
        transport.write(b'x')
