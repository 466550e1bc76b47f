"""
TCP Transport
=============

Raw socket channel to a network printer (port 9100). The same connection
carries print data and status queries.
"""

import logging
import socket
from typing import Optional

from .base import BaseTransport
from ..config import PRINTER_PORT, CONNECT_TIMEOUT
from ..exceptions import PrinterIOError, PrinterNotFoundError

logger = logging.getLogger(__name__)


class TcpTransport(BaseTransport):
    """Persistent TCP connection to a printer."""

    connection_type = 'ip'

    def __init__(self, host: str, port: int = PRINTER_PORT,
                 timeout: float = CONNECT_TIMEOUT, sock: Optional[socket.socket] = None):
        """
        Connect to a printer.

        Args:
            host: Printer IP address or hostname
            port: Raw print port
            timeout: Connect and send timeout in seconds
            sock: Already connected socket (skips connecting)
        """
        self.host = host
        self.port = port or PRINTER_PORT
        self.timeout = timeout

        if sock is None:
            try:
                sock = socket.create_connection((self.host, self.port), timeout=timeout)
            except socket.timeout as e:
                raise PrinterNotFoundError(f'Connection timeout to {self.describe()}') from e
            except OSError as e:
                raise PrinterNotFoundError(
                    f'The printer is maybe not in the same network. endpoint: {self.describe()}'
                ) from e
        self._sock = sock
        logger.debug('Connected to %s', self.describe())

    @property
    def supports_status(self) -> bool:
        return True

    @property
    def closed(self) -> bool:
        return self._sock is None

    def describe(self) -> str:
        return f'{self.host}:{self.port}'

    def _socket(self) -> socket.socket:
        if self._sock is None:
            raise PrinterIOError(f'Connection to {self.describe()} is closed')
        return self._sock

    def write(self, data: bytes) -> int:
        sock = self._socket()
        try:
            sock.settimeout(self.timeout)
            sock.sendall(data)
        except OSError as e:
            raise PrinterIOError(f'Failed to send operations by tcp. endpoint: {self.describe()}') from e
        logger.debug('Sent %d bytes to %s', len(data), self.describe())
        return len(data)

    def read(self, size: int, timeout: float) -> bytes:
        sock = self._socket()
        try:
            sock.settimeout(timeout)
            data = sock.recv(size)
        except socket.timeout as e:
            raise PrinterIOError(f'The printer is not responding. endpoint: {self.describe()}') from e
        except OSError as e:
            raise PrinterIOError(f'Failed to read from {self.describe()}') from e
        finally:
            if self._sock is not None:
                self._sock.settimeout(self.timeout)

        if not data:
            raise PrinterIOError(f'Connection closed by {self.describe()}')
        return data

    def close(self):
        if self._sock is None:
            return
        sock, self._sock = self._sock, None
        try:
            sock.close()
        finally:
            logger.debug('Closed connection to %s', self.describe())
