"""
SBPL Printer Session
====================

Builds SBPL jobs as an ordered list of operations and transmits them over
a transport.

Job layout:

    STX
      ESC A  <setting>  ESC Z        one page per global setting
      ESC A  <drawing operations>  ESC Z
      ...                            further pages from add_stream()
    ETX

Global settings (density, speed, paper size, gap, sensor) are inserted at
the settings boundary so they always run as their own pages ahead of the
drawing commands of the current page.
"""

import enum
import logging
import threading
from datetime import datetime
from typing import List, Optional, Sequence

from .barcode import Barcode
from .graphic import Graphic
from .config import (
    PRINTER_PORT, CONNECT_TIMEOUT, STATUS_TIMEOUT, DEFAULT_DOC_NAME,
    CONNECT_WAIT_TIMEOUT, CONNECT_WAIT_INTERVAL,
    PRINT_SEND_TIMEOUT, PRINT_SEND_INTERVAL,
    SEARCH_PORT, SEARCH_WAIT,
)
from .exceptions import ArgumentError, PrinterIOError
from .search import default_search
from .status import JobStatus, poll_until_ready
from .transports import BaseTransport, TcpTransport, SpoolerTransport

logger = logging.getLogger(__name__)

# SBPL Control Codes
STX = b'\x02'  # Start of text
ETX = b'\x03'  # End of text
ESC = b'\x1b'

PAGE_START = ESC + b'A'
PAGE_END = ESC + b'Z'


class SensorType(enum.IntEnum):
    REFLECTION = 0
    TRANSPARENT = 1
    IGNORE = 2


class DensitySpec(enum.Enum):
    A = 'A'
    B = 'B'
    C = 'C'
    D = 'D'
    E = 'E'
    F = 'F'


def _check_range(value: int, low: int, high: int, message: str):
    if not (low <= value <= high):
        raise ArgumentError(f'{message} value: {value}')


def _encode(operation: str) -> bytes:
    try:
        return ESC + operation.encode('ascii')
    except UnicodeEncodeError:
        raise ArgumentError(f'Operations must be ASCII. operation: {operation!r}') from None


def _page_number(number_of_pages: int) -> bytes:
    _check_range(number_of_pages, 1, 999999, 'Specify 1-999999 pages.')
    return _encode(f'Q{number_of_pages:06d}')


class Printer:
    """One print session on one transport."""

    def __init__(self, transport: BaseTransport,
                 print_timeout: float = PRINT_SEND_TIMEOUT,
                 print_interval: float = PRINT_SEND_INTERVAL,
                 status_timeout: float = STATUS_TIMEOUT,
                 send_at_close: bool = False,
                 cancel: Optional[threading.Event] = None):
        """
        Args:
            transport: Open transport; the session owns and closes it
            print_timeout: Default readiness deadline after each transmission
            print_interval: Delay between status queries while waiting
            status_timeout: I/O timeout of a single status query
            send_at_close: Send pending operations when the session closes
            cancel: Event that aborts readiness polling
        """
        self.transport = transport
        self.print_timeout = print_timeout
        self.print_interval = print_interval
        self.status_timeout = status_timeout
        self.send_at_close = send_at_close
        self.cancel = cancel

        self.barcode = Barcode(self)
        self.graphic = Graphic(self)

        self.status: Optional[JobStatus] = None
        self._soft_offset_x = 0
        self._soft_offset_y = 0
        self._closed = False
        self._reset_job()

    # =========================================================================
    # Sessions
    # =========================================================================

    @classmethod
    def connect(cls, host: str, port: int = PRINTER_PORT,
                connect_timeout: float = CONNECT_TIMEOUT,
                wait_timeout: float = CONNECT_WAIT_TIMEOUT,
                wait_interval: float = CONNECT_WAIT_INTERVAL,
                **kwargs) -> 'Printer':
        """
        Open a TCP session and wait until the printer is ready.

        Raises:
            PrinterNotFoundError: connection refused or timed out
            DeviceError: the printer reports a fault
            BusyTimeoutError: the printer stayed busy for wait_timeout
        """
        transport = TcpTransport(host, port, timeout=connect_timeout)
        printer = cls(transport, **kwargs)
        try:
            printer.status = poll_until_ready(
                transport, wait_timeout, wait_interval,
                cancel=printer.cancel, io_timeout=printer.status_timeout)
        except Exception:
            transport.close()
            raise
        logger.info('Connected to %s (%s)', transport.describe(), printer.status)
        return printer

    @classmethod
    def open_spooler(cls, name: str, doc_name: str = DEFAULT_DOC_NAME, api=None, **kwargs) -> 'Printer':
        """Open a RAW spooler document on a locally installed printer."""
        return cls(SpoolerTransport(name, doc_name, api=api), **kwargs)

    @classmethod
    def find(cls, mac_address, port: int = PRINTER_PORT, wait_time: float = SEARCH_WAIT,
             request_port: int = SEARCH_PORT, searcher=None, **kwargs) -> 'Printer':
        """Resolve a MAC address through discovery, then connect."""
        searcher = searcher or default_search()
        address = searcher.find(mac_address, wait_time, request_port, kwargs.get('cancel'))
        return cls.connect(str(address), port, **kwargs)

    @property
    def connection_type(self) -> str:
        return self.transport.connection_type

    @property
    def closed(self) -> bool:
        return self._closed

    # =========================================================================
    # Operation stream
    # =========================================================================

    def _reset_job(self):
        """Back to an empty job: frame start only."""
        self.operations: List[bytes] = [STX]
        self.settings_boundary = len(self.operations)

    def _reset_page(self):
        """Back to an empty page inside an open job."""
        self.operations = []
        self.settings_boundary = 0

    def _check_open(self):
        if self._closed:
            raise PrinterIOError(f'Printer session is closed. endpoint: {self.transport.describe()}')

    def add(self, operation: str):
        """Append one ESC-prefixed command to the current page."""
        self._check_open()
        self.operations.append(_encode(operation))

    def add_raw(self, raw_operation: bytes):
        """Append raw bytes to the current page."""
        self._check_open()
        self.operations.append(bytes(raw_operation))

    def insert_global_setting(self, operation: str):
        """Insert a self-contained settings page ahead of the drawing commands."""
        self._check_open()
        unit = [PAGE_START, _encode(operation), PAGE_END]
        index = self.settings_boundary
        self.operations[index:index] = unit
        self.settings_boundary += len(unit)

    @property
    def has_pending(self) -> bool:
        """True when operations were added since the last transmission."""
        return bool(self.operations) and self.operations != [STX]

    # =========================================================================
    # Positioning & settings
    # =========================================================================

    def move_to_x(self, x: int):
        _x = x + self._soft_offset_x
        _check_range(_x, 1, 9999, 'Specify 1-9999 dots.')
        self.add(f'H{_x:04d}')

    def move_to_y(self, y: int):
        _y = y + self._soft_offset_y
        _check_range(_y, 1, 9999, 'Specify 1-9999 dots.')
        self.add(f'V{_y:04d}')

    def set_start_position(self, x: int, y: int):
        """Printer-side base reference point (A3)."""
        _check_range(x, -999, 999, 'Specify -999 <= x <= 999 dots.')
        _check_range(y, -999, 999, 'Specify -999 <= y <= 999 dots.')
        self.add(f'A3V{y:+04d}H{x:+04d}')

    def set_start_position_ex(self, x: int, y: int):
        """Host-side offset added to every move_to_x/move_to_y."""
        _check_range(x, -9999, 9999, 'Specify -9999 <= x <= 9999 dots.')
        _check_range(y, -9999, 9999, 'Specify -9999 <= y <= 9999 dots.')
        self._soft_offset_x = x
        self._soft_offset_y = y

    def set_gap_size_between_labels(self, y: int):
        _check_range(y, 0, 64, 'Specify 0-64 dots.')
        self.insert_global_setting(f'TG{y:02d}')

    def set_density(self, density: int, spec: DensitySpec = DensitySpec.A):
        _check_range(density, 1, 5, 'Specify 1-5 density.')
        try:
            spec = DensitySpec(spec)
        except ValueError:
            raise ArgumentError(f'Specify density spec A-F. value: {spec!r}') from None
        self.insert_global_setting(f'#E{density:d}{spec.value}')

    def set_speed(self, speed: int):
        _check_range(speed, 1, 5, 'Specify 1-5 speed.')
        self.insert_global_setting(f'CS{speed:02d}')

    def set_paper_size(self, height: int, width: int):
        _check_range(height, 1, 9999, 'Specify 1-9999 dots for height.')
        _check_range(width, 1, 9999, 'Specify 1-9999 dots for width.')
        self.insert_global_setting(f'A1{height:04d}{width:04d}')

    def set_sensor_type(self, sensor: SensorType):
        try:
            sensor = SensorType(sensor)
        except ValueError:
            raise ArgumentError(f'Specify sensor type 0-2. value: {sensor!r}') from None
        self.insert_global_setting(f'IG{sensor.value:d}')

    def set_calendar(self, dt: datetime):
        self.add(f'WT{dt.year % 100:02d}{dt.month:02d}{dt.day:02d}{dt.hour:02d}{dt.minute:02d}')

    def set_page_number(self, number_of_pages: int):
        self._check_open()
        self.operations.append(_page_number(number_of_pages))

    # =========================================================================
    # Transmission
    # =========================================================================

    def _check_timeout(self, timeout: Optional[float]) -> float:
        if timeout is None:
            return self.print_timeout
        if not timeout > 0:
            raise ArgumentError(f'Specify valid timeout (> 0). seconds: {timeout}')
        return timeout

    def _flush(self, page_end: bytes, tail: Sequence[bytes] = ()) -> int:
        # Frame a copy; the stream stays untouched if the write fails
        operations = list(self.operations)
        operations.insert(self.settings_boundary, PAGE_START)
        operations.extend(tail)
        operations.append(page_end)
        flatten = b''.join(operations)
        self.transport.write(flatten)
        return len(flatten)

    def _wait_ready(self, timeout: float):
        if not self.transport.supports_status:
            return
        self.status = poll_until_ready(
            self.transport, timeout, self.print_interval,
            cancel=self.cancel, io_timeout=self.status_timeout)

    def add_stream(self, timeout: Optional[float] = None) -> int:
        """
        Close the current page and transmit it, keeping the job open.

        On a TCP transport the printer must become ready again within
        timeout seconds after the data is sent.

        Returns:
            Number of bytes sent
        """
        self._check_open()
        timeout = self._check_timeout(timeout)

        sent = self._flush(PAGE_END)
        self._reset_page()
        logger.debug('Streamed page (%d bytes) to %s', sent, self.transport.describe())

        self._wait_ready(timeout)
        return sent

    def send(self, number_of_pages: Optional[int] = None, timeout: Optional[float] = None) -> int:
        """
        Close the current page and the job, and transmit.

        Args:
            number_of_pages: Append a page count (Q) operation first
            timeout: Readiness deadline for TCP transports

        Returns:
            Number of bytes sent
        """
        self._check_open()
        timeout = self._check_timeout(timeout)
        tail = () if number_of_pages is None else (_page_number(number_of_pages),)

        sent = self._flush(PAGE_END + ETX, tail)
        self._reset_job()
        logger.debug('Sent job (%d bytes) to %s', sent, self.transport.describe())

        self._wait_ready(timeout)
        return sent

    def query_status(self) -> JobStatus:
        """One status round trip (TCP only)."""
        self._check_open()
        self.status = JobStatus.query(self.transport, self.status_timeout)
        return self.status

    def close(self):
        """Close the session. Safe to call more than once."""
        if self._closed:
            return
        try:
            if self.send_at_close and self.has_pending:
                self.send()
        finally:
            self._closed = True
            self.operations = []
            self.transport.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
