"""
Spooler Transport
=================

Sends RAW documents through the Windows print spooler via pywin32.
One spooler document spans the whole session; every flushed stream is
written as one spooler page.
"""

import sys
import logging

from .base import BaseTransport
from ..config import DEFAULT_DOC_NAME
from ..exceptions import ArgumentError, PrinterIOError, PrinterNotFoundError

logger = logging.getLogger(__name__)


def _load_win32print():
    """Import win32print, failing clearly off Windows."""
    if sys.platform != 'win32':
        raise PrinterIOError('Spooler transport requires Windows')
    try:
        import win32print
    except ImportError as e:
        raise PrinterIOError(f'Missing module: {e}. Install: pip install pywin32') from e
    return win32print


class SpoolerTransport(BaseTransport):
    """RAW print job on a locally installed printer driver."""

    connection_type = 'driver'

    def __init__(self, printer_name: str, doc_name: str = DEFAULT_DOC_NAME, api=None):
        """
        Open the printer and start a RAW document.

        Args:
            printer_name: Windows printer name
            doc_name: Spooler document name
            api: win32print-compatible module (defaults to win32print)
        """
        if not doc_name:
            raise ArgumentError(f'The document name is empty. name: {printer_name}, doc_name: {doc_name!r}')

        self.printer_name = printer_name
        self.doc_name = doc_name
        self._api = api if api is not None else _load_win32print()

        try:
            self._handle = self._api.OpenPrinter(printer_name)
        except Exception as e:
            raise PrinterNotFoundError(f'The printer not found. name: {printer_name}') from e

        try:
            self._api.StartDocPrinter(self._handle, 1, (doc_name, None, 'RAW'))
        except Exception as e:
            self._api.ClosePrinter(self._handle)
            self._handle = None
            raise PrinterIOError(f'Failed to use printer. name: {printer_name}') from e

        logger.debug('Started spooler document %r on %s', doc_name, printer_name)

    @property
    def closed(self) -> bool:
        return self._handle is None

    def describe(self) -> str:
        return self.printer_name

    def write(self, data: bytes) -> int:
        if self._handle is None:
            raise PrinterIOError(f'Spooler document on {self.printer_name} is closed')
        try:
            self._api.StartPagePrinter(self._handle)
            written = self._api.WritePrinter(self._handle, data)
            self._api.EndPagePrinter(self._handle)
        except Exception as e:
            raise PrinterIOError(f'Failed to send operations for windows printer. name: {self.printer_name}') from e
        logger.debug('Spooled %d bytes to %s', written, self.printer_name)
        return written

    def close(self):
        if self._handle is None:
            return
        handle, self._handle = self._handle, None
        try:
            self._api.EndDocPrinter(handle)
        except Exception as e:
            self._api.ClosePrinter(handle)
            raise PrinterIOError(f'Failed to end document. name: {self.printer_name}') from e
        try:
            self._api.ClosePrinter(handle)
        except Exception as e:
            raise PrinterIOError(f'Failed to close printer. name: {self.printer_name}') from e
