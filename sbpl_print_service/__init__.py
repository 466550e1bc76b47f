"""
SBPL Print Service
==================

Driver and HTTP service for SATO-style label printers speaking SBPL.

Supports:
- Network printers over raw TCP (port 9100) with status polling
- Locally installed printers via the Windows spooler (RAW documents)
- UDP broadcast discovery with a MAC address cache

Usage:
    from sbpl_print_service import Printer

    with Printer.find('02:00:00:00:00:01') as printer:
        printer.set_speed(4)
        printer.move_to_x(80)
        printer.move_to_y(80)
        printer.barcode.add_code128(2, 80, 'HELLO')
        printer.send(1)

Service:
    python -m sbpl_print_service

API Endpoints:
    GET    /api/discover                - Search network printers
    DELETE /api/discover/cache          - Clear discovery cache
    GET    /api/printers/{mac}/status   - Printer status
    POST   /api/print                   - Print label document
    GET    /api/jobs                    - Job history
"""

__version__ = '1.0.0'
__author__ = 'EGS Software AG'

from .exceptions import (
    SBPLError, ArgumentError, PrinterIOError, PrinterNotFoundError,
    DeviceError, BusyTimeoutError, OperationCancelled,
)
from .printer import Printer, SensorType, DensitySpec
from .search import PrinterSearch, search, find, clear_search_cache
from .status import JobStatus, Health, is_ready, poll_until_ready

__all__ = [
    'Printer', 'SensorType', 'DensitySpec',
    'PrinterSearch', 'search', 'find', 'clear_search_cache',
    'JobStatus', 'Health', 'is_ready', 'poll_until_ready',
    'SBPLError', 'ArgumentError', 'PrinterIOError', 'PrinterNotFoundError',
    'DeviceError', 'BusyTimeoutError', 'OperationCancelled',
]
