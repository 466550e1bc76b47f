"""
SBPL Print Service Models
"""

from .printer import PrinterInfo, format_mac
from .job import PrintJob

__all__ = ['PrinterInfo', 'PrintJob', 'format_mac']
