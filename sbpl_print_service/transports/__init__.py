"""
SBPL Print Service Transports
=============================

Channels a print session writes to.
"""

from .base import BaseTransport
from .tcp import TcpTransport
from .spooler import SpoolerTransport

__all__ = ['BaseTransport', 'TcpTransport', 'SpoolerTransport']
