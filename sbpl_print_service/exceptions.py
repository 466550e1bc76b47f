"""
Exceptions
==========

Errors raised by the SBPL driver.
"""


class SBPLError(Exception):
    """Base class for all driver errors."""


class ArgumentError(SBPLError, ValueError):
    """Out-of-range or malformed caller input. Raised before any state changes."""


class PrinterIOError(SBPLError, IOError):
    """Transport read/write failure, or a malformed reply from the printer."""


class PrinterNotFoundError(SBPLError):
    """No printer answered for the requested address."""


class DeviceError(PrinterIOError):
    """The printer reported a physical fault (paper out, head error, cover open...)."""

    def __init__(self, message: str, health=None):
        super().__init__(message)
        self.health = health


class BusyTimeoutError(PrinterIOError):
    """The printer did not become ready before the deadline."""

    def __init__(self, message: str, status=None):
        super().__init__(message)
        self.status = status


class OperationCancelled(SBPLError):
    """A polling or discovery loop was cancelled by its caller."""
