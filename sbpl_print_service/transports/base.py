"""
Base Transport
==============

Abstract base class for the channels a print session writes to.
"""

from abc import ABC, abstractmethod

from ..exceptions import PrinterIOError


class BaseTransport(ABC):
    """Abstract base class for printer transports."""

    # 'ip' or 'driver'
    connection_type: str = ''

    @property
    def supports_status(self) -> bool:
        """Check if the transport can carry a status query."""
        return False

    @abstractmethod
    def write(self, data: bytes) -> int:
        """
        Write raw bytes to the printer.

        Args:
            data: Flattened command bytes

        Returns:
            Number of bytes written
        """
        pass

    def read(self, size: int, timeout: float) -> bytes:
        """Read one reply from the printer (override in bidirectional transports)."""
        raise PrinterIOError(f'{type(self).__name__} cannot read replies')

    @abstractmethod
    def close(self):
        """Release the channel. Must be safe to call more than once."""
        pass

    @property
    @abstractmethod
    def closed(self) -> bool:
        pass

    def describe(self) -> str:
        """Human readable endpoint, used in error messages."""
        return type(self).__name__
