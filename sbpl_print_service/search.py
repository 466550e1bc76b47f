"""
Printer Search
==============

UDP broadcast discovery for SBPL network printers.

The host broadcasts SOH 'L' 'A' to port 19541 from an ephemeral port;
every printer on the segment answers to that port with one 59 byte record:

    STX | MAC[6] | , | IP[4] | , | Subnet[4] | , | Gateway[4] | ,
        | Name[32, NUL padded] | , | DHCP[1] | RARP[1] | ETX

Results are cached by MAC address so later lookups can skip the broadcast.
"""

import socket
import struct
import logging
import ipaddress
import threading
import time
from typing import Dict, Iterator, List, Optional

from .config import SEARCH_PORT, SEARCH_WAIT
from .exceptions import ArgumentError, PrinterIOError, PrinterNotFoundError, OperationCancelled
from .models import PrinterInfo, format_mac

logger = logging.getLogger(__name__)

SEARCH_REQUEST = b'\x01LA'
BROADCAST_ADDRESS = '<broadcast>'

RESPONSE_FORMAT = struct.Struct('>B6sx4sx4sx4sx32sx??B')
RESPONSE_SIZE = RESPONSE_FORMAT.size  # 59
READ_SIZE = 1024

# Longest single blocking receive, so cancellation is noticed promptly
RECEIVE_SLICE = 0.1

STX = 0x02
ETX = 0x03


def parse_mac(mac_address: str) -> bytes:
    """
    Parse an EUI-48 address.

    Accepts 02:00:00:00:00:01, 02-00-00-00-00-01 or 020000000001.
    """
    if not isinstance(mac_address, str):
        raise ArgumentError(f'Bad physical address. address: {mac_address!r}')
    digits = mac_address.strip().replace(':', '').replace('-', '')
    try:
        mac = bytes.fromhex(digits)
    except ValueError:
        raise ArgumentError(f'Bad physical address. address: {mac_address}') from None
    if len(mac) != 6 or not any(mac):
        raise ArgumentError(f'Bad physical address. address: {mac_address}')
    return mac


def parse_response(raw: bytes) -> Optional[PrinterInfo]:
    """
    Decode a discovery response.

    Returns:
        PrinterInfo, or None when the datagram is not a response record
    """
    if len(raw) < RESPONSE_SIZE:
        return None
    stx, mac, ip, mask, gateway, name, dhcp, rarp, etx = RESPONSE_FORMAT.unpack_from(raw)
    if stx != STX or etx != ETX:
        return None
    return PrinterInfo(
        mac_address=mac,
        ip_address=ipaddress.IPv4Address(ip),
        subnet_mask=ipaddress.IPv4Address(mask),
        gateway=ipaddress.IPv4Address(gateway),
        name=name.split(b'\x00', 1)[0].decode('ascii', errors='replace'),
        dhcp=dhcp,
        rarp=rarp,
    )


class PrinterSearch:
    """
    Discovery service holding the MAC to IP cache.

    A single lock covers cache reads, the broadcast and cache writes, so
    only one discovery round runs at a time per instance.
    """

    def __init__(self, lock=None, socket_factory=socket.socket,
                 broadcast_address: str = BROADCAST_ADDRESS):
        self._lock = lock if lock is not None else threading.Lock()
        self._socket_factory = socket_factory
        self.broadcast_address = broadcast_address
        self._cache: Dict[bytes, ipaddress.IPv4Address] = {}

    # =========================================================================
    # Cache
    # =========================================================================

    def clear_cache(self):
        """Forget every cached address."""
        with self._lock:
            self._cache.clear()

    def cached(self, mac_address) -> Optional[ipaddress.IPv4Address]:
        """Cached IP for a MAC address, if any."""
        mac = mac_address if isinstance(mac_address, bytes) else parse_mac(mac_address)
        with self._lock:
            return self._cache.get(mac)

    # =========================================================================
    # Wire
    # =========================================================================

    def _open_socket(self) -> socket.socket:
        sock = self._socket_factory(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
            sock.bind(('', 0))
        except OSError as e:
            sock.close()
            raise PrinterIOError('Failed to open discovery socket') from e
        return sock

    def broadcast(self, sock: socket.socket, request_port: int = SEARCH_PORT) -> int:
        """
        Send the discovery request from sock.

        Returns:
            The ephemeral port responses will arrive on
        """
        try:
            sock.sendto(SEARCH_REQUEST, (self.broadcast_address, request_port))
        except OSError as e:
            raise PrinterIOError(
                f'Failed to broadcast search request. port: {request_port}') from e
        port = sock.getsockname()[1]
        logger.debug('Search request sent to %s:%d, listening on %d',
                     self.broadcast_address, request_port, port)
        return port

    def _receive(self, sock: socket.socket, wait_time: float,
                 cancel: Optional[threading.Event]) -> Iterator[PrinterInfo]:
        """Yield decoded responses until wait_time elapses. Noise is dropped."""
        deadline = time.monotonic() + wait_time
        while True:
            if cancel is not None and cancel.is_set():
                raise OperationCancelled('Printer search cancelled')
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return
            sock.settimeout(min(remaining, RECEIVE_SLICE))
            try:
                data, sender = sock.recvfrom(READ_SIZE)
            except socket.timeout:
                continue
            except OSError as e:
                raise PrinterIOError('Failed to receive search responses') from e

            info = parse_response(data)
            if info is None:
                logger.debug('Ignoring %d byte datagram from %s', len(data), sender)
                continue
            yield info

    # =========================================================================
    # Operations
    # =========================================================================

    def search(self, wait_time: float = SEARCH_WAIT, request_port: int = SEARCH_PORT,
               cancel: Optional[threading.Event] = None) -> List[PrinterInfo]:
        """
        Collect every printer that answers within wait_time.

        The cache is replaced by the results. Duplicate MAC addresses keep
        the first response.
        """
        if wait_time <= 0:
            raise ArgumentError(f'Specify valid wait time (> 0). seconds: {wait_time}')

        with self._lock:
            self._cache.clear()
            found: Dict[bytes, PrinterInfo] = {}
            sock = self._open_socket()
            try:
                self.broadcast(sock, request_port)
                for info in self._receive(sock, wait_time, cancel):
                    if info.mac_address in found:
                        continue
                    found[info.mac_address] = info
                    self._cache[info.mac_address] = info.ip_address
            finally:
                sock.close()

        logger.info('Search found %d printer(s)', len(found))
        return list(found.values())

    def find(self, mac_address, wait_time: float = SEARCH_WAIT, request_port: int = SEARCH_PORT,
             cancel: Optional[threading.Event] = None) -> ipaddress.IPv4Address:
        """
        Resolve a MAC address to an IP address.

        A cached entry is returned without touching the network. Otherwise
        a request is broadcast and the first matching response wins.

        Raises:
            PrinterNotFoundError: no matching response within wait_time
        """
        mac = mac_address if isinstance(mac_address, bytes) else parse_mac(mac_address)
        if wait_time <= 0:
            raise ArgumentError(f'Specify valid wait time (> 0). seconds: {wait_time}')

        with self._lock:
            if mac in self._cache:
                logger.debug('Cache hit for %s', format_mac(mac))
                return self._cache[mac]

            sock = self._open_socket()
            try:
                self.broadcast(sock, request_port)
                for info in self._receive(sock, wait_time, cancel):
                    if info.mac_address == mac:
                        self._cache[mac] = info.ip_address
                        logger.info('Found printer %s at %s', info.mac, info.ip_address)
                        return info.ip_address
            finally:
                sock.close()

        raise PrinterNotFoundError(f'Not found printer. mac: {format_mac(mac)}')


# Process-wide default instance
_default_search = PrinterSearch()


def default_search() -> PrinterSearch:
    return _default_search


def search(wait_time: float = SEARCH_WAIT, request_port: int = SEARCH_PORT,
           cancel: Optional[threading.Event] = None) -> List[PrinterInfo]:
    return _default_search.search(wait_time, request_port, cancel)


def find(mac_address, wait_time: float = SEARCH_WAIT, request_port: int = SEARCH_PORT,
         cancel: Optional[threading.Event] = None) -> ipaddress.IPv4Address:
    return _default_search.find(mac_address, wait_time, request_port, cancel)


def clear_search_cache():
    _default_search.clear_cache()
