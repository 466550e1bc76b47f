"""UDP discovery: response parsing, search rounds and the MAC cache."""

from __future__ import annotations

import ipaddress
import socket
import threading

import pytest

from conftest import FakeSocketFactory, response_record
from sbpl_print_service.exceptions import (
    ArgumentError, OperationCancelled, PrinterNotFoundError,
)
from sbpl_print_service.search import (
    RESPONSE_SIZE, SEARCH_REQUEST, PrinterSearch, parse_mac, parse_response,
)

MAC_1 = bytes.fromhex('020000000001')
MAC_2 = bytes.fromhex('020000000002')
MAC_3 = bytes.fromhex('020000000003')

WAIT = 0.05


def make_search(*datagrams) -> tuple:
    factory = FakeSocketFactory(datagrams)
    return PrinterSearch(socket_factory=factory), factory


def test_response_is_59_bytes() -> None:
    assert RESPONSE_SIZE == 59
    assert len(response_record()) == 59


def test_parse_response() -> None:
    info = parse_response(response_record(
        mac=MAC_1, ip=(192, 168, 0, 50), mask=(255, 255, 255, 0), gateway=(192, 168, 0, 1),
        dhcp=False, rarp=True))

    assert info.mac_address == MAC_1
    assert info.mac == '02:00:00:00:00:01'
    assert info.ip_address == ipaddress.IPv4Address('192.168.0.50')
    assert info.subnet_mask == ipaddress.IPv4Address('255.255.255.0')
    assert info.gateway == ipaddress.IPv4Address('192.168.0.1')
    assert info.name == 'Lesprit Series'
    assert info.dhcp is False
    assert info.rarp is True


@pytest.mark.parametrize('datagram', [
    b'',
    SEARCH_REQUEST,
    response_record()[:-1],
    b'\x00' + response_record()[1:],
    response_record()[:-1] + b'\x00',
])
def test_parse_response_ignores_noise(datagram: bytes) -> None:
    assert parse_response(datagram) is None


def test_search_request_on_the_wire() -> None:
    searcher, factory = make_search()
    assert searcher.search(WAIT) == []

    sock, = factory.sockets
    assert sock.sent == [(b'\x01LA', ('<broadcast>', 19541))]
    assert sock.options[(socket.SOL_SOCKET, socket.SO_BROADCAST)] == 1
    assert sock.bound == ('', 0)
    assert sock.closed


def test_search_collects_distinct_printers() -> None:
    searcher, _ = make_search(
        response_record(mac=MAC_1, ip=(10, 0, 0, 1)),
        b'garbage',
        response_record(mac=MAC_2, ip=(10, 0, 0, 2)),
        response_record(mac=MAC_3, ip=(10, 0, 0, 3)),
    )

    found = searcher.search(WAIT, request_port=29541)

    assert [p.mac_address for p in found] == [MAC_1, MAC_2, MAC_3]
    assert searcher.cached(MAC_2) == ipaddress.IPv4Address('10.0.0.2')


def test_search_keeps_first_duplicate() -> None:
    searcher, _ = make_search(
        response_record(mac=MAC_1, ip=(10, 0, 0, 1)),
        response_record(mac=MAC_1, ip=(10, 0, 0, 99)),
    )

    found = searcher.search(WAIT)

    assert len(found) == 1
    assert found[0].ip_address == ipaddress.IPv4Address('10.0.0.1')
    assert searcher.cached(MAC_1) == ipaddress.IPv4Address('10.0.0.1')


def test_search_replaces_cache() -> None:
    searcher, factory = make_search(response_record(mac=MAC_1))
    searcher.search(WAIT)

    factory.datagrams.append(response_record(mac=MAC_2))
    searcher.search(WAIT)

    assert searcher.cached(MAC_1) is None
    assert searcher.cached(MAC_2) is not None


def test_find_cache_hit_sends_nothing() -> None:
    searcher, factory = make_search(response_record(mac=MAC_1, ip=(10, 0, 0, 1)))
    searcher.search(WAIT)

    address = searcher.find('02-00-00-00-00-01', WAIT)

    assert address == ipaddress.IPv4Address('10.0.0.1')
    assert len(factory.sockets) == 1


def test_find_stops_at_first_match() -> None:
    late = response_record(mac=MAC_3)
    searcher, factory = make_search(
        response_record(mac=MAC_1),
        response_record(mac=MAC_2, ip=(10, 0, 0, 2)),
        late,
    )

    assert searcher.find('02:00:00:00:00:02', WAIT) == ipaddress.IPv4Address('10.0.0.2')
    assert factory.datagrams == [late]
    assert factory.sockets[0].closed
    assert searcher.cached(MAC_2) == ipaddress.IPv4Address('10.0.0.2')
    # only the match is cached
    assert searcher.cached(MAC_1) is None


def test_find_not_found() -> None:
    searcher, factory = make_search(response_record(mac=MAC_1))
    with pytest.raises(PrinterNotFoundError) as excinfo:
        searcher.find(MAC_2, WAIT)
    assert '02:00:00:00:00:02' in str(excinfo.value)
    assert factory.sockets[0].closed


def test_clear_cache_forces_broadcast() -> None:
    searcher, factory = make_search(response_record(mac=MAC_1), response_record(mac=MAC_1))
    searcher.find(MAC_1, WAIT)
    searcher.clear_cache()
    assert searcher.cached(MAC_1) is None

    searcher.find(MAC_1, WAIT)
    assert len(factory.sockets) == 2


def test_search_cancelled() -> None:
    cancel = threading.Event()
    cancel.set()
    searcher, factory = make_search(response_record(mac=MAC_1))

    with pytest.raises(OperationCancelled):
        searcher.search(10, cancel=cancel)
    assert factory.sockets[0].closed


def test_cancel_from_another_thread_ends_find_early() -> None:
    cancel = threading.Event()
    searcher, _ = make_search()
    timer = threading.Timer(0.05, cancel.set)
    timer.start()
    try:
        with pytest.raises(OperationCancelled):
            searcher.find(MAC_1, 10, cancel=cancel)
    finally:
        timer.cancel()


def test_rounds_are_serialized_by_the_lock() -> None:
    lock = threading.Lock()
    searcher = PrinterSearch(lock=lock, socket_factory=FakeSocketFactory())
    results = []

    lock.acquire()
    worker = threading.Thread(target=lambda: results.append(searcher.search(WAIT)))
    worker.start()
    worker.join(0.1)
    assert worker.is_alive()

    lock.release()
    worker.join(5)
    assert results == [[]]


@pytest.mark.parametrize('wait', [0, -1])
def test_wait_time_must_be_positive(wait: float) -> None:
    searcher, factory = make_search()
    with pytest.raises(ArgumentError):
        searcher.search(wait)
    with pytest.raises(ArgumentError):
        searcher.find(MAC_1, wait)
    assert factory.sockets == []


# =============================================================================
# MAC addresses
# =============================================================================

@pytest.mark.parametrize('text', ['02:00:00:00:00:01', '02-00-00-00-00-01', '020000000001', ' 02:00:00:00:00:01 '])
def test_parse_mac(text: str) -> None:
    assert parse_mac(text) == MAC_1


@pytest.mark.parametrize('text', ['00:00:00:00:00:00', '02:00:00:00:00', '02:00:00:00:00:01:02', 'zz:00:00:00:00:01', '', 12])
def test_parse_mac_rejects(text) -> None:
    with pytest.raises(ArgumentError):
        parse_mac(text)
