"""
Printer Status
==============

Status query protocol for SBPL printers (STATUS4 style).

The host sends ENQ; the printer answers with a fixed 27 byte record,
possibly preceded by padding bytes:

    STX | ID[2] | Health[1] | LabelRemaining[6] | Name[16] | ETX

The Health character maps to an operational triple (state, battery,
buffer) or to an error kind.
"""

import enum
import time
import logging
import threading
from dataclasses import dataclass
from typing import Dict, Optional

from .config import STATUS_TIMEOUT
from .exceptions import (
    ArgumentError, PrinterIOError, DeviceError, BusyTimeoutError, OperationCancelled,
)

logger = logging.getLogger(__name__)

STX = 0x02
ETX = 0x03
ENQ = 0x05

REQUEST = bytes([ENQ])
RECORD_SIZE = 27
READ_SIZE = 1024


class State(enum.Enum):
    OFFLINE = 'Offline'
    ONLINE = 'Online'
    ONLINE_PRINTING = 'OnlinePrinting'
    ONLINE_DISPENSE = 'OnlineDispense'
    ONLINE_ANALYZING = 'OnlineAnalyzing'
    ERROR = 'Error'


class Battery(enum.Enum):
    NEAR_END = 'NearEnd'
    OK = 'OK'
    UNKNOWN = 'Unknown'


class Buffer(enum.Enum):
    NEAR_FULL = 'NearFull'
    OK = 'OK'
    UNKNOWN = 'Unknown'


class Error(enum.Enum):
    NONE = 'None'
    BUFFER = 'Buffer'
    PAPER = 'Paper'
    BATTERY = 'Battery'
    SENSOR = 'Sensor'
    HEAD = 'Head'
    COVER_OPEN = 'CoverOpen'
    OTHER = 'Other'


READY_STATES = frozenset({
    State.ONLINE, State.ONLINE_PRINTING, State.ONLINE_DISPENSE, State.ONLINE_ANALYZING,
})


@dataclass(frozen=True)
class Health:
    """Decoded health character."""

    raw: str
    state: State
    battery: Battery = Battery.OK
    buffer: Buffer = Buffer.OK
    error: Error = Error.NONE

    @property
    def is_error(self) -> bool:
        return self.error is not Error.NONE

    @classmethod
    def decode(cls, code: str) -> 'Health':
        """Look up a raw health character. Unknown characters are a protocol failure."""
        try:
            return HEALTH_CODES[code]
        except KeyError:
            raise PrinterIOError(f'Printer status is unknown. status: {code!r}') from None


def _operational(codes: str, state: State) -> Dict[str, Health]:
    # Each state uses four consecutive codes: ok, battery near end,
    # buffer near full, both.
    plain, battery, buffer, both = codes
    return {
        plain: Health(plain, state),
        battery: Health(battery, state, battery=Battery.NEAR_END),
        buffer: Health(buffer, state, buffer=Buffer.NEAR_FULL),
        both: Health(both, state, battery=Battery.NEAR_END, buffer=Buffer.NEAR_FULL),
    }


def _fault(code: str, error: Error) -> Dict[str, Health]:
    return {code: Health(code, State.ERROR, Battery.UNKNOWN, Buffer.UNKNOWN, error)}


HEALTH_CODES: Dict[str, Health] = {
    **_operational('0123', State.OFFLINE),
    **_operational('ABCD', State.ONLINE),
    **_operational('GHIJ', State.ONLINE_PRINTING),
    **_operational('MNOP', State.ONLINE_DISPENSE),
    **_operational('STUV', State.ONLINE_ANALYZING),
    **_fault('a', Error.BUFFER),
    **_fault('c', Error.PAPER),
    **_fault('d', Error.BATTERY),
    **_fault('f', Error.SENSOR),
    **_fault('g', Error.HEAD),
    **_fault('h', Error.COVER_OPEN),
    **_fault('k', Error.OTHER),
}


def _validate_health_codes(table: Dict[str, Health]):
    """Every code must decode to a distinct triple or error kind."""
    seen = {}
    for code, health in table.items():
        if code != health.raw:
            raise AssertionError(f'health table key {code!r} holds {health.raw!r}')
        key = health.error if health.is_error else (health.state, health.battery, health.buffer)
        if key in seen:
            raise AssertionError(f'health codes {seen[key]!r} and {code!r} decode identically')
        seen[key] = code
    for state in State:
        if state is State.ERROR:
            continue
        for battery in (Battery.OK, Battery.NEAR_END):
            for buffer in (Buffer.OK, Buffer.NEAR_FULL):
                if (state, battery, buffer) not in seen:
                    raise AssertionError(f'no health code for {state}, {battery}, {buffer}')
    for error in Error:
        if error is not Error.NONE and error not in seen:
            raise AssertionError(f'no health code for {error}')


_validate_health_codes(HEALTH_CODES)


@dataclass(frozen=True)
class JobStatus:
    """One status snapshot. Never mutated; refresh() issues a new query."""

    id: str
    health: Health
    label_remaining: int
    name: str

    @property
    def ok(self) -> bool:
        return is_ready(self)

    @classmethod
    def query(cls, transport, timeout: float = STATUS_TIMEOUT) -> 'JobStatus':
        return query(transport, timeout)

    def refresh(self, transport, timeout: float = STATUS_TIMEOUT) -> 'JobStatus':
        return query(transport, timeout)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'name': self.name,
            'label_remaining': self.label_remaining,
            'health': self.health.raw,
            'state': self.health.state.value,
            'battery': self.health.battery.value,
            'buffer': self.health.buffer.value,
            'error': self.health.error.value,
            'ready': self.ok,
        }

    def __str__(self):
        return (
            f'ID: {self.id}, Name: {self.name}, LabelRemaining: {self.label_remaining}, '
            f'State: {self.health.state.value}, Battery: {self.health.battery.value}, '
            f'Buffer: {self.health.buffer.value}, Error: {self.health.error.value}'
        )


def decode(record: bytes) -> JobStatus:
    """
    Parse a status record.

    Args:
        record: Exactly RECORD_SIZE bytes, STX..ETX framed

    Returns:
        JobStatus

    Raises:
        PrinterIOError: framing is broken or the health code is unknown
        DeviceError: the printer reports a fault
    """
    if len(record) != RECORD_SIZE:
        raise PrinterIOError(f'Status record must be {RECORD_SIZE} bytes, got {len(record)}')
    if record[0] != STX or record[-1] != ETX:
        raise PrinterIOError(f'Malformed status record: {record.hex()}')

    text = record[1:-1].decode('ascii', errors='replace')
    job_id = text[0:2]
    health = Health.decode(text[2])
    remaining = text[3:9]
    name = text[9:25].rstrip('\x00 ')

    # Six ASCII digits, no sign or padding
    if not (remaining.isascii() and remaining.isdigit()):
        raise PrinterIOError(f'Malformed label remaining count: {remaining!r}')
    label_remaining = int(remaining)

    if health.is_error:
        raise DeviceError(f'Printer failure. error: {health.error.value}', health=health)

    return JobStatus(id=job_id, health=health, label_remaining=label_remaining, name=name)


def query(transport, timeout: float = STATUS_TIMEOUT) -> JobStatus:
    """
    Ask the printer for its status. One round trip, no retries.

    The record is always the last RECORD_SIZE bytes of the reply; anything
    before it is transport padding.
    """
    transport.write(REQUEST)
    reply = transport.read(READ_SIZE, timeout)
    if len(reply) < RECORD_SIZE:
        raise PrinterIOError(f'Short status reply ({len(reply)} bytes): {reply.hex()}')
    status = decode(reply[-RECORD_SIZE:])
    logger.debug('Status from %s: %s', transport.describe(), status)
    return status


def is_ready(status: JobStatus) -> bool:
    """True when the printer is online and neither battery nor buffer needs attention."""
    health = status.health
    return (health.state in READY_STATES
            and health.battery is Battery.OK
            and health.buffer is Buffer.OK)


def poll_until_ready(transport, timeout: float, interval: float,
                     cancel: Optional[threading.Event] = None,
                     io_timeout: float = STATUS_TIMEOUT) -> JobStatus:
    """
    Query until the printer is ready or the deadline passes.

    Only "not ready yet" is retried. I/O failures and device faults
    propagate from the first query that hits them.

    Args:
        transport: Bidirectional transport
        timeout: Overall deadline in seconds
        interval: Delay between queries in seconds
        cancel: Event that aborts the loop when set
        io_timeout: Per-query read timeout

    Returns:
        The first ready JobStatus

    Raises:
        BusyTimeoutError: deadline passed; carries the last status
        OperationCancelled: cancel was set
    """
    if timeout <= 0:
        raise ArgumentError(f'Specify valid timeout (> 0). seconds: {timeout}')
    if interval < 0:
        raise ArgumentError(f'Specify valid interval (>= 0). seconds: {interval}')

    cancel = cancel or threading.Event()
    deadline = time.monotonic() + timeout

    status = query(transport, io_timeout)
    while not is_ready(status):
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise BusyTimeoutError(
                f'Printer is busy. endpoint: {transport.describe()}, status: {status}',
                status=status,
            )
        logger.debug('Printer %s not ready (%s), retrying', transport.describe(), status.health.state.value)
        if cancel.wait(min(interval, remaining)):
            raise OperationCancelled(f'Status polling cancelled. endpoint: {transport.describe()}')
        status = query(transport, io_timeout)
    return status
