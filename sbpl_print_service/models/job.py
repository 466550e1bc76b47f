"""
Print Job Model
===============

History record for one label document sent through the service.
"""

import uuid
from datetime import datetime
from dataclasses import dataclass, field, fields
from typing import Optional, Dict, Any

PENDING = 'pending'
PRINTING = 'printing'
COMPLETED = 'completed'
FAILED = 'failed'

_TIMESTAMPS = ('created_at', 'started_at', 'completed_at')


def _new_job_id() -> str:
    return f'JOB-{uuid.uuid4().hex[:8].upper()}'


@dataclass
class PrintJob:
    """One label document and how its transmission went."""

    id: str = field(default_factory=_new_job_id)

    # Where it went: MAC address, host or spooler printer name
    target: str = ''
    connection_type: str = 'ip'
    document_name: str = ''

    pages: int = 0
    bytes_sent: int = 0

    status: str = PENDING
    error_message: Optional[str] = None
    # Last JobStatus string when the printer refused or stayed busy
    printer_status: Optional[str] = None

    created_at: datetime = field(default_factory=datetime.now)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    source_ip: Optional[str] = None

    @property
    def duration_ms(self) -> Optional[int]:
        if self.started_at is None or self.completed_at is None:
            return None
        return int((self.completed_at - self.started_at).total_seconds() * 1000)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        for key in _TIMESTAMPS:
            if data[key] is not None:
                data[key] = data[key].isoformat()
        data['duration_ms'] = self.duration_ms
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PrintJob':
        """Create from dictionary. Derived keys such as duration_ms are ignored."""
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        for key in _TIMESTAMPS:
            if isinstance(values.get(key), str):
                values[key] = datetime.fromisoformat(values[key])
        return cls(**values)

    def start(self):
        self.status = PRINTING
        self.started_at = datetime.now()

    def complete(self, bytes_sent: int):
        self.status = COMPLETED
        self.bytes_sent = bytes_sent
        self.completed_at = datetime.now()

    def fail(self, error: str, printer_status: Optional[str] = None):
        self.status = FAILED
        self.error_message = error
        self.printer_status = printer_status
        self.completed_at = datetime.now()
