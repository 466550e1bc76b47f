"""
Printer Info Model
==================

A printer as announced in a discovery response.
"""

import ipaddress
from datetime import datetime
from dataclasses import dataclass, field
from typing import Dict, Any


def format_mac(mac: bytes) -> str:
    """Render 6 raw bytes as 02:00:00:00:00:01."""
    return ':'.join(f'{b:02X}' for b in mac)


@dataclass(frozen=True)
class PrinterInfo:
    """Network identity of a discovered printer."""

    mac_address: bytes
    ip_address: ipaddress.IPv4Address
    subnet_mask: ipaddress.IPv4Address
    gateway: ipaddress.IPv4Address
    name: str = ""
    dhcp: bool = False
    rarp: bool = False

    # When the response was received
    seen_at: datetime = field(default_factory=datetime.now, compare=False)

    @property
    def mac(self) -> str:
        return format_mac(self.mac_address)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'mac': self.mac,
            'ip_address': str(self.ip_address),
            'subnet_mask': str(self.subnet_mask),
            'gateway': str(self.gateway),
            'name': self.name,
            'dhcp': self.dhcp,
            'rarp': self.rarp,
            'seen_at': self.seen_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PrinterInfo':
        """Create from dictionary."""
        return cls(
            mac_address=bytes.fromhex(data['mac'].replace(':', '').replace('-', '')),
            ip_address=ipaddress.IPv4Address(data['ip_address']),
            subnet_mask=ipaddress.IPv4Address(data['subnet_mask']),
            gateway=ipaddress.IPv4Address(data['gateway']),
            name=data.get('name', ''),
            dhcp=data.get('dhcp', False),
            rarp=data.get('rarp', False),
            seen_at=datetime.fromisoformat(data['seen_at']) if data.get('seen_at') else datetime.now(),
        )
