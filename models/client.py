"""Client data models."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional
from utils.validators import format_timestamp, parse_timestamp


@dataclass
class ClientSnapshot:
    """Client name and phone as they were when an appointment was booked."""

    name: str
    phone: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'name': self.name,
            'phone': self.phone
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ClientSnapshot':
        """Create ClientSnapshot from dictionary."""
        return cls(name=data['name'], phone=data['phone'])


@dataclass
class Client:
    """Customer record."""

    TEMPORAL_FIELDS = ('created_at',)

    id: str
    name: str
    phone: str  # digits only
    created_at: Optional[datetime] = None

    def snapshot(self) -> ClientSnapshot:
        """Copy the fields an appointment embeds."""
        return ClientSnapshot(name=self.name, phone=self.phone)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'id': self.id,
            'name': self.name,
            'phone': self.phone,
            'created_at': format_timestamp(self.created_at)
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Client':
        """Create Client from dictionary."""
        created_at = data.get('created_at')

        return cls(
            id=data['id'],
            name=data['name'],
            phone=data['phone'],
            created_at=parse_timestamp(created_at) if created_at else None
        )
