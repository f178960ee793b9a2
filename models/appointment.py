"""Appointment data models."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional
from config.constants import (
    APPOINTMENT_STATUSES,
    APPOINTMENT_STATUS_SCHEDULED,
    APPOINTMENT_TRANSITIONS,
)
from models.client import ClientSnapshot
from utils.validators import format_timestamp, parse_timestamp


@dataclass
class Appointment:
    """Service appointment information."""

    TEMPORAL_FIELDS = ('datetime', 'created_at')

    id: str
    client_id: str
    client: ClientSnapshot
    datetime: datetime
    service_type: str
    status: str = APPOINTMENT_STATUS_SCHEDULED  # scheduled, completed, canceled
    value_paid: Optional[float] = None
    notification_sent: bool = False
    created_at: Optional[datetime] = field(default=None)

    def can_transition_to(self, status: str) -> bool:
        """Check a requested status change against the state machine."""
        return status in APPOINTMENT_TRANSITIONS.get(self.status, ())

    def is_upcoming(self, now: datetime) -> bool:
        """Scheduled and still in the future."""
        return self.status == APPOINTMENT_STATUS_SCHEDULED and self.datetime > now

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'id': self.id,
            'client_id': self.client_id,
            'client': self.client.to_dict(),
            'datetime': format_timestamp(self.datetime),
            'service_type': self.service_type,
            'status': self.status,
            'value_paid': self.value_paid,
            'notification_sent': self.notification_sent,
            'created_at': format_timestamp(self.created_at)
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Appointment':
        """Create Appointment from dictionary."""
        status = data.get('status', APPOINTMENT_STATUS_SCHEDULED)
        if status not in APPOINTMENT_STATUSES:
            raise ValueError(f"Unknown appointment status: {status}")

        value_paid = data.get('value_paid')
        created_at = data.get('created_at')

        return cls(
            id=data['id'],
            client_id=data['client_id'],
            client=ClientSnapshot.from_dict(data['client']),
            datetime=parse_timestamp(data['datetime']),
            service_type=data['service_type'],
            status=status,
            value_paid=float(value_paid) if value_paid is not None else None,
            notification_sent=bool(data.get('notification_sent', False)),
            created_at=parse_timestamp(created_at) if created_at else None
        )
