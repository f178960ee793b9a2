"""Error taxonomy for the agenda core."""


class AgendaError(Exception):
    """Base class for all agenda errors."""


class ValidationError(AgendaError):
    """Caller-supplied input violates a precondition."""


class NotFoundError(AgendaError):
    """An operation referenced an id that does not exist."""

    def __init__(self, kind: str, record_id: str):
        super().__init__(f"{kind} not found: {record_id}")
        self.kind = kind
        self.record_id = record_id


class InvalidTransitionError(AgendaError):
    """A status change violates the appointment state machine."""

    def __init__(self, appointment_id: str, current: str, requested: str):
        super().__init__(
            f"Appointment {appointment_id} is {current}; cannot move to {requested}"
        )
        self.appointment_id = appointment_id
        self.current = current
        self.requested = requested


class StoreFailure(AgendaError):
    """The persistent store could not be read or written."""


class NotifierFailure(AgendaError):
    """A reminder registration or cancellation could not be confirmed."""


class MessagingFailure(AgendaError):
    """The external messaging app could not be opened."""
