"""Client records and the appointment lifecycle."""

import math
import uuid
from dataclasses import replace
from datetime import datetime
from typing import Callable, List, Optional, Union

from config.constants import (
    APPOINTMENTS_COLLECTION,
    APPOINTMENT_STATUS_CANCELED,
    APPOINTMENT_STATUS_COMPLETED,
    APPOINTMENT_STATUS_SCHEDULED,
    CLIENTS_COLLECTION,
    SERVICE_PRICES,
)
from models.appointment import Appointment
from models.client import Client
from services.reminders import ReminderScheduler
from storage.entity_store import EntityStore
from utils.errors import InvalidTransitionError, NotifierFailure, ValidationError
from utils.logger import setup_logger, ContextLogger
from utils.validators import (
    digits_only,
    to_local_naive,
    validate_client_name,
    validate_phone_number,
    validate_service_type,
)

logger = setup_logger(__name__)


def _by_datetime(appointments: List[Appointment]) -> List[Appointment]:
    # sorted() is stable, so equal datetimes keep insertion order
    return sorted(appointments, key=lambda apt: apt.datetime)


class LifecycleManager:
    """
    The only writer of clients and appointments.

    Appointments move scheduled -> completed or scheduled -> canceled and never
    leave a terminal status. Persistence always happens before reminder side
    effects, and reminder failures never undo a committed change.
    """

    def __init__(
        self,
        store: EntityStore,
        reminders: ReminderScheduler,
        clock: Callable[[], datetime] = datetime.now
    ):
        self.clients = store.collection(CLIENTS_COLLECTION, Client)
        self.appointments = store.collection(APPOINTMENTS_COLLECTION, Appointment)
        self.reminders = reminders
        self.clock = clock

    # ------------------------------------------------------------------
    # Clients
    # ------------------------------------------------------------------

    async def create_client(self, name: str, phone: str) -> Client:
        """
        Register a new client.

        Args:
            name: Client name (at least 2 characters once trimmed)
            phone: Phone number, formatted or not (at least 10 digits)

        Returns:
            The stored client, phone kept as digits only

        Raises:
            ValidationError: on a short name or phone
        """
        if not validate_client_name(name):
            raise ValidationError("Name must have at least 2 characters")
        if not validate_phone_number(phone):
            raise ValidationError("Phone must have at least 10 digits")

        client = Client(
            id=f"cli_{uuid.uuid4().hex[:12]}",
            name=name.strip(),
            phone=digits_only(phone),
            created_at=self.clock()
        )
        await self.clients.add_one(client)

        logger.info(f"Client created: {client.id} - {client.name}")
        return client

    async def get_client(self, client_id: str) -> Optional[Client]:
        return await self.clients.get_one(client_id)

    async def list_clients(self) -> List[Client]:
        """All clients, alphabetically."""
        clients = await self.clients.load_all()
        return sorted(clients, key=lambda client: client.name.casefold())

    async def search_clients(self, query: str) -> List[Client]:
        """
        Filter clients by name or phone.

        Args:
            query: Part of a name (any case) or of a phone number

        Returns:
            Matching clients, alphabetically
        """
        clients = await self.list_clients()
        if not query or not query.strip():
            return clients

        needle = query.strip().casefold()
        phone_needle = digits_only(query)

        return [
            client for client in clients
            if needle in client.name.casefold()
            or (phone_needle and phone_needle in client.phone)
        ]

    async def remove_client(self, client_id: str) -> Client:
        """
        Remove a client. Their appointments keep the embedded snapshot.

        Raises:
            NotFoundError: if the client does not exist
        """
        removed = await self.clients.remove_one(client_id)
        logger.info(f"Client removed: {client_id}")
        return removed

    # ------------------------------------------------------------------
    # Appointments
    # ------------------------------------------------------------------

    async def create_appointment(
        self,
        client: Union[Client, str],
        when: datetime,
        service_type: str
    ) -> Appointment:
        """
        Book an appointment and schedule its reminder.

        Args:
            client: Client record or client id
            when: Appointment moment, strictly in the future; aware values
                are converted to local time
            service_type: One of the offered services

        Returns:
            The stored appointment

        Raises:
            ValidationError: past datetime, unknown client or service
            StoreFailure: if the appointment could not be persisted
        """
        when = to_local_naive(when)
        if when <= self.clock():
            raise ValidationError("Appointment date must be in the future")
        if not validate_service_type(service_type):
            raise ValidationError(f"Unknown service type: {service_type}")

        client_id = client if isinstance(client, str) else client.id
        stored_client = await self.clients.get_one(client_id)
        if stored_client is None:
            raise ValidationError(f"Client does not exist: {client_id}")

        appointment = Appointment(
            id=f"apt_{uuid.uuid4().hex[:12]}",
            client_id=stored_client.id,
            client=stored_client.snapshot(),
            datetime=when,
            service_type=service_type,
            status=APPOINTMENT_STATUS_SCHEDULED,
            created_at=self.clock()
        )
        await self.appointments.add_one(appointment)

        ctx_logger = ContextLogger(logger, appointment_id=appointment.id)
        ctx_logger.info(f"Appointment created: {service_type} for {stored_client.name} at {when.isoformat()}")

        try:
            await self.reminders.schedule_reminder(appointment)
        except NotifierFailure as e:
            ctx_logger.warning(f"Reminder not scheduled: {e}")

        return appointment

    def _transition(self, status: str, **changes) -> Callable[[Appointment], Appointment]:
        def mutate(appointment: Appointment) -> Appointment:
            if not appointment.can_transition_to(status):
                raise InvalidTransitionError(appointment.id, appointment.status, status)
            return replace(appointment, status=status, **changes)
        return mutate

    async def cancel_appointment(self, appointment_id: str) -> Appointment:
        """
        Cancel a scheduled appointment and its reminder.

        The status write is authoritative; a reminder that cannot be canceled
        is only logged.

        Raises:
            NotFoundError: if the appointment does not exist
            InvalidTransitionError: if it is already completed or canceled
        """
        ctx_logger = ContextLogger(logger, appointment_id=appointment_id)

        appointment = await self.appointments.update_one(
            appointment_id, self._transition(APPOINTMENT_STATUS_CANCELED)
        )
        ctx_logger.info("Appointment canceled")

        try:
            await self.reminders.cancel_reminder(appointment_id)
        except NotifierFailure as e:
            ctx_logger.warning(f"Reminder cancellation not confirmed: {e}")

        return appointment

    async def complete_appointment(self, appointment_id: str, value_paid: Optional[float] = None) -> Appointment:
        """
        Mark a scheduled appointment as done.

        Args:
            appointment_id: Appointment id
            value_paid: Amount charged; defaults to the service price

        Raises:
            ValidationError: on a negative or non-numeric amount
            NotFoundError: if the appointment does not exist
            InvalidTransitionError: if it is already completed or canceled
        """
        if value_paid is not None:
            try:
                value_paid = float(value_paid)
            except (TypeError, ValueError) as e:
                raise ValidationError(f"Value paid must be a number: {value_paid!r}") from e
            if not math.isfinite(value_paid) or value_paid < 0:
                raise ValidationError("Value paid cannot be negative")

        def mutate(appointment: Appointment) -> Appointment:
            amount = value_paid
            if amount is None:
                amount = SERVICE_PRICES.get(appointment.service_type, 0.0)
            return self._transition(APPOINTMENT_STATUS_COMPLETED, value_paid=float(amount))(appointment)

        appointment = await self.appointments.update_one(appointment_id, mutate)

        ContextLogger(logger, appointment_id=appointment_id).info(
            f"Appointment completed: R$ {appointment.value_paid:.2f}"
        )
        return appointment

    async def get_appointment(self, appointment_id: str) -> Optional[Appointment]:
        return await self.appointments.get_one(appointment_id)

    async def list_upcoming(self) -> List[Appointment]:
        """Scheduled appointments still in the future, soonest first."""
        now = self.clock()
        appointments = await self.appointments.load_all()
        return _by_datetime([apt for apt in appointments if apt.is_upcoming(now)])

    async def list_all(self) -> List[Appointment]:
        return _by_datetime(await self.appointments.load_all())

    async def list_by_client(self, client_id: str) -> List[Appointment]:
        appointments = await self.appointments.load_all()
        return _by_datetime([apt for apt in appointments if apt.client_id == client_id])
