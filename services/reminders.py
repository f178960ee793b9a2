"""Reminder scheduling for upcoming appointments."""

from datetime import datetime, timedelta
from typing import Callable, Optional

from models.appointment import Appointment
from services.notifier import Notifier
from services.templates import DEFAULT_TEMPLATES, MessageKind, MessageTemplateEngine, render_template
from utils.errors import NotifierFailure, StoreFailure
from utils.logger import setup_logger, ContextLogger

logger = setup_logger(__name__)

DEFAULT_REMINDER_TITLE = '📅 Lembrete de Agendamento'


class ReminderScheduler:
    """
    Translates appointments into one-shot notifier registrations.

    Holds no state of its own: the appointment id is the registration key, so
    scheduling again replaces the earlier reminder. Nothing re-arms reminders
    after a restart.
    """

    def __init__(
        self,
        notifier: Notifier,
        templates: MessageTemplateEngine,
        clock: Callable[[], datetime] = datetime.now,
        lead: timedelta = timedelta(hours=24),
        title: str = DEFAULT_REMINDER_TITLE
    ):
        self.notifier = notifier
        self.templates = templates
        self.clock = clock
        self.lead = lead
        self.title = title

    def reminder_time(self, appointment: Appointment) -> datetime:
        return appointment.datetime - self.lead

    async def schedule_reminder(self, appointment: Appointment) -> Optional[datetime]:
        """
        Register the reminder for an appointment.

        Args:
            appointment: Appointment to remind about

        Returns:
            Fire time, or None when it would already be in the past

        Raises:
            NotifierFailure: if the notifier rejected the registration
        """
        ctx_logger = ContextLogger(logger, appointment_id=appointment.id)
        fire_at = self.reminder_time(appointment)

        if fire_at <= self.clock():
            ctx_logger.info("Appointment is less than the reminder lead away, no reminder")
            return None

        try:
            body = await self.templates.render(MessageKind.REMINDER, appointment.client, appointment)
        except StoreFailure as e:
            ctx_logger.warning(f"Reminder template unavailable, using default: {e}")
            body = render_template(DEFAULT_TEMPLATES[MessageKind.REMINDER], appointment.client, appointment)

        try:
            await self.notifier.schedule(appointment.id, self.title, body, fire_at)
        except Exception as e:
            raise NotifierFailure(f"Could not schedule reminder for {appointment.id}: {e}") from e

        ctx_logger.info(f"Reminder scheduled for {fire_at.strftime('%d/%m/%Y %H:%M')}")
        return fire_at

    async def cancel_reminder(self, appointment_id: str):
        """
        Cancel the reminder registered for an appointment, if any.

        Raises:
            NotifierFailure: if the notifier could not confirm the cancellation
        """
        try:
            await self.notifier.cancel(appointment_id)
        except Exception as e:
            raise NotifierFailure(f"Could not cancel reminder for {appointment_id}: {e}") from e

        ContextLogger(logger, appointment_id=appointment_id).info("Reminder canceled")

    async def cancel_all(self):
        try:
            await self.notifier.cancel_all()
        except Exception as e:
            raise NotifierFailure(f"Could not cancel reminders: {e}") from e
