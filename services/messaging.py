"""
Outbound Messaging

Opens WhatsApp with a pre-filled message:
1. Renders the message template for the appointment
2. Normalizes the client phone to international form
3. Hands a wa.me link to the opener (the system browser by default)

Nothing is sent programmatically; the user confirms inside the app.
"""

import webbrowser
from typing import Callable, Union
from urllib.parse import quote

from models.appointment import Appointment
from models.client import Client, ClientSnapshot
from services.templates import MessageKind, MessageTemplateEngine
from utils.errors import MessagingFailure
from utils.logger import setup_logger, ContextLogger
from utils.validators import normalize_phone_number

logger = setup_logger(__name__)

Opener = Callable[[str], bool]


class OutboundMessenger:
    """Builds and opens pre-filled WhatsApp messages."""

    def __init__(
        self,
        templates: MessageTemplateEngine,
        opener: Opener = webbrowser.open,
        country_code: str = '55',
        base_url: str = 'https://wa.me'
    ):
        self.templates = templates
        self.opener = opener
        self.country_code = country_code
        self.base_url = base_url.rstrip('/')

    def build_url(self, phone: str, text: str) -> str:
        """
        Build the deep link for a phone and message.

        Args:
            phone: Phone number as stored or typed
            text: Message text

        Returns:
            wa.me URL with the text URL-encoded
        """
        target = normalize_phone_number(phone, self.country_code)
        return f"{self.base_url}/{target}?text={quote(text, safe='')}"

    async def send(
        self,
        kind: MessageKind,
        client: Union[Client, ClientSnapshot],
        appointment: Appointment
    ) -> str:
        """
        Render a message and open it in the messaging app.

        Returns:
            The URL that was opened

        Raises:
            MessagingFailure: if the app could not be opened
        """
        ctx_logger = ContextLogger(logger, appointment_id=appointment.id)

        text = await self.templates.render(kind, client, appointment)
        url = self.build_url(client.phone, text)

        try:
            opened = self.opener(url)
        except Exception as e:
            ctx_logger.error(f"Error opening WhatsApp: {e}")
            raise MessagingFailure(
                f"Could not open WhatsApp for {client.phone}. Check that it is installed."
            ) from e

        if opened is False:
            ctx_logger.error("WhatsApp could not be opened")
            raise MessagingFailure(
                f"Could not open WhatsApp for {client.phone}. Check that it is installed."
            )

        ctx_logger.info(f"Opened {MessageKind(kind).value} message for {client.name}")
        return url

    async def send_confirmation(self, appointment: Appointment) -> str:
        return await self.send(MessageKind.CONFIRMATION, appointment.client, appointment)

    async def send_reminder(self, appointment: Appointment) -> str:
        return await self.send(MessageKind.REMINDER, appointment.client, appointment)

    async def send_cancellation(self, appointment: Appointment) -> str:
        return await self.send(MessageKind.CANCELLATION, appointment.client, appointment)

    async def send_thanks(self, appointment: Appointment) -> str:
        return await self.send(MessageKind.THANKS, appointment.client, appointment)
