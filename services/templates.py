"""Message templates for outbound client messages and reminders."""

import re
from enum import Enum
from typing import Dict, Union

from config.constants import (
    DATE_FORMAT,
    TIME_FORMAT,
    TOKEN_DATE,
    TOKEN_NAME,
    TOKEN_SERVICE,
    TOKEN_TIME,
    TOKEN_VALUE,
)
from models.appointment import Appointment
from models.client import Client, ClientSnapshot
from storage.settings_store import SettingsStore
from utils.errors import ValidationError
from utils.logger import setup_logger

logger = setup_logger(__name__)


class MessageKind(str, Enum):
    """Message kinds; the value doubles as the settings key of the override."""

    CONFIRMATION = "confirmacao"
    REMINDER = "lembrete"
    CANCELLATION = "cancelamento"
    THANKS = "agradecimento"


DEFAULT_TEMPLATES: Dict[MessageKind, str] = {
    MessageKind.CONFIRMATION: (
        "Olá {nome}! ✂️\n\n"
        "Seu agendamento foi confirmado:\n"
        "📅 Data: {data}\n"
        "⏰ Horário: {hora}\n"
        "💈 Serviço: {servico}\n"
        "💰 Valor: R$ {valor}\n\n"
        "Nos vemos em breve! 😊"
    ),
    MessageKind.REMINDER: (
        "Olá {nome}! 🔔\n\n"
        "Lembrete: Amanhã você tem agendamento às {hora}!\n"
        "💈 {servico}\n\n"
        "Qualquer imprevisto, avise com antecedência! 😊"
    ),
    MessageKind.CANCELLATION: (
        "Olá {nome},\n\n"
        "Seu agendamento foi cancelado:\n"
        "📅 {data} às {hora}\n"
        "💈 {servico}\n\n"
        "Para reagendar, entre em contato! 📞"
    ),
    MessageKind.THANKS: (
        "Olá {nome}! 😊\n\n"
        "Obrigado por escolher nossos serviços!\n"
        "Esperamos que tenha gostado do seu {servico}! ✨\n\n"
        "Até a próxima! 💈"
    ),
}


_TOKEN_PATTERN = re.compile(
    "|".join(re.escape(token) for token in (TOKEN_NAME, TOKEN_DATE, TOKEN_TIME, TOKEN_SERVICE, TOKEN_VALUE))
)


def format_value(value_paid) -> str:
    """Two decimals, or 0.00 when nothing was paid yet."""
    return f"{value_paid:.2f}" if value_paid is not None else "0.00"


def render_template(
    template: str,
    client: Union[Client, ClientSnapshot],
    appointment: Appointment
) -> str:
    """
    Substitute appointment and client fields into a template.

    Every token is replaced literally and everywhere it appears, in one pass.
    Replacement values are not scanned again, so a client named "{data}"
    stays as typed.

    Args:
        template: Template text
        client: Client (or the appointment's embedded snapshot)
        appointment: Appointment being described

    Returns:
        Final message text
    """
    values = {
        TOKEN_NAME: client.name,
        TOKEN_DATE: appointment.datetime.strftime(DATE_FORMAT),
        TOKEN_TIME: appointment.datetime.strftime(TIME_FORMAT),
        TOKEN_SERVICE: appointment.service_type,
        TOKEN_VALUE: format_value(appointment.value_paid),
    }

    return _TOKEN_PATTERN.sub(lambda match: values[match.group(0)], template)


def _coerce_kind(kind) -> MessageKind:
    try:
        return MessageKind(kind)
    except ValueError as e:
        raise ValidationError(f"Unknown message kind: {kind}") from e


class MessageTemplateEngine:
    """Looks up user overrides and renders messages."""

    def __init__(self, settings: SettingsStore):
        self.settings = settings

    async def get_template(self, kind: MessageKind) -> str:
        """
        Get the template for a kind.

        Args:
            kind: Message kind

        Returns:
            The saved override, or the built-in default if none is saved
        """
        kind = _coerce_kind(kind)
        override = await self.settings.get(kind.value)
        if override and override.strip():
            return override
        return DEFAULT_TEMPLATES[kind]

    async def get_all_templates(self) -> Dict[MessageKind, str]:
        """Get the effective template of every kind."""
        saved = await self.settings.get_many(kind.value for kind in MessageKind)
        return {
            kind: saved[kind.value] if saved[kind.value] and saved[kind.value].strip()
            else DEFAULT_TEMPLATES[kind]
            for kind in MessageKind
        }

    async def save_templates(self, templates: Dict[MessageKind, str]):
        """
        Save user overrides.

        Raises:
            ValidationError: on an unknown kind or a non-text template
        """
        values = {}
        for kind, text in templates.items():
            kind = _coerce_kind(kind)
            if not isinstance(text, str):
                raise ValidationError(f"Template for {kind.value} must be text")
            values[kind.value] = text

        await self.settings.set_many(values)

    async def restore_defaults(self):
        """Forget every override."""
        await self.settings.remove(kind.value for kind in MessageKind)
        logger.info("Message templates restored to defaults")

    async def render(
        self,
        kind: MessageKind,
        client: Union[Client, ClientSnapshot],
        appointment: Appointment
    ) -> str:
        """Load the template for a kind and render it."""
        template = await self.get_template(kind)
        return render_template(template, client, appointment)
