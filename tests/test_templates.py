"""Tests for message templates and outbound messaging."""

from datetime import datetime
from urllib.parse import unquote

import pytest

from models.appointment import Appointment
from models.client import Client, ClientSnapshot
from services.templates import DEFAULT_TEMPLATES, MessageKind, render_template
from utils.errors import MessagingFailure, ValidationError

ANA = Client(id="cli_001", name="Ana", phone="11999998888")


def make_appointment(value_paid=None, service_type="Corte e Barba") -> Appointment:
    return Appointment(
        id="apt_001",
        client_id=ANA.id,
        client=ANA.snapshot(),
        datetime=datetime(2026, 3, 12, 9, 5),
        service_type=service_type,
        value_paid=value_paid
    )


class TestRenderTemplate:
    """Pure token substitution."""

    def test_all_tokens(self):
        template = "{nome} | {data} | {hora} | {servico} | {valor}"

        rendered = render_template(template, ANA, make_appointment(value_paid=35))

        assert rendered == "Ana | 12/03/2026 | 09:05 | Corte e Barba | 35.00"

    def test_missing_value_renders_zero(self):
        assert render_template("R$ {valor}", ANA, make_appointment()) == "R$ 0.00"

    def test_every_occurrence_is_replaced(self):
        rendered = render_template("{nome}, {nome}! {hora} {hora}", ANA, make_appointment())
        assert rendered == "Ana, Ana! 09:05 09:05"

    def test_substituted_text_is_not_rescanned(self):
        """A name that looks like a token stays literal."""
        odd = ClientSnapshot(name="{data}", phone="11999998888")
        assert render_template("Olá {nome}", odd, make_appointment()) == "Olá {data}"

    def test_unknown_braces_are_kept(self):
        assert render_template("{desconto} {nome}", ANA, make_appointment()) == "{desconto} Ana"

    @pytest.mark.parametrize("kind", list(MessageKind))
    def test_defaults_leave_no_placeholders(self, kind):
        rendered = render_template(DEFAULT_TEMPLATES[kind], ANA, make_appointment())

        for token in ("{nome}", "{data}", "{hora}", "{servico}", "{valor}"):
            assert token not in rendered
        assert "Ana" in rendered


class TestTemplateEngine:
    """Overrides stored in the settings namespace."""

    @pytest.mark.asyncio
    async def test_defaults_without_overrides(self, services):
        templates = await services.templates.get_all_templates()
        assert templates == DEFAULT_TEMPLATES

    @pytest.mark.asyncio
    async def test_override_and_restore(self, services):
        await services.templates.save_templates({
            MessageKind.THANKS: "Valeu {nome}!",
            "cancelamento": "   ",
        })

        assert await services.templates.get_template(MessageKind.THANKS) == "Valeu {nome}!"
        # blank overrides fall back to the default
        assert await services.templates.get_template("cancelamento") == DEFAULT_TEMPLATES[MessageKind.CANCELLATION]
        assert await services.templates.render(MessageKind.THANKS, ANA, make_appointment()) == "Valeu Ana!"

        await services.templates.restore_defaults()

        assert await services.templates.get_template(MessageKind.THANKS) == DEFAULT_TEMPLATES[MessageKind.THANKS]
        assert await services.settings.all() == {}

    @pytest.mark.asyncio
    async def test_save_rejects_unknown_kind(self, services):
        with pytest.raises(ValidationError):
            await services.templates.save_templates({"promocao": "Oi"})
        with pytest.raises(ValidationError):
            await services.templates.get_template("promocao")


class TestOutboundMessenger:
    """wa.me links opened through the injected opener."""

    def test_build_url(self, services):
        url = services.messenger.build_url("(11) 99999-8888", "Olá Ana! 10:00 & até")

        assert url.startswith("https://wa.me/5511999998888?text=")
        assert " " not in url
        assert unquote(url.split("?text=", 1)[1]) == "Olá Ana! 10:00 & até"

    def test_prefix_not_duplicated(self, services):
        assert services.messenger.build_url("5511999998888", "x") == "https://wa.me/5511999998888?text=x"

    @pytest.mark.asyncio
    async def test_send_confirmation(self, services, opener):
        appointment = make_appointment()

        url = await services.messenger.send_confirmation(appointment)

        opener.assert_called_once_with(url)
        text = unquote(url.split("?text=", 1)[1])
        assert "Seu agendamento foi confirmado" in text
        assert "R$ 0.00" in text

    @pytest.mark.asyncio
    @pytest.mark.parametrize("send", ["send_reminder", "send_cancellation", "send_thanks"])
    async def test_other_kinds(self, services, opener, send):
        await getattr(services.messenger, send)(make_appointment())
        opener.assert_called_once()

    @pytest.mark.asyncio
    async def test_opener_returning_false(self, services, opener):
        opener.return_value = False

        with pytest.raises(MessagingFailure):
            await services.messenger.send(MessageKind.THANKS, ANA, make_appointment())

    @pytest.mark.asyncio
    async def test_opener_raising(self, services, opener):
        opener.side_effect = OSError("no browser")

        with pytest.raises(MessagingFailure):
            await services.messenger.send(MessageKind.THANKS, ANA, make_appointment())
        opener.assert_called_once()
