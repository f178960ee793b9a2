"""Explicit construction and lifecycle of the agenda services."""

from datetime import datetime, timedelta
from typing import Callable, Optional

from config.settings import Config
from services.lifecycle import LifecycleManager
from services.messaging import Opener, OutboundMessenger
from services.notifier import FireCallback, LocalNotifier, Notifier
from services.reminders import ReminderScheduler
from services.templates import MessageTemplateEngine
from storage.entity_store import EntityStore
from storage.settings_store import SettingsStore
from utils.errors import ValidationError
from utils.logger import setup_logger

logger = setup_logger(__name__)


class AgendaServices:
    """Holds every service of one agenda instance; no module-level singletons."""

    def __init__(
        self,
        store: EntityStore,
        notifier: Notifier,
        clock: Callable[[], datetime] = datetime.now,
        reminder_lead: timedelta = timedelta(hours=24),
        reminder_title: Optional[str] = None,
        opener: Optional[Opener] = None,
        country_code: str = '55',
        whatsapp_base_url: str = 'https://wa.me'
    ):
        self.store = store
        self.notifier = notifier
        self.settings = SettingsStore(store)
        self.templates = MessageTemplateEngine(self.settings)

        reminder_kwargs = {'clock': clock, 'lead': reminder_lead}
        if reminder_title:
            reminder_kwargs['title'] = reminder_title
        self.reminders = ReminderScheduler(notifier, self.templates, **reminder_kwargs)

        self.manager = LifecycleManager(store, self.reminders, clock=clock)

        messenger_kwargs = {'country_code': country_code, 'base_url': whatsapp_base_url}
        if opener is not None:
            messenger_kwargs['opener'] = opener
        self.messenger = OutboundMessenger(self.templates, **messenger_kwargs)

        self._started = False

    @classmethod
    def from_config(
        cls,
        config: Config,
        clock: Callable[[], datetime] = datetime.now,
        opener: Optional[Opener] = None,
        on_fire: Optional[FireCallback] = None,
        notifier: Optional[Notifier] = None
    ) -> 'AgendaServices':
        """Build the services from configuration."""
        if not config.validate():
            raise ValidationError("Invalid agenda configuration")

        return cls(
            store=EntityStore(config.DATABASE_PATH),
            notifier=notifier or LocalNotifier(on_fire=on_fire),
            clock=clock,
            reminder_lead=timedelta(hours=config.REMINDER_LEAD_HOURS),
            reminder_title=config.REMINDER_TITLE,
            opener=opener,
            country_code=config.COUNTRY_CODE,
            whatsapp_base_url=config.WHATSAPP_BASE_URL
        )

    async def start(self):
        """Prepare storage and start delivering notifications."""
        if self._started:
            return

        await self.store.initialize()
        self.notifier.start()

        self._started = True
        logger.info("Agenda services started")

    async def close(self):
        if not self._started:
            return

        await self.notifier.shutdown()
        await self.store.close()

        self._started = False
        logger.info("Agenda services stopped")

    async def __aenter__(self) -> 'AgendaServices':
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()
