"""Local notification scheduling."""

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, Dict, List, Optional

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED, EVENT_JOB_MISSED
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger

from utils.logger import setup_logger

logger = setup_logger(__name__)

FireCallback = Callable[[str, str, str], None]


class Notifier(ABC):
    """
    Contract of the notification service the reminder scheduler talks to.

    Registrations are keyed by id: scheduling an id again replaces the
    previous registration.
    """

    def start(self):
        """Lifecycle hook; no-op unless the notifier runs its own timer."""

    async def shutdown(self):
        """Lifecycle hook; returns once the notifier has stopped."""

    @abstractmethod
    async def schedule(self, notification_id: str, title: str, body: str, fire_at: datetime):
        ...

    @abstractmethod
    async def cancel(self, notification_id: str):
        ...

    @abstractmethod
    async def cancel_all(self):
        ...

    @abstractmethod
    async def list_scheduled(self) -> List[Dict]:
        ...


class LocalNotifier(Notifier):
    """In-process notifier backed by an APScheduler date trigger per id."""

    def __init__(self, on_fire: Optional[FireCallback] = None, scheduler: Optional[AsyncIOScheduler] = None):
        self.on_fire = on_fire
        self.scheduler = scheduler or AsyncIOScheduler(
            job_defaults={
                'coalesce': True,
                'max_instances': 1,
                'misfire_grace_time': 300
            }
        )
        self.scheduler.add_listener(self._job_listener, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR | EVENT_JOB_MISSED)

    @staticmethod
    def _job_listener(event):
        if event.code == EVENT_JOB_MISSED:
            logger.warning(f"Notification {event.job_id} missed its fire time")
        elif event.exception:
            logger.error(f"Notification {event.job_id} failed: {event.exception}")
        else:
            logger.debug(f"Notification {event.job_id} delivered")

    def _fire(self, notification_id: str, title: str, body: str):
        logger.info(f"NOTIFICATION [{notification_id}] {title}: {body}")
        if self.on_fire:
            self.on_fire(notification_id, title, body)

    @property
    def running(self) -> bool:
        return self.scheduler.running

    def start(self):
        """Start firing jobs; needs a running event loop."""
        if not self.scheduler.running:
            self.scheduler.start()
            logger.info("Local notifier started")

    async def shutdown(self):
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            # AsyncIOScheduler may apply the shutdown on the next loop iteration
            await asyncio.sleep(0)
            logger.info("Local notifier stopped")

    def _discard(self, notification_id: str) -> bool:
        try:
            self.scheduler.remove_job(notification_id)
            return True
        except JobLookupError:
            return False

    async def schedule(self, notification_id: str, title: str, body: str, fire_at: datetime):
        if not self.scheduler.running:
            # pending jobs are only deduplicated once the scheduler starts
            self._discard(notification_id)
        self.scheduler.add_job(
            self._fire,
            trigger=DateTrigger(run_date=fire_at),
            args=[notification_id, title, body],
            id=notification_id,
            name=title,
            replace_existing=True
        )
        logger.info(f"Notification {notification_id} scheduled for {fire_at.isoformat()}")

    async def cancel(self, notification_id: str):
        if self._discard(notification_id):
            logger.info(f"Notification {notification_id} canceled")
        else:
            logger.debug(f"No notification registered for {notification_id}")

    async def cancel_all(self):
        self.scheduler.remove_all_jobs()
        logger.info("All notifications canceled")

    async def list_scheduled(self) -> List[Dict]:
        return [
            {
                'id': job.id,
                'title': job.args[1],
                'body': job.args[2],
                'fire_at': job.trigger.run_date,
            }
            for job in self.scheduler.get_jobs()
        ]
