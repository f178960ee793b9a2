"""Shared fixtures for the agenda test suite."""

import os
import sys
from datetime import datetime, timedelta
from unittest.mock import MagicMock

import pytest
import pytest_asyncio

# Add parent dir to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Console logging only while testing
os.environ.setdefault('LOG_FILE', '')

from services.container import AgendaServices  # noqa: E402
from services.notifier import Notifier  # noqa: E402
from storage.entity_store import EntityStore  # noqa: E402


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class RecordingNotifier(Notifier):
    """Notifier double that keeps registrations in a dict keyed by id."""

    def __init__(self):
        self.registrations = {}
        self.schedule_calls = []
        self.cancel_calls = []
        self.fail = False

    async def schedule(self, notification_id, title, body, fire_at):
        if self.fail:
            raise RuntimeError("notifier unavailable")
        self.schedule_calls.append(notification_id)
        self.registrations[notification_id] = {'title': title, 'body': body, 'fire_at': fire_at}

    async def cancel(self, notification_id):
        if self.fail:
            raise RuntimeError("notifier unavailable")
        self.cancel_calls.append(notification_id)
        self.registrations.pop(notification_id, None)

    async def cancel_all(self):
        self.registrations.clear()

    async def list_scheduled(self):
        return [{'id': key, **value} for key, value in self.registrations.items()]


@pytest.fixture
def clock():
    return FrozenClock(datetime(2026, 3, 10, 9, 0))


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def opener():
    return MagicMock(return_value=True)


@pytest.fixture
def decode_sink():
    return MagicMock()


@pytest_asyncio.fixture
async def store(tmp_path, decode_sink):
    entity_store = EntityStore(str(tmp_path / 'agenda.db'), on_decode_error=decode_sink)
    await entity_store.initialize()
    yield entity_store
    await entity_store.close()


@pytest_asyncio.fixture
async def services(store, notifier, clock, opener):
    agenda = AgendaServices(store, notifier, clock=clock, opener=opener)
    async with agenda:
        yield agenda


@pytest_asyncio.fixture
async def ana(services):
    return await services.manager.create_client("Ana", "11999998888")
