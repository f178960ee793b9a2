"""Settings namespace of the entity store."""

from typing import Dict, Iterable, Optional

from config.constants import SETTINGS_NAMESPACE
from storage.entity_store import EntityStore
from utils.errors import StoreFailure
from utils.logger import setup_logger

logger = setup_logger(__name__)


class SettingsStore:
    """String-to-string settings stored as one blob, like any collection."""

    def __init__(self, store: EntityStore, namespace: str = SETTINGS_NAMESPACE):
        self.store = store
        self.namespace = namespace

    async def _load_unlocked(self) -> Dict[str, str]:
        blob = await self.store.read_blob(self.namespace)
        if blob is None:
            return {}

        payload = self.store.decode_json(self.namespace, blob)
        if not isinstance(payload, dict):
            raise StoreFailure(f"Settings '{self.namespace}' is not a mapping")

        settings = {}
        for key, value in payload.items():
            if isinstance(value, str):
                settings[key] = value
            else:
                self.store.on_decode_error(
                    self.namespace, {'id': key}, TypeError(f"Expected a string for '{key}'")
                )
        return settings

    async def _write_unlocked(self, settings: Dict[str, str]):
        await self.store.write_blob(self.namespace, self.store.encode_json(self.namespace, settings))

    async def all(self) -> Dict[str, str]:
        async with self.store.lock_for(self.namespace).read():
            return await self._load_unlocked()

    async def get(self, key: str) -> Optional[str]:
        return (await self.all()).get(key)

    async def get_many(self, keys: Iterable[str]) -> Dict[str, Optional[str]]:
        settings = await self.all()
        return {key: settings.get(key) for key in keys}

    async def set_many(self, values: Dict[str, str]):
        """Write several settings in one replace."""
        async with self.store.lock_for(self.namespace).write():
            settings = await self._load_unlocked()
            settings.update(values)
            await self._write_unlocked(settings)
        logger.info(f"Saved settings: {', '.join(sorted(values))}")

    async def remove(self, keys: Iterable[str]):
        """Drop settings; missing keys are ignored."""
        keys = list(keys)
        async with self.store.lock_for(self.namespace).write():
            settings = await self._load_unlocked()
            for key in keys:
                settings.pop(key, None)
            await self._write_unlocked(settings)
        logger.info(f"Removed settings: {', '.join(sorted(keys))}")
