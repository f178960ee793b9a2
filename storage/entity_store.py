"""
Entity Store

Whole-collection persistence for typed records:
1. Each collection is one JSON blob in a SQLite key/value table
2. Writes replace the full blob inside a single transaction
3. Reads decode every temporal field before building records
4. Mutations on a collection are serialized through its write lock
"""

import asyncio
import json
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Generic, List, Optional, Type, TypeVar

from storage.locks import ReadWriteLock
from utils.errors import NotFoundError, StoreFailure, ValidationError
from utils.logger import setup_logger
from utils.validators import parse_timestamp

logger = setup_logger(__name__)

T = TypeVar('T')

DecodeErrorSink = Callable[[str, Any, Exception], None]


def _log_decode_error(collection: str, raw: Any, error: Exception):
    """Default diagnostic sink: log and move on."""
    record_id = raw.get('id') if isinstance(raw, dict) else None
    logger.warning(f"Dropping malformed record in '{collection}' (id={record_id}): {error}")


def _encode_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class EntityStore:
    """SQLite-backed key/value store holding one blob per collection."""

    def __init__(self, db_path: str, on_decode_error: Optional[DecodeErrorSink] = None):
        self.db_path = db_path
        self.on_decode_error = on_decode_error or _log_decode_error
        self._locks: Dict[str, ReadWriteLock] = {}
        self._collections: Dict[str, 'Collection'] = {}

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path)

    def _create_schema(self):
        if self.db_path != ':memory:':
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        con = self._connect()
        try:
            with con:
                con.execute('''
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT
                )
                ''')
        finally:
            con.close()

    def _select(self, key: str) -> Optional[str]:
        con = self._connect()
        try:
            row = con.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
        finally:
            con.close()
        return row[0] if row else None

    def _upsert(self, key: str, value: str):
        con = self._connect()
        try:
            with con:
                con.execute("""
                    INSERT INTO kv_store (key, value, updated_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        updated_at = excluded.updated_at
                """, (key, value, datetime.now().isoformat()))
        finally:
            con.close()

    async def initialize(self):
        """Create the backing table if needed."""
        try:
            await asyncio.to_thread(self._create_schema)
        except (sqlite3.Error, OSError) as e:
            raise StoreFailure(f"Could not initialize store at {self.db_path}: {e}") from e
        logger.info(f"Entity store ready: {self.db_path}")

    async def close(self):
        """Teardown hook; connections are per call, so nothing stays open."""
        logger.debug(f"Entity store closed: {self.db_path}")

    def lock_for(self, name: str) -> ReadWriteLock:
        """Return the lock guarding a collection."""
        lock = self._locks.get(name)
        if lock is None:
            lock = self._locks[name] = ReadWriteLock()
        return lock

    def collection(self, name: str, model: Type[T]) -> 'Collection[T]':
        """Return the typed handle for a collection."""
        handle = self._collections.get(name)
        if handle is None:
            handle = self._collections[name] = Collection(self, name, model)
        elif handle.model is not model:
            raise ValueError(f"Collection '{name}' is already bound to {handle.model.__name__}")
        return handle

    async def read_blob(self, name: str) -> Optional[str]:
        """Read a collection's raw blob; None if it was never written."""
        try:
            return await asyncio.to_thread(self._select, name)
        except (sqlite3.Error, OSError) as e:
            raise StoreFailure(f"Could not read '{name}': {e}") from e

    async def write_blob(self, name: str, blob: str):
        """Atomically replace a collection's raw blob."""
        try:
            await asyncio.to_thread(self._upsert, name, blob)
        except (sqlite3.Error, OSError) as e:
            raise StoreFailure(f"Could not write '{name}': {e}") from e

    def decode_json(self, name: str, blob: str) -> Any:
        try:
            return json.loads(blob)
        except ValueError as e:
            raise StoreFailure(f"Collection '{name}' is corrupt: {e}") from e

    def encode_json(self, name: str, payload: Any) -> str:
        try:
            return json.dumps(payload, ensure_ascii=False, default=_encode_default)
        except (TypeError, ValueError) as e:
            raise StoreFailure(f"Could not encode '{name}': {e}") from e


class Collection(Generic[T]):
    """Typed handle over one named collection of records."""

    def __init__(self, store: EntityStore, name: str, model: Type[T]):
        self.store = store
        self.name = name
        self.model = model

    @property
    def lock(self) -> ReadWriteLock:
        return self.store.lock_for(self.name)

    def _decode_record(self, raw: Any) -> T:
        if not isinstance(raw, dict):
            raise ValueError(f"Expected an object, got {type(raw).__name__}")

        data = dict(raw)
        for field_name in getattr(self.model, 'TEMPORAL_FIELDS', ()):
            if data.get(field_name) is not None:
                data[field_name] = parse_timestamp(data[field_name])

        return self.model.from_dict(data)

    async def _load_unlocked(self) -> List[T]:
        blob = await self.store.read_blob(self.name)
        if blob is None:
            return []

        payload = self.store.decode_json(self.name, blob)
        if not isinstance(payload, list):
            raise StoreFailure(f"Collection '{self.name}' is not a list")

        records = []
        for raw in payload:
            try:
                records.append(self._decode_record(raw))
            except (KeyError, ValueError, TypeError) as e:
                self.store.on_decode_error(self.name, raw, e)
        return records

    async def _replace_unlocked(self, records: List[T]):
        blob = self.store.encode_json(self.name, [record.to_dict() for record in records])
        await self.store.write_blob(self.name, blob)
        logger.debug(f"Wrote {len(records)} records to '{self.name}'")

    @staticmethod
    def _index_of(records: List[T], record_id: str) -> int:
        for index, record in enumerate(records):
            if record.id == record_id:
                return index
        return -1

    async def load_all(self) -> List[T]:
        """
        Load every record in storage order.

        Returns:
            List of records; empty if the collection was never written
        """
        async with self.lock.read():
            return await self._load_unlocked()

    async def replace_all(self, records: List[T]):
        """Atomically overwrite the whole collection."""
        async with self.lock.write():
            await self._replace_unlocked(list(records))

    async def get_one(self, record_id: str) -> Optional[T]:
        """Find a record by id."""
        records = await self.load_all()
        index = self._index_of(records, record_id)
        return records[index] if index >= 0 else None

    async def add_one(self, record: T) -> T:
        """
        Append a record.

        Raises:
            ValidationError: if a record with the same id already exists
        """
        async with self.lock.write():
            records = await self._load_unlocked()
            if self._index_of(records, record.id) >= 0:
                raise ValidationError(f"Duplicate id in '{self.name}': {record.id}")
            records.append(record)
            await self._replace_unlocked(records)
        return record

    async def update_one(self, record_id: str, mutator: Callable[[T], T]) -> T:
        """
        Replace a record with the mutator's result.

        Args:
            record_id: Id of the record to change
            mutator: Receives the current record, returns the new one; may
                raise to abort, in which case nothing is written

        Returns:
            The updated record

        Raises:
            NotFoundError: if no record has that id
        """
        async with self.lock.write():
            records = await self._load_unlocked()
            index = self._index_of(records, record_id)
            if index < 0:
                raise NotFoundError(self.name, record_id)

            updated = mutator(records[index])
            if updated.id != record_id:
                raise ValidationError(f"Mutator changed the id of {record_id}")
            records[index] = updated
            await self._replace_unlocked(records)
        return updated

    async def remove_one(self, record_id: str) -> T:
        """
        Remove a record.

        Raises:
            NotFoundError: if no record has that id
        """
        async with self.lock.write():
            records = await self._load_unlocked()
            index = self._index_of(records, record_id)
            if index < 0:
                raise NotFoundError(self.name, record_id)

            removed = records.pop(index)
            await self._replace_unlocked(records)
        return removed
