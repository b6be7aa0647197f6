import json
import logging
import sqlite3
import threading
from typing import Dict, List, Optional, Type

import redis
from redis.backoff import ExponentialBackoff
from redis.retry import Retry
from pydantic import BaseModel, ValidationError

from api.error_utils import StorageCorruptError, StorageUnavailableError
from api.pydantic_models import ActivityRecord, PhotoRecord

logger = logging.getLogger(__name__)

ACTIVITIES = "activities"
PHOTOS = "photos"

# Collection name -> record model stored under it
COLLECTIONS: Dict[str, Type[BaseModel]] = {
    ACTIVITIES: ActivityRecord,
    PHOTOS: PhotoRecord,
}


class SQLiteBackend:
    """
    Key/value persistence in a local SQLite file.
    A connection is opened per operation so the backend never holds a lock
    between calls.
    """

    def __init__(self, db_path: str = "eco_tracker.db", timeout: float = 5.0):
        self.db_path = db_path
        self.timeout = timeout
        self.init_db()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path, timeout=self.timeout)

    def init_db(self):
        """Initialize the key/value table"""
        try:
            conn = self._connect()
            try:
                conn.execute('''
                    CREATE TABLE IF NOT EXISTS kv_store (
                        key TEXT PRIMARY KEY,
                        value TEXT,
                        last_updated TEXT DEFAULT CURRENT_TIMESTAMP
                    )
                ''')
                conn.commit()
            finally:
                conn.close()
            logger.info(f"Record store database initialized at {self.db_path}")
        except sqlite3.Error as e:
            logger.error(f"Error initializing record store database: {str(e)}")
            raise StorageUnavailableError(f"Cannot open record store at {self.db_path}") from e

    def get(self, key: str) -> Optional[str]:
        try:
            conn = self._connect()
            try:
                row = conn.execute('SELECT value FROM kv_store WHERE key = ?', (key, )).fetchone()
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.error(f"Error reading key {key}: {str(e)}")
            raise StorageUnavailableError(f"Failed to read '{key}'") from e
        return row[0] if row else None

    def set(self, key: str, value: str):
        try:
            conn = self._connect()
            try:
                with conn:
                    conn.execute(
                        '''
                        INSERT OR REPLACE INTO kv_store (key, value, last_updated)
                        VALUES (?, ?, CURRENT_TIMESTAMP)
                    ''', (key, value))
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.error(f"Error writing key {key}: {str(e)}")
            raise StorageUnavailableError(f"Failed to write '{key}'") from e

    def delete(self, *keys: str):
        """Deletes all keys in a single transaction."""
        if not keys:
            return
        placeholders = ", ".join("?" for _ in keys)
        try:
            conn = self._connect()
            try:
                with conn:
                    conn.execute(f'DELETE FROM kv_store WHERE key IN ({placeholders})', keys)
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.error(f"Error deleting keys {keys}: {str(e)}")
            raise StorageUnavailableError("Failed to clear stored data") from e

    def ping(self) -> bool:
        self.get("__ping__")
        return True

    def close(self):
        pass


class RedisBackend:
    """Key/value persistence in Redis. Values are stored as plain strings."""

    def __init__(self, client: Optional[redis.Redis] = None,
                 url: str = 'redis://localhost:6379/0'):
        if client is None:
            # Create connection pool with retry configuration
            retry = Retry(ExponentialBackoff(), retries=3)
            connection_pool = redis.ConnectionPool.from_url(
                url,
                decode_responses=True,
                retry=retry,
                max_connections=5,
                health_check_interval=30,
                socket_connect_timeout=5,
                socket_timeout=10
            )
            client = redis.Redis(connection_pool=connection_pool)
        self.client = client

    def get(self, key: str) -> Optional[str]:
        try:
            value = self.client.get(key)
            if isinstance(value, bytes):
                value = value.decode("utf-8")
        except UnicodeDecodeError as e:
            raise StorageCorruptError(f"'{key}' holds bytes that are not UTF-8") from e
        except redis.exceptions.RedisError as e:
            logger.error(f"Error reading key {key} from Redis: {e}")
            raise StorageUnavailableError(f"Failed to read '{key}'") from e
        return value

    def set(self, key: str, value: str):
        try:
            self.client.set(key, value)
        except redis.exceptions.RedisError as e:
            logger.error(f"Error writing key {key} to Redis: {e}")
            raise StorageUnavailableError(f"Failed to write '{key}'") from e

    def delete(self, *keys: str):
        """A single DEL command, so both keys go at once."""
        if not keys:
            return
        try:
            self.client.delete(*keys)
        except redis.exceptions.RedisError as e:
            logger.error(f"Error deleting keys {keys} from Redis: {e}")
            raise StorageUnavailableError("Failed to clear stored data") from e

    def ping(self) -> bool:
        try:
            return bool(self.client.ping())
        except redis.exceptions.RedisError as e:
            raise StorageUnavailableError("Redis server is not responding") from e

    def close(self):
        self.client.close()


class RecordStore:
    """
    Append-only store for the activities and photos collections.

    Each collection is one JSON list under a fixed key. Records are appended
    or the whole store is cleared; nothing is ever edited in place. Readers
    get fresh immutable record objects, never the stored payload itself.
    """

    def __init__(self, backend, key_prefix: str = ""):
        self.backend = backend
        self.key_prefix = key_prefix
        self._write_lock = threading.Lock()

    def key_for(self, collection: str) -> str:
        if collection not in COLLECTIONS:
            raise KeyError(f"Unknown collection: {collection}")
        return f"{self.key_prefix}{collection}"

    def _decode(self, collection: str, payload: Optional[str]) -> List:
        if payload is None or not payload.strip():
            return []
        try:
            data = json.loads(payload)
        except (ValueError, RecursionError) as e:
            raise StorageCorruptError(f"Unparsable '{collection}' payload") from e
        if data is None:
            return []
        if not isinstance(data, list):
            raise StorageCorruptError(f"'{collection}' payload is not a list")
        return data

    def load_raw(self, collection: str) -> List:
        """
        Stored entries as plain JSON values. A corrupt payload reads as an
        empty collection; an unreachable medium raises StorageUnavailableError.
        """
        key = self.key_for(collection)
        try:
            return self._decode(collection, self.backend.get(key))
        except StorageCorruptError as e:
            logger.warning(f"{e.message}; treating collection as empty")
            return []

    def load(self, collection: str) -> List[BaseModel]:
        """Records of a collection in insertion order. Invalid entries are skipped."""
        model = COLLECTIONS[collection]
        records = []
        skipped = 0
        for entry in self.load_raw(collection):
            try:
                records.append(model.model_validate(entry))
            except ValidationError:
                skipped += 1
        if skipped:
            logger.warning(f"Skipped {skipped} unreadable record(s) in '{collection}'")
        return records

    def load_activities(self) -> List[ActivityRecord]:
        return self.load(ACTIVITIES)

    def load_photos(self) -> List[PhotoRecord]:
        return self.load(PHOTOS)

    def append(self, collection: str, record: BaseModel):
        """
        Appends one record. Raises StorageUnavailableError if the medium fails,
        in which case nothing was written.
        """
        model = COLLECTIONS[collection]
        if not isinstance(record, model):
            raise TypeError(f"'{collection}' only accepts {model.__name__} records")

        with self._write_lock:
            entries = self.load_raw(collection)
            entries.append(record.model_dump(mode="json"))
            self.backend.set(self.key_for(collection), json.dumps(entries))
        logger.info(f"Appended record {getattr(record, 'id', '?')} to '{collection}'")

    def clear_all(self):
        """Removes both collections in one backend operation."""
        with self._write_lock:
            self.backend.delete(*(self.key_for(name) for name in COLLECTIONS))
        logger.info("Cleared all stored activities and photos")

    def ping(self) -> bool:
        return self.backend.ping()

    def close(self):
        self.backend.close()
