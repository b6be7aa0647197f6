"""
Dependency container for EcoTracker.
Reads configuration from the environment and owns the single, process-wide
Record Store so that recorders and analytics receive it explicitly instead
of reaching for module globals.
"""

import logging
import os
import threading

from dotenv import load_dotenv

from api.categories import parse_category_table
from record_store import RecordStore, RedisBackend, SQLiteBackend

load_dotenv()

# --- Environment variables ---
STORE_BACKEND = os.environ.get("ECO_STORE_BACKEND", "sqlite").lower()
DB_PATH = os.environ.get("ECO_DB_PATH", "eco_tracker.db")
REDIS_URL = os.environ.get("REDIS_URL", "redis://localhost:6379/0")
KEY_PREFIX = os.environ.get("ECO_KEY_PREFIX", "")

# --- Category table (configuration value, ordered) ---
CATEGORY_TABLE = parse_category_table(os.environ.get("ECO_CATEGORY_TABLE"))

_store_lock = threading.Lock()
_record_store = None


def build_record_store(backend_name=None, db_path=None, redis_url=None, key_prefix=None):
    """Constructs a store for the configured backend without registering it."""
    backend_name = (backend_name or STORE_BACKEND).lower()
    if backend_name == "sqlite":
        backend = SQLiteBackend(db_path or DB_PATH)
    elif backend_name == "redis":
        backend = RedisBackend(url=redis_url or REDIS_URL)
    else:
        raise ValueError(f"Unsupported ECO_STORE_BACKEND: {backend_name!r}")
    return RecordStore(backend, key_prefix=KEY_PREFIX if key_prefix is None else key_prefix)


def init_record_store(store=None):
    """
    Initializes the process-wide store once. Passing a store registers it
    instead of building one from the environment.
    """
    global _record_store
    with _store_lock:
        if _record_store is None:
            _record_store = store or build_record_store()
            logging.info(f"Record store initialized ({type(_record_store.backend).__name__})")
        return _record_store


def get_record_store():
    """The process-wide store, initializing it on first use."""
    return _record_store or init_record_store()


def close_record_store():
    """Releases the process-wide store. A later get_record_store() builds a new one."""
    global _record_store
    with _store_lock:
        if _record_store is not None:
            _record_store.close()
            logging.info("Record store closed")
        _record_store = None
