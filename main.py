# FILE: main.py

import logging
from dotenv import load_dotenv

from logging_config import setup_logging
import dependencies
from api import admin, core, gamification, status

# --- SETUP & CONFIG ---
load_dotenv()


class EcoTrackerApp:
    """
    The entry point the presentation layer talks to. Holds the process-wide
    record store and category table and exposes every operation as a
    handler returning (body, status_code).
    """

    def __init__(self, store, category_table=None, tz=None):
        self.store = store
        self.category_table = category_table or dependencies.CATEGORY_TABLE
        self.tz = tz

    # --- Logging ---
    def add_activity(self, payload, now=None):
        return core.submit_activity(self.store, payload, category_table=self.category_table, now=now)

    def add_photo(self, payload, now=None):
        return core.submit_photo(self.store, payload, now=now)

    # --- Reading ---
    def photos(self):
        return core.get_photos(self.store)

    def history(self, limit=None):
        return core.get_history(self.store, limit=limit)

    def home(self, now=None):
        return gamification.get_home_summary(self.store, now=now, tz=self.tz)

    def stats(self, now=None):
        return gamification.get_stats(self.store, now=now, tz=self.tz, category_table=self.category_table)

    # --- Data management ---
    def export(self, location_tag, now=None):
        return admin.export_data(self.store, location_tag, now=now, tz=self.tz,
                                 category_table=self.category_table)

    def clear_all(self, now=None):
        return admin.clear_all_data(self.store, now=now, tz=self.tz, category_table=self.category_table)

    def health(self):
        return status.health_check(self.store)

    def close(self):
        dependencies.close_record_store()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


def create_app(store=None, category_table=None, tz=None, log_file=None):
    """Configures logging, initializes the record store once and returns the app."""
    setup_logging(log_file=log_file)
    store = dependencies.init_record_store(store)
    logging.info("EcoTracker app created")
    return EcoTrackerApp(store, category_table=category_table, tz=tz)
