"""
Keyed storage for pages, models and tables.

This is the persistent-storage collaborator of the engine, kept in
memory. Models are keyed by (page_id, name), replaced wholesale when
their page is saved and cascade-deleted with it. Tables are keyed by
title (for example "Risks/Data:Vehicles") and hold ordered rows.

All access goes through one re-entrant lock; the Flask server may run
requests on several threads.

IMPORTANT: No unicode characters (Windows charmap constraint).
"""

import copy
import threading

from riski.model import split_key


class RiskiStore:
    """In-memory page, model and table store."""

    def __init__(self):
        self._lock = threading.RLock()
        self._pages = {}
        self._models = {}
        self._tables = {}

    # ------------------------------------------------------------------
    # Pages
    # ------------------------------------------------------------------

    def save_page(self, page_id, source):
        with self._lock:
            self._pages[page_id] = source

    def get_page(self, page_id):
        """Page source, or None."""
        with self._lock:
            return self._pages.get(page_id)

    def delete_page(self, page_id):
        """Delete a page and cascade its models. Returns True if it existed."""
        with self._lock:
            existed = self._pages.pop(page_id, None) is not None
            self._models.pop(page_id, None)
            return existed

    def list_pages(self):
        with self._lock:
            return list(self._pages)

    # ------------------------------------------------------------------
    # Models
    # ------------------------------------------------------------------

    def replace_models(self, page_id, models):
        """Delete every model of page_id and insert models in their place."""
        with self._lock:
            self._models[page_id] = {m.name: m for m in models}

    def get_model(self, page_id, name):
        with self._lock:
            return self._models.get(page_id, {}).get(name)

    def find_model(self, key):
        """Look up a model by qualified key '<page_id>:<name>'."""
        parts = split_key(key)
        if parts is None:
            return None
        return self.get_model(*parts)

    def models_for(self, page_id):
        with self._lock:
            return list(self._models.get(page_id, {}).values())

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    def put_table(self, title, rows):
        """Store rows (list of dicts) under title, replacing any previous table."""
        with self._lock:
            self._tables[title] = [dict(row) for row in rows]

    def get_table(self, title):
        """Copy of the rows stored under title, or None."""
        with self._lock:
            rows = self._tables.get(title)
            return copy.deepcopy(rows) if rows is not None else None

    def has_table(self, title):
        with self._lock:
            return title in self._tables
