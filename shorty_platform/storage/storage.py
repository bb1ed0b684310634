"""
Storage module for Shorty Platform (in-memory implementation).

Responsibilities:
    - Hold links keyed by id
    - Replace a link in place only once it has become invalid
    - Count uses atomically
    - Drop invalid links in bulk

Design:
    - In-memory reference implementation of the BaseStorage contract.
    - A single lock serialises every read-modify-write, so concurrent
      request threads never lose an increment or overwrite a live link.
    - Data is lost on restart; use the sqlite or postgres backend to persist.
"""

import threading
from dataclasses import replace
from typing import Dict, Optional

from ..link import Link
from .base import BaseStorage


class Storage(BaseStorage):
    def __init__(self):
        """
        Initialize empty storage dictionary.

        Internal schema:
            self.links = { link_id: Link }
        """
        self.links: Dict[str, Link] = {}
        self._lock = threading.Lock()

    def claim(self, link: Link, now: int) -> bool:
        with self._lock:
            existing = self.links.get(link.id)
            if existing is not None and not existing.is_invalid(now):
                return False
            self.links[link.id] = link
            return True

    def fetch_and_increment(self, link_id: str) -> Optional[Link]:
        with self._lock:
            existing = self.links.get(link_id)
            if existing is None:
                return None
            updated = replace(existing, invocations=existing.invocations + 1)
            self.links[link_id] = updated
            return updated

    def get_link(self, link_id: str) -> Optional[Link]:
        with self._lock:
            return self.links.get(link_id)

    def delete_invalid(self, now: int) -> int:
        with self._lock:
            stale = [link_id for link_id, link in self.links.items() if link.is_invalid(now)]
            for link_id in stale:
                del self.links[link_id]
            return len(stale)

    def count(self) -> int:
        with self._lock:
            return len(self.links)
