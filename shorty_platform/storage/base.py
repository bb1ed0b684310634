"""
Base storage interface for Shorty Platform.

Purpose:
    Define a small, stable contract that multiple storage backends
    (in-memory, SQLite, PostgreSQL) implement without requiring changes to
    the Link Store.

Atomicity:
    Every mutating method is a single atomic step in its backend. The Link
    Store never composes a read and a write across two calls when the outcome
    depends on both; `claim` and `fetch_and_increment` exist for that reason.

Testing & Coverage:
    These are abstract methods and are not executed directly in tests.
    We annotate them with `# pragma: no cover` so coverage tools don't
    penalize the project for un-runnable abstract declarations.
"""

from abc import ABC, abstractmethod
from typing import Optional

from ..link import Link


class BaseStorage(ABC):
    """Abstract base class for storage backends."""

    def ensure_schema(self) -> None:
        """Create the links table if the backend needs one. No-op by default."""
        return None

    @abstractmethod  # pragma: no cover
    def claim(self, link: Link, now: int) -> bool:
        """
        Insert `link`, replacing an existing row with the same id only if
        that row is invalid at `now`.

        Returns:
            bool: True if the row was written, False if a valid link holds the id.
        """
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def fetch_and_increment(self, link_id: str) -> Optional[Link]:
        """
        Increment `invocations` for the id and return the updated row.

        Returns:
            Optional[Link]: The row carrying the post-increment count, or None.
        """
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def get_link(self, link_id: str) -> Optional[Link]:
        """
        Return the row for the id without counting a use.

        Inspection helper for tests and operators; the Link Store never calls it,
        since a plain read cannot grant a use.
        """
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def delete_invalid(self, now: int) -> int:
        """
        Delete every row that is invalid at `now`.

        Returns:
            int: Number of rows removed.
        """
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def count(self) -> int:
        """Number of rows currently stored, valid or not."""
        raise NotImplementedError
