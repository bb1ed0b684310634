"""
Link entity for Shorty Platform.

Attributes of a persisted link (all timestamps/durations in milliseconds):
    id          : short identifier, primary key
    redirect_to : destination URL
    max_uses    : allowed resolutions, 0 = unlimited
    invocations : resolutions attempted so far
    created_at  : epoch ms at creation
    valid_for   : lifetime in ms, 0 = never expires
"""

import time
from dataclasses import dataclass, asdict
from typing import Any, Dict, Mapping, Optional

# Largest value the SQL backends can store (signed 64-bit).
MAX_LIMIT = 2**63 - 1

LINK_COLUMNS = ("id", "redirect_to", "max_uses", "invocations", "created_at", "valid_for")


def time_now() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


@dataclass(frozen=True)
class LinkConfig:
    """Creation request for a link; unset limits fall back to configured defaults."""
    link: str
    custom_id: Optional[str] = None
    max_uses: Optional[int] = None
    valid_for: Optional[int] = None


@dataclass(frozen=True)
class Link:
    id: str
    redirect_to: str
    max_uses: int = 0
    invocations: int = 0
    created_at: int = 0
    valid_for: int = 0

    def __str__(self) -> str:
        return self.redirect_to

    def is_invalid(self, now: int) -> bool:
        """
        True when the link has run out of time or uses at `now`.

        A zero `valid_for` or `max_uses` disables that bound.
        """
        expired = self.valid_for != 0 and (now - self.created_at) > self.valid_for
        used_up = self.max_uses != 0 and self.invocations >= self.max_uses
        return expired or used_up

    def formatted(self, public_url: str) -> str:
        """Public short URL for this link, e.g. "https://sho.rt/AbC12x"."""
        return f"{public_url.rstrip('/')}/{self.id}"

    def to_dict(self) -> Dict[str, Any]:
        """Plain dict of the stored fields, for inspection and test assertions."""
        return asdict(self)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Link":
        return cls(**{col: row[col] for col in LINK_COLUMNS})
