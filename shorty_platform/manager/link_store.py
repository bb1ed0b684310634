"""
LinkStore module for Shorty Platform.

Responsibilities:
    - Validate link creation requests before touching storage
    - Allocate ids: custom ids as given, generated ids with bounded retry
    - Refuse to overwrite a link that is still valid
    - Count uses atomically on lookup and hide invalid links
    - Remove invalid links in bulk

Design notes:
    - Storage is an injected dependency; every storage call used here is a
      single atomic step in its backend (see storage/base.py).
    - Creation never reads-then-writes: the backend's `claim` replaces an
      existing row only if that row is invalid at the time of the write.
    - Lookups increment first and decide afterwards. A use is granted iff the
      link was valid before this lookup's increment, so a link with
      `max_uses = N` redirects exactly N times. Refused lookups still count,
      so the stored `invocations` may end up above `max_uses`.
    - The clock is injectable so expiry can be tested without sleeping.
"""

import logging
from dataclasses import replace
from typing import Callable, Optional

from ..config import Settings
from ..errors import (
    CustomIdExceedsMaxLength,
    LimitOutOfRange,
    LinkConflict,
    LinkEmpty,
    LinkExceedsMaxLength,
    RandomIdExhausted,
)
from ..link import MAX_LIMIT, Link, LinkConfig, time_now
from ..storage.base import BaseStorage
from .strategies import BaseStrategy, get_strategy_from_config

logger = logging.getLogger(__name__)

Clock = Callable[[], int]  # () -> epoch milliseconds


class LinkStore:
    """
    Coordinates creation, lookup and cleanup of links.

    Args:
        storage (BaseStorage): Backend holding the links table.
        settings (Optional[Settings]): Limits and defaults; `Settings()` when omitted.
        id_strategy (Optional[BaseStrategy]): Id generator; resolved from settings when omitted.
        clock (Optional[Clock]): Millisecond clock; wall clock when omitted.
    """

    def __init__(
        self,
        storage: BaseStorage,
        settings: Optional[Settings] = None,
        id_strategy: Optional[BaseStrategy] = None,
        clock: Optional[Clock] = None,
    ):
        self.storage = storage
        self.settings = settings or Settings()
        self.id_strategy = id_strategy or get_strategy_from_config(settings=self.settings)
        self.clock = clock or time_now

    # ---------------------------------------------------------------------
    # Validation
    # ---------------------------------------------------------------------
    def _validate(self, config: LinkConfig) -> None:
        """
        Raises:
            LinkEmpty: The destination is empty.
            LinkExceedsMaxLength: The destination is longer than allowed.
            CustomIdExceedsMaxLength: The custom id is longer than allowed.
            LimitOutOfRange: `max_uses` or `valid_for` does not fit a 64-bit column.
        """
        if not config.link:
            raise LinkEmpty()
        if len(config.link) > self.settings.max_link_length:
            raise LinkExceedsMaxLength()
        if config.custom_id and len(config.custom_id) > self.settings.max_custom_id_length:
            raise CustomIdExceedsMaxLength()
        for limit in (config.max_uses, config.valid_for):
            if limit is not None and limit > MAX_LIMIT:
                raise LimitOutOfRange()

    # ---------------------------------------------------------------------
    # Public API
    # ---------------------------------------------------------------------
    def create_default(self, redirect_to: str) -> Link:
        """Create a link with a generated id and the configured default limits."""
        config = LinkConfig(
            link=redirect_to,
            max_uses=self.settings.default_max_uses,
            valid_for=self.settings.default_valid_for,
        )
        return self.create_with_config(config)

    def create_with_config(self, config: LinkConfig) -> Link:
        """
        Create a link as described by `config`.

        Rules:
            - Validation runs first; invalid requests never reach storage.
            - A custom id held by a valid link -> LinkConflict.
            - A custom id held by an invalid link is overwritten.
            - Generated ids are retried `id_max_attempts` times; when every
              attempt hits a valid link -> RandomIdExhausted.

        Returns:
            Link: The stored link, with `invocations == 0`.

        Raises:
            ShortyError: Validation, conflict, exhaustion or storage failure.
        """
        self._validate(config)

        max_uses = self.settings.default_max_uses if config.max_uses is None else config.max_uses
        valid_for = self.settings.default_valid_for if config.valid_for is None else config.valid_for

        def build(link_id: str, now: int) -> Link:
            return Link(
                id=link_id,
                redirect_to=config.link,
                max_uses=max(0, max_uses),
                invocations=0,
                created_at=now,
                valid_for=max(0, valid_for),
            )

        if config.custom_id:
            now = self.clock()
            link = build(config.custom_id, now)
            if not self.storage.claim(link, now):
                raise LinkConflict()
            logger.info("Created link %s -> %s", link.id, link.redirect_to)
            return link

        attempts = self.settings.id_max_attempts
        for attempt in range(1, attempts + 1):
            now = self.clock()
            link = build(self.id_strategy.generate(), now)
            if self.storage.claim(link, now):
                logger.info("Created link %s -> %s", link.id, link.redirect_to)
                return link
            logger.debug("Generated id %s is taken (attempt %d/%d)", link.id, attempt, attempts)

        raise RandomIdExhausted()

    def get(self, link_id: str) -> Optional[Link]:
        """
        Resolve a link id, counting the attempt as a use.

        Returns:
            Optional[Link]: The link with its post-increment count, or None when
            the id is unknown or the link was already invalid.
        """
        link = self.storage.fetch_and_increment(link_id)
        if link is None:
            logger.debug("%s got requested but does not exist", link_id)
            return None

        before = replace(link, invocations=link.invocations - 1)
        if before.is_invalid(self.clock()):
            logger.debug("%s got requested but is expired", link_id)
            return None

        return link

    def clean(self, now: Optional[int] = None) -> int:
        """
        Delete every link that is invalid at `now` (defaults to the clock).

        Returns:
            int: Number of links removed.
        """
        now = self.clock() if now is None else now
        logger.debug("Clearing stale links")
        num_before = self.storage.count()
        removed = self.storage.delete_invalid(now)
        num_after = self.storage.count()
        logger.debug(
            "Size before cleaning: %d. After cleaning: %d. Removed elements: %d",
            num_before,
            num_after,
            removed,
        )
        return removed
