"""
Unit tests for LinkStore.

Covers:
    - Validation before storage access (empty, too long, custom id too long, limits beyond 64 bits)
    - Default and custom limits
    - Conflict on a valid custom id, reuse once it becomes invalid
    - Bounded retry for generated ids and the exhaustion error
    - Use-limit and time-limit enforcement through `get`
    - Exact invocation count after refused lookups
    - Cleanup of expired and exhausted links
    - Storage errors propagate unchanged
"""

from unittest.mock import patch

import pytest

from shorty_platform.config import Settings
from shorty_platform.errors import (
    CustomIdExceedsMaxLength,
    LimitOutOfRange,
    LinkConflict,
    LinkEmpty,
    LinkExceedsMaxLength,
    RandomIdExhausted,
    StorageError,
)
from shorty_platform.link import MAX_LIMIT, LinkConfig
from shorty_platform.manager.link_store import LinkStore
from shorty_platform.manager.strategies import BaseStrategy
from shorty_platform.storage.storage import Storage


class FixedStrategy(BaseStrategy):
    """Hands out the given ids in order, repeating the last one."""

    def __init__(self, *ids):
        self.ids = list(ids)
        self.calls = 0

    def generate(self) -> str:
        self.calls += 1
        return self.ids.pop(0) if len(self.ids) > 1 else self.ids[0]


# -------------------------
# Validation
# -------------------------

def test_empty_link_rejected_before_storage(link_store):
    with patch.object(link_store.storage, "claim") as claim:
        with pytest.raises(LinkEmpty):
            link_store.create_default("")
        claim.assert_not_called()


def test_link_too_long(storage, clock):
    store = LinkStore(storage, settings=Settings(max_link_length=20), clock=clock)
    store.create_default("https://example.com")  # 19 chars, fits
    with pytest.raises(LinkExceedsMaxLength):
        store.create_default("https://example.com/x")
    assert storage.count() == 1


def test_custom_id_too_long(storage, clock):
    store = LinkStore(storage, settings=Settings(max_custom_id_length=3), clock=clock)
    with pytest.raises(CustomIdExceedsMaxLength):
        store.create_with_config(LinkConfig(link="https://example.com", custom_id="abcd"))
    assert storage.count() == 0


def test_limits_beyond_64_bits_rejected_before_storage(link_store):
    with patch.object(link_store.storage, "claim") as claim:
        with pytest.raises(LimitOutOfRange):
            link_store.create_with_config(LinkConfig(link="https://example.com", valid_for=MAX_LIMIT + 1))
        with pytest.raises(LimitOutOfRange):
            link_store.create_with_config(LinkConfig(link="https://example.com", custom_id="big", max_uses=10**19))
        claim.assert_not_called()


def test_largest_storable_limits_accepted(link_store):
    link = link_store.create_with_config(
        LinkConfig(link="https://example.com", custom_id="max", max_uses=MAX_LIMIT, valid_for=MAX_LIMIT)
    )
    assert link.valid_for == MAX_LIMIT
    assert link_store.get("max") is not None


def test_error_status_codes():
    assert LinkConflict.status_code == 409
    assert LinkEmpty.status_code == 400
    assert StorageError.status_code == 500
    assert LimitOutOfRange.status_code == 400
    assert str(LinkConflict()) == "Link with provided ID already exists"


# -------------------------
# Creation
# -------------------------

def test_create_default_uses_configured_defaults(storage, clock):
    settings = Settings(default_max_uses=5, default_valid_for=60_000)
    store = LinkStore(storage, settings=settings, clock=clock)
    link = store.create_default("https://example.com")
    assert link.max_uses == 5
    assert link.valid_for == 60_000
    assert link.invocations == 0
    assert link.created_at == clock.now
    assert storage.get_link(link.id) == link


def test_create_with_config_missing_limits_fall_back_to_defaults(link_store, settings):
    link = link_store.create_with_config(LinkConfig(link="https://example.com", max_uses=3))
    assert link.max_uses == 3
    assert link.valid_for == settings.default_valid_for


def test_empty_custom_id_generates_one(link_store):
    link = link_store.create_with_config(LinkConfig(link="https://example.com", custom_id=""))
    assert len(link.id) == 6


def test_round_trip(link_store):
    link_store.create_with_config(LinkConfig(link="https://example.com", custom_id="x"))
    found = link_store.get("x")
    assert found is not None
    assert found.redirect_to == "https://example.com"


def test_conflict_then_reuse_after_expiry(link_store, clock):
    link_store.create_with_config(LinkConfig(link="https://one.com", custom_id="abc", valid_for=1000))
    with pytest.raises(LinkConflict):
        link_store.create_with_config(LinkConfig(link="https://two.com", custom_id="abc"))

    clock.advance(1001)
    link = link_store.create_with_config(LinkConfig(link="https://two.com", custom_id="abc"))
    assert link.redirect_to == "https://two.com"
    assert link_store.get("abc").redirect_to == "https://two.com"


def test_conflict_then_reuse_after_uses_run_out(link_store):
    link_store.create_with_config(LinkConfig(link="https://one.com", custom_id="abc", max_uses=1))
    assert link_store.get("abc") is not None
    link = link_store.create_with_config(LinkConfig(link="https://two.com", custom_id="abc"))
    assert link.invocations == 0
    assert link_store.storage.get_link("abc").redirect_to == "https://two.com"


def test_generated_id_retries_on_collision(storage, settings, clock):
    store = LinkStore(storage, settings=settings, id_strategy=FixedStrategy("taken", "taken", "free"), clock=clock)
    store.create_with_config(LinkConfig(link="https://one.com", custom_id="taken"))
    link = store.create_default("https://two.com")
    assert link.id == "free"
    assert store.id_strategy.calls == 3


def test_generated_id_exhaustion(storage, settings, clock):
    strategy = FixedStrategy("taken")
    store = LinkStore(storage, settings=settings, id_strategy=strategy, clock=clock)
    store.create_with_config(LinkConfig(link="https://one.com", custom_id="taken"))
    with pytest.raises(RandomIdExhausted):
        store.create_default("https://two.com")
    assert strategy.calls == settings.id_max_attempts == 3
    assert storage.get_link("taken").redirect_to == "https://one.com"


def test_generated_id_reuses_invalid_holder(storage, settings, clock):
    store = LinkStore(storage, settings=settings, id_strategy=FixedStrategy("old"), clock=clock)
    store.create_with_config(LinkConfig(link="https://one.com", custom_id="old", valid_for=10))
    clock.advance(11)
    assert store.create_default("https://two.com").id == "old"


# -------------------------
# Lookup
# -------------------------

def test_get_unknown_returns_none(link_store):
    assert link_store.get("missing") is None


def test_use_limit_resolves_exactly_max_uses_times(link_store):
    link_store.create_with_config(LinkConfig(link="https://example.com", custom_id="two", max_uses=2))
    first = link_store.get("two")
    second = link_store.get("two")
    assert first.invocations == 1
    assert second.invocations == 2
    assert link_store.get("two") is None


def test_refused_lookups_still_count(link_store):
    link_store.create_with_config(LinkConfig(link="https://example.com", custom_id="two", max_uses=2))
    for _ in range(3):
        link_store.get("two")
    assert link_store.storage.get_link("two").invocations == 3


def test_time_limit(link_store, clock):
    link = link_store.create_with_config(LinkConfig(link="https://example.com", custom_id="t", valid_for=1000))
    assert link_store.get("t") is not None
    clock.now = link.created_at + 1000
    assert link_store.get("t") is not None
    clock.now = link.created_at + 1001
    assert link_store.get("t") is None


def test_unlimited_sentinels(link_store, clock):
    link_store.create_with_config(LinkConfig(link="https://example.com", custom_id="p", max_uses=0, valid_for=0))
    for _ in range(50):
        assert link_store.get("p") is not None
    clock.advance(10 * 365 * 24 * 60 * 60 * 1000)
    assert link_store.get("p").invocations == 51


# -------------------------
# Cleanup
# -------------------------

def test_clean_removes_exactly_invalid_links(link_store, clock):
    link_store.create_with_config(LinkConfig(link="https://a.com", custom_id="timed", valid_for=1000))
    link_store.create_with_config(LinkConfig(link="https://b.com", custom_id="used", max_uses=1))
    link_store.create_with_config(LinkConfig(link="https://c.com", custom_id="perm", max_uses=0, valid_for=0))
    link_store.get("used")

    clock.advance(5000)
    assert link_store.clean() == 2
    assert link_store.storage.get_link("timed") is None
    assert link_store.storage.get_link("used") is None
    assert link_store.get("perm") is not None


def test_clean_with_explicit_now(link_store, clock):
    link_store.create_with_config(LinkConfig(link="https://a.com", custom_id="timed", valid_for=1000))
    assert link_store.clean(clock.now + 1000) == 0
    assert link_store.clean(clock.now + 1001) == 1


def test_storage_errors_propagate(link_store):
    with patch.object(Storage, "delete_invalid", side_effect=StorageError("disk on fire")):
        with pytest.raises(StorageError, match="disk on fire"):
            link_store.clean()
