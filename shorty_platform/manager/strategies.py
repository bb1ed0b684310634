"""
Strategies for short-id generation in shorty_platform.

Provided strategies:
- UrlSafeRandomStrategy: 4 random bytes -> URL-safe base64 without padding (6 chars)
- RandomStrategy: Random Base62 string of length L (default 6)
- SequentialStrategy: monotonically increasing integer -> Base62, with optional left-pad and prefix

Common helpers:
- _base62_encode: Non-negative integer -> Base62 string
- _safe_len: Normalize desired id length (clamped to [4, 32])

Configuration (via shorty_platform.config.Settings):
- id_strategy: "base64" (default), "random", "sequential"
- id_length: Length for RandomStrategy (default 6; clamped 4..32)
- seq_start: Starting integer for SequentialStrategy (default 3_500_000)
- shard_prefix: Optional string prefix for SequentialStrategy (e.g., "ap")

Notes:
- None of the strategies guarantee uniqueness on their own. The Link Store
  retries generated ids against storage and gives up after a bounded number
  of attempts.
- Randomness does not need to be cryptographic; ids are not secrets.
- SequentialStrategy is collision-free within one process and is the fallback
  for deployments where random ids start colliding.
"""

import base64
import itertools
import logging
import random
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Optional, Type

from ..config import Settings

logger = logging.getLogger(__name__)

_BASE62_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"
_BASE62_BASE = len(_BASE62_ALPHABET)

# Random bytes per base64 id; 4 bytes encode to 6 characters.
_RANDOM_BYTES = 4


def _base62_encode(num: int) -> str:
    """
    Convert a non-negative integer to a Base62 string using the global alphabet.
    0 -> "0", 61 -> "Z", 62 -> "10"
    """
    if num < 0:
        raise ValueError("num must be non-negative")
    if num == 0:
        return "0"
    out = []
    while num > 0:
        num, rem = divmod(num, _BASE62_BASE)
        out.append(_BASE62_ALPHABET[rem])
    return "".join(reversed(out))


def _safe_len(length: Optional[int], default: int = 6) -> int:
    L = int(length) if length is not None else default
    return max(4, min(32, L))


class BaseStrategy(ABC):
    """Abstract base for id generation strategies."""

    @abstractmethod
    def generate(self) -> str:
        """Return a candidate short id."""
        raise NotImplementedError


@dataclass
class UrlSafeRandomStrategy(BaseStrategy):
    """Random bytes encoded as URL-safe base64 with the padding stripped."""
    num_bytes: int = _RANDOM_BYTES
    rng: random.Random = field(default_factory=random.Random, repr=False)

    def generate(self) -> str:
        raw = self.rng.getrandbits(8 * self.num_bytes).to_bytes(self.num_bytes, "big")
        return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


@dataclass
class RandomStrategy(BaseStrategy):
    """Random Base62 ids of a fixed length."""
    length: int = 6
    rng: random.Random = field(default_factory=random.Random, repr=False)

    def __post_init__(self):
        self.length = _safe_len(self.length)

    def generate(self) -> str:
        return "".join(self.rng.choice(_BASE62_ALPHABET) for _ in range(self.length))


@dataclass
class SequentialStrategy(BaseStrategy):
    """
    Bitly-like sequential strategy:
    - Maintains a process-local monotonically increasing counter
    - Encodes next integer to Base62
    - Enforces minimum visible length via left-padding (e.g., "000abc")
    - Optionally prepends a shard/region prefix (e.g., "ap000abc")

    The counter restarts from `start` with the process, so ids handed out
    before a restart may be generated again. The Link Store treats that as
    an ordinary collision and retries.
    """
    start: int = 3_500_000
    min_length: int = 6
    prefix: str = ""
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    _counter: itertools.count = field(init=False, repr=False)

    def __post_init__(self):
        self._counter = itertools.count(self.start)

    def generate(self) -> str:
        with self._lock:
            n = next(self._counter)
        code = _base62_encode(n)
        if len(code) < self.min_length:
            code = code.rjust(self.min_length, "0")
        if self.prefix:
            code = f"{self.prefix}{code}"
        return code


# Strategy registry and factory
STRATEGY_REGISTRY: Dict[str, Type[BaseStrategy]] = {
    "base64": UrlSafeRandomStrategy,
    "urlsafe": UrlSafeRandomStrategy,
    "random": RandomStrategy,
    "base62": RandomStrategy,
    "sequential": SequentialStrategy,
    "seq": SequentialStrategy,
}


def get_strategy_from_config(name: Optional[str] = None, settings: Optional[Settings] = None) -> BaseStrategy:
    """
    Resolve the active strategy from parameter or settings.id_strategy.
    Unknown names fall back to the base64 strategy.
    """
    settings = settings or Settings()
    key = (name or settings.id_strategy or "base64").strip().lower()
    cls = STRATEGY_REGISTRY.get(key) or STRATEGY_REGISTRY["base64"]
    logger.debug("Using id strategy: %s -> %s", key, cls.__name__)

    if cls is RandomStrategy:
        return RandomStrategy(length=settings.id_length)
    if cls is SequentialStrategy:
        return SequentialStrategy(
            start=settings.seq_start,
            min_length=settings.id_length,
            prefix=settings.shard_prefix,
        )
    return UrlSafeRandomStrategy()
