"""API key validation and per-credential sliding-window quotas."""

from __future__ import annotations

import secrets
import time
from collections import OrderedDict, deque
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Iterable

from loguru import logger

from mindmapsys.config import AccessConfig, resolve_env_reference
from mindmapsys.errors import InvalidCredential, MindmapError, RateLimitExceeded


@dataclass(frozen=True, slots=True)
class Admission:
    """Result of :meth:`AccessGate.admit`."""

    admitted: bool
    reason: str | None = None
    remaining: int | None = None
    public: bool = False

    @classmethod
    def allow(cls, remaining: int | None = None, *, public: bool = False) -> "Admission":
        return cls(admitted=True, remaining=remaining, public=public)

    @classmethod
    def reject(cls, error: type[MindmapError]) -> "Admission":
        return cls(admitted=False, reason=error.reason)


class RateWindowTable:
    """Bounded map of credential -> recent request timestamps.

    Trimming and appending happen under one lock, so concurrent requests for
    the same credential cannot both take the last slot. When more than
    ``capacity`` credentials are tracked, the least recently seen one is
    dropped.
    """

    def __init__(self, *, limit: int, window_seconds: float, capacity: int = 10_000) -> None:
        self.limit = limit
        self.window_seconds = window_seconds
        self.capacity = capacity
        self._lock = Lock()
        self._windows: OrderedDict[str, deque[float]] = OrderedDict()

    def try_acquire(self, key: str, now: float) -> tuple[bool, int]:
        """Record ``now`` for ``key`` if under the limit; return ``(admitted, remaining)``."""

        cutoff = now - self.window_seconds
        with self._lock:
            window = self._windows.get(key)
            if window is None:
                window = deque()
                self._windows[key] = window
            else:
                self._windows.move_to_end(key)

            while window and window[0] <= cutoff:
                window.popleft()

            if len(window) >= self.limit:
                return False, 0

            window.append(now)
            self._evict_overflow()
            return True, self.limit - len(window)

    def prune(self, now: float) -> int:
        """Drop credentials whose windows have fully expired; return how many."""

        cutoff = now - self.window_seconds
        removed = 0
        with self._lock:
            for key in list(self._windows):
                window = self._windows[key]
                while window and window[0] <= cutoff:
                    window.popleft()
                if not window:
                    del self._windows[key]
                    removed += 1
        return removed

    def usage(self, key: str) -> int:
        with self._lock:
            window = self._windows.get(key)
            return len(window) if window else 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)

    def _evict_overflow(self) -> None:
        while len(self._windows) > self.capacity:
            self._windows.popitem(last=False)
            logger.debug("Rate window table full ({} credentials); evicted the least recent", self.capacity)


# Public regardless of access.public_paths.
ALWAYS_PUBLIC_PATHS = frozenset({"/health"})

class AccessGate:
    """Decides whether a request may proceed before any work is done."""

    def __init__(
        self,
        config: AccessConfig | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or AccessConfig()
        self._clock = clock
        self._credentials = tuple(_resolve_keys(self.config.api_keys))
        self._public_paths = frozenset(self.config.public_paths) | ALWAYS_PUBLIC_PATHS
        self._public_prefixes = tuple(self.config.public_prefixes)
        self.windows = RateWindowTable(
            limit=self.config.rate_limit,
            window_seconds=self.config.window_seconds,
            capacity=self.config.max_tracked_credentials,
        )

    def is_public(self, path: str) -> bool:
        return path in self._public_paths or path.startswith(self._public_prefixes)

    def is_valid_credential(self, credential: str | None) -> bool:
        if not credential:
            return False
        candidate = credential.encode("utf-8")
        matched = False
        for key in self._credentials:
            if secrets.compare_digest(candidate, key.encode("utf-8")):
                matched = True
        return matched

    def admit(self, credential: str | None, path: str) -> Admission:
        """Validate ``credential`` for ``path`` and consume one unit of its quota."""

        if self.is_public(path):
            return Admission.allow(public=True)
        if credential is None or not self.is_valid_credential(credential):
            return Admission.reject(InvalidCredential)

        admitted, remaining = self.windows.try_acquire(credential, self._clock())
        if not admitted:
            logger.info("Rate limit exceeded for credential ending in '{}'", credential[-4:])
            return Admission.reject(RateLimitExceeded)
        return Admission.allow(remaining=remaining)

    def enforce(self, credential: str | None, path: str) -> Admission:
        """Like :meth:`admit` but raise the matching error on rejection."""

        admission = self.admit(credential, path)
        if admission.admitted:
            return admission
        if admission.reason == RateLimitExceeded.reason:
            raise RateLimitExceeded("API rate limit exceeded; try again later.")
        raise InvalidCredential("Invalid API key.")

    def prune(self) -> int:
        return self.windows.prune(self._clock())


def _resolve_keys(keys: Iterable[str]) -> list[str]:
    resolved: list[str] = []
    for key in keys:
        value = resolve_env_reference(key, required=False)
        if value:
            resolved.append(value)
    return resolved


__all__ = ["AccessGate", "Admission", "RateWindowTable"]
