"""
Pending installs keyed by correlation token (the OAuth state value).
Written by /install, consumed exactly once by /callback. TTL so abandoned installs don't pile up.
Process memory only: restarts drop pending installs, and several workers don't share it.
"""
import secrets
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from bokun_install.config import NONCE_TTL_SECONDS


@dataclass(frozen=True)
class InstallContext:
    user: str
    domain: str
    timestamp: str


class NonceStore(Protocol):
    def put(self, token: str, context: InstallContext) -> None: ...

    def take(self, token: str) -> InstallContext | None: ...


def generate_token() -> str:
    """128 random bits, 32 lowercase hex chars."""
    return secrets.token_hex(16)


@dataclass
class _Entry:
    context: InstallContext
    created_at: float


class InMemoryNonceStore:
    """Thread-safe dict with read-once semantics: take() removes the entry under the lock."""

    def __init__(self, ttl_seconds: float = NONCE_TTL_SECONDS, clock: Callable[[], float] = time.monotonic):
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def _expired(self, entry: _Entry, now: float) -> bool:
        return (now - entry.created_at) > self._ttl

    def put(self, token: str, context: InstallContext) -> None:
        with self._lock:
            self._purge_locked()
            self._entries[token] = _Entry(context=context, created_at=self._clock())

    def take(self, token: str) -> InstallContext | None:
        """Remove and return the context for token; None if unknown, already taken, or expired."""
        with self._lock:
            entry = self._entries.pop(token, None)
            if entry is None or self._expired(entry, self._clock()):
                return None
            return entry.context

    def purge_expired(self) -> int:
        with self._lock:
            return self._purge_locked()

    def _purge_locked(self) -> int:
        now = self._clock()
        expired = [t for t, e in self._entries.items() if self._expired(e, now)]
        for t in expired:
            del self._entries[t]
        return len(expired)

    def __contains__(self, token: object) -> bool:
        with self._lock:
            return token in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


_store = InMemoryNonceStore()


def get_nonce_store() -> NonceStore:
    """Dependency: the process-wide store."""
    return _store
