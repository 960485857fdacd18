"""Tests for the pending-install store: read-once, TTL, concurrent take."""
import re
import threading
from concurrent.futures import ThreadPoolExecutor

from bokun_install.nonce_store import InMemoryNonceStore, InstallContext, generate_token

CTX = InstallContext(user="3413", domain="acme", timestamp="1700000000")


def test_generate_token_is_32_hex_chars():
    t = generate_token()
    assert re.fullmatch(r"[0-9a-f]{32}", t)
    assert generate_token() != t


def test_take_returns_context_once():
    store = InMemoryNonceStore()
    store.put("tok", CTX)
    assert store.take("tok") == CTX
    assert store.take("tok") is None
    assert "tok" not in store


def test_take_unknown_token():
    assert InMemoryNonceStore().take("nope") is None


def test_expired_entry_is_not_returned():
    now = [0.0]
    store = InMemoryNonceStore(ttl_seconds=10, clock=lambda: now[0])
    store.put("tok", CTX)
    now[0] = 11.0
    assert store.take("tok") is None
    assert len(store) == 0


def test_put_purges_expired_entries():
    now = [0.0]
    store = InMemoryNonceStore(ttl_seconds=10, clock=lambda: now[0])
    store.put("old", CTX)
    now[0] = 20.0
    store.put("new", CTX)
    assert "old" not in store
    assert "new" in store
    assert store.purge_expired() == 0


def test_concurrent_take_exactly_one_wins():
    store = InMemoryNonceStore()
    store.put("tok", CTX)
    workers = 16
    barrier = threading.Barrier(workers)

    def take(_):
        barrier.wait()
        return store.take("tok")

    with ThreadPoolExecutor(max_workers=workers) as pool:
        results = list(pool.map(take, range(workers)))
    assert sum(r is not None for r in results) == 1
    assert len(store) == 0
