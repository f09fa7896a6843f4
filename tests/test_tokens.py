"""Test the confirmation token store."""

import asyncio
import re
from datetime import UTC, datetime, timedelta

import pytest

from sqlgate.tokens import (
    DEFAULT_CLEANUP_INTERVAL_MS,
    DEFAULT_EXPIRATION_MS,
    ConfirmationToken,
    TokenStore,
)


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2024, 1, 1, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += timedelta(milliseconds=ms)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return TokenStore(expiration_ms=1000, cleanup_interval_ms=0, clock=clock)


def test_defaults():
    s = TokenStore()
    assert s.expiration_ms == DEFAULT_EXPIRATION_MS == 300_000
    assert s.cleanup_interval_ms == DEFAULT_CLEANUP_INTERVAL_MS == 60_000
    assert s.expires_in == "5 minutes"


def test_token_format(store):
    token = store.generate_token()
    assert re.fullmatch(r"[0-9a-f]{64}", token)


def test_tokens_unique(store):
    tokens = {store.generate_token() for _ in range(1000)}
    assert len(tokens) == 1000


def test_redeem_once(store):
    token = store.generate_token()
    store.store(token, "DELETE FROM users WHERE id = 1")
    assert store.get_and_invalidate(token) == "DELETE FROM users WHERE id = 1"
    assert store.get_and_invalidate(token) is None


def test_unknown_token(store):
    assert store.get_and_invalidate("nope") is None


def test_expired_token_rejected_and_removed(store, clock):
    token = store.generate_token()
    store.store(token, "UPDATE t SET x = 1")
    clock.advance(1001)
    assert store.get_and_invalidate(token) is None
    assert token not in store._tokens


def test_token_valid_at_exact_expiry(store, clock):
    token = store.generate_token()
    store.store(token, "UPDATE t SET x = 1")
    clock.advance(1000)
    assert store.get_and_invalidate(token) == "UPDATE t SET x = 1"


def test_store_overwrites(store):
    store.store("t", "INSERT INTO a VALUES (1)")
    store.store("t", "INSERT INTO b VALUES (1)")
    assert store.get_and_invalidate("t") == "INSERT INTO b VALUES (1)"


def test_cleanup_expired_counts(store, clock):
    store.store("old1", "q")
    store.store("old2", "q")
    clock.advance(600)
    store.store("fresh", "q")
    clock.advance(500)
    assert store.cleanup_expired() == 2
    assert store.cleanup_expired() == 0
    assert store.active_token_count() == 1
    assert store.get_and_invalidate("fresh") == "q"


def test_active_count_excludes_expired(store, clock):
    store.store("a", "q")
    clock.advance(2000)
    assert store.active_token_count() == 0


def test_confirmation_token_is_expired():
    now = datetime(2024, 1, 1, tzinfo=UTC)
    entry = ConfirmationToken(query="q", created_at=now, expires_at=now)
    assert not entry.is_expired(now)
    assert entry.is_expired(now + timedelta(microseconds=1))


@pytest.mark.parametrize(
    ("ms", "text"),
    [(60_000, "1 minute"), (300_000, "5 minutes"), (90_000, "90 seconds"), (1, "1 millisecond")],
)
def test_expires_in(ms, text):
    assert TokenStore(expiration_ms=ms).expires_in == text


def test_background_sweep_removes_expired(clock):
    store = TokenStore(expiration_ms=10, cleanup_interval_ms=5, clock=clock)

    async def go():
        store.start()
        store.store("a", "q")
        clock.advance(100)
        await asyncio.sleep(0.05)
        remaining = len(store._tokens)
        await store.close()
        return remaining

    assert asyncio.run(go()) == 0


def test_close_cancels_sweep():
    store = TokenStore(cleanup_interval_ms=60_000)

    async def go():
        store.start()
        task = store._sweeper
        assert task is not None and not task.done()
        await store.close()
        await store.close()
        return task

    task = asyncio.run(go())
    assert task.cancelled()
    assert store._sweeper is None


def test_zero_interval_disables_sweep():
    store = TokenStore(cleanup_interval_ms=0)

    async def go():
        store.start()
        return store._sweeper

    assert asyncio.run(go()) is None


def test_start_requires_running_loop():
    with pytest.raises(RuntimeError):
        TokenStore().start()
