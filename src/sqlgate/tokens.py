"""Confirmation tokens: single-use, time-limited, in-memory.

A token binds a pending mutating submission to a later execute request.
The store lives in one process and is only touched from one asyncio event
loop, so lookups and deletes never interleave and no lock is needed.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

logger = logging.getLogger(__name__)

DEFAULT_EXPIRATION_MS = 5 * 60 * 1000
DEFAULT_CLEANUP_INTERVAL_MS = 60 * 1000

_TOKEN_BYTES = 32


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass
class ConfirmationToken:
    query: str
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at < now


class TokenStore:
    """Maps confirmation tokens to the SQL text they authorise."""

    def __init__(
        self,
        *,
        expiration_ms: int = DEFAULT_EXPIRATION_MS,
        cleanup_interval_ms: int = DEFAULT_CLEANUP_INTERVAL_MS,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.expiration_ms = expiration_ms
        self.cleanup_interval_ms = cleanup_interval_ms
        self._clock = clock
        self._tokens: dict[str, ConfirmationToken] = {}
        self._sweeper: asyncio.Task[None] | None = None

    def generate_token(self) -> str:
        """Return 32 bytes of CSPRNG output as 64 hex characters."""
        return secrets.token_hex(_TOKEN_BYTES)

    def store(self, token: str, query: str) -> None:
        now = self._clock()
        self._tokens[token] = ConfirmationToken(
            query=query,
            created_at=now,
            expires_at=now + timedelta(milliseconds=self.expiration_ms),
        )

    def get_and_invalidate(self, token: str) -> str | None:
        """Redeem a token. Returns its query once; None if unknown or expired.

        The entry is removed on every successful lookup, expired or not.
        """
        entry = self._tokens.pop(token, None)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            return None
        return entry.query

    def cleanup_expired(self) -> int:
        """Delete every expired entry. Returns the number removed."""
        now = self._clock()
        expired = [token for token, entry in self._tokens.items() if entry.is_expired(now)]
        for token in expired:
            del self._tokens[token]
        return len(expired)

    def active_token_count(self) -> int:
        self.cleanup_expired()
        return len(self._tokens)

    @property
    def expires_in(self) -> str:
        """TTL in words, e.g. '5 minutes'."""
        return _describe_duration(self.expiration_ms)

    # -- Background sweep -------------------------------------------------------

    def start(self) -> None:
        """Schedule the periodic sweep on the running event loop.

        A cleanup interval of 0 disables the sweep; expired tokens are then
        only dropped on lookup or by an explicit cleanup_expired().
        """
        if self._sweeper is not None:
            return
        if self.cleanup_interval_ms <= 0:
            logger.info("token sweep disabled (cleanup interval is 0)")
            return
        loop = asyncio.get_running_loop()
        self._sweeper = loop.create_task(self._sweep_forever(), name="sqlgate-token-sweep")

    async def close(self) -> None:
        """Cancel the periodic sweep. Safe to call more than once."""
        task, self._sweeper = self._sweeper, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _sweep_forever(self) -> None:
        interval = self.cleanup_interval_ms / 1000
        while True:
            await asyncio.sleep(interval)
            try:
                removed = self.cleanup_expired()
            except Exception:
                logger.exception("token sweep failed")
                continue
            if removed:
                logger.debug("token sweep removed %d expired token(s)", removed)


def _describe_duration(ms: int) -> str:
    if ms % 60_000 == 0 and ms >= 60_000:
        n, unit = ms // 60_000, "minute"
    elif ms % 1000 == 0:
        n, unit = ms // 1000, "second"
    else:
        n, unit = ms, "millisecond"
    return f"{n} {unit}" + ("" if n == 1 else "s")
