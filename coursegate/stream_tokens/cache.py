"""In-process store of short-lived stream capability tokens.

Tokens are issued after a granted access decision for protected media and
presented later by the media player, independently of the HTTP session
that obtained them.

Eviction happens three ways:
- On lookup, an expired entry is removed and reported as unknown
- On issue, when the live entry count exceeds the sweep threshold
- In a background task every sweep interval

All state changes happen under one lock and never perform I/O, so the
cache is safe to share between request handlers and worker threads.
"""

import asyncio
import contextlib
import hashlib
import secrets
import threading
import time
from collections.abc import Callable
from typing import TYPE_CHECKING
from uuid import UUID

from coursegate.core.logging import get_logger

from .models import CapabilityToken, TokenGrant


if TYPE_CHECKING:
    from coursegate.config.settings import Settings


logger = get_logger(__name__)

DEFAULT_TTL_SECONDS = 60 * 60
DEFAULT_SWEEP_INTERVAL_SECONDS = 5 * 60
DEFAULT_SWEEP_THRESHOLD = 1000

# 128 bits of randomness per token
_RANDOM_BYTES = 16


class CapabilityTokenCache:
    """Lock-protected token map with an explicit sweeper lifecycle."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        sweep_interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
        sweep_threshold: int = DEFAULT_SWEEP_THRESHOLD,
        clock: Callable[[], float] = time.time,
    ):
        self.ttl_seconds = ttl_seconds
        self.sweep_interval_seconds = sweep_interval_seconds
        self.sweep_threshold = sweep_threshold
        self._clock = clock
        self._entries: dict[str, CapabilityToken] = {}
        self._lock = threading.Lock()
        self._sweeper: asyncio.Task | None = None

    @classmethod
    def from_settings(cls, settings: "Settings") -> "CapabilityTokenCache":
        return cls(
            ttl_seconds=settings.stream_token_ttl_seconds,
            sweep_interval_seconds=settings.stream_token_sweep_interval_seconds,
            sweep_threshold=settings.stream_token_sweep_threshold,
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # ==========================================================================
    # Issue / Validate
    # ==========================================================================

    def issue(self, resource_id: UUID, principal_id: UUID) -> CapabilityToken:
        """Issue a fresh token for ``(resource_id, principal_id)``.

        Never fails. The token mixes both ids, the issuance time in
        nanoseconds and 128 random bits, and is re-drawn on the (practically
        impossible) event of a collision with a live entry.
        """
        swept = 0
        with self._lock:
            issued_at = self._clock()
            token = self._generate(resource_id, principal_id)
            while token in self._entries:
                token = self._generate(resource_id, principal_id)

            entry = CapabilityToken(
                token=token,
                resource_id=resource_id,
                principal_id=principal_id,
                issued_at=issued_at,
                expires_at=issued_at + self.ttl_seconds,
            )
            self._entries[token] = entry

            if len(self._entries) > self.sweep_threshold:
                swept = self._sweep_locked(issued_at)

        if swept:
            logger.info("stream_token_sweep", trigger="threshold", removed=swept)

        return entry

    def validate(self, token: str) -> TokenGrant | None:
        """Resolve a token to the grant it proves.

        Returns None both for unknown tokens and for expired ones; an
        expired entry is removed on the spot.
        """
        with self._lock:
            entry = self._entries.get(token)
            if entry is None:
                return None

            if entry.is_expired(self._clock()):
                del self._entries[token]
                return None

            return TokenGrant(
                resource_id=entry.resource_id,
                principal_id=entry.principal_id,
            )

    # ==========================================================================
    # Eviction
    # ==========================================================================

    def sweep(self) -> int:
        """Remove every expired entry. Returns the number removed."""
        with self._lock:
            return self._sweep_locked(self._clock())

    def _sweep_locked(self, now: float) -> int:
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    @staticmethod
    def _generate(resource_id: UUID, principal_id: UUID) -> str:
        material = (
            f"{resource_id}:{principal_id}:{time.time_ns()}:"
            f"{secrets.token_hex(_RANDOM_BYTES)}"
        )
        return hashlib.sha256(material.encode()).hexdigest()

    # ==========================================================================
    # Sweeper Lifecycle
    # ==========================================================================

    @property
    def is_running(self) -> bool:
        return self._sweeper is not None and not self._sweeper.done()

    def start(self) -> None:
        """Start the periodic sweep on the running event loop."""
        if self.is_running:
            return
        self._sweeper = asyncio.get_running_loop().create_task(
            self._run_sweeper(), name="stream-token-sweeper"
        )
        logger.info(
            "stream_token_sweeper_started",
            interval_seconds=self.sweep_interval_seconds,
        )

    async def stop(self) -> None:
        """Cancel the periodic sweep and wait for it to finish."""
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._sweeper
        self._sweeper = None
        logger.info("stream_token_sweeper_stopped")

    async def _run_sweeper(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval_seconds)
            removed = self.sweep()
            if removed:
                logger.info("stream_token_sweep", trigger="interval", removed=removed)
