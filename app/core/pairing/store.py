"""
In-memory table of pairing attempts with TTL expiry.

Nothing here is persisted: a restart drops every pending and approved
attempt and the client simply starts a new pairing. All methods are
synchronous, so each one runs without interleaving on the event loop.
"""

import asyncio
import logging
import time
from typing import Callable, Dict, List, Optional

from .models import PairingAttempt, WalletSession

logger = logging.getLogger(__name__)

EvictionListener = Callable[[PairingAttempt], None]


class PairingStore:
    """
    Pairing attempts keyed by their client-facing id.

    The clock is injectable so expiry can be tested without sleeping.
    A background sweeper removes attempts older than the TTL even when
    nobody polls them.
    """

    def __init__(
        self,
        ttl_seconds: float = 600,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._attempts: Dict[str, PairingAttempt] = {}
        self._listeners: List[EvictionListener] = []
        self._sweeper: Optional[asyncio.Task] = None

    def now(self) -> float:
        return self._clock()

    def put(self, attempt_id: str, attempt: PairingAttempt) -> None:
        if attempt_id in self._attempts:
            raise KeyError(f"Pairing {attempt_id} already exists")
        self._attempts[attempt_id] = attempt

    def get(self, attempt_id: str) -> Optional[PairingAttempt]:
        return self._attempts.get(attempt_id)

    def delete(self, attempt_id: str) -> Optional[PairingAttempt]:
        return self._attempts.pop(attempt_id, None)

    def expires_at(self, attempt: PairingAttempt) -> float:
        return attempt.created_at + self.ttl_seconds

    def is_expired(self, attempt: PairingAttempt) -> bool:
        return self.now() - attempt.created_at > self.ttl_seconds

    def find_by_topic(self, topic: str) -> Optional[PairingAttempt]:
        """Approved attempt whose session carries ``topic``."""
        for attempt in self._attempts.values():
            if attempt.is_approved and attempt.session.topic == topic:
                return attempt
        return None

    def assign_session(self, attempt_id: str, session: WalletSession) -> bool:
        """Set the session of a still-pending attempt; False if gone or already approved."""
        attempt = self._attempts.get(attempt_id)
        if attempt is None or attempt.is_approved:
            return False
        attempt.session = session
        return True

    def replace_session(self, attempt_id: str, session: WalletSession) -> bool:
        """Swap an approved attempt's session for a newer version of it."""
        attempt = self._attempts.get(attempt_id)
        if attempt is None or not attempt.is_approved:
            return False
        attempt.session = session
        return True

    def add_eviction_listener(self, listener: EvictionListener) -> None:
        self._listeners.append(listener)

    def sweep(self) -> List[PairingAttempt]:
        """Remove every attempt older than the TTL, approved or not."""
        now = self.now()
        stale = [
            attempt_id
            for attempt_id, attempt in self._attempts.items()
            if now - attempt.created_at > self.ttl_seconds
        ]
        removed = [self._attempts.pop(attempt_id) for attempt_id in stale]
        for attempt in removed:
            for listener in self._listeners:
                try:
                    listener(attempt)
                except Exception:
                    logger.exception("Pairing eviction listener failed for %s", attempt.id)
        if removed:
            logger.info("Swept %d expired pairing(s), %d remaining", len(removed), len(self._attempts))
        return removed

    def start_sweeper(self, interval_seconds: float = 60) -> None:
        if self._sweeper is not None and not self._sweeper.done():
            return
        self._sweeper = asyncio.create_task(self._sweep_loop(interval_seconds))

    async def stop_sweeper(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None

    async def _sweep_loop(self, interval_seconds: float) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            self.sweep()

    def __len__(self) -> int:
        return len(self._attempts)

    def __contains__(self, attempt_id: object) -> bool:
        return attempt_id in self._attempts
