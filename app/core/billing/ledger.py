"""
Consumed-payment set.

A payment transaction may fund exactly one on-chain effect for the life
of the process. ``claim`` is the single check-and-set: it never awaits,
so two concurrent completions of the same hash cannot both win it.
"""

import logging
from typing import Set

logger = logging.getLogger(__name__)


class ConsumedPayments:
    """Payment hashes that have already been spent on an action."""

    def __init__(self) -> None:
        self._used: Set[str] = set()

    @staticmethod
    def _key(tx_hash: str) -> str:
        return tx_hash.strip().lower()

    def is_consumed(self, tx_hash: str) -> bool:
        return self._key(tx_hash) in self._used

    def claim(self, tx_hash: str) -> bool:
        """Mark ``tx_hash`` consumed; False if it already was."""
        key = self._key(tx_hash)
        if key in self._used:
            return False
        self._used.add(key)
        logger.info("Payment %s consumed", key)
        return True

    def __contains__(self, tx_hash: object) -> bool:
        return isinstance(tx_hash, str) and self.is_consumed(tx_hash)

    def __len__(self) -> int:
        return len(self._used)
