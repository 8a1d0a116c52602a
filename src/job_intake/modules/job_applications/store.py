"""
Verification Store

Process-local registry of email -> VerificationEntry. It is the sole owner of
verification-code lifecycle state.

Every read or write first sweeps out expired entries; there is no background
timer. Operations never await, so within one event loop they run to
completion without interleaving and need no lock.

This store does not survive restarts and is not shared between workers. A
multi-instance deployment would need a shared expiring key-value store with
the same TTL and attempt semantics.
"""

import logging
from collections.abc import Callable
from datetime import UTC, datetime

from .models import VerificationEntry

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class VerificationStore:
    """In-memory email -> VerificationEntry map with opportunistic expiry."""

    def __init__(self, clock: Callable[[], datetime] = _utcnow):
        self._clock = clock
        self._entries: dict[str, VerificationEntry] = {}

    def now(self) -> datetime:
        """Current time according to the store's clock."""
        return self._clock()

    def sweep(self) -> int:
        """
        Delete every entry whose expiry has passed.

        Returns:
            Number of entries removed
        """
        now = self.now()
        expired = [email for email, entry in self._entries.items() if entry.is_expired(now)]
        for email in expired:
            del self._entries[email]

        if expired:
            logger.debug(f"Swept {len(expired)} expired verification entries")
        return len(expired)

    def get(self, email: str) -> VerificationEntry | None:
        """Return the live entry for an email, or None."""
        self.sweep()
        return self._entries.get(email)

    def peek(self, email: str) -> VerificationEntry | None:
        """Return the entry for an email even if it has expired, without sweeping."""
        return self._entries.get(email)

    def set(self, entry: VerificationEntry) -> None:
        """Store an entry, replacing any existing one for the same email."""
        self.sweep()
        self._entries[entry.email] = entry

    def delete(self, email: str) -> bool:
        """Remove the entry for an email. Returns False if there was none."""
        self.sweep()
        return self._entries.pop(email, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, email: object) -> bool:
        return email in self._entries


# Process-wide store used by the API
verification_store = VerificationStore()


def get_verification_store() -> VerificationStore:
    """
    FastAPI dependency returning the process-wide verification store.

    Usage:
        @router.post("/verify")
        async def verify(store: VerificationStore = Depends(get_verification_store)):
            ...
    """
    return verification_store
