"""
Profile Ledger Store
====================

Authoritative key-value store of credit profiles, keyed by subject.

The store owns:
- one ``CreditProfile`` snapshot per bound subject
- the identity hash -> subject index (an identity binds one subject)
- the set of consumed proof nullifiers
- a hash-chained event log per subject
- one ``asyncio.Lock`` per subject with writers in flight, used by the engine
  to serialize writers and dropped once the last writer leaves

``commit`` writes profile, event and nullifier together or not at all.
Reads return private copies of the stored snapshots and never take a lock.

Version: 0.1.0
"""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

from credlink.errors import AlreadyBound, ReplayedProof
from credlink.logging import get_logger
from credlink.models.profile import CreditProfile, ScoreEvent


logger = get_logger(__name__)


class StaleWriteError(RuntimeError):
    """A commit was built from an outdated profile snapshot."""


@dataclass
class _SubjectLock:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    holders: int = 0


class ProfileStore(ABC):
    """Abstract profile ledger."""

    @abstractmethod
    def lock(self, subject: str) -> AbstractAsyncContextManager[None]:
        """Hold the writer lock for a subject."""
        ...

    @abstractmethod
    async def get(self, subject: str) -> CreditProfile | None:
        """Current profile snapshot, or None if the subject is unbound."""
        ...

    @abstractmethod
    async def subject_for_identity(self, identity_hash: str) -> str | None:
        """Subject an identity hash is bound to."""
        ...

    @abstractmethod
    async def is_consumed(self, nullifier: int) -> bool:
        """Check whether a proof nullifier was already used."""
        ...

    @abstractmethod
    async def commit(
        self,
        profile: CreditProfile,
        event: ScoreEvent,
        nullifier: int | None = None,
    ) -> ScoreEvent:
        """
        Atomically store a new profile snapshot with its event.

        Args:
            profile: New snapshot; its nonce must follow the stored one
            event: Event describing the change
            nullifier: Proof nullifier to consume, if any

        Returns:
            The event as chained into the subject's log

        Raises:
            ReplayedProof: If the nullifier is already consumed
            AlreadyBound: If the profile's identity hash is bound elsewhere
            StaleWriteError: If the nonce does not follow the stored one
        """
        ...

    @abstractmethod
    async def get_events(self, subject: str, limit: int = 100) -> list[ScoreEvent]:
        """Events for a subject, newest first."""
        ...

    @abstractmethod
    async def verify_chain(self, subject: str) -> bool:
        """Check the hash chain of a subject's event log."""
        ...

    @abstractmethod
    async def health_check(self) -> dict[str, Any]:
        ...


class InMemoryProfileStore(ProfileStore):
    """
    In-memory profile ledger.

    Data is stored in memory and lost on restart.
    """

    def __init__(self) -> None:
        self._profiles: dict[str, CreditProfile] = {}
        self._identities: dict[str, str] = {}
        self._nullifiers: set[int] = set()
        self._events: dict[str, list[ScoreEvent]] = {}
        self._locks: dict[str, _SubjectLock] = {}

        logger.debug("profile_store_initialized")

    @asynccontextmanager
    async def lock(self, subject: str) -> AsyncIterator[None]:
        entry = self._locks.get(subject)
        if entry is None:
            entry = self._locks[subject] = _SubjectLock()
        entry.holders += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.holders -= 1
            if entry.holders == 0 and self._locks.get(subject) is entry:
                del self._locks[subject]

    async def get(self, subject: str) -> CreditProfile | None:
        profile = self._profiles.get(subject)
        return profile.model_copy(deep=True) if profile is not None else None

    async def subject_for_identity(self, identity_hash: str) -> str | None:
        return self._identities.get(identity_hash)

    async def is_consumed(self, nullifier: int) -> bool:
        return nullifier in self._nullifiers

    async def commit(
        self,
        profile: CreditProfile,
        event: ScoreEvent,
        nullifier: int | None = None,
    ) -> ScoreEvent:
        subject = profile.subject
        current = self._profiles.get(subject)

        # Every check runs before the first write
        if nullifier is not None and nullifier in self._nullifiers:
            raise ReplayedProof("Proof nullifier already consumed", subject=subject)

        owner = self._identities.get(profile.identity_hash)
        if owner is not None and owner != subject:
            raise AlreadyBound("Identity hash is bound to another subject", subject=subject)

        expected_nonce = 0 if current is None else current.nonce + 1
        if profile.nonce != expected_nonce or event.subject != subject:
            raise StaleWriteError(
                f"Stale write for {subject}: nonce {profile.nonce}, expected {expected_nonce}"
            )

        log = self._events.setdefault(subject, [])
        chained = event.chained(log[-1].event_hash if log else None)

        self._profiles[subject] = profile.model_copy(deep=True)
        self._identities[profile.identity_hash] = subject
        if nullifier is not None:
            self._nullifiers.add(nullifier)
        log.append(chained)

        logger.debug(
            "profile_committed",
            subject=subject,
            reason=chained.reason.value,
            nonce=profile.nonce,
            score=profile.score,
            event_hash=chained.event_hash,
        )

        return chained

    async def get_events(self, subject: str, limit: int = 100) -> list[ScoreEvent]:
        if limit <= 0:
            return []
        return list(reversed(self._events.get(subject, [])[-limit:]))

    async def verify_chain(self, subject: str) -> bool:
        previous_hash: str | None = None
        for event in self._events.get(subject, []):
            if event.previous_hash != previous_hash:
                return False
            if event.event_hash != event.compute_hash(previous_hash):
                return False
            previous_hash = event.event_hash
        return True

    async def health_check(self) -> dict[str, Any]:
        return {
            "status": "healthy",
            "backend": "memory",
            **self.get_stats(),
        }

    def clear_all(self) -> None:
        """Clear all stored data (for testing)."""
        self._profiles.clear()
        self._identities.clear()
        self._nullifiers.clear()
        self._events.clear()
        self._locks.clear()
        logger.info("profile_store_cleared")

    def get_stats(self) -> dict[str, int]:
        """Get storage statistics."""
        return {
            "profiles": len(self._profiles),
            "identities": len(self._identities),
            "consumed_nullifiers": len(self._nullifiers),
            "events": sum(len(log) for log in self._events.values()),
        }


# =============================================================================
# Global Store Instance
# =============================================================================

_store: ProfileStore | None = None


def get_profile_store() -> ProfileStore:
    """
    Get the global profile store.

    Returns:
        ProfileStore instance
    """
    global _store

    if _store is None:
        _store = InMemoryProfileStore()
        logger.info("profile_store_created", backend="memory")

    return _store


def set_profile_store(store: ProfileStore) -> None:
    """Set a custom profile store (for testing)."""
    global _store
    _store = store


def reset_profile_store() -> None:
    """Reset the global profile store."""
    global _store
    _store = None
