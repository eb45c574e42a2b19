"""
Profile Ledger
==============

Per-subject profile storage with atomic commits and replay tracking.
"""

from credlink.ledger.store import (
    InMemoryProfileStore,
    ProfileStore,
    StaleWriteError,
    get_profile_store,
    reset_profile_store,
    set_profile_store,
)

__all__ = [
    "InMemoryProfileStore",
    "ProfileStore",
    "StaleWriteError",
    "get_profile_store",
    "reset_profile_store",
    "set_profile_store",
]
