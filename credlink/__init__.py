"""
CredLink Core Library
=====================

Private credit attestation: predicate circuits, proof envelopes and the
scoring ledger that consumes their verdicts.

Modules:
    - config: Configuration management with Pydantic Settings
    - logging: Structured logging with structlog
    - auth: Capability tokens for admin, verifier and lending-pool roles
    - zk: Comparator, predicate circuits, proving backends, prover, verifier
    - ledger: Per-subject profile store with per-key locking
    - scoring: Scoring policy, engine and attestation gateway
    - models: Shared Pydantic response models

Version: 0.1.0
"""

__version__ = "0.1.0"
__author__ = "CredLink Team"

from credlink.config import settings
from credlink.logging import get_logger, setup_logging

__all__ = [
    "settings",
    "get_logger",
    "setup_logging",
    "__version__",
]
