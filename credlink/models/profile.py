"""
Credit Profile Models
=====================

Per-subject credit profile and the score events that mutate it.

Profiles are immutable snapshots. The scoring engine derives a new snapshot
for every mutation and the ledger store swaps it in together with the event
and, for attestations, the consumed nullifier.

Tier table (tier -> collateral ratio):
- 0 Bronze:   150%
- 1 Silver:   135%
- 2 Gold:     125%
- 3 Platinum: 110%

Version: 0.1.0
"""

import hashlib
import json
import uuid
from datetime import UTC, datetime
from enum import Enum
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from credlink.zk.models import PredicateKind


MAX_SCORE = 1000

# Collateral ratio per tier in basis points
TIER_TABLE_BPS = MappingProxyType({0: 15000, 1: 13500, 2: 12500, 3: 11000})

TIER_NAMES = MappingProxyType({0: "Bronze", 1: "Silver", 2: "Gold", 3: "Platinum"})

_ratios = [TIER_TABLE_BPS[t] for t in sorted(TIER_TABLE_BPS)]
if any(higher > lower for lower, higher in zip(_ratios, _ratios[1:])):
    raise RuntimeError("TIER_TABLE_BPS must not increase with tier")
del _ratios


class CreditProfile(BaseModel):
    """Credit record for one bound subject."""

    model_config = ConfigDict(frozen=True)

    subject: str
    identity_hash: str

    score: int = Field(..., ge=0, le=MAX_SCORE)
    tier: int = Field(..., ge=0, le=max(TIER_TABLE_BPS))
    collateral_ratio_bps: int

    # Loan accounting, maintained by the lending pool hooks
    total_loans: int = Field(default=0, ge=0)
    repaid_loans: int = Field(default=0, ge=0)
    defaulted_loans: int = Field(default=0, ge=0)

    # Bumped on every committed mutation
    nonce: int = Field(default=0, ge=0)

    # Accepted attestations per predicate kind
    attestation_counts: dict[str, int] = Field(default_factory=dict)

    bound_at: datetime
    last_updated: datetime

    @model_validator(mode="after")
    def check_invariants(self) -> "CreditProfile":
        if self.collateral_ratio_bps != TIER_TABLE_BPS[self.tier]:
            raise ValueError(
                f"collateral_ratio_bps {self.collateral_ratio_bps} does not match tier {self.tier}"
            )
        if self.repaid_loans + self.defaulted_loans > self.total_loans:
            raise ValueError("repaid_loans + defaulted_loans exceeds total_loans")
        return self

    @property
    def tier_name(self) -> str:
        return TIER_NAMES[self.tier]

    @property
    def outstanding_loans(self) -> int:
        return self.total_loans - self.repaid_loans - self.defaulted_loans

    @property
    def attestation_count(self) -> int:
        return sum(self.attestation_counts.values())

    def evolve(self, **changes: Any) -> "CreditProfile":
        """Return a validated copy with ``changes`` applied."""
        return self.__class__(**{**self.model_dump(), **changes})


class EventReason(str, Enum):
    """Why a profile changed."""

    IDENTITY_BOUND = "identity_bound"
    ATTESTATION = "attestation"
    DEGENERATE_ATTESTATION = "degenerate_attestation"
    ATTESTATION_LIMIT_REACHED = "attestation_limit_reached"
    LOAN_RECORDED = "loan_recorded"
    LOAN_REPAID = "loan_repaid"
    LOAN_LIQUIDATED = "loan_liquidated"


class ScoreEvent(BaseModel):
    """
    One committed profile mutation.

    Events are hash-chained per subject: ``event_hash`` covers the event
    body and ``previous_hash``.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: f"event:{uuid.uuid4()}")
    subject: str
    reason: EventReason

    previous_score: int
    new_score: int
    applied_delta: int
    previous_tier: int
    new_tier: int

    predicate_kind: PredicateKind | None = None
    nullifier: str | None = None

    nonce: int
    timestamp: datetime

    previous_hash: str | None = None
    event_hash: str | None = None

    def compute_hash(self, previous_hash: str | None) -> str:
        body = self.model_dump(mode="json", exclude={"previous_hash", "event_hash"})
        body["previous_hash"] = previous_hash
        return hashlib.sha256(json.dumps(body, sort_keys=True).encode()).hexdigest()

    def chained(self, previous_hash: str | None) -> "ScoreEvent":
        """Return a copy linked after ``previous_hash``."""
        return self.model_copy(
            update={
                "previous_hash": previous_hash,
                "event_hash": self.compute_hash(previous_hash),
            }
        )
