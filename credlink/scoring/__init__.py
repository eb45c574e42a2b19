"""
Credit Scoring
==============

Scoring policy, the profile state machine and the attestation gateway.

Components:
- ScoringPolicy: tier breakpoints, deltas, threshold floors
- ScoringEngine: the only writer of credit profiles
- AttestationGateway: verify-then-apply entry points for callers
"""

from credlink.scoring.engine import ScoreUpdate, ScoringEngine
from credlink.scoring.gateway import AttestationGateway
from credlink.scoring.policy import (
    ScoringPolicy,
    attestation_badge,
    collateral_for_amount,
)

__all__ = [
    "AttestationGateway",
    "ScoreUpdate",
    "ScoringEngine",
    "ScoringPolicy",
    "attestation_badge",
    "collateral_for_amount",
]
