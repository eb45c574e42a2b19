"""
ZK-SNARK Data Models
====================

Pydantic models for proofs, public signals, envelopes and verification
results.

Public signals travel as a fixed positional array ``[threshold, nullifier,
valid, degenerate]`` (layout version 2). Inside the library they are the named
``PublicSignals`` model; translation happens only at the wire boundary.

Version: 0.1.0
"""

import hashlib
from collections.abc import Sequence
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from credlink.errors import MalformedProof


# BN254 scalar field order
BN254_FIELD_ORDER = 21888242871839275222246405745257275088548364400416034343698204186575808495617

SIGNAL_LAYOUT_VERSION = 2
SIGNAL_COUNT = 4


def hash_to_field(*parts: str) -> int:
    """
    Hash string parts to a BN254 field element.

    Uses SHA-256 over the ``:``-joined parts and reduces mod field order.
    """
    digest = hashlib.sha256(":".join(parts).encode()).digest()
    return int.from_bytes(digest, "big") % BN254_FIELD_ORDER


def normalize_subject(subject: str) -> str:
    """Canonical subject key; wallet addresses are case-insensitive."""
    return subject.strip().lower()


def subject_hash(subject: str) -> str:
    """Field element a proof is bound to, as a decimal string."""
    return str(hash_to_field("subject", normalize_subject(subject)))


def _field_element(value: Any) -> str:
    """Normalize an int, decimal string or 0x-hex string to a decimal string."""
    if isinstance(value, bool):
        raise ValueError("boolean is not a field element")
    if isinstance(value, int):
        number = value
    elif isinstance(value, str):
        text = value.strip()
        number = int(text, 16) if text.lower().startswith("0x") else int(text, 10)
    else:
        raise ValueError(f"unsupported field element type {type(value).__name__}")
    if number < 0 or number >= BN254_FIELD_ORDER:
        raise ValueError("field element out of range")
    return str(number)


class PredicateKind(str, Enum):
    """Financial predicates a borrower can attest to."""

    WALLET_AGE = "wallet_age"
    REPAYMENT = "repayment"
    DEFAULT_RATIO = "default_ratio"


def derive_nullifier(
    kind: PredicateKind,
    subject: str,
    threshold: int,
    degenerate: bool = False,
) -> int:
    """
    Nullifier for one statement about one subject.

    Deterministic in (kind, subject, threshold, degenerate): proving the
    same fact twice yields the same nullifier, so the ledger credits it
    once. The subject hash is folded in, which binds the proof to its
    subject on any backend that checks public signals.
    """
    return hash_to_field(
        "nullifier",
        kind.value,
        subject_hash(subject),
        str(threshold),
        str(int(degenerate)),
    )


class ZKProof(BaseModel):
    """
    A zero-knowledge proof.

    Compatible with snarkjs Groth16 proof format.
    """

    # Proof points (G1 and G2 elements)
    pi_a: list[str] = Field(..., description="Proof point A (G1)")
    pi_b: list[list[str]] = Field(..., description="Proof point B (G2)")
    pi_c: list[str] = Field(..., description="Proof point C (G1)")

    # Protocol info
    protocol: str = Field(default="groth16")
    curve: str = Field(default="bn128")

    @field_validator("pi_a", "pi_c", mode="before")
    @classmethod
    def validate_g1(cls, v: Any) -> list[str]:
        if not isinstance(v, Sequence) or isinstance(v, str) or len(v) != 3:
            raise ValueError("G1 point must have 3 projective coordinates")
        return [_field_element(x) for x in v]

    @field_validator("pi_b", mode="before")
    @classmethod
    def validate_g2(cls, v: Any) -> list[list[str]]:
        if not isinstance(v, Sequence) or isinstance(v, str) or len(v) != 3:
            raise ValueError("G2 point must have 3 projective coordinates")
        points = []
        for pair in v:
            if not isinstance(pair, Sequence) or isinstance(pair, str) or len(pair) != 2:
                raise ValueError("G2 coordinate must be a pair")
            points.append([_field_element(x) for x in pair])
        return points

    @classmethod
    def from_triple(
        cls,
        a: Sequence[Any],
        b: Sequence[Sequence[Any]],
        c: Sequence[Any],
    ) -> "ZKProof":
        """Build from the affine ``(a, b, c)`` triple a verifier contract takes."""
        if len(a) != 2 or len(c) != 2 or len(b) != 2 or any(len(row) != 2 for row in b):
            raise ValueError("proof triple must be a[2], b[2][2], c[2]")
        return cls(
            pi_a=[a[0], a[1], "1"],
            pi_b=[[b[0][0], b[0][1]], [b[1][0], b[1][1]], ["1", "0"]],
            pi_c=[c[0], c[1], "1"],
        )

    def to_triple(self) -> tuple[list[int], list[list[int]], list[int]]:
        """Affine ``(a, b, c)`` triple as integers."""
        return (
            [int(self.pi_a[0]), int(self.pi_a[1])],
            [
                [int(self.pi_b[0][0]), int(self.pi_b[0][1])],
                [int(self.pi_b[1][0]), int(self.pi_b[1][1])],
            ],
            [int(self.pi_c[0]), int(self.pi_c[1])],
        )

    def to_calldata(self) -> list[int]:
        """Convert to Solidity calldata format (8 uint256)."""
        a, b, c = self.to_triple()
        return [*a, *b[0], *b[1], *c]


class PublicSignals(BaseModel):
    """Named view of a predicate proof's public signals."""

    model_config = ConfigDict(frozen=True)

    version: int = SIGNAL_LAYOUT_VERSION
    threshold: int = Field(..., ge=0, description="Public threshold, days or percent")
    nullifier: int = Field(..., ge=0, lt=BN254_FIELD_ORDER, description="Single-use proof tag")
    valid: bool = Field(..., description="Predicate verdict")
    degenerate: bool = Field(default=False, description="Witness had an empty loan history")

    def to_positional(self) -> list[int]:
        """Wire layout ``[threshold, nullifier, valid, degenerate]``."""
        return [self.threshold, self.nullifier, int(self.valid), int(self.degenerate)]

    def to_strings(self) -> list[str]:
        """Wire layout as decimal strings (snarkjs public.json)."""
        return [str(s) for s in self.to_positional()]

    @classmethod
    def from_positional(
        cls,
        signals: Sequence[Any],
        version: int = SIGNAL_LAYOUT_VERSION,
    ) -> "PublicSignals":
        """
        Decode the positional wire layout.

        Raises:
            MalformedProof: On wrong length, non-integer entries, an
                out-of-field value, or a verdict or degenerate flag other
                than 0/1
        """
        if version != SIGNAL_LAYOUT_VERSION:
            raise MalformedProof(f"Unsupported public signal layout version {version}")
        if isinstance(signals, (str, bytes)) or not isinstance(signals, Sequence):
            raise MalformedProof("Public signals must be a sequence")
        if len(signals) != SIGNAL_COUNT:
            raise MalformedProof(
                f"Expected {SIGNAL_COUNT} public signals, got {len(signals)}"
            )

        try:
            threshold, nullifier, verdict, degenerate = (
                int(_field_element(s)) for s in signals
            )
        except ValueError as e:
            raise MalformedProof(f"Invalid public signal: {e}") from e

        if verdict not in (0, 1):
            raise MalformedProof(f"Verdict signal must be 0 or 1, got {verdict}")
        if degenerate not in (0, 1):
            raise MalformedProof(f"Degenerate signal must be 0 or 1, got {degenerate}")

        return cls(
            version=version,
            threshold=threshold,
            nullifier=nullifier,
            valid=bool(verdict),
            degenerate=bool(degenerate),
        )


class ProofMetadata(BaseModel):
    """Prover-side metadata about a generated proof. Not trusted by the ledger."""

    predicate_kind: PredicateKind
    circuit_name: str
    generated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    proving_time_ms: int = Field(..., ge=0)

    # Subject binding
    subject_hash: str

    # Witness had an empty loan history
    degenerate: bool = False


class ProofEnvelope(BaseModel):
    """Complete proof with public signals, metadata and the subject it binds."""

    proof: ZKProof
    public_signals: PublicSignals
    metadata: ProofMetadata
    subject: str

    @property
    def predicate_kind(self) -> PredicateKind:
        return self.metadata.predicate_kind

    @property
    def nullifier(self) -> int:
        return self.public_signals.nullifier

    @property
    def valid(self) -> bool:
        """Claimed verdict; only meaningful after verification."""
        return self.public_signals.valid

    def to_wire(self) -> dict[str, Any]:
        """Positional form accepted by the attestation gateway."""
        a, b, c = self.proof.to_triple()
        return {
            "a": a,
            "b": b,
            "c": c,
            "public_signals": self.public_signals.to_positional(),
            "subject": self.subject,
            "predicate_kind": self.predicate_kind.value,
        }


class ProofResult(BaseModel):
    """Result of proof verification, consumed once by the scoring engine."""

    model_config = ConfigDict(frozen=True)

    predicate_kind: PredicateKind
    subject: str
    public_signals: PublicSignals

    # Backend accepted the proof
    proof_verified: bool

    # Proof verified and the verdict signal is true
    valid: bool

    # Verified degenerate signal: the witness had an empty loan history
    degenerate: bool = False

    verified_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    verification_time_ms: int = Field(..., ge=0)

    # Error info
    error: str | None = None

    @property
    def nullifier(self) -> int:
        return self.public_signals.nullifier

    @property
    def public_inputs(self) -> list[int]:
        return self.public_signals.to_positional()
