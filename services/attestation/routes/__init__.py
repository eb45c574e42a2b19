"""
Attestation Service Routes
==========================

API route handlers for the attestation service.
"""

from services.attestation.routes import attestations, identity, loans, profiles, proofs


__all__ = ["attestations", "identity", "loans", "profiles", "proofs"]
