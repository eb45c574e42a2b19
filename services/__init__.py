"""
CredLink Services
=================

HTTP services for the CredLink credit attestation platform.

Services:
- attestation: proof generation, identity binding, attestation submission,
  lending pool hooks and profile queries
"""

__all__ = [
    "attestation",
]
