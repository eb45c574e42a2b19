"""
Capability Authorization
========================

Signed capability tokens and FastAPI dependencies.
"""

from credlink.auth.capabilities import (
    Capability,
    Role,
    decode_capability,
    issue_capability,
    require_capability,
)

__all__ = [
    "Capability",
    "Role",
    "decode_capability",
    "issue_capability",
    "require_capability",
]
