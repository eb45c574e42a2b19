"""
Error Taxonomy
==============

Typed failures raised by the circuits, the verifier and the scoring engine.
Every error carries a stable ``code`` that the HTTP layer maps to a status.

Version: 0.1.0
"""


class CredLinkError(Exception):
    """Base exception for the attestation core."""

    code = "credlink_error"

    def __init__(self, message: str, *, subject: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.subject = subject


class RangeError(CredLinkError, ValueError):
    """Input does not fit the circuit's fixed bit width."""

    code = "range_error"


class ConstraintError(CredLinkError, ValueError):
    """Witness cannot satisfy a circuit constraint; no proof exists for it."""

    code = "constraint_unsatisfiable"


class InvalidInput(CredLinkError, ValueError):
    """Subject or identity hash is blank."""

    code = "invalid_input"


class InvalidProof(CredLinkError):
    """Proof failed verification or carries a false verdict."""

    code = "invalid_proof"


class MalformedProof(InvalidProof):
    """Proof triple or public signals could not be decoded."""

    code = "malformed_proof"


class ReplayedProof(CredLinkError):
    """Proof nullifier was already consumed."""

    code = "replayed_proof"


class AlreadyBound(CredLinkError):
    """Subject or identity hash is already bound."""

    code = "already_bound"


class NotBound(CredLinkError):
    """Subject has no bound identity."""

    code = "not_bound"


class Unauthorized(CredLinkError):
    """Capability token is missing, invalid, or lacks the required role."""

    code = "unauthorized"


class LoanAccountingError(CredLinkError, ValueError):
    """Loan hook would break repaid + defaulted <= total."""

    code = "loan_accounting_error"


class DegenerateInputWarning(UserWarning):
    """A rate proof over an empty loan history; accepted but never rewarded."""
