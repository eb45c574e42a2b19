"""
Capability Tokens
=================

Signed JWT capabilities that gate ledger mutations. A capability names its
holder and the roles it carries; the scoring engine checks the role on
every mutating call instead of trusting ambient caller context.

Roles:
- admin:        bind identities
- verifier:     apply verified proof results
- lending_pool: record loans, repayments and liquidations

Version: 0.1.0
"""

from datetime import UTC, datetime, timedelta
from enum import Enum

from jose import JWTError, jwt
from pydantic import BaseModel, Field, ValidationError

from credlink.config import settings
from credlink.errors import Unauthorized
from credlink.logging import get_logger


logger = get_logger(__name__)

TOKEN_TYPE = "capability"


class Role(str, Enum):
    """Ledger roles."""

    ADMIN = "admin"
    VERIFIER = "verifier"
    LENDING_POOL = "lending_pool"


class Capability(BaseModel):
    """Decoded capability token payload."""

    sub: str = Field(..., description="Capability holder")
    roles: list[Role] = Field(default_factory=list)
    exp: datetime = Field(..., description="Expiration time")
    iat: datetime = Field(default_factory=lambda: datetime.now(UTC), description="Issued at")

    def has_role(self, role: Role) -> bool:
        return role in self.roles


def issue_capability(
    holder: str,
    roles: list[Role],
    expires_delta: timedelta | None = None,
) -> str:
    """
    Create a signed capability token.

    Args:
        holder: Name of the component or operator holding the capability
        roles: Roles granted
        expires_delta: Custom expiration time (default from settings)

    Returns:
        str: Encoded JWT
    """
    now = datetime.now(UTC)
    expire = now + (expires_delta or timedelta(minutes=settings.capability.expire_minutes))

    token = jwt.encode(
        {
            "sub": holder,
            "roles": [Role(r).value for r in roles],
            "exp": expire,
            "iat": now,
            "token_type": TOKEN_TYPE,
        },
        settings.capability.secret_key.get_secret_value(),
        algorithm=settings.capability.algorithm,
    )

    logger.debug(
        "capability_issued",
        holder=holder,
        roles=[Role(r).value for r in roles],
        expires_at=expire.isoformat(),
    )

    return token


def decode_capability(token: str) -> Capability | None:
    """
    Decode and validate a capability token.

    Returns:
        Capability, or None if the token is invalid, expired or not a
        capability token
    """
    try:
        payload = jwt.decode(
            token,
            settings.capability.secret_key.get_secret_value(),
            algorithms=[settings.capability.algorithm],
        )
    except JWTError as e:
        logger.warning("capability_decode_failed", error=str(e))
        return None

    if payload.get("token_type") != TOKEN_TYPE:
        logger.warning("capability_type_mismatch", actual=payload.get("token_type"))
        return None

    try:
        return Capability(
            sub=payload["sub"],
            roles=payload.get("roles", []),
            exp=datetime.fromtimestamp(payload["exp"], tz=UTC),
            iat=datetime.fromtimestamp(payload.get("iat", 0), tz=UTC),
        )
    except (KeyError, ValidationError) as e:
        logger.warning("capability_payload_invalid", error=str(e))
        return None


def require_capability(token: str | None, role: Role) -> Capability:
    """
    Check that a token carries a role.

    Raises:
        Unauthorized: If the token is missing, invalid, or lacks the role
    """
    if not token:
        raise Unauthorized(f"Missing capability for role '{role.value}'")

    capability = decode_capability(token)
    if capability is None:
        raise Unauthorized("Invalid capability token")

    if not capability.has_role(role):
        logger.warning(
            "capability_role_missing",
            holder=capability.sub,
            required_role=role.value,
        )
        raise Unauthorized(f"Capability lacks role '{role.value}'")

    return capability
