"""
FastAPI Capability Dependencies
===============================

Dependency injection for route protection.

Version: 0.1.0
"""

from collections.abc import Awaitable, Callable
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from credlink.auth.capabilities import Role, require_capability
from credlink.errors import Unauthorized
from credlink.logging import get_logger


logger = get_logger(__name__)

# Bearer scheme for token extraction from Authorization header
bearer_scheme = HTTPBearer(auto_error=False)


async def get_capability_token(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> str:
    """
    Extract the bearer capability token.

    Raises:
        HTTPException: 401 if no token was sent
    """
    if credentials is None:
        logger.warning("capability_token_missing")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing capability token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return credentials.credentials


def require_role(role: Role) -> Callable[[str], Awaitable[str]]:
    """
    Create a dependency that requires a capability role.

    The raw token is returned so routes can hand it to the engine, which
    checks it again.

    Usage:
        @router.post("/bind")
        async def bind(token: str = Depends(require_role(Role.ADMIN))):
            ...
    """

    async def role_checker(
        token: Annotated[str, Depends(get_capability_token)],
    ) -> str:
        try:
            require_capability(token, role)
        except Unauthorized as e:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=e.message,
            ) from e
        return token

    return role_checker


# Common role dependencies
require_admin = require_role(Role.ADMIN)
require_lending_pool = require_role(Role.LENDING_POOL)
