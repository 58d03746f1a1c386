"""FastAPI dependencies for the authenticated caller.

The bearer token is the only source of identity: ``sub`` becomes the caller
id and ``role`` the caller role.
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError
from pydantic import ValidationError

from coursetrack.auth.permissions import UserRole, has_role
from coursetrack.auth.schemas import AuthenticatedCaller
from coursetrack.auth.security import decode_access_token
from coursetrack.core.context import set_caller


def get_token_from_header(request: Request) -> str | None:
    """Extract the Bearer token from the Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None

    expected_parts = 2
    parts = auth_header.split()
    if len(parts) != expected_parts or parts[0].lower() != "bearer":
        return None

    return parts[1]


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def caller_from_token(token: str) -> AuthenticatedCaller:
    """Build the caller from a token, raising 401 on any defect."""
    try:
        payload = decode_access_token(token)
        caller = AuthenticatedCaller(
            id=payload["sub"],
            email=payload["email"],
            role=payload["role"],
        )
    except (JWTError, ValidationError) as e:
        raise _unauthorized("Invalid or expired token") from e

    set_caller(caller.id, caller.role.value)
    return caller


async def get_current_caller(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> AuthenticatedCaller:
    """Main authentication dependency.

    Raises:
        HTTPException(401): If the token is missing, invalid or expired
    """
    if not token:
        raise _unauthorized("Access token not provided")
    return caller_from_token(token)


async def get_current_caller_optional(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> AuthenticatedCaller | None:
    """Caller for endpoints that also serve anonymous requests.

    A present but invalid token is still rejected.
    """
    if not token:
        return None
    return caller_from_token(token)


def require_role(required_role: UserRole):
    """Create a dependency admitting only callers with ``required_role``.

    Example:
        @router.post("")
        async def create(
            caller: Annotated[
                AuthenticatedCaller, Depends(require_role(UserRole.TEACHER))
            ],
        ): ...
    """

    async def role_checker(
        caller: Annotated[AuthenticatedCaller, Depends(get_current_caller)],
    ) -> AuthenticatedCaller:
        if not has_role(caller.role, required_role):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Only {required_role.value}s can perform this action",
            )
        return caller

    return role_checker


# ==============================================================================
# Type Aliases for Cleaner Code
# ==============================================================================

CurrentUser = Annotated[AuthenticatedCaller, Depends(get_current_caller)]
OptionalUser = Annotated[
    AuthenticatedCaller | None, Depends(get_current_caller_optional)
]
TeacherUser = Annotated[AuthenticatedCaller, Depends(require_role(UserRole.TEACHER))]
StudentUser = Annotated[AuthenticatedCaller, Depends(require_role(UserRole.STUDENT))]
