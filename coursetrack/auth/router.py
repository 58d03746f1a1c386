"""User API endpoints."""

from collections.abc import Callable
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from coursetrack.auth.dependencies import CurrentUser
from coursetrack.auth.schemas import CreateUserRequest, UserResponse
from coursetrack.auth.service import UserError, UserNotFoundError, UserService


router = APIRouter(prefix="/v1/users", tags=["users"])


# ==============================================================================
# Dependency for UserService
# ==============================================================================

_user_service_getter: Callable[[], UserService] | None = None


def set_user_service_getter(getter: Callable[[], UserService]) -> None:
    """Set the user service getter function (called by main.py)."""
    global _user_service_getter  # noqa: PLW0603 - Required for DI pattern
    _user_service_getter = getter


def get_user_service() -> UserService:
    if _user_service_getter is None:
        raise RuntimeError(
            "UserService not configured - call set_user_service_getter first"
        )
    return _user_service_getter()


UserServiceDep = Annotated[UserService, Depends(get_user_service)]


def handle_user_error(error: UserError) -> HTTPException:
    """Convert UserError to HTTPException."""
    status_map = {
        "user_exists": status.HTTP_409_CONFLICT,
        "user_not_found": status.HTTP_404_NOT_FOUND,
    }
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail=error.message,
    )


# ==============================================================================
# Endpoints
# ==============================================================================


@router.post(
    "",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create user",
)
async def create_user(
    data: CreateUserRequest,
    user_service: UserServiceDep,
) -> UserResponse:
    """Register a student or teacher account.

    The role chosen here is permanent.
    """
    try:
        user = await user_service.create_user(data)
    except UserError as e:
        raise handle_user_error(e) from e
    return UserResponse.from_user(user)


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Current user profile",
)
async def get_me(
    caller: CurrentUser,
    user_service: UserServiceDep,
) -> UserResponse:
    user = await user_service.get_user(caller.id)
    if not user:
        raise handle_user_error(UserNotFoundError())
    return UserResponse.from_user(user)
