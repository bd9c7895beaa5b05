"""User API endpoints.

Provides:
- POST /users/register - create a customer account
- POST /users/login - issue an access token and merge the anonymous cart
"""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from vedashop.api.deps import get_session_id, get_user_service
from vedashop.api.schemas import (
    ErrorResponse,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    UserResponse,
)
from vedashop.application.user_service import UserDTO, UserService

router = APIRouter(prefix="/users", tags=["Users"])


def user_to_response(user: UserDTO) -> UserResponse:
    """Convert UserDTO to UserResponse."""
    return UserResponse(id=user.id, email=user.email, name=user.name, role=user.role.value)


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
    summary="Register",
)
async def register(
    request: RegisterRequest,
    service: Annotated[UserService, Depends(get_user_service)],
) -> UserResponse:
    """Create a customer account."""
    user = await service.register(request.email, request.password, request.name)
    return user_to_response(user)


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
    },
    summary="Log in",
    description="Authenticate and merge the anonymous cart named by session_id or X-Session-ID.",
)
async def login(
    request: LoginRequest,
    service: Annotated[UserService, Depends(get_user_service)],
    header_session_id: Annotated[str | None, Depends(get_session_id)],
) -> LoginResponse:
    """Log in and fold the anonymous cart into the user's cart.

    A failed merge does not fail the login; ``cart_merged`` reports
    whether a cart was merged.

    Args:
        request: Credentials and optional session ID.
        service: User service.
        header_session_id: Session ID from the X-Session-ID header.

    Returns:
        Access token, user and merge outcome.
    """
    result = await service.login(
        request.email,
        request.password,
        session_id=request.session_id or header_session_id,
    )
    return LoginResponse(
        token=result.token,
        user=user_to_response(result.user),
        cart_merged=result.cart_merged,
    )
