"""Authentication and profile endpoints."""

from fastapi import APIRouter, status

from collabhub.api.deps import AuthServiceDep, CurrentUser
from collabhub.schemas.auth import (
    AuthResponse,
    ChangePasswordRequest,
    LoginRequest,
    RefreshTokenRequest,
    RegisterRequest,
    TokenPayload,
    ValidateTokenRequest,
)
from collabhub.schemas.user import UserProfileUpdate, UserResponse

router = APIRouter()


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(data: RegisterRequest, auth: AuthServiceDep) -> AuthResponse:
    """Create an account and return tokens for it."""
    return await auth.register(data)


@router.post("/login", response_model=AuthResponse)
async def login(data: LoginRequest, auth: AuthServiceDep) -> AuthResponse:
    return await auth.login(data)


@router.post("/refresh-token", response_model=AuthResponse)
async def refresh_token(data: RefreshTokenRequest, auth: AuthServiceDep) -> AuthResponse:
    """Exchange a refresh token for a new token pair."""
    return await auth.refresh(data.refresh_token)


@router.post("/validate-token", response_model=TokenPayload)
async def validate_token(data: ValidateTokenRequest, auth: AuthServiceDep) -> TokenPayload:
    return await auth.validate_token(data.token)


@router.get("/profile", response_model=UserResponse)
async def get_profile(current_user: CurrentUser) -> UserResponse:
    """Get current user's profile."""
    return UserResponse.model_validate(current_user)


@router.put("/profile", response_model=UserResponse)
async def update_profile(
    updates: UserProfileUpdate,
    current_user: CurrentUser,
    auth: AuthServiceDep,
) -> UserResponse:
    user = await auth.update_profile(current_user.id, updates)
    return UserResponse.model_validate(user)


@router.put("/change-password")
async def change_password(
    data: ChangePasswordRequest,
    current_user: CurrentUser,
    auth: AuthServiceDep,
) -> dict[str, str]:
    await auth.change_password(
        current_user.id,
        data.current_password,
        data.new_password,
        data.confirm_password,
    )
    return {"message": "Password changed"}
