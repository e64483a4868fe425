"""Authentication schemas."""

from pydantic import BaseModel, EmailStr, Field

from collabhub.schemas.user import UserResponse


class RegisterRequest(BaseModel):
    login: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1)
    email: EmailStr | None = None
    name: str | None = Field(None, max_length=255)
    avatar: str | None = Field(None, max_length=500)


class LoginRequest(BaseModel):
    login: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class ValidateTokenRequest(BaseModel):
    token: str


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str
    confirm_password: str


class TokenPair(BaseModel):
    """Access and refresh tokens issued together."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int


class TokenPayload(BaseModel):
    """Claims carried by a validated access token."""

    id: int
    login: str
    role: str
    exp: int | None = None


class AuthResponse(TokenPair):
    """Token pair plus the authenticated user."""

    user: UserResponse
