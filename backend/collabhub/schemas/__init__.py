"""Pydantic request and response schemas."""

from collabhub.schemas.auth import (
    AuthResponse,
    ChangePasswordRequest,
    LoginRequest,
    RefreshTokenRequest,
    RegisterRequest,
    TokenPair,
    TokenPayload,
    ValidateTokenRequest,
)
from collabhub.schemas.contact import ContactResponse, SendRequestBody
from collabhub.schemas.project import (
    AddMembersRequest,
    MemberRoleUpdate,
    ProjectCreate,
    ProjectDetail,
    ProjectMemberResponse,
    ProjectUpdate,
)
from collabhub.schemas.user import UserProfileUpdate, UserResponse, UserSummary

__all__ = [
    "AddMembersRequest",
    "AuthResponse",
    "ChangePasswordRequest",
    "ContactResponse",
    "LoginRequest",
    "MemberRoleUpdate",
    "ProjectCreate",
    "ProjectDetail",
    "ProjectMemberResponse",
    "ProjectUpdate",
    "RefreshTokenRequest",
    "RegisterRequest",
    "SendRequestBody",
    "TokenPair",
    "TokenPayload",
    "UserProfileUpdate",
    "UserResponse",
    "UserSummary",
    "ValidateTokenRequest",
]
