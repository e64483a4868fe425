"""Project schemas."""

from datetime import datetime

from pydantic import BaseModel, Field

from collabhub.models.project import ProjectPrivacy, ProjectRole, ProjectStatus
from collabhub.schemas.user import UserSummary


class ProjectCreate(BaseModel):
    """Create a new project."""

    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    image: str | None = Field(None, max_length=500)
    privacy: ProjectPrivacy = ProjectPrivacy.PRIVATE
    member_ids: list[int] = Field(default_factory=list)
    due_date: datetime | None = None


class ProjectUpdate(BaseModel):
    """Partial project update; only fields that are set are applied."""

    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    image: str | None = Field(None, max_length=500)
    privacy: ProjectPrivacy | None = None
    status: ProjectStatus | None = None
    due_date: datetime | None = None


class AddMembersRequest(BaseModel):
    user_ids: list[int] = Field(..., min_length=1)
    role: ProjectRole = ProjectRole.MEMBER


class MemberRoleUpdate(BaseModel):
    role: ProjectRole


class ProjectMemberResponse(BaseModel):
    """Project member with user details."""

    id: int
    name: str
    login: str
    avatar: str | None = None
    role: ProjectRole
    joined_at: datetime
    invited_by_id: int | None = None


class ProjectDetail(BaseModel):
    """Project hydrated with its owner and full member list."""

    id: int
    name: str
    description: str | None
    image: str | None
    privacy: ProjectPrivacy
    status: ProjectStatus
    owner_id: int
    owner: UserSummary
    members: list[ProjectMemberResponse]
    created_at: datetime
    updated_at: datetime
    due_date: datetime | None
