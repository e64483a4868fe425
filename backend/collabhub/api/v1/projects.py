"""Projects API endpoints."""

from fastapi import APIRouter, Query, status

from collabhub.api.deps import CurrentUser, ProjectServiceDep
from collabhub.schemas.project import (
    AddMembersRequest,
    MemberRoleUpdate,
    ProjectCreate,
    ProjectDetail,
    ProjectMemberResponse,
    ProjectUpdate,
)
from collabhub.schemas.user import UserSummary

router = APIRouter()


@router.post("", response_model=ProjectDetail, status_code=status.HTTP_201_CREATED)
async def create_project(
    project_data: ProjectCreate,
    current_user: CurrentUser,
    projects: ProjectServiceDep,
) -> ProjectDetail:
    """Create a project with the current user as owner."""
    return await projects.create_project(current_user.id, project_data)


@router.get("", response_model=list[ProjectDetail])
async def list_projects(
    current_user: CurrentUser,
    projects: ProjectServiceDep,
) -> list[ProjectDetail]:
    """Projects the current user is a member of."""
    return await projects.get_user_projects(current_user.id)


@router.get("/{project_id}", response_model=ProjectDetail)
async def get_project(
    project_id: int,
    current_user: CurrentUser,
    projects: ProjectServiceDep,
) -> ProjectDetail:
    return await projects.get_project(current_user.id, project_id)


@router.put("/{project_id}", response_model=ProjectDetail)
async def update_project(
    project_id: int,
    updates: ProjectUpdate,
    current_user: CurrentUser,
    projects: ProjectServiceDep,
) -> ProjectDetail:
    return await projects.update_project(current_user.id, project_id, updates)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: int,
    current_user: CurrentUser,
    projects: ProjectServiceDep,
) -> None:
    await projects.delete_project(current_user.id, project_id)


@router.get("/{project_id}/members", response_model=list[ProjectMemberResponse])
async def list_project_members(
    project_id: int,
    current_user: CurrentUser,
    projects: ProjectServiceDep,
) -> list[ProjectMemberResponse]:
    return await projects.get_project_members(project_id, current_user.id)


@router.post("/{project_id}/members", response_model=ProjectDetail)
async def add_project_members(
    project_id: int,
    member_data: AddMembersRequest,
    current_user: CurrentUser,
    projects: ProjectServiceDep,
) -> ProjectDetail:
    """Add members to the project. Existing members are skipped."""
    return await projects.add_members(
        current_user.id, project_id, member_data.user_ids, member_data.role
    )


@router.delete("/{project_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_project_member(
    project_id: int,
    user_id: int,
    current_user: CurrentUser,
    projects: ProjectServiceDep,
) -> None:
    await projects.remove_member(current_user.id, project_id, user_id)


@router.put("/{project_id}/members/{user_id}/role", response_model=ProjectMemberResponse)
async def update_member_role(
    project_id: int,
    user_id: int,
    role_data: MemberRoleUpdate,
    current_user: CurrentUser,
    projects: ProjectServiceDep,
) -> ProjectMemberResponse:
    return await projects.update_member_role(current_user.id, project_id, user_id, role_data.role)


@router.get("/{project_id}/contacts/search", response_model=list[UserSummary])
async def search_contacts_for_project(
    project_id: int,
    current_user: CurrentUser,
    projects: ProjectServiceDep,
    q: str = Query(..., max_length=100),
) -> list[UserSummary]:
    """Search the current user's contacts who are not yet members."""
    users = await projects.search_contacts_for_project(current_user.id, project_id, q)
    return [UserSummary.model_validate(u) for u in users]
