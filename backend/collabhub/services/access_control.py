"""Project access control.

Two predicates live here:

- capability checks for mutations, driven by the member's project role and
  the ``ROLE_CAPABILITIES`` table;
- the read visibility rule: members always see a project, anyone sees a
  public project, and a contacts-only project is visible to users with an
  accepted contact edge with the owner.
"""

import enum

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from collabhub.exceptions import NotFoundError, PermissionDeniedError
from collabhub.models.contact import Contact, ContactStatus, ordered_pair
from collabhub.models.project import Project, ProjectMember, ProjectPrivacy, ProjectRole

logger = structlog.get_logger()


class Capability(str, enum.Enum):
    """Authorization-relevant project actions."""

    EDIT = "edit"
    DELETE = "delete"
    INVITE = "invite"
    REMOVE_MEMBER = "remove_member"
    CHANGE_ROLE = "change_role"


# Explicit table rather than a role hierarchy: admins may edit and invite but
# never delete the project, remove other members or change roles.
ROLE_CAPABILITIES: dict[ProjectRole, frozenset[Capability]] = {
    ProjectRole.OWNER: frozenset(Capability),
    ProjectRole.ADMIN: frozenset({Capability.EDIT, Capability.INVITE}),
    ProjectRole.MEMBER: frozenset(),
    ProjectRole.VIEWER: frozenset(),
}

# Human readable denials, keyed by capability
DENIAL_MESSAGES = {
    Capability.EDIT: "You do not have permission to edit this project",
    Capability.DELETE: "Only the project owner can delete the project",
    Capability.INVITE: "You do not have permission to add members",
    Capability.REMOVE_MEMBER: "You do not have permission to remove members",
    Capability.CHANGE_ROLE: "Only the project owner can change member roles",
}


def role_allows(role: ProjectRole | None, capability: Capability) -> bool:
    """Check whether a role grants a capability. ``None`` means not a member."""
    if role is None:
        return False
    return capability in ROLE_CAPABILITIES[role]


async def get_member_role(
    db: AsyncSession,
    user_id: int,
    project_id: int,
) -> ProjectRole | None:
    """Return the user's role on a project, or None if not a member."""
    result = await db.execute(
        select(ProjectMember.role).where(
            ProjectMember.project_id == project_id,
            ProjectMember.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()


async def has_capability(
    db: AsyncSession,
    user_id: int,
    project_id: int,
    capability: Capability,
) -> bool:
    """True iff the user's membership role on the project grants ``capability``."""
    role = await get_member_role(db, user_id, project_id)
    return role_allows(role, capability)


async def require_capability(
    db: AsyncSession,
    user_id: int,
    project_id: int,
    capability: Capability,
) -> None:
    """Ensure the project exists and the user may perform ``capability`` on it.

    Raises:
        NotFoundError: if the project does not exist
        PermissionDeniedError: if the user is not a member or lacks the capability
    """
    exists = await db.execute(select(Project.id).where(Project.id == project_id))
    if exists.scalar_one_or_none() is None:
        raise NotFoundError("Project not found")

    if await has_capability(db, user_id, project_id, capability):
        return

    role = await get_member_role(db, user_id, project_id)
    if role is None:
        raise PermissionDeniedError(
            "You are not a member of this project",
            capability=capability.value,
        )
    logger.info(
        "capability_denied",
        user_id=user_id,
        project_id=project_id,
        role=role.value,
        capability=capability.value,
    )
    raise PermissionDeniedError(DENIAL_MESSAGES[capability], capability=capability.value)


async def are_connected(db: AsyncSession, user_a: int, user_b: int) -> bool:
    """True iff an accepted contact edge exists between the two users, either direction."""
    low, high = ordered_pair(user_a, user_b)
    result = await db.execute(
        select(Contact.id).where(
            Contact.pair_low_id == low,
            Contact.pair_high_id == high,
            Contact.status == ContactStatus.ACCEPTED,
        )
    )
    return result.scalar_one_or_none() is not None


async def can_view_project(db: AsyncSession, user_id: int, project: Project) -> bool:
    """Evaluate read visibility of a project for a user."""
    if await get_member_role(db, user_id, project.id) is not None:
        return True

    if project.privacy == ProjectPrivacy.PUBLIC:
        return True

    if project.privacy == ProjectPrivacy.CONTACTS_ONLY:
        return await are_connected(db, user_id, project.owner_id)

    return False
