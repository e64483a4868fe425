"""Project and membership service."""

from collections.abc import Sequence

import structlog
from sqlalchemy import and_, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from collabhub.config import Settings, get_settings
from collabhub.exceptions import (
    ConflictError,
    InvalidInputError,
    NotFoundError,
    PermissionDeniedError,
)
from collabhub.models.contact import Contact, ContactStatus
from collabhub.models.project import Project, ProjectMember, ProjectRole, ProjectStatus
from collabhub.models.user import User
from collabhub.schemas.project import (
    ProjectCreate,
    ProjectDetail,
    ProjectMemberResponse,
    ProjectUpdate,
)
from collabhub.schemas.user import UserSummary
from collabhub.services import access_control as ac
from collabhub.services.contacts import escape_like, validate_search_query

logger = structlog.get_logger()


def member_response(member: ProjectMember) -> ProjectMemberResponse:
    return ProjectMemberResponse(
        id=member.user.id,
        name=member.user.name,
        login=member.user.login,
        avatar=member.user.avatar,
        role=member.role,
        joined_at=member.joined_at,
        invited_by_id=member.invited_by_id,
    )


class ProjectService:
    """Service for project CRUD, membership and visibility."""

    def __init__(self, db: AsyncSession, settings: Settings | None = None):
        self.db = db
        self.settings = settings or get_settings()

    # =========================================================================
    # Hydration
    # =========================================================================

    async def _get_project(self, project_id: int) -> Project:
        result = await self.db.execute(
            select(Project)
            .where(Project.id == project_id)
            .execution_options(populate_existing=True)
        )
        project = result.scalar_one_or_none()
        if project is None:
            raise NotFoundError("Project not found")
        return project

    async def _list_members(self, project_id: int) -> Sequence[ProjectMember]:
        result = await self.db.execute(
            select(ProjectMember)
            .where(ProjectMember.project_id == project_id)
            .order_by(ProjectMember.joined_at, ProjectMember.id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().all()

    async def _hydrate(self, project: Project) -> ProjectDetail:
        """Merge a project with its owner summary and member list."""
        members = await self._list_members(project.id)
        return ProjectDetail(
            id=project.id,
            name=project.name,
            description=project.description,
            image=project.image,
            privacy=project.privacy,
            status=project.status,
            owner_id=project.owner_id,
            owner=UserSummary.model_validate(project.owner),
            members=[member_response(m) for m in members],
            created_at=project.created_at,
            updated_at=project.updated_at,
            due_date=project.due_date,
        )

    async def _get_member(self, project_id: int, user_id: int) -> ProjectMember | None:
        result = await self.db.execute(
            select(ProjectMember).where(
                ProjectMember.project_id == project_id,
                ProjectMember.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def _flush_members(self, project_id: int) -> None:
        try:
            await self.db.flush()
        except IntegrityError as exc:
            await self.db.rollback()
            logger.warning("project_member_conflict", project_id=project_id)
            raise ConflictError("User is already a project member") from exc

    # =========================================================================
    # Projects
    # =========================================================================

    async def create_project(self, user_id: int, data: ProjectCreate) -> ProjectDetail:
        """Create a project owned by ``user_id``, optionally inviting members."""
        owner = await self.db.get(User, user_id)
        if owner is None:
            raise NotFoundError("User not found")

        project = Project(
            name=data.name,
            description=data.description,
            image=data.image,
            privacy=data.privacy,
            status=ProjectStatus.ACTIVE,
            owner_id=user_id,
            due_date=data.due_date,
        )
        self.db.add(project)
        await self.db.flush()

        # Owner membership is written in the same transaction as the project
        self.db.add(
            ProjectMember(
                project_id=project.id,
                user_id=user_id,
                role=ProjectRole.OWNER,
                invited_by_id=user_id,
            )
        )
        await self._flush_members(project.id)

        logger.info("project_created", project_id=project.id, owner_id=user_id)

        if data.member_ids:
            return await self.add_members(user_id, project.id, data.member_ids, ProjectRole.MEMBER)

        return await self._hydrate(await self._get_project(project.id))

    async def update_project(
        self,
        user_id: int,
        project_id: int,
        updates: ProjectUpdate,
    ) -> ProjectDetail:
        """Apply a partial update. Requires the edit capability."""
        project = await self._get_project(project_id)
        await ac.require_capability(self.db, user_id, project_id, ac.Capability.EDIT)

        update_data = updates.model_dump(exclude_unset=True)
        for field, value in update_data.items():
            if field in ("name", "privacy", "status") and value is None:
                raise InvalidInputError(f"{field} cannot be null")
            setattr(project, field, value)

        await self.db.flush()
        logger.info("project_updated", project_id=project_id, fields=sorted(update_data))
        return await self._hydrate(project)

    async def delete_project(self, user_id: int, project_id: int) -> None:
        """Delete a project. Members are removed by the storage cascade."""
        project = await self._get_project(project_id)
        await ac.require_capability(self.db, user_id, project_id, ac.Capability.DELETE)

        await self.db.delete(project)
        await self.db.flush()
        logger.info("project_deleted", project_id=project_id, user_id=user_id)

    async def get_project(self, user_id: int, project_id: int) -> ProjectDetail:
        """Get a project the user is allowed to see.

        Invisible projects are reported as missing so that private project ids
        cannot be enumerated.
        """
        project = await self._get_project(project_id)
        if not await ac.can_view_project(self.db, user_id, project):
            logger.info("project_hidden", project_id=project_id, user_id=user_id)
            raise NotFoundError("Project not found")
        return await self._hydrate(project)

    async def get_user_projects(self, user_id: int) -> list[ProjectDetail]:
        """All projects the user is a member of, in any role."""
        result = await self.db.execute(
            select(Project)
            .join(ProjectMember, ProjectMember.project_id == Project.id)
            .where(ProjectMember.user_id == user_id)
            .order_by(Project.updated_at.desc(), Project.id.desc())
        )
        projects = result.scalars().unique().all()
        return [await self._hydrate(project) for project in projects]

    # =========================================================================
    # Members
    # =========================================================================

    async def add_members(
        self,
        user_id: int,
        project_id: int,
        user_ids: Sequence[int],
        role: ProjectRole = ProjectRole.MEMBER,
    ) -> ProjectDetail:
        """Add users to a project.

        Unknown users and existing members are skipped without error.
        """
        project = await self._get_project(project_id)
        await ac.require_capability(self.db, user_id, project_id, ac.Capability.INVITE)

        if role == ProjectRole.OWNER:
            raise InvalidInputError("A project has exactly one owner", code="OWNER_ROLE")

        existing = await self.db.execute(
            select(ProjectMember.user_id).where(ProjectMember.project_id == project_id)
        )
        existing_ids = set(existing.scalars().all())

        requested = [uid for uid in dict.fromkeys(user_ids) if uid not in existing_ids]
        added: list[int] = []
        if requested:
            found = await self.db.execute(select(User.id).where(User.id.in_(requested)))
            known_ids = set(found.scalars().all())
            for new_id in requested:
                if new_id not in known_ids:
                    continue
                self.db.add(
                    ProjectMember(
                        project_id=project_id,
                        user_id=new_id,
                        role=role,
                        invited_by_id=user_id,
                    )
                )
                added.append(new_id)
            await self._flush_members(project_id)

        logger.info(
            "project_members_added",
            project_id=project_id,
            added=added,
            skipped=len(user_ids) - len(added),
        )
        return await self._hydrate(project)

    async def remove_member(self, user_id: int, project_id: int, target_user_id: int) -> None:
        """Remove a member. Owners may remove anyone but themselves; anyone may leave."""
        await self._get_project(project_id)

        # Leaving needs no capability, only an existing membership
        if user_id != target_user_id:
            await ac.require_capability(
                self.db, user_id, project_id, ac.Capability.REMOVE_MEMBER
            )

        target = await self._get_member(project_id, target_user_id)
        if target is None:
            raise NotFoundError("Member not found")
        if target.role == ProjectRole.OWNER:
            raise PermissionDeniedError("The project owner cannot be removed", code="OWNER_REMOVAL")

        await self.db.delete(target)
        await self.db.flush()
        logger.info(
            "project_member_removed",
            project_id=project_id,
            user_id=target_user_id,
            removed_by=user_id,
        )

    async def update_member_role(
        self,
        user_id: int,
        project_id: int,
        target_user_id: int,
        role: ProjectRole,
    ) -> ProjectMemberResponse:
        """Change a member's role. Owner only."""
        await ac.require_capability(self.db, user_id, project_id, ac.Capability.CHANGE_ROLE)

        target = await self._get_member(project_id, target_user_id)
        if target is None:
            raise NotFoundError("Member not found")
        if role == ProjectRole.OWNER or target.role == ProjectRole.OWNER:
            raise InvalidInputError("Project ownership cannot be changed", code="OWNER_ROLE")

        target.role = role
        await self.db.flush()
        logger.info(
            "project_member_role_changed",
            project_id=project_id,
            user_id=target_user_id,
            role=role.value,
        )
        return member_response(target)

    async def get_project_members(
        self,
        project_id: int,
        user_id: int | None = None,
    ) -> list[ProjectMemberResponse]:
        """Members with user details, oldest membership first.

        With ``projects_members_require_visibility`` enabled the caller must be
        able to see the project; otherwise the list is returned to anyone.
        """
        project = await self._get_project(project_id)
        if self.settings.projects_members_require_visibility:
            if user_id is None or not await ac.can_view_project(self.db, user_id, project):
                raise NotFoundError("Project not found")

        return [member_response(m) for m in await self._list_members(project_id)]

    async def search_contacts_for_project(
        self,
        user_id: int,
        project_id: int,
        query: str,
    ) -> Sequence[User]:
        """Accepted contacts of the user who are not yet project members."""
        query = validate_search_query(query, self.settings)
        await self._get_project(project_id)

        accepted = await self.db.execute(
            select(Contact.user_id, Contact.contact_id).where(
                Contact.status == ContactStatus.ACCEPTED,
                or_(Contact.user_id == user_id, Contact.contact_id == user_id),
            )
        )
        contact_ids = {
            contact_id if initiator == user_id else initiator
            for initiator, contact_id in accepted.all()
        }

        existing = await self.db.execute(
            select(ProjectMember.user_id).where(ProjectMember.project_id == project_id)
        )
        candidates = contact_ids - set(existing.scalars().all())
        if not candidates:
            return []

        pattern = f"%{escape_like(query)}%"
        result = await self.db.execute(
            select(User)
            .where(
                and_(
                    User.id.in_(candidates),
                    User.is_active.is_(True),
                    or_(
                        User.name.ilike(pattern, escape="\\"),
                        User.login.ilike(pattern, escape="\\"),
                    ),
                )
            )
            .order_by(User.name, User.id)
            .limit(self.settings.search_result_limit)
        )
        return result.scalars().all()
