"""SQLAlchemy models package."""

from collabhub.models.user import User
from collabhub.models.contact import Contact, ContactStatus, ordered_pair
from collabhub.models.project import (
    Project,
    ProjectMember,
    ProjectPrivacy,
    ProjectRole,
    ProjectStatus,
)

__all__ = [
    # Identity
    "User",
    # Contacts
    "Contact",
    "ContactStatus",
    "ordered_pair",
    # Projects
    "Project",
    "ProjectMember",
    "ProjectPrivacy",
    "ProjectRole",
    "ProjectStatus",
]
