"""Services package."""

from collabhub.services import access_control
from collabhub.services.credentials import CredentialService
from collabhub.services.auth import AuthService
from collabhub.services.contacts import ContactService
from collabhub.services.projects import ProjectService

__all__ = [
    "AuthService",
    "ContactService",
    "CredentialService",
    "ProjectService",
    "access_control",
]
