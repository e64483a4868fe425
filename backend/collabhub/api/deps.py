"""Shared FastAPI dependencies."""

from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from collabhub.config import get_settings
from collabhub.db.session import DBSession
from collabhub.exceptions import InvalidCredentialError
from collabhub.models.user import User
from collabhub.services.auth import AuthService
from collabhub.services.contacts import ContactService
from collabhub.services.credentials import ACCESS_TOKEN_TYPE, CredentialService
from collabhub.services.projects import ProjectService

security = HTTPBearer(auto_error=False)


def get_credential_service() -> CredentialService:
    return CredentialService(get_settings())


Credentials = Annotated[CredentialService, Depends(get_credential_service)]


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: DBSession,
    credential_service: Credentials,
) -> User:
    """Get the current authenticated user from the bearer token."""
    if not credentials:
        raise InvalidCredentialError("Not authenticated")

    claims = credential_service.decode(credentials.credentials, ACCESS_TOKEN_TYPE)
    return await credential_service.resolve_user(db, claims["id"])


def get_auth_service(db: DBSession, credential_service: Credentials) -> AuthService:
    return AuthService(db, credential_service)


def get_contact_service(db: DBSession) -> ContactService:
    return ContactService(db, get_settings())


def get_project_service(db: DBSession) -> ProjectService:
    return ProjectService(db, get_settings())


# Type aliases for dependency injection
CurrentUser = Annotated[User, Depends(get_current_user)]
AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
ContactServiceDep = Annotated[ContactService, Depends(get_contact_service)]
ProjectServiceDep = Annotated[ProjectService, Depends(get_project_service)]
