"""Account service: registration, login, token refresh and profile management."""

import structlog
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from collabhub.exceptions import (
    ConflictError,
    InvalidCredentialError,
    InvalidInputError,
    NotFoundError,
)
from collabhub.models.user import User
from collabhub.schemas.auth import (
    AuthResponse,
    LoginRequest,
    RegisterRequest,
    TokenPayload,
)
from collabhub.schemas.user import UserProfileUpdate, UserResponse
from collabhub.services.credentials import REFRESH_TOKEN_TYPE, CredentialService

logger = structlog.get_logger()

# Only these fields may be changed through the profile path
PROFILE_FIELDS = ("name", "email", "avatar")


class AuthService:
    """Service for account lifecycle operations."""

    def __init__(self, db: AsyncSession, credentials: CredentialService | None = None):
        self.db = db
        self.credentials = credentials or CredentialService()

    def check_password_strength(self, password: str) -> None:
        """Require a minimum length and both letters and digits."""
        min_length = self.credentials.settings.password_min_length
        if (
            len(password) < min_length
            or not any(c.isalpha() for c in password)
            or not any(c.isdigit() for c in password)
        ):
            raise InvalidInputError(
                f"Password must be at least {min_length} characters long "
                "and contain both letters and digits",
                code="WEAK_PASSWORD",
            )

    def _auth_response(self, user: User) -> AuthResponse:
        tokens = self.credentials.issue(user)
        return AuthResponse(
            **tokens.model_dump(),
            user=UserResponse.model_validate(user),
        )

    async def register(self, data: RegisterRequest) -> AuthResponse:
        """Create an account and sign it in."""
        self.check_password_strength(data.password)

        conditions = [User.login == data.login]
        if data.email:
            conditions.append(User.email == data.email)
        existing = await self.db.execute(select(User.id).where(or_(*conditions)).limit(1))
        if existing.scalar_one_or_none() is not None:
            raise ConflictError("A user with this login or email already exists")

        user = User(
            login=data.login,
            password_hash=self.credentials.hash_password(data.password),
            name=data.name or data.login,
            email=data.email,
            avatar=data.avatar,
            role="user",
            is_active=True,
        )
        self.db.add(user)
        try:
            await self.db.flush()
        except IntegrityError as exc:
            await self.db.rollback()
            raise ConflictError("A user with this login or email already exists") from exc

        logger.info("user_registered", user_id=user.id, login=user.login)
        return self._auth_response(user)

    async def login(self, data: LoginRequest) -> AuthResponse:
        """Check credentials and issue tokens."""
        result = await self.db.execute(select(User).where(User.login == data.login))
        user = result.scalar_one_or_none()

        if user is None:
            raise InvalidCredentialError("Invalid credentials")
        if not user.is_active:
            raise InvalidCredentialError("Account is disabled")
        if not self.credentials.verify_password(data.password, user.password_hash):
            logger.info("login_failed", user_id=user.id)
            raise InvalidCredentialError("Invalid credentials")

        logger.info("user_logged_in", user_id=user.id)
        return self._auth_response(user)

    async def refresh(self, refresh_token: str) -> AuthResponse:
        """Exchange a refresh token for a new token pair."""
        claims = self.credentials.decode(refresh_token, REFRESH_TOKEN_TYPE)
        user = await self.credentials.resolve_user(self.db, claims["id"])
        return self._auth_response(user)

    async def validate_token(self, token: str) -> TokenPayload:
        return await self.credentials.validate(self.db, token)

    async def get_profile(self, user_id: int) -> User:
        user = await self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def update_profile(self, user_id: int, updates: UserProfileUpdate) -> User:
        """Update display name, email or avatar."""
        user = await self.get_profile(user_id)

        update_data = updates.model_dump(exclude_unset=True)
        if "name" in update_data and update_data["name"] is None:
            raise InvalidInputError("name cannot be null")
        if update_data.get("email") and update_data["email"] != user.email:
            taken = await self.db.execute(
                select(User.id).where(User.email == update_data["email"], User.id != user_id)
            )
            if taken.scalar_one_or_none() is not None:
                raise ConflictError("Email is already in use")

        for field, value in update_data.items():
            if field in PROFILE_FIELDS:
                setattr(user, field, value)

        try:
            await self.db.flush()
        except IntegrityError as exc:
            await self.db.rollback()
            raise ConflictError("Email is already in use") from exc

        logger.info("user_profile_updated", user_id=user_id, fields=sorted(update_data))
        return user

    async def change_password(
        self,
        user_id: int,
        current_password: str,
        new_password: str,
        confirm_password: str,
    ) -> None:
        user = await self.get_profile(user_id)

        if new_password != confirm_password:
            raise InvalidInputError("Passwords do not match", code="PASSWORD_MISMATCH")
        if not self.credentials.verify_password(current_password, user.password_hash):
            raise InvalidInputError("Current password is incorrect", code="WRONG_PASSWORD")
        self.check_password_strength(new_password)

        user.password_hash = self.credentials.hash_password(new_password)
        await self.db.flush()
        logger.info("user_password_changed", user_id=user_id)
