"""Credential issuance and validation.

Access tokens carry ``{id, login, role}`` and are short-lived; refresh tokens
carry only ``{id}``, live longer and are signed with a separate secret.
"""

from datetime import datetime, timedelta, timezone

import structlog
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.ext.asyncio import AsyncSession

from collabhub.config import Settings, get_settings
from collabhub.exceptions import InvalidCredentialError
from collabhub.models.user import User
from collabhub.schemas.auth import TokenPair, TokenPayload

logger = structlog.get_logger()

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


class CredentialService:
    """Issues and validates bearer tokens and hashes passwords."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.pwd_context = CryptContext(
            schemes=[self.settings.password_hash_scheme],
            deprecated="auto",
        )

    # =========================================================================
    # Passwords
    # =========================================================================

    def hash_password(self, password: str) -> str:
        return self.pwd_context.hash(password)

    def verify_password(self, password: str, password_hash: str) -> bool:
        try:
            return self.pwd_context.verify(password, password_hash)
        except ValueError:
            # Unrecognized or corrupt hash
            return False

    # =========================================================================
    # Tokens
    # =========================================================================

    def issue(self, user: User) -> TokenPair:
        """Issue an access/refresh token pair for a user."""
        now = datetime.now(timezone.utc)
        access_expires = timedelta(minutes=self.settings.jwt_access_token_expire_minutes)
        refresh_expires = timedelta(days=self.settings.jwt_refresh_token_expire_days)

        access_token = jwt.encode(
            {
                "id": user.id,
                "login": user.login,
                "role": user.role,
                "type": ACCESS_TOKEN_TYPE,
                "iat": now,
                "exp": now + access_expires,
            },
            self.settings.jwt_secret_key.get_secret_value(),
            algorithm=self.settings.jwt_algorithm,
        )
        refresh_token = jwt.encode(
            {
                "id": user.id,
                "type": REFRESH_TOKEN_TYPE,
                "iat": now,
                "exp": now + refresh_expires,
            },
            self.settings.jwt_refresh_secret_key.get_secret_value(),
            algorithm=self.settings.jwt_algorithm,
        )
        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=int(access_expires.total_seconds()),
        )

    def decode(self, token: str, token_type: str = ACCESS_TOKEN_TYPE) -> dict:
        """Verify signature, expiry and token type, returning the raw claims."""
        secret = (
            self.settings.jwt_refresh_secret_key
            if token_type == REFRESH_TOKEN_TYPE
            else self.settings.jwt_secret_key
        )
        try:
            claims = jwt.decode(
                token,
                secret.get_secret_value(),
                algorithms=[self.settings.jwt_algorithm],
            )
        except JWTError as exc:
            logger.debug("token_rejected", reason=str(exc), token_type=token_type)
            raise InvalidCredentialError() from exc

        if claims.get("type") != token_type or not isinstance(claims.get("id"), int):
            raise InvalidCredentialError()
        return claims

    async def resolve_user(self, db: AsyncSession, user_id: int) -> User:
        """Load the token's user, rejecting missing or inactive accounts."""
        user = await db.get(User, user_id)
        if user is None or not user.is_active:
            logger.info("token_user_unavailable", user_id=user_id)
            raise InvalidCredentialError("User not found or account is disabled")
        return user

    async def validate(self, db: AsyncSession, token: str) -> TokenPayload:
        """Validate an access token and return its payload."""
        claims = self.decode(token, ACCESS_TOKEN_TYPE)
        await self.resolve_user(db, claims["id"])
        return TokenPayload(
            id=claims["id"],
            login=claims.get("login", ""),
            role=claims.get("role", "user"),
            exp=claims.get("exp"),
        )
