"""
Riddle Server — Auth Service (Registration, Login, User Resolution)
====================================================================

What:  Orchestrates registration and login on top of the credential hasher,
       the token service and the `players` table.
Who:   Called by the /auth routes and by the access-control dependencies.

Result values vs exceptions:
    Expected business outcomes (bad input, duplicate username, wrong
    credentials) are *returned* inside an AuthOutcome. Callers decide what
    to do with them; the HTTP routes simply call `outcome.unwrap()`, which
    raises the carried error for the boundary handler.
    Genuinely unexpected failures (database down, missing JWT secret) are
    raised immediately as InternalFailureError subclasses.

Registration flow:
    ┌──────────┐   ┌────────────┐   ┌──────────┐   ┌──────────┐   ┌───────┐
    │ Validate │──▶│ Pre-check  │──▶│  bcrypt  │──▶│  INSERT  │──▶│ Token │
    │  input   │   │ username   │   │  hash    │   │  player  │   │ issue │
    └──────────┘   └────────────┘   └──────────┘   └──────────┘   └───────┘
                        │ exists                         │ IntegrityError
                        ▼                                ▼
                   Conflict ◀────────── same error ──────┘

    The pre-check and the INSERT are not atomic; two concurrent
    registrations can both pass the pre-check. The unique index on
    players.username catches the loser, and both paths report the
    identical ConflictError.
"""

import hmac
import logging
from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from riddle_server.config import settings
from riddle_server.exceptions import (
    ConflictError,
    DatabaseError,
    InvalidInputError,
    RiddleServerError,
    UnauthorizedError,
)
from riddle_server.models.player import Player, Role
from riddle_server.schemas.auth import AuthResponse, UserPublic
from riddle_server.services.credential_hasher import credential_hasher
from riddle_server.services.token_service import token_service

logger = logging.getLogger(__name__)

MIN_USERNAME_LENGTH = 5
MIN_PASSWORD_LENGTH = 8

INVALID_CREDENTIALS_MESSAGE = "Invalid username or password"
LEGACY_ACCOUNT_MESSAGE = "User exists but has no password set. Please contact administrator."
DUPLICATE_USERNAME_MESSAGE = "Username already exists"

T = TypeVar("T")


@dataclass
class AuthOutcome(Generic[T]):
    """
    Either a value or the domain error explaining why there is none.

    Example:
        outcome = await auth_service.login(db, "alice_01", "password123")
        if not outcome.ok:
            logger.info("login refused: %s", outcome.error.message)
        session = outcome.unwrap()
    """

    value: Optional[T] = None
    error: Optional[RiddleServerError] = None

    @classmethod
    def success(cls, value: T) -> "AuthOutcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: RiddleServerError) -> "AuthOutcome[T]":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value


class AuthService:
    """
    Business logic for accounts and sessions.

    Stateless: the database session is passed into every call.
    """

    async def _find_by_username(self, db: AsyncSession, username: str) -> Optional[Player]:
        result = await db.execute(select(Player).where(Player.username == username))
        return result.scalar_one_or_none()

    def _role_for(self, admin_code: Optional[str]) -> Role:
        secret = settings.admin_secret_code
        if admin_code and secret and hmac.compare_digest(admin_code.encode(), secret.encode()):
            return Role.ADMIN
        return Role.USER

    def _session_for(self, player: Player) -> AuthResponse:
        return AuthResponse(
            user=UserPublic.model_validate(player),
            token=token_service.issue(player),
        )

    async def register(
        self,
        db: AsyncSession,
        username: Optional[str],
        password: Optional[str],
        admin_code: Optional[str] = None,
    ) -> AuthOutcome[AuthResponse]:
        """
        Create an account and issue its first token.

        Failures returned:
            InvalidInputError: missing fields, username < 5 or password < 8 chars
            ConflictError:     username taken (pre-check or unique constraint)

        Raises:
            DatabaseError:      unexpected store failure
            ConfigurationError: JWT_SECRET missing
        """
        if not username or not password:
            return AuthOutcome.failure(InvalidInputError("Username and password are required"))
        if len(username) < MIN_USERNAME_LENGTH:
            return AuthOutcome.failure(
                InvalidInputError(
                    f"Username must be at least {MIN_USERNAME_LENGTH} characters long",
                    field="username",
                )
            )
        if len(password) < MIN_PASSWORD_LENGTH:
            return AuthOutcome.failure(
                InvalidInputError(
                    f"Password must be at least {MIN_PASSWORD_LENGTH} characters long",
                    field="password",
                )
            )

        try:
            existing = await self._find_by_username(db, username)
        except SQLAlchemyError as e:
            logger.error("Username availability check failed: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Failed to check username availability",
                context={"error_type": type(e).__name__},
            )
        if existing is not None:
            return AuthOutcome.failure(ConflictError(DUPLICATE_USERNAME_MESSAGE))

        password_hash = await credential_hasher.hash(password)
        role = self._role_for(admin_code)

        player = Player(username=username, password_hash=password_hash, role=role.value)
        db.add(player)
        try:
            await db.flush()
        except IntegrityError:
            # Lost the race against a concurrent registration of the same name
            await db.rollback()
            logger.info("Duplicate username caught by unique constraint: %s", username)
            return AuthOutcome.failure(ConflictError(DUPLICATE_USERNAME_MESSAGE))
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Failed to create user: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Failed to create user",
                context={"error_type": type(e).__name__},
            )

        await db.refresh(player)
        logger.info("Registered player %s (id=%s, role=%s)", player.username, player.id, player.role)
        return AuthOutcome.success(self._session_for(player))

    async def login(
        self,
        db: AsyncSession,
        username: Optional[str],
        password: Optional[str],
    ) -> AuthOutcome[AuthResponse]:
        """
        Exchange credentials for a token.

        Unknown user and wrong password produce the same message so the
        endpoint cannot be used to enumerate usernames. Legacy (password-less)
        records get a distinct message, which does reveal that such a
        username exists; clients rely on it to prompt an admin reset.

        Failures returned:
            InvalidInputError:  missing fields
            UnauthorizedError:  bad credentials or legacy record
        """
        if not username or not password:
            return AuthOutcome.failure(InvalidInputError("Username and password are required"))

        try:
            player = await self._find_by_username(db, username)
        except SQLAlchemyError as e:
            logger.error("Login lookup failed: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Failed to find user",
                context={"error_type": type(e).__name__},
            )

        if player is None:
            return AuthOutcome.failure(
                UnauthorizedError(INVALID_CREDENTIALS_MESSAGE, reason="credentials")
            )

        if not player.password_hash:
            return AuthOutcome.failure(UnauthorizedError(LEGACY_ACCOUNT_MESSAGE, reason="legacy"))

        if not await credential_hasher.verify(password, player.password_hash):
            return AuthOutcome.failure(
                UnauthorizedError(INVALID_CREDENTIALS_MESSAGE, reason="credentials")
            )

        logger.info("Player %s logged in", player.username)
        return AuthOutcome.success(self._session_for(player))

    async def resolve_user(self, db: AsyncSession, user_id: int) -> Optional[Player]:
        """
        Load the token subject for re-validation.

        Returns:
            The Player, or None when the row no longer exists.

        Raises:
            DatabaseError: lookup failed (distinct from "not found")
        """
        try:
            return await db.get(Player, user_id)
        except SQLAlchemyError as e:
            logger.error("User validation failed for id=%s: %s", user_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Failed to validate user",
                context={"error_type": type(e).__name__},
            )


auth_service = AuthService()
