"""
Riddle Server — Session Token Issuer/Verifier
==============================================

What:  Creates and validates signed, time-limited session tokens.
How:   JSON Web Tokens (header.payload.signature) signed with HMAC-SHA256
       via python-jose. The payload carries {id, username, role, iat, exp}.
Who:   AuthService issues tokens; the access-control dependencies verify them.

Token validity:
    - signature must match the *current* JWT_SECRET (rotating the secret
      invalidates every outstanding token)
    - `exp` must be in the future (python-jose enforces this on decode)
    - the embedded role is compared with the stored role by the
      access-control layer, not here; this module is stateless

Errors:
    ConfigurationError  → no JWT_SECRET configured
    UnauthorizedError   → reason "malformed", "invalid" or "expired"
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import ValidationError as PydanticValidationError

from riddle_server.config import settings
from riddle_server.exceptions import ConfigurationError, InvalidInputError, UnauthorizedError
from riddle_server.schemas.auth import TokenClaims

logger = logging.getLogger(__name__)


def _claim(user: Any, name: str) -> Any:
    if isinstance(user, dict):
        return user.get(name)
    return getattr(user, name, None)


class TokenService:
    """
    Issues and verifies HS256 session tokens.

    Settings are read at call time, so a secret rotated in `settings`
    takes effect for the next issue/verify.
    """

    def _secret(self) -> str:
        if not settings.jwt_secret:
            raise ConfigurationError(
                "JWT_SECRET not configured in environment variables",
                context={"setting": "JWT_SECRET"},
            )
        return settings.jwt_secret

    def issue(self, user: Any, expires_in: Optional[timedelta] = None) -> str:
        """
        Sign a token for a user.

        Args:
            user:       Player row, CurrentUser, or dict with id/username/role
            expires_in: Override for the configured JWT_EXPIRES_IN lifetime

        Raises:
            ConfigurationError: JWT_SECRET is empty
            InvalidInputError:  user lacks id, username or role
        """
        secret = self._secret()

        user_id = _claim(user, "id")
        username = _claim(user, "username")
        role = _claim(user, "role")
        if not user_id or not username or not role:
            raise InvalidInputError("User object must contain id, username, and role")

        now = datetime.now(timezone.utc)
        lifetime = expires_in if expires_in is not None else settings.token_lifetime
        payload: Dict[str, Any] = {
            "id": user_id,
            "username": username,
            "role": getattr(role, "value", role),
            "iat": now,
            "exp": now + lifetime,
        }
        return jwt.encode(payload, secret, algorithm=settings.jwt_algorithm)

    def verify(self, token: Any) -> TokenClaims:
        """
        Verify a token's signature and expiry and return its claims.

        Raises:
            UnauthorizedError: "malformed", "expired" or "invalid"
            ConfigurationError: JWT_SECRET is empty
        """
        secret = self._secret()

        if not token or not isinstance(token, str):
            raise UnauthorizedError("Invalid token format", reason="malformed")

        try:
            payload = jwt.decode(token, secret, algorithms=[settings.jwt_algorithm])
        except ExpiredSignatureError:
            raise UnauthorizedError("Token has expired", reason="expired")
        except JWTError as e:
            logger.debug("Token rejected: %s", str(e))
            raise UnauthorizedError("Invalid token", reason="invalid")

        try:
            return TokenClaims.model_validate(payload)
        except PydanticValidationError:
            raise UnauthorizedError("Invalid token", reason="invalid")


token_service = TokenService()
