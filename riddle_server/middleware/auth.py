"""
Riddle Server — Access-Control Dependencies
============================================

What:  Per-request authentication (who is calling?) and authorization
       (may they do this?) for protected routes.
How:   FastAPI dependency factories. `authenticate()` resolves the caller and
       stores it on `request.state`; `authorize()` checks the stored role.
Who:   Attached to routes, e.g.

           @router.get("/players", dependencies=[Depends(require_admin)])
           @router.get("/players/{username}")
           async def get_player(user: CurrentUser = Depends(optional_auth)): ...

Token extraction order (first match wins):
    1. Authorization: Bearer <token>
    2. ?token=<token>            (query parameter)
    3. X-Auth-Token: <token>     (custom header)

Authentication outcomes:
    no token, required      → 401 "Authentication token is required"
    no token, optional      → anonymous guest (role=guest, id=None)
    token fails verification→ 401 from the token service (expired/invalid/malformed)
    subject deleted         → 401 "User not found or has been deleted"
    role changed since issue→ 401 "User role has changed. Please login again"

Ordering:
    Authorization must never run before authentication has populated
    `request.state.user`. `auth_and_authorize()` makes this structural: the
    returned dependency *depends on* authenticate, so FastAPI resolves it
    first. A bare `authorize()` with nothing attached answers 401.
"""

import logging
from typing import Callable, Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from riddle_server.database import get_db_session
from riddle_server.exceptions import ForbiddenError, UnauthorizedError
from riddle_server.models.player import Role
from riddle_server.schemas.auth import CurrentUser
from riddle_server.services.auth_service import auth_service
from riddle_server.services.token_service import token_service

logger = logging.getLogger(__name__)

TOKEN_QUERY_PARAM = "token"
TOKEN_HEADER = "X-Auth-Token"


def extract_token(request: Request) -> Optional[str]:
    """Return the first token found in header, query string or custom header."""
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        token = auth_header[len("Bearer "):].strip()
        if token:
            return token

    token = request.query_params.get(TOKEN_QUERY_PARAM)
    if token:
        return token

    token = request.headers.get(TOKEN_HEADER)
    if token:
        return token

    return None


def authenticate(required: bool = True) -> Callable:
    """
    Build a dependency that resolves the current user.

    Args:
        required: when False, a request without a token proceeds as a guest.
    """

    async def dependency(
        request: Request,
        db: AsyncSession = Depends(get_db_session),
    ) -> CurrentUser:
        token = extract_token(request)

        if token is None:
            if required:
                raise UnauthorizedError("Authentication token is required", reason="missing")
            guest = CurrentUser.guest()
            request.state.user = guest
            return guest

        claims = token_service.verify(token)

        player = await auth_service.resolve_user(db, claims.id)
        if player is None:
            raise UnauthorizedError("User not found or has been deleted", reason="stale")

        if player.role != claims.role.value:
            logger.info(
                "Rejected token for %s: role %s in token, %s in store",
                player.username,
                claims.role.value,
                player.role,
            )
            raise UnauthorizedError("User role has changed. Please login again", reason="stale")

        user = CurrentUser.model_validate(player)
        request.state.user = user
        request.state.token_claims = claims
        return user

    return dependency


def authorize(*allowed_roles: Role) -> Callable:
    """
    Build a dependency that requires the attached user to hold one of `allowed_roles`.

    No roles means any authenticated user is accepted.
    """
    # Ordered and de-duplicated; the denial message lists roles as given
    allowed = tuple(dict.fromkeys(Role(role) for role in allowed_roles))

    async def dependency(request: Request) -> CurrentUser:
        user: Optional[CurrentUser] = getattr(request.state, "user", None)
        if user is None:
            raise UnauthorizedError("Authentication required for authorization", reason="missing")

        if not allowed or user.role in allowed:
            return user

        required_roles = " or ".join(role.value for role in allowed)
        raise ForbiddenError(
            f"Access denied. Required role: {required_roles}. Your role: {user.role.value}",
            context={"required_roles": [role.value for role in allowed]},
        )

    return dependency


def auth_and_authorize(*allowed_roles: Role) -> Callable:
    """Authenticate (token required), then authorize against `allowed_roles`."""
    authenticated = authenticate(required=True)
    check_role = authorize(*allowed_roles)

    async def dependency(
        request: Request,
        user: CurrentUser = Depends(authenticated),
    ) -> CurrentUser:
        return await check_role(request)

    return dependency


# ── Ready-made dependencies ───────────────────────────────────────────────
require_auth = auth_and_authorize()
require_admin = auth_and_authorize(Role.ADMIN)
require_user_or_admin = auth_and_authorize(Role.USER, Role.ADMIN)
optional_auth = authenticate(required=False)
