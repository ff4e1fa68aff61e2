"""
Riddle Server — Auth Service Unit Tests
========================================

What:  Registration, login and user resolution against an in-memory database.

What we test:
    ✅ Register returns a user (without password hash) and a verifiable token
    ✅ Length rules, missing fields, duplicate usernames (both detection paths)
    ✅ Admin code grants the admin role; a wrong or unset code does not
    ✅ Login: success, wrong password and unknown user share one message,
       legacy records get their own message
    ✅ Store failures surface as DatabaseError
"""

from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from riddle_server.config import settings
from riddle_server.exceptions import (
    ConflictError,
    DatabaseError,
    ErrorKind,
    InvalidInputError,
    UnauthorizedError,
)
from riddle_server.models.player import Role
from riddle_server.services.auth_service import (
    INVALID_CREDENTIALS_MESSAGE,
    LEGACY_ACCOUNT_MESSAGE,
    AuthOutcome,
    AuthService,
)
from riddle_server.services.token_service import token_service


class TestAuthOutcome:

    def test_success_unwraps_value(self):
        outcome = AuthOutcome.success("value")

        assert outcome.ok
        assert outcome.unwrap() == "value"

    def test_failure_unwrap_raises_carried_error(self):
        error = ConflictError("Username already exists")
        outcome = AuthOutcome.failure(error)

        assert not outcome.ok
        with pytest.raises(ConflictError) as exc_info:
            outcome.unwrap()
        assert exc_info.value is error


class TestRegister:

    def setup_method(self):
        self.service = AuthService()

    @pytest.mark.asyncio
    async def test_register_success(self, db_session):
        outcome = await self.service.register(db_session, "alice_01", "password123")

        assert outcome.ok
        session = outcome.value
        assert session.user.username == "alice_01"
        assert session.user.role is Role.USER
        assert "password_hash" not in session.user.model_dump()

        claims = token_service.verify(session.token)
        assert claims.id == session.user.id
        assert claims.username == "alice_01"
        assert claims.role is Role.USER

    @pytest.mark.asyncio
    async def test_register_stores_hash_not_password(self, db_session):
        from sqlalchemy import select
        from riddle_server.models.player import Player

        await self.service.register(db_session, "alice_01", "password123")
        player = (
            await db_session.execute(select(Player).where(Player.username == "alice_01"))
        ).scalar_one()

        assert player.password_hash
        assert player.password_hash != "password123"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "username,password,message",
        [
            ("abcd", "password123", "Username must be at least 5 characters long"),
            ("alice_01", "pass123", "Password must be at least 8 characters long"),
            (None, "password123", "Username and password are required"),
            ("alice_01", "", "Username and password are required"),
        ],
    )
    async def test_register_input_rules(self, db_session, username, password, message):
        outcome = await self.service.register(db_session, username, password)

        assert isinstance(outcome.error, InvalidInputError)
        assert outcome.error.message == message
        assert outcome.error.kind is ErrorKind.INVALID_INPUT

    @pytest.mark.asyncio
    async def test_register_boundary_lengths_accepted(self, db_session):
        outcome = await self.service.register(db_session, "abcde", "12345678")

        assert outcome.ok

    @pytest.mark.asyncio
    async def test_register_duplicate_username(self, db_session, make_player):
        await make_player("alice_01")

        outcome = await self.service.register(db_session, "alice_01", "password123")

        assert isinstance(outcome.error, ConflictError)
        assert outcome.error.message == "Username already exists"

    @pytest.mark.asyncio
    async def test_register_duplicate_caught_by_unique_constraint(self, db_session, make_player):
        """A registration that slips past the pre-check gets the same conflict."""
        await make_player("alice_01")

        with patch.object(self.service, "_find_by_username", AsyncMock(return_value=None)):
            outcome = await self.service.register(db_session, "alice_01", "password123")

        assert isinstance(outcome.error, ConflictError)
        assert outcome.error.message == "Username already exists"

    @pytest.mark.asyncio
    async def test_register_with_admin_code(self, db_session):
        outcome = await self.service.register(
            db_session, "boss_001", "password123", admin_code=settings.admin_secret_code
        )

        assert outcome.value.user.role is Role.ADMIN
        assert token_service.verify(outcome.value.token).role is Role.ADMIN

    @pytest.mark.asyncio
    async def test_register_with_wrong_admin_code(self, db_session):
        outcome = await self.service.register(
            db_session, "boss_001", "password123", admin_code="guess"
        )

        assert outcome.value.user.role is Role.USER

    @pytest.mark.asyncio
    async def test_empty_admin_secret_never_grants_admin(self, db_session, monkeypatch):
        monkeypatch.setattr(settings, "admin_secret_code", "")

        outcome = await self.service.register(db_session, "boss_001", "password123", admin_code="")

        assert outcome.value.user.role is Role.USER

    @pytest.mark.asyncio
    async def test_register_store_failure(self, mock_db_session):
        mock_db_session.execute.side_effect = OperationalError("SELECT", {}, Exception("down"))

        with pytest.raises(DatabaseError):
            await self.service.register(mock_db_session, "alice_01", "password123")


class TestLogin:

    def setup_method(self):
        self.service = AuthService()

    @pytest.mark.asyncio
    async def test_login_success(self, db_session, make_player):
        player = await make_player("alice_01", "password123")

        outcome = await self.service.login(db_session, "alice_01", "password123")

        assert outcome.ok
        assert outcome.value.user.id == player.id
        assert token_service.verify(outcome.value.token).id == player.id

    @pytest.mark.asyncio
    async def test_wrong_password_and_unknown_user_look_identical(self, db_session, make_player):
        await make_player("alice_01", "password123")

        wrong_password = await self.service.login(db_session, "alice_01", "password124")
        unknown_user = await self.service.login(db_session, "nobody_99", "password123")

        for outcome in (wrong_password, unknown_user):
            assert isinstance(outcome.error, UnauthorizedError)
            assert outcome.error.message == INVALID_CREDENTIALS_MESSAGE

    @pytest.mark.asyncio
    async def test_legacy_record_has_distinct_message(self, db_session, make_player):
        await make_player("old_timer", password=None)

        outcome = await self.service.login(db_session, "old_timer", "password123")

        assert isinstance(outcome.error, UnauthorizedError)
        assert outcome.error.message == LEGACY_ACCOUNT_MESSAGE

    @pytest.mark.asyncio
    async def test_login_missing_fields(self, db_session):
        outcome = await self.service.login(db_session, "alice_01", None)

        assert isinstance(outcome.error, InvalidInputError)


class TestResolveUser:

    def setup_method(self):
        self.service = AuthService()

    @pytest.mark.asyncio
    async def test_resolve_existing_and_missing(self, db_session, make_player):
        player = await make_player("alice_01")

        assert (await self.service.resolve_user(db_session, player.id)).username == "alice_01"
        assert await self.service.resolve_user(db_session, player.id + 100) is None

    @pytest.mark.asyncio
    async def test_resolve_store_failure(self, mock_db_session):
        mock_db_session.get.side_effect = OperationalError("SELECT", {}, Exception("down"))

        with pytest.raises(DatabaseError):
            await self.service.resolve_user(mock_db_session, 1)
