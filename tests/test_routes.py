"""
Riddle Server — HTTP Endpoint Tests
====================================

What:  End-to-end requests through the full middleware chain and error
       boundary, backed by an in-memory database.

What we test:
    ✅ Welcome, health, unknown route
    ✅ Register / login / me, including status codes and error bodies
    ✅ The alice_01 walkthrough: register, submit 5000/3000/9000, stats,
       leaderboard
    ✅ Riddle reads are public; writes are admin-only
    ✅ Body validation failures are 400 validation_error
    ✅ Unexpected exceptions become a generic 500
    ✅ Errors leaving the app are logged with path, method and request ID
"""

import logging

import pytest
from httpx import ASGITransport, AsyncClient

from riddle_server.config import settings


class TestMeta:

    @pytest.mark.asyncio
    async def test_root(self, test_client):
        response = await test_client.get("/")

        assert response.status_code == 200
        assert response.json() == {"message": "Welcome to the Riddle Server!"}

    @pytest.mark.asyncio
    async def test_health(self, test_client):
        response = await test_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "OK"
        assert body["database"] == "connected"
        assert body["uptime"] >= 0

    @pytest.mark.asyncio
    async def test_unknown_route(self, test_client):
        response = await test_client.get("/definitely/not/here")

        assert response.status_code == 404
        assert response.json() == {"msg": "Route not found"}

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, test_client):
        response = await test_client.get("/", headers={"X-Request-ID": "abc12345"})

        assert response.headers["X-Request-ID"] == "abc12345"


class TestAuthEndpoints:

    @pytest.mark.asyncio
    async def test_register_login_me(self, test_client):
        registered = await test_client.post(
            "/auth/register", json={"username": "alice_01", "password": "password123"}
        )
        assert registered.status_code == 201
        body = registered.json()
        assert body["user"]["username"] == "alice_01"
        assert body["user"]["role"] == "user"
        assert "password_hash" not in body["user"]
        assert body["token"]

        logged_in = await test_client.post(
            "/auth/login", json={"username": "alice_01", "password": "password123"}
        )
        assert logged_in.status_code == 200
        token = logged_in.json()["token"]

        me = await test_client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["username"] == "alice_01"
        assert me.json()["role"] == "user"

    @pytest.mark.asyncio
    async def test_register_duplicate(self, test_client, register_user):
        await register_user("alice_01")

        response = await test_client.post(
            "/auth/register", json={"username": "alice_01", "password": "password123"}
        )

        assert response.status_code == 409
        assert response.json()["error"] == "conflict"
        assert response.json()["message"] == "Username already exists"

    @pytest.mark.asyncio
    async def test_register_short_username(self, test_client):
        response = await test_client.post(
            "/auth/register", json={"username": "abcd", "password": "password123"}
        )

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"
        assert response.json()["message"] == "Username must be at least 5 characters long"

    @pytest.mark.asyncio
    async def test_register_camel_case_admin_code(self, test_client):
        response = await test_client.post(
            "/auth/register",
            json={
                "username": "boss_001",
                "password": "password123",
                "adminCode": settings.admin_secret_code,
            },
        )

        assert response.status_code == 201
        assert response.json()["user"]["role"] == "admin"

    @pytest.mark.asyncio
    async def test_login_wrong_password(self, test_client, register_user):
        await register_user("alice_01")

        response = await test_client.post(
            "/auth/login", json={"username": "alice_01", "password": "password124"}
        )

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid username or password"

    @pytest.mark.asyncio
    async def test_login_missing_password(self, test_client):
        response = await test_client.post("/auth/login", json={"username": "alice_01"})

        assert response.status_code == 400
        assert response.json()["message"] == "Username and password are required"


class TestGameWalkthrough:

    @pytest.mark.asyncio
    async def test_alice_plays_three_riddles(self, test_client, register_user):
        user, _ = await register_user("alice_01")

        results = []
        for riddle_id, t in [("r1", 5000), ("r2", 3000), ("r3", 9000)]:
            response = await test_client.post(
                "/players/submit-score",
                json={"player_id": user["id"], "riddle_id": riddle_id, "time_to_solve": t},
            )
            assert response.status_code == 200
            results.append(response.json())

        assert [r["best_time"] for r in results] == [5000, 3000, 3000]
        assert [r["improved"] for r in results] == [True, True, False]

        stats = (await test_client.get("/players/alice_01/stats")).json()
        assert stats["stats"] == {"total_solved": 3, "avg_time": 5667, "best_time": 3000}
        assert [h["riddle_id"] for h in stats["history"]] == ["r3", "r2", "r1"]

        board = (await test_client.get("/players/leaderboard")).json()
        assert board == [
            {"id": user["id"], "username": "alice_01", "best_time": 3000, "riddles_solved": 3}
        ]

    @pytest.mark.asyncio
    async def test_submit_for_unknown_player(self, test_client):
        response = await test_client.post(
            "/players/submit-score",
            json={"player_id": 999, "riddle_id": "r1", "time_to_solve": 1000},
        )

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_submit_rejects_non_positive_time(self, test_client):
        response = await test_client.post(
            "/players/submit-score",
            json={"player_id": 1, "riddle_id": "r1", "time_to_solve": 0},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_leaderboard_limit_bounds(self, test_client):
        response = await test_client.get("/players/leaderboard", params={"limit": 0})

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_create_player_and_conflict(self, test_client):
        created = await test_client.post("/players", json={"username": "bob_the_builder"})
        duplicate = await test_client.post("/players", json={"username": "bob_the_builder"})

        assert created.status_code == 201
        assert created.json()["best_time"] == 0
        assert duplicate.status_code == 409

    @pytest.mark.asyncio
    async def test_unknown_player_stats(self, test_client):
        response = await test_client.get("/players/ghost/stats")

        assert response.status_code == 404
        assert response.json()["message"] == "Player not found"


class TestRiddleEndpoints:

    @pytest.mark.asyncio
    async def test_admin_manages_riddles(self, test_client, admin_headers):
        headers = await admin_headers()

        bulk = await test_client.post(
            "/riddles/bulk",
            json={
                "riddles": [
                    {"question": "What has keys but can't open locks?", "answer": "A piano", "level": "easy"},
                    {"question": "What gets wetter as it dries?", "answer": "A towel"},
                ]
            },
            headers=headers,
        )
        assert bulk.status_code == 201
        assert bulk.json()["inserted"] == 2
        first_id, second_id = bulk.json()["ids"]

        listed = await test_client.get("/riddles")
        assert listed.status_code == 200
        assert len(listed.json()) == 2

        easy = await test_client.get("/riddles", params={"level": "easy"})
        assert [r["answer"] for r in easy.json()] == ["A piano"]

        random_pick = await test_client.get("/riddles/random")
        assert random_pick.json()["id"] in (first_id, second_id)

        updated = await test_client.put(
            f"/riddles/{second_id}", json={"level": "hard"}, headers=headers
        )
        assert updated.status_code == 200
        assert updated.json()["level"] == "hard"

        deleted = await test_client.delete(f"/riddles/{first_id}", headers=headers)
        assert deleted.json() == {"deleted_id": first_id}
        assert (await test_client.get(f"/riddles/{first_id}")).status_code == 404

    @pytest.mark.asyncio
    async def test_create_requires_admin(self, test_client, register_user):
        riddle = {"question": "Q?", "answer": "A"}

        anonymous = await test_client.post("/riddles", json=riddle)
        _, token = await register_user("alice_01")
        as_user = await test_client.post(
            "/riddles", json=riddle, headers={"Authorization": f"Bearer {token}"}
        )

        assert anonymous.status_code == 401
        assert as_user.status_code == 403

    @pytest.mark.asyncio
    async def test_empty_bulk_load(self, test_client, admin_headers):
        response = await test_client.post(
            "/riddles/bulk", json={"riddles": []}, headers=await admin_headers()
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid riddles data. Expected non-empty array"

    @pytest.mark.asyncio
    async def test_random_with_no_riddles(self, test_client):
        response = await test_client.get("/riddles/random")

        assert response.status_code == 404
        assert response.json()["message"] == "No riddles found in database"

    @pytest.mark.asyncio
    async def test_malformed_riddle_id(self, test_client):
        response = await test_client.get("/riddles/not-a-uuid")

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid riddle ID format"


class TestErrorBoundary:

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_generic_500(self, monkeypatch):
        from riddle_server.main import create_app

        app = create_app()

        @app.get("/boom")
        async def boom():
            raise RuntimeError("secret internals")

        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/boom")

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "internal_server_error"
        assert body["message"] == "An unexpected error occurred"
        assert "stack" not in body
        assert "secret internals" not in response.text

    @pytest.mark.asyncio
    async def test_stack_included_in_development(self, monkeypatch):
        from riddle_server.main import create_app

        monkeypatch.setattr(settings, "environment", "development")
        app = create_app()

        @app.get("/boom")
        async def boom():
            raise RuntimeError("secret internals")

        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/boom")

        assert response.status_code == 500
        assert "RuntimeError" in response.json()["stack"]

    @pytest.mark.asyncio
    async def test_internal_failure_message_suppressed(self):
        from riddle_server.exceptions import DatabaseError
        from riddle_server.main import create_app

        app = create_app()

        @app.get("/db-down")
        async def db_down():
            raise DatabaseError(message="connection refused at 10.0.0.5", context={"host": "10.0.0.5"})

        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/db-down")

        assert response.status_code == 500
        assert response.json()["message"] == "An unexpected error occurred"
        assert "10.0.0.5" not in response.text

    @pytest.mark.asyncio
    async def test_unexpected_exception_logged_with_client_request_id(self, monkeypatch, caplog):
        from riddle_server.main import create_app

        monkeypatch.setattr(settings, "environment", "production")
        caplog.set_level(logging.WARNING, logger="riddle_server.main")
        app = create_app()

        @app.get("/boom")
        async def boom():
            raise RuntimeError("secret internals")

        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/boom", headers={"X-Request-ID": "abc12345"})

        assert response.status_code == 500
        assert response.json()["request_id"] == "abc12345"
        assert response.headers["X-Request-ID"] == "abc12345"
        assert "secret internals" not in response.text

        records = [r for r in caplog.records if r.name == "riddle_server.main"]
        assert records
        logged = records[-1].getMessage()
        assert records[-1].levelno == logging.ERROR
        assert "abc12345" in logged
        assert "'path': '/boom'" in logged
        assert "'method': 'GET'" in logged
        assert "'client':" in logged

    @pytest.mark.asyncio
    async def test_unknown_route_is_logged(self, monkeypatch, caplog):
        from riddle_server.main import create_app

        monkeypatch.setattr(settings, "environment", "production")
        caplog.set_level(logging.WARNING, logger="riddle_server.main")
        app = create_app()

        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.post("/no/such/route")

        assert response.status_code == 404
        assert response.json() == {"msg": "Route not found"}
        logged = " ".join(r.getMessage() for r in caplog.records if r.name == "riddle_server.main")
        assert "Route not found" in logged
        assert "'path': '/no/such/route'" in logged
        assert "'method': 'POST'" in logged
