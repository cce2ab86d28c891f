"""HTTP tests for the auth and locks routers."""

from fastapi.testclient import TestClient

from pagegate.locks.router import get_lock_manager
from pagegate.locks.service import LockResult
from pagegate.main import app
from pagegate.security.deps import get_access_guard
from pagegate.security.guard import AccessGuard
from pagegate.shared.errors import StorageUnavailable

from .conftest import TRUSTED_REFERER

KEY = {"resource": "std_release", "resource_id": 7}

# ---------------------------------------------------------------------------
# Origin guard
# ---------------------------------------------------------------------------


class TestOriginGuard:
    def test_healthz_is_open(self, client: TestClient) -> None:
        resp = client.get("/api/healthz")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"

    def test_missing_referer_forbidden(self, client: TestClient, accounts) -> None:
        resp = client.get("/api/locks", params=KEY, headers=accounts["alice"].headers(referer=None))
        assert resp.status_code == 403

    def test_foreign_referer_forbidden(self, client: TestClient, accounts) -> None:
        headers = accounts["alice"].headers(referer="https://evil.example.net/phish")
        assert client.get("/api/locks", params=KEY, headers=headers).status_code == 403

    def test_bypass_pattern_allows_login_without_referer(self, client: TestClient, accounts) -> None:
        app.dependency_overrides[get_access_guard] = lambda: AccessGuard(
            {"testserver"}, ["/api/auth/login"]
        )
        alice = accounts["alice"]
        resp = client.post("/api/auth/login", json={"email": alice.email, "password": alice.password})
        assert resp.status_code == 200
        resp = client.get("/api/locks", params=KEY, headers=alice.headers(referer=None))
        assert resp.status_code == 403

    def test_hostless_referer_does_not_fall_back_to_bypass(self, client: TestClient, accounts) -> None:
        app.dependency_overrides[get_access_guard] = lambda: AccessGuard(
            {"testserver"}, ["/api/auth/login"]
        )
        alice = accounts["alice"]
        resp = client.post(
            "/api/auth/login",
            json={"email": alice.email, "password": alice.password},
            headers={"Referer": "x"},
        )
        assert resp.status_code == 403


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class TestAuth:
    def test_login(self, client: TestClient, accounts) -> None:
        bob = accounts["bob"]
        resp = client.post(
            "/api/auth/login",
            json={"email": bob.email, "password": bob.password},
            headers={"Referer": TRUSTED_REFERER},
        )
        assert resp.status_code == 200
        token = resp.json()["access_token"]
        me = client.get(
            "/api/auth/me",
            headers={"Authorization": f"Bearer {token}", "Referer": TRUSTED_REFERER},
        )
        assert me.json()["name"] == "Bob"

    def test_login_wrong_password(self, client: TestClient, accounts) -> None:
        resp = client.post(
            "/api/auth/login",
            json={"email": accounts["bob"].email, "password": "nope-nope"},
            headers={"Referer": TRUSTED_REFERER},
        )
        assert resp.status_code == 401

    def test_me_requires_token(self, client: TestClient) -> None:
        assert client.get("/api/auth/me", headers={"Referer": TRUSTED_REFERER}).status_code == 401

    def test_bad_token(self, client: TestClient) -> None:
        headers = {"Authorization": "Bearer garbage", "Referer": TRUSTED_REFERER}
        assert client.get("/api/auth/me", headers=headers).status_code == 401

    def test_admin_creates_user_who_can_log_in(self, client: TestClient, accounts) -> None:
        payload = {"email": "dave@example.com", "name": "Dave", "password": "dave-password"}
        resp = client.post("/api/auth/users", json=payload, headers=accounts["alice"].headers())
        assert resp.status_code == 201
        assert resp.json()["role"] == "editor"

        login = client.post(
            "/api/auth/login",
            json={"email": "dave@example.com", "password": "dave-password"},
            headers={"Referer": TRUSTED_REFERER},
        )
        assert login.status_code == 200

    def test_duplicate_email(self, client: TestClient, accounts) -> None:
        payload = {"email": "bob@example.com", "name": "Bob 2", "password": "whatever-pw"}
        resp = client.post("/api/auth/users", json=payload, headers=accounts["alice"].headers())
        assert resp.status_code == 409

    def test_editor_cannot_create_users(self, client: TestClient, accounts) -> None:
        payload = {"email": "eve@example.com", "name": "Eve", "password": "eve-password"}
        resp = client.post("/api/auth/users", json=payload, headers=accounts["bob"].headers())
        assert resp.status_code == 403


# ---------------------------------------------------------------------------
# Locks
# ---------------------------------------------------------------------------


class TestLocks:
    def test_acquire_and_lookup(self, client: TestClient, accounts) -> None:
        alice = accounts["alice"]
        resp = client.post("/api/locks/acquire", json=KEY, headers=alice.headers())
        assert resp.status_code == 200
        body = resp.json()
        assert body["locked_by_user_id"] == alice.id
        assert body["locked_by_name"] == "Alice"
        assert 295 <= body["remaining_sec"] <= 300

        got = client.get("/api/locks", params=KEY, headers=accounts["bob"].headers())
        assert got.json()["locked_by_name"] == "Alice"

    def test_lookup_unlocked(self, client: TestClient, accounts) -> None:
        resp = client.get("/api/locks", params=KEY, headers=accounts["bob"].headers())
        assert resp.status_code == 200
        assert resp.json() is None

    def test_conflict_names_holder(self, client: TestClient, accounts) -> None:
        client.post("/api/locks/acquire", json=KEY, headers=accounts["alice"].headers())
        resp = client.post("/api/locks/acquire", json=KEY, headers=accounts["bob"].headers())
        assert resp.status_code == 409
        detail = resp.json()["detail"]
        assert detail["message"] == "Locked by Alice"
        assert detail["lock"]["locked_by_user_id"] == accounts["alice"].id

    def test_viewer_cannot_acquire(self, client: TestClient, accounts) -> None:
        resp = client.post("/api/locks/acquire", json=KEY, headers=accounts["carol"].headers())
        assert resp.status_code == 403

    def test_heartbeat(self, client: TestClient, accounts) -> None:
        bob = accounts["bob"]
        assert client.post("/api/locks/heartbeat", json=KEY, headers=bob.headers()).status_code == 404
        client.post("/api/locks/acquire", json=KEY, headers=bob.headers())
        assert client.post("/api/locks/heartbeat", json=KEY, headers=bob.headers()).status_code == 200
        other = client.post("/api/locks/heartbeat", json=KEY, headers=accounts["alice"].headers())
        assert other.status_code == 409

    def test_release_requires_holder(self, client: TestClient, accounts) -> None:
        client.post("/api/locks/acquire", json=KEY, headers=accounts["alice"].headers())
        resp = client.post("/api/locks/release", json=KEY, headers=accounts["bob"].headers())
        assert resp.status_code == 403

        resp = client.post("/api/locks/release", json=KEY, headers=accounts["alice"].headers())
        assert resp.json() == {"released": True}
        resp = client.post("/api/locks/release", json=KEY, headers=accounts["alice"].headers())
        assert resp.json() == {"released": False}

        resp = client.post("/api/locks/acquire", json=KEY, headers=accounts["bob"].headers())
        assert resp.status_code == 200

    def test_force_release(self, client: TestClient, accounts) -> None:
        client.post("/api/locks/acquire", json=KEY, headers=accounts["bob"].headers())
        denied = client.post("/api/locks/force-release", json=KEY, headers=accounts["bob"].headers())
        assert denied.status_code == 403
        resp = client.post("/api/locks/force-release", json=KEY, headers=accounts["alice"].headers())
        assert resp.json() == {"released": True}

    def test_sweep_admin_only(self, client: TestClient, accounts) -> None:
        assert client.post("/api/locks/sweep", headers=accounts["bob"].headers()).status_code == 403
        resp = client.post("/api/locks/sweep", headers=accounts["alice"].headers())
        assert resp.json() == {"removed": 0}

    def test_storage_failure_is_503(self, client: TestClient, accounts) -> None:
        class _Broken:
            def get_lock(self, *a, **kw):
                raise StorageUnavailable("lock lookup failed")

        app.dependency_overrides[get_lock_manager] = lambda: _Broken()
        resp = client.get("/api/locks", params=KEY, headers=accounts["bob"].headers())
        assert resp.status_code == 503

    def test_conflict_with_vanished_winner(self, client: TestClient, accounts) -> None:
        class _LostToVanishedLock:
            def try_acquire(self, resource, resource_id, actor_id, now=None):
                return LockResult(False, resource, resource_id, None, None, None)

        app.dependency_overrides[get_lock_manager] = lambda: _LostToVanishedLock()
        resp = client.post("/api/locks/acquire", json=KEY, headers=accounts["bob"].headers())
        assert resp.status_code == 409
        assert resp.json()["detail"] == {"message": "Lock is busy, retry", "lock": None}
