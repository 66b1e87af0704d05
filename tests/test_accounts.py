"""Session tokens, learner details form and dashboard."""

import time

from jose import jwt

from conftest import JWT_SECRET, make_token
from skillhub.errors import StoreUnavailable


class TestSessionTokens:
    """Bearer tokens from the hosted auth service."""

    async def test_missing_header(self, client):
        response = await client.get("/me/dashboard")
        assert response.status_code == 401

    async def test_wrong_scheme(self, client):
        response = await client.get("/me/dashboard", headers={"Authorization": f"Token {make_token()}"})
        assert response.status_code == 401

    async def test_wrong_secret(self, client):
        token = jwt.encode({"sub": "user-1", "aud": "authenticated"}, "not-the-secret", algorithm="HS256")
        response = await client.get("/me/dashboard", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    async def test_wrong_audience(self, client):
        token = make_token(aud="anon")
        response = await client.get("/me/dashboard", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    async def test_expired(self, client):
        token = make_token(exp=int(time.time()) - 60)
        response = await client.get("/me/dashboard", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    async def test_no_subject(self, client):
        token = jwt.encode({"aud": "authenticated"}, JWT_SECRET, algorithm="HS256")
        response = await client.get("/me/dashboard", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401


class TestDashboard:
    """GET /me/dashboard and POST /me/form"""

    async def test_new_learner(self, client, auth_headers):
        response = await client.get("/me/dashboard", headers=auth_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["user"] == {"id": "user-1", "email": "learner@example.com"}
        assert data["profile"] is None
        assert data["has_filled_form"] is False

    async def test_submit_form(self, client, auth_headers, store):
        await store.insert("profiles", {"id": "user-1", "username": "asha", "email": "learner@example.com"})

        submitted = await client.post(
            "/me/form",
            json={"name": "  Asha  ", "phone": "9999999999"},
            headers=auth_headers
        )
        assert submitted.status_code == 200
        assert submitted.json()["form"]["name"] == "Asha"

        data = (await client.get("/me/dashboard", headers=auth_headers)).json()
        assert data["has_filled_form"] is True
        assert data["form"]["phone"] == "9999999999"
        assert data["profile"]["username"] == "asha"

    async def test_blank_name_rejected(self, client, auth_headers, store):
        response = await client.post("/me/form", json={"name": "   "}, headers=auth_headers)
        assert response.status_code == 400
        assert await store.count("user_forms") == 0


class TestHealth:
    """GET /health"""

    async def test_healthy(self, client, store, monkeypatch):
        async def ping():
            return True

        monkeypatch.setattr(store, "ping", ping)
        data = (await client.get("/health")).json()
        assert data["healthy"] is True
        assert data["status"] == {"record_store": "UP", "payments": "CONFIGURED"}

    async def test_store_down_and_missing_credentials(self, client, store, monkeypatch):
        async def ping():
            raise StoreUnavailable()

        monkeypatch.setattr(store, "ping", ping)
        monkeypatch.setattr("skillhub.config.RAZORPAY_KEY_SECRET", None)
        data = (await client.get("/health")).json()
        assert data["healthy"] is False
        assert data["status"] == {"record_store": "DOWN", "payments": "MISSING_CREDENTIALS"}
