from conftest import register


class TestAuth:
    def test_register_and_me(self, client):
        headers, user_id = register(client, "client", first_name="Marta")
        r = client.get("/api/v1/auth/me", headers=headers)
        assert r.status_code == 200
        data = r.json()
        assert data["id"] == user_id
        assert data["first_name"] == "Marta"
        assert data["city"] == "Rosario"
        assert "password_hash" not in data

    def test_professional_gets_profile(self, client):
        headers, _ = register(client, "professional")
        r = client.get("/api/v1/professionals/me/profile", headers=headers)
        assert r.status_code == 200
        assert r.json()["subscription_type"] == "free"

    def test_duplicate_email(self, client):
        register(client, email="dup@example.com")
        r = client.post("/api/v1/auth/register", json={
            "email": "DUP@example.com", "password": "another-password",
            "first_name": "A", "last_name": "B", "user_type": "client",
        })
        assert r.status_code == 409
        assert r.json()["code"] == "CONFLICT"

    def test_wrong_password(self, client):
        register(client, email="who@example.com")
        r = client.post("/api/v1/auth/login", json={"email": "who@example.com", "password": "nope-nope"})
        assert r.status_code == 401
        assert r.json()["code"] == "UNAUTHORIZED"

    def test_requires_bearer_token(self, client):
        assert client.get("/api/v1/auth/me", headers={"Authorization": "Token abc"}).status_code == 401
        assert client.get("/api/v1/auth/me", headers={"Authorization": "Bearer abc"}).status_code == 401

    def test_logout_revokes_token(self, client):
        headers, _ = register(client)
        assert client.post("/api/v1/auth/logout", headers=headers).status_code == 200
        assert client.get("/api/v1/auth/me", headers=headers).status_code == 401

    def test_health(self, client):
        assert client.get("/health").json()["status"] == "ok"
