from httpx import AsyncClient

from schoolfees.core.config import settings

# Matches the password the conftest `user` fixture is created with
TEST_PASSWORD = "StrongPass123"


def _register_payload(**overrides) -> dict:
    payload = {
        "email": "head@greenfield.ac.ke",
        "password": "SecurePass456",
        "name": "Grace Wanjiru",
        "school_name": "Greenfield School",
        "role": "director",
        "system_key": "test-system-key",
    }
    payload.update(overrides)
    return payload


async def test_register_with_system_key(client: AsyncClient) -> None:
    response = await client.post("/api/v1/auth/register", json=_register_payload())
    assert response.status_code == 201
    data = response.json()
    assert data["success"] is True
    assert data["user"]["email"] == "head@greenfield.ac.ke"
    assert data["user"]["role"] == "director"
    assert "password" not in data["user"]


async def test_register_rejects_wrong_system_key(client: AsyncClient) -> None:
    response = await client.post("/api/v1/auth/register", json=_register_payload(system_key="guess"))
    assert response.status_code == 403
    assert response.json()["detail"] == "Unauthorized: Invalid system key"


async def test_register_duplicate_email(client: AsyncClient) -> None:
    first = await client.post("/api/v1/auth/register", json=_register_payload())
    assert first.status_code == 201
    second = await client.post(
        "/api/v1/auth/register", json=_register_payload(email="HEAD@greenfield.ac.ke")
    )
    assert second.status_code == 409


async def test_register_validates_payload(client: AsyncClient) -> None:
    response = await client.post("/api/v1/auth/register", json=_register_payload(password="short"))
    assert response.status_code == 422


async def test_login_sets_http_only_cookie(client: AsyncClient, user) -> None:
    response = await client.post(
        "/api/v1/auth/login", json={"email": user.email, "password": TEST_PASSWORD}
    )
    assert response.status_code == 200
    data = response.json()
    assert data["token"]
    assert data["user"]["school_name"] == "Sunrise Academy"

    set_cookie = response.headers["set-cookie"]
    assert set_cookie.startswith(f"{settings.auth_cookie_name}=")
    assert "httponly" in set_cookie.lower()


async def test_login_wrong_password(client: AsyncClient, user) -> None:
    response = await client.post(
        "/api/v1/auth/login", json={"email": user.email, "password": "WrongPass999"}
    )
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid email or password"


async def test_login_inactive_user(client: AsyncClient, user, db_session) -> None:
    user.status = "INACTIVE"
    await db_session.commit()
    response = await client.post(
        "/api/v1/auth/login", json={"email": user.email, "password": TEST_PASSWORD}
    )
    assert response.status_code == 403


async def test_me_with_cookie(client: AsyncClient, user) -> None:
    login = await client.post(
        "/api/v1/auth/login", json={"email": user.email, "password": TEST_PASSWORD}
    )
    token = login.json()["token"]

    response = await client.get(
        "/api/v1/auth/me", headers={"Cookie": f"{settings.auth_cookie_name}={token}"}
    )
    assert response.status_code == 200
    assert response.json()["user"]["id"] == str(user.id)


async def test_me_with_bearer(auth_client: AsyncClient, user) -> None:
    response = await auth_client.get("/api/v1/auth/me")
    assert response.status_code == 200
    assert response.json()["user"]["email"] == user.email


async def test_me_without_session(client: AsyncClient) -> None:
    response = await client.get("/api/v1/auth/me")
    assert response.status_code == 401


async def test_me_with_garbage_token(client: AsyncClient) -> None:
    response = await client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


async def test_logout_clears_cookie(client: AsyncClient) -> None:
    response = await client.post("/api/v1/auth/logout")
    assert response.status_code == 200
    assert response.json() == {"success": True}
    set_cookie = response.headers["set-cookie"]
    assert set_cookie.startswith(f"{settings.auth_cookie_name}=")
    assert "max-age=0" in set_cookie.lower()


async def test_protected_routes_require_session(client: AsyncClient) -> None:
    for path in ["/api/v1/students", "/api/v1/payments", "/api/v1/dashboard", "/api/v1/sms/templates"]:
        response = await client.get(path)
        assert response.status_code == 401, path
