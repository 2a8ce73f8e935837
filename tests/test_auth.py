"""Tests for authentication endpoints."""
import uuid
from datetime import timedelta

from httpx import AsyncClient

from community_api.core import tokens

USER_PASSWORD = "testpassword123"


async def _login(client: AsyncClient, email: str, password: str):
    return await client.post("/api/v1/auth/login", json={"email": email, "password": password})


async def test_register_user(client: AsyncClient):
    """Test user registration."""
    response = await client.post(
        "/api/v1/auth/register",
        json={
            "fullName": "New User",
            "email": "NewUser@community.dev",
            "password": "newpassword123",
        }
    )

    assert response.status_code == 201
    data = response.json()
    assert set(data) == {"id", "fullName", "email", "role"}
    assert data["email"] == "newuser@community.dev"
    assert data["role"] == "user"


async def test_register_duplicate_email(client: AsyncClient, test_user):
    """Test registration with duplicate email."""
    response = await client.post(
        "/api/v1/auth/register",
        json={
            "fullName": "Duplicate User",
            "email": test_user.email.upper(),
            "password": "password123",
        }
    )

    assert response.status_code == 400
    body = response.json()
    assert body["errorCode"] == "VALIDATION_ERROR"
    assert "already exists" in body["error"]
    assert "email" in body["details"]


async def test_register_missing_fields(client: AsyncClient):
    response = await client.post("/api/v1/auth/register", json={"email": "a@community.dev"})

    assert response.status_code == 400
    details = response.json()["details"]
    assert "fullName" in details
    assert "password" in details


async def test_register_short_password(client: AsyncClient):
    response = await client.post(
        "/api/v1/auth/register",
        json={"fullName": "Short", "email": "short@community.dev", "password": "12345"}
    )

    assert response.status_code == 400
    assert "password" in response.json()["details"]


async def test_register_invalid_role(client: AsyncClient):
    response = await client.post(
        "/api/v1/auth/register",
        json={"fullName": "Root", "email": "root@community.dev", "password": "secret1", "role": "superuser"}
    )

    assert response.status_code == 400


async def test_register_elevated_role_forbidden_without_admin(client: AsyncClient, auth_headers):
    payload = {"fullName": "Wannabe", "email": "wannabe@community.dev", "password": "secret1", "role": "admin"}

    anonymous = await client.post("/api/v1/auth/register", json=payload)
    as_user = await client.post("/api/v1/auth/register", json=payload, headers=auth_headers)

    assert anonymous.status_code == 403
    assert as_user.status_code == 403


async def test_admin_can_register_mentor(client: AsyncClient, admin_headers):
    response = await client.post(
        "/api/v1/auth/register",
        json={"fullName": "Maya Mentor", "email": "maya@community.dev", "password": "secret1", "role": "mentor"},
        headers=admin_headers,
    )

    assert response.status_code == 201
    assert response.json()["role"] == "mentor"


async def test_login_success(client: AsyncClient, test_user):
    """Test successful login."""
    response = await _login(client, test_user.email, USER_PASSWORD)

    assert response.status_code == 200
    data = response.json()
    assert data["accessToken"]
    assert data["refreshToken"]
    assert data["tokenType"] == "bearer"
    assert data["expiresIn"] == 15 * 60
    assert data["user"] == {
        "id": str(test_user.id),
        "fullName": test_user.full_name,
        "email": test_user.email,
        "role": "user",
    }


async def test_login_wrong_password_and_unknown_email_look_the_same(client: AsyncClient, test_user):
    wrong_password = await _login(client, test_user.email, "wrongpassword")
    unknown_email = await _login(client, "nonexistent@community.dev", USER_PASSWORD)

    assert wrong_password.status_code == unknown_email.status_code == 401
    assert wrong_password.json()["error"] == unknown_email.json()["error"]
    assert wrong_password.json()["details"] == unknown_email.json()["details"] == {}


async def test_get_current_user(client: AsyncClient, test_user, auth_headers):
    """Test getting current user info."""
    response = await client.get("/api/v1/auth/me", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["email"] == test_user.email
    assert data["role"] == "user"
    assert data["isEmailVerified"] is False
    assert "hashedPassword" not in data


async def test_get_current_user_without_header(client: AsyncClient):
    response = await client.get("/api/v1/auth/me")

    assert response.status_code == 401
    assert response.json()["errorCode"] == "NOT_AUTHENTICATED"


async def test_get_current_user_without_bearer_token(client: AsyncClient):
    for header in ("Bearer", "Basic dXNlcjpwYXNz", "token-without-scheme"):
        response = await client.get("/api/v1/auth/me", headers={"Authorization": header})

        assert response.status_code == 401
        assert response.json()["errorCode"] == "NOT_AUTHENTICATED"


async def test_get_current_user_invalid_token(client: AsyncClient):
    response = await client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401
    assert response.json()["errorCode"] == "INVALID_TOKEN"
    assert 'error="invalid_token"' in response.headers["www-authenticate"]


async def test_get_current_user_expired_token(client: AsyncClient, test_user):
    expired = tokens.issue_access_token(test_user.id, expires_delta=timedelta(seconds=-1))

    response = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {expired}"})

    assert response.status_code == 401
    assert response.json()["errorCode"] == "INVALID_TOKEN"


async def test_refresh_token_cannot_authenticate_requests(client: AsyncClient, test_user):
    login = await _login(client, test_user.email, USER_PASSWORD)

    response = await client.get(
        "/api/v1/auth/me",
        headers={"Authorization": f"Bearer {login.json()['refreshToken']}"}
    )

    assert response.status_code == 401


async def test_token_for_unknown_user(client: AsyncClient):
    token = tokens.issue_access_token(uuid.uuid4())

    response = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json()["errorCode"] == "INVALID_TOKEN"


async def test_refresh_from_body(client: AsyncClient, test_user):
    login = await _login(client, test_user.email, USER_PASSWORD)

    response = await client.post(
        "/api/v1/auth/refresh",
        json={"refreshToken": login.json()["refreshToken"]}
    )

    assert response.status_code == 200
    access_token = response.json()["accessToken"]
    me = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {access_token}"})
    assert me.status_code == 200


async def test_refresh_from_cookie(client: AsyncClient, test_user):
    login = await _login(client, test_user.email, USER_PASSWORD)
    cookie = f"refreshToken={login.json()['refreshToken']}"

    response = await client.post("/api/v1/auth/refresh", headers={"Cookie": cookie})

    assert response.status_code == 200
    assert response.json()["accessToken"]


async def test_refresh_invalid_token(client: AsyncClient):
    response = await client.post("/api/v1/auth/refresh", json={"refreshToken": "garbage"})

    assert response.status_code == 401


async def test_logout_always_succeeds(client: AsyncClient):
    first = await client.post("/api/v1/auth/logout", json={"refreshToken": "garbage"})
    second = await client.post("/api/v1/auth/logout")

    assert first.status_code == 200
    assert second.status_code == 200
    assert first.json()["message"]


async def test_update_profile(client: AsyncClient, auth_headers):
    response = await client.put(
        "/api/v1/auth/me",
        headers=auth_headers,
        json={"fullName": "  Renamed User  ", "avatarUrl": "https://cdn.community.dev/a.png"}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["fullName"] == "Renamed User"
    assert data["avatarUrl"] == "https://cdn.community.dev/a.png"


async def test_change_password(client: AsyncClient, test_user, auth_headers):
    """Test changing password."""
    login = await _login(client, test_user.email, USER_PASSWORD)

    response = await client.post(
        "/api/v1/auth/change-password",
        headers=auth_headers,
        json={
            "currentPassword": USER_PASSWORD,
            "newPassword": "newtestpassword123"
        }
    )

    assert response.status_code == 200
    assert response.json()["success"] is True
    refresh = await client.post(
        "/api/v1/auth/refresh", json={"refreshToken": login.json()["refreshToken"]}
    )
    assert refresh.status_code == 401
    assert (await _login(client, test_user.email, "newtestpassword123")).status_code == 200


async def test_change_password_wrong_current(client: AsyncClient, auth_headers):
    """Test changing password with wrong current password."""
    response = await client.post(
        "/api/v1/auth/change-password",
        headers=auth_headers,
        json={
            "currentPassword": "wrongpassword",
            "newPassword": "newtestpassword123"
        }
    )

    assert response.status_code == 401


async def test_forgot_and_reset_password(client: AsyncClient, test_user):
    response = await client.post("/api/v1/auth/forgot-password", json={"email": test_user.email})

    assert response.status_code == 200
    reset_token = response.json()["data"]["resetToken"]

    reset = await client.post(
        "/api/v1/auth/reset-password",
        json={"token": reset_token, "newPassword": "resetpassword1"}
    )
    assert reset.status_code == 200
    assert (await _login(client, test_user.email, "resetpassword1")).status_code == 200

    reused = await client.post(
        "/api/v1/auth/reset-password",
        json={"token": reset_token, "newPassword": "resetpassword2"}
    )
    assert reused.status_code == 400


async def test_forgot_password_unknown_email_same_message(client: AsyncClient, test_user):
    known = await client.post("/api/v1/auth/forgot-password", json={"email": test_user.email})
    unknown = await client.post("/api/v1/auth/forgot-password", json={"email": "ghost@community.dev"})

    assert known.status_code == unknown.status_code == 200
    assert known.json()["message"] == unknown.json()["message"]
    assert unknown.json()["data"] is None


async def test_register_login_forbidden_logout_refresh_scenario(client: AsyncClient):
    register = await client.post(
        "/api/v1/auth/register",
        json={"fullName": "Jane Doe", "email": "jane@x.com", "password": "secret1"}
    )
    assert register.status_code == 201

    login = await _login(client, "jane@x.com", "secret1")
    assert login.status_code == 200
    access_token = login.json()["accessToken"]
    refresh_token = login.json()["refreshToken"]
    assert access_token and refresh_token

    admin_only = await client.get(
        "/api/v1/admin/users", headers={"Authorization": f"Bearer {access_token}"}
    )
    assert admin_only.status_code == 403

    logout = await client.post("/api/v1/auth/logout", json={"refreshToken": refresh_token})
    assert logout.status_code == 200

    refresh = await client.post("/api/v1/auth/refresh", json={"refreshToken": refresh_token})
    assert refresh.status_code == 401


async def test_security_headers_and_request_id(client: AsyncClient):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.headers["x-content-type-options"] == "nosniff"
    assert response.headers["x-request-id"]


async def test_register_multibyte_password_over_limit(client: AsyncClient):
    response = await client.post(
        "/api/v1/auth/register",
        json={"fullName": "Zoé", "email": "zoe@community.dev", "password": "é" * 40}
    )

    assert response.status_code == 400
    assert response.json()["errorCode"] == "VALIDATION_ERROR"
    assert "password" in response.json()["details"]


async def test_reset_password_multibyte_password_over_limit(client: AsyncClient, test_user):
    response = await client.post("/api/v1/auth/forgot-password", json={"email": test_user.email})
    reset_token = response.json()["data"]["resetToken"]

    reset = await client.post(
        "/api/v1/auth/reset-password",
        json={"token": reset_token, "newPassword": "é" * 40}
    )

    assert reset.status_code == 400
    assert "newPassword" in reset.json()["details"]
    assert (await _login(client, test_user.email, USER_PASSWORD)).status_code == 200
