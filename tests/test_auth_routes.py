from datetime import timedelta

from schema.security import TokenType
from security.helpers import create_token


def _login(client, **credentials):
    payload = {"username": "alice", "password": "correct", **credentials}
    return client.post("/api/v1/users/login", json=payload)


def test_login_returns_envelope_and_tokens(client, alice):
    response = _login(client)

    assert response.status_code == 200
    body = response.json()
    assert body["statusCode"] == 200
    assert body["success"] is True
    assert body["message"] == "User logged in successfully"

    data = body["data"]
    assert data["user"]["username"] == "alice"
    assert data["user"]["fullName"] == "Alice Liddell"
    assert "password" not in data["user"]
    assert "refreshToken" not in data["user"]
    assert data["accessToken"] and data["refreshToken"]
    assert data["accessToken"] != data["refreshToken"]
    assert alice.refresh_token == data["refreshToken"]


def test_login_sets_protected_cookies(client):
    response = _login(client)

    cookies = response.headers.get_list("set-cookie")
    assert len(cookies) == 2
    for cookie in cookies:
        lowered = cookie.lower()
        assert lowered.startswith(("accesstoken=", "refreshtoken="))
        assert "httponly" in lowered
        assert "secure" in lowered
        assert "samesite=strict" in lowered


def test_login_errors_use_error_envelope(client):
    response = _login(client, password="wrong")

    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"
    assert response.json() == {
        "statusCode": 401,
        "success": False,
        "message": "Invalid user credentials",
        "errors": [],
    }

    response = client.post("/api/v1/users/login", json={"password": "correct"})
    assert response.status_code == 400
    assert response.json()["message"] == "Username or email is required"

    response = _login(client, username="nobody")
    assert response.status_code == 404


def test_login_rejects_unknown_fields(client):
    response = client.post(
        "/api/v1/users/login",
        json={"username": "alice", "password": "correct", "role": "admin"},
    )

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Invalid request"
    assert any(error["field"].endswith("role") for error in body["errors"])


def test_refresh_with_cookie(client, alice):
    original = _login(client).json()["data"]

    response = client.post("/api/v1/users/refresh-token")

    assert response.status_code == 200
    data = response.json()["data"]
    assert response.json()["message"] == "Access token refreshed"
    assert data["refreshToken"] != original["refreshToken"]
    assert alice.refresh_token == data["refreshToken"]
    assert client.cookies.get("refreshToken") == data["refreshToken"]


def test_refresh_with_body(client, alice):
    original = _login(client).json()["data"]
    client.cookies.clear()

    response = client.post(
        "/api/v1/users/refresh-token", json={"refreshToken": original["refreshToken"]}
    )

    assert response.status_code == 200
    assert alice.refresh_token == response.json()["data"]["refreshToken"]


def test_refresh_without_token(client):
    response = client.post("/api/v1/users/refresh-token")

    assert response.status_code == 401
    assert response.json()["message"] == "Unauthorized request"


def test_login_rotate_replay_logout_scenario(client, alice):
    # Login
    first = _login(client).json()["data"]
    assert alice.refresh_token == first["refreshToken"]

    # Rotate with the just-issued refresh token
    client.cookies.clear()
    rotated = client.post("/api/v1/users/refresh-token", json={"refreshToken": first["refreshToken"]})
    assert rotated.status_code == 200
    second = rotated.json()["data"]
    assert second["accessToken"] != first["accessToken"]
    assert second["refreshToken"] != first["refreshToken"]
    assert alice.refresh_token == second["refreshToken"]

    # Replaying the superseded token fails
    client.cookies.clear()
    replay = client.post("/api/v1/users/refresh-token", json={"refreshToken": first["refreshToken"]})
    assert replay.status_code == 401
    assert "expired or used" in replay.json()["message"]

    # Logout, then the last issued refresh token is dead too
    client.cookies.clear()
    headers = {"Authorization": f"Bearer {second['accessToken']}"}
    logout = client.post("/api/v1/users/logout", headers=headers)
    assert logout.status_code == 200
    assert logout.json()["message"] == "User logged out"
    assert alice.refresh_token is None

    client.cookies.clear()
    after_logout = client.post(
        "/api/v1/users/refresh-token", json={"refreshToken": second["refreshToken"]}
    )
    assert after_logout.status_code == 401

    # The access token is stateless and keeps working until it expires
    assert client.get("/api/v1/users/current-user", headers=headers).status_code == 200


def test_logout_clears_cookies(client):
    _login(client)

    response = client.post("/api/v1/users/logout")

    assert response.status_code == 200
    assert "accessToken" not in client.cookies
    assert "refreshToken" not in client.cookies


def test_current_user_with_cookie_and_bearer(client):
    tokens = _login(client).json()["data"]

    by_cookie = client.get("/api/v1/users/current-user")
    assert by_cookie.status_code == 200
    assert by_cookie.json()["data"]["username"] == "alice"

    client.cookies.clear()
    by_bearer = client.get(
        "/api/v1/users/current-user", headers={"Authorization": f"Bearer {tokens['accessToken']}"}
    )
    assert by_bearer.status_code == 200
    assert by_bearer.json()["data"]["email"] == "alice@example.com"


def test_current_user_rejects_bad_tokens(client, alice):
    assert client.get("/api/v1/users/current-user").status_code == 401

    expired = create_token(
        str(alice.id), TokenType.ACCESS, "access-secret-for-tests", timedelta(seconds=-5)
    )
    forged = create_token(str(alice.id), TokenType.ACCESS, "not-the-secret", timedelta(minutes=5))

    for token in (expired, forged, "garbage"):
        response = client.get(
            "/api/v1/users/current-user", headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid access token"


def test_change_password(client):
    _login(client)

    wrong = client.post(
        "/api/v1/users/change-password",
        json={"oldPassword": "incorrect", "newPassword": "a-much-better-one"},
    )
    assert wrong.status_code == 400
    assert wrong.json()["message"] == "Invalid old password"

    changed = client.post(
        "/api/v1/users/change-password",
        json={"oldPassword": "correct", "newPassword": "a-much-better-one"},
    )
    assert changed.status_code == 200

    assert _login(client).status_code == 401
    assert _login(client, password="a-much-better-one").status_code == 200


def test_update_account_rejects_email_of_another_user(client, store, alice_password_hash):
    store.add(
        username="bob",
        email="bob@example.com",
        full_name="Bob Builder",
        avatar="https://res.cloudinary.com/demo/image/upload/v1700000000/videotube/bob.png",
        password=alice_password_hash,
    )
    _login(client)

    taken = client.patch(
        "/api/v1/users/update-account", json={"fullName": "Alice L.", "email": "bob@example.com"}
    )
    assert taken.status_code == 409

    updated = client.patch(
        "/api/v1/users/update-account", json={"fullName": "Alice L.", "email": "alice@example.org"}
    )
    assert updated.status_code == 200
    assert updated.json()["data"]["fullName"] == "Alice L."
    assert updated.json()["data"]["email"] == "alice@example.org"


def test_openapi_documents_plain_bearer_auth(client):
    schemes = client.get("/openapi.json").json()["components"]["securitySchemes"]

    assert schemes == {"HTTPBearer": {"type": "http", "scheme": "bearer"}}
