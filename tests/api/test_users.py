"""
User account routes: registration, login, token refresh, logout and profile updates.
"""

import uuid
from pathlib import Path

from tests.helpers import (
    API,
    DEFAULT_PASSWORD,
    auth_headers,
    image_file,
    login,
    register,
)


def test_register_returns_created_user_without_secrets(client, media_host):
    response = register(client, username="Alice", email="Alice@Example.com", with_cover=True)

    assert response.status_code == 201, response.text
    body = response.json()
    assert body["success"] is True
    assert body["statusCode"] == 201
    assert body["message"] == "User registered successfully"

    user = body["data"]
    assert user["username"] == "alice"
    assert user["email"] == "alice@example.com"
    assert user["fullName"] == "Alice Liddell"
    assert user["avatar"].startswith("https://")
    assert user["coverImage"].startswith("https://")
    assert "password" not in user
    assert "hashedPassword" not in user
    assert "refreshToken" not in user
    assert len(media_host.uploads) == 2


def test_register_without_cover_image_leaves_it_empty(client):
    response = register(client)

    assert response.status_code == 201, response.text
    assert response.json()["data"]["coverImage"] is None


def test_register_with_blank_field_is_rejected(client, media_host):
    response = client.post(
        f"{API}/users/register",
        data={"username": "bob", "email": "bob@example.com", "fullName": "  ", "password": "pw123456"},
        files={"avatar": image_file()},
    )

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["data"] is None
    assert body["message"] == "All fields are required"
    assert media_host.uploads == []


def test_register_without_avatar_is_rejected(client):
    response = client.post(
        f"{API}/users/register",
        data={
            "username": "bob",
            "email": "bob@example.com",
            "fullName": "Bob",
            "password": DEFAULT_PASSWORD,
        },
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Avatar file is required"


def test_register_duplicate_username_or_email_conflicts(client, media_host):
    assert register(client, username="alice").status_code == 201

    same_username = register(client, username="ALICE", email="other@example.com")
    same_email = register(client, username="alice2", email="alice@example.com")

    assert same_username.status_code == 409
    assert same_email.status_code == 409
    assert same_email.json()["message"] == "User with email or username already exists"
    # Conflicts are detected before anything is uploaded
    assert len(media_host.uploads) == 1


def test_register_avatar_upload_failure_returns_500(client, media_host, test_settings):
    media_host.failing_resource_types.add("image")

    response = register(client)

    assert response.status_code == 500
    assert response.json()["message"] == "Failed to upload avatar"
    assert list(Path(test_settings.upload_temp_dir).iterdir()) == []

    # Nothing was persisted, so the same identity can register once the host recovers
    media_host.failing_resource_types.clear()
    assert register(client).status_code == 201


def test_login_with_username_or_email_sets_cookies(client):
    register(client)

    by_username = login(client)
    assert by_username.status_code == 200, by_username.text
    data = by_username.json()["data"]
    assert data["user"]["username"] == "alice"
    assert data["accessToken"]
    assert data["refreshToken"]
    assert by_username.cookies.get("accessToken") == data["accessToken"]
    assert by_username.cookies.get("refreshToken") == data["refreshToken"]

    client.cookies.clear()
    by_email = client.post(
        f"{API}/users/login",
        json={"email": "ALICE@example.com", "password": DEFAULT_PASSWORD},
    )
    assert by_email.status_code == 200, by_email.text


def test_login_with_wrong_password_or_unknown_user_is_unauthorized(client):
    register(client)

    wrong_password = login(client, password="not-the-password")
    unknown_user = login(client, username="nobody")

    for response in (wrong_password, unknown_user):
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid user credentials"
        assert "accessToken" not in response.cookies


def test_login_without_identifier_is_a_validation_error(client):
    response = client.post(f"{API}/users/login", json={"password": "whatever"})

    assert response.status_code == 400
    assert response.json()["success"] is False


def test_profile_with_bearer_header(client, make_user):
    session = make_user()

    response = client.get(
        f"{API}/users/current-user", headers=auth_headers(session["accessToken"])
    )

    assert response.status_code == 200
    assert response.json()["data"]["username"] == "alice"


def test_profile_with_cookie(client):
    register(client)
    assert login(client).status_code == 200

    # The client kept the accessToken cookie from the login response
    response = client.get(f"{API}/users/profile")

    assert response.status_code == 200
    assert response.json()["data"]["email"] == "alice@example.com"


def test_protected_route_without_token_is_unauthorized(client):
    response = client.get(f"{API}/users/current-user")

    assert response.status_code == 401
    body = response.json()
    assert body == {
        "statusCode": 401,
        "data": None,
        "message": "Unauthorized request",
        "success": False,
        "errors": [],
    }


def test_protected_route_with_garbage_token_is_unauthorized(client):
    response = client.get(
        f"{API}/users/current-user", headers=auth_headers("not.a.jwt")
    )

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid or expired access token"


def test_refresh_token_rotates_the_pair(client, make_user):
    session = make_user()

    response = client.post(
        f"{API}/users/refresh-token", json={"refreshToken": session["refreshToken"]}
    )

    assert response.status_code == 200, response.text
    tokens = response.json()["data"]
    assert tokens["refreshToken"] != session["refreshToken"]

    client.cookies.clear()
    profile = client.get(
        f"{API}/users/current-user", headers=auth_headers(tokens["accessToken"])
    )
    assert profile.status_code == 200

    # The previous refresh token has been replaced
    client.cookies.clear()
    replay = client.post(
        f"{API}/users/refresh-token", json={"refreshToken": session["refreshToken"]}
    )
    assert replay.status_code == 401
    assert replay.json()["message"] == "Refresh token is expired or used"


def test_refresh_token_from_cookie(client):
    register(client)
    assert login(client).status_code == 200

    response = client.post(f"{API}/users/refresh-token")

    assert response.status_code == 200, response.text
    assert response.cookies.get("refreshToken") == response.json()["data"]["refreshToken"]


def test_refresh_token_missing_or_invalid(client):
    missing = client.post(f"{API}/users/refresh-token")
    invalid = client.post(f"{API}/users/refresh-token", json={"refreshToken": "garbage"})

    assert missing.status_code == 401
    assert invalid.status_code == 401
    assert invalid.json()["message"] == "Invalid refresh token"


def test_access_token_is_not_accepted_as_refresh_token(client, make_user):
    session = make_user()

    response = client.post(
        f"{API}/users/refresh-token", json={"refreshToken": session["accessToken"]}
    )

    assert response.status_code == 401


def test_second_login_invalidates_first_refresh_token(client, make_user):
    first = make_user()
    second = login(client).json()["data"]
    client.cookies.clear()

    stale = client.post(
        f"{API}/users/refresh-token", json={"refreshToken": first["refreshToken"]}
    )
    current = client.post(
        f"{API}/users/refresh-token", json={"refreshToken": second["refreshToken"]}
    )

    assert stale.status_code == 401
    assert current.status_code == 200


def test_logout_clears_stored_refresh_token(client, make_user):
    session = make_user()

    response = client.post(
        f"{API}/users/logout", headers=auth_headers(session["accessToken"])
    )
    assert response.status_code == 200
    assert response.json()["message"] == "User logged out"

    client.cookies.clear()
    refresh = client.post(
        f"{API}/users/refresh-token", json={"refreshToken": session["refreshToken"]}
    )
    assert refresh.status_code == 401


def test_change_password(client, make_user):
    session = make_user()
    headers = auth_headers(session["accessToken"])

    wrong_old = client.post(
        f"{API}/users/change-password",
        json={"oldPassword": "wrong-password", "newPassword": "brand-new-pass"},
        headers=headers,
    )
    assert wrong_old.status_code == 400
    assert wrong_old.json()["message"] == "Invalid old password"

    changed = client.post(
        f"{API}/users/change-password",
        json={"oldPassword": DEFAULT_PASSWORD, "newPassword": "brand-new-pass"},
        headers=headers,
    )
    assert changed.status_code == 200

    assert login(client, password=DEFAULT_PASSWORD).status_code == 401
    assert login(client, password="brand-new-pass").status_code == 200


def test_update_account_details(client, make_user):
    session = make_user()
    make_user("bob")
    headers = auth_headers(session["accessToken"])

    updated = client.patch(
        f"{API}/users/update-account",
        json={"fullName": "Alice Pleasance", "email": "Alice.New@example.com"},
        headers=headers,
    )
    assert updated.status_code == 200, updated.text
    assert updated.json()["data"]["fullName"] == "Alice Pleasance"
    assert updated.json()["data"]["email"] == "alice.new@example.com"

    taken = client.patch(
        f"{API}/users/update-account",
        json={"email": "bob@example.com"},
        headers=headers,
    )
    assert taken.status_code == 409

    empty = client.patch(f"{API}/users/update-account", json={}, headers=headers)
    assert empty.status_code == 400


def test_update_avatar_replaces_hosted_image(client, make_user, media_host):
    session = make_user()
    old_avatar_id = media_host.uploads[0]

    response = client.patch(
        f"{API}/users/avatar",
        files={"avatar": image_file("new-avatar.png")},
        headers=auth_headers(session["accessToken"]),
    )

    assert response.status_code == 200, response.text
    assert response.json()["data"]["avatar"].endswith(media_host.uploads[-1])
    assert media_host.destroyed == [old_avatar_id]


def test_update_cover_image(client, make_user):
    session = make_user()

    response = client.patch(
        f"{API}/users/cover-image",
        files={"coverImage": image_file("cover.png")},
        headers=auth_headers(session["accessToken"]),
    )
    missing = client.patch(
        f"{API}/users/cover-image", headers=auth_headers(session["accessToken"])
    )

    assert response.status_code == 200, response.text
    assert response.json()["data"]["coverImage"] is not None
    assert missing.status_code == 400


def test_cookie_token_takes_precedence_over_header(client, make_user):
    session = make_user()
    client.cookies.set("accessToken", "not-a-valid-token")

    response = client.get(
        f"{API}/users/current-user", headers=auth_headers(session["accessToken"])
    )

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid or expired access token"


def test_token_for_a_deleted_user_is_unauthorized(client, app):
    token = app.state.token_service.create_access_token(
        user_id=uuid.uuid4(),
        username="ghost",
        email="ghost@example.com",
        full_name="Ghost",
    )

    response = client.get(f"{API}/users/current-user", headers=auth_headers(token))

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid or expired access token"


def test_register_with_malformed_email_is_rejected(client, media_host):
    response = register(client, email="alice@@example")

    assert response.status_code == 400
    body = response.json()
    assert body["message"] == "Invalid registration data"
    assert [err["field"] for err in body["errors"]] == ["email"]
    assert media_host.uploads == []


def test_register_email_is_trimmed_and_lower_cased(client):
    response = register(client, email="  Alice@Example.COM ")

    assert response.status_code == 201, response.text
    assert response.json()["data"]["email"] == "alice@example.com"


def test_update_account_with_malformed_email_is_rejected(client, make_user):
    session = make_user()

    response = client.patch(
        f"{API}/users/update-account",
        json={"email": "not an email"},
        headers=auth_headers(session["accessToken"]),
    )

    assert response.status_code == 400
    assert response.json()["success"] is False
