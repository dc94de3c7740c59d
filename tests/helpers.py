"""Request helpers shared by the API tests."""

import io

import httpx
from fastapi.testclient import TestClient

API = "/api/v1"

DEFAULT_PASSWORD = "s3cret-pass"


def image_file(name: str = "avatar.png") -> tuple[str, io.BytesIO, str]:
    return (name, io.BytesIO(b"\x89PNG\r\n\x1a\nfake-image"), "image/png")


def video_file(name: str = "clip.mp4") -> tuple[str, io.BytesIO, str]:
    return (name, io.BytesIO(b"\x00\x00\x00\x18ftypmp42fake-video"), "video/mp4")


def register(
    client: TestClient,
    username: str = "alice",
    email: str | None = None,
    full_name: str = "Alice Liddell",
    password: str = DEFAULT_PASSWORD,
    with_cover: bool = False,
) -> httpx.Response:
    files = {"avatar": image_file()}
    if with_cover:
        files["coverImage"] = image_file("cover.png")
    return client.post(
        f"{API}/users/register",
        data={
            "username": username,
            "email": email or f"{username}@example.com",
            "fullName": full_name,
            "password": password,
        },
        files=files,
    )


def login(
    client: TestClient, username: str = "alice", password: str = DEFAULT_PASSWORD
) -> httpx.Response:
    return client.post(
        f"{API}/users/login", json={"username": username, "password": password}
    )


def auth_headers(access_token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {access_token}"}


def publish(
    client: TestClient,
    access_token: str,
    title: str = "My first video",
    description: str = "A short clip",
) -> httpx.Response:
    return client.post(
        f"{API}/videos",
        data={"title": title, "description": description},
        files={"videoFile": video_file(), "thumbnail": image_file("thumb.png")},
        headers=auth_headers(access_token),
    )
