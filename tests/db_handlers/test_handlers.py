"""
Database handlers against a throwaway SQLite database.
"""

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from videotube.db import (
    check_db_connection,
    create_engine_from_settings,
    create_session_factory,
    init_db,
)
from videotube.db_handlers import UserDBHandler, VideoDBHandler
from videotube.models import Video


@pytest.fixture
async def session_factory(test_settings):
    engine = create_engine_from_settings(test_settings)
    await init_db(engine)
    yield create_session_factory(engine)
    await engine.dispose()


def user_data(username: str) -> dict:
    return {
        "username": username,
        "email": f"{username}@example.com",
        "full_name": username.title(),
        "hashed_password": "$2b$04$notarealhashbutlongenough",
        "avatar": f"https://cdn.example.com/{username}.png",
    }


def video_data(owner_id, title: str, **extra) -> dict:
    data = {
        "owner_id": owner_id,
        "title": title,
        "description": f"About {title}",
        "video_file": "https://cdn.example.com/v.mp4",
        "thumbnail": "https://cdn.example.com/t.png",
        "duration": 10.0,
    }
    data.update(extra)
    return data


async def test_check_db_connection(test_settings):
    engine = create_engine_from_settings(test_settings)
    try:
        assert await check_db_connection(engine) is True
    finally:
        await engine.dispose()


async def test_create_user_normalizes_identity(session_factory):
    users = UserDBHandler(session_factory)

    user = await users.create_user(user_data("Alice"))

    assert user.username == "alice"
    found = await users.find_by_username_or_email(username="ALICE")
    assert found.id == user.id
    found = await users.find_by_username_or_email(email="ALICE@example.com")
    assert found.id == user.id


async def test_create_user_refuses_plaintext_password(session_factory):
    users = UserDBHandler(session_factory)

    with pytest.raises(ValueError):
        await users.create_user({**user_data("alice"), "password": "plain"})


async def test_duplicate_username_is_an_integrity_error(session_factory):
    users = UserDBHandler(session_factory)
    await users.create_user(user_data("alice"))

    with pytest.raises(IntegrityError):
        await users.create_user({**user_data("alice"), "email": "other@example.com"})


async def test_refresh_token_is_overwritten_and_cleared(session_factory):
    users = UserDBHandler(session_factory)
    user = await users.create_user(user_data("alice"))

    await users.set_refresh_token(user.id, "first")
    await users.set_refresh_token(user.id, "second")
    assert (await users.get(user.id)).refresh_token == "second"

    await users.set_refresh_token(user.id, None)
    assert (await users.get(user.id)).refresh_token is None


async def test_increment_views_keeps_updated_at(session_factory):
    users = UserDBHandler(session_factory)
    videos = VideoDBHandler(session_factory)
    owner = await users.create_user(user_data("alice"))
    video = await videos.create(video_data(owner.id, "Clip"))

    for _ in range(3):
        await videos.increment_views(video.id)

    reloaded = await videos.get(video.id)
    assert reloaded.views == 3
    assert reloaded.updated_at == video.updated_at


async def test_search_videos_filters_and_pages(session_factory):
    users = UserDBHandler(session_factory)
    videos = VideoDBHandler(session_factory)
    alice = await users.create_user(user_data("alice"))
    bob = await users.create_user(user_data("bob"))
    await videos.create(video_data(alice.id, "Garden tour", views=5))
    await videos.create(video_data(alice.id, "Garden update", views=50))
    await videos.create(video_data(alice.id, "Secret draft", is_published=False))
    await videos.create(video_data(bob.id, "Kitchen tour", views=1))

    items, total = await videos.search_videos(sort_by="views", sort_type="desc", limit=2)
    assert total == 3
    assert [v.title for v in items] == ["Garden update", "Garden tour"]
    assert items[0].owner.username == "alice"

    items, total = await videos.search_videos(query="TOUR", owner_id=bob.id)
    assert total == 1
    assert items[0].title == "Kitchen tour"

    _, total = await videos.search_videos(owner_id=alice.id, published_only=False)
    assert total == 3


async def test_search_treats_wildcards_literally(session_factory):
    users = UserDBHandler(session_factory)
    videos = VideoDBHandler(session_factory)
    owner = await users.create_user(user_data("alice"))
    await videos.create(video_data(owner.id, "Bare clip", description="nothing special"))
    await videos.create(video_data(owner.id, "Battery at 100% charge"))
    await videos.create(video_data(owner.id, "snake_case explained"))

    _, total = await videos.search_videos(query="%")
    assert total == 1

    items, total = await videos.search_videos(query="100%")
    assert total == 1
    assert items[0].title == "Battery at 100% charge"

    items, total = await videos.search_videos(query="e_c")
    assert total == 1
    assert items[0].title == "snake_case explained"

    _, total = await videos.search_videos(query="\\")
    assert total == 0


async def test_deleting_user_deletes_their_videos(session_factory):
    users = UserDBHandler(session_factory)
    videos = VideoDBHandler(session_factory)
    owner = await users.create_user(user_data("alice"))
    await videos.create(video_data(owner.id, "One"))
    await videos.create(video_data(owner.id, "Two"))

    await users.remove(owner.id)

    async with session_factory() as db:
        remaining = (await db.execute(select(func.count()).select_from(Video))).scalar_one()
    assert remaining == 0
