import asyncio

import pytest

from beanie import PydanticObjectId

from models.comments import Comment
from models.users import User
from models.videos import Video
from services.accounts import BeanieAccountStore

MEDIA_URL = "https://res.cloudinary.com/demo/{kind}/upload/v1700000000/videotube/{name}"


def _insert_video(owner: User, title: str, **fields) -> Video:
    slug = title.lower().replace(" ", "-")
    video = Video(
        video_file=MEDIA_URL.format(kind="video", name=f"{slug}.mp4"),
        thumbnail=MEDIA_URL.format(kind="image", name=f"{slug}.png"),
        title=title,
        description=f"All about {title.lower()}",
        duration=120,
        owner=owner.id,
        **fields,
    )
    return asyncio.run(video.insert())


@pytest.fixture
def videos(users):
    return {
        "fastapi": _insert_video(users["alice"], "Learning FastAPI", views=5),
        "draft": _insert_video(users["alice"], "Draft", is_published=False),
        "pasta": _insert_video(users["bob"], "Cooking pasta", views=50),
    }


@pytest.fixture
def destroyed(monkeypatch):
    """Records the media URLs the routers ask Cloudinary to delete."""
    urls = []

    async def destroy(url, resource_type="image"):
        urls.append(url)
        return True

    monkeypatch.setattr("routers.videos.destroy_cloudinary_asset", destroy)
    monkeypatch.setattr("routers.users.destroy_cloudinary_asset", destroy)
    return urls


def _titles(response):
    return [video["title"] for video in response.json()["data"]["items"]]


def test_list_hides_unpublished_videos_of_others(db_client, login_as, users, videos):
    as_bob = login_as("bob")
    as_alice = login_as("alice")
    alice_id = str(users["alice"].id)

    listed = db_client.get("/api/v1/videos", headers=as_bob)
    assert listed.status_code == 200
    assert listed.json()["data"]["total"] == 2
    assert "Draft" not in _titles(listed)

    by_bob = db_client.get("/api/v1/videos", params={"userId": alice_id}, headers=as_bob)
    assert _titles(by_bob) == ["Learning FastAPI"]

    own = db_client.get("/api/v1/videos", params={"userId": alice_id}, headers=as_alice)
    assert sorted(_titles(own)) == ["Draft", "Learning FastAPI"]


def test_list_search_and_sort(db_client, login_as, videos):
    headers = login_as("bob")

    searched = db_client.get("/api/v1/videos", params={"query": "fastapi"}, headers=headers)
    assert _titles(searched) == ["Learning FastAPI"]

    by_views = db_client.get("/api/v1/videos", params={"sortBy": "views", "sortType": "asc"}, headers=headers)
    assert _titles(by_views) == ["Learning FastAPI", "Cooking pasta"]

    invalid = db_client.get("/api/v1/videos", params={"userId": "nope"}, headers=headers)
    assert invalid.status_code == 400


def test_get_video_errors(db_client, login_as, videos):
    headers = login_as("bob")

    assert db_client.get(f"/api/v1/videos/{videos['draft'].id}", headers=headers).status_code == 404
    assert db_client.get(f"/api/v1/videos/{PydanticObjectId()}", headers=headers).status_code == 404

    malformed = db_client.get("/api/v1/videos/not-an-id", headers=headers)
    assert malformed.status_code == 400
    assert malformed.json()["message"] == "Invalid video id"


def test_fetching_videos_counts_views_and_fills_watch_history(db_client, login_as, videos):
    headers = login_as("alice")

    first = db_client.get(f"/api/v1/videos/{videos['pasta'].id}", headers=headers)
    assert first.status_code == 200
    assert first.json()["data"]["views"] == 51

    db_client.get(f"/api/v1/videos/{videos['draft'].id}", headers=headers)
    again = db_client.get(f"/api/v1/videos/{videos['pasta'].id}", headers=headers)
    assert again.json()["data"]["views"] == 52

    history = db_client.get("/api/v1/users/watch-history", headers=headers)

    assert history.status_code == 200
    entries = history.json()["data"]
    assert [entry["title"] for entry in entries] == ["Draft", "Cooking pasta"]
    assert entries[0]["owner"]["username"] == "alice"
    assert entries[1]["owner"] == {
        "id": str(videos["pasta"].owner),
        "username": "bob",
        "fullName": "Bob Builder",
        "avatar": MEDIA_URL.format(kind="image", name="bob.png"),
    }
    assert entries[1]["views"] == 52
    assert entries[1]["videoFile"].endswith("cooking-pasta.mp4")


def test_watch_history_skips_deleted_videos(db_client, login_as, videos, destroyed):
    as_alice = login_as("alice")
    as_bob = login_as("bob")

    db_client.get(f"/api/v1/videos/{videos['fastapi'].id}", headers=as_bob)
    db_client.get(f"/api/v1/videos/{videos['pasta'].id}", headers=as_bob)
    db_client.delete(f"/api/v1/videos/{videos['fastapi'].id}", headers=as_alice)

    history = db_client.get("/api/v1/users/watch-history", headers=as_bob).json()["data"]

    assert [entry["title"] for entry in history] == ["Cooking pasta"]


def test_watch_history_starts_empty(db_client, login_as):
    history = db_client.get("/api/v1/users/watch-history", headers=login_as("bob"))

    assert history.status_code == 200
    assert history.json()["data"] == []


def test_toggle_publish_status(db_client, login_as, videos):
    as_alice = login_as("alice")
    as_bob = login_as("bob")
    url = f"/api/v1/videos/toggle/publish/{videos['draft'].id}"

    forbidden = db_client.patch(url, headers=as_bob)
    assert forbidden.status_code == 403
    assert forbidden.json()["message"] == "You can only change the status of your own videos"

    toggled = db_client.patch(url, headers=as_alice)
    assert toggled.status_code == 200
    assert toggled.json()["data"]["isPublished"] is True
    assert asyncio.run(Video.get(videos["draft"].id)).is_published is True

    assert db_client.patch(url, headers=as_alice).json()["data"]["isPublished"] is False
    assert db_client.patch(f"/api/v1/videos/toggle/publish/{PydanticObjectId()}", headers=as_alice).status_code == 404


def test_update_video_details(db_client, login_as, videos):
    url = f"/api/v1/videos/{videos['fastapi'].id}"

    assert db_client.patch(url, data={"title": "Mine now"}, headers=login_as("bob")).status_code == 403

    as_alice = login_as("alice")
    assert db_client.patch(url, data={"title": "   "}, headers=as_alice).status_code == 400

    updated = db_client.patch(url, data={"title": "Learning FastAPI, part 2"}, headers=as_alice)
    assert updated.status_code == 200
    assert updated.json()["data"]["title"] == "Learning FastAPI, part 2"
    assert updated.json()["data"]["description"] == "All about learning fastapi"


def test_delete_video_removes_comments_and_media(db_client, login_as, users, videos, destroyed):
    doomed, kept = videos["fastapi"], videos["pasta"]

    async def comment_on_both():
        for video in (doomed, kept):
            await Comment(content="Nice one", video=video.id, owner=users["bob"].id).insert()

    asyncio.run(comment_on_both())

    forbidden = db_client.delete(f"/api/v1/videos/{doomed.id}", headers=login_as("bob"))
    assert forbidden.status_code == 403
    assert destroyed == []

    deleted = db_client.delete(f"/api/v1/videos/{doomed.id}", headers=login_as("alice"))

    assert deleted.status_code == 200
    assert asyncio.run(Video.get(doomed.id)) is None
    assert asyncio.run(Comment.find(Comment.video == doomed.id).count()) == 0
    assert asyncio.run(Comment.find(Comment.video == kept.id).count()) == 1
    assert sorted(destroyed) == sorted([doomed.video_file, doomed.thumbnail])


def test_register_race_cleans_up_uploaded_images(db_client, users, destroyed, monkeypatch):
    avatar_url = MEDIA_URL.format(kind="image", name="fresh-avatar.png")

    async def accept_upload(*args, **kwargs):
        return None

    async def upload(file, *args, **kwargs):
        return 200, {
            "public_id": "videotube/fresh-avatar",
            "resource_type": "image",
            "secure_url": avatar_url,
            "url": avatar_url.replace("https://", "http://"),
        }

    async def nobody_registered_yet(self, username=None, email=None):
        # Another request creates the same account between the lookup and the insert
        return None

    monkeypatch.setattr("routers.users.validate_upload", accept_upload)
    monkeypatch.setattr("routers.users.upload_file_to_cloudinary", upload)
    monkeypatch.setattr(BeanieAccountStore, "find_by_identifier", nobody_registered_yet)

    response = db_client.post(
        "/api/v1/users/register",
        data={
            "fullName": "Alice Again",
            "email": "alice@example.com",
            "username": "alice",
            "password": "long-enough-password",
        },
        files={"avatar": ("avatar.png", b"\x89PNG\r\n\x1a\n", "image/png")},
    )

    assert response.status_code == 409
    assert destroyed == [avatar_url]
    assert asyncio.run(User.find(User.username == "alice").count()) == 1
