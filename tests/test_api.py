"""HTTP tests for the users and photos routers.

The orchestrator runs for real against the in-memory repository; only the
publisher and object storage are mocked.
"""
import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from app.api.dependencies import get_photo_service, get_user_service
from app.errors import ConcurrencyError, MessagingError, NotFoundError, StorageError
from app.main import InFlightRequests, app
from app.models.user import UserGender


@pytest.fixture
def photo_service():
    service = MagicMock()
    service.upload_photo = AsyncMock(return_value="pub/new.jpg")
    service.get_photo_url = AsyncMock(return_value="https://storage.example.com/signed")
    service.delete_photo = AsyncMock()
    return service


@pytest.fixture
def client(user_service, photo_service):
    app.dependency_overrides[get_user_service] = lambda: user_service
    app.dependency_overrides[get_photo_service] = lambda: photo_service
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestUsersApi:

    def test_create_then_fetch_round_trip(self, client, publisher):
        resp = client.post(
            "/users",
            json={"name": "Anna", "surname": "Petrova", "about_myself": "", "gender": "MALE"},
        )
        assert resp.status_code == 201
        created = resp.json()
        assert "about_myself" not in created

        resp = client.get(f"/users/{created['id']}")
        assert resp.status_code == 200
        fetched = resp.json()
        assert fetched["name"] == "Anna"
        assert fetched["surname"] == "Petrova"
        assert fetched["gender"] == "MALE"
        assert "about_myself" not in fetched
        assert "birth_date" not in fetched
        assert fetched["photos"] == []
        assert fetched["tags"] == []
        publisher.publish_anket.assert_awaited_once()

    def test_create_with_empty_name(self, client):
        resp = client.post("/users", json={"name": "", "surname": "Petrova"})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "name and surname are required"

    def test_unknown_user(self, client):
        resp = client.get(f"/users/{uuid.uuid4()}")
        assert resp.status_code == 404

    def test_invalid_user_id(self, client):
        resp = client.get("/users/not-a-uuid")
        assert resp.status_code == 422

    def test_profile_update(self, client, make_user, publisher):
        user = make_user(gender=UserGender.MALE)

        resp = client.patch(f"/users/{user.id}/profile", json={"birth_date": "1990-05-01"})

        assert resp.status_code == 204
        event = publisher.publish_anket.await_args.args[0]
        assert event.gender == UserGender.MALE
        assert event.birth_date.isoformat() == "1990-05-01"

    def test_profile_update_invalid_jung(self, client, make_user):
        user = make_user()
        resp = client.patch(f"/users/{user.id}/profile", json={"jung_result": "ABCD"})
        assert resp.status_code == 400

    def test_legacy_name_endpoint(self, client, make_user):
        user = make_user()
        resp = client.patch(f"/users/{user.id}/name", json={"name": "Maria"})
        assert resp.status_code == 204
        assert user.name == "Maria"

    def test_legacy_about_empty_bio_is_absent(self, client, make_user):
        user = make_user(about_myself="Hello")

        resp = client.patch(f"/users/{user.id}/about", json={"about_myself": ""})
        assert resp.status_code == 204

        body = client.get(f"/users/{user.id}").json()
        assert "about_myself" not in body

    def test_legacy_surname_rejects_empty(self, client, make_user):
        user = make_user()
        resp = client.patch(f"/users/{user.id}/surname", json={"surname": ""})
        assert resp.status_code == 400

    def test_delete_user(self, client, make_user, repository):
        user = make_user()
        resp = client.delete(f"/users/{user.id}")
        assert resp.status_code == 204
        assert user.id not in repository.users

    def test_messaging_failure_is_server_error(self, client, make_user, publisher):
        user = make_user()
        publisher.publish_anket.side_effect = MessagingError("Publishing to ankets timed out")

        resp = client.patch(f"/users/{user.id}/profile", json={"gender": "FEMALE"})

        assert resp.status_code == 502
        assert user.gender == UserGender.FEMALE


class TestPhotosApi:

    def test_upload_photo(self, client, make_user, photo_service, publisher):
        user = make_user()

        resp = client.post(
            f"/users/{user.id}/addphoto",
            files={"photo": ("me.png", b"\x89PNG", "image/png")},
        )

        assert resp.status_code == 201
        assert resp.json()["url"] == "pub/new.jpg"
        photo_service.upload_photo.assert_awaited_once_with(b"\x89PNG", "image/png")
        publisher.publish_photo.assert_not_awaited()

    def test_upload_for_unknown_user_skips_storage(self, client, photo_service):
        resp = client.post(
            f"/users/{uuid.uuid4()}/addphoto",
            files={"photo": ("me.png", b"\x89PNG", "image/png")},
        )
        assert resp.status_code == 404
        photo_service.upload_photo.assert_not_awaited()

    def test_upload_removes_object_when_row_not_saved(self, client, make_user, repository, photo_service):
        user = make_user()
        repository.add_photo = AsyncMock(side_effect=StorageError("add_photo failed"))

        resp = client.post(
            f"/users/{user.id}/addphoto",
            files={"photo": ("me.png", b"\x89PNG", "image/png")},
        )

        assert resp.status_code == 500
        photo_service.delete_photo.assert_awaited_once_with("pub/new.jpg")

    def test_list_photos(self, client, make_user, add_photos):
        user = make_user()
        add_photos(user, "pub/1.jpg", "pub/2.jpg")

        resp = client.get(f"/users/{user.id}/photos")

        assert resp.status_code == 200
        assert [p["url"] for p in resp.json()] == ["pub/1.jpg", "pub/2.jpg"]

    def test_set_primary_photo(self, client, make_user, add_photos):
        user = make_user()
        _, second = add_photos(user, "pub/1.jpg", "pub/2.jpg")

        resp = client.patch(f"/users/{user.id}/primary_photo", json={"id": str(second.id)})

        assert resp.status_code == 204
        assert user.primary_photo == "pub/2.jpg"

    def test_set_primary_photo_unknown(self, client, make_user, publisher):
        user = make_user()
        resp = client.patch(f"/users/{user.id}/primary_photo", json={"id": str(uuid.uuid4())})
        assert resp.status_code == 404
        publisher.publish_photo.assert_not_awaited()

    def test_remove_photo(self, client, make_user, add_photos):
        user = make_user()
        (photo,) = add_photos(user, "pub/1.jpg")
        user.primary_photo = photo.url

        resp = client.delete(f"/users/{user.id}/photos/{photo.id}")

        assert resp.status_code == 204
        assert user.primary_photo is None

    def test_photo_redirect(self, client, photo_service):
        resp = client.get("/photos/pub/abc.jpg", follow_redirects=False)

        assert resp.status_code == 307
        assert resp.headers["location"] == "https://storage.example.com/signed"
        photo_service.get_photo_url.assert_awaited_once_with("pub/abc.jpg")

    def test_photo_redirect_unknown(self, client, photo_service):
        photo_service.get_photo_url.side_effect = NotFoundError("Photo x not found.")
        resp = client.get("/photos/x", follow_redirects=False)
        assert resp.status_code == 404


class TestTagsApi:

    def test_add_and_list_tags(self, client, make_user, publisher):
        user = make_user()

        resp = client.put(f"/users/{user.id}/tag", json={"tag": "chess"})
        assert resp.status_code == 201
        assert resp.json()["value"] == "chess"

        resp = client.get(f"/users/{user.id}/tags")
        assert [t["value"] for t in resp.json()] == ["chess"]
        assert publisher.publish_tags.await_args.args[0].tags == "chess"

    def test_remove_tag(self, client, make_user, add_tags, publisher):
        user = make_user()
        tag_a, _ = add_tags(user, "A", "B")

        resp = client.delete(f"/users/{user.id}/tags/{tag_a.id}")

        assert resp.status_code == 204
        assert publisher.publish_tags.await_args.args[0].tags == "B"

    def test_remove_unknown_tag(self, client, make_user):
        user = make_user()
        resp = client.delete(f"/users/{user.id}/tags/{uuid.uuid4()}")
        assert resp.status_code == 404


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "healthy"}


def test_request_id_is_echoed(client):
    resp = client.get("/health", headers={"X-Request-ID": "abc123"})
    assert resp.headers["x-request-id"] == "abc123"


class TestInFlightRequests:

    @pytest.mark.asyncio
    async def test_drain_returns_when_idle(self):
        tracker = InFlightRequests()
        tracker.enter()
        tracker.leave()
        assert await tracker.drain(timeout=0.1) is True

    @pytest.mark.asyncio
    async def test_drain_times_out_with_open_request(self):
        tracker = InFlightRequests()
        tracker.enter()
        assert await tracker.drain(timeout=0.05) is False
        assert tracker.count == 1


def test_lock_contention_is_conflict(client):
    busy = MagicMock()
    busy.update_profile = AsyncMock(side_effect=ConcurrencyError("User is being modified, retry later"))
    app.dependency_overrides[get_user_service] = lambda: busy

    resp = client.patch(f"/users/{uuid.uuid4()}/profile", json={"name": "Maria"})

    assert resp.status_code == 409
