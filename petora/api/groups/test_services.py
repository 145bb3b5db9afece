# petora/api/groups/test_services.py
import io
from unittest import mock

import pytest
from marshmallow import ValidationError
from werkzeug.datastructures import FileStorage

from petora.api.groups.services import CommunityService, messages_path
from petora.core.context import Requester
from petora.core.errors import ForbiddenError, NotFoundError, MissingOwnerError, UpstreamError

PLACEHOLDER = "https://placehold.co/600x400/E2E8F0/4A5568?text=No+Image"


def requester(uid):
    return Requester(user_id=uid, display_name=uid.title(), avatar_url=f"https://example.com/{uid}.png")


@pytest.fixture
def service(fake_db, storage_service):
    return CommunityService(fake_db, storage_service, placeholder_image_url=PLACEHOLDER)


@pytest.fixture
def group(service):
    return service.create_group({"name": "Dog Walkers", "description": "Morning walks around the lake."},
                                requester("alice"))


def test_create_group_owner_is_first_member(group):
    assert group.owner_id == "alice"
    assert group.member_count == 1
    assert group.member_ids == ["alice"]
    assert group.image_url == PLACEHOLDER


def test_create_group_validation(service):
    with pytest.raises(ValidationError) as exc_info:
        service.create_group({"name": "DW", "description": "short"}, requester("alice"))
    assert set(exc_info.value.messages) == {"name", "description"}


def test_create_group_requires_owner(service):
    with pytest.raises(MissingOwnerError):
        service.create_group({"name": "Dog Walkers", "description": "Morning walks around the lake."}, None)


def test_join_is_idempotent(service, group):
    first = service.join_group(group.group_id, "bob")
    second = service.join_group(group.group_id, "bob")

    assert first["joined"] is True
    assert second["joined"] is False
    current = service.get_group(group.group_id)
    assert current.member_count == 2
    assert sorted(current.member_ids) == ["alice", "bob"]


def test_member_count_matches_member_ids_after_any_join_sequence(service, group):
    for uid in ["bob", "carol", "bob", "alice", "dave", "carol"]:
        service.join_group(group.group_id, uid)
        current = service.get_group(group.group_id)
        assert current.member_count == len(set(current.member_ids)) == len(current.member_ids)
    assert service.get_group(group.group_id).member_count == 4


def test_join_unknown_group(service):
    with pytest.raises(NotFoundError):
        service.join_group("missing", "bob")


def test_non_member_cannot_post_or_read(service, group):
    with pytest.raises(ForbiddenError):
        service.post_message(group.group_id, requester("mallory"), {"text": "hi"})
    with pytest.raises(ForbiddenError):
        service.list_messages(group.group_id, "mallory")
    with pytest.raises(ForbiddenError):
        service.subscribe_messages(group.group_id, "mallory")


def test_messages_are_ordered_by_server_timestamp(service, group):
    service.join_group(group.group_id, "bob")
    service.post_message(group.group_id, requester("bob"), {"text": "first"})
    service.post_message(group.group_id, requester("alice"), {"text": "  second  "})
    service.post_message(group.group_id, requester("bob"), {"text": "third"})

    messages = service.list_messages(group.group_id, "alice")
    assert [m["text"] for m in messages] == ["first", "second", "third"]
    timestamps = [m["created_at"] for m in messages]
    assert timestamps == sorted(timestamps)
    assert messages[0]["sender_name"] == "Bob"


def test_blank_message_is_rejected(service, group):
    with pytest.raises(ValidationError):
        service.post_message(group.group_id, requester("alice"), {"text": "   "})


def test_delete_group_cascades(service, group, fake_db, blob_store):
    image = FileStorage(stream=io.BytesIO(b"png"), filename="g.png", content_type="image/png")
    with_image = service.create_group({"name": "Cat Club", "description": "All things cats, every day."},
                                      requester("alice"), image)
    service.post_message(with_image.group_id, requester("alice"), {"text": "hello"})
    assert len(blob_store) == 1

    service.delete_group(with_image.group_id)

    assert blob_store == {}
    assert fake_db.query(messages_path(with_image.group_id)) == []
    with pytest.raises(NotFoundError):
        service.get_group(with_image.group_id)
    assert service.get_group(group.group_id).name == "Dog Walkers"


def test_subscription_receives_ordered_snapshots(service, group):
    subscription = service.subscribe_messages(group.group_id, "alice")
    with subscription:
        assert subscription.next_snapshot(timeout=1) == []
        service.post_message(group.group_id, requester("alice"), {"text": "one"})
        service.post_message(group.group_id, requester("alice"), {"text": "two"})
        snapshot = subscription.next_snapshot(timeout=1)
    assert [m["text"] for m in snapshot] == ["one", "two"]
    assert not subscription.active


def test_failed_write_removes_uploaded_group_image(service, fake_db, blob_store):
    image = FileStorage(stream=io.BytesIO(b"png"), filename="g.png", content_type="image/png")
    with mock.patch.object(fake_db, "create", side_effect=UpstreamError()):
        with pytest.raises(UpstreamError):
            service.create_group({"name": "Cat Club", "description": "All things cats, every day."},
                                 requester("alice"), image)
    assert blob_store == {}
