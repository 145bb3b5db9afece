# petora/services/test_realtime.py
import json
from datetime import datetime, timezone

from petora.services.realtime import ChangeSubscription


def test_start_stop_lifecycle(fake_db):
    subscription = ChangeSubscription(fake_db, "notes", order_by="created_at")
    assert not subscription.active

    subscription.start()
    assert subscription.active
    assert len(fake_db.watchers) == 1

    subscription.stop()
    assert not subscription.active
    assert fake_db.watchers == {}


def test_only_latest_snapshot_is_kept(fake_db):
    subscription = ChangeSubscription(fake_db, "notes", order_by="created_at").start()
    fake_db.create("notes", "a", {"text": "a"})
    fake_db.create("notes", "b", {"text": "b"})

    snapshot = subscription.next_snapshot(timeout=1)
    assert [n["text"] for n in snapshot] == ["a", "b"]
    assert subscription.next_snapshot(timeout=0.01) is None
    subscription.stop()


def test_server_sent_events_format_and_cleanup(fake_db):
    fake_db.create("notes", "a", {"text": "a", "seen_at": datetime(2024, 1, 1, tzinfo=timezone.utc)})
    subscription = ChangeSubscription(fake_db, "notes", order_by="created_at").start()

    stream = subscription.server_sent_events(heartbeat_seconds=0.01)
    event = next(stream)
    assert event.startswith("event: snapshot\ndata: ")
    payload = json.loads(event.split("data: ", 1)[1])
    assert payload[0]["seen_at"] == "2024-01-01T00:00:00Z"

    assert next(stream) == ": keep-alive\n\n"

    stream.close()
    assert not subscription.active
