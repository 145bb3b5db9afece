# petora/services/realtime.py
"""
Live query subscriptions.

``ChangeSubscription`` wraps the database's query listener with an explicit
start/stop lifecycle. Snapshots arrive on a listener thread and are handed
to the consumer through a queue; only the most recent snapshot matters, so
stale ones are dropped when the consumer is slow.
"""
import json
import logging
import queue
from typing import Any, Callable, Dict, Iterator, List, Optional

from petora.utils.datetime_utils import to_iso_z

Snapshot = List[Dict[str, Any]]


class ChangeSubscription:

    def __init__(self, firestore_service, collection: str, filters=(), order_by: Optional[str] = None,
                 descending: bool = False):
        self.firestore_service = firestore_service
        self.collection = collection
        self.filters = tuple(filters)
        self.order_by = order_by
        self.descending = descending
        self._queue: "queue.Queue[Snapshot]" = queue.Queue(maxsize=1)
        self._watch = None

    @property
    def active(self) -> bool:
        return self._watch is not None

    def start(self) -> "ChangeSubscription":
        if self._watch is None:
            self._watch = self.firestore_service.watch(
                self.collection, self._on_change,
                filters=self.filters, order_by=self.order_by, descending=self.descending
            )
            logging.info(f"Subscription started on {self.collection}")
        return self

    def stop(self) -> None:
        if self._watch is not None:
            self._watch.unsubscribe()
            self._watch = None
            logging.info(f"Subscription stopped on {self.collection}")

    def __enter__(self):
        return self.start()

    def __exit__(self, exc_type, exc, tb):
        self.stop()

    def _on_change(self, snapshot: Snapshot) -> None:
        try:
            self._queue.get_nowait()
        except queue.Empty:
            pass
        self._queue.put_nowait(snapshot)

    def next_snapshot(self, timeout: Optional[float] = None) -> Optional[Snapshot]:
        """Blocks until a snapshot arrives; None on timeout."""
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def server_sent_events(self, heartbeat_seconds: float, event: str = "snapshot",
                           transform: Optional[Callable[[Snapshot], Any]] = None) -> Iterator[str]:
        """
        Formats snapshots as an SSE stream. A comment line is sent when nothing
        changed for ``heartbeat_seconds`` so proxies keep the connection open.
        ``transform`` reshapes each snapshot before encoding.
        Stops the subscription when the consumer goes away.
        """
        try:
            while self.active:
                snapshot = self.next_snapshot(timeout=heartbeat_seconds)
                if snapshot is None:
                    yield ": keep-alive\n\n"
                    continue
                if transform is not None:
                    snapshot = transform(snapshot)
                yield f"event: {event}\ndata: {json.dumps(snapshot, default=_json_default)}\n\n"
        finally:
            self.stop()


def _json_default(value):
    if hasattr(value, 'isoformat'):
        return to_iso_z(value)
    raise TypeError(f"{type(value).__name__} is not JSON serializable")
