# petora/services/firestore_service.py
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from flask import Flask
from firebase_admin import firestore
from google.api_core import exceptions as google_exceptions

from petora.core.errors import NotFoundError, UpstreamError
from petora.utils.datetime_utils import for_firestore, from_firestore

Filter = Tuple[str, str, Any]


class FirestoreService:
    """
    Collection-scoped access to Firestore.

    Every other service goes through this class instead of holding its own
    client, so the set of database primitives the app relies on stays small:
    per-document CRUD, equality/sort queries, atomic set/counter updates and
    query snapshots. Sub-collections are addressed with path strings such as
    ``groups/{group_id}/messages``.
    """

    def __init__(self):
        self.db = None

    def init_app(self, app: Flask):
        """Called once from create_app after firebase_admin is initialised."""
        self.db = firestore.client()
        logging.info("FirestoreService: Firestore client initialised.")

    def _collection(self, collection: str):
        if self.db is None:
            raise RuntimeError("FirestoreService is not initialised. Call init_app first.")
        return self.db.collection(collection)

    # --- single-document CRUD ---

    def create(self, collection: str, doc_id: str, data: Dict[str, Any]) -> str:
        """Writes a new document; ``created_at`` is assigned by the server."""
        payload = for_firestore(dict(data))
        payload['created_at'] = firestore.SERVER_TIMESTAMP
        try:
            self._collection(collection).document(doc_id).set(payload)
        except google_exceptions.GoogleAPICallError as e:
            logging.error(f"Firestore create failed ({collection}/{doc_id}): {e}", exc_info=True)
            raise UpstreamError() from e
        return doc_id

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        try:
            doc = self._collection(collection).document(doc_id).get()
        except google_exceptions.GoogleAPICallError as e:
            logging.error(f"Firestore read failed ({collection}/{doc_id}): {e}", exc_info=True)
            raise UpstreamError() from e
        if not doc.exists:
            return None
        return from_firestore(doc.to_dict())

    def update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        try:
            self._collection(collection).document(doc_id).update(for_firestore(fields))
        except google_exceptions.NotFound as e:
            raise NotFoundError(f"{collection}/{doc_id} does not exist.") from e
        except google_exceptions.GoogleAPICallError as e:
            logging.error(f"Firestore update failed ({collection}/{doc_id}): {e}", exc_info=True)
            raise UpstreamError() from e

    def delete(self, collection: str, doc_id: str) -> bool:
        """Physically removes the document. Returns False when there was nothing to delete."""
        doc_ref = self._collection(collection).document(doc_id)
        try:
            if not doc_ref.get().exists:
                return False
            doc_ref.delete()
            return True
        except google_exceptions.GoogleAPICallError as e:
            logging.error(f"Firestore delete failed ({collection}/{doc_id}): {e}", exc_info=True)
            raise UpstreamError() from e

    # --- queries ---

    def _build_query(self, collection: str, filters: Iterable[Filter] = (),
                     order_by: Optional[str] = None, descending: bool = False,
                     limit: Optional[int] = None):
        query = self._collection(collection)
        for field_path, op, value in filters:
            query = query.where(field_path, op, value)
        if order_by:
            direction = firestore.Query.DESCENDING if descending else firestore.Query.ASCENDING
            query = query.order_by(order_by, direction=direction)
        if limit:
            query = query.limit(limit)
        return query

    def query(self, collection: str, filters: Iterable[Filter] = (),
              order_by: Optional[str] = None, descending: bool = False,
              limit: Optional[int] = None) -> List[Dict[str, Any]]:
        try:
            docs = self._build_query(collection, filters, order_by, descending, limit).stream()
            return [from_firestore(doc.to_dict()) for doc in docs]
        except google_exceptions.GoogleAPICallError as e:
            logging.error(f"Firestore query failed ({collection}): {e}", exc_info=True)
            raise UpstreamError() from e

    # --- atomic set / counter primitives ---

    def add_to_set(self, collection: str, doc_id: str, field: str, value: Any,
                   counter_field: Optional[str] = None) -> bool:
        """
        Adds ``value`` to the array ``field`` and bumps ``counter_field`` by one,
        in one transaction. Returns False (and writes nothing) when the value is
        already present, so repeated calls never double-count.
        """
        doc_ref = self._collection(collection).document(doc_id)
        transaction = self.db.transaction()

        @firestore.transactional
        def _add_in_transaction(transaction):
            snapshot = doc_ref.get(transaction=transaction)
            if not snapshot.exists:
                raise NotFoundError(f"{collection}/{doc_id} does not exist.")
            if value in (snapshot.to_dict().get(field) or []):
                return False
            updates = {field: firestore.ArrayUnion([value])}
            if counter_field:
                updates[counter_field] = firestore.Increment(1)
            transaction.update(doc_ref, updates)
            return True

        try:
            return _add_in_transaction(transaction)
        except google_exceptions.GoogleAPICallError as e:
            logging.error(f"Firestore set-add failed ({collection}/{doc_id}.{field}): {e}", exc_info=True)
            raise UpstreamError() from e

    def toggle_in_set(self, collection: str, doc_id: str, field: str, value: Any) -> bool:
        """
        Adds ``value`` to the array ``field`` if absent, removes it if present.
        Returns the membership after the toggle.
        """
        doc_ref = self._collection(collection).document(doc_id)
        transaction = self.db.transaction()

        @firestore.transactional
        def _toggle_in_transaction(transaction):
            snapshot = doc_ref.get(transaction=transaction)
            if not snapshot.exists:
                raise NotFoundError(f"{collection}/{doc_id} does not exist.")
            if value in (snapshot.to_dict().get(field) or []):
                transaction.update(doc_ref, {field: firestore.ArrayRemove([value])})
                return False
            transaction.update(doc_ref, {field: firestore.ArrayUnion([value])})
            return True

        try:
            return _toggle_in_transaction(transaction)
        except google_exceptions.GoogleAPICallError as e:
            logging.error(f"Firestore set-toggle failed ({collection}/{doc_id}.{field}): {e}", exc_info=True)
            raise UpstreamError() from e

    def append_to_array(self, collection: str, doc_id: str, field: str, item: Any) -> None:
        """Atomic append. Items must be unique (e.g. carry their own id) to be kept."""
        self.update(collection, doc_id, {field: firestore.ArrayUnion([for_firestore(item)])})

    def delete_collection(self, collection: str, batch_size: int = 100) -> int:
        """Deletes every document of a (sub-)collection in batches. Returns the count."""
        deleted = 0
        try:
            while True:
                docs = list(self._collection(collection).limit(batch_size).stream())
                if not docs:
                    return deleted
                batch = self.db.batch()
                for doc in docs:
                    batch.delete(doc.reference)
                batch.commit()
                deleted += len(docs)
        except google_exceptions.GoogleAPICallError as e:
            logging.error(f"Firestore collection delete failed ({collection}): {e}", exc_info=True)
            raise UpstreamError() from e

    # --- change notification ---

    def watch(self, collection: str, callback: Callable[[List[Dict[str, Any]]], None],
              filters: Iterable[Filter] = (), order_by: Optional[str] = None,
              descending: bool = False):
        """
        Subscribes ``callback`` to the result set of a query. The callback
        receives the full, ordered list of documents after every change.
        Returns a handle whose ``unsubscribe()`` stops the stream.
        """
        query = self._build_query(collection, filters, order_by, descending)

        def on_snapshot(docs, changes, read_time):
            callback([from_firestore(doc.to_dict()) for doc in docs])

        return query.on_snapshot(on_snapshot)
