# conftest.py
"""
Shared pytest fixtures.

The app is built through ``create_app('testing', services=...)`` with an
in-memory Firestore gateway and a mocked Storage bucket, so the suite runs
without a Firebase project.
"""
import copy
import itertools
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from flask_jwt_extended import create_access_token, create_refresh_token
from google.api_core import exceptions as google_exceptions

from petora import create_app
from petora.core.errors import NotFoundError
from petora.services.storage_service import StorageService

EPOCH = datetime(2024, 1, 1, tzinfo=timezone.utc)


class _WatchHandle:
    def __init__(self, db, key):
        self._db = db
        self._key = key

    def unsubscribe(self):
        self._db.watchers.pop(self._key, None)


class InMemoryFirestore:
    """
    Same interface as FirestoreService, backed by dicts.
    ``created_at`` values are strictly increasing, like server timestamps.
    """

    def __init__(self):
        self.collections = {}
        self.watchers = {}
        self._clock = itertools.count(1)
        self._watch_ids = itertools.count(1)

    def init_app(self, app):
        pass

    def server_timestamp(self):
        return EPOCH + timedelta(milliseconds=next(self._clock))

    def _docs(self, collection):
        return self.collections.setdefault(collection, {})

    def _notify(self, collection):
        for key, (watched, callback, filters, order_by, descending) in list(self.watchers.items()):
            if watched == collection:
                callback(self.query(collection, filters, order_by, descending))

    # --- CRUD ---

    def create(self, collection, doc_id, data):
        document = copy.deepcopy(dict(data))
        document['created_at'] = self.server_timestamp()
        self._docs(collection)[doc_id] = document
        self._notify(collection)
        return doc_id

    def get(self, collection, doc_id):
        document = self._docs(collection).get(doc_id)
        return copy.deepcopy(document) if document is not None else None

    def update(self, collection, doc_id, fields):
        docs = self._docs(collection)
        if doc_id not in docs:
            raise NotFoundError(f"{collection}/{doc_id} does not exist.")
        docs[doc_id].update(copy.deepcopy(fields))
        self._notify(collection)

    def delete(self, collection, doc_id):
        removed = self._docs(collection).pop(doc_id, None) is not None
        if removed:
            self._notify(collection)
        return removed

    def query(self, collection, filters=(), order_by=None, descending=False, limit=None):
        results = []
        for document in self._docs(collection).values():
            if all(self._matches(document, f) for f in filters):
                results.append(copy.deepcopy(document))
        if order_by:
            results.sort(key=lambda d: d.get(order_by), reverse=descending)
        if limit:
            results = results[:limit]
        return results

    @staticmethod
    def _matches(document, condition):
        field_path, op, value = condition
        if op == '==':
            return document.get(field_path) == value
        if op == 'array_contains':
            return value in (document.get(field_path) or [])
        raise ValueError(f"Unsupported operator: {op}")

    # --- atomic set / counter ---

    def add_to_set(self, collection, doc_id, field, value, counter_field=None):
        document = self._docs(collection).get(doc_id)
        if document is None:
            raise NotFoundError(f"{collection}/{doc_id} does not exist.")
        members = document.setdefault(field, [])
        if value in members:
            return False
        members.append(value)
        if counter_field:
            document[counter_field] = document.get(counter_field, 0) + 1
        self._notify(collection)
        return True

    def toggle_in_set(self, collection, doc_id, field, value):
        document = self._docs(collection).get(doc_id)
        if document is None:
            raise NotFoundError(f"{collection}/{doc_id} does not exist.")
        members = document.setdefault(field, [])
        if value in members:
            members.remove(value)
            liked = False
        else:
            members.append(value)
            liked = True
        self._notify(collection)
        return liked

    def append_to_array(self, collection, doc_id, field, item):
        document = self._docs(collection).get(doc_id)
        if document is None:
            raise NotFoundError(f"{collection}/{doc_id} does not exist.")
        document.setdefault(field, []).append(copy.deepcopy(item))
        self._notify(collection)

    def delete_collection(self, collection, batch_size=100):
        return len(self.collections.pop(collection, {}))

    # --- change notification ---

    def watch(self, collection, callback, filters=(), order_by=None, descending=False):
        key = next(self._watch_ids)
        self.watchers[key] = (collection, callback, tuple(filters), order_by, descending)
        callback(self.query(collection, filters, order_by, descending))
        return _WatchHandle(self, key)


class MemoryBlob:
    """Stand-in for a google.cloud.storage Blob, stored in a dict."""

    def __init__(self, store, name):
        self.store = store
        self.name = name
        self.metadata = None

    @property
    def content_type(self):
        return self.store[self.name][1] if self.name in self.store else None

    def exists(self):
        return self.name in self.store

    def reload(self):
        pass

    def upload_from_string(self, data, content_type=None):
        self.store[self.name] = (data, content_type)

    def download_as_bytes(self):
        if self.name not in self.store:
            raise google_exceptions.NotFound(self.name)
        return self.store[self.name][0]

    def delete(self):
        if self.name not in self.store:
            raise google_exceptions.NotFound(self.name)
        del self.store[self.name]

    def generate_signed_url(self, **kwargs):
        return f"https://storage.example.test/{self.name}?X-Goog-Signature=test"


# --- fixtures ---

@pytest.fixture
def fake_db():
    return InMemoryFirestore()


@pytest.fixture
def blob_store():
    """blob name -> (bytes, content_type)"""
    return {}


@pytest.fixture
def storage_service(blob_store):
    service = StorageService()
    service.bucket = MagicMock()
    service.bucket.blob.side_effect = lambda name: MemoryBlob(blob_store, name)
    return service


@pytest.fixture
def identity_service():
    service = MagicMock()
    service.verify_id_token.side_effect = lambda token: {
        "uid": token.replace("id-token-", ""),
        "display_name": "Test User",
        "email": f"{token.replace('id-token-', '')}@example.com",
        "photo_url": None,
    }
    return service


@pytest.fixture
def openai_service():
    service = MagicMock()
    service.answer_pet_care_question.return_value = {"answer": "Feed your dog twice a day."}
    return service


@pytest.fixture
def app(fake_db, storage_service, identity_service, openai_service):
    app = create_app('testing', services={
        'db': fake_db,
        'storage': storage_service,
        'identity': identity_service,
        'openai': openai_service,
    })
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(fake_db):
    """Stores a user profile document and returns its uid."""
    def _make_user(uid, display_name=None, email=None, is_admin=False):
        fake_db.create('users', uid, {
            'uid': uid,
            'display_name': display_name or uid.title(),
            'email': email or f"{uid}@example.com",
            'photo_url': f"https://example.com/{uid}.png",
            'is_admin': is_admin,
        })
        return uid
    return _make_user


@pytest.fixture
def auth_headers(app):
    """Builds an Authorization header for ``uid`` with the profile claims."""
    def _auth_headers(uid, display_name=None, refresh=False):
        claims = {
            'display_name': display_name or uid.title(),
            'photo_url': f"https://example.com/{uid}.png",
            'email': f"{uid}@example.com",
        }
        with app.app_context():
            factory = create_refresh_token if refresh else create_access_token
            token = factory(identity=uid, additional_claims=claims)
        return {'Authorization': f'Bearer {token}'}
    return _auth_headers
