"""
Shared fixtures: in-memory backends wired into the app and document helpers.
"""

import time
import unittest

from fastapi.testclient import TestClient

from socializer.access import Actor
from socializer.app import create_app
from socializer.auth import InMemoryAuthClient
from socializer.constants import SOCIETIES_COLLECTION, USERS_COLLECTION
from socializer.db import InMemoryDocumentStore
from socializer.dependencies import (
    get_auth_client,
    get_document_store,
    get_queue_client,
    get_storage_client,
)
from socializer.models import UserRecord, from_document
from socializer.queue import InMemoryJobQueue
from socializer.storage import InMemoryStorageClient


def seed_user(store, uid, name=None, **fields):
    data = {
        "email": f"{uid}@gmail.com",
        "name": name if name is not None else uid.capitalize(),
        "username": uid,
        "department": "SEECS",
        "createdAt": time.time(),
    }
    data.update(fields)
    store.set(USERS_COLLECTION, uid, data)
    return data


def seed_society(store, society_id, name="Chess Club", **fields):
    data = {
        "name": name,
        "slogan": "Think ahead",
        "logo": "https://example.test/logo.png",
        "description": "We play chess",
        "mainWork": "Tournaments",
        "createdAt": time.time(),
    }
    data.update(fields)
    store.set(SOCIETIES_COLLECTION, society_id, data)
    return data


def actor_for(store, uid, **claims):
    user = from_document(UserRecord, uid, store.get(USERS_COLLECTION, uid))
    return Actor(uid=uid, user=user, claims=dict(claims))


class ApiTestCase(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryDocumentStore()
        self.storage = InMemoryStorageClient()
        self.queue = InMemoryJobQueue()
        self.auth = InMemoryAuthClient()
        self.app = create_app()
        self.app.dependency_overrides[get_document_store] = lambda: self.store
        self.app.dependency_overrides[get_storage_client] = lambda: self.storage
        self.app.dependency_overrides[get_queue_client] = lambda: self.queue
        self.app.dependency_overrides[get_auth_client] = lambda: self.auth
        self.client = TestClient(self.app)

    def login(self, uid, name=None, **fields):
        """Create a user document and return auth headers for it."""
        claims = fields.pop("claims", {})
        if self.store.get(USERS_COLLECTION, uid) is None:
            seed_user(self.store, uid, name, **fields)
        token = self.auth.issue_token(uid, **claims)
        return {"Authorization": f"Bearer {token}"}
