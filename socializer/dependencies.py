"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from socializer.access import Actor
from socializer.auth import (
    AuthClient,
    FirebaseAuthClient,
    InMemoryAuthClient,
    InvalidTokenError,
    get_firebase_app,
)
from socializer.config import get_settings
from socializer.constants import USERS_COLLECTION
from socializer.db import (
    DocumentStore,
    FirestoreDocumentStore,
    InMemoryDocumentStore,
    SqlDocumentStore,
)
from socializer.models import UserRecord, from_document
from socializer.queue import InMemoryJobQueue, JobQueue, RedisJobQueue
from socializer.storage import InMemoryStorageClient, S3StorageClient, StorageClient

_document_store: DocumentStore | None = None
_storage_client: StorageClient | None = None
_queue_client: JobQueue | None = None
_auth_client: AuthClient | None = None

bearer_scheme = HTTPBearer(auto_error=False)


def get_document_store() -> DocumentStore:
    """
    Return a singleton document store so in-memory state persists across requests.
    """
    global _document_store
    if _document_store:
        return _document_store

    settings = get_settings()
    if settings.use_in_memory_backends:
        _document_store = InMemoryDocumentStore()
    elif settings.use_firestore:
        get_firebase_app(settings.firebase_credentials_path, settings.firebase_project_id)
        _document_store = FirestoreDocumentStore()
    elif settings.database_url:
        _document_store = SqlDocumentStore(settings.database_url)
    else:
        _document_store = InMemoryDocumentStore()
    return _document_store


def get_storage_client() -> StorageClient:
    global _storage_client
    if _storage_client:
        return _storage_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.storage_bucket:
        _storage_client = InMemoryStorageClient()
    else:
        _storage_client = S3StorageClient(
            bucket=settings.storage_bucket,
            region=settings.storage_region or "",
            endpoint=settings.storage_endpoint or "",
            access_key_id=settings.aws_access_key_id or "",
            secret_access_key=settings.aws_secret_access_key or "",
        )
    return _storage_client


def get_queue_client() -> JobQueue:
    """
    Return a singleton queue client for dispatching fan-out jobs to workers.
    """
    global _queue_client
    if _queue_client:
        return _queue_client

    settings = get_settings()
    if settings.redis_url and not settings.use_in_memory_backends:
        _queue_client = RedisJobQueue(
            url=settings.redis_url,
            queue_key=settings.redis_queue_key,
        )
    else:
        _queue_client = InMemoryJobQueue()
    return _queue_client


def get_auth_client() -> AuthClient:
    global _auth_client
    if _auth_client:
        return _auth_client

    settings = get_settings()
    if settings.use_in_memory_backends:
        _auth_client = InMemoryAuthClient()
    else:
        app = get_firebase_app(
            settings.firebase_credentials_path, settings.firebase_project_id
        )
        _auth_client = FirebaseAuthClient(app)
    return _auth_client


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_actor(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    store: DocumentStore = Depends(get_document_store),
    auth_client: AuthClient = Depends(get_auth_client),
) -> Actor:
    if credentials is None or not credentials.credentials:
        raise _unauthorized("Not authenticated")
    try:
        claims = auth_client.verify_id_token(credentials.credentials)
    except InvalidTokenError as exc:
        raise _unauthorized(f"Invalid authentication credentials: {exc}") from exc

    uid = claims.get("uid")
    if not uid:
        raise _unauthorized("Token has no uid")
    data = store.get(USERS_COLLECTION, uid)
    if data is None:
        raise HTTPException(status_code=404, detail="User document not found")
    return Actor(uid=uid, user=from_document(UserRecord, uid, data), claims=claims)
