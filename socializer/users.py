"""
User profiles: lookup, search, profile edits, profile pictures and the
admin-only user management operations.
"""

from __future__ import annotations

import logging
from typing import Optional

from socializer.access import Actor, require_admin
from socializer.auth import AuthClient
from socializer.constants import (
    PROFILE_PICTURE_PREFIX,
    SOCIETIES_COLLECTION,
    UNKNOWN_USER,
    USERS_COLLECTION,
)
from socializer.db import DocumentStore, Filter
from socializer.errors import InvalidRequestError, NotFoundError, PermissionDeniedError
from socializer.models import UserRecord, from_document
from socializer.storage import StorageClient

logger = logging.getLogger(__name__)

# Upper bound for a prefix range query (private-use code point).
_PREFIX_END = "\uf8ff"


def get_user(store: DocumentStore, uid: str) -> Optional[UserRecord]:
    data = store.get(USERS_COLLECTION, uid)
    if data is None:
        return None
    return from_document(UserRecord, uid, data)


def require_user(store: DocumentStore, uid: str) -> UserRecord:
    user = get_user(store, uid)
    if user is None:
        raise NotFoundError("User does not exist")
    return user


def display_name(store: DocumentStore, uid: str) -> str:
    user = get_user(store, uid)
    return (user.name if user else "") or UNKNOWN_USER


def search_users(store: DocumentStore, query: str, limit: int = 20) -> list[UserRecord]:
    """Prefix search over username and name, merged and deduplicated by id."""
    term = query.strip()
    if not term:
        return []
    results: list[UserRecord] = []
    seen: set[str] = set()
    for field_name in ("username", "name"):
        docs = store.query(
            USERS_COLLECTION,
            [
                Filter(field_name, ">=", term),
                Filter(field_name, "<=", term + _PREFIX_END),
            ],
            order_by=field_name,
            limit=limit,
        )
        for doc in docs:
            if doc.id in seen:
                continue
            seen.add(doc.id)
            results.append(from_document(UserRecord, doc.id, doc.data))
    return results[:limit]


def update_profile(
    store: DocumentStore,
    uid: str,
    *,
    name: Optional[str] = None,
    bio: Optional[str] = None,
    phone_number: Optional[str] = None,
) -> UserRecord:
    fields: dict = {}
    if name is not None:
        if not name.strip():
            raise InvalidRequestError("Name cannot be empty")
        fields["name"] = name.strip()
    if bio is not None:
        fields["bio"] = bio
    if phone_number is not None:
        if phone_number and not phone_number.isdigit():
            raise InvalidRequestError("Phone number must contain digits only")
        fields["phoneNumber"] = phone_number
    if fields:
        store.update(USERS_COLLECTION, uid, fields)
    return require_user(store, uid)


def profile_picture_path(user: UserRecord) -> str:
    return f"{PROFILE_PICTURE_PREFIX}/{user.email or user.id}"


def set_profile_picture(
    store: DocumentStore,
    storage: StorageClient,
    user: UserRecord,
    data: bytes,
    content_type: str,
) -> UserRecord:
    if not content_type or not content_type.startswith("image/"):
        raise InvalidRequestError("Profile picture must be an image")
    if not data:
        raise InvalidRequestError("Profile picture is empty")
    path = profile_picture_path(user)
    storage.upload_bytes(path, data, content_type)
    store.update(USERS_COLLECTION, user.id, {"profilePicture": path})
    logger.info("Stored profile picture for %s at %s", user.id, path)
    return require_user(store, user.id)


def remove_profile_picture(
    store: DocumentStore, storage: StorageClient, user: UserRecord
) -> UserRecord:
    if user.profile_picture and not user.profile_picture.startswith(("http://", "https://")):
        storage.delete(user.profile_picture)
    store.update(USERS_COLLECTION, user.id, {"profilePicture": None})
    return require_user(store, user.id)


def resolve_profile_picture(
    storage: StorageClient, value: Optional[str], expires_in: int = 3600
) -> Optional[str]:
    """Turn a stored picture path into a signed URL; None when it cannot be resolved."""
    if not value:
        return None
    if value.startswith(("http://", "https://")):
        return value
    try:
        return storage.presign_get(value, expires_in=expires_in)
    except Exception:
        logger.warning("Could not resolve profile picture %s", value, exc_info=True)
        return None


def list_users(store: DocumentStore, actor: Actor) -> list[UserRecord]:
    require_admin(actor)
    users = [
        from_document(UserRecord, doc.id, doc.data)
        for doc in store.list_collection(USERS_COLLECTION)
    ]
    users.sort(key=lambda user: (user.name.lower(), user.id))
    return users


def assign_society(
    store: DocumentStore, actor: Actor, uid: str, society_id: Optional[str]
) -> UserRecord:
    require_admin(actor)
    require_user(store, uid)
    if society_id and store.get(SOCIETIES_COLLECTION, society_id) is None:
        raise NotFoundError("Society not found")
    store.update(USERS_COLLECTION, uid, {"assignedSociety": society_id or None})
    logger.info("Assigned user %s to society %s", uid, society_id)
    return require_user(store, uid)


def grant_admin(
    store: DocumentStore, auth_client: AuthClient, actor: Actor, uid: str
) -> UserRecord:
    """Set the isAdmin claim; only callers carrying the claim themselves may do this."""
    if not actor.has_admin_claim:
        raise PermissionDeniedError("Only admins can set custom claims.")
    require_user(store, uid)
    auth_client.set_admin_claim(uid, True)
    store.update(USERS_COLLECTION, uid, {"isAdmin": True})
    logger.info("Admin claim granted to %s by %s", uid, actor.uid)
    return require_user(store, uid)
