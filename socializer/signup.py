"""
Account registration: the email pre-check and the full signup.
"""

from __future__ import annotations

import logging
import time

from socializer.auth import AuthClient
from socializer.constants import USERS_COLLECTION
from socializer.db import DocumentStore, Filter
from socializer.errors import ConflictError
from socializer.models import UserRecord, to_document
from socializer.schemas import CheckEmailRequest, SignupRequest

logger = logging.getLogger(__name__)


def check_email(auth_client: AuthClient, payload: CheckEmailRequest) -> None:
    if auth_client.email_in_use(payload.email):
        raise ConflictError("This email is already registered.")


def username_taken(store: DocumentStore, username: str) -> bool:
    return bool(
        store.query(USERS_COLLECTION, [Filter("username", "==", username)], limit=1)
    )


def signup(
    store: DocumentStore, auth_client: AuthClient, payload: SignupRequest
) -> UserRecord:
    """Create the auth account, then the user document keyed by its uid."""
    check_email(auth_client, payload)
    username = payload.username.strip()
    if username_taken(store, username):
        raise ConflictError("Username is already taken.")

    uid = auth_client.create_user(payload.email, payload.password, payload.name)
    user = UserRecord(
        id=uid,
        email=payload.email,
        name=payload.name,
        cms_id=payload.cms_id,
        is_student=payload.is_student,
        username=username,
        department=payload.department,
        batch=payload.batch,
        occupation=payload.occupation,
        bio=payload.bio,
        phone_number=payload.phone_number,
        campus=payload.campus,
        created_at=time.time(),
    )
    store.set(USERS_COLLECTION, uid, to_document(user))
    logger.info("Registered user %s (%s)", uid, username)
    return user
