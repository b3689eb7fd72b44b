"""
Friend requests and friendships.
"""

from __future__ import annotations

import logging
import time
from typing import Optional

from socializer.access import Actor
from socializer.constants import (
    DEFAULT_FRIEND_REQUEST_PAGE_SIZE,
    FRIEND_REQUESTS_COLLECTION,
    FRIENDS_COLLECTION,
    UNKNOWN_USER,
    USERS_COLLECTION,
)
from socializer.db import DocumentStore, Filter, WriteOp, new_document_id
from socializer.errors import (
    ConflictError,
    InvalidRequestError,
    NotFoundError,
    PermissionDeniedError,
)
from socializer.models import FriendRequestRecord, from_document, to_document
from socializer.notifications import FRIEND_REQUEST_ACCEPTED, user_notification_op
from socializer.users import display_name, get_user, require_user

logger = logging.getLogger(__name__)

PENDING = "pending"
ACCEPTED = "accepted"


def _pending_between(store: DocumentStore, from_uid: str, to_uid: str) -> bool:
    return bool(
        store.query(
            FRIEND_REQUESTS_COLLECTION,
            [
                Filter("fromUserId", "==", from_uid),
                Filter("toUserId", "==", to_uid),
                Filter("status", "==", PENDING),
            ],
            limit=1,
        )
    )


def send_request(store: DocumentStore, actor: Actor, to_uid: str) -> FriendRequestRecord:
    if to_uid == actor.uid:
        raise InvalidRequestError("You cannot send a friend request to yourself.")
    require_user(store, to_uid)
    if to_uid in actor.user.friend_list:
        raise ConflictError("You are already friends.")
    if _pending_between(store, actor.uid, to_uid) or _pending_between(store, to_uid, actor.uid):
        raise ConflictError("A friend request is already pending.")

    request = FriendRequestRecord(
        id=new_document_id(),
        from_user_id=actor.uid,
        to_user_id=to_uid,
        status=PENDING,
        created_at=time.time(),
    )
    store.set(FRIEND_REQUESTS_COLLECTION, request.id, to_document(request))
    logger.info("Friend request %s from %s to %s", request.id, actor.uid, to_uid)
    return request


def list_incoming(
    store: DocumentStore,
    actor: Actor,
    *,
    limit: int = DEFAULT_FRIEND_REQUEST_PAGE_SIZE,
    cursor: Optional[str] = None,
) -> tuple[list[tuple[FriendRequestRecord, Optional[str]]], Optional[str]]:
    """
    One page of pending requests addressed to the actor, newest first.

    Returns (request, sender name) pairs and the cursor for the next page,
    which is None once a short page comes back.
    """
    docs = store.query(
        FRIEND_REQUESTS_COLLECTION,
        [Filter("toUserId", "==", actor.uid), Filter("status", "==", PENDING)],
        order_by="createdAt",
        descending=True,
        limit=limit,
        start_after=cursor,
    )
    page = []
    for doc in docs:
        request = from_document(FriendRequestRecord, doc.id, doc.data)
        sender = get_user(store, request.from_user_id)
        if sender is None:
            logger.warning(
                "Friend request %s references missing user %s", doc.id, request.from_user_id
            )
        page.append((request, sender.name if sender else None))
    next_cursor = docs[-1].id if len(docs) == limit else None
    return page, next_cursor


def _require_incoming(store: DocumentStore, actor: Actor, request_id: str) -> FriendRequestRecord:
    data = store.get(FRIEND_REQUESTS_COLLECTION, request_id)
    if data is None:
        raise NotFoundError("Friend request not found")
    request = from_document(FriendRequestRecord, request_id, data)
    if request.to_user_id != actor.uid:
        raise PermissionDeniedError("Only the recipient can answer a friend request.")
    return request


def accept_request(store: DocumentStore, actor: Actor, request_id: str) -> FriendRequestRecord:
    """Accept in one batch: request status, friendship document and both friend lists."""
    request = _require_incoming(store, actor, request_id)
    if request.status != PENDING:
        raise ConflictError("Friend request is no longer pending.")
    require_user(store, request.from_user_id)

    now = time.time()
    store.write_batch(
        [
            WriteOp("update", FRIEND_REQUESTS_COLLECTION, request.id, {"status": ACCEPTED}),
            WriteOp(
                "set",
                FRIENDS_COLLECTION,
                new_document_id(),
                {"user1": request.from_user_id, "user2": request.to_user_id, "createdAt": now},
            ),
            WriteOp(
                "array_union",
                USERS_COLLECTION,
                request.from_user_id,
                {"friendList": [request.to_user_id]},
            ),
            WriteOp(
                "array_union",
                USERS_COLLECTION,
                request.to_user_id,
                {"friendList": [request.from_user_id]},
            ),
            user_notification_op(
                request.from_user_id,
                FRIEND_REQUEST_ACCEPTED,
                message=f"{actor.user.name or UNKNOWN_USER} accepted your friend request.",
                senderId=actor.uid,
                created_at=now,
            ),
        ]
    )
    request.status = ACCEPTED
    logger.info("Friend request %s accepted", request.id)
    return request


def decline_request(store: DocumentStore, actor: Actor, request_id: str) -> None:
    _require_incoming(store, actor, request_id)
    store.delete(FRIEND_REQUESTS_COLLECTION, request_id)
    logger.info("Friend request %s declined", request_id)


def list_friends(store: DocumentStore, actor: Actor) -> list[tuple[str, str]]:
    """(uid, name) for each friend; missing users render as "Unknown User"."""
    return [(uid, display_name(store, uid)) for uid in actor.user.friend_list]
