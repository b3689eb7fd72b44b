"""
Notification writers and the per-user notification feed.

A user's feed merges two streams: documents written directly to the user
(`users/<uid>/notifications`) and documents written to every society whose
`members` list contains the user (`societies/<id>/notifications`). Each item
is rendered to a message according to its type.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional

from socializer.constants import (
    SOCIETIES_COLLECTION,
    UNKNOWN_SOCIETY,
    UNKNOWN_USER,
    USERS_COLLECTION,
    society_notifications_path,
    user_notifications_path,
)
from socializer.db import DocumentStore, Filter, WriteOp, new_document_id
from socializer.errors import NotFoundError
from socializer.models import NotificationRecord, from_document

logger = logging.getLogger(__name__)

BROADCAST = "broadcast"
ADMIN_ASSIGNED = "adminAssigned"
ROLE_ASSIGNED = "roleAssigned"
ROLE_ASSIGNED_BY_YOU = "roleAssignedByYou"
EVENT_CREATED = "eventCreated"
EVENT_UPDATED = "eventUpdated"
PORTFOLIO_MEMBER_ADDED = "portfolioMemberAdded"
PORTFOLIO_MEMBER_REMOVED = "portfolioMemberRemoved"
INTERVIEW_STATUS_CHANGED = "interviewStatusChanged"
FRIEND_REQUEST_ACCEPTED = "friendRequestAccepted"


def _notification_body(
    notification_type: str,
    *,
    message: str = "",
    created_at: Optional[float] = None,
    **fields,
) -> dict:
    body = {
        "type": notification_type,
        "message": message,
        "read": False,
        "createdAt": created_at if created_at is not None else time.time(),
    }
    body.update({key: value for key, value in fields.items() if value is not None})
    return body


def user_notification_op(uid: str, notification_type: str, **kwargs) -> WriteOp:
    """A batched write that creates one notification for `uid`."""
    return WriteOp(
        "set",
        user_notifications_path(uid),
        new_document_id(),
        _notification_body(notification_type, **kwargs),
    )


def notify_user(store: DocumentStore, uid: str, notification_type: str, **kwargs) -> str:
    return store.add(
        user_notifications_path(uid), _notification_body(notification_type, **kwargs)
    )


def notify_society(
    store: DocumentStore, society_id: str, notification_type: str, **kwargs
) -> str:
    kwargs.setdefault("societyId", society_id)
    return store.add(
        society_notifications_path(society_id),
        _notification_body(notification_type, **kwargs),
    )


@dataclass
class FeedItem:
    id: str
    type: str
    message: str
    timestamp: float
    source: str
    society_id: Optional[str] = None
    society_name: Optional[str] = None
    read: bool = False


class _NameCache:
    """Memoizes society and user name lookups for one feed build."""

    def __init__(self, store: DocumentStore):
        self._store = store
        self._societies: dict[str, str] = {}
        self._users: dict[str, str] = {}

    def society(self, society_id: Optional[str]) -> str:
        if not society_id:
            return UNKNOWN_SOCIETY
        if society_id not in self._societies:
            doc = self._store.get(SOCIETIES_COLLECTION, society_id)
            self._societies[society_id] = (doc or {}).get("name") or UNKNOWN_SOCIETY
        return self._societies[society_id]

    def user(self, uid: Optional[str]) -> str:
        if not uid:
            return UNKNOWN_USER
        if uid not in self._users:
            doc = self._store.get(USERS_COLLECTION, uid)
            self._users[uid] = (doc or {}).get("name") or UNKNOWN_USER
        return self._users[uid]


def _shared_message(notification: NotificationRecord, society_name: str) -> Optional[str]:
    if notification.type == BROADCAST:
        return f"Broadcast from {society_name}: {notification.message}"
    if notification.type == EVENT_CREATED:
        return (
            f'New event "{notification.event_name}" has been created in '
            f"{society_name} on {notification.event_date}."
        )
    if notification.type == EVENT_UPDATED:
        return f'Event "{notification.event_name}" in {society_name} has been updated.'
    return None


def format_user_notification(
    notification: NotificationRecord, society_name: str, assigned_by_name: str
) -> str:
    message = _shared_message(notification, society_name)
    if message is not None:
        return message
    if notification.type == ADMIN_ASSIGNED:
        return (
            f"You have been assigned as an admin in {society_name} "
            f"by {assigned_by_name}."
        )
    if notification.type == ROLE_ASSIGNED:
        return (
            f"You have been assigned the role of {notification.role} in "
            f"{society_name} by {assigned_by_name}."
        )
    return notification.message or f"You have a new notification in {society_name}."


def format_society_notification(notification: NotificationRecord, society_name: str) -> str:
    message = _shared_message(notification, society_name)
    if message is not None:
        return message
    return notification.message or f"New notification from {society_name}."


def _read_stream(store: DocumentStore, path: str) -> list[NotificationRecord]:
    return [
        from_document(NotificationRecord, doc.id, doc.data)
        for doc in store.query(path, order_by="createdAt", descending=True)
    ]


def build_feed(store: DocumentStore, uid: str) -> list[FeedItem]:
    """Merge the user's and their societies' notifications, newest first."""
    names = _NameCache(store)
    items: list[FeedItem] = []

    for notification in _read_stream(store, user_notifications_path(uid)):
        society_name = names.society(notification.society_id)
        assigned_by = names.user(notification.assigned_by)
        items.append(
            FeedItem(
                id=notification.id,
                type=notification.type,
                message=format_user_notification(notification, society_name, assigned_by),
                timestamp=notification.created_at,
                source="user",
                society_id=notification.society_id,
                society_name=society_name if notification.society_id else None,
                read=notification.read,
            )
        )

    societies = store.query(
        SOCIETIES_COLLECTION, [Filter("members", "array-contains", uid)]
    )
    for society in societies:
        for notification in _read_stream(store, society_notifications_path(society.id)):
            society_id = notification.society_id or society.id
            society_name = names.society(society_id)
            items.append(
                FeedItem(
                    id=notification.id,
                    type=notification.type,
                    message=format_society_notification(notification, society_name),
                    timestamp=notification.created_at,
                    source="society",
                    society_id=society_id,
                    society_name=society_name,
                    read=notification.read,
                )
            )

    items.sort(key=lambda item: item.timestamp, reverse=True)
    seen: set[str] = set()
    unique: list[FeedItem] = []
    for item in items:
        if item.id in seen:
            continue
        seen.add(item.id)
        unique.append(item)
    logger.debug("Built feed for %s with %d items", uid, len(unique))
    return unique


def unread_count(store: DocumentStore, uid: str) -> int:
    return len(store.query(user_notifications_path(uid), [Filter("read", "==", False)]))


def mark_read(store: DocumentStore, uid: str, notification_id: str) -> None:
    path = user_notifications_path(uid)
    if store.get(path, notification_id) is None:
        raise NotFoundError("Notification not found")
    store.update(path, notification_id, {"read": True})
