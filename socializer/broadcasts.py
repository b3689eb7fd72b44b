"""
Society broadcasts and per-society broadcast subscriptions.

Sending a broadcast stores it under the society and records a fan-out job;
the worker delivers one notification per subscriber.
"""

from __future__ import annotations

import logging
import time

from socializer.access import Actor, require_manager
from socializer.constants import (
    FANOUT_JOBS_COLLECTION,
    USERS_COLLECTION,
    society_broadcasts_path,
)
from socializer.db import DocumentStore, new_document_id
from socializer.errors import InvalidRequestError
from socializer.models import BroadcastRecord, FanoutJobRecord, from_document, to_document
from socializer.queue import JobQueue
from socializer.societies import require_society

logger = logging.getLogger(__name__)


def list_broadcasts(store: DocumentStore, society_id: str) -> list[BroadcastRecord]:
    require_society(store, society_id)
    return [
        from_document(BroadcastRecord, doc.id, doc.data)
        for doc in store.query(
            society_broadcasts_path(society_id), order_by="createdAt", descending=True
        )
    ]


def is_subscribed(actor: Actor, society_id: str) -> bool:
    return society_id in actor.user.broadcast_societies


def subscribe(store: DocumentStore, actor: Actor, society_id: str) -> None:
    require_society(store, society_id)
    store.array_union(USERS_COLLECTION, actor.uid, "broadcastSocieties", [society_id])
    if society_id not in actor.user.broadcast_societies:
        actor.user.broadcast_societies.append(society_id)


def unsubscribe(store: DocumentStore, actor: Actor, society_id: str) -> None:
    store.array_remove(USERS_COLLECTION, actor.uid, "broadcastSocieties", [society_id])
    actor.user.broadcast_societies = [
        sid for sid in actor.user.broadcast_societies if sid != society_id
    ]


def create_fanout_job(
    store: DocumentStore, society_id: str, broadcast: BroadcastRecord
) -> FanoutJobRecord:
    job = FanoutJobRecord(
        id=new_document_id(),
        society_id=society_id,
        broadcast_id=broadcast.id,
        sender_id=broadcast.sender,
        message=broadcast.message,
    )
    store.set(FANOUT_JOBS_COLLECTION, job.id, to_document(job))
    return job


def send_broadcast(
    store: DocumentStore,
    queue: JobQueue,
    actor: Actor,
    society_id: str,
    message: str,
) -> tuple[BroadcastRecord, FanoutJobRecord]:
    society = require_society(store, society_id)
    require_manager(actor, society)
    message = message.strip()
    if not message:
        raise InvalidRequestError("Broadcast message cannot be empty")

    broadcast = BroadcastRecord(
        id=new_document_id(),
        message=message,
        sender=actor.uid,
        created_at=time.time(),
    )
    store.set(society_broadcasts_path(society_id), broadcast.id, to_document(broadcast))

    job = create_fanout_job(store, society_id, broadcast)
    queue.enqueue(job.id)
    logger.info(
        "Broadcast %s sent to society %s by %s (job %s)",
        broadcast.id,
        society_id,
        actor.uid,
        job.id,
    )
    return broadcast, job
