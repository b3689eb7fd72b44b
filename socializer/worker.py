"""
Worker loop that fans broadcasts out to subscribers.

Each fan-out job writes one `broadcast` notification into the notification
stream of every user subscribed to the society, except the sender.
"""

from __future__ import annotations

import logging
import time
from typing import Optional

from socializer.constants import FANOUT_JOBS_COLLECTION, USERS_COLLECTION
from socializer.db import DocumentStore, Filter
from socializer.dependencies import get_document_store, get_queue_client
from socializer.models import FanoutJobRecord, JobStatus, from_document
from socializer.notifications import BROADCAST, user_notification_op
from socializer.queue import JobQueue

logger = logging.getLogger(__name__)

# Firestore rejects batches with more than 500 writes.
MAX_BATCH_WRITES = 500


def get_job(store: DocumentStore, job_id: str) -> Optional[FanoutJobRecord]:
    data = store.get(FANOUT_JOBS_COLLECTION, job_id)
    if data is None:
        return None
    return from_document(FanoutJobRecord, job_id, data)


def _set_status(store: DocumentStore, job: FanoutJobRecord, status: str, **fields) -> None:
    job.status = status
    job.updated_at = time.time()
    store.update(
        FANOUT_JOBS_COLLECTION,
        job.id,
        {"status": status, "updatedAt": job.updated_at, **fields},
    )


def fetch_next_waiting_job(store: DocumentStore) -> Optional[FanoutJobRecord]:
    docs = store.query(
        FANOUT_JOBS_COLLECTION,
        [Filter("status", "==", JobStatus.WAITING)],
        order_by="createdAt",
        limit=1,
    )
    if not docs:
        return None
    return from_document(FanoutJobRecord, docs[0].id, docs[0].data)


def process_job(job: FanoutJobRecord, store: DocumentStore) -> int:
    """Deliver the broadcast and return the number of notifications written."""
    _set_status(store, job, JobStatus.PROCESSING)
    try:
        subscribers = store.query(
            USERS_COLLECTION,
            [Filter("broadcastSocieties", "array-contains", job.society_id)],
        )
        created_at = time.time()
        ops = [
            user_notification_op(
                doc.id,
                BROADCAST,
                message=job.message,
                created_at=created_at,
                societyId=job.society_id,
                senderId=job.sender_id,
            )
            for doc in subscribers
            if doc.id != job.sender_id
        ]
        for start in range(0, len(ops), MAX_BATCH_WRITES):
            store.write_batch(ops[start : start + MAX_BATCH_WRITES])
    except Exception:
        logger.exception("[%s] Fan-out failed for society %s", job.id, job.society_id)
        _set_status(store, job, JobStatus.ERROR)
        raise

    job.delivered = len(ops)
    _set_status(store, job, JobStatus.SUCCESS, delivered=job.delivered)
    logger.info(
        "[%s] Broadcast %s delivered to %d subscribers of %s",
        job.id,
        job.broadcast_id,
        job.delivered,
        job.society_id,
    )
    return job.delivered


def process_next(
    *,
    store: Optional[DocumentStore] = None,
    queue: Optional[JobQueue] = None,
    block: bool = True,
    timeout: Optional[int] = None,
) -> bool:
    """
    Fetch and process one job from the queue (or the oldest WAITING job when
    the queue is empty). Returns True if a job was processed.
    """
    store = store or get_document_store()
    queue = queue or get_queue_client()

    job_id = queue.dequeue(block=block, timeout=timeout)
    if job_id:
        try:
            job = get_job(store, job_id)
            if job is None:
                logger.warning("Received job_id %s from queue but no record found", job_id)
                return False
            if job.status != JobStatus.WAITING:
                logger.info("[%s] Skipping job in status %s", job_id, job.status)
                return False
            process_job(job, store)
        finally:
            queue.ack(job_id)
        return True

    # Jobs recorded while the queue was unavailable are still picked up.
    job = fetch_next_waiting_job(store)
    if job is None:
        return False
    process_job(job, store)
    return True


def run_loop(poll_interval_seconds: float = 2.0) -> None:
    """
    Blocking loop over the queue. Intended to be run under systemd/supervisor.
    """
    store = get_document_store()
    queue = get_queue_client()
    requeued = queue.requeue_inflight()
    if requeued:
        logger.info("Requeued %d in-flight jobs", requeued)
    while True:
        try:
            processed = process_next(
                store=store, queue=queue, block=True, timeout=int(poll_interval_seconds)
            )
        except Exception:
            # The job is already marked ERROR; keep serving the queue.
            logger.exception("Fan-out job failed")
            processed = True
        if not processed:
            time.sleep(poll_interval_seconds)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    run_loop()
