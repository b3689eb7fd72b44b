"""
Queue abstraction for broadcast fan-out jobs.

Dequeued job ids move to an in-flight list until the worker acknowledges
them, so a crashed worker's jobs can be put back with `requeue_inflight`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Protocol

import redis
from redis import exceptions as redis_exceptions

logger = logging.getLogger(__name__)


class JobQueue(Protocol):
    """Minimal queue interface for dispatching job ids to workers."""

    def enqueue(self, job_id: str) -> None:
        ...

    def dequeue(self, *, block: bool = True, timeout: int | None = None) -> Optional[str]:
        ...

    def ack(self, job_id: str) -> None:
        ...

    def requeue_inflight(self) -> int:
        ...


@dataclass
class InMemoryJobQueue:
    """FIFO queue for testing/dev."""

    items: list[str] = field(default_factory=list)
    inflight: list[str] = field(default_factory=list)

    def enqueue(self, job_id: str) -> None:
        self.items.append(job_id)

    def dequeue(self, *, block: bool = True, timeout: int | None = None) -> Optional[str]:
        if not self.items:
            return None
        job_id = self.items.pop(0)
        self.inflight.append(job_id)
        return job_id

    def ack(self, job_id: str) -> None:
        if job_id in self.inflight:
            self.inflight.remove(job_id)

    def requeue_inflight(self) -> int:
        count = len(self.inflight)
        self.items = self.inflight + self.items
        self.inflight = []
        return count

    def reset(self) -> None:
        self.items.clear()
        self.inflight.clear()


@dataclass
class RedisJobQueue:
    """Redis list queue with a companion in-flight list (LMOVE pattern)."""

    url: str
    queue_key: str = "socializer:fanout"

    def __post_init__(self):
        self.client = redis.Redis.from_url(self.url)

    @property
    def inflight_key(self) -> str:
        return f"{self.queue_key}:inflight"

    def enqueue(self, job_id: str) -> None:
        self.client.rpush(self.queue_key, job_id)

    def dequeue(self, *, block: bool = True, timeout: int | None = None) -> Optional[str]:
        try:
            if block:
                job_id = self.client.blmove(
                    self.queue_key, self.inflight_key, timeout or 0, "LEFT", "RIGHT"
                )
            else:
                job_id = self.client.lmove(
                    self.queue_key, self.inflight_key, "LEFT", "RIGHT"
                )
        except redis_exceptions.ConnectionError:
            # Managed Redis drops idle connections; reconnect and report empty.
            logger.warning("Redis connection lost; reconnecting")
            self.client = redis.Redis.from_url(self.url)
            return None
        if job_id is None:
            return None
        return job_id.decode("utf-8")

    def ack(self, job_id: str) -> None:
        self.client.lrem(self.inflight_key, 1, job_id)

    def requeue_inflight(self) -> int:
        count = 0
        while self.client.lmove(self.inflight_key, self.queue_key, "RIGHT", "LEFT"):
            count += 1
        return count
