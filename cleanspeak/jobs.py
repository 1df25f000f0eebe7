"""Deferring client operations to a work queue.

A queue is anything that implements :class:`WorkQueue`: ``create_job`` returns
a builder that is configured with attempts and a priority and then saved.
:class:`RedisWorkQueue` is the bundled implementation; workers pull jobs with
:meth:`RedisWorkQueue.reserve` and hand them to :func:`run_worker`.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional, Protocol

import redis

from cleanspeak.config import PRIORITIES, QueueOptions
from cleanspeak.models import QueueJob

if TYPE_CHECKING:
    from cleanspeak.client import CleanSpeakClient

logger = logging.getLogger(__name__)

DEFAULT_KEY_PREFIX = "cleanspeak:jobs"


class JobBuilder(Protocol):
    def with_attempts(self, attempts: int) -> "JobBuilder": ...

    def with_priority(self, priority: str) -> "JobBuilder": ...

    def save(self) -> None: ...


class WorkQueue(Protocol):
    def create_job(self, name: str, payload: dict[str, Any]) -> JobBuilder: ...


def enqueue(queue: WorkQueue, operation_name: str, payload: dict[str, Any], options: QueueOptions) -> None:
    """Hand a job to *queue*.  Returns once the queue has saved it.

    Errors raised while building or saving the job propagate unchanged.
    """
    (
        queue.create_job(operation_name, payload)
        .with_attempts(options.attempts)
        .with_priority(options.priority)
        .save()
    )
    logger.info(
        "Enqueued %s job (attempts=%d, priority=%s)", operation_name, options.attempts, options.priority
    )


# ---------------------------------------------------------------------------
# Redis backend
# ---------------------------------------------------------------------------


class RedisJob:
    """Builder for a job stored in Redis."""

    def __init__(self, queue: "RedisWorkQueue", job: QueueJob) -> None:
        self._queue = queue
        self.job = job

    def with_attempts(self, attempts: int) -> "RedisJob":
        self.job.attempts = attempts
        return self

    def with_priority(self, priority: str) -> "RedisJob":
        if priority not in PRIORITIES:
            raise ValueError(f"Unknown priority {priority!r}")
        self.job.priority = priority
        return self

    def save(self) -> None:
        self._queue.push(self.job)


class RedisWorkQueue:
    """Work queue backed by one Redis list per priority."""

    def __init__(self, client: redis.Redis, key_prefix: str = DEFAULT_KEY_PREFIX) -> None:
        self._redis = client
        self._prefix = key_prefix

    @classmethod
    def from_url(cls, url: str, key_prefix: str = DEFAULT_KEY_PREFIX) -> "RedisWorkQueue":
        return cls(redis.Redis.from_url(url, decode_responses=True), key_prefix=key_prefix)

    def key(self, priority: str) -> str:
        return f"{self._prefix}:{priority}"

    def create_job(self, name: str, payload: dict[str, Any]) -> RedisJob:
        return RedisJob(self, QueueJob(operation_name=name, payload=payload))

    def push(self, job: QueueJob) -> None:
        self._redis.lpush(self.key(job.priority), job.to_json())

    def reserve(self, timeout: int = 5) -> Optional[QueueJob]:
        """Pop the oldest job, highest priority first.  ``None`` on timeout."""
        keys = [self.key(p) for p in reversed(PRIORITIES)]
        item = self._redis.brpop(keys, timeout=timeout)
        if item is None:
            return None
        _key, raw = item
        return QueueJob.from_json(raw)


# ---------------------------------------------------------------------------
# Worker
# ---------------------------------------------------------------------------


def process_job(queue: RedisWorkQueue, client: "CleanSpeakClient", job: QueueJob) -> bool:
    """Run one job.  Failed jobs go back on the queue until attempts run out.

    Returns ``True`` when the job succeeded.
    """
    try:
        client.execute_job(job)
    except Exception:
        remaining = job.attempts - 1
        if remaining > 0:
            logger.warning("%s job failed, %d attempt(s) left", job.operation_name, remaining, exc_info=True)
            job.attempts = remaining
            queue.push(job)
        else:
            logger.error("%s job failed, giving up", job.operation_name, exc_info=True)
        return False
    return True


def run_worker(
    queue: RedisWorkQueue,
    client: "CleanSpeakClient",
    once: bool = False,
    timeout: int = 5,
) -> int:
    """Process jobs until interrupted (or until the queue is empty if *once*).

    Returns the number of jobs processed.
    """
    processed = 0
    while True:
        job = queue.reserve(timeout=timeout)
        if job is None:
            if once:
                return processed
            continue
        process_job(queue, client, job)
        processed += 1
