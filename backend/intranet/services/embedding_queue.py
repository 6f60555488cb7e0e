"""In-process FIFO queue that computes embeddings in the background."""

from __future__ import annotations

import asyncio
import datetime as dt
import logging
from collections import deque
from dataclasses import dataclass, field
from threading import Lock
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError

from intranet.core.config import settings
from intranet.core.exceptions import EmbeddingProviderError
from intranet.db.session import session_scope
from intranet.services.embeddings import update_page_embedding, update_ticket_embedding

logger = logging.getLogger(__name__)

JOB_KINDS = ("page", "ticket")


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


@dataclass
class EmbeddingJob:
    kind: str
    item_id: str
    retries: int = 0
    created_at: dt.datetime = field(default_factory=_utcnow)

    @property
    def key(self) -> str:
        return f"{self.kind}-{self.item_id}"


def process_job(job: EmbeddingJob) -> None:
    updaters = {"page": update_page_embedding, "ticket": update_ticket_embedding}
    with session_scope() as db:
        updaters[job.kind](db, job.item_id)


class EmbeddingQueue:
    def __init__(
        self,
        *,
        max_retries: int = 3,
        delay_seconds: float = 1.0,
        processor: Callable[[EmbeddingJob], None] = process_job,
    ) -> None:
        self.max_retries = max_retries
        self.delay_seconds = delay_seconds
        self._processor = processor
        self._jobs: deque[EmbeddingJob] = deque()
        self._lock = Lock()
        self._processing = False

    def enqueue(self, kind: str, item_id: str) -> EmbeddingJob:
        if kind not in JOB_KINDS:
            raise ValueError(f"unknown_embedding_job_kind: {kind}")
        job = EmbeddingJob(kind=kind, item_id=item_id)
        with self._lock:
            self._jobs.append(job)
        logger.debug("Queued embedding job %s", job.key)
        return job

    def status(self) -> dict[str, int | bool]:
        with self._lock:
            return {"queue_length": len(self._jobs), "processing": self._processing}

    def clear(self) -> int:
        with self._lock:
            dropped = len(self._jobs)
            self._jobs.clear()
        logger.info("Embedding queue cleared (%s jobs dropped)", dropped)
        return dropped

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def process_next(self) -> bool:
        """Run one job; a failed job goes to the back of the queue until ``max_retries``."""
        with self._lock:
            if not self._jobs:
                return False
            job = self._jobs.popleft()
            self._processing = True
        try:
            self._processor(job)
        except (EmbeddingProviderError, ValueError, SQLAlchemyError) as exc:
            if job.retries < self.max_retries:
                job.retries += 1
                with self._lock:
                    self._jobs.append(job)
                logger.warning("Embedding job %s failed, retry %s/%s: %s", job.key, job.retries, self.max_retries, exc)
            else:
                logger.error("Embedding job %s dropped after %s retries: %s", job.key, self.max_retries, exc)
        finally:
            with self._lock:
                self._processing = False
        return True

    async def run_forever(self) -> None:
        while True:
            await asyncio.to_thread(self.process_next)
            await asyncio.sleep(self.delay_seconds)


embedding_queue = EmbeddingQueue(
    max_retries=settings.EMBEDDING_QUEUE_MAX_RETRIES,
    delay_seconds=settings.EMBEDDING_QUEUE_DELAY_SECONDS,
)

_task: asyncio.Task | None = None


def enqueue_embedding(kind: str, item_id: str) -> bool:
    """Queue a job when the provider is configured; returns whether it was queued."""
    if not (settings.EMBEDDING_QUEUE_ENABLED and settings.embeddings_ready):
        return False
    embedding_queue.enqueue(kind, item_id)
    return True


async def start_embedding_worker() -> None:
    global _task
    if _task is not None or not settings.EMBEDDING_QUEUE_ENABLED:
        return
    _task = asyncio.create_task(embedding_queue.run_forever(), name="embedding-queue")
    logger.info("Embedding queue worker started")


async def stop_embedding_worker() -> None:
    global _task
    task = _task
    _task = None
    if task is None:
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
