"""Bounded, deduplicating queue for background generation jobs."""

import asyncio
from collections import deque
from typing import Awaitable, Callable, Deque, Set

import structlog

from .config import MAX_CONCURRENT_GENERATIONS, QUEUE_COOLDOWN
from .models import QueueJob, QueueStatus

log = structlog.get_logger()

Worker = Callable[[str], Awaitable[None]]


class GenerationQueue:
    """Run ``worker(word_id)`` for submitted ids, at most ``max_concurrent`` at a time.

    Jobs are admitted in submission order and finish in whatever order their
    external calls complete. An id that is already pending or active is not
    queued again. Must be used from inside a running event loop.
    """

    def __init__(self, worker: Worker,
                 max_concurrent: int = MAX_CONCURRENT_GENERATIONS,
                 cooldown: float = QUEUE_COOLDOWN):
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self._worker = worker
        self.max_concurrent = max_concurrent
        self.cooldown = cooldown
        self._pending: Deque[QueueJob] = deque()
        self._active: Set[str] = set()
        self._tasks: Set[asyncio.Task] = set()
        self._idle = asyncio.Event()
        self._idle.set()

    def submit(self, word_id: str) -> bool:
        """Queue ``word_id``. Returns False if it is already pending or active."""
        if word_id in self._active or any(job.word_id == word_id for job in self._pending):
            log.info("Word already queued, skipping", word_id=word_id)
            return False

        self._pending.append(QueueJob(word_id=word_id))
        self._idle.clear()
        log.info("Added word to generation queue", word_id=word_id, pending=len(self._pending))
        self._drain()
        return True

    def status(self) -> QueueStatus:
        pending, active = len(self._pending), len(self._active)
        return QueueStatus(pending=pending, active=active, total=pending + active)

    async def join(self):
        """Wait until nothing is pending or active."""
        await self._idle.wait()

    def _drain(self):
        while self._pending and len(self._active) < self.max_concurrent:
            job = self._pending.popleft()
            self._active.add(job.word_id)
            log.info("Processing generation job", word_id=job.word_id,
                     active=len(self._active), pending=len(self._pending))
            task = asyncio.get_running_loop().create_task(self._run(job))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        if not self._pending and not self._active:
            self._idle.set()

    async def _run(self, job: QueueJob):
        try:
            await self._worker(job.word_id)
        except Exception as e:
            log.error("Generation job failed", word_id=job.word_id, error=str(e))
        finally:
            self._active.discard(job.word_id)
            asyncio.get_running_loop().call_later(self.cooldown, self._drain)
