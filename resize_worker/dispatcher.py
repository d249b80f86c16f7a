"""
Fixed-size worker pool with round-robin assignment.

The cursor is not synchronized: exactly one producer thread may call
`assign`. `stop` must only be called once that producer is done.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from .config import AckPolicy
from .job import Job
from .transform import DEFAULT_JPEG_QUALITY
from .worker import DEFAULT_INBOX_SIZE, Worker

logger = logging.getLogger(__name__)


class Dispatcher:
    def __init__(self, workers: List[Worker]):
        if not workers:
            raise ValueError("Dispatcher needs at least one worker")
        self._workers = list(workers)
        self._cursor = 0

    @classmethod
    def create(
        cls,
        size: int,
        store,
        queue_client,
        ack_policy: AckPolicy = AckPolicy.ALWAYS,
        inbox_size: int = DEFAULT_INBOX_SIZE,
        quality: int = DEFAULT_JPEG_QUALITY,
    ) -> "Dispatcher":
        return cls(
            [
                Worker(i, store, queue_client, ack_policy=ack_policy, inbox_size=inbox_size, quality=quality)
                for i in range(size)
            ]
        )

    @property
    def workers(self) -> List[Worker]:
        return list(self._workers)

    @property
    def cursor(self) -> int:
        """Index of the worker that receives the next job."""
        return self._cursor

    def __len__(self) -> int:
        return len(self._workers)

    def start(self) -> None:
        for worker in self._workers:
            worker.start()

    def assign(self, job: Job) -> int:
        """Hand `job` to the worker at the cursor and advance it; returns that worker's index."""
        index = self._cursor
        self._workers[index].submit(job)
        self._cursor = (index + 1) % len(self._workers)
        return index

    def stop(self, timeout: Optional[float] = None) -> None:
        """Ask every worker to stop, then block until all have finished their current job."""
        for worker in self._workers:
            worker.request_stop()
        for worker in self._workers:
            if not worker.wait_stopped(timeout):
                logger.warning("worker[%d] did not stop within %ss", worker.id, timeout)
        logger.info("all %d workers stopped", len(self._workers))
