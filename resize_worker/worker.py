"""
Queue worker: one thread executing jobs one at a time.

A worker owns a bounded inbox. Stop requests are only checked between jobs,
so a job that has started always runs to completion, including its delete.
Jobs still waiting in the inbox when a stop is serviced are dropped.
"""

from __future__ import annotations

from enum import Enum
import logging
import queue
import threading
from typing import Optional

from .config import AckPolicy
from .exceptions import JobDecodeError, JobError, QueueError
from .job import Job, Operation
from .pipeline import process_operation
from .transform import DEFAULT_JPEG_QUALITY

logger = logging.getLogger(__name__)

DEFAULT_INBOX_SIZE = 100

_WAKE = object()


class WorkerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"


class Worker:
    def __init__(
        self,
        worker_id: int,
        store,
        queue_client,
        ack_policy: AckPolicy = AckPolicy.ALWAYS,
        inbox_size: int = DEFAULT_INBOX_SIZE,
        quality: int = DEFAULT_JPEG_QUALITY,
    ):
        self.id = worker_id
        self._store = store
        self._queue_client = queue_client
        self._ack_policy = ack_policy
        self._quality = quality

        self._inbox: queue.Queue = queue.Queue(maxsize=inbox_size)
        self._stop_requested = threading.Event()
        self._stopped = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._state = WorkerState.IDLE
        self._processed = 0
        self.dropped = 0

    @property
    def state(self) -> WorkerState:
        return self._state

    @property
    def processed(self) -> int:
        """Number of jobs this worker has executed."""
        return self._processed

    def pending(self) -> int:
        return self._inbox.qsize()

    def start(self) -> None:
        if self._thread is not None:
            raise RuntimeError(f"worker[{self.id}] already started")
        self._state = WorkerState.RUNNING
        self._thread = threading.Thread(target=self._run, name=f"worker-{self.id}", daemon=True)
        self._thread.start()
        logger.info("worker[%d] started", self.id)

    def submit(self, job: Job) -> None:
        """Queue a job; blocks while the inbox is full."""
        self._inbox.put(job)

    def request_stop(self) -> None:
        if self._state is WorkerState.RUNNING:
            self._state = WorkerState.STOPPING
        self._stop_requested.set()
        try:
            self._inbox.put_nowait(_WAKE)
        except queue.Full:
            # A full inbox wakes the loop anyway; the flag is seen before the next job.
            pass

    def wait_stopped(self, timeout: Optional[float] = None) -> bool:
        if self._thread is None:
            return True
        return self._stopped.wait(timeout)

    def stop(self, timeout: Optional[float] = None) -> bool:
        self.request_stop()
        return self.wait_stopped(timeout)

    def _run(self) -> None:
        try:
            while True:
                job = self._inbox.get()
                if job is _WAKE:
                    break
                if self._stop_requested.is_set():
                    self.dropped += 1
                    break
                try:
                    self.execute(job)
                except Exception:  # noqa: BLE001
                    logger.exception("worker[%d] unexpected error", self.id)
        finally:
            self.dropped += self._discard_inbox()
            if self.dropped:
                logger.warning("worker[%d] dropping %d queued jobs", self.id, self.dropped)
            self._state = WorkerState.STOPPED
            logger.info("worker[%d] finished", self.id)
            self._stopped.set()

    def _discard_inbox(self) -> int:
        discarded = 0
        while True:
            try:
                item = self._inbox.get_nowait()
            except queue.Empty:
                return discarded
            if item is not _WAKE:
                discarded += 1

    def execute(self, job: Job) -> bool:
        """
        Execute one job and acknowledge it according to the ack policy.

        Returns True on success. Per-job errors are logged, never raised. A
        payload that does not decode is left on the queue untouched.
        """
        try:
            operation = Operation.from_payload(job.message.body)
        except JobDecodeError as exc:
            logger.warning(
                "worker[%d] cannot decode message %s from %s: %s",
                self.id,
                job.message.message_id,
                job.queue.name,
                exc,
            )
            return False

        succeeded = False
        try:
            process_operation(operation, self._store, worker_id=self.id, quality=self._quality)
            succeeded = True
        except JobError as exc:
            logger.error("worker[%d] %s failed: %s", self.id, operation.describe(), exc)
        except Exception:  # noqa: BLE001
            logger.exception("worker[%d] %s failed unexpectedly", self.id, operation.describe())
        finally:
            self._processed += 1
            if self._ack_policy.should_delete(succeeded):
                self._delete(job)
            else:
                logger.info(
                    "[log] kept %s on %s for redelivery", job.message.message_id, job.queue.name
                )
        return succeeded

    def _delete(self, job: Job) -> None:
        try:
            self._queue_client.delete(job.queue, job.message)
        except QueueError as exc:
            logger.error("[log] delete of %s failed: %s", job.message.message_id, exc)
            return
        logger.info("[log] deleted %s", job.message.message_id)
