"""
Queue collector: polls a set of queues on an interval and emits Jobs.

Polling runs on its own thread; consumers iterate the collector to receive
jobs in emission order. Order is kept within one batch only. The stream
ends once the cancellation event is set and the poll cycle in flight has
finished. The collector never deletes messages.

The interval is waited after each poll cycle completes, so the period
between cycles is the interval plus the time the cycle took.
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import Iterable, Iterator, List, Optional

from .exceptions import QueueError
from .job import Job, QueueHandle
from .queues import MAX_RECEIVE_COUNT

logger = logging.getLogger(__name__)

DEFAULT_VISIBILITY_TIMEOUT = 120

_CLOSED = object()


class Collector:
    def __init__(
        self,
        queue_client,
        queue_names: Iterable[str],
        polling_interval: float = 1.0,
        visibility_timeout: int = DEFAULT_VISIBILITY_TIMEOUT,
        stop_event: Optional[threading.Event] = None,
    ):
        self._client = queue_client
        # Unresolvable queues are a startup error and propagate.
        self._queues: List[QueueHandle] = [queue_client.resolve(name) for name in queue_names]
        self._interval = polling_interval
        self._visibility_timeout = visibility_timeout
        self.stop_event = stop_event or threading.Event()

        self._out: queue.Queue = queue.Queue(maxsize=1)
        self._thread: Optional[threading.Thread] = None

    @property
    def queues(self) -> List[QueueHandle]:
        return list(self._queues)

    def start(self) -> "Collector":
        if self._thread is not None:
            raise RuntimeError("collector already started")
        self._thread = threading.Thread(target=self._run, name="collector", daemon=True)
        self._thread.start()
        return self

    def stop(self) -> None:
        self.stop_event.set()

    def __iter__(self) -> Iterator[Job]:
        if self._thread is None:
            self.start()
        while True:
            job = self._out.get()
            if job is _CLOSED:
                return
            yield job

    def poll_once(self) -> int:
        """Receive one batch from every queue and emit it; returns the number of jobs emitted."""
        emitted = 0
        for handle in self._queues:
            try:
                messages = self._client.receive(
                    handle,
                    max_count=MAX_RECEIVE_COUNT,
                    visibility_timeout=self._visibility_timeout,
                )
            except QueueError as exc:
                logger.error("[error] polling %s failed: %s", handle.name, exc)
                continue
            if messages:
                logger.info("[info] Getting %d messages from %s", len(messages), handle.name)
            for message in messages:
                self._out.put(Job(message=message, queue=handle))
                emitted += 1
        return emitted

    def _run(self) -> None:
        try:
            while not self.stop_event.wait(self._interval):
                try:
                    self.poll_once()
                except Exception:  # noqa: BLE001
                    logger.exception("[error] poll cycle failed")
            logger.info("[info] finishing workers..")
        finally:
            self._out.put(_CLOSED)
