"""
Job Marshaling Queue
====================

Thread-safe FIFO of deferred actions, drained by the control loop.

Transport callbacks fire on the transport's I/O thread. Any state change
that must be linearized with tick-driven logic is wrapped in a zero-argument
job and put here; the control loop drains the queue once per tick.

Design Rules:
    - put() may be called from any thread
    - drain() runs jobs on the calling (control loop) thread only
    - Jobs run FIFO, exactly once, during the drain that finds them
    - Jobs put during a drain run in that same drain
    - A failing job is logged and does not abort the drain
"""

import logging
import threading
from collections import deque
from typing import Callable, Deque


logger = logging.getLogger(__name__)


Job = Callable[[], None]


class JobQueue:
    """
    Lock-protected deque of jobs.

    Example:
        jobs = JobQueue()

        # Transport thread
        jobs.put(lambda: controller.on_open())

        # Control loop, once per tick
        jobs.drain()
    """

    def __init__(self, debug: bool = False) -> None:
        """
        Initialize job queue.

        Args:
            debug: Log every job execution at DEBUG level
        """
        self._jobs: Deque[Job] = deque()
        self._lock = threading.Lock()
        self.debug = debug
        self.failed_count: int = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def put(self, job: Job) -> None:
        """Queue a job for the next drain."""
        with self._lock:
            self._jobs.append(job)

    def drain(self) -> int:
        """
        Execute queued jobs until the queue is empty.

        Returns:
            Number of jobs executed (including failed ones).
        """
        executed = 0
        while True:
            with self._lock:
                if not self._jobs:
                    break
                job = self._jobs.popleft()
                remaining = len(self._jobs)

            if self.debug:
                logger.debug(f"Executing job ({remaining} queued behind it)")

            executed += 1
            try:
                job()
            except Exception:
                self.failed_count += 1
                logger.exception("Job invoke exception")

        return executed
