"""
In-memory hand-off queue between catalog callbacks and the processor.
"""

import logging
import queue
from typing import Optional

from .models import ReplicationJob

logger = logging.getLogger(__name__)


class ReplicationQueue:
    """
    Unbounded FIFO of replication jobs.

    Any number of threads may enqueue concurrently while a single consumer
    dequeues. Neither side ever blocks. Jobs are not deduplicated; the
    statements are idempotent instead.
    """

    def __init__(self):
        self._jobs: "queue.SimpleQueue[ReplicationJob]" = queue.SimpleQueue()

    def enqueue(self, job: ReplicationJob) -> None:
        """Append a job, never blocks."""
        self._jobs.put_nowait(job)
        logger.debug(f"Queued statement: {job.statement}")

    def try_dequeue(self) -> Optional[ReplicationJob]:
        """Pop the oldest job, or return None when the queue is empty."""
        try:
            return self._jobs.get_nowait()
        except queue.Empty:
            return None

    def empty(self) -> bool:
        return self._jobs.empty()

    def __len__(self) -> int:
        return self._jobs.qsize()
