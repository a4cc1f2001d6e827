"""
Host-facing catalog event listener for glue-sync.

The host metastore calls one method per event kind on its own threads. Each
callback translates the event and enqueues the resulting jobs; it never
blocks on the remote endpoint and never raises into the host.
"""

import logging

from .exceptions import GlueSyncError
from .models import (
    AddPartitionEvent,
    CatalogEvent,
    CreateTableEvent,
    DropPartitionEvent,
    DropTableEvent,
)
from .replication_queue import ReplicationQueue
from .translator import EventTranslator

logger = logging.getLogger(__name__)


class CatalogSyncListener:
    """Receives catalog events and queues the statements to replicate."""

    def __init__(self, translator: EventTranslator, queue: ReplicationQueue):
        self.translator = translator
        self.queue = queue

    def on_create_table(self, event: CreateTableEvent) -> int:
        return self.dispatch(event)

    def on_drop_table(self, event: DropTableEvent) -> int:
        return self.dispatch(event)

    def on_add_partition(self, event: AddPartitionEvent) -> int:
        return self.dispatch(event)

    def on_drop_partition(self, event: DropPartitionEvent) -> int:
        return self.dispatch(event)

    def dispatch(self, event: CatalogEvent) -> int:
        """Translate and enqueue an event. Returns the number of jobs queued."""
        try:
            jobs = self.translator.translate(event)
        except GlueSyncError as e:
            logger.error(f"Failed to translate {type(event).__name__}: {e}")
            return 0
        except Exception as e:
            logger.error(f"Unexpected error translating {type(event).__name__}: {e}")
            return 0

        for job in jobs:
            self.queue.enqueue(job)

        if jobs:
            logger.debug(f"Queued {len(jobs)} job(s) for {event.table.fqtn}")
        return len(jobs)
