"""
Replication service wiring and lifecycle.

Builds the explicit context shared by the listener and the processor
(configuration, queue, connection manager) and runs the processor on its
own background thread.
"""

import asyncio
import atexit
import logging
import threading
import time
from typing import Optional

from .config import SyncConfig
from .ddl.generator import DDLGenerator
from .exceptions import ProcessorError
from .listener import CatalogSyncListener
from .notifications.audit import AuditSink, build_audit_sink
from .notifications.slack import Notifier, build_notifier
from .processor import QueueProcessor
from .remote.connection import ConnectionManager, Connector
from .replication_queue import ReplicationQueue
from .translator import EventTranslator

logger = logging.getLogger(__name__)

PROCESSOR_THREAD_NAME = "GlueSyncThread"


class ReplicationService:
    """
    Owns every long-lived component of the sync agent.

    Hosts register ``listener`` with their event dispatch, call ``start()``
    once, and ``stop()`` on shutdown. Jobs still queued at stop are not
    replicated.
    """

    def __init__(
        self,
        config: SyncConfig,
        connector: Optional[Connector] = None,
        notifier: Optional[Notifier] = None,
        audit: Optional[AuditSink] = None,
        ddl_generator: Optional[DDLGenerator] = None,
    ):
        self.config = config
        self.queue = ReplicationQueue()
        self.connections = ConnectionManager(config.athena, connector)
        self.processor = QueueProcessor(
            config,
            self.queue,
            self.connections,
            notifier=notifier or build_notifier(config.notifications),
            audit=audit or build_audit_sink(config.audit),
        )
        self.translator = EventTranslator(config, ddl_generator)
        self.listener = CatalogSyncListener(self.translator, self.queue)
        self._thread: Optional[threading.Thread] = None
        self._shutdown_hook = False

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self, install_shutdown_hook: bool = True) -> None:
        """Start the processor thread."""
        if self._thread is not None:
            raise ProcessorError("Replication service already started")

        self._thread = threading.Thread(
            target=self._run_processor, name=PROCESSOR_THREAD_NAME, daemon=True
        )
        self._thread.start()

        if install_shutdown_hook:
            atexit.register(self.stop)
            self._shutdown_hook = True

        logger.info(f"Replication service started, endpoint {self.config.athena.url}")

    def stop(self, timeout: Optional[float] = 10.0) -> None:
        """Signal the processor and close the remote connection immediately."""
        if self._thread is None:
            return

        self.processor.stop()
        self.connections.close()
        self._thread.join(timeout)
        if self._thread.is_alive():
            logger.warning(f"Processor thread did not stop within {timeout}s")

        if self._shutdown_hook:
            atexit.unregister(self.stop)
            self._shutdown_hook = False

    def wait_until_idle(self, timeout: Optional[float] = None, poll_interval: float = 0.05) -> bool:
        """Block until the queue is drained and no job is in flight."""
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            if self.queue.empty() and not self.processor.busy:
                return True
            if not self.is_running:
                return self.queue.empty()
            if deadline is not None and time.monotonic() >= deadline:
                return False
            time.sleep(poll_interval)

    def _run_processor(self) -> None:
        try:
            asyncio.run(self.processor.run())
        except Exception as e:
            logger.error(f"Queue processor terminated unexpectedly: {e}")

    def __enter__(self) -> "ReplicationService":
        self.start(install_shutdown_hook=False)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()
