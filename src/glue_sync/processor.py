"""
Background processor that replays queued statements against the remote catalog.

The processor drains the replication queue one job at a time. A failed
statement is classified and then either retried after reconnecting,
repaired with a corrective statement, or abandoned as fatal. Every job ends
with exactly one notification.
"""

import asyncio
import logging
import threading
from typing import Dict, Optional

from .config import SyncConfig
from .ddl.statements import (
    create_database_display,
    create_database_statement,
    force_drop_table_display,
    force_drop_table_statement,
)
from .exceptions import RemoteConnectionError
from .models import JobOutcome, ReplicationJob
from .notifications.audit import AuditSink, LoggingAuditSink
from .notifications.formatting import format_startup_message, format_sync_result
from .notifications.slack import Notifier, NullNotifier
from .remote.connection import ConnectionManager
from .remote.errors import ErrorKind, classify_error, extract_database_name, extract_table_name
from .replication_queue import ReplicationQueue

logger = logging.getLogger(__name__)


class QueueProcessor:
    """
    Single consumer of the replication queue.

    Runs inside its own event loop on a dedicated thread. ``stop()`` may be
    called from any thread; it is observed between jobs and interrupts idle
    and reconnect waits.
    """

    def __init__(
        self,
        config: SyncConfig,
        queue: ReplicationQueue,
        connections: ConnectionManager,
        notifier: Optional[Notifier] = None,
        audit: Optional[AuditSink] = None,
    ):
        self.config = config
        self.queue = queue
        self.connections = connections
        self.notifier = notifier or NullNotifier()
        self.audit = audit or LoggingAuditSink()
        self.busy = False
        self.stats: Dict[str, int] = {
            "processed": 0,
            "succeeded": 0,
            "corrected": 0,
            "failed": 0,
        }
        self._stop_requested = threading.Event()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._wakeup: Optional[asyncio.Event] = None

    @property
    def running(self) -> bool:
        return not self._stop_requested.is_set()

    async def run(self) -> None:
        """Process jobs until stop() is called."""
        self._loop = asyncio.get_running_loop()
        self._wakeup = asyncio.Event()
        if not self.running:
            self._wakeup.set()

        logger.info("Starting queue processor")
        try:
            await self.notifier.notify(format_startup_message(self.config))
            for warning in self.config.config_warnings():
                logger.warning(warning)

            if await self._reconnect():
                logger.info(f"Queue processor online, connected to {self.config.athena.url}")
                await self._process_loop()
        finally:
            remaining = len(self.queue)
            if remaining:
                logger.warning(
                    f"Stopping with {remaining} job(s) still queued; they will not be replicated"
                )
            self.connections.shutdown()
            await self.notifier.close()
            logger.info("Queue processor stopped")

    def stop(self) -> None:
        """Ask the processor to stop. Safe to call from any thread."""
        logger.info("Stopping queue processor")
        self._stop_requested.set()

        loop, wakeup = self._loop, self._wakeup
        if loop is not None and wakeup is not None and not loop.is_closed():
            try:
                loop.call_soon_threadsafe(wakeup.set)
            except RuntimeError:
                logger.debug("Processor loop already closed")

    async def _process_loop(self) -> None:
        while self.running:
            try:
                self.busy = True
                job = self.queue.try_dequeue()
                if job is None:
                    self.busy = False
                    logger.debug(
                        f"DDL queue is empty. Sleeping for {self.config.no_event_sleep_duration}ms"
                    )
                    await self._wait(self.config.no_event_sleep_seconds)
                    continue

                outcome = await self.process_job(job)
                self._record(outcome)
                await self.notifier.notify(format_sync_result(outcome))

            except Exception as e:
                # A single job must never take the processor down
                logger.error(f"Error in queue processor loop: {e}")
                await self._wait(self.config.no_event_sleep_seconds)
            finally:
                self.busy = False

    async def process_job(self, job: ReplicationJob) -> JobOutcome:
        """Run one job to a terminal outcome."""
        statement = job.statement
        logger.info(f"Working on {statement}")

        while True:
            await self.audit.send(f"Trying to execute: {statement}")
            try:
                await self.connections.execute(statement)
                return JobOutcome.succeeded(statement)
            except Exception as e:
                error = e

            kind = classify_error(error)
            if kind is ErrorKind.TRANSIENT_CONNECTIVITY:
                logger.warning(f"Connectivity failure, reconnecting before retry: {error}")
                if await self._reconnect():
                    continue
                return await self._fail(
                    f"Replication stopped before the statement completed: {error}", statement
                )

            if kind is ErrorKind.ALREADY_EXISTS and self.config.drop_table_if_exists:
                return await self._drop_and_recreate(statement, error)

            if kind is ErrorKind.MISSING_DEPENDENCY and self.config.create_missing_db:
                return await self._create_database_and_retry(statement, error)

            return await self._fail(str(error), statement)

    async def _drop_and_recreate(self, statement: str, error: Exception) -> JobOutcome:
        table_name = extract_table_name(statement)
        if table_name is None:
            logger.error("Table already exists but the statement is not a CREATE EXTERNAL TABLE")
            return await self._fail(str(error), statement)

        drop = force_drop_table_statement(table_name)
        try:
            await self.audit.send(f"Dropping table {table_name}")
            await self.connections.execute(drop)
            await self.audit.send(f"Creating table {table_name} after dropping")
            await self.connections.execute(statement)
        except Exception as e:
            await self.audit.send(f"Unable to drop and recreate {table_name}")
            return await self._fail(
                str(error), force_drop_table_display(table_name), statement, corrective_error=str(e)
            )

        logger.info(f"Recreated existing table {table_name}")
        return JobOutcome.corrected(force_drop_table_display(table_name), statement)

    async def _create_database_and_retry(self, statement: str, error: Exception) -> JobOutcome:
        database = extract_database_name(str(error))
        if database is None:
            logger.error(f"Could not find the missing database name in: {error}")
            return await self._fail(str(error), statement)

        create = create_database_statement(database)
        try:
            await self.audit.send(f"Trying to create database {database}")
            await self.connections.execute(create)
            await self.audit.send(f"Retrying table creation: {statement}")
            await self.connections.execute(statement)
        except Exception as e:
            logger.error(f"DB doesn't exist for: {statement}")
            return await self._fail(
                str(error), create_database_display(database), statement, corrective_error=str(e)
            )

        logger.info(f"Created missing database {database}")
        return JobOutcome.corrected(create_database_display(database), statement)

    async def _fail(
        self, error: str, *statements: str, corrective_error: Optional[str] = None
    ) -> JobOutcome:
        logger.error(f"Unable to complete query: {statements[-1]}")
        logger.error(f"ERROR: {error}")
        await self.audit.send(f"ERROR: {error}")
        return JobOutcome.failed(error, *statements, corrective_error=corrective_error)

    async def _reconnect(self) -> bool:
        """Reconnect until it works or stop is requested; no retry ceiling."""
        while self.running:
            try:
                await self.connections.reconnect()
                return True
            except RemoteConnectionError as e:
                logger.warning(
                    f"Unable to connect, retrying in "
                    f"{self.config.reconnect_failed_sleep_duration}ms: {e}"
                )
                await self._wait(self.config.reconnect_sleep_seconds)
        return False

    async def _wait(self, seconds: float) -> None:
        """Sleep, waking early if stop is requested."""
        if self._wakeup is None:
            self._wakeup = asyncio.Event()
            if not self.running:
                self._wakeup.set()
        try:
            await asyncio.wait_for(self._wakeup.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return

    def _record(self, outcome: JobOutcome) -> None:
        self.stats["processed"] += 1
        self.stats[outcome.status.value] += 1
