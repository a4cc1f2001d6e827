"""
Tests for glue_sync.processor module.

Tests the QueueProcessor error policy (reconnect and retry, corrective
statements, fatal failures) and the processing loop lifecycle.
"""

import asyncio

import pytest

from glue_sync.ddl.generator import HiveDDLGenerator
from glue_sync.exceptions import RemoteConnectionError
from glue_sync.models import OutcomeStatus, ReplicationJob
from glue_sync.processor import QueueProcessor
from glue_sync.remote.connection import ConnectionManager
from glue_sync.replication_queue import ReplicationQueue


class DatabaseError(Exception):
    pass


ALREADY_EXISTS = "FAILED: AlreadyExistsException Table already exists"
MISSING_DB = "FAILED: SemanticException [Error 10072]: Database does not exist: sales"


@pytest.fixture
def queue():
    return ReplicationQueue()


@pytest.fixture
def connections(sync_config, remote):
    manager = ConnectionManager(sync_config.athena, remote)
    yield manager
    manager.shutdown()


@pytest.fixture
def processor(sync_config, queue, connections, notifier, audit):
    return QueueProcessor(sync_config, queue, connections, notifier=notifier, audit=audit)


@pytest.fixture
def create_ddl(orders_table):
    return HiveDDLGenerator().show_create_table(orders_table)


class TestProcessJob:
    """Test the per-job error policy."""

    @pytest.mark.asyncio
    async def test_success(self, processor, connections, remote, audit):
        await connections.connect()

        outcome = await processor.process_job(ReplicationJob("drop table if exists sales.orders"))

        assert outcome.status is OutcomeStatus.SUCCEEDED
        assert remote.executed == ["drop table if exists sales.orders"]
        assert audit.lines == ["Trying to execute: drop table if exists sales.orders"]

    @pytest.mark.asyncio
    async def test_connectivity_failures_reconnect_and_retry(self, processor, connections, remote):
        statement = "drop table if exists sales.orders"
        remote.fail(statement, ConnectionResetError("reset"), ConnectionResetError("reset"))
        await connections.connect()

        outcome = await processor.process_job(ReplicationJob(statement))

        assert outcome.status is OutcomeStatus.SUCCEEDED
        assert remote.executed == [statement]
        assert connections.connect_count == 3

    @pytest.mark.asyncio
    async def test_reconnect_retries_until_connected(self, processor, connections, remote):
        statement = "drop table if exists sales.orders"
        await connections.connect()
        remote.fail(statement, RemoteConnectionError("connection lost"))
        remote.connect_failures.extend([ConnectionRefusedError("refused")] * 2)

        outcome = await processor.process_job(ReplicationJob(statement))

        assert outcome.status is OutcomeStatus.SUCCEEDED
        assert remote.connect_failures == []
        assert connections.connect_count == 2

    @pytest.mark.asyncio
    async def test_already_exists_drop_and_recreate(self, processor, connections, remote, audit, create_ddl):
        remote.fail(create_ddl, DatabaseError(ALREADY_EXISTS))
        await connections.connect()

        outcome = await processor.process_job(ReplicationJob(create_ddl))

        assert outcome.status is OutcomeStatus.CORRECTED
        assert outcome.statements == ["DROP TABLE sales.orders;", create_ddl]
        assert remote.executed == ["drop table sales.orders", create_ddl]
        assert "Dropping table sales.orders" in audit.lines
        assert "Creating table sales.orders after dropping" in audit.lines

    @pytest.mark.asyncio
    async def test_already_exists_without_drop_flag(
        self, sync_config, queue, connections, remote, create_ddl
    ):
        config = sync_config.model_copy(update={"drop_table_if_exists": False})
        processor = QueueProcessor(config, queue, connections)
        remote.fail(create_ddl, DatabaseError(ALREADY_EXISTS))
        await connections.connect()

        outcome = await processor.process_job(ReplicationJob(create_ddl))

        assert outcome.status is OutcomeStatus.FAILED
        assert ALREADY_EXISTS in outcome.error
        assert remote.executed == []

    @pytest.mark.asyncio
    async def test_drop_and_recreate_failure(self, processor, connections, remote, create_ddl):
        remote.fail(create_ddl, DatabaseError(ALREADY_EXISTS))
        remote.fail("drop table sales.orders", DatabaseError("FAILED: access denied"))
        await connections.connect()

        outcome = await processor.process_job(ReplicationJob(create_ddl))

        assert outcome.status is OutcomeStatus.FAILED
        assert outcome.statements == ["DROP TABLE sales.orders;", create_ddl]
        assert ALREADY_EXISTS in outcome.error
        assert outcome.corrective_error == "FAILED: access denied"

    @pytest.mark.asyncio
    async def test_missing_database_created(self, processor, connections, remote, audit, create_ddl):
        remote.fail(create_ddl, DatabaseError(MISSING_DB))
        await connections.connect()

        outcome = await processor.process_job(ReplicationJob(create_ddl))

        assert outcome.status is OutcomeStatus.CORRECTED
        assert outcome.statements == ["CREATE DATABASE IF NOT EXISTS sales;", create_ddl]
        assert remote.executed == ["create database if not exists sales", create_ddl]
        assert "Trying to create database sales" in audit.lines

    @pytest.mark.asyncio
    async def test_missing_database_without_flag(
        self, sync_config, queue, connections, remote, create_ddl
    ):
        config = sync_config.model_copy(update={"create_missing_db": False})
        processor = QueueProcessor(config, queue, connections)
        remote.fail(create_ddl, DatabaseError(MISSING_DB))
        await connections.connect()

        outcome = await processor.process_job(ReplicationJob(create_ddl))

        assert outcome.status is OutcomeStatus.FAILED
        assert remote.executed == []

    @pytest.mark.asyncio
    async def test_fatal_error(self, processor, connections, remote, audit):
        remote.fail("bogus", DatabaseError("FAILED: ParseException line 1:0"))
        await connections.connect()

        outcome = await processor.process_job(ReplicationJob("bogus"))

        assert outcome.status is OutcomeStatus.FAILED
        assert outcome.statements == ["bogus"]
        assert outcome.error == "FAILED: ParseException line 1:0"
        assert audit.lines[-1] == "ERROR: FAILED: ParseException line 1:0"

    @pytest.mark.asyncio
    async def test_stop_during_reconnect_abandons_job(self, processor, connections, remote):
        statement = "drop table if exists sales.orders"
        remote.fail(statement, ConnectionResetError("reset"))
        await connections.connect()
        processor.stop()

        outcome = await processor.process_job(ReplicationJob(statement))

        assert outcome.status is OutcomeStatus.FAILED
        assert outcome.error.startswith("Replication stopped before the statement completed")


class TestProcessingLoop:
    """Test the run loop."""

    async def _run_until(self, processor, predicate, timeout=5.0):
        task = asyncio.create_task(processor.run())

        async def wait():
            while not predicate():
                await asyncio.sleep(0.01)

        try:
            await asyncio.wait_for(wait(), timeout)
        finally:
            processor.stop()
            await asyncio.wait_for(task, timeout)

    @pytest.mark.asyncio
    async def test_jobs_processed_in_order(self, processor, queue, remote, notifier):
        statements = [f"drop table if exists sales.t{i}" for i in range(3)]
        for statement in statements:
            queue.enqueue(ReplicationJob(statement))

        await self._run_until(processor, lambda: processor.stats["processed"] == 3)

        assert remote.executed == statements
        assert processor.stats == {"processed": 3, "succeeded": 3, "corrected": 0, "failed": 0}
        assert notifier.messages[0].startswith("*Starting Hive-Glue Sync Agent*")
        assert len(notifier.messages) == 4
        assert notifier.closed

    @pytest.mark.asyncio
    async def test_fatal_job_does_not_block_queue(self, processor, queue, remote, notifier):
        remote.fail("bogus", DatabaseError("FAILED: ParseException"))
        queue.enqueue(ReplicationJob("bogus"))
        queue.enqueue(ReplicationJob("drop table if exists sales.orders"))

        await self._run_until(processor, lambda: processor.stats["processed"] == 2)

        assert processor.stats["failed"] == 1
        assert processor.stats["succeeded"] == 1
        assert remote.executed == ["drop table if exists sales.orders"]
        assert notifier.messages[1].startswith("Sync result : :x: ")
        assert notifier.messages[2].startswith("*Sync result* : :white_check_mark:")

    @pytest.mark.asyncio
    async def test_initial_connect_retried(self, processor, queue, remote):
        remote.connect_failures.extend([ConnectionRefusedError("refused")] * 2)
        queue.enqueue(ReplicationJob("drop table if exists sales.orders"))

        await self._run_until(processor, lambda: processor.stats["processed"] == 1)

        assert remote.executed == ["drop table if exists sales.orders"]
        assert len(remote.connections) == 1

    @pytest.mark.asyncio
    async def test_connectivity_failures_do_not_lose_job(self, processor, queue, remote, notifier, audit):
        statement = "drop table if exists sales.orders"
        remote.fail(statement, ConnectionResetError("reset by peer"), ConnectionResetError("reset by peer"))
        queue.enqueue(ReplicationJob(statement))

        await self._run_until(processor, lambda: processor.stats["processed"] == 1)

        assert remote.executed == [statement]
        assert processor.stats == {"processed": 1, "succeeded": 1, "corrected": 0, "failed": 0}
        assert len(remote.connections) == 3
        assert audit.lines == [f"Trying to execute: {statement}"] * 3
        assert len(notifier.messages) == 2
        assert notifier.messages[0].startswith("*Starting Hive-Glue Sync Agent*")
        assert notifier.messages[1].startswith("*Sync result* : :white_check_mark:")
        assert statement in notifier.messages[1]

    @pytest.mark.asyncio
    async def test_stop_closes_connection(self, processor, connections):
        await self._run_until(processor, lambda: connections.is_connected)

        assert not connections.is_connected
        assert not processor.running
        assert not processor.busy

    @pytest.mark.asyncio
    async def test_stop_before_run(self, processor, connections):
        processor.stop()
        await asyncio.wait_for(processor.run(), 1.0)

        assert connections.connect_count == 0
