"""
Pytest configuration and shared fixtures for glue-sync tests.

This module provides sample catalog objects, configurations and an in-memory
stand-in for the remote Athena endpoint whose failures can be scripted per
statement.
"""

import threading
from typing import Dict, List

import pytest

from glue_sync.config import AthenaConfig, SyncConfig
from glue_sync.models import FieldSchema, PartitionRef, TableRef
from glue_sync.notifications.audit import AuditSink
from glue_sync.notifications.slack import Notifier
from glue_sync.remote.connection import RemoteConnection


# ============================================================================
# Remote endpoint doubles
# ============================================================================

class FakeConnection(RemoteConnection):
    """Connection handed out by FakeRemote."""

    def __init__(self, remote: "FakeRemote"):
        self.remote = remote
        self.closed = False

    def execute(self, statement: str) -> None:
        self.remote.threads.append(threading.current_thread().name)
        if self.closed:
            raise ConnectionError("connection is closed")
        pending = self.remote.failures.get(statement)
        if pending:
            raise pending.pop(0)
        self.remote.executed.append(statement)

    def close(self) -> None:
        self.closed = True
        if self.remote.close_error is not None:
            raise self.remote.close_error


class FakeRemote:
    """
    Connector for ConnectionManager backed by memory.

    ``fail(statement, *errors)`` makes the next executions of a statement
    raise the given errors in order; ``connect_failures`` is consumed one
    per connection attempt.
    """

    def __init__(self):
        self.executed: List[str] = []
        self.failures: Dict[str, List[Exception]] = {}
        self.connect_failures: List[Exception] = []
        self.connections: List[FakeConnection] = []
        self.threads: List[str] = []
        self.close_error = None

    def fail(self, statement: str, *errors: Exception) -> None:
        self.failures.setdefault(statement, []).extend(errors)

    def __call__(self, config: AthenaConfig) -> FakeConnection:
        if self.connect_failures:
            raise self.connect_failures.pop(0)
        connection = FakeConnection(self)
        self.connections.append(connection)
        return connection


class RecordingNotifier(Notifier):
    def __init__(self):
        self.messages: List[str] = []
        self.closed = False

    async def send(self, message: str) -> None:
        self.messages.append(message)

    async def close(self) -> None:
        self.closed = True


class RecordingAuditSink(AuditSink):
    def __init__(self):
        self.lines: List[str] = []

    async def send(self, line: str) -> None:
        self.lines.append(line)


@pytest.fixture
def remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def audit() -> RecordingAuditSink:
    return RecordingAuditSink()


# ============================================================================
# Configuration fixtures
# ============================================================================

@pytest.fixture
def athena_config() -> AthenaConfig:
    return AthenaConfig(
        url="jdbc:awsathena://athena.eu-west-1.amazonaws.com:443",
        s3_staging_dir="s3://query-results/glue-sync/",
    )


@pytest.fixture
def sync_config(athena_config) -> SyncConfig:
    """Configuration replicating the ``sales`` database with fast timings."""
    return SyncConfig(
        athena=athena_config,
        db_whitelist="sales",
        drop_table_if_exists=True,
        create_missing_db=True,
        no_event_sleep_duration=10,
        reconnect_failed_sleep_duration=10,
    )


@pytest.fixture
def sample_config_yaml() -> str:
    return """
athena:
  url: jdbc:awsathena://athena.eu-west-1.amazonaws.com:443
  s3_staging_dir: s3://query-results/glue-sync/
db_whitelist:
  - sales
  - marketing
drop_table_if_exists: true
no_event_sleep_duration: 10
reconnect_failed_sleep_duration: 10
"""


@pytest.fixture
def config_file(tmp_path, sample_config_yaml) -> str:
    path = tmp_path / "glue-sync.yaml"
    path.write_text(sample_config_yaml)
    return str(path)


# ============================================================================
# Catalog fixtures
# ============================================================================

@pytest.fixture
def orders_table() -> TableRef:
    """External, partitioned, S3 backed table in a whitelisted database."""
    return TableRef(
        database_name="sales",
        table_name="orders",
        location="s3a://warehouse/sales/orders",
        table_type="EXTERNAL_TABLE",
        columns=[
            FieldSchema(name="id", type="bigint", comment="Order id"),
            FieldSchema(name="amount", type="decimal(10,2)"),
        ],
        partition_keys=[FieldSchema(name="dt", type="string")],
        parameters={"EXTERNAL": "TRUE", "transient_lastDdlTime": "1700000000", "classification": "csv"},
        input_format="org.apache.hadoop.mapred.TextInputFormat",
        output_format="org.apache.hadoop.hive.ql.io.HiveIgnoreKeyTextOutputFormat",
        serde_library="org.apache.hadoop.hive.serde2.lazy.LazySimpleSerDe",
        serde_parameters={"field.delim": ","},
    )


@pytest.fixture
def orders_partition() -> PartitionRef:
    return PartitionRef(values=["2024-01-01"], location="s3a://warehouse/sales/orders/dt=2024-01-01")


@pytest.fixture
def orders_table_data(orders_table) -> dict:
    """The orders table as it appears in an events file."""
    return orders_table.model_dump(mode="json")
