"""
Translation of catalog events into replication jobs.

The translator decides whether an event is eligible for replication and, if
so, renders the statement(s) the remote catalog has to run. It never talks
to the remote endpoint.
"""

import logging
from typing import List, Optional

from .config import SyncConfig
from .ddl.generator import DDLGenerator, HiveDDLGenerator
from .ddl.statements import (
    add_partition_statement,
    drop_partition_statement,
    drop_table_statement,
    is_s3_location,
)
from .exceptions import TranslationError
from .models import (
    AddPartitionEvent,
    CatalogEvent,
    CreateTableEvent,
    DropPartitionEvent,
    DropTableEvent,
    EventType,
    PartitionRef,
    ReplicationJob,
    TableKind,
    TableRef,
)

logger = logging.getLogger(__name__)

REPLICATED_TABLE_KINDS = (TableKind.EXTERNAL, TableKind.MANAGED)


class EventTranslator:
    """
    Turns catalog events into replication jobs.

    Filtering happens in a fixed order: suppressed drops, database
    whitelist, table kind, then storage location. An event failing any step
    produces no jobs.
    """

    def __init__(self, config: SyncConfig, ddl_generator: Optional[DDLGenerator] = None):
        self.config = config
        self.ddl_generator = ddl_generator or HiveDDLGenerator()

    def translate(self, event: CatalogEvent) -> List[ReplicationJob]:
        """Translate any supported event."""
        if isinstance(event, CreateTableEvent):
            return self.create_table(event)
        if isinstance(event, DropTableEvent):
            return self.drop_table(event)
        if isinstance(event, AddPartitionEvent):
            return self.add_partition(event)
        if isinstance(event, DropPartitionEvent):
            return self.drop_partition(event)
        raise TranslationError(f"Unsupported event: {type(event).__name__}")

    def create_table(self, event: CreateTableEvent) -> List[ReplicationJob]:
        table = event.table
        if not self._table_passes(table, EventType.CREATE_TABLE):
            return []

        try:
            ddl = self.ddl_generator.show_create_table(table)
        except Exception as e:
            logger.error(f"Unable to get current Create Table statement for replication: {e}")
            return []

        logger.info(f"Requested replication of {table.fqtn}")
        return [ReplicationJob(ddl)]

    def drop_table(self, event: DropTableEvent) -> List[ReplicationJob]:
        table = event.table
        if not self._table_passes(table, EventType.DROP_TABLE):
            return []

        logger.debug(f"Requested drop of table: {table.fqtn}")
        return [ReplicationJob(drop_table_statement(table))]

    def add_partition(self, event: AddPartitionEvent) -> List[ReplicationJob]:
        if not event.status:
            logger.debug(f"Ignoring failed add partition on {event.table.fqtn}")
            return []
        if not self._table_passes(event.table, EventType.ADD_PARTITION):
            return []

        jobs = []
        for partition in event.partitions:
            statement = self._partition_statement(event.table, partition, add=True)
            if statement:
                jobs.append(ReplicationJob(statement))
        return jobs

    def drop_partition(self, event: DropPartitionEvent) -> List[ReplicationJob]:
        if not event.status:
            logger.debug(f"Ignoring failed drop partition on {event.table.fqtn}")
            return []
        if not self._table_passes(event.table, EventType.DROP_PARTITION):
            return []

        statement = self._partition_statement(event.table, event.partition, add=False)
        if statement:
            logger.debug(f"Requested drop of partition on {event.table.fqtn}")
            return [ReplicationJob(statement)]
        return []

    def _table_passes(self, table: TableRef, event_type: EventType) -> bool:
        """Table level filter shared by all event kinds."""
        if event_type.is_drop and self.config.suppress_all_drop_events:
            logger.debug(f"Ignoring {event_type.value} event as drop events are suppressed")
            return False

        if not self.config.is_whitelisted(table.database_name):
            logger.debug(
                f"Ignoring {event_type.value} on {table.fqtn}: "
                f"database '{table.database_name}' is not whitelisted"
            )
            return False

        if table.table_type not in REPLICATED_TABLE_KINDS:
            logger.debug(
                f"Ignoring {event_type.value} on {table.fqtn}: "
                f"table type {table.table_type.value} is not replicated"
            )
            return False

        if not is_s3_location(table.location):
            logger.debug(
                f"Ignoring {event_type.value} on {table.fqtn} as it is not stored on S3 "
                f"(location {table.location})"
            )
            return False

        return True

    def _partition_statement(
        self, table: TableRef, partition: PartitionRef, add: bool
    ) -> Optional[str]:
        """Render one partition's statement, or None if the partition is skipped."""
        if not is_s3_location(partition.location):
            logger.debug(
                f"Not replicating partition {partition.values} of {table.fqtn} "
                f"as it is not S3 based (location {partition.location})"
            )
            return None

        try:
            if add:
                return add_partition_statement(table, partition)
            return drop_partition_statement(table, partition)
        except TranslationError as e:
            logger.error(f"Skipping partition {partition.values} of {table.fqtn}: {e}")
            return None
