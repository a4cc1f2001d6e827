"""
Catalog objects and events delivered by the host metastore.

These are transient views of the host's table and partition metadata. They
are built per event, handed to the translator and never persisted.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError, field_validator

from .exceptions import ValidationError


class TableKind(str, Enum):
    """Hive table types."""

    EXTERNAL = "EXTERNAL_TABLE"
    MANAGED = "MANAGED_TABLE"
    VIRTUAL_VIEW = "VIRTUAL_VIEW"
    OTHER = "OTHER"

    @classmethod
    def _missing_(cls, value: object) -> "TableKind":
        return cls.OTHER


class EventType(str, Enum):
    """Catalog event kinds the listener reacts to."""

    CREATE_TABLE = "create_table"
    DROP_TABLE = "drop_table"
    ADD_PARTITION = "add_partition"
    DROP_PARTITION = "drop_partition"

    @property
    def is_drop(self) -> bool:
        return self in (EventType.DROP_TABLE, EventType.DROP_PARTITION)


class FieldSchema(BaseModel):
    """A column or partition key."""

    model_config = ConfigDict(frozen=True)

    name: str
    type: str
    comment: Optional[str] = None


class TableRef(BaseModel):
    """A table as seen by the host catalog."""

    model_config = ConfigDict(frozen=True)

    database_name: str
    table_name: str
    location: str = ""
    table_type: TableKind = TableKind.OTHER
    columns: List[FieldSchema] = Field(default_factory=list)
    partition_keys: List[FieldSchema] = Field(default_factory=list)
    parameters: Dict[str, str] = Field(default_factory=dict)
    input_format: Optional[str] = None
    output_format: Optional[str] = None
    serde_library: Optional[str] = None
    serde_parameters: Dict[str, str] = Field(default_factory=dict)

    @field_validator("table_type", mode="before")
    @classmethod
    def coerce_table_type(cls, v: Any) -> TableKind:
        return v if isinstance(v, TableKind) else TableKind(str(v))

    @property
    def fqtn(self) -> str:
        """Fully qualified table name."""
        return f"{self.database_name}.{self.table_name}"


class PartitionRef(BaseModel):
    """A partition; values are positional to the owning table's partition keys."""

    model_config = ConfigDict(frozen=True)

    values: List[str]
    location: str = ""

    @field_validator("values", mode="before")
    @classmethod
    def stringify_values(cls, v: Any) -> Any:
        if isinstance(v, (list, tuple)):
            return [str(item) for item in v]
        return v


@dataclass(frozen=True)
class CreateTableEvent:
    table: TableRef
    event_type: EventType = EventType.CREATE_TABLE


@dataclass(frozen=True)
class DropTableEvent:
    table: TableRef
    event_type: EventType = EventType.DROP_TABLE


@dataclass(frozen=True)
class AddPartitionEvent:
    table: TableRef
    partitions: List[PartitionRef]
    status: bool = True
    event_type: EventType = EventType.ADD_PARTITION


@dataclass(frozen=True)
class DropPartitionEvent:
    table: TableRef
    partition: PartitionRef
    status: bool = True
    event_type: EventType = EventType.DROP_PARTITION


CatalogEvent = Union[CreateTableEvent, DropTableEvent, AddPartitionEvent, DropPartitionEvent]


@dataclass(frozen=True)
class ReplicationJob:
    """A single remote statement waiting to be executed."""

    statement: str


def parse_event(data: Mapping[str, Any]) -> CatalogEvent:
    """
    Build a catalog event from a JSON-style mapping.

    The mapping carries an ``event`` discriminator plus ``table`` and, for
    partition events, ``partitions`` (add) or ``partition`` (drop) and an
    optional ``status``.

    Raises:
        ValidationError: If the mapping does not describe a known event
    """
    try:
        event_type = EventType(data.get("event"))
    except ValueError:
        raise ValidationError(f"Unknown event type: {data.get('event')!r}")

    if "table" not in data:
        raise ValidationError(f"Event '{event_type.value}' has no table")

    try:
        table = TableRef.model_validate(data["table"])
        status = bool(data.get("status", True))

        if event_type is EventType.CREATE_TABLE:
            return CreateTableEvent(table=table)
        if event_type is EventType.DROP_TABLE:
            return DropTableEvent(table=table)
        if event_type is EventType.ADD_PARTITION:
            partitions = [PartitionRef.model_validate(p) for p in data.get("partitions", [])]
            return AddPartitionEvent(table=table, partitions=partitions, status=status)

        if "partition" not in data:
            raise ValidationError("Event 'drop_partition' has no partition")
        partition = PartitionRef.model_validate(data["partition"])
        return DropPartitionEvent(table=table, partition=partition, status=status)

    except PydanticValidationError as e:
        raise ValidationError(f"Invalid '{event_type.value}' event: {e}")


class OutcomeStatus(str, Enum):
    """Terminal state of a job."""

    SUCCEEDED = "succeeded"
    CORRECTED = "corrected"
    FAILED = "failed"


@dataclass
class JobOutcome:
    """Result of processing one job, reported exactly once."""

    status: OutcomeStatus
    statements: List[str]
    error: Optional[str] = None
    corrective_error: Optional[str] = None

    @property
    def is_success(self) -> bool:
        return self.status is not OutcomeStatus.FAILED

    @classmethod
    def succeeded(cls, statement: str) -> "JobOutcome":
        return cls(OutcomeStatus.SUCCEEDED, [statement])

    @classmethod
    def corrected(cls, *statements: str) -> "JobOutcome":
        return cls(OutcomeStatus.CORRECTED, list(statements))

    @classmethod
    def failed(
        cls, error: str, *statements: str, corrective_error: Optional[str] = None
    ) -> "JobOutcome":
        return cls(OutcomeStatus.FAILED, list(statements), error, corrective_error)
