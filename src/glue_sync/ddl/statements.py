"""
Builders for the statements replicated to the remote catalog.

Every statement is phrased idempotently (``if exists`` / ``if not exists``)
so that a job delivered twice leaves the remote catalog in the same state.
Values are inlined into the SQL text, so anything quoted goes through
``escape_hive_command`` first.
"""

import re
from typing import Optional, Sequence

from ..exceptions import TranslationError
from ..models import FieldSchema, PartitionRef, TableRef


S3_SCHEME = "s3://"

_S3_LOCATION = re.compile(r"^s3[an]?://")
_S3_VARIANT = re.compile(r"^s3[an]://")

# Partition key types whose values must be quoted in a partition spec
_STRING_LIKE_TYPES = ("string", "varchar", "char", "date", "timestamp")

_HIVE_ESCAPES = {
    "'": "\\'",
    ";": "\\;",
    "\\": "\\\\",
    "\b": "\\b",
    "\n": "\\n",
    "\t": "\\t",
    "\f": "\\f",
    "\r": "\\r",
}


def escape_hive_command(value: str) -> str:
    """Escape a value for inclusion inside a quoted Hive literal."""
    return "".join(_HIVE_ESCAPES.get(ch, ch) for ch in value)


def is_s3_location(location: Optional[str]) -> bool:
    """True for s3://, s3a:// and s3n:// locations."""
    return bool(location) and _S3_LOCATION.match(location) is not None


def normalize_location(location: str) -> str:
    """Rewrite s3a:// and s3n:// locations to s3://."""
    return _S3_VARIANT.sub(S3_SCHEME, location, count=1)


def is_string_like(type_name: str) -> bool:
    base = type_name.strip().lower().split("(", 1)[0].strip()
    return base in _STRING_LIKE_TYPES


def format_partition_spec(partition_keys: Sequence[FieldSchema], values: Sequence[str]) -> str:
    """
    Build a partition predicate such as ``year='2024',month=03``.

    Keys are taken in declared order and paired with the positional value.
    Values of string-like keys are quoted, all others are inlined bare.

    Raises:
        TranslationError: If the number of values does not match the keys
    """
    if len(partition_keys) != len(values):
        raise TranslationError(
            f"Partition has {len(values)} values for {len(partition_keys)} partition keys",
            details={"keys": [key.name for key in partition_keys], "values": list(values)},
        )

    parts = []
    for key, value in zip(partition_keys, values):
        if is_string_like(key.type):
            value = f"'{escape_hive_command(value)}'"
        parts.append(f"{key.name}={value}")
    return ",".join(parts)


def drop_table_statement(table: TableRef) -> str:
    return f"drop table if exists {table.fqtn}"


def add_partition_statement(table: TableRef, partition: PartitionRef) -> str:
    spec = format_partition_spec(table.partition_keys, partition.values)
    location = escape_hive_command(normalize_location(partition.location))
    return f"alter table {table.fqtn} add if not exists partition({spec}) location '{location}'"


def drop_partition_statement(table: TableRef, partition: PartitionRef) -> str:
    spec = format_partition_spec(table.partition_keys, partition.values)
    return f"alter table {table.fqtn} drop if exists partition({spec});"


def create_database_statement(database: str) -> str:
    """Corrective statement for a database missing on the remote side."""
    return f"create database if not exists {database}"


def force_drop_table_statement(table_name: str) -> str:
    """Corrective statement for a create that collided with an existing table."""
    return f"drop table {table_name}"


# Forms in which corrective statements are reported in job outcomes.

def create_database_display(database: str) -> str:
    return f"CREATE DATABASE IF NOT EXISTS {database};"


def force_drop_table_display(table_name: str) -> str:
    return f"DROP TABLE {table_name};"
