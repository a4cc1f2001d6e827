"""
DDL package for glue-sync.

This package provides:
- Partition spec formatting and Hive literal escaping
- Idempotent drop / partition statement builders
- CREATE EXTERNAL TABLE generation
"""

from .generator import DDLGenerator, HiveDDLGenerator
from .statements import (
    add_partition_statement,
    create_database_display,
    create_database_statement,
    drop_partition_statement,
    drop_table_statement,
    escape_hive_command,
    force_drop_table_display,
    force_drop_table_statement,
    format_partition_spec,
    is_s3_location,
    normalize_location,
)

__all__ = [
    "DDLGenerator",
    "HiveDDLGenerator",
    "add_partition_statement",
    "create_database_display",
    "create_database_statement",
    "drop_partition_statement",
    "drop_table_statement",
    "escape_hive_command",
    "force_drop_table_display",
    "force_drop_table_statement",
    "format_partition_spec",
    "is_s3_location",
    "normalize_location",
]
