"""
CREATE TABLE generation for replicated tables.

The remote catalog only understands external tables, so every table is
rendered as ``CREATE EXTERNAL TABLE`` regardless of its Hive table type.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, List

from ..exceptions import TranslationError
from ..models import FieldSchema, TableRef
from .statements import escape_hive_command, normalize_location


logger = logging.getLogger(__name__)

# Hive bookkeeping properties that must not be replayed remotely
INTERNAL_TABLE_PROPERTIES = frozenset({
    "EXTERNAL",
    "transient_lastDdlTime",
    "COLUMN_STATS_ACCURATE",
    "numFiles",
    "numRows",
    "rawDataSize",
    "totalSize",
    "last_modified_by",
    "last_modified_time",
})


class DDLGenerator(ABC):
    """Produces the CREATE statement for a table."""

    @abstractmethod
    def show_create_table(self, table: TableRef) -> str:
        """
        Render the CREATE EXTERNAL TABLE statement for a table.

        Raises:
            TranslationError: If the table cannot be rendered
        """


class HiveDDLGenerator(DDLGenerator):
    """Renders tables the way Hive's SHOW CREATE TABLE does."""

    def show_create_table(self, table: TableRef) -> str:
        if not table.columns:
            raise TranslationError("Table has no columns", table=table.fqtn)

        lines = [f"CREATE EXTERNAL TABLE {table.fqtn}("]
        lines.append(",\n".join(self._column_lines(table.columns)) + ")")

        if table.partition_keys:
            lines.append("PARTITIONED BY (")
            lines.append(",\n".join(self._column_lines(table.partition_keys)) + ")")

        if table.serde_library:
            lines.append("ROW FORMAT SERDE")
            lines.append(f"  '{escape_hive_command(table.serde_library)}'")
            if table.serde_parameters:
                lines.append("WITH SERDEPROPERTIES (")
                lines.append(self._properties(table.serde_parameters) + ")")

        if table.input_format and table.output_format:
            lines.append("STORED AS INPUTFORMAT")
            lines.append(f"  '{escape_hive_command(table.input_format)}'")
            lines.append("OUTPUTFORMAT")
            lines.append(f"  '{escape_hive_command(table.output_format)}'")
        elif table.input_format or table.output_format:
            logger.warning(
                f"Table {table.fqtn} declares only one of input/output format, omitting STORED AS"
            )

        lines.append("LOCATION")
        lines.append(f"  '{escape_hive_command(normalize_location(table.location))}'")

        properties = {
            key: value
            for key, value in table.parameters.items()
            if key not in INTERNAL_TABLE_PROPERTIES
        }
        if properties:
            lines.append("TBLPROPERTIES (")
            lines.append(self._properties(properties) + ")")

        return "\n".join(lines)

    def _column_lines(self, fields: List[FieldSchema]) -> List[str]:
        rendered = []
        for field in fields:
            line = f"  `{field.name}` {field.type}"
            if field.comment:
                line += f" COMMENT '{escape_hive_command(field.comment)}'"
            rendered.append(line)
        return rendered

    def _properties(self, properties: Dict[str, str]) -> str:
        return ",\n".join(
            f"  '{escape_hive_command(key)}'='{escape_hive_command(value)}'"
            for key, value in sorted(properties.items())
        )
