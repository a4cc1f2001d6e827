"""
Remote endpoint package for glue-sync.

This package provides:
- The remote connection interface and its PyAthena implementation
- Connection lifecycle management (connect / reconnect / close)
- Classification of remote failures
"""

from .connection import AthenaConnection, ConnectionManager, RemoteConnection, connect_athena
from .errors import ErrorKind, classify_error, extract_database_name, extract_table_name

__all__ = [
    "AthenaConnection",
    "ConnectionManager",
    "RemoteConnection",
    "connect_athena",
    "ErrorKind",
    "classify_error",
    "extract_database_name",
    "extract_table_name",
]
