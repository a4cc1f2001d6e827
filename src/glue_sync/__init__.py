"""
glue-sync: asynchronous Hive metastore to AWS Glue catalog replication.

glue-sync listens to table and partition events from a Hive-style metastore
and replays them as idempotent DDL against Amazon Athena, so the Glue data
catalog follows the source catalog even across endpoint outages.
"""

__version__ = "0.1.0"
__author__ = "glue-sync Contributors"

from .config import SyncConfig
from .exceptions import GlueSyncError, ConfigurationError, RemoteError, TranslationError
from .service import ReplicationService

__all__ = [
    "__version__",
    "SyncConfig",
    "ReplicationService",
    "GlueSyncError",
    "ConfigurationError",
    "RemoteError",
    "TranslationError",
]
