"""
Remote endpoint connection management for glue-sync.

Owns the single connection to the Athena endpoint: opening it, rebuilding
it after a recoverable failure and closing it on shutdown.
"""

import asyncio
import logging
import threading
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Optional

import pyathena

from ..config import AthenaConfig
from ..exceptions import RemoteConnectionError


logger = logging.getLogger(__name__)


class RemoteConnection(ABC):
    """A live connection able to run DDL statements."""

    @abstractmethod
    def execute(self, statement: str) -> None:
        """Run a statement, raising on any failure."""

    @abstractmethod
    def close(self) -> None:
        """Release the connection."""


class AthenaConnection(RemoteConnection):
    """PyAthena DB-API connection wrapper."""

    def __init__(self, connection: Any):
        self._connection = connection

    def execute(self, statement: str) -> None:
        cursor = self._connection.cursor()
        try:
            cursor.execute(statement)
        finally:
            cursor.close()

    def close(self) -> None:
        self._connection.close()


def connect_athena(config: AthenaConfig) -> AthenaConnection:
    """Open a PyAthena connection using static keys or the ambient identity."""
    return AthenaConnection(pyathena.connect(**config.to_connect_kwargs()))


Connector = Callable[[AthenaConfig], RemoteConnection]


class ConnectionManager:
    """
    Lifecycle owner of the remote connection.

    Blocking driver calls run on a dedicated single-thread executor, so the
    handle is only ever used by one thread. ``close()`` may be called from
    any thread, including while a statement is in flight; that statement
    then fails and is treated as a connectivity failure by the processor.
    """

    def __init__(self, config: AthenaConfig, connector: Optional[Connector] = None):
        self.config = config
        self._connector = connector or connect_athena
        self._connection: Optional[RemoteConnection] = None
        self._lock = threading.Lock()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="glue-sync-remote")
        self.connect_count = 0

    @property
    def is_connected(self) -> bool:
        return self._connection is not None

    async def connect(self) -> None:
        """Open a fresh connection."""
        logger.info(f"Connecting to Amazon Athena using endpoint {self.config.endpoint_url}")
        try:
            connection = await self._run(self._connector, self.config)
        except Exception as e:
            raise RemoteConnectionError(
                f"Failed to connect to {self.config.endpoint_url}: {e}", cause=e
            ) from e

        with self._lock:
            previous, self._connection = self._connection, connection
        if previous is not None:
            self._close_quietly(previous)

        self.connect_count += 1
        logger.info("Remote connection established")

    async def reconnect(self) -> None:
        """Drop the current connection, ignoring close errors, and connect again."""
        logger.info("Recreating remote connection")
        await self._run(self.close)
        await self.connect()

    async def execute(self, statement: str) -> None:
        """Run a statement on the live connection."""
        connection = self._connection
        if connection is None:
            raise RemoteConnectionError("Remote connection is not open")
        await self._run(connection.execute, statement)

    def close(self) -> None:
        """Close the live connection. Idempotent and thread-safe."""
        with self._lock:
            connection, self._connection = self._connection, None
        if connection is not None:
            logger.info("Closing remote connection")
            self._close_quietly(connection)

    def shutdown(self) -> None:
        """Close the connection and release the executor thread."""
        self.close()
        self._executor.shutdown(wait=False)

    async def _run(self, func: Callable[..., Any], *args: Any) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, func, *args)

    @staticmethod
    def _close_quietly(connection: RemoteConnection) -> None:
        try:
            connection.close()
        except Exception as e:
            logger.warning(f"Error closing remote connection: {e}")
