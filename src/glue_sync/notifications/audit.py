"""
Operational audit trail.

One line is recorded per attempted statement and one per terminal error.
The default sink writes to a dedicated logger; the CloudWatch sink ships
the same lines to a CloudWatch Logs stream.
"""

import asyncio
import logging
import socket
import time
from abc import ABC, abstractmethod
from typing import Any, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ..config import AuditConfig

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("glue_sync.audit")


class AuditSink(ABC):
    """Receives audit lines; implementations must not raise."""

    @abstractmethod
    async def send(self, line: str) -> None:
        """Record one audit line."""


class LoggingAuditSink(AuditSink):
    async def send(self, line: str) -> None:
        audit_logger.info(line)


class CloudWatchLogsAuditSink(AuditSink):
    """Writes audit lines to CloudWatch Logs, creating the stream on first use."""

    def __init__(self, config: AuditConfig, client: Optional[Any] = None):
        self.config = config
        self.log_group = config.log_group
        self.log_stream = config.log_stream or socket.gethostname()
        self._client = client
        self._stream_ready = False

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = boto3.client(
                "logs",
                region_name=self.config.region_name,
                config=Config(
                    connect_timeout=self.config.connect_timeout,
                    read_timeout=self.config.read_timeout,
                    retries={"max_attempts": self.config.max_attempts, "mode": "standard"},
                ),
            )
        return self._client

    async def send(self, line: str) -> None:
        try:
            await asyncio.to_thread(self._put, line)
        except (BotoCoreError, ClientError) as e:
            logger.warning(f"Failed to write audit line to CloudWatch Logs: {e}")
            audit_logger.info(line)

    def _put(self, line: str) -> None:
        if not self._stream_ready:
            self._ensure_stream()
        try:
            self._put_event(line)
        except ClientError as e:
            if _error_code(e) != "ResourceNotFoundException":
                raise
            # Group or stream deleted since it was created; recreate and retry once.
            logger.warning(f"CloudWatch Logs stream {self.log_group}/{self.log_stream} not found, recreating")
            self._stream_ready = False
            self._ensure_stream()
            self._put_event(line)

    def _put_event(self, line: str) -> None:
        self.client.put_log_events(
            logGroupName=self.log_group,
            logStreamName=self.log_stream,
            logEvents=[{"timestamp": int(time.time() * 1000), "message": line}],
        )

    def _ensure_stream(self) -> None:
        for create, kwargs in (
            (self.client.create_log_group, {"logGroupName": self.log_group}),
            (
                self.client.create_log_stream,
                {"logGroupName": self.log_group, "logStreamName": self.log_stream},
            ),
        ):
            try:
                create(**kwargs)
            except ClientError as e:
                if _error_code(e) != "ResourceAlreadyExistsException":
                    raise
        self._stream_ready = True
        logger.info(f"Writing audit trail to CloudWatch Logs {self.log_group}/{self.log_stream}")


def _error_code(error: ClientError) -> Optional[str]:
    return error.response.get("Error", {}).get("Code")


def build_audit_sink(config: AuditConfig) -> AuditSink:
    if config.backend == "cloudwatch":
        return CloudWatchLogsAuditSink(config)
    return LoggingAuditSink()
