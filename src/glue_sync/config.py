"""
Configuration system for glue-sync using Pydantic.
"""

import os
import re
from pathlib import Path
from typing import Annotated, Any, Dict, FrozenSet, List, Literal, Mapping, Optional, Tuple, Union
from urllib.parse import urlparse

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_serializer,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from .exceptions import ConfigurationError


DEFAULT_ATHENA_URL = "jdbc:awsathena://athena.us-east-1.amazonaws.com:443"
DEFAULT_REGION = "us-east-1"

_JDBC_PREFIX = "jdbc:awsathena://"
_REGION_PATTERN = re.compile(r"athena(?:-fips)?\.([a-z0-9-]+)\.amazonaws\.com")

# Property names understood by the Hive metastore listener configuration.
HIVE_CONF_KEYS: Dict[str, Tuple[str, ...]] = {
    "glue.catalog.athena.jdbc.url": ("athena", "url"),
    "glue.catalog.athena.s3.staging.dir": ("athena", "s3_staging_dir"),
    "glue.catalog.user.key": ("athena", "user_key"),
    "glue.catalog.user.secret": ("athena", "user_secret"),
    "glue.catalog.dropTableIfExists": ("drop_table_if_exists",),
    "glue.catalog.createMissingDB": ("create_missing_db",),
    "glue.catalog.athena.suppressAllDropEvents": ("suppress_all_drop_events",),
    "glue.catalog.db.whitelist": ("db_whitelist",),
    "slack.notify.webhook": ("notifications", "webhook_url"),
    "no-event-sleep-duration": ("no_event_sleep_duration",),
    "reconnect-failed-sleep-duration": ("reconnect_failed_sleep_duration",),
}


class AthenaConfig(BaseModel):
    """Remote query endpoint configuration."""

    model_config = ConfigDict(frozen=True)

    url: str = Field(DEFAULT_ATHENA_URL, description="Athena endpoint (JDBC or HTTPS form)")
    region_name: Optional[str] = Field(
        None, description="AWS region, derived from the endpoint host when unset"
    )
    s3_staging_dir: Optional[str] = Field(None, description="S3 location for query results")
    user_key: Optional[str] = Field(None, description="Static AWS access key id")
    user_secret: Optional[str] = Field(None, description="Static AWS secret access key")
    work_group: Optional[str] = Field(None, description="Athena work group")

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        v = v.strip()
        if not (v.startswith(_JDBC_PREFIX) or v.startswith("https://") or v.startswith("http://")):
            raise ValueError(
                f"Athena URL must start with {_JDBC_PREFIX}, https:// or http://: {v}"
            )
        return v

    @model_validator(mode="after")
    def check_credentials(self) -> "AthenaConfig":
        if self.user_key and not self.user_secret:
            raise ValueError("user_secret is required when user_key is set")
        return self

    @property
    def endpoint_url(self) -> str:
        """The endpoint as an HTTPS URL usable by boto3."""
        url = self.url
        if url.startswith(_JDBC_PREFIX):
            # JDBC URLs may carry ;Key=Value driver properties
            host = url[len(_JDBC_PREFIX):].split(";", 1)[0].rstrip("/")
            url = f"https://{host}"
        return url

    @property
    def resolved_region(self) -> str:
        if self.region_name:
            return self.region_name
        host = urlparse(self.endpoint_url).hostname or ""
        match = _REGION_PATTERN.search(host)
        return match.group(1) if match else DEFAULT_REGION

    @property
    def uses_static_credentials(self) -> bool:
        return bool(self.user_key)

    def to_connect_kwargs(self) -> Dict[str, Any]:
        """Convert to pyathena.connect() kwargs."""
        kwargs: Dict[str, Any] = {
            "region_name": self.resolved_region,
            "endpoint_url": self.endpoint_url,
        }
        if self.s3_staging_dir:
            kwargs["s3_staging_dir"] = self.s3_staging_dir
        if self.work_group:
            kwargs["work_group"] = self.work_group

        # Without static keys boto3 falls back to its default chain (instance profile etc.)
        if self.uses_static_credentials:
            kwargs["aws_access_key_id"] = self.user_key
            kwargs["aws_secret_access_key"] = self.user_secret

        return kwargs


class NotificationConfig(BaseModel):
    """Chat notification configuration."""

    model_config = ConfigDict(frozen=True)

    webhook_url: Optional[str] = Field(None, description="Slack incoming webhook URL")
    channel: str = Field("", description="Channel override, empty for the webhook default")
    username: Optional[str] = Field(None, description="Display name override")
    timeout: int = Field(10, gt=0, description="Request timeout in seconds")

    @property
    def enabled(self) -> bool:
        return bool(self.webhook_url)


class AuditConfig(BaseModel):
    """Audit trail configuration."""

    model_config = ConfigDict(frozen=True)

    backend: Literal["logging", "cloudwatch"] = Field(
        "logging", description="Where audit lines are sent"
    )
    log_group: str = Field("hive-glue-catalog-sync", description="CloudWatch Logs group")
    log_stream: Optional[str] = Field(
        None, description="CloudWatch Logs stream, defaults to the host name"
    )
    region_name: Optional[str] = Field(None, description="CloudWatch Logs region")
    connect_timeout: float = Field(2.0, gt=0, description="CloudWatch Logs connect timeout in seconds")
    read_timeout: float = Field(5.0, gt=0, description="CloudWatch Logs read timeout in seconds")
    max_attempts: int = Field(2, ge=1, description="CloudWatch Logs attempts per call, retries included")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    model_config = ConfigDict(frozen=True)

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        "INFO", description="Log level"
    )
    format: str = Field(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format",
    )
    file: Optional[str] = Field(None, description="Log file path")
    max_size: int = Field(10485760, description="Max log file size in bytes")  # 10MB
    backup_count: int = Field(5, description="Number of backup log files")


class SyncConfig(BaseSettings):
    """Main glue-sync configuration, immutable once built."""

    athena: AthenaConfig = Field(
        default_factory=AthenaConfig, description="Remote endpoint configuration"
    )

    # Replication behaviour
    drop_table_if_exists: bool = Field(
        False, description="Drop and recreate a table that already exists remotely"
    )
    create_missing_db: bool = Field(
        True, description="Create a database that is missing remotely"
    )
    suppress_all_drop_events: bool = Field(
        False, description="Never replicate drop table / drop partition events"
    )
    db_whitelist: Annotated[FrozenSet[str], NoDecode] = Field(
        default_factory=frozenset, description="Databases eligible for replication"
    )

    # Timings, in milliseconds
    no_event_sleep_duration: int = Field(
        1000, gt=0, description="Idle poll interval when the queue is empty"
    )
    reconnect_failed_sleep_duration: int = Field(
        1000, gt=0, description="Backoff after a failed reconnect"
    )

    notifications: NotificationConfig = Field(
        default_factory=NotificationConfig, description="Notification configuration"
    )
    audit: AuditConfig = Field(default_factory=AuditConfig, description="Audit configuration")
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )

    model_config = SettingsConfigDict(
        env_prefix="GLUE_SYNC_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    @field_validator("db_whitelist", mode="before")
    @classmethod
    def parse_whitelist(cls, v: Any) -> FrozenSet[str]:
        if v is None:
            return frozenset()
        if isinstance(v, str):
            v = v.split(",")
        return frozenset(name.strip() for name in v if name and name.strip())

    @field_serializer("db_whitelist")
    def serialize_whitelist(self, v: FrozenSet[str]) -> List[str]:
        return sorted(v)

    @property
    def no_event_sleep_seconds(self) -> float:
        return self.no_event_sleep_duration / 1000.0

    @property
    def reconnect_sleep_seconds(self) -> float:
        return self.reconnect_failed_sleep_duration / 1000.0

    def is_whitelisted(self, database: str) -> bool:
        """Exact-match membership; an empty whitelist matches nothing."""
        return database in self.db_whitelist

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "SyncConfig":
        """Load configuration from a YAML file."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}

            # Expand environment variables in the data
            data = cls._expand_env_vars(data)

            return cls(**data)
        except FileNotFoundError:
            raise ConfigurationError(f"Configuration file not found: {path}")
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in configuration file: {e}")
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}")

    @classmethod
    def from_hive_conf(cls, conf: Mapping[str, Optional[str]]) -> "SyncConfig":
        """Build configuration from Hive metastore style properties."""
        data: Dict[str, Any] = {}
        for key, path in HIVE_CONF_KEYS.items():
            value = conf.get(key)
            if value is None:
                continue
            target = data
            for part in path[:-1]:
                target = target.setdefault(part, {})
            target[path[-1]] = value.strip() if isinstance(value, str) else value

        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}")

    @classmethod
    def _expand_env_vars(cls, data: Any) -> Any:
        """Recursively expand environment variables in configuration data."""
        if isinstance(data, dict):
            return {k: cls._expand_env_vars(v) for k, v in data.items()}
        elif isinstance(data, list):
            return [cls._expand_env_vars(item) for item in data]
        elif isinstance(data, str):
            return os.path.expandvars(data)
        else:
            return data

    def summary_items(self) -> List[Tuple[str, str]]:
        """Key/value pairs describing the active configuration, without secrets."""
        return [
            ("glue.catalog.athena.jdbc.url", self.athena.url),
            ("glue.catalog.athena.s3.staging.dir", str(self.athena.s3_staging_dir)),
            ("glue.catalog.dropTableIfExists", str(self.drop_table_if_exists).lower()),
            ("glue.catalog.createMissingDB", str(self.create_missing_db).lower()),
            (
                "glue.catalog.athena.suppressAllDropEvents",
                str(self.suppress_all_drop_events).lower(),
            ),
            ("glue.catalog.db.whitelist", ",".join(sorted(self.db_whitelist))),
        ]

    def config_warnings(self) -> List[str]:
        """Settings that are valid but probably not what the operator wants."""
        warnings = []
        if not self.db_whitelist:
            warnings.append("Database whitelist is empty; no events will be replicated")
        if not self.athena.s3_staging_dir and not self.athena.work_group:
            warnings.append("Neither an S3 staging dir nor a work group is configured")
        if not self.notifications.enabled:
            warnings.append("No notification webhook configured; job outcomes are only logged")
        return warnings

    def to_yaml(self, path: Union[str, Path]) -> None:
        """Save configuration to a YAML file.

        Static Athena credentials are never written; supply them through
        GLUE_SYNC_ATHENA__USER_KEY / GLUE_SYNC_ATHENA__USER_SECRET or
        ${VAR} placeholders instead.
        """
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(
                self.model_dump(
                    mode="json",
                    exclude_none=True,
                    exclude={"athena": {"user_key", "user_secret"}},
                ),
                f,
                default_flow_style=False,
                indent=2,
            )
