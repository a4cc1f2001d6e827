"""
Notification package for glue-sync.

This package provides:
- Chat notifications (Slack incoming webhooks)
- The audit trail sinks (logging, CloudWatch Logs)
- Message formatting for job outcomes and startup
"""

from .audit import AuditSink, CloudWatchLogsAuditSink, LoggingAuditSink, build_audit_sink
from .formatting import format_startup_message, format_sync_result
from .slack import Notifier, NullNotifier, SlackNotifier, build_notifier

__all__ = [
    "AuditSink",
    "CloudWatchLogsAuditSink",
    "LoggingAuditSink",
    "build_audit_sink",
    "format_startup_message",
    "format_sync_result",
    "Notifier",
    "NullNotifier",
    "SlackNotifier",
    "build_notifier",
]
