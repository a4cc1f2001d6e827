"""
Human-readable messages sent to the chat channel.
"""

from ..config import SyncConfig
from ..models import JobOutcome

STARTUP_TITLE = "*Starting Hive-Glue Sync Agent*"


def format_sync_result(outcome: JobOutcome) -> str:
    """Summary of a finished job, listing every statement that was attempted."""
    if outcome.is_success:
        lines = ["*Sync result* : :white_check_mark:"]
    else:
        lines = ["Sync result : :x: ", f"*Error* : {outcome.error}"]
        if outcome.corrective_error:
            lines.append(f"*Corrective error* : {outcome.corrective_error}")

    lines.append("*Query* : ")
    body = "".join(f"{statement}\n" for statement in outcome.statements)
    lines.append(f"```{body}```")
    return "\n".join(lines)


def format_startup_message(config: SyncConfig) -> str:
    lines = [STARTUP_TITLE, "Properties : ", "```"]
    lines.extend(f"{key} : {value}" for key, value in config.summary_items())
    lines.append("```")
    return "\n".join(lines)
