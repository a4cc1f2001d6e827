"""
Classification of remote execution failures.

The Athena driver surfaces almost every failure as a generic DB-API error
whose only distinguishing feature is its message text. All matching on that
text lives here so the rest of the engine deals in ``ErrorKind`` values.
"""

import re
from enum import Enum
from typing import Iterator, Optional

from botocore.exceptions import ConnectionError as BotoConnectionError
from botocore.exceptions import HTTPClientError

from ..exceptions import RemoteConnectionError


class ErrorKind(str, Enum):
    """How the processor should react to a failed statement."""

    TRANSIENT_CONNECTIVITY = "transient_connectivity"
    ALREADY_EXISTS = "already_exists"
    MISSING_DEPENDENCY = "missing_dependency"
    FATAL = "fatal"


CONNECTIVITY_EXCEPTIONS = (
    RemoteConnectionError,
    ConnectionError,
    TimeoutError,
    BotoConnectionError,
    HTTPClientError,
)

CONNECTIVITY_MESSAGES = (
    "Could not connect to the endpoint URL",
    "Connect timeout",
    "Read timeout",
    "Connection was closed before we received a valid response",
)

ALREADY_EXISTS_MARKER = "AlreadyExistsException"
MISSING_DATABASE_MARKER = "Database does not exist:"

_CREATE_TABLE_PATTERN = re.compile(
    r"CREATE\s+EXTERNAL\s+TABLE\s+(?:IF\s+NOT\s+EXISTS\s+)?"
    r"(`?[\w$]+`?(?:\.`?[\w$]+`?)?)",
    re.IGNORECASE,
)
_MISSING_DATABASE_PATTERN = re.compile(
    re.escape(MISSING_DATABASE_MARKER) + r"\s*`?([\w$]+)`?"
)


def _exception_chain(exc: BaseException) -> Iterator[BaseException]:
    """Yield an exception followed by its explicit and implicit causes, guarding against cycles."""
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        if current.__cause__ is not None:
            current = current.__cause__
        elif not current.__suppress_context__:
            current = current.__context__
        else:
            current = None


def classify_error(exc: BaseException) -> ErrorKind:
    """Map a failed execute to the processor's error taxonomy."""
    chain = list(_exception_chain(exc))

    for error in chain:
        if isinstance(error, CONNECTIVITY_EXCEPTIONS):
            return ErrorKind.TRANSIENT_CONNECTIVITY

    message = " ".join(str(error) for error in chain)
    if any(fragment in message for fragment in CONNECTIVITY_MESSAGES):
        return ErrorKind.TRANSIENT_CONNECTIVITY
    if ALREADY_EXISTS_MARKER in message:
        return ErrorKind.ALREADY_EXISTS
    if MISSING_DATABASE_MARKER in message:
        return ErrorKind.MISSING_DEPENDENCY

    return ErrorKind.FATAL


def extract_table_name(statement: str) -> Optional[str]:
    """Target table of a CREATE EXTERNAL TABLE statement."""
    match = _CREATE_TABLE_PATTERN.search(statement)
    return match.group(1) if match else None


def extract_database_name(message: str) -> Optional[str]:
    """Database named in a 'Database does not exist: <db>' error."""
    match = _MISSING_DATABASE_PATTERN.search(message)
    return match.group(1) if match else None
