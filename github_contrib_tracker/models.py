"""
Data Models

This module defines the fetch outcome type shared by the GitHub client and the
crawl stages, plus the timestamp helpers used by every persisted record.
"""
import enum
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
# Older records carry JavaScript toISOString() values with milliseconds
FRACTIONAL_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


class FetchKind(enum.Enum):
    OK = "ok"
    NOT_MODIFIED = "not_modified"
    NOT_FOUND = "not_found"
    BLOCKED = "blocked"
    SERVER_ERROR = "server_error"


# HTTP statuses a caller may declare as expected, mapped to their outcome.
STATUS_KINDS = {
    304: FetchKind.NOT_MODIFIED,
    404: FetchKind.NOT_FOUND,
    403: FetchKind.BLOCKED,  # Probably not respecting the Terms of Service
    451: FetchKind.BLOCKED,  # Unavailable for legal reasons, e.g. a DMCA takedown
    500: FetchKind.SERVER_ERROR,
    502: FetchKind.SERVER_ERROR,
    503: FetchKind.SERVER_ERROR,
}


@dataclass(frozen=True)
class FetchResult:
    """Outcome of a single GitHub request."""

    kind: FetchKind
    payload: Any = None
    status_code: Optional[int] = None

    @classmethod
    def ok(cls, payload: Any, status_code: int = 200) -> "FetchResult":
        return cls(FetchKind.OK, payload, status_code)

    @classmethod
    def from_status(cls, status_code: int) -> "FetchResult":
        return cls(STATUS_KINDS[status_code], None, status_code)

    @property
    def is_ok(self) -> bool:
        return self.kind is FetchKind.OK

    def __repr__(self):
        return f"<FetchResult(kind={self.kind.value}, status={self.status_code})>"


def utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


def format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a GitHub style UTC timestamp, returning None when absent."""
    if not value:
        return None
    if value.endswith("Z"):
        fmt = FRACTIONAL_TIMESTAMP_FORMAT if "." in value else TIMESTAMP_FORMAT
        return datetime.strptime(value, fmt).replace(tzinfo=timezone.utc)
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
