"""
spectap Request Log

Bounded, newest-first log of request/response summaries served by the
mock server.
"""

from collections import deque
from dataclasses import dataclass, field
from typing import Any, Dict, List
from uuid import uuid4

from ..common.utils import utc_timestamp


@dataclass(frozen=True)
class LogEntry:
    """One served request. Never mutated after it is appended."""

    method: str
    path: str
    query: Dict[str, Any]
    headers: Dict[str, str]
    status: int
    response_body: Any = None
    latency_ms: int = 0
    request_body: Any = None
    id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: str = field(default_factory=utc_timestamp)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON shape served by the logs endpoint."""
        return {
            'id': self.id,
            'timestamp': self.timestamp,
            'method': self.method,
            'path': self.path,
            'query': self.query,
            'headers': self.headers,
            'body': self.request_body,
            'response': {
                'status': self.status,
                'body': self.response_body,
                'latencyMs': self.latency_ms,
            },
        }


class RequestLog:
    """
    Ring buffer of the last ``max_entries`` requests, most recent first.
    """

    def __init__(self, max_entries: int = 500):
        self.max_entries = max_entries
        self._entries: deque = deque(maxlen=max(max_entries, 0))

    def append(self, entry: LogEntry) -> None:
        """Add an entry at the head, discarding the oldest past the limit."""
        self._entries.appendleft(entry)

    def list(self) -> List[LogEntry]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
