"""
spectap Recording Sessions

Data model and persistence for recorded traffic: entries captured by the
recording proxy, the session document they are written into, and the
helpers that decide what gets recorded.

Session file format:
    {
      "version": 1,
      "target": "https://api.example.com",
      "createdAt": "2024-01-01T00:00:00.000Z",
      "entries": [
        {"id": "...", "timestamp": "...",
         "request": {"method": "GET", "url": "/users?page=1", "headers": {...}, "body": null},
         "response": {"status": 200, "headers": {...},
                      "body": {"encoding": "utf8", "data": "[...]"}, "latencyMs": 12}}
      ]
    }
"""

import asyncio
import base64
import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional
from uuid import uuid4

from ..common.errors import ConfigError
from ..common.utils import utc_timestamp

logger = logging.getLogger("spectap.capture")

SESSION_VERSION = 1


@dataclass(frozen=True)
class RecordedBody:
    """A request or response body, stored as UTF-8 text when possible."""

    encoding: str  # 'utf8' or 'base64'
    data: str

    def to_bytes(self) -> bytes:
        if self.encoding == 'base64':
            return base64.b64decode(self.data)
        return self.data.encode('utf-8')

    def to_dict(self) -> Dict[str, str]:
        return {'encoding': self.encoding, 'data': self.data}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional['RecordedBody']:
        if not data:
            return None
        encoding = data.get('encoding', 'utf8')
        if encoding not in ('utf8', 'base64'):
            raise ValueError(f"Unknown body encoding: {encoding}")
        return cls(encoding=encoding, data=str(data.get('data', '')))


def encode_body(raw: Optional[bytes]) -> Optional[RecordedBody]:
    """
    Encode raw bytes for storage.

    Returns:
        utf8 body if the bytes survive a UTF-8 round trip, base64 otherwise,
        None for an empty body
    """
    if not raw:
        return None
    try:
        text = raw.decode('utf-8')
    except UnicodeDecodeError:
        text = None
    if text is not None and text.encode('utf-8') == raw:
        return RecordedBody('utf8', text)
    return RecordedBody('base64', base64.b64encode(raw).decode('ascii'))


def decode_body(body: Optional[RecordedBody]) -> bytes:
    """Inverse of encode_body; an absent body is empty bytes."""
    if body is None:
        return b''
    return body.to_bytes()


@dataclass
class RecordedRequest:
    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[RecordedBody] = None


@dataclass
class RecordedResponse:
    status: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[RecordedBody] = None
    latency_ms: int = 0


@dataclass
class RecordingEntry:
    """One request/response exchange captured from the upstream."""

    request: RecordedRequest
    response: RecordedResponse
    id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: str = field(default_factory=utc_timestamp)

    @property
    def key(self) -> str:
        """Replay lookup key: ``"METHOD URL"``."""
        return f"{self.request.method.upper()} {self.request.url}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the session file's JSON shape."""
        request_body = self.request.body
        response_body = self.response.body
        return {
            'id': self.id,
            'timestamp': self.timestamp,
            'request': {
                'method': self.request.method,
                'url': self.request.url,
                'headers': self.request.headers,
                'body': request_body.to_dict() if request_body else None,
            },
            'response': {
                'status': self.response.status,
                'headers': self.response.headers,
                'body': response_body.to_dict() if response_body else None,
                'latencyMs': self.response.latency_ms,
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RecordingEntry':
        """
        Parse an entry from a session file.

        Raises:
            ValueError: If required fields are missing or malformed
        """
        try:
            request = data['request']
            response = data['response']
            # Older sessions store latency under 'latency'
            latency = response.get('latencyMs', response.get('latency', 0))
            return cls(
                id=str(data.get('id') or uuid4()),
                timestamp=str(data.get('timestamp') or ''),
                request=RecordedRequest(
                    method=str(request['method']).upper(),
                    url=str(request['url']),
                    headers=dict(request.get('headers') or {}),
                    body=RecordedBody.from_dict(request.get('body')),
                ),
                response=RecordedResponse(
                    status=int(response['status']),
                    headers=dict(response.get('headers') or {}),
                    body=RecordedBody.from_dict(response.get('body')),
                    latency_ms=int(latency or 0),
                ),
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise ValueError(f"Malformed recording entry: {e}") from e


@dataclass
class RecordingSession:
    """A recorded sequence of exchanges with one upstream target."""

    target: str
    entries: List[RecordingEntry] = field(default_factory=list)
    created_at: str = field(default_factory=utc_timestamp)
    version: int = SESSION_VERSION

    def add(self, entry: RecordingEntry):
        self.entries.append(entry)

    def __len__(self) -> int:
        return len(self.entries)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'version': self.version,
            'target': self.target,
            'createdAt': self.created_at,
            'entries': [entry.to_dict() for entry in self.entries],
        }

    @classmethod
    def from_dict(cls, data: Any) -> 'RecordingSession':
        """
        Raises:
            ValueError: If the document isn't a version 1 session
        """
        if not isinstance(data, dict):
            raise ValueError('Recording session must be a JSON object')
        if data.get('version') != SESSION_VERSION:
            raise ValueError(f"Unsupported recording version: {data.get('version')}")
        entries = data.get('entries')
        if not isinstance(entries, list):
            raise ValueError("Recording session has no 'entries' list")
        return cls(
            target=str(data.get('target') or ''),
            created_at=str(data.get('createdAt') or ''),
            entries=[RecordingEntry.from_dict(entry) for entry in entries],
        )

    @classmethod
    def load(cls, path: str) -> 'RecordingSession':
        """
        Load a session file.

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValueError: If the file isn't a valid session
        """
        session_path = Path(path)
        if not session_path.exists():
            raise FileNotFoundError(f"Recording not found: {session_path}")

        with open(session_path, 'r', encoding='utf-8') as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid recording file {session_path}: {e}") from e
        return cls.from_dict(data)


class PathFilter:
    """
    Decides which request paths are recorded.

    Supports:
    - Substring matching (e.g. "/api/")
    - Regex matching when the pattern is wrapped in slashes (e.g. "/^\\/users/")
    - No pattern: record everything
    """

    def __init__(self, pattern: Optional[str] = None):
        """
        Raises:
            ConfigError: If a /regex/ pattern doesn't compile
        """
        self.pattern = pattern or None
        self.regex = None

        if self.pattern and len(self.pattern) > 2 and self.pattern.startswith('/') and self.pattern.endswith('/'):
            try:
                self.regex = re.compile(self.pattern[1:-1])
            except re.error as e:
                raise ConfigError(f"Invalid include pattern {self.pattern}: {e}") from e

    def matches(self, path: str) -> bool:
        if not self.pattern:
            return True
        if self.regex is not None:
            return self.regex.search(path) is not None
        return self.pattern in path

    __call__ = matches


def create_path_matcher(pattern: Optional[str] = None) -> PathFilter:
    """Build the include filter used by the recorder."""
    return PathFilter(pattern)


def parse_status_list(value: Optional[str]) -> Optional[List[int]]:
    """
    Parse a comma-separated status filter.

    Example:
        parse_status_list("200, 201,x")  # [200, 201]
        parse_status_list("")            # None
        parse_status_list("x")           # None
    """
    if not value:
        return None
    statuses = []
    for part in value.split(','):
        part = part.strip()
        if part.isdigit():
            statuses.append(int(part))
    return statuses or None


def resolve_output_path(output: str) -> Path:
    """
    Where the session file is written.

    A ``.json`` path is used as-is; anything else is a directory that
    receives a timestamped ``recording-*.json`` file. Parent directories
    are created.
    """
    path = Path(output).resolve()
    if path.suffix == '.json':
        path.parent.mkdir(parents=True, exist_ok=True)
        return path

    path.mkdir(parents=True, exist_ok=True)
    stamp = re.sub(r'[:.]', '-', utc_timestamp())
    return path / f"recording-{stamp}.json"


class SessionWriter:
    """
    Appends entries to a session and rewrites its file.

    Writes are serialized through a lock, so concurrent requests never
    interleave partial documents and entries land in arrival order.
    """

    def __init__(self, session: RecordingSession, output_path: Path):
        self.session = session
        self.output_path = Path(output_path)
        self._lock = asyncio.Lock()

    async def append(self, entry: RecordingEntry):
        """Add an entry and persist the whole session."""
        async with self._lock:
            self.session.add(entry)
            await asyncio.to_thread(self._write)
            logger.debug(f"Recorded {entry.key} -> {entry.response.status}")

    def _write(self):
        with open(self.output_path, 'w', encoding='utf-8') as f:
            json.dump(self.session.to_dict(), f, indent=2, ensure_ascii=False)
