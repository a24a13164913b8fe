"""
spectap Replay Server

Serves a recorded session back as a fake upstream. Requests are matched
by exact method and URL (query string included); repeated requests for
the same key step through the recorded responses in order.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from ..capture.proxy import original_url
from ..capture.recording import RecordingEntry, RecordingSession, decode_body

REPLAY_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"]

SKIP_REPLAY_HEADERS = {'content-length', 'connection', 'transfer-encoding'}


def replay_key(method: str, url: str) -> str:
    return f"{method.upper()} {url}"


@dataclass
class ReplayBucket:
    """Recorded entries sharing one key, plus the position of the next one to serve."""

    entries: List[RecordingEntry]
    cursor: int = 0


class ReplayEngine:
    """
    Lookup and cursor logic for replaying a session.

    Example:
        engine = ReplayEngine(session, loop=True)
        entry = engine.next('GET', '/users?page=1')  # None if never recorded
    """

    def __init__(self, session: RecordingSession, loop: bool = False):
        self.session = session
        self.loop = loop
        self.buckets: Dict[str, ReplayBucket] = {}
        for entry in session.entries:
            bucket = self.buckets.setdefault(entry.key, ReplayBucket(entries=[]))
            bucket.entries.append(entry)

    def keys(self) -> List[str]:
        return list(self.buckets)

    def next(self, method: str, url: str) -> Optional[RecordingEntry]:
        """
        Entry to serve for a request, advancing that key's cursor.

        In loop mode the cursor wraps to the first entry after the last;
        otherwise it stays on the last entry once the bucket is exhausted.
        """
        bucket = self.buckets.get(replay_key(method, url))
        if bucket is None or not bucket.entries:
            return None

        entry = bucket.entries[bucket.cursor]
        count = len(bucket.entries)
        if self.loop:
            bucket.cursor = (bucket.cursor + 1) % count
        else:
            bucket.cursor = min(bucket.cursor + 1, count - 1)
        return entry

    def reset(self):
        """Rewind every bucket to its first entry."""
        for bucket in self.buckets.values():
            bucket.cursor = 0


class ReplayServer:
    """
    HTTP surface for a ReplayEngine.

    Example:
        server = ReplayServer(RecordingSession.load('recording.json'), loop=True)
        server.start(port=3003)
    """

    def __init__(
        self,
        session: RecordingSession,
        loop: bool = False,
        latency: bool = False,
        host: str = '127.0.0.1',
        port: int = 3003,
        recording_path: Optional[str] = None
    ):
        """
        Args:
            session: Session to serve
            loop: Wrap around to the first response after the last
            latency: Sleep for each entry's recorded latency
            host: Host to bind to
            port: Port to bind to
            recording_path: Shown in the startup banner
        """
        self.engine = ReplayEngine(session, loop=loop)
        self.latency = latency
        self.host = host
        self.port = port
        self.recording_path = recording_path
        self.logger = logging.getLogger("spectap.replay")

        self.app = self._create_app()

    @classmethod
    def from_file(cls, path: str, **kwargs) -> 'ReplayServer':
        """
        Raises:
            FileNotFoundError: If the recording doesn't exist
            ValueError: If it isn't a valid session
        """
        return cls(RecordingSession.load(path), recording_path=path, **kwargs)

    def _create_app(self) -> FastAPI:
        app = FastAPI(
            title="spectap Replay Server",
            description="Serves recorded traffic back in order",
            version="1.0.0"
        )
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["*"],
            allow_headers=["*"],
        )

        @app.api_route("/{path:path}", methods=REPLAY_METHODS)
        async def replay_request(request: Request, path: str):
            """Serve the next recorded response for this request."""
            return await self._handle_request(request)

        return app

    async def _handle_request(self, request: Request) -> Response:
        method = request.method.upper()
        url = original_url(request)

        entry = self.engine.next(method, url)
        if entry is None:
            key = replay_key(method, url)
            self.logger.warning(f"No recording for {key}")
            return JSONResponse(
                status_code=404,
                content={'error': 'No recording for this request', 'key': key}
            )

        recorded = entry.response
        if self.latency and recorded.latency_ms > 0:
            await asyncio.sleep(recorded.latency_ms / 1000)

        body = decode_body(recorded.body)
        response = Response(
            content=b'' if method == 'HEAD' else body,
            status_code=recorded.status
        )
        for name, value in recorded.headers.items():
            if name.lower() not in SKIP_REPLAY_HEADERS:
                response.headers[name] = value
        return response

    def start(self, host: Optional[str] = None, port: Optional[int] = None):
        """Start the replay server (blocking)."""
        actual_host = host or self.host
        actual_port = port or self.port

        print("\nspectap Replay Server")
        if self.recording_path:
            print(f"   Recording: {self.recording_path}")
        print(f"   Server: http://{actual_host}:{actual_port}")
        print(f"   Entries: {len(self.engine.session)} ({len(self.engine.buckets)} unique requests)")
        print(f"   Mode: {'loop' if self.engine.loop else 'clamp to last'}")
        if self.latency:
            print(f"   Replaying recorded latency")
        print()

        uvicorn.run(self.app, host=actual_host, port=actual_port)
