"""
spectap Recording Proxy

Reverse proxy that forwards every request to a real upstream, returns the
upstream response unchanged, and records matching exchanges into a
session file for later replay.
"""

import logging
import time
from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import urljoin

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.background import BackgroundTask
import httpx
import uvicorn

from ..common.utils import normalize_headers
from .recording import (
    PathFilter,
    RecordedRequest,
    RecordedResponse,
    RecordingEntry,
    RecordingSession,
    SessionWriter,
    encode_body,
    resolve_output_path,
)

PROXY_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"]

# Not forwarded upstream
SKIP_REQUEST_HEADERS = {'host', 'content-length', 'connection'}

# httpx hands back a decoded body, so framing/encoding headers no longer apply
SKIP_RESPONSE_HEADERS = {'content-length', 'connection', 'content-encoding', 'transfer-encoding'}
SKIP_RECORDED_HEADERS = {'content-encoding', 'transfer-encoding'}


@dataclass
class RecordOptions:
    """Options for a recording session."""

    target: str
    output: str = 'recordings'
    host: str = '127.0.0.1'
    port: int = 3002
    include: Optional[str] = None
    status_filter: Optional[List[int]] = None
    timeout: float = 30.0


def build_target_url(target: str, original_url: str) -> str:
    """
    Resolve a request's path and query against the target base.

    Example:
        build_target_url('https://api.example.com/v1', '/users?page=2')
        # 'https://api.example.com/v1/users?page=2'
    """
    return urljoin(target.rstrip('/') + '/', original_url.lstrip('/'))


def original_url(request: Request) -> str:
    """Path plus query string exactly as the client sent them."""
    path = request.scope.get('raw_path')
    path = path.decode('latin-1').split('?', 1)[0] if path else request.url.path
    query = request.url.query
    return f"{path}?{query}" if query else path


class RecordingProxy:
    """
    Proxy and recorder for one upstream target.

    Example:
        proxy = RecordingProxy(RecordOptions(target='https://api.example.com'))
        proxy.start()

        # In tests, route upstream calls to an in-process app
        proxy = RecordingProxy(options, transport=httpx.ASGITransport(app=upstream))
    """

    def __init__(self, options: RecordOptions, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Raises:
            ConfigError: If the include pattern is an invalid regex
        """
        self.options = options
        self.logger = logging.getLogger("spectap.capture")
        self.transport = transport
        self.path_filter = PathFilter(options.include)
        self.output_path = resolve_output_path(options.output)
        self.session = RecordingSession(target=options.target)
        self.writer = SessionWriter(self.session, self.output_path)

        self.app = self._create_app()

    def _create_app(self) -> FastAPI:
        app = FastAPI(
            title="spectap Recording Proxy",
            description="Forwards traffic to an upstream and records it for replay",
            version="1.0.0"
        )
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["*"],
            allow_headers=["*"],
        )

        @app.api_route("/{path:path}", methods=PROXY_METHODS)
        async def proxy_request(request: Request, path: str):
            """Forward a request upstream and record the exchange."""
            return await self._handle_request(request)

        return app

    def should_record(self, path: str, status: int) -> bool:
        """Include filter on the path, then the optional status filter."""
        if not self.path_filter.matches(path):
            return False
        status_filter = self.options.status_filter
        return not status_filter or status in status_filter

    async def _handle_request(self, request: Request) -> Response:
        method = request.method.upper()
        url = original_url(request)
        target_url = build_target_url(self.options.target, url)
        raw_body = await request.body()

        forward_headers = [
            (name, value) for name, value in request.headers.items()
            if name.lower() not in SKIP_REQUEST_HEADERS
        ]

        start_time = time.monotonic()
        try:
            async with httpx.AsyncClient(transport=self.transport, timeout=self.options.timeout) as client:
                upstream = await client.request(
                    method,
                    target_url,
                    headers=forward_headers,
                    content=raw_body if method not in ('GET', 'HEAD') else None,
                )
        except httpx.HTTPError as e:
            self.logger.error(f"Proxy request failed for {method} {target_url}: {e}")
            return JSONResponse(
                status_code=502,
                content={'error': 'Proxy request failed', 'message': str(e)}
            )
        latency_ms = int((time.monotonic() - start_time) * 1000)

        self.logger.debug(f"{method} {url} -> {upstream.status_code} ({latency_ms}ms)")

        entry = None
        if self.should_record(request.url.path, upstream.status_code):
            entry = RecordingEntry(
                request=RecordedRequest(
                    method=method,
                    url=url,
                    headers=normalize_headers(request.headers.items()),
                    body=encode_body(raw_body),
                ),
                response=RecordedResponse(
                    status=upstream.status_code,
                    headers=normalize_headers(
                        (name, value) for name, value in upstream.headers.multi_items()
                        if name.lower() not in SKIP_RECORDED_HEADERS
                    ),
                    body=encode_body(upstream.content),
                    latency_ms=latency_ms,
                ),
            )

        response = Response(
            content=upstream.content,
            status_code=upstream.status_code,
            background=BackgroundTask(self.writer.append, entry) if entry else None,
        )
        for name, value in upstream.headers.multi_items():
            if name.lower() not in SKIP_RESPONSE_HEADERS:
                response.headers.append(name, value)
        return response

    def start(self, host: Optional[str] = None, port: Optional[int] = None):
        """Start the recording proxy (blocking)."""
        actual_host = host or self.options.host
        actual_port = port or self.options.port

        print("\nspectap Recording Proxy")
        print(f"   Target: {self.options.target}")
        print(f"   Proxy: http://{actual_host}:{actual_port}")
        print(f"   Output: {self.output_path}")
        if self.options.include:
            print(f"   Include: {self.options.include}")
        if self.options.status_filter:
            print(f"   Status filter: {', '.join(str(s) for s in self.options.status_filter)}")
        print()

        uvicorn.run(self.app, host=actual_host, port=actual_port)
