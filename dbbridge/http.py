"""Stateless HTTP transport: origin checks, bearer auth and the ``/message`` endpoint."""

from __future__ import annotations

import logging
from typing import Callable
from urllib.parse import urlsplit

import anyio
import uvicorn
from mcp.server.lowlevel import Server
from mcp.server.streamable_http import StreamableHTTPServerTransport
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route
from starlette.types import Message, Receive, Scope, Send

from .auth import BearerAuthPolicy, authenticate
from .errors import AuthError, OriginError

LOG = logging.getLogger(__name__)

ServerFactory = Callable[[], Server]

MESSAGE_PATH = "/message"
DEFAULT_ORIGIN = "http://localhost"
ALLOWED_ORIGIN_HOSTS = frozenset({"localhost", "127.0.0.1", "::1"})


def is_allowed_origin(origin: str) -> bool:
    """Accept only http(s) origins that point at the local machine."""

    try:
        parts = urlsplit(origin)
        parts.port  # raises ValueError on a malformed port
    except ValueError:
        return False
    if parts.scheme not in ("http", "https") or parts.username is not None:
        return False
    return parts.hostname in ALLOWED_ORIGIN_HOSTS


def cors_headers(origin: str | None) -> dict[str, str]:
    return {
        "Access-Control-Allow-Origin": origin or DEFAULT_ORIGIN,
        "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type, Mcp-Session-Id, Authorization",
        "Access-Control-Allow-Credentials": "true",
    }


class OriginMiddleware(BaseHTTPMiddleware):
    """Rejects foreign origins and answers CORS preflight before auth runs."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        origin = request.headers.get("origin")
        if origin is not None and not is_allowed_origin(origin):
            LOG.warning("Rejected request from forbidden origin", extra={"origin": origin})
            return JSONResponse({"error": "Forbidden origin"}, status_code=OriginError.status_code)
        if request.method == "OPTIONS":
            response = Response(status_code=200)
        else:
            response = await call_next(request)
        response.headers.update(cors_headers(origin))
        return response


class BearerAuthMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, policy: BearerAuthPolicy) -> None:
        super().__init__(app)
        self.policy = policy

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        client = request.client.host if request.client else "unknown"
        try:
            checked = authenticate(request.headers.get("authorization"), self.policy)
        except AuthError as exc:
            if exc.status_code == 403:
                LOG.warning("Authentication failed - invalid token", extra={"client": client})
            return JSONResponse({"error": exc.reason, "message": str(exc)}, status_code=exc.status_code)
        if checked:
            LOG.debug("Authentication successful", extra={"client": client})
        return await call_next(request)


class MessageEndpoint:
    """ASGI endpoint that serves every request with a fresh server and transport.

    Nothing outlives the request, so concurrent clients never share
    JSON-RPC ids or session state.
    """

    def __init__(self, server_factory: ServerFactory, *, json_response: bool = False) -> None:
        self.server_factory = server_factory
        self.json_response = json_response

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        response_started = False

        async def tracking_send(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self._handle(scope, receive, tracking_send)
        except Exception:
            LOG.exception("Error handling request")
            if not response_started:
                response = JSONResponse({"error": "Internal server error"}, status_code=500)
                await response(scope, receive, send)

    async def _handle(self, scope: Scope, receive: Receive, send: Send) -> None:
        server = self.server_factory()
        transport = StreamableHTTPServerTransport(
            mcp_session_id=None,
            is_json_response_enabled=self.json_response,
        )

        async def run_server(*, task_status=anyio.TASK_STATUS_IGNORED) -> None:
            async with transport.connect() as (read_stream, write_stream):
                task_status.started()
                await server.run(
                    read_stream,
                    write_stream,
                    server.create_initialization_options(),
                    stateless=True,
                )

        async with anyio.create_task_group() as tg:
            await tg.start(run_server)
            try:
                await transport.handle_request(scope, receive, send)
            finally:
                await transport.terminate()
                tg.cancel_scope.cancel()


def create_app(
    server_factory: ServerFactory,
    *,
    auth_policy: BearerAuthPolicy | None = None,
    json_response: bool = False,
) -> Starlette:
    """Build the Starlette app; origin checks wrap auth, which wraps the endpoint."""

    middleware = [Middleware(OriginMiddleware)]
    if auth_policy is not None and auth_policy.enabled:
        middleware.append(Middleware(BearerAuthMiddleware, policy=auth_policy))
    endpoint = MessageEndpoint(server_factory, json_response=json_response)
    return Starlette(
        routes=[Route(MESSAGE_PATH, endpoint=endpoint, methods=["POST"])],
        middleware=middleware,
    )


async def run_http(app: Starlette, port: int, *, log_level: str = "info") -> None:
    """Serve ``app`` on all interfaces until uvicorn is asked to stop."""

    config = uvicorn.Config(app, host="0.0.0.0", port=port, log_level=log_level.lower(), log_config=None)
    LOG.info("Listening at http://0.0.0.0:%s%s", port, MESSAGE_PATH)
    await uvicorn.Server(config).serve()


__all__ = [
    "ALLOWED_ORIGIN_HOSTS",
    "BearerAuthMiddleware",
    "MessageEndpoint",
    "OriginMiddleware",
    "ServerFactory",
    "cors_headers",
    "create_app",
    "is_allowed_origin",
    "run_http",
]
