"""
Bluesky MCP Server
==================
An MCP server that gives an AI assistant one authenticated Bluesky account:
posting, threads, replies, quotes, feeds, search, engagement, profile and
list management, all behind a fixed set of tools.

Transports: stdio (default, for desktop hosts) and Streamable HTTP (for
container deployments, with an optional bearer token).
"""

import argparse
import json
import logging
import os
import sys
from contextlib import asynccontextmanager
from typing import Dict

from mcp import types
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.server.streamable_http_manager import StreamableHTTPSessionManager
from starlette.applications import Starlette
from starlette.responses import JSONResponse
from starlette.routing import Route

from bluesky_client import BlueskyClient, BlueskyConfig
from dispatcher import Dispatcher
from errors import ConfigurationError

# ---------------------------------------------------------------------------
# Logging configuration
# ---------------------------------------------------------------------------

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stderr,
)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

SERVER_NAME = "bluesky_mcp"
DEFAULT_PORT = 8080
CREDENTIALS_PATH = os.environ.get(
    "BLUESKY_CREDENTIALS_PATH", "/app/config/credentials.json"
)
MCP_HOST = os.environ.get("MCP_HOST", "0.0.0.0")
MCP_AUTH_TOKEN = os.environ.get("MCP_AUTH_TOKEN", "")

logger = logging.getLogger("bluesky_mcp")


# ---------------------------------------------------------------------------
# Authentication middleware
# ---------------------------------------------------------------------------


class BearerAuthMiddleware:
    """ASGI middleware requiring a Bearer token on all endpoints except /health.

    Set MCP_AUTH_TOKEN env var to enable. If unset, all requests pass through.
    Uses raw ASGI protocol so streaming responses are left untouched.
    """

    EXEMPT_PATHS = {b"/health"}

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http" or not MCP_AUTH_TOKEN:
            await self.app(scope, receive, send)
            return

        path = scope.get("path", "")
        if isinstance(path, str):
            path = path.encode()
        if path in self.EXEMPT_PATHS:
            await self.app(scope, receive, send)
            return

        headers = dict(scope.get("headers", []))
        auth_value = headers.get(b"authorization", b"").decode()
        if auth_value == f"Bearer {MCP_AUTH_TOKEN}":
            await self.app(scope, receive, send)
            return

        client_host = (scope.get("client") or ("unknown",))[0]
        logger.warning(f"Unauthorized request to {scope.get('path')} from {client_host}")
        response = JSONResponse(
            {"error": "Unauthorized. Provide a valid Bearer token."},
            status_code=401,
        )
        await response(scope, receive, send)


# ---------------------------------------------------------------------------
# Credentials management
# ---------------------------------------------------------------------------


def _load_credentials() -> Dict[str, str]:
    """Load Bluesky credentials from the environment, else from the JSON file."""
    handle = os.environ.get("BLUESKY_HANDLE")
    password = os.environ.get("BLUESKY_APP_PASSWORD")
    if handle and password:
        creds = {"handle": handle, "app_password": password}
        service = os.environ.get("BLUESKY_SERVICE")
        if service:
            creds["service"] = service
        return creds
    try:
        with open(CREDENTIALS_PATH, "r") as f:
            return json.load(f)
    except FileNotFoundError:
        return {}
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Credentials file {CREDENTIALS_PATH} is not valid JSON: {e}") from e


def load_config() -> BlueskyConfig:
    """Build the account configuration; missing credentials are fatal."""
    creds = _load_credentials()
    handle = (creds.get("handle") or "").strip().lstrip("@")
    password = creds.get("app_password") or ""
    if not handle or not password:
        raise ConfigurationError(
            "Bluesky credentials missing. Set BLUESKY_HANDLE and BLUESKY_APP_PASSWORD "
            f"or provide {CREDENTIALS_PATH}."
        )
    return BlueskyConfig(
        handle=handle,
        app_password=password,
        service_url=creds.get("service") or os.environ.get("BLUESKY_SERVICE") or None,
    )


# ---------------------------------------------------------------------------
# MCP wiring
# ---------------------------------------------------------------------------


def create_server(dispatcher: Dispatcher) -> Server:
    """Low-level MCP server whose tool calls all go through ``dispatcher``."""
    server = Server(SERVER_NAME)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return dispatcher.list_tools()

    async def call_tool(req: types.CallToolRequest) -> types.ServerResult:
        result = await dispatcher.dispatch(req.params.name, req.params.arguments)
        return types.ServerResult(result)

    # registered directly so isError results reach the host unchanged
    server.request_handlers[types.CallToolRequest] = call_tool
    return server


async def health_check(request):
    """Health check endpoint for Docker and load balancers."""
    return JSONResponse({"status": "ok"})


class _StreamableHTTPEndpoint:
    def __init__(self, manager: StreamableHTTPSessionManager):
        self.manager = manager

    async def __call__(self, scope, receive, send):
        await self.manager.handle_request(scope, receive, send)


def create_app(client: BlueskyClient):
    """Starlette app serving the MCP endpoint at /mcp plus /health.

    The Bluesky login runs in the lifespan, so a bad account stops startup.
    """
    dispatcher = Dispatcher(client)
    session_manager = StreamableHTTPSessionManager(
        app=create_server(dispatcher),
        stateless=True,
    )

    @asynccontextmanager
    async def lifespan(app):
        await client.login()
        async with session_manager.run():
            yield

    app = Starlette(
        routes=[
            Route("/health", health_check, methods=["GET"]),
            Route("/mcp", endpoint=_StreamableHTTPEndpoint(session_manager)),
        ],
        lifespan=lifespan,
    )
    if MCP_AUTH_TOKEN:
        logger.info("Bearer token authentication enabled")
        return BearerAuthMiddleware(app)
    logger.warning(
        "MCP_AUTH_TOKEN not set - server has NO authentication. "
        "Set MCP_AUTH_TOKEN env var to secure the endpoint."
    )
    return app


async def run_stdio(client: BlueskyClient) -> None:
    """Log in, then serve MCP over stdin/stdout until the host disconnects."""
    await client.login()
    server = create_server(Dispatcher(client))
    async with stdio_server() as (read_stream, write_stream):
        await server.run(
            read_stream,
            write_stream,
            server.create_initialization_options(),
        )


# ===================================================================
# Entrypoint
# ===================================================================


def main(argv=None) -> None:
    import anyio
    import uvicorn

    parser = argparse.ArgumentParser(description="Bluesky MCP Server")
    parser.add_argument(
        "--transport",
        choices=["stdio", "streamable_http"],
        default="stdio",
        help="MCP transport (default: stdio)",
    )
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help=f"HTTP port (default: {DEFAULT_PORT})")
    args = parser.parse_args(argv)

    try:
        client = BlueskyClient(load_config())
        if args.transport == "streamable_http":
            http_server = uvicorn.Server(uvicorn.Config(create_app(client), host=MCP_HOST, port=args.port))
            http_server.run()
            if not http_server.started:
                sys.exit(1)
        else:
            anyio.run(run_stdio, client)
    except ConfigurationError as e:
        logger.error(str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
