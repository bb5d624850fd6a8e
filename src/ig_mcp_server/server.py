"""MCP protocol adapter.

GadgetMCPServer exposes the tool registry over the Model Context Protocol
using the low-level server of the ``mcp`` SDK. It keeps the latest registry
snapshot, answers ``tools/list`` from it and dispatches ``tools/call`` to
the tool handler. Error results of handlers are turned into protocol error
results; handlers never fault the session.

Transports:
- stdio: the default, for MCP clients that spawn the server
- sse: Server-Sent Events on ``/sse`` with messages posted to ``/messages/``
- streamable-http: the streamable HTTP transport on ``/mcp``
"""

import asyncio
import contextlib
import threading
import weakref
from collections.abc import AsyncIterator
from typing import Any

import uvicorn
from mcp import types
from mcp.server.lowlevel import NotificationOptions, Server
from mcp.server.session import ServerSession
from mcp.server.sse import SseServerTransport
from mcp.server.stdio import stdio_server
from mcp.server.streamable_http_manager import StreamableHTTPSessionManager
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import Response
from starlette.routing import Mount, Route
from starlette.types import Receive, Scope, Send

from ig_mcp_server import __version__
from ig_mcp_server.telemetry import (
    SERVER_SHUTDOWN,
    SERVER_STARTING,
    TOOL_CALL_FAILED,
    TOOL_CALL_STARTED,
    TOOL_LIST_CHANGED_NOT_SENT,
    get_logger,
)
from ig_mcp_server.tools.types import ToolDescriptor

log = get_logger(__name__)

SERVER_NAME = "ig-mcp-server"


class ToolCallError(Exception):
    """Raised to the SDK so that it answers with an error result."""

    pass


def to_mcp_tool(tool: ToolDescriptor) -> types.Tool:
    """Protocol representation of a tool."""
    return types.Tool(
        name=tool.name,
        description=tool.description,
        inputSchema=tool.input_schema,
        annotations=types.ToolAnnotations(readOnlyHint=tool.read_only.as_annotation()),
    )


class GadgetMCPServer:
    """MCP server serving the current tool catalog.

    Usage:
        server = GadgetMCPServer()
        registry.register_callback(server.set_tools)
        await server.serve("stdio")
    """

    def __init__(self, name: str = SERVER_NAME, version: str = __version__) -> None:
        self.server: Server[Any, Any] = Server(name, version=version)
        self._tools: dict[str, ToolDescriptor] = {}
        self._lock = threading.Lock()
        self._sessions: weakref.WeakSet[ServerSession] = weakref.WeakSet()
        self._notifications: set[asyncio.Task[None]] = set()
        self._serve_task: asyncio.Task[None] | None = None
        self._uvicorn: uvicorn.Server | None = None

        self.server.list_tools()(self.list_tools)
        self.server.call_tool()(self.call_tool)

    def set_tools(self, tools: tuple[ToolDescriptor, ...]) -> None:
        """Replace the served catalog. Registered as a registry callback."""
        with self._lock:
            self._tools = {tool.name: tool for tool in tools}
        self._notify_tools_changed()

    def tool_names(self) -> list[str]:
        with self._lock:
            return list(self._tools)

    async def list_tools(self) -> list[types.Tool]:
        with self._lock:
            tools = list(self._tools.values())
        return [to_mcp_tool(tool) for tool in tools]

    async def call_tool(
        self, name: str, arguments: dict[str, Any] | None
    ) -> list[types.TextContent]:
        """Dispatch a call to the tool handler.

        Raises:
            ToolCallError: If the tool is unknown or its result is an error.
        """
        with self._lock:
            tool = self._tools.get(name)
        if tool is None:
            raise ToolCallError(f"tool {name} not found")

        self._remember_session()
        log.debug(TOOL_CALL_STARTED, tool_name=name)
        try:
            result = await tool.handler(arguments or {})
        except Exception as e:
            log.error(TOOL_CALL_FAILED, tool_name=name, error=str(e), exc_info=True)
            raise ToolCallError(f"{name}: {e}") from e

        if result.is_error:
            log.debug(TOOL_CALL_FAILED, tool_name=name, error=result.text)
            raise ToolCallError(result.text)
        return [types.TextContent(type="text", text=result.text)]

    async def serve(
        self, transport: str = "stdio", host: str = "localhost", port: int = 8080
    ) -> None:
        """Serve until the transport closes or shutdown() is called.

        Raises:
            ValueError: If the transport is not supported.
        """
        log.info(SERVER_STARTING, transport=transport, host=host, port=port, version=__version__)
        if transport == "stdio":
            self._serve_task = asyncio.ensure_future(self._serve_stdio())
            try:
                await self._serve_task
            except asyncio.CancelledError:
                current = asyncio.current_task()
                if current is not None and current.cancelling():
                    raise
        elif transport == "sse":
            await self._serve_http(self.sse_app(), host, port)
        elif transport == "streamable-http":
            await self._serve_http(self.streamable_http_app(), host, port)
        else:
            raise ValueError(f"unsupported transport: {transport}")
        log.info(SERVER_SHUTDOWN, transport=transport)

    def shutdown(self) -> None:
        """Stop serving; serve() returns once the transport is closed."""
        if self._uvicorn is not None:
            self._uvicorn.should_exit = True
        if self._serve_task is not None and not self._serve_task.done():
            self._serve_task.cancel()

    def initialization_options(self) -> Any:
        return self.server.create_initialization_options(
            notification_options=NotificationOptions(tools_changed=True)
        )

    def sse_app(self) -> Starlette:
        """Starlette app serving the SSE transport."""
        sse = SseServerTransport("/messages/")

        async def handle_sse(request: Request) -> Response:
            async with sse.connect_sse(request.scope, request.receive, request._send) as streams:
                await self.server.run(streams[0], streams[1], self.initialization_options())
            return Response()

        return Starlette(
            routes=[
                Route("/sse", endpoint=handle_sse, methods=["GET"]),
                Mount("/messages/", app=sse.handle_post_message),
            ]
        )

    def streamable_http_app(self) -> Starlette:
        """Starlette app serving the streamable HTTP transport."""
        manager = StreamableHTTPSessionManager(app=self.server)

        async def handle_mcp(scope: Scope, receive: Receive, send: Send) -> None:
            await manager.handle_request(scope, receive, send)

        @contextlib.asynccontextmanager
        async def lifespan(app: Starlette) -> AsyncIterator[None]:
            async with manager.run():
                yield

        return Starlette(routes=[Mount("/mcp", app=handle_mcp)], lifespan=lifespan)

    async def _serve_stdio(self) -> None:
        async with stdio_server() as (read_stream, write_stream):
            await self.server.run(read_stream, write_stream, self.initialization_options())

    async def _serve_http(self, app: Starlette, host: str, port: int) -> None:
        config = uvicorn.Config(app, host=host, port=port, log_config=None, log_level="warning")
        self._uvicorn = uvicorn.Server(config)
        await self._uvicorn.serve()

    def _remember_session(self) -> None:
        try:
            session = self.server.request_context.session
        except LookupError:
            return
        self._sessions.add(session)

    def _notify_tools_changed(self) -> None:
        sessions = list(self._sessions)
        if not sessions:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        task = loop.create_task(self._send_tools_changed(sessions))
        self._notifications.add(task)
        task.add_done_callback(self._notifications.discard)

    async def _send_tools_changed(self, sessions: list[ServerSession]) -> None:
        for session in sessions:
            try:
                await session.send_tool_list_changed()
            except Exception as e:
                # Session closed by the client
                log.debug(TOOL_LIST_CHANGED_NOT_SENT, error=str(e))
                self._sessions.discard(session)
