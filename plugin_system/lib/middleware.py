"""
FastAPI integration for the plugin system.

Runs a plugin pipeline as HTTP middleware. Each request gets an
``HttpContext``; plugins either finish the response themselves
(``context.response.end(...)``) or continue the chain. When every plugin
continues, the request falls through to the application's routes and the
headers collected by the plugins are added to the route's response.
"""

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable

from fastapi import FastAPI, Request, Response
from starlette.datastructures import MutableHeaders

from plugin_system.lib.plugins.plugin_registry import PluginSystem

logger = logging.getLogger(__name__)


class PluginResponse:
    """
    Response under construction, shared by the plugins of one request.
    """

    def __init__(self, on_end: Callable[[], None] | None = None):
        self.status_code: int = 200
        self.headers = MutableHeaders()
        self.body: bytes = b""
        self.media_type: str | None = None
        self.ended = False
        self._on_end = on_end

    def set_header(self, name: str, value: Any) -> None:
        self.headers[name] = str(value)

    def end(self, content: str | bytes = b"", media_type: str | None = None) -> None:
        """
        Finish the response; the request will not reach the application routes.

        Args:
            content: Response body
            media_type: Optional media type, unless a Content-Type header is set

        Raises:
            RuntimeError: If the response was already ended
        """
        if self.ended:
            raise RuntimeError("Response already ended")
        self.body = content.encode("utf-8") if isinstance(content, str) else content
        if media_type is not None:
            self.media_type = media_type
        self.ended = True
        if self._on_end is not None:
            self._on_end()

    def json(self, data: Any, status_code: int | None = None) -> None:
        """Finish the response with a JSON body."""
        if status_code is not None:
            self.status_code = status_code
        self.end(json.dumps(data), media_type="application/json")


class HttpContext:
    """
    Per-request context handed to every plugin.

    Attributes:
        request -- the incoming request
        response -- response being built by the plugins
        downstream -- response of the application routes, once the chain fell through
        state -- free-form storage for plugins sharing data within one request
    """

    def __init__(self, request: Request):
        self.request = request
        self.response = PluginResponse(on_end=self._finish)
        self.downstream: Response | None = None
        self.state: dict[str, Any] = {}
        self._finished = asyncio.Event()
        self._error: BaseException | None = None

    @property
    def finished(self) -> bool:
        return self._finished.is_set()

    def _finish(self) -> None:
        self._finished.set()

    async def fall_through(self, call_next: Callable[[Request], Awaitable[Response]]) -> None:
        """Pass the request on to the application and keep its response."""
        self.downstream = await call_next(self.request)
        self._finish()

    def fail(self, error: BaseException) -> None:
        """Record a failure of the chain; ``wait`` raises it."""
        self._error = error
        self._finish()

    async def wait(self) -> None:
        """
        Wait until a plugin ended the response or the application answered.

        Raises:
            Exception: The failure recorded with ``fail``
        """
        await self._finished.wait()
        if self._error is not None:
            raise self._error

    def build_response(self) -> Response:
        """
        Build the response to send back.

        Returns:
            The application's response with the plugins' headers added, or a
            response built from what the plugins wrote
        """
        if self.downstream is not None:
            for name, value in self.response.headers.items():
                self.downstream.headers[name] = value
            return self.downstream

        return Response(
            content=self.response.body,
            status_code=self.response.status_code,
            headers=dict(self.response.headers),
            media_type=self.response.media_type,
        )


def install_plugin_middleware(app: FastAPI, plugin_system: PluginSystem) -> None:
    """
    Register the plugin chain as HTTP middleware of a FastAPI app.

    The plugins are sorted here, so ordering errors abort app construction.
    A plugin that neither continues nor ends the response leaves the request
    pending; there is no timeout.

    Args:
        app: FastAPI application instance
        plugin_system: Plugin system whose plugins run for every request
    """
    handler = plugin_system.get_async_route_handler()

    async def run_plugins(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        context = HttpContext(request)

        async def next_() -> None:
            await context.fall_through(call_next)

        await handler(context, next_, on_error=context.fail)
        await context.wait()
        return context.build_response()

    app.middleware("http")(run_plugins)
    logger.info(f"Installed plugin middleware with {len(plugin_system.plugins)} plugins")
