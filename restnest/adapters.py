"""
ASGI adapter for serving restnest routers.

Routers are synchronous ``Request -> Response`` callables. ``ASGIAdapter``
converts ASGI scopes into ``Request`` objects, runs the router in a thread
pool and writes the ``Response`` back through ``send``. No server is bundled;
hand the adapter to any ASGI server.
"""

import asyncio
import json
import logging
import urllib.parse
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Union

from .models import HTTPMethod, MultiValueHeaders, Request, Response

if TYPE_CHECKING:
    from .api import API
    from .router import Router

logger = logging.getLogger(__name__)


class ASGIAdapter:
    """
    ASGI 3.0 adapter for running a restnest ``Router`` (or ``API``).

    Example:
        ```python
        from restnest import API
        from restnest.adapters import ASGIAdapter

        widgets = API("widgets", "/widgets", Widget)
        asgi_app = ASGIAdapter(widgets)

        # uvicorn module:asgi_app
        ```
    """

    def __init__(self, app: Union["Router", "API", Callable[[Request], Response]]):
        # APIs are routed onto a fresh router once
        if hasattr(app, "router") and callable(getattr(app, "router")):
            app = app.router()
        self.app = app

    async def __call__(
        self,
        scope: Dict[str, Any],
        receive: Callable[[], Awaitable[Dict[str, Any]]],
        send: Callable[[Dict[str, Any]], Awaitable[None]],
    ):
        """Serve one ASGI connection. Only ``http`` and ``lifespan`` scopes are handled."""
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return

        if scope["type"] != "http":
            await send({
                "type": "http.response.start",
                "status": 404,
                "headers": [[b"content-type", b"text/plain"]],
            })
            await send({
                "type": "http.response.body",
                "body": b"restnest serves HTTP only",
            })
            return

        if scope["method"] not in {m.value for m in HTTPMethod}:
            await self._send_response(Response(
                status_code=405,
                body=json.dumps({"status": "Method not allowed."}),
                headers={"Allow": ", ".join(m.value for m in HTTPMethod)},
                content_type="application/json",
            ), send)
            return

        try:
            request = await self._read_request(scope, receive)
            loop = asyncio.get_running_loop()
            response = await loop.run_in_executor(None, self.app, request)
        except Exception as e:
            logger.exception(f"error handling ASGI request: {e}")
            response = Response(
                status_code=500,
                body=json.dumps({"status": "Internal server error."}),
                content_type="application/json",
            )

        await self._send_response(response, send)

    async def _handle_lifespan(self, receive, send):
        """Acknowledge lifespan events. Routers have no startup or shutdown work."""
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                await send({"type": "lifespan.shutdown.complete"})
                return

    async def _read_request(self, scope: Dict[str, Any], receive) -> Request:
        """Build a Request from the scope, reading the whole body."""
        method = HTTPMethod(scope["method"])
        path = scope["path"]

        query_string = scope.get("query_string", b"").decode("utf-8")
        query_params = {}
        if query_string:
            # Takes the last value for duplicate keys
            query_params = dict(urllib.parse.parse_qsl(query_string))

        headers = MultiValueHeaders()
        for header_name, header_value in scope.get("headers", []):
            headers.add(header_name.decode("latin-1").lower(), header_value.decode("latin-1"))

        chunks: List[bytes] = []
        while True:
            message = await receive()
            chunk = message.get("body", b"")
            if chunk:
                chunks.append(chunk)
            if not message.get("more_body", False):
                break

        body = b"".join(chunks)
        return Request(
            method=method,
            path=path,
            headers=headers,
            query_params=query_params,
            body=body or None,
        )

    async def _send_response(self, response: Response, send):
        body_bytes = response.body_bytes()

        headers = []
        for name, value in response.headers.items_all():
            headers.append([name.lower().encode("latin-1"), str(value).encode("latin-1")])

        await send({
            "type": "http.response.start",
            "status": response.status_code,
            "headers": headers,
        })
        await send({
            "type": "http.response.body",
            "body": body_bytes,
        })
