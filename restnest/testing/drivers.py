"""
Drivers turn DSL requests into calls on a router.

``RestNestDriver`` calls the router in-process. ``ASGIDriver`` goes through
``ASGIAdapter`` with hand-built ASGI messages, so header encoding and body
collection are covered without a server.
"""

import asyncio
import json
from abc import ABC, abstractmethod
from typing import Any, Dict, List
from urllib.parse import urlencode

from ..adapters import ASGIAdapter
from ..models import HTTPMethod, MultiValueHeaders, Request, Response
from .dsl import HttpRequest, HttpResponse


class DriverInterface(ABC):

    @abstractmethod
    def execute(self, request: HttpRequest) -> HttpResponse:
        """Send ``request`` and return what came back."""


def encode_body(request: HttpRequest) -> bytes:
    """Encode a DSL request body the way a client would send it."""
    if request.body is None:
        return b""
    if isinstance(request.body, dict):
        content_type = request.headers.get("Content-Type", "")
        if "application/x-www-form-urlencoded" in content_type:
            return urlencode(request.body).encode("utf-8")
        return json.dumps(request.body).encode("utf-8")
    if isinstance(request.body, bytes):
        return request.body
    return str(request.body).encode("utf-8")


def decode_body(body: bytes, content_type: str) -> Any:
    """Decode a response body for assertions: JSON when declared, text otherwise."""
    if not body:
        return None
    text = body.decode("utf-8")
    if content_type and "application/json" in content_type:
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            return text
    return text


class RestNestDriver(DriverInterface):
    """Calls a router (or any ``Request -> Response`` callable) directly."""

    def __init__(self, app):
        self.app = app

    def execute(self, request: HttpRequest) -> HttpResponse:
        body = encode_body(request)
        rn_request = Request(
            method=HTTPMethod(request.method.upper()),
            path=request.path,
            headers=dict(request.headers),
            query_params=dict(request.query_params),
            body=body or None,
        )

        response = self.app(rn_request)
        return self._convert_response(response)

    def _convert_response(self, response: Response) -> HttpResponse:
        content_type = response.headers.get("Content-Type")
        return HttpResponse(
            status_code=response.status_code,
            headers=response.headers.copy(),
            body=decode_body(response.body_bytes(), content_type),
            content_type=content_type,
        )


class ASGIDriver(DriverInterface):
    """
    Driver that executes requests through ``ASGIAdapter``.

    Each request runs a fresh event loop, so the adapter's thread pool hand-off
    and header encoding are exercised exactly as under an ASGI server.
    """

    def __init__(self, app):
        self.adapter = ASGIAdapter(app)

    def execute(self, request: HttpRequest) -> HttpResponse:
        return asyncio.run(self._execute(request))

    async def _execute(self, request: HttpRequest) -> HttpResponse:
        scope = {
            "type": "http",
            "asgi": {"version": "3.0"},
            "http_version": "1.1",
            "method": request.method.upper(),
            "scheme": "http",
            "path": request.path,
            "query_string": urlencode(request.query_params).encode("latin-1"),
            "headers": [
                [name.lower().encode("latin-1"), value.encode("latin-1")]
                for name, value in request.headers.items()
            ],
        }

        body_messages: List[Dict[str, Any]] = [
            {"type": "http.request", "body": encode_body(request), "more_body": False}
        ]
        sent: List[Dict[str, Any]] = []

        async def receive():
            if body_messages:
                return body_messages.pop(0)
            return {"type": "http.disconnect"}

        async def send(message):
            sent.append(message)

        await self.adapter(scope, receive, send)

        start = next(m for m in sent if m["type"] == "http.response.start")
        body = b"".join(m.get("body", b"") for m in sent if m["type"] == "http.response.body")

        headers = MultiValueHeaders()
        for name, value in start["headers"]:
            headers.add(name.decode("latin-1"), value.decode("latin-1"))

        content_type = headers.get("content-type")
        return HttpResponse(
            status_code=start["status"],
            headers=headers,
            body=decode_body(body, content_type),
            content_type=content_type,
        )
