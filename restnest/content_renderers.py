"""
Content negotiation and response rendering.

Every value a handler returns (resources, resource lists, errors, plain
dicts) goes through a ``Responder``. The responder owns the single respond
function used for the whole process; APIs install it while they are routed,
and routers put the responder into each request's context so handlers can
reach it without module-level state.
"""

import json
import logging
import threading
from http import HTTPStatus
from typing import Any, Callable, Optional

from pydantic import BaseModel

from .context import RESPONDER_KEY, get_status
from .error_models import ErrorBody
from .exceptions import ErrorResponse, RenderError
from .models import Request, Response
from .resource import HTMLer, ResourceList

logger = logging.getLogger(__name__)

CONTENT_TYPE_JSON = "application/json"
CONTENT_TYPE_HTML = "text/html"
CONTENT_TYPE_PLAIN = "text/plain"

RespondFunc = Callable[[Request, Any, int], Response]


def accepted_content_type(request: Request) -> str:
    """Return the first media type in the Accept header that restnest can produce.

    Falls back to JSON when nothing recognizable is requested.
    """
    for accept_type in request.get_accept_header().split(","):
        media_type = accept_type.strip().split(";")[0].strip().lower()
        if media_type == CONTENT_TYPE_HTML:
            return CONTENT_TYPE_HTML
        if media_type in (CONTENT_TYPE_JSON, CONTENT_TYPE_PLAIN):
            return media_type
    return CONTENT_TYPE_JSON


class ContentRenderer:
    """Base class for content renderers."""

    def __init__(self, media_type: str):
        self.media_type = media_type

    def render(self, data: Any, request: Request) -> str:
        """Render the data as this content type."""
        raise NotImplementedError


class JSONRenderer(ContentRenderer):
    """JSON content renderer.

    Unlike a best-effort encoder this one raises when a value cannot be
    serialized, so the handler pipeline can answer with a render error.
    """

    def __init__(self):
        super().__init__(CONTENT_TYPE_JSON)

    def render(self, data: Any, request: Request) -> str:
        return json.dumps(self.serialize(data))

    def serialize(self, data: Any) -> Any:
        """Convert resources, lists and errors into JSON-compatible values."""
        if isinstance(data, ErrorResponse):
            return ErrorBody.from_error(data).model_dump(mode="json")
        if isinstance(data, BaseModel):
            return data.model_dump(mode="json")
        if isinstance(data, ResourceList):
            return {"items": [self.serialize(item) for item in data.items]}
        if isinstance(data, (list, tuple)):
            return [self.serialize(item) for item in data]
        if isinstance(data, dict):
            return {key: self.serialize(value) for key, value in data.items()}
        return data


class HTMLRenderer(ContentRenderer):
    """HTML content renderer for values that know their own HTML form."""

    def __init__(self):
        super().__init__(CONTENT_TYPE_HTML)

    def render(self, data: Any, request: Request) -> str:
        if isinstance(data, HTMLer):
            return data.html(request)
        return str(data)


_json_renderer = JSONRenderer()
_html_renderer = HTMLRenderer()


def negotiate(request: Request, value: Any, status_code: int) -> Response:
    """Default respond function.

    Renders HTML when the client accepts ``text/html`` and the value is an
    ``HTMLer``; everything else is rendered as JSON.
    """
    if accepted_content_type(request) == CONTENT_TYPE_HTML and isinstance(value, HTMLer):
        return Response(
            status_code=status_code,
            body=_html_renderer.render(value, request),
            content_type="text/html; charset=utf-8",
        )

    return Response(
        status_code=status_code,
        body=_json_renderer.render(value, request),
        content_type=CONTENT_TYPE_JSON,
    )


class Responder:
    """Holds the respond function shared by every API mounted on a router tree.

    ``install`` is safe to call from many APIs at once: the assignment happens
    under a lock and only the first call takes effect unless ``replace`` is
    set. Reads in ``render`` take no lock.
    """

    def __init__(self):
        self._respond: Optional[RespondFunc] = None
        self._lock = threading.Lock()

    @property
    def installed(self) -> bool:
        return self._respond is not None

    def install(self, respond: Optional[RespondFunc] = None, *, replace: bool = False) -> None:
        with self._lock:
            if self._respond is None or replace:
                self._respond = respond or negotiate

    def render(self, request: Request, value: Any) -> Response:
        """Render a handler result or error into a Response.

        Raises:
            RenderError: If the value's render hook or serialization fails
        """
        if isinstance(value, ErrorResponse):
            status_code = int(value.status_code)
        else:
            status_code = int(get_status(request, HTTPStatus.OK))

        respond = self._respond or negotiate
        try:
            render_hook = getattr(value, "render", None)
            if callable(render_hook):
                render_hook(request)
            return respond(request, value, status_code)
        except ErrorResponse:
            raise
        except Exception as e:
            raise RenderError(e) from e


def get_responder(request: Request) -> Responder:
    """Return the responder injected by the router, or a default one."""
    responder = request.context.get(RESPONDER_KEY)
    if responder is None:
        responder = Responder()
        request.context[RESPONDER_KEY] = responder
    return responder


def render_response(request: Request, value: Any) -> Response:
    """Render a value, falling back to a render-error response if that fails.

    The fallback always produces a response, so a client never waits on a
    request whose result could not be serialized.
    """
    responder = get_responder(request)
    try:
        return responder.render(request, value)
    except ErrorResponse as err:
        logger.error(f"unable to render response: {err}")
        fallback = err if isinstance(err, RenderError) else RenderError(err)
        try:
            return responder.render(request, fallback)
        except ErrorResponse:
            return Response(
                status_code=fallback.status_code,
                body=json.dumps({"status": fallback.status_text}),
                content_type=CONTENT_TYPE_JSON,
            )
