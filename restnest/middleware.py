"""
Default middleware applied by top-level APIs.

- ``request_logger`` puts a request-scoped logger into the request context
  and logs every completed request.
- ``recoverer`` turns unexpected exceptions into a logged 500 response.

Both follow the router's middleware signature: they take the next handler and
return a new handler.
"""

import logging
import time
import uuid

from .content_renderers import render_response
from .context import get_logger, set_logger
from .exceptions import InternalServerError
from .models import Request, Response

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestLogger(logging.LoggerAdapter):
    """Logger adapter that prefixes messages with the request they belong to."""

    def process(self, msg, kwargs):
        extra = self.extra or {}
        return f"[{extra.get('request_id')}] {extra.get('method')} {extra.get('path')}: {msg}", kwargs


def request_logger(next_handler):
    """Attach a ``RequestLogger`` to the request and log its outcome."""

    def middleware(request: Request) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request_log = RequestLogger(
            logger,
            {"request_id": request_id, "method": request.method.value, "path": request.path},
        )
        set_logger(request, request_log)

        start = time.perf_counter()
        response = next_handler(request)
        duration_ms = (time.perf_counter() - start) * 1000

        request_log.info(f"completed with status {response.status_code} in {duration_ms:.2f}ms")
        return response

    return middleware


def recoverer(next_handler):
    """Catch exceptions that escaped the handlers and answer with a 500.

    Configuration errors derive from ``BaseException`` and are not caught.
    """

    def middleware(request: Request) -> Response:
        try:
            return next_handler(request)
        except Exception as e:
            get_logger(request).exception(f"unhandled error: {e}")
            return render_response(request, InternalServerError(e))

    return middleware
