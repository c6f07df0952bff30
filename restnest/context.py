"""
Per-request context values.

Middleware and handlers hand values to each other through ``Request.context``.
The helpers here name the keys so that callers never depend on the raw dict
layout.
"""

import logging
from typing import Any, Optional, Type, TypeVar, Union

from .models import Request

logger = logging.getLogger("restnest")

T = TypeVar("T")

LOGGER_KEY = "restnest.logger"
STATUS_KEY = "restnest.status"
REQUEST_BODY_KEY = "restnest.request_body"
RESPONDER_KEY = "restnest.responder"
RESOURCE_KEY_PREFIX = "restnest.resource."


def get_logger(request: Request) -> Union[logging.Logger, logging.LoggerAdapter]:
    """Return the request-scoped logger, or the package logger when none is set."""
    return request.context.get(LOGGER_KEY, logger)


def set_logger(request: Request, request_logger: Union[logging.Logger, logging.LoggerAdapter]) -> None:
    request.context[LOGGER_KEY] = request_logger


def set_status(request: Request, status_code: int) -> None:
    """Set the status code used when the handler's result is rendered."""
    request.context[STATUS_KEY] = int(status_code)


def get_status(request: Request, default: Optional[int] = None) -> Optional[int]:
    return request.context.get(STATUS_KEY, default)


def set_request_body(request: Request, resource: Any) -> None:
    """Store a decoded request body so later handlers do not decode it again."""
    request.context[REQUEST_BODY_KEY] = resource


def get_request_body(request: Request, resource_type: Type[T]) -> Optional[T]:
    """Return the decoded request body if one of the expected type is present."""
    value = request.context.get(REQUEST_BODY_KEY)
    if isinstance(value, resource_type):
        return value
    return None


def set_resource(request: Request, name: str, resource: Any) -> None:
    """Store the resource resolved for the API called ``name``."""
    request.context[RESOURCE_KEY_PREFIX + name] = resource


def get_resource(request: Request, name: str) -> Optional[Any]:
    """Return the resource resolved by the API called ``name`` for this request.

    Child APIs use this to read an ancestor without fetching it again.
    """
    return request.context.get(RESOURCE_KEY_PREFIX + name)
