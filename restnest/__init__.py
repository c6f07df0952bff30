"""
A generic REST-resource routing engine.

Describe a resource type once with an ``API`` and restnest derives its CRUD
routes, nests child resource types under their parent's ID route, and renders
every result and error through one content-negotiated response pipeline.
Resources are pydantic models; HTML representations can use Jinja2 templates.
"""

from http import HTTPStatus

from .adapters import ASGIAdapter
from .api import API
from .content_renderers import ContentRenderer, HTMLRenderer, JSONRenderer, Responder, render_response
from .context import get_logger, get_request_body, get_resource, get_status, set_status
from .error_models import ErrorBody
from .exceptions import (
    APIConfigurationError,
    ErrorResponse,
    InternalServerError,
    InvalidRequestError,
    MethodNotAllowedResponse,
    NotFoundResponse,
    RenderError,
    RestNestError,
    RouteConflictError,
    TemplateRenderError,
    ValidationError,
)
from .handlers import get_from_request, handler, read_request_body_and_do
from .ids import find_id_param, get_id_param, id_param_key
from .middleware import recoverer, request_logger
from .models import HTTPMethod, Request, Response
from .resource import DefaultResource, HTMLer, Patcher, Resource, ResourceList, new_id
from .router import Router
from .storage import InMemoryStorage, NotFoundError, Storage
from .template_helpers import must_render_html, must_render_html_map

__version__ = "0.1.0"
__author__ = "restnest Contributors"
__license__ = "MIT"

__all__ = [
    "API",
    "Router",
    "Request",
    "Response",
    "HTTPMethod",
    "HTTPStatus",
    "Resource",
    "DefaultResource",
    "ResourceList",
    "Patcher",
    "HTMLer",
    "new_id",
    "Storage",
    "InMemoryStorage",
    "NotFoundError",
    "ErrorBody",
    "ErrorResponse",
    "InvalidRequestError",
    "NotFoundResponse",
    "MethodNotAllowedResponse",
    "InternalServerError",
    "RenderError",
    "RestNestError",
    "RouteConflictError",
    "APIConfigurationError",
    "TemplateRenderError",
    "ValidationError",
    "ContentRenderer",
    "JSONRenderer",
    "HTMLRenderer",
    "Responder",
    "render_response",
    "handler",
    "read_request_body_and_do",
    "get_from_request",
    "id_param_key",
    "get_id_param",
    "find_id_param",
    "get_logger",
    "get_status",
    "set_status",
    "get_request_body",
    "get_resource",
    "request_logger",
    "recoverer",
    "must_render_html",
    "must_render_html_map",
    "ASGIAdapter",
]
