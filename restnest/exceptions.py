"""
Custom exceptions for restnest.

Two families live here:

- ``RestNestError`` and its subclasses are raised while an API tree is being
  built or a template is being rendered. They derive from ``BaseException`` so
  that request-level error handling (which catches ``Exception``) never turns a
  configuration defect into an HTTP response.
- ``ErrorResponse`` and its subclasses are request-scoped. Handlers, hooks and
  middleware raise them and the handler pipeline renders them with their
  status code.
"""

from http import HTTPStatus
from typing import Optional

from pydantic import ValidationError

__all__ = [
    "RestNestError",
    "RouteConflictError",
    "APIConfigurationError",
    "TemplateRenderError",
    "ErrorResponse",
    "InvalidRequestError",
    "NotFoundResponse",
    "MethodNotAllowedResponse",
    "InternalServerError",
    "RenderError",
    "ValidationError",
]


class RestNestError(BaseException):
    """Base exception for restnest configuration errors."""

    pass


class RouteConflictError(RestNestError):
    """Raised when two handlers are registered for the same method and pattern."""

    pass


class APIConfigurationError(RestNestError):
    """Raised when an API tree is assembled in an invalid way."""

    pass


class TemplateRenderError(RestNestError):
    """Raised when an HTML template cannot be parsed or executed."""

    def __init__(self, message="Failed to render template", original_exception=None):
        self.message = message
        self.original_exception = original_exception
        super().__init__(self.message)


class ErrorResponse(Exception):
    """An error that is rendered to the client with an HTTP status code.

    Attributes:
        status_code: HTTP status code of the response
        status_text: short, human readable status sent as ``status``
        error_text: optional detail sent as ``error``
        err: the underlying cause, if any
    """

    status_code: int = HTTPStatus.INTERNAL_SERVER_ERROR
    status_text: str = "Internal server error."

    def __init__(
        self,
        err: Optional[BaseException] = None,
        *,
        status_code: Optional[int] = None,
        status_text: Optional[str] = None,
        error_text: Optional[str] = None,
    ):
        self.err = err
        if status_code is not None:
            self.status_code = status_code
        if status_text is not None:
            self.status_text = status_text
        self.error_text = error_text if error_text is not None else ""
        super().__init__(self.error_text or self.status_text)

    def __str__(self) -> str:
        if self.err is not None:
            return f"{self.status_text} {self.err}"
        return self.error_text or self.status_text


class InvalidRequestError(ErrorResponse):
    """Malformed or invalid input, including an ID mismatch on replace."""

    status_code = HTTPStatus.BAD_REQUEST
    status_text = "Invalid request."

    def __init__(self, err: Optional[BaseException] = None, **kwargs):
        if err is not None:
            kwargs.setdefault("error_text", str(err))
        super().__init__(err, **kwargs)


class NotFoundResponse(ErrorResponse):
    """No resource exists at the given identifier."""

    status_code = HTTPStatus.NOT_FOUND
    status_text = "Resource not found."


class MethodNotAllowedResponse(ErrorResponse):
    """The resource type does not implement the requested capability."""

    status_code = HTTPStatus.METHOD_NOT_ALLOWED
    status_text = "Method not allowed."


class InternalServerError(ErrorResponse):
    """Storage or hook failure not otherwise classified.

    The cause is kept for logging but not sent to the client.
    """

    status_code = HTTPStatus.INTERNAL_SERVER_ERROR
    status_text = "Internal server error."


class RenderError(ErrorResponse):
    """The outgoing response could not be serialized."""

    status_code = HTTPStatus.UNPROCESSABLE_ENTITY
    status_text = "Error rendering response."

    def __init__(self, err: Optional[BaseException] = None, **kwargs):
        if err is not None:
            kwargs.setdefault("error_text", str(err))
        super().__init__(err, **kwargs)
