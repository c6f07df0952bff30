"""
The resource contract.

A resource type is a pydantic model that exposes a stable identifier, can be
bound from a request body and can be rendered. Two optional capabilities are
checked per call with ``isinstance``:

- ``Patcher``: the type supports partial updates (PATCH)
- ``HTMLer``: the value has an HTML representation for ``text/html`` clients
"""

import uuid
from typing import Any, Generic, List, Protocol, TypeVar, runtime_checkable

from pydantic import BaseModel

from .models import HTTPMethod, Request

T = TypeVar("T")


def new_id() -> str:
    """Generate a new resource identifier."""
    return uuid.uuid4().hex


class Resource(BaseModel):
    """Base class for resource types served by an API.

    Subclasses must implement ``get_id``. ``bind`` and ``render`` are hooks that
    default to doing nothing.
    """

    def get_id(self) -> str:
        raise NotImplementedError(f"{type(self).__name__} must implement get_id()")

    def bind(self, request: Request) -> None:
        """Validate or complete the resource after it is decoded from a request body.

        Raise ``ValueError`` (or an ``ErrorResponse``) to reject the request.
        """

    def render(self, request: Request) -> None:
        """Prepare the resource right before it is serialized into a response."""


@runtime_checkable
class Patcher(Protocol):
    """Capability: apply a partial update in place.

    ``patch`` receives the decoded PATCH body and may raise an ``ErrorResponse``.
    """

    def patch(self, other: Any) -> None: ...


@runtime_checkable
class HTMLer(Protocol):
    """Capability: represent the value as an HTML string."""

    def html(self, request: Request) -> str: ...


class DefaultResource(Resource):
    """A resource that only has an ``id``.

    Embed it in your own models to get an identifier that is generated on POST
    and required on PUT.
    """

    id: str = ""

    def get_id(self) -> str:
        return self.id

    def bind(self, request: Request) -> None:
        if request.method == HTTPMethod.POST:
            self.id = new_id()
        elif request.method == HTTPMethod.PUT and not self.id:
            raise ValueError("missing required id field")


class ResourceList(Generic[T]):
    """Ordered items returned by a read-all request. Renders as ``{"items": [...]}``."""

    def __init__(self, items: List[T]):
        self.items = list(items)

    def render(self, request: Request) -> None:
        for item in self.items:
            render = getattr(item, "render", None)
            if callable(render):
                render(request)

    def __len__(self):
        return len(self.items)

    def __iter__(self):
        return iter(self.items)

    def __repr__(self):
        return f"ResourceList({self.items!r})"
