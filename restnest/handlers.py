"""
Request handlers.

``handler`` turns a function that returns a value into a router handler that
renders that value (or the error it raised). The ``default_*`` factories build
the CRUD handlers an ``API`` registers unless the caller replaces them.
"""

import functools
import json
from http import HTTPStatus
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional, Type, TypeVar
from urllib.parse import parse_qs

from pydantic import BaseModel, Field, create_model

from .content_renderers import render_response
from .context import get_logger, get_request_body, get_status, set_status
from .exceptions import (
    ErrorResponse,
    InternalServerError,
    InvalidRequestError,
    MethodNotAllowedResponse,
    NotFoundResponse,
)
from .models import HTTPMethod, Request, Response
from .resource import Patcher, ResourceList
from .storage import NotFoundError

if TYPE_CHECKING:
    from .api import API

T = TypeVar("T")

Handler = Callable[[Request], Response]


def handler(do: Callable[[Request], Any]) -> Handler:
    """Wrap ``do`` so its result is rendered into a Response.

    ``do`` may return:
    - a ``Response``, which is sent unchanged
    - ``None``, which sends an empty body with the context status (default 204)
    - anything else, which goes through content negotiation

    An ``ErrorResponse`` raised by ``do`` is logged and rendered with its status.
    """

    @functools.wraps(do)
    def wrapper(request: Request) -> Response:
        try:
            result = do(request)
        except ErrorResponse as err:
            get_logger(request).error(f"error returned from handler: {err}")
            return render_response(request, err)

        if result is None:
            return Response(status_code=int(get_status(request, HTTPStatus.NO_CONTENT)))
        if isinstance(result, Response):
            return result
        return render_response(request, result)

    return wrapper


def _parse_form(body: str) -> Dict[str, Any]:
    parsed = parse_qs(body, keep_blank_values=True)
    return {key: values[0] if len(values) == 1 else values for key, values in parsed.items()}


def _parse_body(raw: bytes, content_type: str) -> Any:
    text = raw.decode("utf-8")
    if content_type == "application/x-www-form-urlencoded":
        return _parse_form(text)
    return json.loads(text)


@functools.lru_cache(maxsize=None)
def partial_model(resource_type: Type[BaseModel]) -> Type[BaseModel]:
    """Return a model with ``resource_type``'s fields, all optional and defaulting to None.

    PATCH bodies are validated against it, so a client only has to send the
    fields it changes.
    """
    fields = {
        name: (Optional[info.annotation], Field(default=None, alias=info.alias))
        for name, info in resource_type.model_fields.items()
    }
    return create_model(f"Partial{resource_type.__name__}", **fields)


def _decode_patch(data: Any, resource_type: Type[T]) -> T:
    partial = partial_model(resource_type).model_validate(data)
    sent = partial.model_fields_set
    values = {name: getattr(partial, name) for name in sent}
    # Unsent fields keep their defaults; required ones are None
    for name, info in resource_type.model_fields.items():  # type: ignore[attr-defined]
        if name not in sent and info.is_required():
            values[name] = None
    return resource_type.model_construct(_fields_set=set(sent), **values)  # type: ignore[attr-defined]


def supports_patch(resource_type: Any) -> bool:
    return callable(getattr(resource_type, "patch", None))


def decode_resource(request: Request, resource_type: Type[T]) -> T:
    """Decode the request body into a new ``resource_type`` and bind it.

    JSON and ``application/x-www-form-urlencoded`` bodies are supported. For
    PATCH only the fields present in the body are validated; the rest keep
    their defaults (``None`` for required fields) and are left out of
    ``model_fields_set``.

    Raises:
        InvalidRequestError: If the body is empty, malformed, fails validation
            or is rejected by the resource's ``bind`` hook
    """
    raw = request.get_body_bytes()
    if not raw:
        raise InvalidRequestError(ValueError("request body is empty"))

    content_type = (request.get_content_type() or "application/json").split(";")[0].strip().lower()
    try:
        data = _parse_body(raw, content_type)
        if request.method == HTTPMethod.PATCH:
            resource = _decode_patch(data, resource_type)
        else:
            resource = resource_type.model_validate(data)  # type: ignore[attr-defined]
        resource.bind(request)
    except ValueError as e:
        # Also covers pydantic's ValidationError and JSON/Unicode decode errors
        raise InvalidRequestError(e) from e

    return resource


def get_from_request(request: Request, resource_type: Type[T]) -> T:
    """Return the resource decoded by body middleware, or decode the body now."""
    resource = get_request_body(request, resource_type)
    if resource is not None:
        return resource
    return decode_resource(request, resource_type)


def read_request_body_and_do(do: Callable[[Request, Any], Any], resource_type: Type[T]) -> Handler:
    """Build a handler that decodes the body into ``resource_type`` and calls ``do``.

    Usable without an API, e.g. for custom root routes.
    """

    def _do(request: Request):
        return do(request, get_from_request(request, resource_type))

    return handler(_do)


def _store(api: "API", request: Request, resource: Any, action: str = "storing resource") -> None:
    log = get_logger(request)
    log.info(f"{action}: {resource!r}")
    try:
        api.storage.set(resource)
    except Exception as e:
        log.error(f"error {action}: {e}")
        raise InternalServerError(e) from e


def _apply_status(api: "API", request: Request, method: HTTPMethod, default: Optional[int] = None) -> None:
    code = api.custom_response_codes.get(method, default)
    if code is not None:
        set_status(request, code)


def default_get(api: "API") -> Handler:
    def _get(request: Request):
        resource = api.get_requested_resource(request)
        _apply_status(api, request, HTTPMethod.GET)
        return api.response_wrapper(resource)

    return handler(_get)


def default_get_all(api: "API") -> Handler:
    def _get_all(request: Request):
        log = get_logger(request)
        try:
            resources = api.storage.get_all(api.get_all_filter(request))
        except Exception as e:
            log.error(f"error getting resources: {e}")
            raise InternalServerError(e) from e
        log.debug(f"responding with resources: count={len(resources)}")

        if api.get_all_response_wrapper is not None:
            response = api.get_all_response_wrapper(resources)
        else:
            response = ResourceList([api.response_wrapper(item) for item in resources])

        _apply_status(api, request, HTTPMethod.GET)
        return response

    return handler(_get_all)


def default_post(api: "API") -> Handler:
    def _post(request: Request, resource: Any):
        api.on_create_or_update(request, resource)
        _store(api, request, resource)
        _apply_status(api, request, HTTPMethod.POST, HTTPStatus.CREATED)
        return resource

    return api.read_request_body_and_do(_post)


def default_put(api: "API") -> Handler:
    def _put(request: Request, resource: Any):
        if resource.get_id() != api.get_id_param(request):
            raise InvalidRequestError(ValueError("id must match URL path"))

        api.on_create_or_update(request, resource)
        _store(api, request, resource)
        _apply_status(api, request, HTTPMethod.PUT)
        return resource

    return api.read_request_body_and_do(_put)


def default_patch(api: "API") -> Handler:
    def _patch(request: Request):
        log = get_logger(request)
        resource = api.get_requested_resource(request)

        # Checked before the body is decoded so any payload gets 405
        if not isinstance(resource, Patcher):
            raise MethodNotAllowedResponse()

        patch_request = api.get_from_request(request)
        try:
            resource.patch(patch_request)
        except ErrorResponse as err:
            log.error(f"error patching resource: {err}")
            raise

        api.on_create_or_update(request, resource)
        _store(api, request, resource, "storing updated resource")
        _apply_status(api, request, HTTPMethod.PATCH)
        return api.response_wrapper(resource)

    return handler(_patch)


def default_delete(api: "API") -> Handler:
    def _delete(request: Request):
        log = get_logger(request)
        api.before_delete(request)

        resource_id = api.get_id_param(request)
        log.info(f"deleting resource: id={resource_id}")
        try:
            api.storage.delete(resource_id)
        except NotFoundError as e:
            log.error(f"error deleting resource: {e}")
            raise NotFoundResponse(e) from e
        except Exception as e:
            log.error(f"error deleting resource: {e}")
            raise InternalServerError(e) from e

        api.after_delete(request)

        # The override code is sent with an empty body, like the default 204
        _apply_status(api, request, HTTPMethod.DELETE)
        return None

    return handler(_delete)

