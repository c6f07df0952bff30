"""
The API descriptor.

An ``API`` describes one resource type: its name, the base path it is served
under, where it is stored and how its routes behave. ``route`` composes the
full CRUD route tree for it on a ``Router``, recursively mounting every nested
child API under ``/{<name>ID}``.

Example:
    class Widget(DefaultResource):
        name: str = ""

    widgets = API("widgets", "/widgets", Widget)
    parts = API("parts", "/parts", Part)
    widgets.add_nested_api(parts)

    app = widgets.router()
    # POST/GET        /widgets
    # GET/PUT/PATCH/DELETE /widgets/{widgetsID}
    # POST/GET        /widgets/{widgetsID}/parts
    # ...
"""

import logging
from typing import Any, Callable, Dict, Generic, List, Optional, Set, Tuple, Type, TypeVar, Union

from .content_renderers import render_response
from .context import get_logger, set_request_body, set_resource
from .exceptions import APIConfigurationError, ErrorResponse, InternalServerError, NotFoundResponse, RouteConflictError
from .handlers import (
    Handler,
    decode_resource,
    default_delete,
    default_get,
    default_get_all,
    default_patch,
    default_post,
    default_put,
    get_from_request,
    handler,
    supports_patch,
)
from .ids import find_id_param, get_id_param, id_param_key
from .middleware import recoverer, request_logger
from .models import HTTPMethod, Request, Response
from .router import Middleware, Router, normalize_path
from .storage import FilterFunc, InMemoryStorage, NotFoundError, Storage

logger = logging.getLogger(__name__)

T = TypeVar("T")

CustomRoute = Tuple[HTTPMethod, str, Handler]


class API(Generic[T]):
    """Routes, handlers and hooks for one resource type.

    The builder methods (``add_*`` and ``set_*``) return the API so calls can be
    chained. The default handlers are plain attributes (``get``, ``get_all``,
    ``post``, ``put``, ``patch``, ``delete``); assign a new handler to replace
    one before calling ``route``.
    """

    def __init__(self, name: str, base: str, resource_type: Optional[Type[T]], storage: Optional[Storage] = None):
        self._name = name
        self._base = normalize_path("/", base)
        self.resource_type = resource_type
        self._parent: Optional["API"] = None
        self._children: List["API"] = []
        self.root_api = False

        self._middlewares: List[Middleware] = []
        self._id_middlewares: List[Middleware] = []

        self._root_routes: List[CustomRoute] = []
        self._custom_routes: List[CustomRoute] = []
        self._custom_id_routes: List[CustomRoute] = []

        self.custom_response_codes: Dict[HTTPMethod, int] = {}
        self._response_wrapper: Optional[Callable[[T], Any]] = None
        self.get_all_response_wrapper: Optional[Callable[[List[T]], Any]] = None
        self._get_all_filter: Optional[Callable[[Request], FilterFunc]] = None

        self._on_create_or_update: Optional[Callable[[Request, T], None]] = None
        self._before_delete: Optional[Callable[[Request], None]] = None
        self._after_delete: Optional[Callable[[Request], None]] = None

        self.storage: Storage = storage if storage is not None else InMemoryStorage()

        self.get: Handler = default_get(self)
        self.get_all: Handler = default_get_all(self)
        self.post: Handler = default_post(self)
        self.put: Handler = default_put(self)
        self.patch: Handler = default_patch(self)
        self.delete: Handler = default_delete(self)

    @classmethod
    def root(cls, name: str, base: str) -> "API":
        """Create an API that only mounts its children and has no CRUD routes."""
        api = cls(name, base, None)
        api.root_api = True
        return api

    @property
    def name(self) -> str:
        return self._name

    @property
    def base(self) -> str:
        return self._base

    @property
    def parent(self) -> Optional["API"]:
        return self._parent

    @property
    def children(self) -> List["API"]:
        return list(self._children)

    def __repr__(self):
        return f"API(name={self._name!r}, base={self._base!r})"

    # Builder methods

    def set_storage(self, storage: Storage) -> "API[T]":
        self.storage = storage
        return self

    def add_nested_api(self, child: "API") -> "API[T]":
        """Serve ``child`` under this API's ``/{<name>ID}`` route.

        Raises:
            APIConfigurationError: If ``child`` already has a parent, or its name
                matches this API or one of its ancestors (the ID parameter keys
                would collide)
        """
        if child._parent is not None:
            raise APIConfigurationError(f"{child!r} is already nested under {child._parent!r}")

        ancestor: Optional[API] = self
        while ancestor is not None:
            if ancestor.name == child.name:
                raise APIConfigurationError(
                    f"nested API name {child.name!r} is already used by {ancestor!r} in the same tree"
                )
            ancestor = ancestor._parent

        child._parent = self
        self._children.append(child)
        return self

    def add_middleware(self, middleware: Middleware) -> "API[T]":
        """Add middleware that wraps every route of this API, including nested APIs."""
        self._middlewares.append(middleware)
        return self

    def add_id_middleware(self, middleware: Middleware) -> "API[T]":
        """Add middleware that wraps only the routes under ``/{<name>ID}``."""
        self._id_middlewares.append(middleware)
        return self

    def add_custom_root_route(self, method: Union[str, HTTPMethod], pattern: str, route_handler: Handler) -> "API[T]":
        """Add a route outside the base path. Only used when this API is the top of its tree."""
        _add_custom_route(self._root_routes, method, pattern, route_handler)
        return self

    def add_custom_route(self, method: Union[str, HTTPMethod], pattern: str, route_handler: Handler) -> "API[T]":
        """Add a route relative to the base path, e.g. ``/count``."""
        _add_custom_route(self._custom_routes, method, pattern, route_handler)
        return self

    def add_custom_id_route(self, method: Union[str, HTTPMethod], pattern: str, route_handler: Handler) -> "API[T]":
        """Add a route relative to ``/{<name>ID}``, e.g. ``/archive``."""
        _add_custom_route(self._custom_id_routes, method, pattern, route_handler)
        return self

    def set_custom_response_code(self, method: Union[str, HTTPMethod], code: int) -> "API[T]":
        """Override the success status code for a default handler."""
        self.custom_response_codes[HTTPMethod.coerce(method)] = int(code)
        return self

    def set_response_wrapper(self, wrapper: Callable[[T], Any]) -> "API[T]":
        """Transform single resources before they are rendered."""
        self._response_wrapper = wrapper
        return self

    def set_get_all_response_wrapper(self, wrapper: Callable[[List[T]], Any]) -> "API[T]":
        """Replace the default ``{"items": [...]}`` list response."""
        self.get_all_response_wrapper = wrapper
        return self

    def set_get_all_filter(self, factory: Callable[[Request], FilterFunc]) -> "API[T]":
        """Build a per-request predicate that ``get_all`` passes to storage."""
        self._get_all_filter = factory
        return self

    def set_on_create_or_update(self, hook: Callable[[Request, T], None]) -> "API[T]":
        """Run ``hook`` before POST, PUT and PATCH store a resource.

        Raise an ``ErrorResponse`` from the hook to reject the request; nothing
        is stored in that case.
        """
        self._on_create_or_update = hook
        return self

    def set_before_delete(self, hook: Callable[[Request], None]) -> "API[T]":
        self._before_delete = hook
        return self

    def set_after_delete(self, hook: Callable[[Request], None]) -> "API[T]":
        self._after_delete = hook
        return self

    # Hooks used by the default handlers

    def response_wrapper(self, resource: T) -> Any:
        if self._response_wrapper is None:
            return resource
        return self._response_wrapper(resource)

    def get_all_filter(self, request: Request) -> Optional[FilterFunc]:
        if self._get_all_filter is None:
            return None
        return self._get_all_filter(request)

    def on_create_or_update(self, request: Request, resource: T) -> None:
        if self._on_create_or_update is not None:
            self._on_create_or_update(request, resource)

    def before_delete(self, request: Request) -> None:
        if self._before_delete is not None:
            self._before_delete(request)

    def after_delete(self, request: Request) -> None:
        if self._after_delete is not None:
            self._after_delete(request)

    # Request helpers

    def id_param_key(self) -> str:
        return id_param_key(self._name)

    def get_id_param(self, request: Request) -> str:
        """Return this API's resource ID for the request.

        Middleware of a parent API runs before the child's ID has been matched,
        so nested APIs fall back to reading the ID from the raw path.
        """
        param = get_id_param(request, self._name)
        if not param and self._parent is not None:
            param = find_id_param(request.path, self._base)
        return param

    def get_parent_id_param(self, request: Request) -> str:
        if self._parent is None:
            return ""
        return self._parent.get_id_param(request)

    def get_requested_resource(self, request: Request) -> T:
        """Fetch the resource addressed by the request's ID.

        Raises:
            NotFoundResponse: If storage has no resource with that ID
            InternalServerError: If storage fails for any other reason
        """
        resource_id = self.get_id_param(request)
        try:
            return self.storage.get(resource_id)
        except NotFoundError as e:
            raise NotFoundResponse(e) from e
        except Exception as e:
            raise InternalServerError(e) from e

    def get_from_request(self, request: Request) -> T:
        return get_from_request(request, self.resource_type)

    def get_requested_resource_and_do(self, do: Callable[[Request, T], Any]) -> Handler:
        """Build a handler that fetches the requested resource and calls ``do(request, resource)``.

        Useful for custom ID routes. Returning ``None`` from ``do`` sends 204.
        """

        def _do(request: Request):
            try:
                resource = self.get_requested_resource(request)
            except ErrorResponse as err:
                get_logger(request).error(f"error getting requested resource: {err}")
                raise
            return do(request, resource)

        return handler(_do)

    def read_request_body_and_do(self, do: Callable[[Request, T], Optional[T]]) -> Handler:
        """Build a handler that decodes the body and calls ``do(request, resource)``.

        The result passes through the response wrapper; ``None`` sends 204.
        """

        def _do(request: Request):
            result = do(request, self.get_from_request(request))
            if result is None:
                return None
            return self.response_wrapper(result)

        return handler(_do)

    def get_requested_resource_and_do_middleware(self, do: Callable[[Request, T], None]) -> Middleware:
        """Build ID-scoped middleware that fetches the requested resource and calls ``do``.

        ``do`` may store values in the request context or raise an
        ``ErrorResponse`` to stop the request. A missing resource is tolerated
        for a PUT addressed to this API's own ``/{id}`` route, since PUT can
        create it; PUTs to deeper routes still get 404.
        """

        def middleware(next_handler: Handler) -> Handler:
            def _middleware(request: Request) -> Response:
                log = get_logger(request)
                try:
                    resource = self.get_requested_resource(request)
                except NotFoundResponse as err:
                    if request.method == HTTPMethod.PUT and _addresses_current_route(request):
                        log.warning("resource not found but continuing to next handler")
                        return next_handler(request)
                    log.error(f"error getting requested resource: {err}")
                    return render_response(request, err)
                except ErrorResponse as err:
                    log.error(f"error getting requested resource: {err}")
                    return render_response(request, err)

                try:
                    do(request, resource)
                except ErrorResponse as err:
                    return render_response(request, err)

                return next_handler(request)

            return _middleware

        return middleware

    def _resource_exists_middleware(self, next_handler: Handler) -> Handler:
        def store(request: Request, resource: T) -> None:
            set_resource(request, self._name, resource)

        return self.get_requested_resource_and_do_middleware(store)(next_handler)

    def _request_body_middleware(self, next_handler: Handler) -> Handler:
        def _middleware(request: Request) -> Response:
            # Left to the PATCH handler, which answers 405
            if request.method == HTTPMethod.PATCH and not supports_patch(self.resource_type):
                return next_handler(request)

            try:
                resource = decode_resource(request, self.resource_type)
            except ErrorResponse as err:
                get_logger(request).error(f"invalid request body: {err}")
                return render_response(request, err)

            set_request_body(request, resource)
            return next_handler(request)

        return _middleware

    # Route composition

    def route(self, router: Router) -> None:
        """Register this API's routes (and its children's) on ``router``."""
        router.responder.install()
        logger.debug(f"routing {self!r} with {len(self._children)} nested APIs")

        scoped = router.with_(*self._middlewares)

        if self._parent is None:
            _register_custom_routes(scoped, self._root_routes)

        scoped.route(self._base, self._route_collection)

    def router(self) -> Router:
        """Create a new ``Router`` serving this API."""
        r = Router()
        self.route(r)
        return r

    def _route_collection(self, r: Router) -> None:
        # Default middleware only at the top of a tree
        if self._parent is None:
            r.use(request_logger, recoverer)

        if self.root_api:
            for child in self._children:
                child.route(r)
            return

        r.with_(self._request_body_middleware).post("/", self.post)
        r.get("/", self.get_all)

        r.with_(self._resource_exists_middleware).route(f"/{{{self.id_param_key()}}}", self._route_id)

        _register_custom_routes(r, self._custom_routes)

    def _route_id(self, r: Router) -> None:
        r.use(*self._id_middlewares)

        r.get("/", self.get)
        r.delete("/", self.delete)
        r.with_(self._request_body_middleware).put("/", self.put)
        r.with_(self._request_body_middleware).patch("/", self.patch)

        for child in self._children:
            child.route(r)

        _register_custom_routes(r, self._custom_id_routes)


def _add_custom_route(routes: List[CustomRoute], method: Union[str, HTTPMethod], pattern: str, route_handler: Handler) -> None:
    method = HTTPMethod.coerce(method)
    pattern = normalize_path("/", pattern)
    seen: Set[Tuple[HTTPMethod, str]] = {(m, p) for m, p, _ in routes}
    if (method, pattern) in seen:
        raise RouteConflictError(f"custom route {method.value} {pattern} is already registered")
    routes.append((method, pattern, route_handler))


def _register_custom_routes(r: Router, routes: List[CustomRoute]) -> None:
    for method, pattern, route_handler in routes:
        r.add_route(method, pattern, route_handler)


def _addresses_current_route(request: Request) -> bool:
    # Nothing left to match means the request targets this level's /{id} route
    return (request.route_path or "/").strip("/") == ""
