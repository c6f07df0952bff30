"""Router module: path-pattern routing with middleware and sub-router mounting.

A ``Router`` is itself a handler (``Request -> Response``). Sub-routers are
mounted under a pattern and receive the part of the path their parent did not
consume, so path parameters are collected level by level as a request travels
down the tree. Middleware registered with ``use`` wraps everything a router
serves; ``with_`` returns an inline group whose middleware wraps only the
routes registered through it.
"""

import logging
from typing import Callable, Dict, List, Optional, Tuple, Union

from .content_renderers import Responder, render_response
from .context import RESPONDER_KEY
from .exceptions import MethodNotAllowedResponse, NotFoundResponse, RestNestError, RouteConflictError
from .models import HTTPMethod, Request, Response

logger = logging.getLogger(__name__)

Handler = Callable[[Request], Response]
Middleware = Callable[[Handler], Handler]

# Wildcard segment appended to mount patterns; its value is the unmatched rest of the path
MOUNT_PARAM = "_subpath"
MOUNT_SEGMENT = "*" + MOUNT_PARAM


class RouteNode:
    """One path segment of the route trie.

    Children are tried static first, then the single ``{param}`` child, then the
    single ``*wildcard`` child. ``handlers`` holds the routes ending here.
    """

    def __init__(self):
        self.static_children: Dict[str, "RouteNode"] = {}
        self.param_child: Optional[Tuple[str, "RouteNode"]] = None
        self.wildcard_child: Optional[Tuple[str, "RouteNode"]] = None
        self.handlers: Dict[HTTPMethod, Handler] = {}

    def _set_handler(self, method: HTTPMethod, handler: Handler, pattern: str) -> None:
        if method in self.handlers:
            raise RouteConflictError(f"Route {method.value} {pattern} is already registered")
        self.handlers[method] = handler

    def add_route(self, segments: List[str], method: HTTPMethod, handler: Handler, pattern: str = "") -> None:
        """Add a route to the trie.

        Args:
            segments: Pattern segments, e.g. ["widgets", "{widgetsID}", "*_subpath"]
            method: HTTP method
            handler: Handler called when the route matches
            pattern: Full pattern, used in conflict messages

        Raises:
            RouteConflictError: If the method is already registered for this pattern,
                or a different parameter name is used at the same position
        """
        if not segments:
            self._set_handler(method, handler, pattern)
            return

        segment = segments[0]
        remaining = segments[1:]

        if segment.startswith('*'):
            param_name = segment[1:]
            if remaining:
                raise ValueError(f"Wildcard parameter '{segment}' must be the last segment in the route")
            if self.wildcard_child is None:
                self.wildcard_child = (param_name, RouteNode())
            _, child_node = self.wildcard_child
            child_node._set_handler(method, handler, pattern)
        elif segment.startswith('{') and segment.endswith('}'):
            param_name = segment[1:-1]
            if self.param_child is None:
                self.param_child = (param_name, RouteNode())
            existing_name, child_node = self.param_child
            if existing_name != param_name:
                raise RouteConflictError(
                    f"Path parameter '{{{param_name}}}' in {pattern} conflicts with '{{{existing_name}}}'"
                )
            child_node.add_route(remaining, method, handler, pattern)
        else:
            if segment not in self.static_children:
                self.static_children[segment] = RouteNode()
            self.static_children[segment].add_route(remaining, method, handler, pattern)

    def match(self, segments: List[str], method: HTTPMethod) -> Optional[Tuple[Handler, Dict[str, str]]]:
        """Return ``(handler, path_params)`` for the most specific match, or None."""
        if not segments:
            handler = self.handlers.get(method)
            if handler:
                return (handler, {})
            # A wildcard also matches an empty remainder
            if self.wildcard_child:
                param_name, child_node = self.wildcard_child
                handler = child_node.handlers.get(method)
                if handler:
                    return (handler, {param_name: ""})
            return None

        segment = segments[0]
        remaining = segments[1:]

        # Static segments win over parameters
        if segment in self.static_children:
            result = self.static_children[segment].match(remaining, method)
            if result:
                return result

        if self.param_child:
            param_name, child_node = self.param_child
            result = child_node.match(remaining, method)
            if result:
                handler, params = result
                params[param_name] = segment
                return (handler, params)

        # Wildcard is least specific and matches all remaining segments
        if self.wildcard_child:
            param_name, child_node = self.wildcard_child
            handler = child_node.handlers.get(method)
            if handler:
                return (handler, {param_name: "/".join(segments)})

        return None

    def methods_for(self, segments: List[str]) -> List[HTTPMethod]:
        """Return every method that matches this path."""
        return [method for method in HTTPMethod if self.match(segments, method)]


def normalize_path(prefix: str, path: str) -> str:
    """Join ``prefix`` and ``path`` with exactly one slash between them.

        normalize_path("/", "widgets")      -> "/widgets"
        normalize_path("/shops/", "/parts") -> "/shops/parts"
    """
    if not prefix.startswith('/'):
        prefix = '/' + prefix

    if prefix != '/' and prefix.endswith('/'):
        prefix = prefix.rstrip('/')

    if not path.startswith('/'):
        path = '/' + path

    if prefix == '/':
        return path

    return prefix + path


def _join(prefix: str, path: str) -> str:
    # "/" under a prefix is the prefix itself
    if path == "/" and prefix not in ("", "/"):
        return normalize_path("/", prefix).rstrip("/")
    return normalize_path(prefix, path)


def split_path(path: str) -> List[str]:
    return [s for s in path.split('/') if s]


def chain(middlewares: List[Middleware], handler: Handler) -> Handler:
    """Wrap a handler so the first middleware in the list runs first."""
    for middleware in reversed(middlewares):
        handler = middleware(handler)
    return handler


class Router:
    """Router for organizing routes with middleware and mounting support.

    Example:
        router = Router()
        router.use(request_logger)

        @router.get("/health")
        def health(request):
            return Response(200, body={"ok": True})

        router.route("/widgets", lambda r: r.get("/", list_widgets))
    """

    def __init__(self, responder: Optional[Responder] = None):
        self.responder = responder or Responder()
        self._middlewares: List[Middleware] = []
        self._route_tree = RouteNode()
        self._routes: List[Tuple[HTTPMethod, str]] = []
        self._mounts: List[Tuple[str, Handler]] = []
        self._inline = False
        self._root: "Router" = self
        self._has_routes = False

    def use(self, *middlewares: Middleware) -> None:
        """Append middleware that wraps every request this router serves.

        Raises:
            RestNestError: If routes were already registered on this router
        """
        if not self._inline and self._has_routes:
            raise RestNestError("all middlewares must be defined before routes on a router")
        self._middlewares.extend(middlewares)

    def with_(self, *middlewares: Middleware) -> "Router":
        """Return an inline group that shares this router's routes.

        Routes and mounts registered through the group are wrapped by the
        group's middleware (after this group's parents' inline middleware).
        """
        group = Router(responder=self.responder)
        group._inline = True
        group._route_tree = self._route_tree
        group._routes = self._routes
        group._mounts = self._mounts
        group._middlewares = (self._middlewares if self._inline else []) + list(middlewares)
        group._root = self._root
        return group

    def _register(self, method: HTTPMethod, pattern: str, handler: Handler) -> None:
        if self._inline:
            handler = chain(self._middlewares, handler)
        self._route_tree.add_route(split_path(pattern), method, handler, pattern)
        self._routes.append((method, normalize_path("/", pattern)))
        self._mark_routed()

    def _mark_routed(self) -> None:
        self._has_routes = True
        if self._inline:
            self._root._has_routes = True

    def add_route(self, method: Union[str, HTTPMethod], pattern: str, handler: Handler) -> None:
        """Register a handler for an exact method and path pattern."""
        self._register(HTTPMethod.coerce(method), pattern, handler)

    def get(self, pattern: str, handler: Optional[Handler] = None):
        """Register a GET handler, directly or as a decorator."""
        return self._route_or_decorator(HTTPMethod.GET, pattern, handler)

    def post(self, pattern: str, handler: Optional[Handler] = None):
        """Register a POST handler, directly or as a decorator."""
        return self._route_or_decorator(HTTPMethod.POST, pattern, handler)

    def put(self, pattern: str, handler: Optional[Handler] = None):
        """Register a PUT handler, directly or as a decorator."""
        return self._route_or_decorator(HTTPMethod.PUT, pattern, handler)

    def patch(self, pattern: str, handler: Optional[Handler] = None):
        """Register a PATCH handler, directly or as a decorator."""
        return self._route_or_decorator(HTTPMethod.PATCH, pattern, handler)

    def delete(self, pattern: str, handler: Optional[Handler] = None):
        """Register a DELETE handler, directly or as a decorator."""
        return self._route_or_decorator(HTTPMethod.DELETE, pattern, handler)

    def _route_or_decorator(self, method: HTTPMethod, pattern: str, handler: Optional[Handler]):
        if handler is not None:
            self._register(method, pattern, handler)
            return handler

        def decorator(func: Handler):
            self._register(method, pattern, func)
            return func

        return decorator

    def mount(self, pattern: str, handler: Handler) -> None:
        """Mount a sub-router (or any handler) under a pattern.

        The mounted handler receives every method and every path below the
        pattern. ``request.route_path`` holds the unmatched remainder.

        Example:
            users_router = Router()
            users_router.get("/", list_users)
            users_router.get("/{id}", get_user)

            router.mount("/users", users_router)
            # This serves GET /users and GET /users/{id}
        """
        mounted = handler
        if self._inline:
            handler = chain(self._middlewares, handler)

        segments = split_path(pattern) + [MOUNT_SEGMENT]
        mount_pattern = normalize_path(pattern, MOUNT_SEGMENT)
        for method in HTTPMethod:
            self._route_tree.add_route(segments, method, handler, mount_pattern)

        self._mounts.append((normalize_path("/", pattern), mounted))
        self._mark_routed()

    def route(self, pattern: str, fn: Optional[Callable[["Router"], None]] = None) -> "Router":
        """Create a sub-router, let ``fn`` populate it and mount it under ``pattern``."""
        sub_router = Router(responder=self.responder)
        if fn is not None:
            fn(sub_router)
        self.mount(pattern, sub_router)
        return sub_router

    def get_all_routes(self, prefix: str = "/") -> List[Tuple[str, str]]:
        """List ``(method, path)`` for every leaf route, including mounted routers.

        Mounted handlers that are not routers are listed with the method ``*``.
        """
        routes = [(method.value, _join(prefix, path)) for method, path in self._routes]
        for mount_prefix, mounted in self._mounts:
            combined_prefix = _join(prefix, mount_prefix)
            if isinstance(mounted, Router):
                routes.extend(mounted.get_all_routes(combined_prefix))
            else:
                routes.append(("*", combined_prefix))
        return routes

    def __call__(self, request: Request) -> Response:
        """Serve a request: run this router's middleware, then the matching route."""
        if self._inline:
            return self._root(request)
        request.context.setdefault(RESPONDER_KEY, self.responder)
        return chain(self._middlewares, self._route)(request)

    def _route(self, request: Request) -> Response:
        path = request.route_path if request.route_path is not None else request.path
        segments = split_path(path)

        result = self._route_tree.match(segments, request.method)
        if result is None:
            allowed = self._route_tree.methods_for(segments)
            if allowed:
                logger.debug(f"method {request.method.value} not allowed for {request.path}")
                response = render_response(request, MethodNotAllowedResponse())
                response.headers["Allow"] = ", ".join(m.value for m in allowed)
                return response
            logger.debug(f"no route for {request.method.value} {request.path}")
            return render_response(request, NotFoundResponse())

        handler, params = result
        rest = params.pop(MOUNT_PARAM, None)
        request.path_params.update(params)
        if rest is not None:
            request.route_path = "/" + rest
        return handler(request)

