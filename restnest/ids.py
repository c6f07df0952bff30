"""
Resolving resource identifiers from request paths.

Every API registers its ID route as ``/{<name>ID}``. Path parameters are
collected level by level while a request travels through mounted routers, so
middleware of a parent API runs before the child's ID has been matched. For
those cases ``find_id_param`` reads the ID straight from the raw path.
"""

from .models import Request


def id_param_key(name: str) -> str:
    """Return the path parameter key used for an API's resource ID."""
    return f"{name}ID"


def get_id_param(request: Request, name: str) -> str:
    """Return the matched ID parameter for ``name``, or ``""`` if not yet matched."""
    return request.path_params.get(id_param_key(name), "")


def find_id_param(path: str, base: str) -> str:
    """Find the path segment directly after ``base`` in a request path.

    Examples:
        find_id_param("/widgets/abc123/parts", "/widgets") -> "abc123"
        find_id_param("/widgets", "/widgets") -> ""
        find_id_param("/gadgets/1", "/widgets") -> ""
    """
    index = path.find(base)
    if index == -1:
        return ""

    rest = path[index + len(base):]
    if rest.startswith("/"):
        rest = rest[1:]

    return rest.split("/", 1)[0]
