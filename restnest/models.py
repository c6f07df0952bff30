"""
Core data models for restnest.
"""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from http import HTTPStatus
from typing import Any, Dict, List, Optional, Tuple, Union

# Set up logger for this module
logger = logging.getLogger(__name__)


class MultiValueHeaders:
    """
    Multi-value, case-insensitive headers container.

    HTTP headers are case-insensitive per RFC 7230, and the same header can appear
    multiple times. Lookups ignore case and each name keeps every value it was given.

    Example::

        headers = MultiValueHeaders()
        headers.add('Accept', 'text/html')
        headers.add('Accept', 'application/json')
        headers.get('accept')      # Returns 'text/html' (first value)
        headers.get_all('accept')  # Returns ['text/html', 'application/json']
    """

    def __init__(self, data=None):
        """
        Initialize headers from dict, list of tuples, or another MultiValueHeaders.

        Args:
            data: Can be:
                - Dict[str, str] or Dict[str, List[str]]
                - List of (name, value) tuples
                - Another MultiValueHeaders instance
                - None
        """
        # Internal storage: Dict[lowercase_name, List[Tuple[original_name, value]]]
        self._headers: Dict[str, List[Tuple[str, str]]] = {}

        if data is not None:
            if isinstance(data, MultiValueHeaders):
                self._headers = {k: list(v) for k, v in data._headers.items()}
            elif isinstance(data, dict):
                for key, value in data.items():
                    if isinstance(value, list):
                        for v in value:
                            self.add(key, v)
                    else:
                        self.add(key, value)
            elif isinstance(data, (list, tuple)):
                for key, value in data:
                    self.add(key, value)

    def add(self, name: str, value: str) -> None:
        """Add a header value, allowing multiple values for the same name."""
        self._headers.setdefault(name.lower(), []).append((name, value))

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Get the first value for a header name."""
        if not isinstance(name, str):
            return default

        values = self._headers.get(name.lower())
        if values:
            return values[0][1]
        return default

    def get_all(self, name: str) -> List[str]:
        """Get all values for a header name (empty list if not found)."""
        return [value for _, value in self._headers.get(name.lower(), [])]

    def set(self, name: str, value: str) -> None:
        """Set a header to a single value, replacing any existing values."""
        self._headers[name.lower()] = [(name, value)]

    def __setitem__(self, name: str, value: str) -> None:
        self.set(name, value)

    def __getitem__(self, name: str) -> str:
        value = self.get(name)
        if value is None:
            raise KeyError(name)
        return value

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        return name.lower() in self._headers

    def __delitem__(self, name: str) -> None:
        try:
            del self._headers[name.lower()]
        except KeyError:
            raise KeyError(name)

    def __iter__(self):
        """Iterate over header names (using original casing of first occurrence)."""
        for values in self._headers.values():
            if values:
                yield values[0][0]

    def __len__(self):
        return len(self._headers)

    def items(self):
        """Return (name, first_value) pairs."""
        return [(values[0][0], values[0][1]) for values in self._headers.values() if values]

    def items_all(self):
        """
        Return all (name, value) pairs including duplicates.

        Useful for serialization to formats that support multiple headers.
        """
        result = []
        for values in self._headers.values():
            result.extend(values)
        return result

    def copy(self):
        """Return a shallow copy of the headers."""
        return MultiValueHeaders(self)

    def __repr__(self):
        return f"MultiValueHeaders({self.items()!r})"


class HTTPMethod(Enum):
    """Enumeration of supported HTTP methods."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"

    @classmethod
    def coerce(cls, method: Union[str, "HTTPMethod"]) -> "HTTPMethod":
        """Accept either an HTTPMethod or a method name in any case."""
        if isinstance(method, cls):
            return method
        return cls(str(method).upper())


@dataclass
class Request:
    """Represents an HTTP request.

    ``path`` is always the full request path. ``route_path`` is the part of the
    path that is still left to match while the request travels through mounted
    sub-routers; routers set it as they strip matched prefixes.

    ``context`` carries per-request values (logger, decoded body, resolved
    resources, response status) from middleware to handlers. Nothing in it
    outlives the request.
    """

    method: HTTPMethod
    path: str
    headers: Union[Dict[str, str], MultiValueHeaders] = field(default_factory=dict)
    body: Optional[Union[str, bytes]] = None
    query_params: Optional[Dict[str, str]] = None
    path_params: Optional[Dict[str, str]] = None
    route_path: Optional[str] = None
    context: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        """Ensure headers is a MultiValueHeaders for case-insensitive header lookups."""
        if not isinstance(self.headers, MultiValueHeaders):
            self.headers = MultiValueHeaders(self.headers)
        if self.path_params is None:
            self.path_params = {}
        if self.query_params is None:
            self.query_params = {}

    def get_accept_header(self) -> str:
        """Get the Accept header, defaulting to */* if not present."""
        result = self.headers.get("accept")
        return result if result else "*/*"

    def get_content_type(self) -> Optional[str]:
        """Get the Content-Type header."""
        return self.headers.get("content-type")

    def get_body_bytes(self) -> bytes:
        """Return the request body as bytes (empty when there is no body)."""
        if self.body is None:
            return b""
        if isinstance(self.body, bytes):
            return self.body
        return self.body.encode("utf-8")


@dataclass
class Response:
    """Represents an HTTP response.

    The body can be:
    - str: Will be encoded to UTF-8 bytes
    - bytes: Used directly
    - dict/list: Will be JSON-encoded
    - None: Empty response body
    """

    status_code: int
    body: Optional[Union[str, bytes, dict, list]] = None
    headers: Optional[Union[Dict[str, str], MultiValueHeaders]] = None
    content_type: Optional[str] = None

    def __post_init__(self):
        if self.headers is None:
            self.headers = MultiValueHeaders()
        elif not isinstance(self.headers, MultiValueHeaders):
            self.headers = MultiValueHeaders(self.headers)

        if self.content_type:
            self.headers["Content-Type"] = self.content_type

        # 204 responses never carry a body or a Content-Length
        if self.status_code == HTTPStatus.NO_CONTENT:
            return

        if self.body is None:
            self.headers["Content-Length"] = "0"
        else:
            self.headers["Content-Length"] = str(len(self.body_bytes()))

    def body_bytes(self) -> bytes:
        """Encode the body the same way it is sent on the wire."""
        if self.body is None:
            return b""
        if isinstance(self.body, bytes):
            return self.body
        if isinstance(self.body, (dict, list)):
            return json.dumps(self.body).encode("utf-8")
        return str(self.body).encode("utf-8")
