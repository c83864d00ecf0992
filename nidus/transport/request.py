"""
Request - ASGI request wrapper handed to transport handlers.

Express-shaped: plain attributes (``method``, ``path``, ``query``,
``params``, ``body``) that middleware may read and enrich. Free
attributes are allowed; ``state`` is the conventional bag for
per-request data shared between handlers.
"""

from __future__ import annotations

from http.cookies import SimpleCookie
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Union
from urllib.parse import parse_qsl, unquote

from ..faults import HttpError


class Request:
    """
    Native request object.

    Attributes:
        scope: ASGI scope
        method: Upper-case HTTP method
        path: Decoded request path
        query: Query parameters (repeated keys collapse into lists)
        params: Path parameters of the layer currently executing
        body: Parsed body (set by body-parsing middleware, ``{}`` otherwise)
        state: Per-request bag shared across handlers
    """

    def __init__(self, scope: Mapping[str, Any], receive: Callable[[], Awaitable[dict]]):
        self.scope = scope
        self._receive = receive

        self.method: str = scope.get("method", "GET").upper()
        self.path: str = unquote(scope.get("path", "/")) or "/"
        self.query_string: str = scope.get("query_string", b"").decode("latin-1")
        self.query: Dict[str, Union[str, List[str]]] = _parse_query(self.query_string)
        self.params: Dict[str, str] = {}
        self.body: Any = {}
        self.state: Dict[str, Any] = {}

        self._headers: Optional[Dict[str, str]] = None
        self._cookies: Optional[Dict[str, str]] = None
        self._raw_body: Optional[bytes] = None

    # ========================================================================
    # Basic Properties
    # ========================================================================

    @property
    def url(self) -> str:
        """Path plus query string, as the client sent it."""
        if self.query_string:
            return f"{self.path}?{self.query_string}"
        return self.path

    @property
    def headers(self) -> Dict[str, str]:
        """Lower-cased header names; repeated headers are comma-joined."""
        if self._headers is None:
            headers: Dict[str, str] = {}
            for raw_name, raw_value in self.scope.get("headers", []):
                name = raw_name.decode("latin-1").lower()
                value = raw_value.decode("latin-1")
                headers[name] = f"{headers[name]}, {value}" if name in headers else value
            self._headers = headers
        return self._headers

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.headers.get(name.lower(), default)

    @property
    def cookies(self) -> Dict[str, str]:
        if self._cookies is None:
            cookie = SimpleCookie()
            raw = self.header("cookie")
            if raw:
                cookie.load(raw)
            self._cookies = {key: morsel.value for key, morsel in cookie.items()}
        return self._cookies

    @property
    def ip(self) -> Optional[str]:
        client = self.scope.get("client")
        return client[0] if client else None

    @property
    def content_type(self) -> Optional[str]:
        return self.header("content-type")

    @property
    def is_json(self) -> bool:
        content_type = (self.content_type or "").split(";")[0].strip().lower()
        return content_type == "application/json" or content_type.endswith("+json")

    # ========================================================================
    # Body
    # ========================================================================

    @property
    def raw_body(self) -> Optional[bytes]:
        """Body bytes, once ``read()`` has consumed them."""
        return self._raw_body

    async def read(self, limit: Optional[int] = None) -> bytes:
        """
        Read and cache the full request body.

        Raises:
            HttpError(413): body larger than ``limit`` bytes
        """
        if self._raw_body is not None:
            return self._raw_body

        declared = self.header("content-length")
        if limit is not None and declared and declared.isdigit() and int(declared) > limit:
            raise HttpError(413, "Request entity too large", limit=limit)

        chunks: List[bytes] = []
        size = 0
        while True:
            message = await self._receive()
            if message["type"] == "http.disconnect":
                break
            chunk = message.get("body", b"")
            if chunk:
                size += len(chunk)
                if limit is not None and size > limit:
                    raise HttpError(413, "Request entity too large", limit=limit)
                chunks.append(chunk)
            if not message.get("more_body", False):
                break

        self._raw_body = b"".join(chunks)
        return self._raw_body

    def __repr__(self) -> str:
        return f"<Request {self.method} {self.url}>"


def _parse_query(query_string: str) -> Dict[str, Union[str, List[str]]]:
    query: Dict[str, Union[str, List[str]]] = {}
    for key, value in parse_qsl(query_string, keep_blank_values=True):
        if key not in query:
            query[key] = value
        elif isinstance(query[key], list):
            query[key].append(value)
        else:
            query[key] = [query[key], value]
    return query
