"""
Response - buffered ASGI response handed to transport handlers.

Handlers finish a response with ``send`` / ``json`` / ``end``; the
application writes it to the wire as soon as the current layer returns.
Once written, the response is frozen: later writes are logged and
ignored.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple


logger = logging.getLogger("nidus.transport")


def _json_default_serializer(o):
    """Default JSON serializer for non-standard types."""
    if isinstance(o, (set, tuple)):
        return list(o)
    if hasattr(o, "isoformat"):
        return o.isoformat()
    if hasattr(o, "to_dict"):
        return o.to_dict()
    return str(o)


def dumps(obj: Any) -> bytes:
    return json.dumps(obj, default=_json_default_serializer, separators=(",", ":")).encode("utf-8")


class Response:
    """
    Native response object.

    Example:
        res.status(201).json({"id": 1})
        res.set_header("X-Trace", "abc").send("ok")
    """

    def __init__(self, *, head_only: bool = False):
        self.status_code: int = 200
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""
        self.head_only = head_only
        self.finished = False
        self.sent = False

    # ========================================================================
    # Status & Headers
    # ========================================================================

    @property
    def headers(self) -> Dict[str, str]:
        return dict(self._headers)

    def status(self, code: int) -> "Response":
        if self._guard("status"):
            self.status_code = int(code)
        return self

    def set_header(self, name: str, value: Any) -> "Response":
        if self._guard("set_header"):
            self._headers[name.lower()] = str(value)
        return self

    def get_header(self, name: str) -> Optional[str]:
        return self._headers.get(name.lower())

    # ========================================================================
    # Body
    # ========================================================================

    def send(self, body: Any = None) -> "Response":
        """
        Finish with ``body``.

        ``bytes`` go out as-is, ``str`` as text, anything else as JSON.
        """
        if body is None:
            return self.end()
        if isinstance(body, (bytes, bytearray)):
            self._headers.setdefault("content-type", "application/octet-stream")
            return self._finish(bytes(body))
        if isinstance(body, str):
            self._headers.setdefault("content-type", "text/html; charset=utf-8")
            return self._finish(body.encode("utf-8"))
        return self.json(body)

    def json(self, body: Any) -> "Response":
        if not self._guard("json"):
            return self
        self._headers["content-type"] = "application/json; charset=utf-8"
        return self._finish(dumps(body))

    def end(self, body: Optional[bytes] = None) -> "Response":
        """Finish, optionally with raw bytes."""
        return self._finish(body or b"")

    @property
    def body(self) -> bytes:
        return self._body

    def _finish(self, body: bytes) -> "Response":
        if self._guard("write"):
            self._body = body
            self.finished = True
        return self

    def _guard(self, operation: str) -> bool:
        if self.sent:
            logger.warning("Response already sent; ignoring %s()", operation)
            return False
        return True

    # ========================================================================
    # ASGI
    # ========================================================================

    def _prepare_headers(self) -> List[Tuple[bytes, bytes]]:
        headers = dict(self._headers)
        if self.status_code not in (204, 304) and not 100 <= self.status_code < 200:
            headers["content-length"] = str(len(self._body))
        else:
            headers.pop("content-length", None)
        return [(name.encode("latin-1"), value.encode("latin-1")) for name, value in headers.items()]

    async def send_asgi(self, send: Callable[[dict], Awaitable[None]]) -> None:
        """Write the buffered response once; further calls are no-ops."""
        if self.sent:
            return
        self.sent = True
        body = self._body
        if self.head_only or self.status_code in (204, 304):
            body = b""
        await send({
            "type": "http.response.start",
            "status": self.status_code,
            "headers": self._prepare_headers(),
        })
        await send({"type": "http.response.body", "body": body, "more_body": False})

    def __repr__(self) -> str:
        return f"<Response {self.status_code} finished={self.finished} sent={self.sent}>"

