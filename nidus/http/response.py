"""
HttpResponse - chainable façade over the transport response.

Two layers of API:

- primitives: ``status(code)``, ``json(body)``, ``send(body)``,
  ``set_headers(mapping)``, ``header(name, value)``, ``end()``
- one named helper per well-known status code, which sets the status
  and, when given a payload, serializes it as JSON

Every method returns the same wrapper. Helpers for statuses that carry
no body (``no_content``, ``reset_content``, ``not_modified``) take no
payload; every helper finishes the response, with an empty body when
no payload is given.

Example:
    ctx.res.created({"id": 2, "name": "Ann"})
    ctx.res.status(202).json({"queued": True})
    ctx.res.no_content()
"""

from typing import Any, Mapping, Optional

from ..transport.response import Response


class HttpResponse:
    """Façade over a native ``Response``; never alters a response already sent."""

    __slots__ = ("raw",)

    def __init__(self, raw: Response):
        self.raw = raw

    # ========================================================================
    # Primitives
    # ========================================================================

    @property
    def status_code(self) -> int:
        return self.raw.status_code

    @property
    def finished(self) -> bool:
        return self.raw.finished

    @property
    def sent(self) -> bool:
        return self.raw.sent

    def status(self, code: int) -> "HttpResponse":
        self.raw.status(code)
        return self

    def json(self, body: Any) -> "HttpResponse":
        self.raw.json(body)
        return self

    def send(self, body: Any = None) -> "HttpResponse":
        self.raw.send(body)
        return self

    def end(self) -> "HttpResponse":
        self.raw.end()
        return self

    def header(self, name: str, value: Any) -> "HttpResponse":
        self.raw.set_header(name, value)
        return self

    def set_headers(self, headers: Mapping[str, Any]) -> "HttpResponse":
        for name, value in headers.items():
            self.raw.set_header(name, value)
        return self

    def get_header(self, name: str) -> Optional[str]:
        return self.raw.get_header(name)

    def _reply(self, code: int, data: Any = None) -> "HttpResponse":
        self.raw.status(code)
        if data is None:
            self.raw.end()
        else:
            self.raw.json(data)
        return self

    def _empty(self, code: int) -> "HttpResponse":
        self.raw.status(code)
        self.raw.end()
        return self

    # ========================================================================
    # Informational (1xx)
    # ========================================================================

    def continue_(self, data: Any = None) -> "HttpResponse":
        return self._reply(100, data)

    def switching_protocols(self, data: Any = None) -> "HttpResponse":
        return self._reply(101, data)

    def processing(self, data: Any = None) -> "HttpResponse":
        return self._reply(102, data)

    def early_hints(self, data: Any = None) -> "HttpResponse":
        return self._reply(103, data)

    # ========================================================================
    # Success (2xx)
    # ========================================================================

    def ok(self, data: Any = None) -> "HttpResponse":
        return self._reply(200, data)

    def created(self, data: Any = None) -> "HttpResponse":
        return self._reply(201, data)

    def accepted(self, data: Any = None) -> "HttpResponse":
        return self._reply(202, data)

    def non_authoritative_information(self, data: Any = None) -> "HttpResponse":
        return self._reply(203, data)

    def no_content(self) -> "HttpResponse":
        return self._empty(204)

    def reset_content(self) -> "HttpResponse":
        return self._empty(205)

    def partial_content(self, data: Any = None) -> "HttpResponse":
        return self._reply(206, data)

    # ========================================================================
    # Redirection (3xx)
    # ========================================================================

    def multiple_choices(self, data: Any = None) -> "HttpResponse":
        return self._reply(300, data)

    def moved_permanently(self, data: Any = None) -> "HttpResponse":
        return self._reply(301, data)

    def found(self, data: Any = None) -> "HttpResponse":
        return self._reply(302, data)

    def see_other(self, data: Any = None) -> "HttpResponse":
        return self._reply(303, data)

    def not_modified(self) -> "HttpResponse":
        return self._empty(304)

    def temporary_redirect(self, data: Any = None) -> "HttpResponse":
        return self._reply(307, data)

    def permanent_redirect(self, data: Any = None) -> "HttpResponse":
        return self._reply(308, data)

    # ========================================================================
    # Client errors (4xx)
    # ========================================================================

    def bad_request(self, data: Any = None) -> "HttpResponse":
        return self._reply(400, data)

    def unauthorized(self, data: Any = None) -> "HttpResponse":
        return self._reply(401, data)

    def payment_required(self, data: Any = None) -> "HttpResponse":
        return self._reply(402, data)

    def forbidden(self, data: Any = None) -> "HttpResponse":
        return self._reply(403, data)

    def not_found(self, data: Any = None) -> "HttpResponse":
        return self._reply(404, data)

    def method_not_allowed(self, data: Any = None) -> "HttpResponse":
        return self._reply(405, data)

    def not_acceptable(self, data: Any = None) -> "HttpResponse":
        return self._reply(406, data)

    def request_timeout(self, data: Any = None) -> "HttpResponse":
        return self._reply(408, data)

    def conflict(self, data: Any = None) -> "HttpResponse":
        return self._reply(409, data)

    def gone(self, data: Any = None) -> "HttpResponse":
        return self._reply(410, data)

    def unprocessable_entity(self, data: Any = None) -> "HttpResponse":
        return self._reply(422, data)

    def too_many_requests(self, data: Any = None) -> "HttpResponse":
        return self._reply(429, data)

    # ========================================================================
    # Server errors (5xx)
    # ========================================================================

    def internal_server_error(self, data: Any = None) -> "HttpResponse":
        return self._reply(500, data)

    def not_implemented(self, data: Any = None) -> "HttpResponse":
        return self._reply(501, data)

    def bad_gateway(self, data: Any = None) -> "HttpResponse":
        return self._reply(502, data)

    def service_unavailable(self, data: Any = None) -> "HttpResponse":
        return self._reply(503, data)

    def gateway_timeout(self, data: Any = None) -> "HttpResponse":
        return self._reply(504, data)

    def __repr__(self) -> str:
        return f"<HttpResponse {self.raw.status_code}>"
