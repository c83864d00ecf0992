"""
JSON body parsing middleware.
"""

import json
import logging
from typing import Any, Callable

from ..faults import HttpError


logger = logging.getLogger("nidus.transport")

DEFAULT_JSON_LIMIT = 100 * 1024

_BODYLESS_METHODS = frozenset({"GET", "HEAD", "OPTIONS", "DELETE"})


def json_body(limit: int = DEFAULT_JSON_LIMIT) -> Callable[..., Any]:
    """
    Parse ``application/json`` request bodies into ``req.body``.

    Requests without a JSON body keep ``req.body == {}``. Malformed JSON
    is forwarded as ``HttpError(400)``, bodies above ``limit`` bytes as
    ``HttpError(413)``.

    Example:
        app.use(json_body(limit=1024 * 1024))
    """
    async def parse_json_body(req, res, next):
        if req.method in _BODYLESS_METHODS and not req.header("content-length"):
            return next()
        if not req.is_json:
            return next()

        try:
            raw = await req.read(limit)
        except HttpError as exc:
            return next(exc)

        if not raw.strip():
            req.body = {}
            return next()

        try:
            req.body = json.loads(raw)
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.debug("Rejected malformed JSON body on %s %s: %s", req.method, req.path, exc)
            return next(HttpError(400, "Invalid JSON body", code="INVALID_JSON"))
        return next()

    return parse_json_body
