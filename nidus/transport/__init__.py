"""
Nidus Transport - the HTTP layer modules mount onto.

An express-shaped ASGI application: ordered middleware, route and error
layers; ``(req, res, next)`` handlers; served by uvicorn.
"""

from .application import Application, Layer, Next
from .body import DEFAULT_JSON_LIMIT, json_body
from .request import Request
from .response import Response
from .routing import PathPattern, compile_path

__all__ = [
    "Application",
    "Layer",
    "Next",
    "DEFAULT_JSON_LIMIT",
    "json_body",
    "Request",
    "Response",
    "PathPattern",
    "compile_path",
]
