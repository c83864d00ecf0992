"""
Cross-cutting controllers of the main module.
"""

import logging

from nidus import ErrorHandlerMiddleware, Fault, HttpContext, HttpError, HttpGet, Middleware


logger = logging.getLogger("users_app")


@Middleware()
class LogMiddleware:
    """``log`` runs for every request under the main module; ``test`` is a route."""

    async def log(self, ctx: HttpContext):
        logger.info("[LOG] %s %s", ctx.req.method, ctx.req.path)
        ctx.req.state["logged"] = True
        ctx.next()

    @HttpGet("/test")
    async def test(self, ctx: HttpContext):
        ctx.res.json({"message": "test", "logged": ctx.req.state.get("logged", False)})


@ErrorHandlerMiddleware()
class ApiErrors:
    def handle(self, ctx: HttpContext):
        err = ctx.err
        if isinstance(err, HttpError):
            ctx.res.status(err.status).json({"error": err.message, "code": err.code})
            return
        logger.error("Unhandled error on %s %s", ctx.req.method, ctx.req.path, exc_info=err)
        code = err.code if isinstance(err, Fault) else "INTERNAL_ERROR"
        ctx.res.internal_server_error({"error": "Something went wrong", "code": code})
