"""
User module controllers.
"""

from typing import Annotated

from nidus import Controller, HttpContext, HttpError, HttpGet, HttpPost, HttpPut, Inject

from .service import UserService


def _user_id(ctx: HttpContext) -> int:
    try:
        return int(ctx.req.params["id"])
    except ValueError:
        raise HttpError(400, "User id must be an integer") from None


@Controller()
class UserController:
    def __init__(self, users: Annotated[UserService, Inject("UserService")]):
        self.users = users

    @HttpGet("/")
    async def list_users(self, ctx: HttpContext):
        return await self.users.list_users()

    @HttpPost("/")
    async def create_user(self, ctx: HttpContext):
        if not ctx.req.body.get("name"):
            return ctx.res.bad_request({"error": "name is required"})
        return await self.users.create_user(ctx.req.body)

    @HttpGet("/:id")
    async def get_user(self, ctx: HttpContext):
        user = await self.users.get_user(_user_id(ctx))
        if user is None:
            raise HttpError(404, "User not found")
        ctx.res.ok(user)

    @HttpPut("/:id")
    async def update_user(self, ctx: HttpContext):
        user = await self.users.update_user(_user_id(ctx), ctx.req.body)
        if user is None:
            raise HttpError(404, "User not found")
        ctx.res.ok(user)


@Controller("/auth")
class AuthController:
    def __init__(self, users: Annotated[UserService, Inject("UserService")]):
        self.users = users

    @HttpPost("/login")
    async def login(self, ctx: HttpContext):
        user = await self.users.get_user(1)
        if user is None:
            return ctx.res.unauthorized({"error": "Invalid credentials"})
        ctx.res.ok({
            "message": "Login successful",
            "user": {"id": user["id"], "name": user.get("name")},
            "token": "mock-jwt-token",
        })

    @HttpPost("/register")
    async def register(self, ctx: HttpContext):
        user = await self.users.create_user(ctx.req.body)
        ctx.res.created({
            "message": "User registered successfully",
            "user": {"id": user["id"], "name": user.get("name")},
        })

    @HttpPost("/logout")
    async def logout(self, ctx: HttpContext):
        ctx.res.no_content()


@Controller("/settings")
class SettingsController:
    def __init__(self, users: Annotated[UserService, Inject("UserService")]):
        self.users = users

    @HttpGet("/")
    async def get_settings(self, ctx: HttpContext):
        user = await self.users.get_user(1)
        ctx.res.ok({
            "settings": {
                "theme": "dark",
                "language": "en",
                "notifications": True,
                "userId": user["id"] if user else None,
            },
        })

    @HttpPut("/theme")
    async def update_theme(self, ctx: HttpContext):
        ctx.res.ok({"theme": ctx.req.body.get("theme") or "dark"})

    @HttpPut("/notifications")
    async def update_notifications(self, ctx: HttpContext):
        ctx.res.ok({"notifications": ctx.req.body.get("enabled") is not False})
