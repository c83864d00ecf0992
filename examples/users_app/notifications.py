"""
Event wiring: listeners declared on a controller, plus a manual trigger.
"""

import logging
from typing import Annotated, Any, Dict, List

from nidus import Controller, EventListener, EventManager, HttpContext, HttpGet, HttpPost, Inject


logger = logging.getLogger("users_app")


@Controller("/notifications")
class NotificationController:
    def __init__(self, events: Annotated[EventManager, Inject("EventManager")]):
        self.events = events
        self.outbox: List[Dict[str, Any]] = []

    @EventListener("user.created")
    async def on_user_created(self, user: Dict[str, Any]):
        logger.info("Sending welcome message to user %s", user.get("id"))
        self.outbox.append({"type": "welcome", "user_id": user.get("id")})

    @EventListener("notification.sent")
    def on_notification(self, payload: Any):
        self.outbox.append({"type": "manual", "payload": payload})

    @HttpGet("/")
    async def list_notifications(self, ctx: HttpContext):
        return self.outbox

    @HttpPost("/send")
    async def send_notification(self, ctx: HttpContext):
        await self.events.emit("notification.sent", ctx.req.body)
        ctx.res.accepted({"message": "Notification sent"})
