"""
User service.
"""

from typing import Annotated, Any, Dict, List, Optional

from nidus import EventManager, Inject, Injectable

from .repo import UserRepoMemory


@Injectable()
class UserService:
    """Creates and looks up users; publishes ``user.created``."""

    def __init__(
        self,
        repo: Annotated[UserRepoMemory, Inject("UserRepo")],
        events: Annotated[EventManager, Inject("EventManager", optional=True)] = None,
    ):
        self.repo = repo
        self.events = events

    async def list_users(self) -> List[Dict[str, Any]]:
        return await self.repo.list_all()

    async def create_user(self, data: Dict[str, Any]) -> Dict[str, Any]:
        existing = await self.repo.list_all()
        next_id = max((user["id"] for user in existing), default=0) + 1
        user = await self.repo.create({**data, "id": next_id})
        if self.events is not None:
            await self.events.emit("user.created", user)
        return user

    async def get_user(self, user_id: int) -> Optional[Dict[str, Any]]:
        return await self.repo.find_by_id(user_id)

    async def update_user(self, user_id: int, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return await self.repo.update(user_id, data)
