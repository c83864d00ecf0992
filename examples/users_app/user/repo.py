"""
In-memory user storage.
"""

from typing import Annotated, Any, Dict, List, Optional

from nidus import Inject, Injectable


class MemoryDb:
    """Shared in-process tables."""

    def __init__(self):
        self.users: List[Dict[str, Any]] = []


@Injectable()
class UserRepoMemory:
    def __init__(self, db: Annotated[MemoryDb, Inject("MemoryDb")]):
        self.db = db

    async def create(self, user: Dict[str, Any]) -> Dict[str, Any]:
        self.db.users.append(user)
        return user

    async def list_all(self) -> List[Dict[str, Any]]:
        return list(self.db.users)

    async def find_by_id(self, user_id: int) -> Optional[Dict[str, Any]]:
        return next((user for user in self.db.users if user["id"] == user_id), None)

    async def update(self, user_id: int, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        for index, user in enumerate(self.db.users):
            if user["id"] == user_id:
                self.db.users[index] = {**user, **data, "id": user_id}
                return self.db.users[index]
        return None
