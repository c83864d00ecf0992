"""
Main module of the users example.
"""

from typing import Optional

from nidus import AppModule, ConfigLoader

from .company.module import create_company_module
from .middleware import ApiErrors, LogMiddleware
from .notifications import NotificationController
from .user.module import UserModule
from .user.repo import MemoryDb, UserRepoMemory
from .user.service import UserService


def create_main_module(config: Optional[ConfigLoader] = None) -> AppModule:
    return AppModule(
        path="/api",
        providers=[
            {"key": "UserService", "provide": UserService},
            {"key": "UserRepo", "provide": UserRepoMemory},
            {"key": "MemoryDb", "provide": MemoryDb},
        ],
        controllers=[LogMiddleware, NotificationController, ApiErrors],
        imports=[UserModule, create_company_module()],
        config=config,
    )


if __name__ == "__main__":
    create_main_module(ConfigLoader.load(env_file=".env")).run()
