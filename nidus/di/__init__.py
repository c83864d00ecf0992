"""
Nidus DI - token-based dependency injection.

Features:
- Class, value and smart providers, normalized at declaration time
- Constructor injection through ``Annotated[T, Inject("Token")]``
- Parent-chained containers (one registry per module, ancestor lookup)
- Lazy singletons, eager values, cycle detection

Example:
    ```python
    from typing import Annotated
    from nidus.di import DependencyRegistry, Inject, Injectable

    @Injectable()
    class UserService:
        def __init__(self, repo: Annotated[UserRepo, Inject("UserRepo")]):
            self.repo = repo

    registry = DependencyRegistry()
    registry.register({"key": "UserRepo", "provide": UserRepoMemory})
    registry.register(UserService)
    service = await registry.resolve("UserService")
    ```
"""

from .core import Container, Provider, ProviderMeta, ResolveCtx, token_to_key
from .decorators import Inject, Injectable, inject, is_injectable
from .errors import DIError, DependencyCycleError, InvalidProviderError, UnresolvedTokenError
from .providers import ClassProvider, ProviderDecl, ValueProvider, normalize_provider, provide
from .registry import DependencyRegistry

__all__ = [
    "Container",
    "Provider",
    "ProviderMeta",
    "ResolveCtx",
    "token_to_key",
    "Inject",
    "Injectable",
    "inject",
    "is_injectable",
    "DIError",
    "DependencyCycleError",
    "InvalidProviderError",
    "UnresolvedTokenError",
    "ClassProvider",
    "ProviderDecl",
    "ValueProvider",
    "normalize_provider",
    "provide",
    "DependencyRegistry",
]
