"""
Dependency registry - the module-facing side of the container.

Normalizes provider declarations and forwards them to the container's
``register_singleton`` / ``register_instance``. One registry exists per
bootstrapped module; a child registry sees its ancestors' tokens through
the container parent chain.
"""

import logging
from typing import Any, Iterable, List, Optional

from .core import Container, Token
from .providers import ClassProvider, ProviderDecl, normalize_provider


logger = logging.getLogger("nidus.di")


class DependencyRegistry:
    """
    Single-owner registry passed through the bootstrap orchestrator.

    Example:
        registry = DependencyRegistry()
        registry.register(UserService)
        registry.register({"key": "MemoryDb", "useValue": MemoryDb()})
        service = await registry.resolve("UserService")
    """

    def __init__(self, name: str = "root", parent: Optional["DependencyRegistry"] = None):
        self.name = name
        self.parent = parent
        self.container = Container(
            parent=parent.container if parent is not None else None,
            name=name,
        )

    def child(self, name: str) -> "DependencyRegistry":
        return DependencyRegistry(name=name, parent=self)

    def register(self, provider: Any) -> ProviderDecl:
        """Register one provider of any accepted shape; returns the normalized form."""
        decl = normalize_provider(provider)
        if isinstance(decl, ClassProvider):
            self.container.register_singleton(decl.token, decl.cls)
            logger.debug("Registered singleton %s as %r in %s", decl.cls.__name__, decl.token, self.name)
        else:
            self.container.register_instance(decl.token, decl.value)
            logger.debug("Registered value for %r in %s", decl.token, self.name)
        return decl

    def register_all(self, providers: Iterable[Any]) -> List[ProviderDecl]:
        return [self.register(provider) for provider in providers]

    async def resolve(self, token: Token) -> Any:
        return await self.container.resolve(token)

    def is_registered(self, token: Token, *, local: bool = False) -> bool:
        return self.container.is_registered(token, local=local)

    def tokens(self) -> List[str]:
        return self.container.tokens()

    def __repr__(self) -> str:
        return f"DependencyRegistry(name={self.name!r}, tokens={len(self.container.providers())})"
