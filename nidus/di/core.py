"""
Core DI types and protocols.

Defines the fundamental contracts for the DI system and the container
that stores token bindings.
"""

import difflib
import inspect
import logging
from dataclasses import dataclass
from typing import (
    Any,
    Dict,
    Iterator,
    List,
    Optional,
    Protocol,
    Tuple,
    TypeVar,
    Union,
    runtime_checkable,
)

from .errors import DependencyCycleError, UnresolvedTokenError


logger = logging.getLogger("nidus.di")

T = TypeVar("T")

Token = Union[str, type]


def token_to_key(token: Token) -> str:
    """Class tokens are keyed by their declared name, strings pass through."""
    if isinstance(token, str):
        return token
    if inspect.isclass(token):
        return token.__name__
    return str(token)


@dataclass(frozen=True)
class ProviderMeta:
    """Compact provider metadata used for diagnostics."""
    name: str
    token: str
    kind: str  # "class" or "value"
    module: str = ""
    injectable: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "token": self.token,
            "kind": self.kind,
            "module": self.module,
            "injectable": self.injectable,
        }


class ResolveCtx:
    """
    Context for one resolution operation.

    Tracks the resolution stack for cycle detection and diagnostics.
    """
    __slots__ = ("container", "stack")

    def __init__(self, container: "Container", stack: Optional[List[str]] = None):
        self.container = container
        self.stack: List[str] = stack if stack is not None else []

    def push(self, token: str) -> None:
        if token in self.stack:
            raise DependencyCycleError(self.stack[self.stack.index(token):] + [token])
        self.stack.append(token)

    def pop(self) -> None:
        self.stack.pop()

    def requested_by(self) -> Optional[str]:
        return self.stack[-1] if self.stack else None

    def with_container(self, container: "Container") -> "ResolveCtx":
        """Same stack, different container (dependencies resolve where the binding lives)."""
        return ResolveCtx(container, self.stack)


@runtime_checkable
class Provider(Protocol):
    """
    Provider protocol - how to produce the object bound to a token.
    """

    @property
    def token(self) -> str:
        ...

    @property
    def meta(self) -> ProviderMeta:
        ...

    async def instantiate(self, ctx: ResolveCtx) -> Any:
        ...


class Container:
    """
    DI container - token bindings, cached singletons and a parent link.

    Lookups walk the parent chain, so a child container sees every token
    bound by its ancestors without copying them. Singletons are cached in
    the container that owns the binding.
    """

    __slots__ = ("_providers", "_cache", "_parent", "name")

    def __init__(self, parent: Optional["Container"] = None, name: str = "root"):
        self._providers: Dict[str, Provider] = {}
        self._cache: Dict[str, Any] = {}
        self._parent = parent
        self.name = name

    @property
    def parent(self) -> Optional["Container"]:
        return self._parent

    def create_child(self, name: str) -> "Container":
        return Container(parent=self, name=name)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, provider: Provider) -> None:
        """
        Bind ``provider.token`` in this container.

        Re-registering a token replaces the previous binding and drops any
        cached instance of it (last registration wins).
        """
        key = provider.token
        if key in self._providers:
            logger.debug(
                "Overriding provider for token=%s in %s (%s -> %s)",
                key, self.name, self._providers[key].meta.name, provider.meta.name,
            )
        self._providers[key] = provider
        self._cache.pop(key, None)

        # Value providers are stored eagerly
        if provider.meta.kind == "value":
            self._cache[key] = provider.value  # type: ignore[attr-defined]

    def register_singleton(self, token: Token, cls: type) -> None:
        from .providers import ClassProvider
        self.register(ClassProvider(cls, key=token_to_key(token)))

    def register_instance(self, token: Token, value: Any) -> None:
        from .providers import ValueProvider
        self.register(ValueProvider(token_to_key(token), value))

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def lookup(self, token: Token) -> Optional[Tuple[Provider, "Container"]]:
        """Find the binding for ``token`` and the container that owns it."""
        key = token_to_key(token)
        container: Optional[Container] = self
        while container is not None:
            provider = container._providers.get(key)
            if provider is not None:
                return provider, container
            container = container._parent
        return None

    def is_registered(self, token: Token, *, local: bool = False) -> bool:
        if local:
            return token_to_key(token) in self._providers
        return self.lookup(token) is not None

    def tokens(self) -> List[str]:
        """Every visible token, nearest container first."""
        seen: List[str] = []
        for container in self._chain():
            for key in container._providers:
                if key not in seen:
                    seen.append(key)
        return seen

    def providers(self) -> List[Provider]:
        """Providers bound locally, in registration order."""
        return list(self._providers.values())

    def _chain(self) -> Iterator["Container"]:
        container: Optional[Container] = self
        while container is not None:
            yield container
            container = container._parent

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    async def resolve(self, token: Token, *, ctx: Optional[ResolveCtx] = None) -> Any:
        """
        Resolve a token (or class) to an instance.

        - Bound tokens resolve through their provider; class bindings are
          singletons cached in the owning container.
        - An unbound class is constructed transiently, with its
          dependencies resolved from this container. So is a class whose
          name is bound to an unrelated class or value.
        - An unbound string token raises ``UnresolvedTokenError``.
        """
        key = token_to_key(token)
        ctx = ctx or ResolveCtx(self)

        found = self.lookup(key)
        if found is not None and inspect.isclass(token) and not _binds_class(found[0], token):
            # Same name, different binding: build the class itself, tracked under its full name
            logger.debug("Token %s is bound to %s, building %r transiently", key, found[0].meta.name, token)
            found = None
            key = f"{token.__module__}.{token.__qualname__}"
        if found is None:
            if inspect.isclass(token):
                from .providers import ClassProvider
                ctx.push(key)
                try:
                    return await ClassProvider(token).instantiate(ctx.with_container(self))
                finally:
                    ctx.pop()
            raise UnresolvedTokenError(
                key,
                candidates=difflib.get_close_matches(key, self.tokens(), n=3),
                requested_by=ctx.requested_by(),
                registry=self.name,
            )

        provider, owner = found
        if key in owner._cache:
            return owner._cache[key]

        ctx.push(key)
        try:
            instance = await provider.instantiate(ctx.with_container(owner))
        finally:
            ctx.pop()

        owner._cache[key] = instance
        logger.debug("Instantiated %s for token=%s in %s", provider.meta.name, key, owner.name)
        return instance


def _binds_class(provider: Provider, cls: type) -> bool:
    """Whether resolving ``cls`` may use ``provider``'s binding."""
    if provider.meta.kind == "value":
        return isinstance(provider.value, cls)  # type: ignore[attr-defined]
    bound = getattr(provider, "cls", None)
    return inspect.isclass(bound) and issubclass(bound, cls)
