"""
Provider implementations and provider-declaration normalization.

Modules declare providers in three shapes:

- a bare class                          -> ClassProvider under ``cls.__name__``
- ``{"key": k, "useValue": v}``         -> ValueProvider under ``k``
- ``{"key": k, "provide": p}``          -> ClassProvider if ``p`` is a class,
                                           ValueProvider otherwise

``normalize_provider`` turns every shape into ``ClassProvider | ValueProvider``
once, when the module is declared.
"""

import inspect
from typing import Annotated, Any, Dict, Mapping, Optional, Type, Union, get_args, get_origin

from .core import ProviderMeta, ResolveCtx
from .decorators import Inject, is_injectable
from .errors import DIError, InvalidProviderError


class ClassProvider:
    """
    Provider that instantiates a class by resolving constructor dependencies.

    Dependencies are read from ``__init__`` annotations the first time the
    provider instantiates, so forward references and missing tokens only
    fail when the class is actually needed. Supports async initialization
    via the ``async_init()`` convention.
    """

    __slots__ = ("_meta", "_cls", "_dependencies")

    def __init__(self, cls: type, key: Optional[str] = None):
        if not inspect.isclass(cls):
            raise InvalidProviderError(cls, "class provider expects a class")
        self._cls = cls
        self._dependencies: Optional[Dict[str, Dict[str, Any]]] = None
        self._meta = ProviderMeta(
            name=cls.__name__,
            token=key or cls.__name__,
            kind="class",
            module=cls.__module__,
            injectable=is_injectable(cls),
        )

    @property
    def cls(self) -> type:
        return self._cls

    @property
    def token(self) -> str:
        return self._meta.token

    @property
    def meta(self) -> ProviderMeta:
        return self._meta

    @property
    def dependencies(self) -> Dict[str, Dict[str, Any]]:
        if self._dependencies is None:
            self._dependencies = self._extract_dependencies(self._cls)
        return self._dependencies

    async def instantiate(self, ctx: ResolveCtx) -> Any:
        """Instantiate class by resolving dependencies."""
        resolved_deps = {}
        for dep_name, dep_info in self.dependencies.items():
            if dep_info["optional"] and not ctx.container.is_registered(dep_info["token"]):
                continue
            resolved_deps[dep_name] = await ctx.container.resolve(dep_info["token"], ctx=ctx)

        instance = self._cls(**resolved_deps)

        if hasattr(instance, "async_init"):
            await instance.async_init()

        return instance

    def _extract_dependencies(self, cls: Type) -> Dict[str, Dict[str, Any]]:
        """
        Extract dependencies from __init__ signature.

        Returns:
            Dict mapping parameter names to dependency info
        """
        deps: Dict[str, Dict[str, Any]] = {}

        if cls.__init__ is object.__init__:
            return deps

        try:
            sig = inspect.signature(cls.__init__)
        except ValueError:
            return deps

        try:
            type_hints = inspect.get_annotations(cls.__init__, eval_str=True)
        except Exception:
            # Unresolvable forward references: fall back to raw annotations,
            # string annotations then act as tokens.
            type_hints = {}

        for param_name, param in sig.parameters.items():
            if param_name in ("self", "cls"):
                continue

            if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
                continue

            annotation = type_hints.get(param_name, param.annotation)
            has_default = param.default is not inspect.Parameter.empty

            if annotation is inspect.Parameter.empty:
                if has_default:
                    continue
                raise DIError(
                    f"Missing type annotation for parameter '{param_name}' "
                    f"in {cls.__qualname__}.__init__",
                    parameter=param_name,
                    provider=cls.__qualname__,
                )

            dep_info = self._parse_annotation(annotation)
            dep_info["optional"] = dep_info.get("optional", False) or has_default
            deps[param_name] = dep_info

        return deps

    def _parse_annotation(self, annotation: Any) -> Dict[str, Any]:
        """Parse type annotation for Inject metadata."""
        if get_origin(annotation) is Annotated:
            args = get_args(annotation)
            result: Dict[str, Any] = {"token": args[0]}
            for meta in args[1:]:
                if isinstance(meta, Inject):
                    if meta.token is not None:
                        result["token"] = meta.token
                    result["optional"] = meta.optional
            return result

        # Plain type annotation (or string forward reference)
        return {"token": annotation}

    def __repr__(self) -> str:
        return f"ClassProvider({self._cls.__name__}, key={self.token!r})"


class ValueProvider:
    """Provider that hands out a pre-built value unchanged."""

    __slots__ = ("_meta", "_value")

    def __init__(self, key: str, value: Any):
        if not isinstance(key, str) or not key:
            raise InvalidProviderError(value, "value provider needs a non-empty string key")
        self._value = value
        self._meta = ProviderMeta(
            name=f"{key}_value",
            token=key,
            kind="value",
            module=getattr(type(value), "__module__", ""),
        )

    @property
    def value(self) -> Any:
        return self._value

    @property
    def token(self) -> str:
        return self._meta.token

    @property
    def meta(self) -> ProviderMeta:
        return self._meta

    async def instantiate(self, ctx: ResolveCtx) -> Any:
        return self._value

    def __repr__(self) -> str:
        return f"ValueProvider(key={self.token!r}, value={self._value!r})"


ProviderDecl = Union[ClassProvider, ValueProvider]


def provide(key: str, target: Any) -> ProviderDecl:
    """
    Smart provider: a class binds as a singleton, anything else as a value.

    Example:
        providers=[
            provide("UserRepo", UserRepoMemory),
            provide("Settings", {"theme": "dark"}),
        ]
    """
    if not isinstance(key, str) or not key:
        raise InvalidProviderError(target, "smart provider needs a non-empty string key")
    if inspect.isclass(target):
        return ClassProvider(target, key=key)
    return ValueProvider(key, target)


def normalize_provider(provider: Any) -> ProviderDecl:
    """Turn any accepted provider shape into ``ClassProvider | ValueProvider``."""
    if isinstance(provider, (ClassProvider, ValueProvider)):
        return provider

    if inspect.isclass(provider):
        return ClassProvider(provider)

    if isinstance(provider, Mapping):
        if "key" not in provider:
            raise InvalidProviderError(provider, "mapping provider needs a 'key'")
        if "useValue" in provider:
            return ValueProvider(provider["key"], provider["useValue"])
        if "useClass" in provider:
            return ClassProvider(provider["useClass"], key=provider["key"])
        if "provide" in provider:
            return provide(provider["key"], provider["provide"])
        raise InvalidProviderError(provider, "expected one of 'useValue', 'useClass' or 'provide'")

    raise InvalidProviderError(provider, "expected a class, a provider object or a mapping")
