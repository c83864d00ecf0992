"""
Decorators and injection helpers for ergonomic DI usage.
"""

from dataclasses import dataclass
from typing import Callable, Optional, Type, TypeVar

from ..metadata import DI_INJECTABLE, define_metadata, get_own_metadata


T = TypeVar("T")


@dataclass(frozen=True)
class Inject:
    """
    Injection metadata marker.

    Usage:
        def __init__(self, users: Annotated[UserService, Inject("UserService")]):
            ...
    """

    token: Optional[str] = None
    optional: bool = False


def inject(token: Optional[str] = None, *, optional: bool = False) -> Inject:
    """
    Create injection metadata.

    Args:
        token: Registry token (inferred from the type hint if None)
        optional: If True, keep the parameter default when the token is missing

    Example:
        def __init__(
            self,
            repo: Annotated[UserRepo, inject("UserRepo")],
            cache: Annotated[Cache, inject(optional=True)] = None,
        ):
            ...
    """
    return Inject(token=token, optional=optional)


def Injectable() -> Callable[[Type[T]], Type[T]]:
    """
    Mark a class as an injectable service.

    The registry constructs any class it is asked for, so the marker is
    informational; ``is_injectable`` reads it back.

    Example:
        @Injectable()
        class UserService:
            def __init__(self, repo: Annotated[UserRepo, Inject("UserRepo")]):
                self.repo = repo
    """
    def decorator(cls: Type[T]) -> Type[T]:
        define_metadata(DI_INJECTABLE, True, cls)
        return cls

    return decorator


def is_injectable(cls: type) -> bool:
    return bool(get_own_metadata(DI_INJECTABLE, cls, False))
