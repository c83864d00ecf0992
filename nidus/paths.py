"""
Path composition for module, controller and item mount points.
"""

from typing import Optional


def normalize_path(path: Optional[str]) -> str:
    """
    Normalize a mount path.

    Collapses repeated separators, drops empty segments and trailing
    slashes, and always returns a leading ``/``. ``None``, ``""`` and
    ``"/"`` all normalize to ``"/"``.

    Example:
        >>> normalize_path("//api//users/")
        '/api/users'
    """
    if not path:
        return "/"
    segments = [segment for segment in path.split("/") if segment]
    return "/" + "/".join(segments)


def join_paths(*parts: Optional[str]) -> str:
    """
    Join path segments into one normalized mount path.

    Associative under normalization:
    ``join_paths(a, b, c) == join_paths(join_paths(a, b), c)``.

    Example:
        >>> join_paths("/api", "/", "users/", "/:id")
        '/api/users/:id'
    """
    segments = []
    for part in parts:
        if part:
            segments.extend(segment for segment in part.split("/") if segment)
    return "/" + "/".join(segments)
