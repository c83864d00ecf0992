"""
Path patterns for transport layers.

Supported segments:
- static text              ``/users``
- named parameters         ``/:id`` or ``/{id}``
- trailing wildcard        ``/*`` (captured as ``params["*"]``)

Routes match the whole path (an optional trailing slash is tolerated);
middleware matches the path and everything below it.
"""

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Pattern

from ..paths import normalize_path


_PARAM = re.compile(r"^(?::(?P<colon>[A-Za-z_][A-Za-z0-9_]*)|\{(?P<brace>[A-Za-z_][A-Za-z0-9_]*)\})$")


@dataclass(frozen=True)
class PathPattern:
    """Compiled path pattern."""
    path: str
    regex: Pattern[str]
    param_names: List[str]
    prefix: bool

    def match(self, path: str) -> Optional[Dict[str, str]]:
        """Return the captured parameters, or None when ``path`` does not match."""
        m = self.regex.match(path)
        if m is None:
            return None
        params: Dict[str, str] = {}
        for name in self.param_names:
            value = m.group(_group_name(name))
            if value is not None:
                params[name] = value
        return params


def _group_name(name: str) -> str:
    return "wildcard" if name == "*" else f"p_{name}"


def compile_path(path: str, *, prefix: bool = False) -> PathPattern:
    """
    Compile a mount path.

    Args:
        path: Path with optional ``:name`` / ``{name}`` / ``*`` segments
        prefix: Match ``path`` and anything below it (middleware layers)
    """
    normalized = normalize_path(path)
    names: List[str] = []
    parts: List[str] = []

    for segment in normalized.split("/")[1:]:
        if not segment:
            continue
        if segment == "*":
            names.append("*")
            parts.append(r"(?:/(?P<wildcard>.*))?")
            continue
        m = _PARAM.match(segment)
        if m:
            name = m.group("colon") or m.group("brace")
            names.append(name)
            parts.append(rf"/(?P<{_group_name(name)}>[^/]+)")
        else:
            parts.append("/" + re.escape(segment))

    body = "".join(parts)
    if prefix:
        regex = re.compile(rf"^{body}(?=/|$)") if body else re.compile(r"^")
    else:
        regex = re.compile(rf"^{body}/?$")

    return PathPattern(path=normalized, regex=regex, param_names=names, prefix=prefix)
