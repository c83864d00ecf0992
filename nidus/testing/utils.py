"""
Nidus Testing - low-level ASGI helpers.
"""

from typing import List, Optional


def make_test_scope(
    method: str = "GET",
    path: str = "/",
    query_string: str = "",
    headers: Optional[List[tuple]] = None,
    scheme: str = "http",
    client: Optional[tuple] = None,
    server: Optional[tuple] = None,
    http_version: str = "1.1",
) -> dict:
    """
    Build a minimal ASGI HTTP scope for testing.

    Args:
        method: HTTP method.
        path: Request path (a ``?query`` suffix is split off).
        query_string: Raw query string (without ``?``).
        headers: List of ``(name, value)`` tuples (strings or bytes).
        scheme: URL scheme.
        client: ``(host, port)`` tuple.
        server: ``(host, port)`` tuple.
        http_version: HTTP protocol version.
    """
    if "?" in path and not query_string:
        path, query_string = path.split("?", 1)

    raw_headers: list[tuple[bytes, bytes]] = []
    for name, value in headers or ():
        raw_headers.append((
            name.encode("latin-1") if isinstance(name, str) else name,
            value.encode("latin-1") if isinstance(value, str) else value,
        ))

    return {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": http_version,
        "method": method.upper(),
        "path": path,
        "raw_path": path.encode("utf-8"),
        "query_string": query_string.encode("utf-8"),
        "headers": raw_headers,
        "scheme": scheme,
        "server": server or ("127.0.0.1", 3000),
        "client": client or ("127.0.0.1", 12345),
        "root_path": "",
    }


def make_test_receive(body: bytes = b"", *, chunks: Optional[List[bytes]] = None):
    """
    Create an ASGI receive callable.

    Args:
        body: Complete request body bytes.
        chunks: Optional list of body chunks (overrides *body*).
    """
    if chunks:
        messages = [
            {"type": "http.request", "body": chunk, "more_body": i < len(chunks) - 1}
            for i, chunk in enumerate(chunks)
        ]
    else:
        messages = [{"type": "http.request", "body": body, "more_body": False}]

    idx = 0

    async def receive():
        nonlocal idx
        if idx < len(messages):
            msg = messages[idx]
            idx += 1
            return msg
        return {"type": "http.disconnect"}

    return receive
