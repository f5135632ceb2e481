"""Wire-level helpers for rendered requests.

This module provides functions for:
- Joining a base URL and a path with exactly one separating slash
- Validating HTTP method tokens
- Dumping an httpx.Request as HTTP/1.1 text for diagnostic logs

Examples:
    Dumping a request::

        >>> import httpx
        >>> request = httpx.Request("GET", "https://example.com/test?key=val")
        >>> print(dump_request(request).replace("\\r\\n", "\\n"))
        GET /test?key=val HTTP/1.1
        Host: example.com
        <BLANKLINE>
        <BLANKLINE>
"""

import re

import httpx

from resilient_requests.exceptions import RequestBuildError

# Request extension holding the masked dump of a request built by RequestBuilder
MASKED_DUMP_EXTENSION = "resilient_requests.masked_dump"

# RFC 9110 token characters
_METHOD_RE = re.compile(r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")
_DUPLICATE_SLASHES_RE = re.compile(r"/{2,}")


def validate_method(method: str) -> str:
    """Return ``method`` if it is a valid HTTP token.

    Args:
        method: HTTP method as rendered

    Returns:
        The method unchanged

    Raises:
        RequestBuildError: If the method is empty or contains separators.

    Example:
        >>> validate_method("PATCH")
        'PATCH'
    """
    if not _METHOD_RE.fullmatch(method):
        raise RequestBuildError(f'invalid method "{method}"')
    return method


def join_url(base: str, path: str) -> str:
    """Join a base URL and a path with exactly one slash between them.

    Duplicate slashes at the join and inside the path are collapsed. The
    scheme separator of the base URL is left alone. An empty path returns the
    base unchanged.

    Args:
        base: Base URL, e.g. ``https://api.example.com/v1/``
        path: Path relative to the base, e.g. ``/users//42``

    Returns:
        The full URL

    Example:
        >>> join_url("https://api.example.com/v1/", "/users//42")
        'https://api.example.com/v1/users/42'
    """
    if not path:
        return base
    path = _DUPLICATE_SLASHES_RE.sub("/", path).lstrip("/")
    return base.rstrip("/") + "/" + path


def dump_request(request: httpx.Request) -> str:
    """Render ``request`` as HTTP/1.1 text.

    The request line uses the origin-form target (path and query), headers
    keep their insertion order and case, and a buffered body is appended
    after the blank line. A streaming body that has not been read is left
    out.

    Args:
        request: The request to dump

    Returns:
        The request as text with CRLF line endings
    """
    target = request.url.raw_path.decode("ascii")
    lines = [f"{request.method} {target} HTTP/1.1"]
    for key, value in request.headers.raw:
        lines.append(f"{key.decode('latin-1')}: {value.decode('latin-1')}")

    try:
        body = request.content
    except httpx.RequestNotRead:
        body = b""

    return "\r\n".join(lines) + "\r\n\r\n" + body.decode("utf-8", errors="replace")
