"""Outbound header policy.

Upstream responses are relayed with their own headers minus anything that
exposes upstream infrastructure or would confuse downstream caches, plus
CORS and caching headers owned by the gateway.
"""

from __future__ import annotations

from typing import Iterable, Mapping, Tuple, Union

from werkzeug.datastructures import Headers

from debuglogs_gateway.platforms import PlatformSpec

# Upstream/edge bookkeeping that must not leak to callers
STRIPPED_HEADERS = frozenset({
    "cf-cache-status",
    "age",
    "last-modified",
    "x-cache",
    "via",
    "date",
})
STRIPPED_PREFIXES = ("x-amz",)

# RFC 7230 hop-by-hop headers; a WSGI application may not set these
HOP_BY_HOP_HEADERS = frozenset({
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailer",
    "trailers",
    "transfer-encoding",
    "upgrade",
})

# Keys are content hashes, so a bundle never changes once stored
CACHE_CONTROL = "public, max-age=604800, immutable"
CDN_CACHE_CONTROL = "no-store"

HeaderSource = Union[Headers, Mapping[str, str], Iterable[Tuple[str, str]]]


def is_stripped(name: str) -> bool:
    """Return True if an upstream header must not reach the caller."""
    name = name.lower()
    return (
        name in STRIPPED_HEADERS
        or name in HOP_BY_HOP_HEADERS
        or name.startswith(STRIPPED_PREFIXES)
    )


def strip_upstream_headers(headers: Headers) -> None:
    """Remove every stripped header from ``headers`` in place."""
    # Collect first: removing while iterating skips entries
    doomed = {name.lower() for name, _ in headers if is_stripped(name)}
    for name in doomed:
        headers.remove(name)


def set_allow_origin(headers: Headers, origin: str) -> None:
    headers.set("access-control-allow-origin", origin)
    headers.set("vary", "origin")


def rewrite_headers(upstream_headers: HeaderSource, origin: str, spec: PlatformSpec) -> Headers:
    """Build the outbound header set for a successful upstream response.

    Args:
        upstream_headers: Headers received from the upstream store.
        origin: Validated request origin to echo back for CORS.
        spec: Storage rules of the requested platform.

    Returns:
        A new ``Headers`` instance; ``upstream_headers`` is not modified.
    """
    if isinstance(upstream_headers, Mapping):
        upstream_headers = upstream_headers.items()
    headers = Headers(list(upstream_headers))
    strip_upstream_headers(headers)

    if not spec.raw_body and "content-encoding" in headers:
        # The HTTP client decodes non-raw bodies, so the upstream length is stale
        headers.remove("content-encoding")
        headers.remove("content-length")

    set_allow_origin(headers, origin)

    if spec.gzip_encoded:
        headers.set("content-encoding", "gzip")
    else:
        headers.remove("content-encoding")
    if spec.content_type:
        headers.set("content-type", spec.content_type)

    headers.set("cloudflare-cdn-cache-control", CDN_CACHE_CONTROL)
    headers.set("cache-control", CACHE_CONTROL)

    return headers
