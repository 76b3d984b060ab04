"""Client for the upstream debug-log store."""

from __future__ import annotations

import logging
from typing import Iterator

import requests

from debuglogs_gateway.config import GatewayConfig
from debuglogs_gateway.errors import UpstreamReportedMissing, UpstreamUnavailable

logger = logging.getLogger(__name__)

# Exact size of the store's "no such key" body, which it may serve with a 2xx
UPSTREAM_ERROR_BODY_LENGTH = "243"


def fetch(url: str, config: GatewayConfig) -> requests.Response:
    """Issue a single streaming GET to the upstream store.

    No request headers from the caller are forwarded.

    Raises:
        UpstreamUnavailable: On any transport failure. Nothing is retried.
    """
    try:
        return requests.get(
            url,
            timeout=(config.connect_timeout, config.read_timeout),
            stream=True,
        )
    except requests.exceptions.RequestException as e:
        logger.warning(f'Upstream request failed: {type(e).__name__}: {e}')
        raise UpstreamUnavailable(str(e)) from e


def is_error_sentinel(response: requests.Response) -> bool:
    """Return True if the response has the size of the store's error body."""
    return response.headers.get("content-length") == UPSTREAM_ERROR_BODY_LENGTH


def ensure_found(response: requests.Response) -> None:
    """Reject error statuses and the store's error-body signature.

    Raises:
        UpstreamReportedMissing: The response is closed before raising.
    """
    if 200 <= response.status_code < 300 and not is_error_sentinel(response):
        return
    response.close()
    raise UpstreamReportedMissing(f"upstream status {response.status_code}")


def iter_body(response: requests.Response, raw: bool, chunk_size: int = 8192) -> Iterator[bytes]:
    """Stream the upstream body without buffering it.

    Args:
        response: requests.Response object with stream=True
        raw: Yield the bytes exactly as sent on the wire, skipping the
             client's content decoding.
        chunk_size: Size of chunks to read

    Yields:
        bytes: Response data chunks
    """
    if raw:
        chunks = response.raw.stream(chunk_size, decode_content=False)
    else:
        chunks = response.iter_content(chunk_size=chunk_size)
    try:
        for chunk in chunks:
            if chunk:
                yield chunk
    except Exception as e:
        # Headers are already sent; aborting the stream is all that is left
        logger.error(f'Error streaming upstream body: {e}')
        raise
    finally:
        response.close()
