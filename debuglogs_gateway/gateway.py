"""
Gateway service for debug-log bundles.

Relays browser requests for log bundles to the upstream debug-log store.
Requests are accepted only from allow-listed origins and only for well-formed
content keys. Every rejection, whatever its cause, is the same plain 404.
"""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import urlsplit

from flask import Flask, Response, g, request

from debuglogs_gateway import upstream
from debuglogs_gateway.config import GatewayConfig, load_config
from debuglogs_gateway.errors import (
    LogNotFound,
    MalformedKey,
    MalformedVersion,
    UnroutablePath,
    UntrustedOrigin,
)
from debuglogs_gateway.headers import rewrite_headers, set_allow_origin
from debuglogs_gateway.logging_config import flask_request_middleware
from debuglogs_gateway.platforms import Platform
from debuglogs_gateway.remote_object import RemoteObject, is_valid_key, is_valid_version

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("audit")

NOT_FOUND_BODY = "Not Found"


class PassthroughResponse(Response):
    """Response that never invents a content type for relayed bodies."""

    default_mimetype = None


def audit_log(event_type: str, **extra_data) -> None:
    """Log a structured audit event.

    Args:
        event_type: Type of event (logs_served, logs_denied)
        **extra_data: Additional event-specific data
    """
    audit_logger.info(event_type, extra={"event": event_type, **extra_data})


def check_origin(origin: Optional[str], config: GatewayConfig) -> str:
    """Return the origin if it is allow-listed.

    Raises:
        UntrustedOrigin: If the origin is missing or not allow-listed.
    """
    if not config.is_allowed_origin(origin):
        raise UntrustedOrigin(f"origin {origin!r} is not allowed")
    return origin


def route_platform(path: str) -> Platform:
    platform = Platform.from_path(path)
    if platform is None:
        raise UnroutablePath(f"no platform for path {path!r}")
    return platform


def extract_key(path: str) -> str:
    """Return the key segment (``/<platform>/<key>``) of a request path.

    Raises:
        MalformedKey: If the segment is missing or not 64 lowercase hex chars.
    """
    segments = path.split("/")
    key = segments[2] if len(segments) > 2 else None
    if not is_valid_key(key):
        raise MalformedKey("key segment is not a content hash")
    return key


def resolve_remote_object(path: str, version: Optional[str] = None) -> RemoteObject:
    """Map a request path and ``v`` parameter to the bundle it names."""
    platform = route_platform(path)
    key = extract_key(path)
    version = version or None
    if version is not None and not is_valid_version(version):
        raise MalformedVersion(f"version {version!r} is a dot segment")
    return RemoteObject(platform=platform, key=key, version=version)


def raw_request_path() -> str:
    """Path of the current request as sent by the client, still percent-encoded.

    Uses the ``RAW_URI`` / ``REQUEST_URI`` keys set by gunicorn, uWSGI and
    Werkzeug, falling back to the decoded path on servers without them.
    """
    raw_uri = request.environ.get("RAW_URI") or request.environ.get("REQUEST_URI")
    if not raw_uri:
        return request.path
    if not raw_uri.startswith("/"):
        # absolute-form request target
        return urlsplit(raw_uri).path
    return raw_uri.split("?", 1)[0]


def not_found(origin: Optional[str] = None) -> Response:
    """The single response used for every rejection.

    CORS headers are only set when the origin has already been validated.
    """
    response = Response(NOT_FOUND_BODY, status=404, mimetype="text/plain")
    if origin:
        set_allow_origin(response.headers, origin)
    return response


def build_response(upstream_response, origin: str, platform: Platform, chunk_size: int = 8192) -> Response:
    """Relay a successful upstream response with rewritten headers.

    The body is streamed; android and desktop bundles are passed through as
    raw bytes because the gateway itself declares them gzip-encoded.
    """
    spec = platform.spec
    response = PassthroughResponse(
        upstream.iter_body(upstream_response, raw=spec.raw_body, chunk_size=chunk_size),
        status=upstream_response.status_code,
        headers=rewrite_headers(upstream_response.headers, origin, spec),
    )
    # Release the upstream connection even if the body is never iterated
    response.call_on_close(upstream_response.close)
    return response


def create_app(config: Optional[GatewayConfig] = None) -> Flask:
    """Create the gateway Flask application.

    Args:
        config: Gateway configuration. Loaded from the environment if omitted.
    """
    if config is None:
        config = load_config()

    app = Flask(__name__)
    app.config["GATEWAY_CONFIG"] = config
    # Paths are matched verbatim; no redirects for '//' or trailing slashes
    app.url_map.merge_slashes = False
    app.url_map.strict_slashes = False

    flask_request_middleware(app)

    # No automatic OPTIONS: every non-GET request goes through the 405 handler
    @app.route("/", defaults={"path": ""}, provide_automatic_options=False)
    @app.route("/<path:path>", provide_automatic_options=False)
    def fetch_logs(path):
        """
        Fetch a log bundle from the upstream store.

        Pipeline: origin check, platform routing, key validation, upstream
        fetch, upstream error detection, header rewriting. Any failing step
        raises a LogNotFound subclass handled below.
        """
        origin = check_origin(request.headers.get("Origin"), config)
        g.origin = origin

        remote = resolve_remote_object(raw_request_path(), request.args.get("v"))
        upstream_url = remote.upstream_url(config.upstream_url)
        logger.debug(f"Fetching {upstream_url}")

        upstream_response = upstream.fetch(upstream_url, config)
        upstream.ensure_found(upstream_response)

        audit_log(
            "logs_served",
            platform=remote.platform.value,
            versioned=remote.version is not None,
            upstream_status=upstream_response.status_code,
        )
        return build_response(upstream_response, origin, remote.platform, config.chunk_size)

    @app.errorhandler(LogNotFound)
    def handle_log_not_found(error):
        audit_log("logs_denied", reason=error.reason, detail=str(error))
        return not_found(g.get("origin"))

    @app.errorhandler(404)
    @app.errorhandler(405)
    def handle_unroutable(error):
        """Werkzeug routing errors look exactly like any other rejection."""
        audit_log("logs_denied", reason="unroutable_request", detail=str(error))
        return not_found(g.get("origin"))

    return app
