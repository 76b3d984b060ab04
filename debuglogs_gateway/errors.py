"""Exception hierarchy for debuglogs-gateway.

Every request-path failure derives from ``LogNotFound`` so the Flask app can
turn all of them into the same opaque 404. The ``reason`` attribute is for
internal logging only and never reaches the caller.

This module is a base-layer module: it must NOT import from any
other ``debuglogs_gateway`` submodule.
"""

from __future__ import annotations


class GatewayError(Exception):
    """Base exception for all debuglogs-gateway errors."""


class ConfigError(GatewayError):
    """Invalid or unreadable gateway configuration."""


class InvalidDebugLogsURL(GatewayError, ValueError):
    """A link that is not a well-formed debuglogs.org object URL."""


class LogNotFound(GatewayError):
    """A request that must be answered with a plain 404."""

    reason = "not_found"


class UntrustedOrigin(LogNotFound):
    """Origin header missing or not on the allow-list."""

    reason = "untrusted_origin"


class UnroutablePath(LogNotFound):
    """Path does not start with a known platform prefix."""

    reason = "unroutable_path"


class MalformedKey(LogNotFound):
    """Key segment is not 64 lowercase hex characters."""

    reason = "malformed_key"


class UpstreamUnavailable(LogNotFound):
    """Transport-level failure reaching the upstream store."""

    reason = "upstream_unavailable"


class UpstreamReportedMissing(LogNotFound):
    """Upstream answered with an error status or its error-body signature."""

    reason = "upstream_missing"


class MalformedVersion(LogNotFound):
    """``v`` parameter is a dot segment and cannot name a version directory."""

    reason = "malformed_version"
