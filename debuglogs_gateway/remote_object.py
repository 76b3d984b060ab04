"""Log bundles stored on the upstream debug-log service.

A ``RemoteObject`` names one bundle by platform, content key and optional
client version. It knows both URL shapes used by the upstream store and the
URL a front end requests from this gateway.
"""

from __future__ import annotations

import re
from typing import Optional
from urllib.parse import quote, urlencode

from pydantic import BaseModel, ConfigDict, field_validator

from debuglogs_gateway.errors import InvalidDebugLogsURL
from debuglogs_gateway.platforms import Platform

KEY_LENGTH = 64
KEY_PATTERN = re.compile(r"^[a-f0-9]{64}$")

# <key><ext> or <platform>/<version>/<key><ext>, relative to the upstream base
_OBJECT_PATH = re.compile(
    r"^(?:(?P<platform>[^/]+)/(?P<version>[^/]+)/)?"
    r"(?P<key>[a-f0-9]{64})(?P<extension>\.zip|\.gz)?$"
)


def is_valid_key(key: Optional[str]) -> bool:
    """Return True if ``key`` is exactly 64 lowercase hex characters."""
    if not key:
        return False
    return KEY_PATTERN.fullmatch(key) is not None


# Path segments that URL normalisation resolves away
DOT_SEGMENTS = frozenset({".", ".."})


def is_valid_version(version: Optional[str]) -> bool:
    """Return True if ``version`` can stand as one upstream path segment."""
    return bool(version) and version not in DOT_SEGMENTS


class RemoteObject(BaseModel):
    """A log bundle on the upstream store.

    Construction validates the key, so an instance can always be turned into
    an upstream URL safely.
    """

    model_config = ConfigDict(frozen=True)

    platform: Platform
    """Platform that uploaded the bundle."""

    key: str
    """Content-addressed key (64 lowercase hex characters)."""

    version: Optional[str] = None
    """Client version for the namespaced key-space; None for legacy links."""

    @field_validator("key")
    @classmethod
    def _check_key(cls, value: str) -> str:
        if not is_valid_key(value):
            raise ValueError("key must be 64 lowercase hexadecimal characters")
        return value

    @field_validator("version")
    @classmethod
    def _check_version(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not is_valid_version(value):
            raise ValueError("version must be a non-empty path segment other than . or ..")
        return value

    def upstream_url(self, base_url: str) -> str:
        """URL of the bundle on the upstream store.

        Legacy bundles live at ``<base>/<key><ext>``; versioned ones at
        ``<base>/<platform>/<version>/<key><ext>``. Both are kept so that
        already-issued links keep working.
        """
        base_url = base_url.rstrip("/")
        filename = self.key + self.platform.extension
        if self.version is None:
            return f"{base_url}/{filename}"
        version = quote(self.version, safe="")
        return f"{base_url}/{self.platform.value}/{version}/{filename}"

    def gateway_url(self, base_url: str) -> str:
        """URL a front end fetches from this gateway for the bundle."""
        url = f"{base_url.rstrip('/')}/{self.platform.value}/{self.key}"
        if self.version is not None:
            url += "?" + urlencode({"v": self.version})
        return url


def parse_debuglogs_url(url: str, base_url: str) -> RemoteObject:
    """Parse a link issued by the upstream store into a ``RemoteObject``.

    Args:
        url: Link as shared by a user, e.g. ``https://debuglogs.org/<key>.zip``.
        base_url: Upstream base URL the link must start with.

    Returns:
        The bundle the link points at.

    Raises:
        InvalidDebugLogsURL: If the link is not a well-formed object URL, or
            its platform segment disagrees with its file extension.
    """
    prefix = base_url.rstrip("/") + "/"
    url = url.strip()
    if not url.startswith(prefix):
        raise InvalidDebugLogsURL(f"Not a {prefix} link: {url!r}")

    match = _OBJECT_PATH.fullmatch(url[len(prefix):])
    if match is None:
        raise InvalidDebugLogsURL(f"Unrecognised debug log link: {url!r}")

    platform = Platform.from_extension(match.group("extension") or "")
    if platform is None:
        raise InvalidDebugLogsURL(f"Unknown file extension in link: {url!r}")

    version = match.group("version")
    if version is not None and not is_valid_version(version):
        raise InvalidDebugLogsURL(f"Invalid version segment in link: {url!r}")

    named = match.group("platform")
    if named is not None and named != platform.value:
        raise InvalidDebugLogsURL(
            f"Platform {named!r} does not match a {platform.display_name} bundle: {url!r}"
        )

    return RemoteObject(platform=platform, key=match.group("key"), version=version)
