"""Client platforms and how their log bundles are stored and served."""

from __future__ import annotations

import enum
from dataclasses import dataclass


@dataclass(frozen=True)
class PlatformSpec:
    """Per-platform storage and response rules.

    ``raw_body`` streams the upstream bytes untouched instead of letting the
    HTTP client decode them. ``gzip_encoded`` makes the gateway claim
    ``content-encoding: gzip`` so browsers inflate the bundle themselves.
    """

    extension: str
    raw_body: bool
    gzip_encoded: bool
    content_type: str | None = None


class Platform(str, enum.Enum):
    """Platforms that upload debug logs."""

    ANDROID = "android"
    IOS = "ios"
    DESKTOP = "desktop"

    @property
    def spec(self) -> PlatformSpec:
        """Storage and response rules for this platform."""
        return PLATFORM_SPECS[self]

    @property
    def extension(self) -> str:
        """File extension of the bundle on the upstream store (may be empty)."""
        return self.spec.extension

    @property
    def display_name(self) -> str:
        """Human-readable name, e.g. ``iOS``."""
        return _DISPLAY_NAMES[self]

    @property
    def prefix(self) -> str:
        """Path prefix of gateway requests for this platform."""
        return f"/{self.value}"

    @classmethod
    def from_path(cls, path: str) -> Platform | None:
        """Return the platform whose prefix starts ``path``, if any.

        This is a plain prefix test: ``/androidx/...`` routes to android.
        """
        for platform in cls:
            if path.startswith(platform.prefix):
                return platform
        return None

    @classmethod
    def from_extension(cls, extension: str) -> Platform | None:
        for platform in cls:
            if platform.extension == extension:
                return platform
        return None


PLATFORM_SPECS: dict[Platform, PlatformSpec] = {
    Platform.ANDROID: PlatformSpec(extension="", raw_body=True, gzip_encoded=True),
    Platform.IOS: PlatformSpec(
        extension=".zip",
        raw_body=False,
        gzip_encoded=False,
        content_type="application/zip",
    ),
    Platform.DESKTOP: PlatformSpec(extension=".gz", raw_body=True, gzip_encoded=True),
}

_DISPLAY_NAMES: dict[Platform, str] = {
    Platform.ANDROID: "Android",
    Platform.IOS: "iOS",
    Platform.DESKTOP: "Desktop",
}
