"""debuglogs-gateway - origin-checked gateway in front of the debuglogs.org log store."""

from importlib.metadata import PackageNotFoundError, version as _pkg_version

try:
    __version__ = _pkg_version("debuglogs-gateway")
except PackageNotFoundError:
    __version__ = "1.0.0"  # fallback for editable installs / dev
