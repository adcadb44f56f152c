"""Error kinds raised by the release pipeline.

Every failure that aborts a poll cycle is a ``CheckerError`` so the
scheduler can record it as the repository's last error.  Per-CVE lookup
failures never surface here; they are carried on the ``Vulnerability``.
"""

from pathlib import Path


class CheckerError(Exception):
    """Base class for all release pipeline errors."""


class ConfigFileError(CheckerError):
    """A local config file could not be read."""

    def __init__(self, path: str | Path, reason: object):
        self.path = Path(path)
        super().__init__(f"Cannot read {self.path}: {reason}")


class ConfigValueNotFound(CheckerError):
    """No line in a local config file starts with the expected key."""

    def __init__(self, key: str, path: str | Path):
        self.key = key
        self.path = Path(path)
        super().__init__(f"No line starting with {key!r} in {self.path}")


class VersionLineNotFound(CheckerError):
    """The channel pointer page has no ``COREOS_VERSION=`` line."""


class TransportError(CheckerError):
    """A network call failed, timed out, or exhausted its retries."""


class CatalogUnavailable(CheckerError):
    """The release catalog could not be fetched or decoded."""


class ReleaseNotFound(CheckerError):
    """The requested version is not present in the release catalog."""

    def __init__(self, version: str):
        self.version = version
        super().__init__(f"Release {version!r} not found in the release catalog")


class MalformedCatalogEntry(CheckerError):
    """A catalog entry is missing required fields."""

    def __init__(self, version: str, reason: str):
        self.version = version
        self.reason = reason
        super().__init__(f"Catalog entry for {version!r} is malformed: {reason}")
