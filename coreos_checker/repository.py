"""Release repository: the checker's shared state.

Holds the update channel, the installed and latest releases and the last
poll error.  The poller is the only writer; the HTTP surface reads
snapshots concurrently.  All file and network I/O happens before the
lock is taken, and each refresh commits a single field on its own, so a
reader may see a fresh channel next to a release from the previous cycle.
"""

from pathlib import Path

from .catalog import ReleaseCatalog
from .logger import get_logger
from .models import Channel, Release, RepositorySnapshot
from .parsers import (
    GROUP_KEY,
    RELEASE_VERSION_KEY,
    normalize_channel,
    parse_version_line,
    value_from_file,
)
from .rwlock import ReadWriteLock
from .transport import RetryingTransport

logger = get_logger(__name__)

VERSION_URI = "https://{channel}.release.core-os.net/amd64-usr/current/version.txt"


class ReleaseRepository:
    """Concurrency-safe container for the host's release state.

    Attributes:
        transport: Shared retrying transport.
        catalog: Release catalog lookup.
        release_conf_path: File holding ``COREOS_RELEASE_VERSION=``.
        update_conf_path: File holding ``GROUP=``.
        version_uri: Channel pointer URL template with a ``{channel}`` field.
    """

    def __init__(
        self,
        transport: RetryingTransport,
        catalog: ReleaseCatalog,
        release_conf_path: str | Path,
        update_conf_path: str | Path,
        version_uri: str = VERSION_URI,
    ):
        self.transport = transport
        self.catalog = catalog
        self.release_conf_path = Path(release_conf_path)
        self.update_conf_path = Path(update_conf_path)
        self.version_uri = version_uri

        self._lock = ReadWriteLock()
        self._channel: Channel | None = None
        self._installed = Release.empty()
        self._latest = Release.empty()
        self._last_error: BaseException | None = None

    # ── Read surface ────────────────────────────────────────────────────────

    @property
    def channel(self) -> Channel | None:
        with self._lock.read_locked():
            return self._channel

    @property
    def installed(self) -> Release:
        with self._lock.read_locked():
            return self._installed

    @property
    def latest(self) -> Release:
        with self._lock.read_locked():
            return self._latest

    @property
    def last_error(self) -> BaseException | None:
        with self._lock.read_locked():
            return self._last_error

    def snapshot(self) -> RepositorySnapshot:
        """Return channel, releases and last error read under one shared lock."""
        with self._lock.read_locked():
            return RepositorySnapshot(
                channel=self._channel,
                installed=self._installed,
                latest=self._latest,
                last_error=self._last_error,
            )

    # ── Write surface ───────────────────────────────────────────────────────

    def set_last_error(self, err: BaseException | None) -> None:
        """Record the outcome of the latest poll cycle (``None`` clears it)."""
        with self._lock.write_locked():
            self._last_error = err

    def refresh_channel(self) -> None:
        """Read the update group from the update config and store the channel.

        Raises:
            ConfigFileError: if the update config cannot be read.
            ConfigValueNotFound: if it has no ``GROUP=`` line.
        """
        channel = normalize_channel(value_from_file(GROUP_KEY, self.update_conf_path))
        with self._lock.write_locked():
            self._channel = channel
        logger.debug("Update channel is %s", channel.value)

    def refresh_installed_version(self) -> None:
        """Look up and store the release installed on this host.

        Raises:
            ConfigFileError: if the release file cannot be read.
            ConfigValueNotFound: if it has no ``COREOS_RELEASE_VERSION=`` line.
            CatalogUnavailable, ReleaseNotFound, MalformedCatalogEntry:
                from the catalog lookup.
        """
        version = value_from_file(RELEASE_VERSION_KEY, self.release_conf_path)
        release = self.catalog.fetch(version)
        with self._lock.write_locked():
            self._installed = release
        logger.info("Installed release %s (max CVSS %s)", release.version, release.max_cvss)

    def refresh_latest_version(self) -> None:
        """Look up and store the latest release on the current channel.

        Raises:
            TransportError: if the channel pointer page cannot be fetched.
            VersionLineNotFound: if the page names no version.
            CatalogUnavailable, ReleaseNotFound, MalformedCatalogEntry:
                from the catalog lookup.
        """
        channel = self.channel or Channel.STABLE
        uri = self.version_uri.format(channel=channel.value)
        version = parse_version_line(self.transport.get_text(uri))
        release = self.catalog.fetch(version)
        with self._lock.write_locked():
            self._latest = release
        logger.info("Latest %s release %s (max CVSS %s)", channel.value, release.version, release.max_cvss)
