"""Parsing helpers for config files, release notes and pointer pages.

Pure functions over in-memory text, apart from ``value_from_file`` which
reads one local file.  No network calls.
"""

import datetime as dt
import re
from pathlib import Path

from .errors import ConfigFileError, ConfigValueNotFound, VersionLineNotFound
from .models import Channel

CVE_RE = re.compile(r"CVE-[0-9]{4}-[0-9]{4,}")

GROUP_KEY = "GROUP="
RELEASE_VERSION_KEY = "COREOS_RELEASE_VERSION="
VERSION_LINE_KEY = "COREOS_VERSION="

RELEASE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S %z"
RELEASE_DATE_RE = re.compile(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2} [+-]\d{4}")


def value_from_file(prefix: str, path: str | Path) -> str:
    """Return the rest of the first line in *path* starting with *prefix*.

    Args:
        prefix: Exact line prefix, including the ``=`` (e.g. ``GROUP=``).
        path: Path to a ``KEY=value`` text file.

    Returns:
        The suffix after *prefix* on the first matching line.

    Raises:
        ConfigFileError: if the file cannot be read.
        ConfigValueNotFound: if no line starts with *prefix*.
    """
    try:
        content = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigFileError(path, exc) from exc

    for line in content.splitlines():
        if line.startswith(prefix):
            return line[len(prefix):]
    raise ConfigValueNotFound(prefix, path)


def normalize_channel(value: str) -> Channel:
    """Map a configured update group onto a release channel.

    CoreUpdate deployments use custom group names such as
    ``coreUpdateChan1``; anything other than ``beta`` or ``alpha``
    is treated as ``stable``.
    """
    if value == Channel.BETA.value:
        return Channel.BETA
    if value == Channel.ALPHA.value:
        return Channel.ALPHA
    return Channel.STABLE


def extract_cve_ids(text: str) -> list[str]:
    """Extract the unique CVE identifiers mentioned in *text*.

    Args:
        text: Release notes.

    Returns:
        Sorted list of unique IDs (empty if none).
    """
    return sorted(set(CVE_RE.findall(text or "")))


def parse_version_line(body: str) -> str:
    """Find the version on a channel pointer page.

    Args:
        body: Text of the ``version.txt`` page.

    Returns:
        Value of the first ``COREOS_VERSION=`` line.

    Raises:
        VersionLineNotFound: if the page has no such line.
    """
    for line in body.splitlines():
        if line.startswith(VERSION_LINE_KEY):
            return line[len(VERSION_LINE_KEY):]
    raise VersionLineNotFound("No CoreOS version on the page")


def parse_release_date(value: str | None) -> dt.datetime | None:
    """Parse a catalog ``release_date`` (``2021-01-01 00:00:00 +0000``).

    Returns:
        Timezone-aware datetime, or None if missing or unparsable.
    """
    if not value or not RELEASE_DATE_RE.fullmatch(value):
        return None
    try:
        return dt.datetime.strptime(value, RELEASE_DATE_FORMAT)
    except ValueError:
        return None
