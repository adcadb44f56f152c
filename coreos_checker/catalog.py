"""Release catalog lookup.

Fetches the full ``releases.json`` catalog and turns one entry into an
enriched ``Release``.  The catalog is fetched again on every lookup.
"""

from typing import Any

from pydantic import ValidationError

from .enrichment import VulnerabilityEnricher
from .errors import CatalogUnavailable, MalformedCatalogEntry, ReleaseNotFound, TransportError
from .models import CatalogEntry, Release
from .parsers import parse_release_date
from .transport import RetryingTransport

RELEASES_URI = "https://coreos.com/releases/releases.json"


class ReleaseCatalog:
    """Looks up releases in the remote CoreOS release catalog.

    Attributes:
        transport: Shared retrying transport.
        enricher: Scores the CVEs named in release notes.
        releases_uri: Catalog URL.
    """

    def __init__(
        self,
        transport: RetryingTransport,
        enricher: VulnerabilityEnricher,
        releases_uri: str = RELEASES_URI,
    ):
        self.transport = transport
        self.enricher = enricher
        self.releases_uri = releases_uri

    def fetch_catalog(self) -> dict[str, Any]:
        """Download and decode the whole catalog.

        Raises:
            CatalogUnavailable: if the request or the JSON decode fails.
        """
        try:
            data = self.transport.get_json(self.releases_uri)
        except (TransportError, ValueError) as exc:
            raise CatalogUnavailable(f"Cannot load release catalog from {self.releases_uri}: {exc}") from exc
        if not isinstance(data, dict):
            raise CatalogUnavailable(f"Release catalog at {self.releases_uri} is not a JSON object")
        return data

    def fetch(self, version: str) -> Release:
        """Build the enriched ``Release`` for *version*.

        Args:
            version: Release version (e.g. ``1234.5.0``).

        Returns:
            Release with notes, release date, scored CVEs and max CVSS.

        Raises:
            CatalogUnavailable: if the catalog cannot be loaded.
            ReleaseNotFound: if *version* is not in the catalog.
            MalformedCatalogEntry: if the entry has no ``release_notes``.
        """
        raw = self.fetch_catalog().get(version)
        if not isinstance(raw, dict):
            raise ReleaseNotFound(version)

        try:
            entry = CatalogEntry.model_validate(raw)
        except ValidationError as exc:
            raise MalformedCatalogEntry(version, str(exc)) from exc

        fixes, max_cvss = self.enricher.enrich(entry.release_notes)
        return Release(
            version=version,
            release_notes=entry.release_notes,
            security_fixes=tuple(fixes),
            released_on=parse_release_date(entry.release_date),
            max_cvss=max_cvss,
        )
