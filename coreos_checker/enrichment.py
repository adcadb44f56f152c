"""CVE enrichment for release notes.

Turns free-text release notes into a deduplicated list of scored
``Vulnerability`` records.  A failed score lookup is recorded on that
vulnerability (severity ``0.0`` plus the reason) and never fails the
release as a whole.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Sequence

from pydantic import ValidationError

from .errors import TransportError
from .logger import get_logger
from .models import NO_VULNERABILITIES, ScoreResponse, Vulnerability
from .parsers import extract_cve_ids
from .transport import RetryingTransport

logger = get_logger(__name__)

CVE_URI = "http://cve.circl.lu/api/cve/{cve_id}"


def max_severity(vulnerabilities: Sequence[Vulnerability]) -> float:
    """Highest ``cvss`` in *vulnerabilities*, or ``-1`` if there are none.

    Failed lookups count with their ``0.0`` score, exactly like a real
    zero score would.
    """
    result = NO_VULNERABILITIES
    for v in vulnerabilities:
        result = max(result, v.cvss)
    return result


class VulnerabilityEnricher:
    """Scores the CVEs mentioned in release notes.

    Attributes:
        transport: Shared retrying transport.
        cve_uri: Scoring endpoint template with a ``{cve_id}`` field.
        max_workers: Concurrent lookups per release (1 = sequential).
    """

    def __init__(self, transport: RetryingTransport, cve_uri: str = CVE_URI, max_workers: int = 1):
        self.transport = transport
        self.cve_uri = cve_uri
        self.max_workers = max(1, max_workers)

    def score(self, cve_id: str) -> Vulnerability:
        """Resolve the severity of one CVE.

        Returns:
            A scored ``Vulnerability``, or one with ``cvss == 0.0`` and
            ``error`` set if the lookup or its response was bad.
        """
        url = self.cve_uri.format(cve_id=cve_id)
        try:
            payload = self.transport.get_json(url)
        except TransportError as exc:
            return self._failed(cve_id, str(exc))
        except ValueError as exc:
            return self._failed(cve_id, f"Cannot decode score response: {exc}")

        if not isinstance(payload, dict) or payload.get("cvss") is None:
            return self._failed(cve_id, "No CVSS found!")
        try:
            parsed = ScoreResponse.model_validate(payload)
        except ValidationError:
            return self._failed(cve_id, f"Cannot parse CVSS {payload.get('cvss')!r}")
        return Vulnerability(id=cve_id, cvss=parsed.cvss)

    @staticmethod
    def _failed(cve_id: str, reason: str) -> Vulnerability:
        logger.warning("Could not score %s: %s", cve_id, reason)
        return Vulnerability(id=cve_id, cvss=0.0, error=reason)

    def enrich(self, release_notes: str) -> tuple[list[Vulnerability], float]:
        """Extract and score every CVE in *release_notes*.

        Args:
            release_notes: Free-text release notes.

        Returns:
            Tuple of (vulnerabilities, max_cvss).  ``max_cvss`` is ``-1``
            when the notes name no CVEs.
        """
        cve_ids = extract_cve_ids(release_notes)
        if self.max_workers > 1 and len(cve_ids) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="cve-lookup") as pool:
                # map() yields in input order, whatever order lookups finish in
                vulnerabilities = list(pool.map(self.score, cve_ids))
        else:
            vulnerabilities = [self.score(cve_id) for cve_id in cve_ids]
        return vulnerabilities, max_severity(vulnerabilities)
