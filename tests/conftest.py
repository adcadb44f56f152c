"""Shared fixtures: a scripted HTTP session and local config files."""

import threading
from pathlib import Path
from typing import Any

import pytest

from coreos_checker.catalog import ReleaseCatalog
from coreos_checker.enrichment import VulnerabilityEnricher
from coreos_checker.repository import ReleaseRepository
from coreos_checker.transport import RetryingTransport, RetryPolicy

RELEASES_URI = "https://releases.test/releases.json"
VERSION_URI = "https://{channel}.release.test/version.txt"
CVE_URI = "https://cve.test/api/cve/{cve_id}"

_NO_JSON = object()


class FakeResponse:
    """Minimal stand-in for ``requests.Response``."""

    def __init__(self, status_code: int = 200, payload: Any = _NO_JSON, text: str = ""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self) -> Any:
        if self._payload is _NO_JSON:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._payload


class FakeSession:
    """Routes URLs to scripted responses or exceptions.

    A route value may be a single outcome or a list of outcomes consumed
    in order (the last one repeats).  Unknown URLs answer 404.
    """

    def __init__(self, routes: dict[str, Any] | None = None):
        self.routes: dict[str, Any] = dict(routes or {})
        self.calls: list[tuple[str, str, Any]] = []
        self._lock = threading.Lock()

    def request(self, method: str, url: str, timeout: Any = None, **kwargs: Any) -> FakeResponse:
        with self._lock:
            self.calls.append((method, url, timeout))
            outcome = self.routes.get(url)
            if isinstance(outcome, list):
                outcome = outcome.pop(0) if len(outcome) > 1 else outcome[0]
        if outcome is None:
            return FakeResponse(404, text="not found")
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def count(self, url: str) -> int:
        return sum(1 for _, u, _ in self.calls if u == url)


def cve_url(cve_id: str) -> str:
    return CVE_URI.format(cve_id=cve_id)


def version_url(channel: str) -> str:
    return VERSION_URI.format(channel=channel)


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def policy() -> RetryPolicy:
    """No backoff so retry tests run instantly."""
    return RetryPolicy(wait_min=0.0, wait_max=0.0, max_retries=2, timeout=1.5)


@pytest.fixture
def transport(policy: RetryPolicy, session: FakeSession) -> RetryingTransport:
    return RetryingTransport(policy, session=session)


@pytest.fixture
def enricher(transport: RetryingTransport) -> VulnerabilityEnricher:
    return VulnerabilityEnricher(transport, CVE_URI)


@pytest.fixture
def catalog(transport: RetryingTransport, enricher: VulnerabilityEnricher) -> ReleaseCatalog:
    return ReleaseCatalog(transport, enricher, RELEASES_URI)


@pytest.fixture
def update_conf(tmp_path: Path) -> Path:
    path = tmp_path / "update.conf"
    path.write_text("REBOOT_STRATEGY=off\nGROUP=beta\n")
    return path


@pytest.fixture
def release_conf(tmp_path: Path) -> Path:
    path = tmp_path / "release"
    path.write_text(
        "COREOS_RELEASE_VERSION=1234.5.0\n"
        "COREOS_RELEASE_BOARD=amd64-usr\n"
        "COREOS_RELEASE_APPID={e96281a6-d1af-4bde-9a0a-97b76e56dc57}\n"
    )
    return path


@pytest.fixture
def repo(
    transport: RetryingTransport,
    catalog: ReleaseCatalog,
    release_conf: Path,
    update_conf: Path,
) -> ReleaseRepository:
    return ReleaseRepository(transport, catalog, release_conf, update_conf, VERSION_URI)


@pytest.fixture
def sample_catalog() -> dict[str, Any]:
    """Catalog with the installed release and a newer beta."""
    return {
        "1234.5.0": {
            "release_notes": "Fixes CVE-2021-0001",
            "release_date": "2021-01-01 00:00:00 +0000",
        },
        "1300.0.0": {
            "release_notes": "Security fixes:\n- CVE-2021-0002\n- CVE-2021-0003\n- again CVE-2021-0002",
            "release_date": "2021-03-01 12:30:00 -0700",
        },
    }


@pytest.fixture
def serve_all(session: FakeSession, sample_catalog: dict[str, Any]) -> FakeSession:
    """Route the catalog, the beta pointer page and every CVE it names."""
    session.routes[RELEASES_URI] = FakeResponse(200, sample_catalog)
    session.routes[version_url("beta")] = FakeResponse(
        200, text="COREOS_BUILD=1300\nCOREOS_VERSION=1300.0.0\nCOREOS_SDK_VERSION=1299.0.0\n"
    )
    session.routes[cve_url("CVE-2021-0001")] = FakeResponse(200, {"id": "CVE-2021-0001", "cvss": "5.4"})
    session.routes[cve_url("CVE-2021-0002")] = FakeResponse(200, {"id": "CVE-2021-0002", "cvss": "7.5"})
    session.routes[cve_url("CVE-2021-0003")] = FakeResponse(200, {"id": "CVE-2021-0003", "cvss": "9.8"})
    return session
