"""Unit tests for coreos_checker.health: health checks and HTTP surface."""

import pytest
from fastapi.testclient import TestClient

from conftest import FakeSession
from coreos_checker.errors import ReleaseNotFound
from coreos_checker.health import build_health_report, create_app, good_to_go
from coreos_checker.models import Channel, Release, RepositorySnapshot, Vulnerability
from coreos_checker.poller import Poller
from coreos_checker.repository import ReleaseRepository

INSTALLED = Release(version="1234.5.0", security_fixes=(Vulnerability("CVE-2021-0001", 5.4),), max_cvss=5.4)
LATEST = Release(
    version="1300.0.0",
    security_fixes=(Vulnerability("CVE-2021-0002", 7.5), Vulnerability("CVE-2021-0003", 9.8)),
    max_cvss=9.8,
)


def _snapshot(installed=INSTALLED, latest=LATEST, err=None) -> RepositorySnapshot:
    return RepositorySnapshot(channel=Channel.BETA, installed=installed, latest=latest, last_error=err)


def _checks(report) -> dict:
    return {c.id: c for c in report.checks}


class TestBuildHealthReport:
    def test_up_to_date(self):
        report = build_health_report(_snapshot(latest=INSTALLED))
        assert report.ok
        checks = _checks(report)
        assert checks["upgrade-available"].check_output == "Installed 1234.5.0 is the latest release"
        assert checks["security-fixes"].ok

    def test_pending_urgent_upgrade(self):
        report = build_health_report(_snapshot(), threshold=9.0)
        assert not report.ok
        checks = _checks(report)
        assert not checks["upgrade-available"].ok
        assert "latest on beta is 1300.0.0" in checks["upgrade-available"].check_output
        assert not checks["security-fixes"].ok
        assert "CVE-2021-0003" in checks["security-fixes"].check_output
        assert "CVE-2021-0002" not in checks["security-fixes"].check_output

    def test_pending_below_threshold(self):
        report = build_health_report(_snapshot(), threshold=10.0)
        checks = _checks(report)
        assert checks["security-fixes"].ok
        assert not checks["upgrade-available"].ok

    def test_poll_error(self):
        report = build_health_report(_snapshot(latest=INSTALLED, err=ReleaseNotFound("9.9.9")))
        checks = _checks(report)
        assert not checks["release-poll"].ok
        assert "9.9.9" in checks["release-poll"].check_output
        assert not report.ok

    def test_nothing_known_yet(self):
        report = build_health_report(_snapshot(installed=Release.empty(), latest=Release.empty()))
        checks = _checks(report)
        assert checks["upgrade-available"].ok
        assert checks["upgrade-available"].check_output == "Installed release not known yet"


class TestGoodToGo:
    def test_ok(self):
        assert good_to_go(_snapshot()) == (True, "OK")

    def test_error(self):
        ok, message = good_to_go(_snapshot(err=ReleaseNotFound("9.9.9")))
        assert not ok
        assert "9.9.9" in message

    def test_no_installed_release(self):
        ok, _ = good_to_go(_snapshot(installed=Release.empty()))
        assert not ok


class TestApp:
    @pytest.fixture
    def client(self, repo: ReleaseRepository) -> TestClient:
        return TestClient(create_app(repo, threshold=7.0))

    def test_gtg_before_first_poll(self, client: TestClient):
        resp = client.get("/__gtg")
        assert resp.status_code == 503

    def test_after_successful_poll(self, client: TestClient, repo: ReleaseRepository, serve_all: FakeSession):
        Poller(repo).run_once()

        gtg = client.get("/__gtg")
        assert gtg.status_code == 200
        assert gtg.text == "OK"

        health = client.get("/__health").json()
        assert health["ok"] is False
        checks = {c["id"]: c for c in health["checks"]}
        assert checks["release-poll"]["ok"] is True
        assert checks["security-fixes"]["ok"] is False

        releases = client.get("/releases").json()
        assert releases["channel"] == "beta"
        assert releases["installed"]["version"] == "1234.5.0"
        assert releases["installed"]["maxCvss"] == 5.4
        assert releases["installed"]["releasedOn"].startswith("2021-01-01T00:00:00")
        assert releases["latest"]["maxCvss"] == 9.8
        assert releases["lastError"] is None

    def test_after_failed_poll(self, client: TestClient, repo: ReleaseRepository, serve_all: FakeSession, release_conf):
        release_conf.write_text("COREOS_RELEASE_VERSION=9999.0.0\n")
        Poller(repo).run_once()
        assert client.get("/__gtg").status_code == 503
        assert "9999.0.0" in client.get("/releases").json()["lastError"]
