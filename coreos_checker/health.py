"""Health and good-to-go surface over the release repository.

``build_health_report`` turns a repository snapshot into named checks;
``create_app`` serves them (plus the raw snapshot) with FastAPI.
"""

import datetime as dt

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from . import __version__
from .models import RepositorySnapshot
from .repository import ReleaseRepository

SYSTEM_CODE = "coreos-version-checker"


class HealthCheck(BaseModel):
    """A single named check in the health report."""

    id: str
    name: str
    ok: bool
    severity: int
    business_impact: str
    technical_summary: str
    check_output: str
    last_updated: str


class HealthReport(BaseModel):
    schema_version: int = 1
    system_code: str = SYSTEM_CODE
    name: str = "CoreOS Version Checker"
    description: str = "Checks for new CoreOS upgrades, and reports on the CVE severity score."
    version: str = __version__
    ok: bool
    checks: list[HealthCheck]


def _now() -> str:
    return dt.datetime.now(dt.timezone.utc).replace(microsecond=0).isoformat()


def poll_check(snapshot: RepositorySnapshot) -> HealthCheck:
    err = snapshot.last_error
    return HealthCheck(
        id="release-poll",
        name="CoreOS release information is up to date",
        ok=err is None,
        severity=2,
        business_impact="Upgrade and CVE information for this host may be stale.",
        technical_summary="The last poll of the update config, release file or remote release catalog failed.",
        check_output=str(err) if err is not None else "OK",
        last_updated=_now(),
    )


def upgrade_check(snapshot: RepositorySnapshot) -> HealthCheck:
    installed, latest = snapshot.installed, snapshot.latest
    pending = installed.known and latest.known and installed.version != latest.version
    if pending:
        channel = snapshot.channel.value if snapshot.channel else "unknown"
        output = f"Installed {installed.version}, latest on {channel} is {latest.version}"
    elif installed.known:
        output = f"Installed {installed.version} is the latest release"
    else:
        output = "Installed release not known yet"
    return HealthCheck(
        id="upgrade-available",
        name="CoreOS is on the latest release",
        ok=not pending,
        severity=3,
        business_impact="No direct impact; the host misses the fixes shipped in newer releases.",
        technical_summary="A newer CoreOS release is available on this host's update channel.",
        check_output=output,
        last_updated=_now(),
    )


def security_check(snapshot: RepositorySnapshot, threshold: float) -> HealthCheck:
    installed, latest = snapshot.installed, snapshot.latest
    pending = installed.known and latest.known and installed.version != latest.version
    urgent = pending and latest.max_cvss >= threshold
    if urgent:
        ids = ", ".join(v.id for v in latest.security_fixes if v.cvss >= threshold)
        output = f"Release {latest.version} fixes CVEs with CVSS up to {latest.max_cvss}: {ids}"
    elif pending and latest.max_cvss >= 0:
        output = f"Release {latest.version} fixes CVEs with CVSS up to {latest.max_cvss}"
    else:
        output = "No pending security fixes"
    return HealthCheck(
        id="security-fixes",
        name=f"No pending CoreOS security fixes with CVSS >= {threshold}",
        ok=not urgent,
        severity=1,
        business_impact="The host is exposed to known high-severity vulnerabilities.",
        technical_summary="The latest release on this channel fixes CVEs at or above the severity threshold.",
        check_output=output,
        last_updated=_now(),
    )


def build_health_report(snapshot: RepositorySnapshot, threshold: float = 7.0) -> HealthReport:
    """Assemble every health check for *snapshot*."""
    checks = [poll_check(snapshot), upgrade_check(snapshot), security_check(snapshot, threshold)]
    return HealthReport(ok=all(c.ok for c in checks), checks=checks)


def good_to_go(snapshot: RepositorySnapshot) -> tuple[bool, str]:
    """Whether the checker has release data and its last poll succeeded."""
    if snapshot.last_error is not None:
        return False, str(snapshot.last_error)
    if not snapshot.installed.known:
        return False, "Installed release not known yet"
    return True, "OK"


def create_app(repo: ReleaseRepository, threshold: float = 7.0) -> FastAPI:
    """Create the FastAPI app serving ``/__health``, ``/__gtg`` and ``/releases``."""
    app = FastAPI(title=SYSTEM_CODE, version=__version__)

    @app.get("/__health")
    def health() -> dict:
        return build_health_report(repo.snapshot(), threshold).model_dump(mode="json")

    @app.get("/__gtg", response_class=PlainTextResponse)
    def gtg() -> PlainTextResponse:
        ok, message = good_to_go(repo.snapshot())
        return PlainTextResponse(message, status_code=200 if ok else 503)

    @app.get("/releases")
    def releases() -> dict:
        return repo.snapshot().to_dict()

    return app
