"""Data model for releases, vulnerabilities and repository snapshots.

Domain records are plain dataclasses.  Remote JSON payloads are validated
with Pydantic schemas so that a malformed catalog entry or score response
is rejected with a named error instead of a ``KeyError`` deep inside the
pipeline.
"""

import datetime as dt
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

NO_VULNERABILITIES = -1.0


class Channel(str, Enum):
    """CoreOS update channel."""

    STABLE = "stable"
    BETA = "beta"
    ALPHA = "alpha"


@dataclass(frozen=True)
class Vulnerability:
    """A CVE named in a release's notes.

    Attributes:
        id: CVE identifier (e.g. ``CVE-2021-0001``).
        cvss: Severity score.  ``0.0`` when the lookup failed.
        error: Failure reason if the score could not be resolved.
    """

    id: str
    cvss: float = 0.0
    error: str | None = None

    @property
    def resolved(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"id": self.id, "cvss": self.cvss}
        if self.error is not None:
            out["error"] = self.error
        return out


@dataclass(frozen=True)
class Release:
    """A CoreOS release enriched with the CVEs its notes mention.

    Attributes:
        version: Release version string.
        release_notes: Free-text release notes.
        security_fixes: Unique vulnerabilities named in the notes.
        released_on: Release timestamp, when the catalog provides a
            parsable one.
        max_cvss: Highest ``cvss`` among ``security_fixes``, or ``-1``
            when there are none.
    """

    version: str = ""
    release_notes: str = ""
    security_fixes: tuple[Vulnerability, ...] = field(default_factory=tuple)
    released_on: dt.datetime | None = None
    max_cvss: float = NO_VULNERABILITIES

    @classmethod
    def empty(cls) -> "Release":
        """Zero value held by the repository before the first refresh."""
        return cls()

    @property
    def known(self) -> bool:
        return bool(self.version)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "version": self.version,
            "releaseNotes": self.release_notes,
            "maxCvss": self.max_cvss,
        }
        if self.security_fixes:
            out["securityFixes"] = [v.to_dict() for v in self.security_fixes]
        if self.released_on is not None:
            out["releasedOn"] = self.released_on.isoformat()
        return out


@dataclass(frozen=True)
class RepositorySnapshot:
    """Point-in-time view of the release repository."""

    channel: Channel | None
    installed: Release
    latest: Release
    last_error: BaseException | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "channel": self.channel.value if self.channel else None,
            "installed": self.installed.to_dict(),
            "latest": self.latest.to_dict(),
            "lastError": str(self.last_error) if self.last_error else None,
        }


# ── Remote payload schemas ──────────────────────────────────────────────────


class CatalogEntry(BaseModel):
    """One value of the release catalog (``releases.json``) object."""

    release_notes: str
    release_date: str | None = None

    @field_validator("release_date", mode="before")
    @classmethod
    def _ignore_non_string_date(cls, v: Any) -> str | None:
        """A date of the wrong type is dropped like an unparsable one."""
        return v if isinstance(v, str) else None


class ScoreResponse(BaseModel):
    """Response of the per-CVE scoring endpoint.

    The endpoint serves ``cvss`` as a string (``"5.4"``); Pydantic coerces
    it to ``float`` and rejects missing, non-numeric, non-finite and
    out-of-range (outside 0.0-10.0) values.
    """

    cvss: float = Field(ge=0.0, le=10.0, allow_inf_nan=False)
