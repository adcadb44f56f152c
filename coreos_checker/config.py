"""Runtime settings using Pydantic.

Settings come from three layers, later ones winning: an optional YAML
file, environment variables, and explicit command-line overrides.
"""

import os
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, Field, field_validator

from .catalog import RELEASES_URI
from .enrichment import CVE_URI
from .poller import DEFAULT_INTERVAL
from .repository import VERSION_URI
from .transport import RetryPolicy

DEFAULT_UPDATE_CONF = Path("/etc/coreos/update.conf")
DEFAULT_RELEASE_CONF = Path("/usr/share/coreos/release")

# Environment variable -> settings field
ENV_OVERRIDES = {
    "UPDATE_CONF": "update_conf",
    "RELEASE_CONF": "release_conf",
    "PORT": "port",
    "POLL_INTERVAL": "poll_interval",
}


class RetrySettings(BaseModel):
    """Retry bounds for outbound HTTP calls.

    Attributes:
        wait_min: First backoff step in seconds.
        wait_max: Longest single backoff step in seconds.
        max_retries: Retries after the first attempt.
        timeout: Per-request timeout in seconds.
    """

    wait_min: float = Field(default=0.1, ge=0.0)
    wait_max: float = Field(default=2.0, ge=0.0)
    max_retries: int = Field(default=5, ge=0, le=10)
    timeout: float = Field(default=1.5, gt=0.0)

    def to_policy(self) -> RetryPolicy:
        return RetryPolicy(
            wait_min=self.wait_min,
            wait_max=self.wait_max,
            max_retries=self.max_retries,
            timeout=self.timeout,
        )


class Settings(BaseModel):
    """Validated checker configuration.

    Example YAML::

        update_conf: /etc/coreos/update.conf
        release_conf: /usr/share/coreos/release
        port: 8080
        poll_interval: 1800
        severity_threshold: 7.0
        retry:
          max_retries: 5
    """

    update_conf: Path = DEFAULT_UPDATE_CONF
    release_conf: Path = DEFAULT_RELEASE_CONF
    port: int = Field(default=8080, ge=1, le=65535)
    poll_interval: float = Field(default=DEFAULT_INTERVAL, gt=0.0, description="Seconds between poll cycles")
    releases_uri: str = RELEASES_URI
    version_uri: str = VERSION_URI
    cve_uri: str = CVE_URI
    severity_threshold: float = Field(
        default=7.0,
        ge=0.0,
        le=10.0,
        description="CVSS score at or above which a pending upgrade is reported as urgent",
    )
    lookup_workers: int = Field(default=1, ge=1, le=16)
    retry: RetrySettings = Field(default_factory=RetrySettings)

    @field_validator("version_uri")
    @classmethod
    def _has_channel_field(cls, v: str) -> str:
        if "{channel}" not in v:
            raise ValueError("version_uri must contain a {channel} placeholder")
        return v

    @field_validator("cve_uri")
    @classmethod
    def _has_cve_field(cls, v: str) -> str:
        if "{cve_id}" not in v:
            raise ValueError("cve_uri must contain a {cve_id} placeholder")
        return v


def load_settings(
    path: Path | None = None,
    overrides: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """Build ``Settings`` from a YAML file, the environment and overrides.

    Args:
        path: Optional YAML settings file.
        overrides: Explicit values (e.g. from the CLI); ``None`` values
            are ignored.
        environ: Environment mapping (defaults to ``os.environ``).

    Returns:
        Validated ``Settings`` instance.

    Raises:
        FileNotFoundError: if *path* doesn't exist.
        ValueError: if the file is not a YAML mapping.
        pydantic.ValidationError: if values fail validation.
    """
    raw: dict[str, Any] = {}
    if path is not None:
        loaded = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        if not isinstance(loaded, dict):
            raise ValueError(f"Settings file {path} must contain a mapping")
        raw.update(loaded)

    env = os.environ if environ is None else environ
    for var, key in ENV_OVERRIDES.items():
        value = env.get(var)
        if value:
            raw[key] = value

    for key, value in (overrides or {}).items():
        if value is not None:
            raw[key] = value

    return Settings.model_validate(raw)
