"""Command-line entry point: wire the components, poll, and serve health."""

import argparse
from pathlib import Path
from typing import Sequence

import uvicorn

from . import __version__
from .catalog import ReleaseCatalog
from .config import Settings, load_settings
from .enrichment import VulnerabilityEnricher
from .health import create_app
from .logger import get_logger, setup_logging
from .poller import Poller
from .repository import ReleaseRepository
from .transport import RetryingTransport

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="coreos-version-checker",
        description="Checks for new CoreOS upgrades, and reports on the CVE severity score.",
    )
    p.add_argument("--config", type=Path, default=None, help="Optional YAML settings file.")
    p.add_argument(
        "--update-conf",
        type=Path,
        default=None,
        help="The location of the CoreOS update.conf file (env: UPDATE_CONF).",
    )
    p.add_argument(
        "--release-conf",
        type=Path,
        default=None,
        help="The location of the CoreOS release file (env: RELEASE_CONF).",
    )
    p.add_argument("--port", type=int, default=None, help="HTTP port for the health endpoints (env: PORT).")
    p.add_argument("--log-level", default="INFO", help="Log level (default: INFO).")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return p


def build_repository(settings: Settings) -> ReleaseRepository:
    """Create the transport, enricher, catalog and repository for *settings*."""
    transport = RetryingTransport(settings.retry.to_policy())
    enricher = VulnerabilityEnricher(transport, settings.cve_uri, max_workers=settings.lookup_workers)
    catalog = ReleaseCatalog(transport, enricher, settings.releases_uri)
    return ReleaseRepository(
        transport,
        catalog,
        release_conf_path=settings.release_conf,
        update_conf_path=settings.update_conf,
        version_uri=settings.version_uri,
    )


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    settings = load_settings(
        args.config,
        overrides={
            "update_conf": args.update_conf,
            "release_conf": args.release_conf,
            "port": args.port,
        },
    )
    logger.info(
        "Started with update-conf=%s release-conf=%s",
        settings.update_conf,
        settings.release_conf,
    )

    repo = build_repository(settings)
    poller = Poller(repo, interval=settings.poll_interval)
    poller.start()

    app = create_app(repo, settings.severity_threshold)
    logger.info("Starting http server on %d", settings.port)
    try:
        uvicorn.run(app, host="0.0.0.0", port=settings.port, log_level=args.log_level.lower())
    finally:
        poller.stop(timeout=1.0)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
