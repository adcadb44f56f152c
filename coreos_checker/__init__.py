"""coreos-version-checker: CoreOS release and CVE severity monitor.

This package polls the host's installed CoreOS release and the latest
release on its update channel, scores the CVEs named in each release's
notes, and exposes the result through health / good-to-go endpoints.
"""

__version__ = "0.1.0"
