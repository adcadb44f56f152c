"""Background poll loop driving the release repository.

Each cycle refreshes channel, installed release and latest release in
that order; the first failure ends the cycle and becomes the
repository's last error.  Cycles start on a fixed real-time cadence.
"""

import threading
import time
from typing import Callable

from .errors import CheckerError
from .logger import get_logger
from .repository import ReleaseRepository

logger = get_logger(__name__)

DEFAULT_INTERVAL = 30 * 60.0


def poll_releases(repo: ReleaseRepository) -> CheckerError | None:
    """Run one refresh cycle.

    Args:
        repo: Repository to refresh.

    Returns:
        The error that aborted the cycle, or None if every step succeeded.
    """
    steps = (
        (repo.refresh_channel, "Failed to retrieve the channel from the update config."),
        (repo.refresh_installed_version, "Failed to retrieve the currently installed version."),
        (repo.refresh_latest_version, "Failed to retrieve the latest remote CoreOS release."),
    )
    for step, message in steps:
        try:
            step()
        except CheckerError as exc:
            logger.error("%s %s", message, exc)
            return exc
    return None


def next_deadline(deadline: float, now: float, interval: float) -> float:
    """Advance a tick *deadline* after a cycle that finished at *now*.

    Ticks fall on ``start + k * interval``.  If the cycle overran one or
    more ticks, the most recent missed tick is returned so the next cycle
    starts immediately; earlier missed ticks are dropped.
    """
    deadline += interval
    if deadline < now:
        deadline += ((now - deadline) // interval) * interval
    return deadline


class Poller:
    """Runs ``poll_releases`` now and then once per interval, on one thread.

    Attributes:
        repo: Repository being refreshed.
        interval: Seconds between cycle starts.
    """

    def __init__(
        self,
        repo: ReleaseRepository,
        interval: float = DEFAULT_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ):
        if interval <= 0:
            raise ValueError("Poll interval must be positive")
        self.repo = repo
        self.interval = interval
        self._clock = clock
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def run_once(self) -> BaseException | None:
        """Run a cycle and record its outcome as the repository's last error."""
        try:
            err: BaseException | None = poll_releases(self.repo)
        except Exception as exc:
            logger.exception("Unexpected failure while polling releases")
            err = exc
        self.repo.set_last_error(err)
        return err

    def run(self) -> None:
        """Poll until ``stop()`` is called.  Blocks the calling thread."""
        deadline = self._clock()
        self.run_once()
        while True:
            deadline = next_deadline(deadline, self._clock(), self.interval)
            if self._stop.wait(max(0.0, deadline - self._clock())):
                return
            self.run_once()

    def start(self) -> threading.Thread:
        """Start polling on a daemon thread."""
        if self._thread is not None and self._thread.is_alive():
            return self._thread
        self._stop.clear()
        self._thread = threading.Thread(target=self.run, name="release-poller", daemon=True)
        self._thread.start()
        logger.info("Polling CoreOS releases every %.0f seconds", self.interval)
        return self._thread

    def stop(self, timeout: float | None = None) -> None:
        """Stop after the current cycle, waiting up to *timeout* seconds."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
