"""Retrying HTTP transport shared by every outbound call.

Wraps a ``requests.Session`` with a fixed per-request timeout and bounded
exponential backoff (via ``tenacity``).  Transport-level failures and
server error responses are retried; anything else is returned or raised
to the caller straight away.
"""

from dataclasses import dataclass
from typing import Any

import requests
from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from . import __version__
from .errors import TransportError
from .logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """Retry and timeout bounds for ``RetryingTransport``.

    Attributes:
        wait_min: First backoff step, in seconds.
        wait_max: Upper bound for any single backoff step, in seconds.
        max_retries: Retries after the first attempt.
        timeout: Per-request timeout, in seconds.
    """

    wait_min: float = 0.1
    wait_max: float = 2.0
    max_retries: int = 5
    timeout: float = 1.5


class RetryableStatus(Exception):
    """Internal marker for a response whose status code warrants a retry."""

    def __init__(self, response: requests.Response):
        self.response = response
        super().__init__(f"server responded {response.status_code}")


def is_retryable_status(status_code: int) -> bool:
    """Server errors and rate limiting are retried; ``501`` is not."""
    return status_code == 429 or (status_code >= 500 and status_code != 501)


def _is_retryable_exception(exc: BaseException) -> bool:
    if isinstance(exc, RetryableStatus):
        return True
    return isinstance(exc, (requests.ConnectionError, requests.Timeout))


def requests_session() -> requests.Session:
    """Create a session with the checker's default headers."""
    s = requests.Session()
    s.headers.update({"User-Agent": f"coreos-version-checker/{__version__}"})
    return s


class RetryingTransport:
    """HTTP client with bounded exponential backoff.

    Attributes:
        policy: Retry and timeout bounds.
        session: Underlying ``requests`` session.
    """

    def __init__(self, policy: RetryPolicy | None = None, session: requests.Session | None = None):
        self.policy = policy or RetryPolicy()
        self.session = session or requests_session()

    def _retrying(self, method: str, url: str) -> Retrying:
        def log_retry(retry_state: RetryCallState) -> None:
            outcome = retry_state.outcome
            logger.warning(
                "%s %s failed (%s), retry %d in %.2fs",
                method,
                url,
                outcome.exception() if outcome is not None else None,
                retry_state.attempt_number,
                retry_state.next_action.sleep if retry_state.next_action else 0.0,
            )

        return Retrying(
            stop=stop_after_attempt(self.policy.max_retries + 1),
            wait=wait_exponential(
                multiplier=self.policy.wait_min,
                min=self.policy.wait_min,
                max=self.policy.wait_max,
            ),
            retry=retry_if_exception(_is_retryable_exception),
            before_sleep=log_retry,
        )

    def do(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        """Send a request, retrying transient failures.

        Args:
            method: HTTP method.
            url: Target URL.
            **kwargs: Passed through to ``requests.Session.request``.

        Returns:
            The final response.  Non-retryable error statuses (4xx) are
            returned as-is.

        Raises:
            TransportError: on a non-retryable transport failure or once
                the retry budget is exhausted.
        """
        try:
            for attempt in self._retrying(method, url):
                with attempt:
                    response = self.session.request(method, url, timeout=self.policy.timeout, **kwargs)
                    if is_retryable_status(response.status_code):
                        raise RetryableStatus(response)
                    return response
        except RetryError as exc:
            last = exc.last_attempt.exception()
            attempts = exc.last_attempt.attempt_number
            raise TransportError(f"{method} {url} giving up after {attempts} attempt(s): {last}") from last
        except requests.RequestException as exc:
            raise TransportError(f"{method} {url} failed: {exc}") from exc
        raise TransportError(f"{method} {url} was never attempted")

    def get(self, url: str) -> requests.Response:
        """GET *url*, raising ``TransportError`` unless the status is 200."""
        response = self.do("GET", url)
        if response.status_code != 200:
            raise TransportError(f"Got {response.status_code} requesting {url}")
        return response

    def get_json(self, url: str) -> Any:
        """GET *url* and decode the body as JSON.

        Raises:
            TransportError: on network failure or a non-200 status.
            ValueError: if the body is not valid JSON.
        """
        return self.get(url).json()

    def get_text(self, url: str) -> str:
        """GET *url* and return the body as text."""
        return self.get(url).text
