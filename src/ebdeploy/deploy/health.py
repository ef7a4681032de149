"""Health-endpoint prober.

Confirms that a deployed environment actually serves the application:

1. **Status check:** ``GET http://<cname><health_page>`` with
   ``Cache-Control: no-cache``. Anything but 200 is logged and retried.
2. **Content check:** only when an expectation is configured. A ``str``
   must equal the full UTF-8 body exactly; a compiled pattern must match
   anywhere in the body (``re.search``). A mismatch logs the body and
   retries from the status check.

Both layers share one overall deadline. Connection errors (DNS not yet
propagated, refused connections, read timeouts) count as a failed status
check. Without a health page the prober returns immediately and issues no
request.
"""

from __future__ import annotations

import asyncio
import re
import time

import httpx

from ebdeploy.core.errors import ConvergenceTimeoutError
from ebdeploy.core.logging import get_logger
from ebdeploy.deploy.config import DEFAULT_HEALTH_POLLING, DeploymentRequest, PollingConfig
from ebdeploy.deploy.models import EnvironmentSnapshot
from ebdeploy.deploy.polling import Clock, PollOutcome, Sleep, poll_until

logger = get_logger(__name__)

NO_CACHE_HEADERS = {"Cache-Control": "no-cache"}
REQUEST_TIMEOUT_SECONDS = 10.0


def body_matches(expected: str | re.Pattern[str], body: str) -> bool:
    """Compare a response body against a literal or pattern expectation."""
    if isinstance(expected, re.Pattern):
        return expected.search(body) is not None
    return expected == body


class HealthProber:
    """Probe an environment's health page until it passes or times out.

    Parameters
    ----------
    health_page
        Path starting with ``/``; None turns the prober into a no-op.
    expected_contents
        Literal body or compiled pattern; None skips the content check.
    polling
        Interval and overall timeout (default 5 s / 5 min).
    http_client
        Shared ``httpx.AsyncClient``; one is created per probe when None.
    """

    def __init__(
        self,
        health_page: str | None,
        expected_contents: str | re.Pattern[str] | None = None,
        *,
        polling: PollingConfig = DEFAULT_HEALTH_POLLING,
        http_client: httpx.AsyncClient | None = None,
        sleep: Sleep = asyncio.sleep,
        clock: Clock = time.monotonic,
    ) -> None:
        self.health_page = health_page
        self.expected_contents = expected_contents
        self.polling = polling
        self._http_client = http_client
        self._sleep = sleep
        self._clock = clock

    @classmethod
    def from_request(cls, request: DeploymentRequest, **kwargs) -> HealthProber:
        return cls(
            request.health_page,
            request.health_page_contents,
            polling=request.health_polling,
            **kwargs,
        )

    @property
    def enabled(self) -> bool:
        return bool(self.health_page)

    def url_for(self, environment: EnvironmentSnapshot) -> str:
        return f"http://{environment.cname}{self.health_page}"

    async def probe(self, environment: EnvironmentSnapshot) -> None:
        """Wait until the health page of ``environment`` passes both checks."""
        if not self.enabled:
            return

        url = self.url_for(environment)
        logger.info(
            "health.waiting",
            url=url,
            timeout_minutes=round(self.polling.timeout_seconds / 60),
        )

        if self._http_client is not None:
            await self._poll(self._http_client, url)
            return
        async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT_SECONDS) as client:
            await self._poll(client, url)

    async def _poll(self, client: httpx.AsyncClient, url: str) -> None:
        statuses: list[int] = []

        async def check() -> PollOutcome[bool]:
            return await self._check_once(client, url, statuses)

        try:
            await poll_until(
                check,
                polling=self.polling,
                operation=f"health page {url}",
                sleep=self._sleep,
                clock=self._clock,
                wait_first=False,
            )
        except ConvergenceTimeoutError as exc:
            exc.with_context(url=url, http_status=statuses[-1] if statuses else None)
            raise

    async def _check_once(
        self, client: httpx.AsyncClient, url: str, statuses: list[int]
    ) -> PollOutcome[bool]:
        logger.debug("health.checking_status", url=url)
        try:
            response = await client.get(url, headers=NO_CACHE_HEADERS)
        except httpx.TransportError as exc:
            logger.info("health.unreachable", url=url, error=str(exc))
            return PollOutcome.pending(str(exc))

        statuses.append(response.status_code)
        if response.status_code != 200:
            logger.info("health.status", url=url, status_code=response.status_code)
            return PollOutcome.pending(f"status {response.status_code}")

        logger.info("health.status_ok", url=url)
        if self.expected_contents is None:
            return PollOutcome.satisfied(True)

        expected = self.expected_contents
        body = response.content.decode("utf-8", errors="replace")
        if body_matches(expected, body):
            logger.info("health.contents_ok", url=url)
            return PollOutcome.satisfied(True)

        logger.warning(
            "health.contents_mismatch",
            url=url,
            expected=expected.pattern if isinstance(expected, re.Pattern) else expected,
            got=body,
        )
        return PollOutcome.pending("contents mismatch")
