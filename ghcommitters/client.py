"""HTTP session and GraphQL transport for api.github.com."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional

import requests

from ghcommitters import __version__
from ghcommitters.errors import AuthError, QueryError

logger = logging.getLogger("ghcommitters.client")

MAX_RATE_LIMIT_WAIT_S = 300
DEFAULT_RATE_LIMIT_WAIT_S = 60


def build_session(token: str) -> requests.Session:
    session = requests.Session()
    session.headers.update({
        "Authorization": f"Bearer {token}",
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": "2022-11-28",
        "User-Agent": f"gh-committers/{__version__}",
    })
    return session


def _is_rate_limited(resp: requests.Response) -> bool:
    if resp.status_code not in (403, 429):
        return False
    if resp.headers.get("Retry-After") or resp.headers.get("X-RateLimit-Remaining") == "0":
        return True
    return "rate limit" in resp.text.lower()


def _rate_limit_wait(resp: requests.Response, now: float) -> int:
    """Seconds to wait from Retry-After or X-RateLimit-Reset, 60 if neither parses."""
    retry_after = resp.headers.get("Retry-After", "").strip()
    if retry_after.isdigit():
        return max(int(retry_after), 1)
    reset = resp.headers.get("X-RateLimit-Reset", "").strip()
    if not reset.isdigit():
        return DEFAULT_RATE_LIMIT_WAIT_S
    return max(int(reset) - int(now), 1)


class GraphQLClient:
    """Executes one GraphQL document per call against a single endpoint.

    Waits out explicit GitHub rate-limit responses a bounded number of times;
    every other failure is raised as :class:`QueryError` (or
    :class:`AuthError` for a rejected token) without retrying.
    """

    def __init__(
        self,
        session: requests.Session,
        endpoint: str = "https://api.github.com/graphql",
        *,
        timeout: float = 30.0,
        max_rate_limit_waits: int = 5,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._session = session
        self._endpoint = endpoint
        self._timeout = timeout
        self._max_waits = max_rate_limit_waits
        self._sleep = sleep
        self._clock = clock

    def execute(self, query: str, variables: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        payload = {"query": query, "variables": variables or {}}
        waits = 0

        while True:
            start = time.perf_counter()
            try:
                resp = self._session.post(self._endpoint, json=payload, timeout=self._timeout)
            except requests.RequestException as exc:
                raise QueryError(f"GraphQL request failed: {exc}") from exc

            if _is_rate_limited(resp):
                wait = _rate_limit_wait(resp, self._clock())
                waits += 1
                if waits > self._max_waits:
                    raise QueryError(
                        "GitHub rate limit exceeded after retries",
                        status_code=resp.status_code,
                        rate_limit_reset=int(self._clock()) + wait,
                    )
                logger.warning("GitHub rate limit hit, waiting %ds", min(wait, MAX_RATE_LIMIT_WAIT_S))
                self._sleep(min(wait, MAX_RATE_LIMIT_WAIT_S))
                continue
            break

        duration = round(time.perf_counter() - start, 3)
        logger.debug("GraphQL request completed in %.3fs", duration, extra={"duration_s": duration})

        if resp.status_code == 401:
            raise AuthError("Your GitHub token seems to be invalid.")
        if resp.status_code >= 400:
            raise QueryError(
                f"GraphQL request failed with HTTP {resp.status_code}: {resp.text[:200]}",
                status_code=resp.status_code,
            )

        try:
            body = resp.json()
        except ValueError as exc:
            raise QueryError("GraphQL response was not valid JSON", status_code=resp.status_code) from exc

        if not isinstance(body, dict):
            raise QueryError("GraphQL response was not a JSON object", status_code=resp.status_code)
        errors = body.get("errors")
        if errors:
            messages = "; ".join(
                str(e.get("message", e)) if isinstance(e, dict) else str(e) for e in errors
            )
            raise QueryError(f"GraphQL errors: {messages}", status_code=resp.status_code)
        data = body.get("data")
        if not isinstance(data, dict):
            raise QueryError("GraphQL response has no data", status_code=resp.status_code)
        return data
