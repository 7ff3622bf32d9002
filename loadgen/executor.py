from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from urllib.parse import urljoin

import requests

from . import __version__
from .config import REQUEST_TIMEOUT_S
from .endpoints import RequestSpec

LOGGER = logging.getLogger("loadgen.executor")

ERROR_STATUS_LABEL = "error"
USER_AGENT = f"loadgen/{__version__}"


@dataclass(frozen=True)
class RequestOutcome:
    route: str
    status_code: int | None
    latency_ms: int
    succeeded: bool

    @property
    def status_label(self) -> str:
        if self.status_code is None:
            return ERROR_STATUS_LABEL
        return str(self.status_code)


class RequestExecutor:
    """Issue single requests against the target and classify the result.

    Each worker owns one executor, and with it one ``requests.Session``.
    Transport failures are returned as outcomes rather than raised.
    """

    def __init__(
        self,
        base_url: str,
        timeout_s: float = REQUEST_TIMEOUT_S,
        session: requests.Session | None = None,
    ) -> None:
        self._base_url = base_url
        self._timeout_s = timeout_s
        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": USER_AGENT})

    def url_for(self, spec: RequestSpec) -> str:
        return urljoin(self._base_url, spec.path)

    def execute(self, spec: RequestSpec) -> RequestOutcome:
        url = self.url_for(spec)
        started = time.monotonic()
        try:
            response = self._session.request(
                spec.method,
                url,
                json=spec.body,
                headers={"Content-Type": "application/json"},
                timeout=self._timeout_s,
            )
            # Drain the body so the connection can be reused.
            response.content
        except requests.Timeout:
            LOGGER.debug("%s %s timed out after %.1fs", spec.method, url, self._timeout_s)
            return RequestOutcome(
                route=spec.route,
                status_code=None,
                latency_ms=int(self._timeout_s * 1000),
                succeeded=False,
            )
        except requests.RequestException as exc:
            LOGGER.debug("%s %s failed: %r", spec.method, url, exc)
            return RequestOutcome(
                route=spec.route,
                status_code=None,
                latency_ms=_elapsed_ms(started),
                succeeded=False,
            )

        status = response.status_code
        return RequestOutcome(
            route=spec.route,
            status_code=status,
            latency_ms=_elapsed_ms(started),
            succeeded=200 <= status < 300,
        )

    def close(self) -> None:
        self._session.close()


def _elapsed_ms(started: float) -> int:
    return max(int((time.monotonic() - started) * 1000), 0)


__all__ = [
    "ERROR_STATUS_LABEL",
    "RequestExecutor",
    "RequestOutcome",
]
