from __future__ import annotations

import enum
from dataclasses import dataclass
from urllib.parse import urlsplit

DEFAULT_CONCURRENCY = 10
DEFAULT_QPS = 20
DEFAULT_DURATION_SECONDS = 60
REQUEST_TIMEOUT_S = 5.0
PROGRESS_INTERVAL_S = 2.0


class ConfigError(ValueError):
    """Raised when run parameters are rejected before the run starts."""


class EndpointStrategy(str, enum.Enum):
    HEALTH = "health"
    ORDER = "order"
    MIXED = "mixed"


DEFAULT_ENDPOINT = EndpointStrategy.MIXED


@dataclass(frozen=True)
class RunConfig:
    """Validated parameters for a single load run."""

    target_url: str
    concurrency: int = DEFAULT_CONCURRENCY
    qps: int = DEFAULT_QPS
    duration_seconds: int = DEFAULT_DURATION_SECONDS
    endpoint: EndpointStrategy = DEFAULT_ENDPOINT

    def __post_init__(self) -> None:
        validate_target_url(self.target_url)
        for name in ("concurrency", "qps", "duration_seconds"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigError(f"{name} must be an integer, got {value!r}")
            if value < 1:
                raise ConfigError(f"{name} must be >= 1, got {value}")
        try:
            strategy = EndpointStrategy(self.endpoint)
        except ValueError as exc:
            choices = ", ".join(s.value for s in EndpointStrategy)
            raise ConfigError(
                f"endpoint must be one of {choices}, got {self.endpoint!r}"
            ) from exc
        object.__setattr__(self, "endpoint", strategy)


def validate_target_url(url: str) -> str:
    if not isinstance(url, str) or not url.strip():
        raise ConfigError("target URL is required")
    try:
        parts = urlsplit(url)
        # Accessing port forces validation of the netloc.
        parts.port
    except ValueError as exc:
        raise ConfigError(f"invalid URL: {url}") from exc
    if parts.scheme not in {"http", "https"} or not parts.hostname:
        raise ConfigError(f"invalid URL: {url}")
    if any(ch.isspace() for ch in url):
        raise ConfigError(f"invalid URL: {url}")
    return url


__all__ = [
    "ConfigError",
    "DEFAULT_CONCURRENCY",
    "DEFAULT_DURATION_SECONDS",
    "DEFAULT_ENDPOINT",
    "DEFAULT_QPS",
    "EndpointStrategy",
    "PROGRESS_INTERVAL_S",
    "REQUEST_TIMEOUT_S",
    "RunConfig",
    "validate_target_url",
]
