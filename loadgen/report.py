from __future__ import annotations

import pandas as pd

from .collector import RunStats
from .config import RunConfig
from .endpoints import HEALTH_ROUTE, ORDER_ROUTE

RULE = "=" * 42
THIN_RULE = "-" * 42
PERCENTILES = (0.50, 0.95, 0.99)


def latency_percentiles(samples: pd.DataFrame) -> dict[str, float]:
    """Return p50/p95/p99 latency in milliseconds over the recorded samples."""
    if samples.empty or "latency_ms" not in samples.columns:
        return {}
    latencies = pd.to_numeric(samples["latency_ms"])
    quantiles = latencies.quantile(list(PERCENTILES))
    return {
        f"p{round(q * 100)}": float(value)
        for q, value in zip(PERCENTILES, quantiles.to_list())
    }


def format_banner(config: RunConfig) -> str:
    lines = [
        RULE,
        "  HTTP Load Generator",
        RULE,
        f"Target:       {config.target_url}",
        f"Concurrency:  {config.concurrency} workers",
        f"QPS:          {config.qps} requests/sec",
        f"Duration:     {config.duration_seconds} seconds",
        f"Endpoint:     {config.endpoint.value}",
        RULE,
    ]
    return "\n".join(lines) + "\n"


def format_report(
    stats: RunStats,
    config: RunConfig,
    elapsed_s: float | None = None,
    percentiles: dict[str, float] | None = None,
) -> str:
    actual_qps = stats.total_requests / config.duration_seconds
    health_attempts = stats.route_attempts.get(HEALTH_ROUTE, 0)
    order_attempts = stats.route_attempts.get(ORDER_ROUTE, 0)

    lines = [
        "",
        RULE,
        "  Load Test Results",
        RULE,
        f"Total Requests:    {stats.total_requests}",
        f"Successful:        {stats.total_successes} ({stats.success_rate:.2f}%)",
        f"Errors:            {stats.total_errors}",
        f"Health Checks:     {stats.health_check_count} (of {health_attempts} sent)",
        f"Orders Created:    {stats.order_count} (of {order_attempts} sent)",
        THIN_RULE,
        f"Actual QPS:        {actual_qps:.2f}",
    ]
    if elapsed_s is not None:
        lines.append(f"Elapsed:           {elapsed_s:.1f} s")
    lines.extend(
        [
            f"Avg Latency:       {stats.average_latency_ms:.2f} ms",
            f"Min Latency:       {stats.reported_min_latency_ms} ms",
            f"Max Latency:       {stats.max_latency_ms} ms",
        ]
    )
    for name, value in (percentiles or {}).items():
        lines.append(f"{name.upper() + ' Latency:':<19}{value:.2f} ms")
    lines.append(THIN_RULE)
    lines.append("Status Codes:")
    for label in sorted(stats.status_codes):
        lines.append(f"  {label}: {stats.status_codes[label]}")
    lines.append(RULE)
    return "\n".join(lines) + "\n"


__all__ = ["format_banner", "format_report", "latency_percentiles"]
