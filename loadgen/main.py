from __future__ import annotations

import argparse
import contextlib
import logging
import os
import sys
import threading
import time
from dataclasses import dataclass
from typing import TextIO

from .collector import RunStats, StatsCollector
from .config import (
    DEFAULT_CONCURRENCY,
    DEFAULT_DURATION_SECONDS,
    DEFAULT_ENDPOINT,
    DEFAULT_QPS,
    PROGRESS_INTERVAL_S,
    ConfigError,
    EndpointStrategy,
    RunConfig,
)
from .coordinator import ShutdownCoordinator
from .load import ExecutorFactory, LoadGenerator, default_executor_factory
from .progress import ProgressReporter
from .report import format_banner, format_report, latency_percentiles

LOGGER = logging.getLogger("loadgen")

COMPLETED = "completed"
CANCEL_POLL_INTERVAL_S = 0.2


@dataclass
class RunResult:
    stats: RunStats
    report: str
    reason: str
    elapsed_s: float

    @property
    def cancelled(self) -> bool:
        return self.reason != COMPLETED


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="loadgen",
        description="Generate concurrent, rate-controlled HTTP load against a target service",
    )
    parser.add_argument("target_url", help="Base URL of the target service")
    parser.add_argument(
        "--concurrency",
        type=int,
        help=f"Number of concurrent workers (default: {DEFAULT_CONCURRENCY})",
    )
    parser.add_argument(
        "--qps",
        type=int,
        help=f"Queries per second across all workers (default: {DEFAULT_QPS})",
    )
    parser.add_argument(
        "--duration",
        type=int,
        help=f"Test duration in seconds (default: {DEFAULT_DURATION_SECONDS})",
    )
    parser.add_argument(
        "--endpoint",
        choices=[strategy.value for strategy in EndpointStrategy],
        help=f"Endpoint to test (default: {DEFAULT_ENDPOINT.value})",
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("LOADGEN_LOG_LEVEL", "WARNING"),
        help="Logging level",
    )
    return parser.parse_args(argv)


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def _int_setting(value: int | None, env_name: str, default: int) -> int:
    if value is not None:
        return value
    raw = os.environ.get(env_name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        print(
            f"invalid {env_name} value {raw!r}; defaulting to {default}",
            file=sys.stderr,
        )
        return default


def _endpoint_setting(value: str | None) -> EndpointStrategy:
    if value is not None:
        return EndpointStrategy(value)
    raw = os.environ.get("LOADGEN_ENDPOINT")
    if raw is None:
        return DEFAULT_ENDPOINT
    try:
        return EndpointStrategy(raw.strip().lower())
    except ValueError:
        print(
            f"invalid LOADGEN_ENDPOINT value {raw!r}; defaulting to {DEFAULT_ENDPOINT.value}",
            file=sys.stderr,
        )
        return DEFAULT_ENDPOINT


def build_config(args: argparse.Namespace) -> RunConfig:
    return RunConfig(
        target_url=args.target_url,
        concurrency=_int_setting(args.concurrency, "LOADGEN_CONCURRENCY", DEFAULT_CONCURRENCY),
        qps=_int_setting(args.qps, "LOADGEN_QPS", DEFAULT_QPS),
        duration_seconds=_int_setting(
            args.duration, "LOADGEN_DURATION", DEFAULT_DURATION_SECONDS
        ),
        endpoint=_endpoint_setting(args.endpoint),
    )


def run_load_test(
    config: RunConfig,
    stream: TextIO | None = None,
    executor_factory: ExecutorFactory = default_executor_factory,
    install_signal_handlers: bool = True,
    progress_interval_s: float = PROGRESS_INTERVAL_S,
) -> RunResult:
    """Drive one run to completion or cancellation and write its report.

    The report is written exactly once, by whichever of the deadline or a
    cancellation reaches the coordinator first.
    """
    stream = stream or sys.stdout
    output_lock = threading.Lock()
    collector = StatsCollector()
    generator = LoadGenerator(config, collector.record, executor_factory=executor_factory)
    reporter: ProgressReporter | None = None
    results: list[RunResult] = []

    def finalize(reason: str) -> None:
        generator.stop()
        if reporter is not None:
            reporter.stop()
        stats, samples = collector.snapshot_with_samples()
        started_at = generator.started_at if generator.started_at is not None else time.monotonic()
        elapsed_s = min(time.monotonic() - started_at, float(config.duration_seconds))
        report = format_report(
            stats,
            config,
            elapsed_s=elapsed_s,
            percentiles=latency_percentiles(samples),
        )
        with output_lock:
            if reason != COMPLETED:
                stream.write(f"\n\nTest interrupted by user ({reason})\n")
            stream.write(report)
            stream.flush()
        results.append(RunResult(stats=stats, report=report, reason=reason, elapsed_s=elapsed_s))

    coordinator = ShutdownCoordinator(on_finalize=finalize)
    signal_scope = (
        coordinator.handle_signals() if install_signal_handlers else contextlib.nullcontext()
    )

    stream.write(format_banner(config))
    stream.write("\nStarting load test...\n\n")
    stream.flush()

    with signal_scope:
        generator.start()
        reporter = ProgressReporter(
            collector,
            duration_s=config.duration_seconds,
            started_at=generator.started_at,
            stream=stream,
            output_lock=output_lock,
            interval_s=progress_interval_s,
        )
        reporter.start()
        while not generator.wait(timeout_s=CANCEL_POLL_INTERVAL_S):
            if coordinator.cancelled:
                break
        reason = coordinator.cancel_reason if coordinator.cancelled else COMPLETED
        coordinator.finalize(reason or "cancelled")

    if coordinator.cancelled:
        LOGGER.warning("Run cancelled (%s); in-flight requests abandoned", coordinator.cancel_reason)
    return results[0]


def run(argv: list[str] | None = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    setup_logging(args.log_level)

    try:
        config = build_config(args)
    except ConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        print(
            "Usage: loadgen <TARGET_URL> [--concurrency N] [--qps N] "
            "[--duration SECONDS] [--endpoint health|order|mixed]",
            file=sys.stderr,
        )
        return 1

    run_load_test(config)
    return 0


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
