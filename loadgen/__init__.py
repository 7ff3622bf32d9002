"""
Concurrent, rate-controlled HTTP load generator.

Drives a pool of worker threads against a target service's health and order
routes for a fixed duration, prints live progress, and finishes with a
latency/throughput/error summary.
"""

__version__ = "1.0.0"

from .main import run_load_test  # noqa: E402

__all__ = ["__version__", "run_load_test"]
