"""Root conftest.py for pytest configuration.

Resets the process-wide metrics collector around every test, since the CLI
and some orchestrator tests record runs into it.
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from script_orchestrator.metrics import reset_metrics_collector


@pytest.fixture(autouse=True)
def _reset_metrics_singleton() -> Iterator[None]:
    """Give each test a fresh global metrics collector."""
    reset_metrics_collector()
    yield
    reset_metrics_collector()
