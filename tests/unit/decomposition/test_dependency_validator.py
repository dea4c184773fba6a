"""Tests for the advisory dependency checks.

Creates SubTask objects directly (pure functions, no mocks needed).
"""

from __future__ import annotations

import logging
import time

import pytest

from script_orchestrator.decomposition.dependency_validator import (
    find_cyclic_subtasks,
    find_missing_dependencies,
    has_circular_dependency,
    validate_dependencies,
)
from script_orchestrator.models import SubTask


def _make_subtask(subtask_id: int, depends_on: list[int] | None = None) -> SubTask:
    """Create a minimal SubTask for testing."""
    return SubTask(id=subtask_id, description=f"Step {subtask_id}", depends_on=depends_on or [])


def test_linear_chain_is_clean() -> None:
    """1 <- 2 <- 3 has no missing references and no cycles."""
    subtasks = [_make_subtask(1), _make_subtask(2, [1]), _make_subtask(3, [2])]

    assert validate_dependencies(subtasks) == []


def test_diamond_is_not_a_cycle() -> None:
    """Two siblings sharing a prerequisite must not be flagged."""
    subtasks = [
        _make_subtask(1),
        _make_subtask(2, [1]),
        _make_subtask(3, [1]),
        _make_subtask(4, [2, 3]),
    ]

    assert find_cyclic_subtasks(subtasks) == []
    assert validate_dependencies(subtasks) == []


def test_self_reference_detected() -> None:
    subtasks = [_make_subtask(1, [1])]

    assert find_cyclic_subtasks(subtasks) == [1]


def test_two_node_cycle_terminates() -> None:
    subtasks = [_make_subtask(1, [2]), _make_subtask(2, [1])]

    assert find_cyclic_subtasks(subtasks) == [1, 2]


def test_three_node_cycle_terminates() -> None:
    subtasks = [_make_subtask(1, [3]), _make_subtask(2, [1]), _make_subtask(3, [2])]

    assert find_cyclic_subtasks(subtasks) == [1, 2, 3]


def test_node_leading_into_cycle_is_flagged() -> None:
    """A subtask outside the loop still reaches it."""
    subtasks = [_make_subtask(1, [2]), _make_subtask(2, [3]), _make_subtask(3, [2])]

    assert find_cyclic_subtasks(subtasks) == [1, 2, 3]


def test_missing_dependency_reported() -> None:
    subtasks = [_make_subtask(1), _make_subtask(2, [1, 99])]

    assert find_missing_dependencies(subtasks) == [(2, 99)]


def test_unknown_ids_have_no_outgoing_edges() -> None:
    assert has_circular_dependency(1, {1: [42]}) is False


@pytest.mark.parametrize(
    ("dependencies", "expected"),
    [
        ({1: []}, False),
        ({1: [2], 2: []}, False),
        ({1: [2], 2: [1]}, True),
        ({1: [1]}, True),
    ],
)
def test_has_circular_dependency(dependencies: dict[int, list[int]], expected: bool) -> None:
    assert has_circular_dependency(1, dependencies) is expected


def test_validate_dependencies_warns(caplog: pytest.LogCaptureFixture) -> None:
    """Both problem kinds are reported as warnings, never as errors."""
    subtasks = [_make_subtask(1, [2]), _make_subtask(2, [1]), _make_subtask(3, [7])]

    with caplog.at_level(logging.WARNING):
        warnings = validate_dependencies(subtasks)

    assert "Subtask 3 depends on non-existent subtask 7" in warnings
    assert "Circular dependency detected for subtask 1" in warnings
    assert "Circular dependency detected for subtask 2" in warnings
    assert len(warnings) == 3
    assert all(r.levelno == logging.WARNING for r in caplog.records)


def _dense_dag(count: int) -> list[SubTask]:
    """Every subtask depends on all earlier ones."""
    return [_make_subtask(i, list(range(1, i))) for i in range(1, count + 1)]


def test_dense_dag_checked_quickly() -> None:
    """Shared prerequisites are walked once, not once per path."""
    subtasks = _dense_dag(40)

    start = time.perf_counter()
    warnings = validate_dependencies(subtasks)
    elapsed = time.perf_counter() - start

    assert warnings == []
    assert elapsed < 1.0


def test_dense_graph_with_cycle_checked_quickly() -> None:
    subtasks = _dense_dag(40)
    subtasks[0] = _make_subtask(1, [40])

    start = time.perf_counter()
    cyclic = find_cyclic_subtasks(subtasks)
    elapsed = time.perf_counter() - start

    assert cyclic == list(range(1, 41))
    assert elapsed < 1.0


def test_cached_answers_are_reused() -> None:
    dependencies = {1: [], 2: [1], 3: [1, 2]}
    known: dict[int, bool] = {}

    assert has_circular_dependency(3, dependencies, known=known) is False
    assert known == {1: False, 2: False, 3: False}
