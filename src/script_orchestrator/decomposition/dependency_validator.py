"""Advisory dependency checks for decomposed subtasks.

Both checks only report problems; they never reject a decomposition. A
reference to an unknown subtask and a dependency cycle are logged as
warnings by validate_dependencies().

This module is deterministic (zero LLM cost).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..models import SubTask

logger = logging.getLogger(__name__)


def find_missing_dependencies(subtasks: list["SubTask"]) -> list[tuple[int, int]]:
    """Find depends_on references to subtasks that do not exist.

    Args:
        subtasks: Subtasks from one decomposition.

    Returns:
        List of (subtask_id, missing_dependency_id) pairs in input order.
    """
    known_ids = {st.id for st in subtasks}
    return [
        (st.id, dep_id)
        for st in subtasks
        for dep_id in st.depends_on
        if dep_id not in known_ids
    ]


def has_circular_dependency(
    subtask_id: int,
    dependencies: dict[int, list[int]],
    path: frozenset[int] = frozenset(),
    known: dict[int, bool] | None = None,
) -> bool:
    """Check whether following depends_on edges from subtask_id revisits a node.

    The visited set is per path: each branch gets its own copy, so two
    siblings sharing a prerequisite (a diamond) are not a cycle. Unknown
    ids have no outgoing edges. Whether a cycle is reachable from a node
    does not depend on the path that led there, so each settled node is
    recorded in ``known`` and never walked again. The walk is linear in
    the number of edges.

    Args:
        subtask_id: Subtask to start from.
        dependencies: Subtask id -> prerequisite ids.
        path: Ids already on the current path.
        known: Subtask id -> cached answer, shared across calls.

    Returns:
        True if a cycle is reachable from subtask_id.
    """
    if subtask_id in path:
        return True
    if known is None:
        known = {}
    if subtask_id in known:
        return known[subtask_id]

    next_path = path | {subtask_id}
    cyclic = any(
        has_circular_dependency(dep_id, dependencies, next_path, known)
        for dep_id in dependencies.get(subtask_id, [])
    )
    known[subtask_id] = cyclic
    return cyclic


def find_cyclic_subtasks(subtasks: list["SubTask"]) -> list[int]:
    """Return ids of subtasks from which a dependency cycle is reachable.

    Args:
        subtasks: Subtasks from one decomposition.

    Returns:
        Subtask ids in input order.
    """
    dependencies = {st.id: list(st.depends_on) for st in subtasks}
    known: dict[int, bool] = {}
    return [st.id for st in subtasks if has_circular_dependency(st.id, dependencies, known=known)]


def validate_dependencies(subtasks: list["SubTask"]) -> list[str]:
    """Run all dependency checks and log a warning per problem.

    Args:
        subtasks: Subtasks from one decomposition.

    Returns:
        Human-readable warning strings. Empty if the graph is a clean DAG.
    """
    warnings: list[str] = []

    for subtask_id, dep_id in find_missing_dependencies(subtasks):
        message = f"Subtask {subtask_id} depends on non-existent subtask {dep_id}"
        logger.warning(message)
        warnings.append(message)

    for subtask_id in find_cyclic_subtasks(subtasks):
        message = f"Circular dependency detected for subtask {subtask_id}"
        logger.warning(message)
        warnings.append(message)

    return warnings
