"""Domain models for the script orchestration pipeline.

This module defines the data structures passed between the pipeline
components. Each result type is produced by exactly one component:

    TaskDecomposer       -> DecompositionResult
    SpecialistSearchAgent -> SearchResult
    ScriptAssembler      -> AssemblyResult
    ScriptOrchestrator   -> OrchestrationResult

Data flows strictly forward:
    request -> subtasks -> per-subtask search results -> assembled script
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .exceptions import InvalidStatusTransition


class SubTaskStatus(Enum):
    """Lifecycle of a subtask during the search phase.

    - PENDING: Created by the decomposer, not yet picked up
    - IN_PROGRESS: A specialist agent is searching for it
    - COMPLETED: The search returned (possibly with zero commands)
    - FAILED: The search timed out or raised
    """

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset({SubTaskStatus.COMPLETED, SubTaskStatus.FAILED})


@dataclass
class SubTask:
    """One atomic unit of a decomposed user request.

    Attributes:
        id: Positive identifier, unique within one decomposition.
        description: Short description of the unit of work. Used verbatim
            as the documentation search query.
        depends_on: Ids of subtasks that must come before this one.
        status: Current lifecycle status. Owned by the single agent
            invocation processing the subtask.
    """

    id: int
    description: str
    depends_on: list[int] = field(default_factory=list)
    status: SubTaskStatus = SubTaskStatus.PENDING

    @property
    def is_terminal(self) -> bool:
        """Whether the subtask has reached COMPLETED or FAILED."""
        return self.status in TERMINAL_STATUSES

    def set_status(self, status: SubTaskStatus) -> None:
        """Move the subtask to a new status.

        Args:
            status: The status to move to.

        Raises:
            InvalidStatusTransition: If the subtask is already terminal and
                the new status differs from the current one.
        """
        if self.is_terminal and status is not self.status:
            raise InvalidStatusTransition(
                f"Subtask {self.id} is {self.status.value} and cannot become {status.value}"
            )
        self.status = status

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "description": self.description,
            "depends_on": list(self.depends_on),
            "status": self.status.value,
        }


@dataclass
class DecompositionResult:
    """Output of a single decomposition call.

    Attributes:
        subtasks: Subtasks in the order the LLM returned them.
        dependencies: Subtask id -> prerequisite ids (fast lookup map).
        success: Whether decomposition produced at least one subtask.
        error_message: Description of the failure when success is False.
    """

    subtasks: list[SubTask] = field(default_factory=list)
    dependencies: dict[int, list[int]] = field(default_factory=dict)
    success: bool = False
    error_message: str = ""

    @classmethod
    def failure(cls, message: str) -> DecompositionResult:
        return cls(success=False, error_message=message)


@dataclass(frozen=True)
class CommandMatch:
    """A single documentation entry returned by the search service."""

    name: str
    syntax: str = ""
    parameters: str = ""
    description: str = ""
    source_file: str = ""
    license_tier: str = ""
    category: str = ""
    plugin_name: str = ""
    score: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "syntax": self.syntax,
            "parameters": self.parameters,
            "description": self.description,
            "source_file": self.source_file,
            "license_tier": self.license_tier,
            "category": self.category,
            "plugin_name": self.plugin_name,
            "score": self.score,
        }


@dataclass(frozen=True)
class SearchResult:
    """Result of one specialist agent invocation.

    Attributes:
        sub_task_id: Id of the subtask that was searched.
        commands: Matches found, best first. May be empty on success.
        success: False when the search timed out or raised.
        error_message: Failure description when success is False.
        execution_time: Wall-clock seconds spent in the agent.
    """

    sub_task_id: int
    commands: tuple[CommandMatch, ...] = ()
    success: bool = False
    error_message: str = ""
    execution_time: float = 0.0


@dataclass
class AssemblyResult:
    """Output of the script assembler."""

    script: str = ""
    success: bool = False
    error_message: str = ""
    warnings: list[str] = field(default_factory=list)


@dataclass
class OrchestrationMetrics:
    """Metrics collected during one orchestration run.

    All durations are in seconds. Fields for phases that never ran stay at
    zero, so failed runs still report whatever completed before the failure.
    """

    sub_task_count: int = 0
    total_commands_found: int = 0
    failed_search_count: int = 0
    decomposition_time: float = 0.0
    search_time: float = 0.0
    assembly_time: float = 0.0
    total_time: float = 0.0
    estimated_cost: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "sub_task_count": self.sub_task_count,
            "total_commands_found": self.total_commands_found,
            "failed_search_count": self.failed_search_count,
            "decomposition_time": round(self.decomposition_time, 4),
            "search_time": round(self.search_time, 4),
            "assembly_time": round(self.assembly_time, 4),
            "total_time": round(self.total_time, 4),
            "estimated_cost": round(self.estimated_cost, 4),
        }


@dataclass
class OrchestrationResult:
    """Top-level result returned by ScriptOrchestrator.process_request()."""

    script: str = ""
    success: bool = False
    metrics: OrchestrationMetrics = field(default_factory=OrchestrationMetrics)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-ready dictionary.

        Returns:
            Dictionary with script, success, metrics, errors and warnings.
        """
        return {
            "script": self.script,
            "success": self.success,
            "metrics": self.metrics.to_dict(),
            "errors": list(self.errors),
            "warnings": list(self.warnings),
        }
