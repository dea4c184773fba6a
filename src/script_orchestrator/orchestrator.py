"""Orchestrator for the decompose -> search -> assemble pipeline.

The pipeline is a linear state machine:

    Start -> Decompose -> [fail -> End]
          -> ParallelSearch -> [failure rate > 50% -> End]
          -> Aggregate -> Assemble -> [fail -> End]
          -> End(success)

Each phase is timed independently. Durations and the cost estimate are
filled in on every exit path, so failed runs still report what completed.
process_request() is the outermost exception boundary: it always returns an
OrchestrationResult and never raises.
"""

from __future__ import annotations

import logging
import time

from .assembler import ScriptAssembler
from .config import OrchestratorSettings
from .decomposition import TaskDecomposer
from .llm_client import LLMClient
from .metrics import MetricsCollector
from .models import (
    CommandMatch,
    OrchestrationMetrics,
    OrchestrationResult,
    SearchResult,
    SubTask,
)
from .parallel_executor import ParallelAgentExecutor
from .search import DocumentationSearch, SpecialistSearchAgent

logger = logging.getLogger(__name__)

# Rough per-call cost estimates (USD)
DECOMPOSITION_COST = 0.002
SEARCH_COST_PER_AGENT = 0.005
ASSEMBLY_COST = 0.003

FAILURE_THRESHOLD_MESSAGE = "More than 50% of specialist agents failed"
EMPTY_SCRIPT_MESSAGE = "Script assembly produced an empty script"


class ScriptOrchestrator:
    """Turns a natural-language request into a script.

    Collaborators are injected; the orchestrator keeps no state between
    requests apart from its settings.
    """

    def __init__(
        self,
        decomposer: TaskDecomposer,
        assembler: ScriptAssembler,
        search_client: DocumentationSearch,
        settings: OrchestratorSettings | None = None,
        metrics_collector: MetricsCollector | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            decomposer: Task decomposer (one LLM call per request).
            assembler: Script assembler (at most one LLM call per request).
            search_client: Documentation search collaborator shared by agents.
            settings: Orchestrator settings (defaults if not provided).
            metrics_collector: Optional collector notified after every run.
        """
        self.decomposer = decomposer
        self.assembler = assembler
        self.search_client = search_client
        self.settings = settings or OrchestratorSettings()
        self.metrics_collector = metrics_collector
        self.executor = ParallelAgentExecutor(self.settings.max_concurrent_agents)

    async def process_request(self, user_request: str) -> OrchestrationResult:
        """Run the full pipeline for one request.

        Args:
            user_request: Natural-language request.

        Returns:
            OrchestrationResult. success=False runs carry errors, the
            warnings gathered so far and partial metrics.
        """
        total_start = time.perf_counter()
        metrics = OrchestrationMetrics()
        warnings: list[str] = []

        logger.info("Starting multi-agent orchestration for request: %s", user_request)

        try:
            result = await self._run_pipeline(user_request, metrics, warnings)
        except Exception as e:
            logger.exception("Multi-agent orchestration failed")
            result = OrchestrationResult(
                success=False,
                errors=[f"Orchestration failed: {e}"],
                warnings=warnings,
                metrics=metrics,
            )

        metrics.total_time = time.perf_counter() - total_start

        if result.success:
            logger.info(
                "Multi-agent orchestration completed successfully in %.0fms",
                metrics.total_time * 1000,
            )
        try:
            if self.settings.logging.verbose_metrics:
                self._log_metrics(metrics)
            if self.metrics_collector is not None:
                self.metrics_collector.record_run(result)
        except Exception as e:
            logger.error("Failed to record orchestration metrics: %s", e)

        return result

    async def _run_pipeline(
        self,
        user_request: str,
        metrics: OrchestrationMetrics,
        warnings: list[str],
    ) -> OrchestrationResult:
        # Step 1: decompose (always, N >= 1 on success)
        phase_start = time.perf_counter()
        decomposition = await self.decomposer.decompose(user_request)
        metrics.decomposition_time = time.perf_counter() - phase_start
        metrics.estimated_cost += DECOMPOSITION_COST

        if not decomposition.success:
            logger.error("Task decomposition failed: %s", decomposition.error_message)
            return OrchestrationResult(
                success=False,
                errors=[decomposition.error_message],
                metrics=metrics,
            )

        subtasks = decomposition.subtasks
        metrics.sub_task_count = len(subtasks)
        logger.info("Decomposed into %d subtasks", len(subtasks))

        if len(subtasks) > self.settings.max_sub_tasks_per_request:
            logger.warning(
                "Decomposition returned %d subtasks, above the advisory limit of %d",
                len(subtasks),
                self.settings.max_sub_tasks_per_request,
            )

        if self.settings.logging.log_decomposition:
            for subtask in subtasks:
                logger.debug(
                    "Subtask %d: %s (depends on: %s)",
                    subtask.id,
                    subtask.description,
                    ", ".join(str(d) for d in subtask.depends_on),
                )

        # Step 2: one specialist agent per subtask
        phase_start = time.perf_counter()
        search_results = await self.executor.execute_agents(subtasks, self._run_specialist_agent)
        metrics.search_time = time.perf_counter() - phase_start
        metrics.estimated_cost += SEARCH_COST_PER_AGENT * len(search_results)

        failed = [r for r in search_results if not r.success]
        metrics.failed_search_count = len(failed)

        if self.executor.should_abort_due_to_failures(search_results):
            logger.error(
                "Too many agent failures (%d/%d), aborting", len(failed), len(search_results)
            )
            return OrchestrationResult(
                success=False,
                errors=[f"{FAILURE_THRESHOLD_MESSAGE} ({len(failed)}/{len(search_results)})"],
                warnings=warnings + _failure_warnings(failed),
                metrics=metrics,
            )

        warnings.extend(_failure_warnings(failed))

        # Step 3: aggregate by subtask id, successful searches only
        commands_by_subtask = aggregate_commands(search_results)
        metrics.total_commands_found = sum(len(cmds) for cmds in commands_by_subtask.values())
        logger.info(
            "Found %d total commands across %d subtasks",
            metrics.total_commands_found,
            len(commands_by_subtask),
        )

        # Step 4: assemble
        phase_start = time.perf_counter()
        assembly = await self.assembler.assemble_script(
            user_request, subtasks, commands_by_subtask
        )
        metrics.assembly_time = time.perf_counter() - phase_start
        metrics.estimated_cost += ASSEMBLY_COST

        if not assembly.success:
            logger.error("Script assembly failed: %s", assembly.error_message)
            return OrchestrationResult(
                success=False,
                errors=[assembly.error_message],
                warnings=warnings,
                metrics=metrics,
            )

        warnings.extend(assembly.warnings)

        if not assembly.script.strip():
            logger.error(EMPTY_SCRIPT_MESSAGE)
            return OrchestrationResult(
                success=False,
                errors=[EMPTY_SCRIPT_MESSAGE],
                warnings=warnings,
                metrics=metrics,
            )

        return OrchestrationResult(
            script=assembly.script,
            success=True,
            metrics=metrics,
            warnings=warnings,
        )

    async def _run_specialist_agent(self, subtask: SubTask) -> SearchResult:
        agent = SpecialistSearchAgent(
            self.search_client,
            timeout_seconds=self.settings.timeouts.specialist_search_seconds,
            log_execution=self.settings.logging.log_agent_execution,
        )
        return await agent.search_for_subtask(
            subtask, max_commands=self.settings.max_commands_per_subtask
        )

    @staticmethod
    def _log_metrics(metrics: OrchestrationMetrics) -> None:
        logger.info("=== Orchestration Metrics ===")
        logger.info("Subtasks: %d", metrics.sub_task_count)
        logger.info("Commands found: %d", metrics.total_commands_found)
        logger.info("Failed searches: %d", metrics.failed_search_count)
        logger.info("Decomposition time: %.0fms", metrics.decomposition_time * 1000)
        logger.info("Search time: %.0fms", metrics.search_time * 1000)
        logger.info("Assembly time: %.0fms", metrics.assembly_time * 1000)
        logger.info("Total time: %.0fms", metrics.total_time * 1000)
        logger.info("Estimated cost: $%.4f", metrics.estimated_cost)
        logger.info("============================")


def aggregate_commands(results: list[SearchResult]) -> dict[int, list[CommandMatch]]:
    """Map subtask id to its commands, keeping successful searches only."""
    return {r.sub_task_id: list(r.commands) for r in results if r.success}


def _failure_warnings(failed: list[SearchResult]) -> list[str]:
    return [f"Subtask {r.sub_task_id} failed: {r.error_message}" for r in failed]


def create_orchestrator(
    settings: OrchestratorSettings,
    decomposition_client: LLMClient,
    search_client: DocumentationSearch,
    assembly_client: LLMClient | None = None,
    metrics_collector: MetricsCollector | None = None,
) -> ScriptOrchestrator:
    """Wire a ScriptOrchestrator from settings and collaborators.

    Args:
        settings: Orchestrator settings.
        decomposition_client: LLM client for the decomposition call.
        search_client: Documentation search collaborator.
        assembly_client: LLM client for assembly. Defaults to the
            decomposition client.
        metrics_collector: Optional metrics collector.

    Returns:
        Ready-to-use ScriptOrchestrator.
    """
    decomposer = TaskDecomposer(
        decomposition_client,
        timeout_seconds=settings.timeouts.task_decomposition_seconds,
    )
    assembler = ScriptAssembler(
        assembly_client or decomposition_client,
        timeout_seconds=settings.timeouts.script_assembly_seconds,
        log_assembly=settings.logging.log_assembly,
    )
    return ScriptOrchestrator(
        decomposer=decomposer,
        assembler=assembler,
        search_client=search_client,
        settings=settings,
        metrics_collector=metrics_collector,
    )
