"""Parallel execution of specialist search agents.

Fans out one agent invocation per subtask with a concurrency cap. Subtasks
beyond the cap run in sequential batches. Every invocation is isolated: an
exception raised by one agent becomes a failed SearchResult and never
cancels its siblings or the batch.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from .models import SearchResult, SubTask

logger = logging.getLogger(__name__)

AgentFn = Callable[[SubTask], Awaitable[SearchResult]]

# Abort when strictly more than this fraction of agents failed
FAILURE_RATE_THRESHOLD = 0.5


class ParallelAgentExecutor:
    """Coordinates parallel execution of specialist search agents."""

    def __init__(self, max_concurrent_agents: int = 10) -> None:
        """Initialize the executor.

        Args:
            max_concurrent_agents: Maximum agent invocations in flight.

        Raises:
            ValueError: If max_concurrent_agents is less than 1.
        """
        if max_concurrent_agents < 1:
            raise ValueError(f"max_concurrent_agents must be >= 1, got {max_concurrent_agents}")
        self.max_concurrent_agents = max_concurrent_agents

    async def execute_agents(
        self, subtasks: list[SubTask], agent_fn: AgentFn
    ) -> list[SearchResult]:
        """Run agent_fn once per subtask.

        Args:
            subtasks: Subtasks to resolve. Each is handed to exactly one
                invocation.
            agent_fn: Async callable producing a SearchResult for a subtask.

        Returns:
            One SearchResult per subtask, failures included. Index results
            by sub_task_id; list position is not a contract.
        """
        if not subtasks:
            logger.warning("No subtasks to execute")
            return []

        if len(subtasks) == 1:
            logger.info("Executing single agent for 1 subtask")
            return [await self._run_agent(subtasks[0], agent_fn)]

        logger.info(
            "Executing %d agents in parallel (max concurrent: %d)",
            len(subtasks),
            self.max_concurrent_agents,
        )

        if len(subtasks) > self.max_concurrent_agents:
            return await self._execute_in_batches(subtasks, agent_fn)

        return await self._execute_all_parallel(subtasks, agent_fn)

    async def _execute_all_parallel(
        self, subtasks: list[SubTask], agent_fn: AgentFn
    ) -> list[SearchResult]:
        results = await asyncio.gather(
            *[self._run_agent(subtask, agent_fn) for subtask in subtasks]
        )

        success_count = sum(1 for r in results if r.success)
        logger.info(
            "Parallel execution complete: %d succeeded, %d failed",
            success_count,
            len(results) - success_count,
        )
        return list(results)

    async def _execute_in_batches(
        self, subtasks: list[SubTask], agent_fn: AgentFn
    ) -> list[SearchResult]:
        batch_size = self.max_concurrent_agents
        batches = [subtasks[i : i + batch_size] for i in range(0, len(subtasks), batch_size)]
        logger.info(
            "Batching %d subtasks into %d groups of up to %d",
            len(subtasks),
            len(batches),
            batch_size,
        )

        all_results: list[SearchResult] = []
        for index, batch in enumerate(batches, start=1):
            logger.debug("Executing batch %d/%d", index, len(batches))
            all_results.extend(await self._execute_all_parallel(batch, agent_fn))

        return all_results

    async def _run_agent(self, subtask: SubTask, agent_fn: AgentFn) -> SearchResult:
        """Invoke agent_fn, converting any exception into a failed result."""
        try:
            return await agent_fn(subtask)
        except Exception as e:
            logger.error("Agent execution failed for subtask %d: %s", subtask.id, e)
            return SearchResult(
                sub_task_id=subtask.id,
                success=False,
                error_message=str(e) or type(e).__name__,
            )

    @staticmethod
    def should_abort_due_to_failures(results: list[SearchResult]) -> bool:
        """Check whether the failure threshold is exceeded.

        Args:
            results: Results of one search phase.

        Returns:
            True when results is empty or more than half of them failed.
        """
        if not results:
            return True

        failure_count = sum(1 for r in results if not r.success)
        failure_rate = failure_count / len(results)

        if failure_rate > FAILURE_RATE_THRESHOLD:
            logger.warning("Failure rate %.0f%% exceeds threshold (>50%%)", failure_rate * 100)
            return True

        return False
