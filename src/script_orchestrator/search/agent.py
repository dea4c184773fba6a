"""Specialist search agent: resolves one subtask against the search service."""

from __future__ import annotations

import asyncio
import logging
import time

from ..models import SearchResult, SubTask, SubTaskStatus
from .client import DocumentationSearch

logger = logging.getLogger(__name__)

DEFAULT_MAX_COMMANDS = 3


class SpecialistSearchAgent:
    """Single-purpose worker that searches documentation for one subtask.

    Only the subtask description is used as the query, never the full user
    request. The agent keeps no mutable state of its own; the subtask it is
    given is exclusively owned by this invocation until it returns.
    """

    def __init__(
        self,
        search_client: DocumentationSearch,
        timeout_seconds: float = 15.0,
        log_execution: bool = True,
    ) -> None:
        """Initialize the agent.

        Args:
            search_client: Documentation search collaborator.
            timeout_seconds: Hard deadline for the search call.
            log_execution: Emit an info log line per completed search.
        """
        self.search_client = search_client
        self.timeout_seconds = timeout_seconds
        self.log_execution = log_execution

    async def search_for_subtask(
        self, subtask: SubTask, max_commands: int = DEFAULT_MAX_COMMANDS
    ) -> SearchResult:
        """Search for commands that implement a subtask.

        Never raises. Timeouts and collaborator errors come back as a failed
        SearchResult and leave the subtask in FAILED status.

        Args:
            subtask: Subtask to resolve. Its status is updated in place.
            max_commands: Upper bound on returned matches.

        Returns:
            SearchResult for subtask.id.
        """
        start = time.perf_counter()
        logger.debug(
            "Specialist agent searching for subtask %d: %s", subtask.id, subtask.description
        )

        if subtask.is_terminal:
            logger.warning(
                "Subtask %d already %s, not searching again", subtask.id, subtask.status.value
            )
            return SearchResult(
                sub_task_id=subtask.id,
                success=False,
                error_message=f"Subtask already {subtask.status.value}",
            )

        try:
            subtask.set_status(SubTaskStatus.IN_PROGRESS)

            matches = await asyncio.wait_for(
                self.search_client.search_commands(subtask.description, max_commands),
                timeout=self.timeout_seconds,
            )
            commands = tuple(matches[:max_commands])

            elapsed = time.perf_counter() - start
            subtask.set_status(SubTaskStatus.COMPLETED)

            if self.log_execution:
                logger.info(
                    "Specialist agent found %d commands for subtask %d in %.0fms",
                    len(commands),
                    subtask.id,
                    elapsed * 1000,
                )

            return SearchResult(
                sub_task_id=subtask.id,
                commands=commands,
                success=True,
                execution_time=elapsed,
            )

        except asyncio.TimeoutError:
            subtask.set_status(SubTaskStatus.FAILED)
            logger.warning(
                "Specialist agent timed out for subtask %d after %ss",
                subtask.id,
                self.timeout_seconds,
            )
            return SearchResult(
                sub_task_id=subtask.id,
                success=False,
                error_message=f"Search timed out after {self.timeout_seconds} seconds",
                execution_time=time.perf_counter() - start,
            )

        except Exception as e:
            subtask.set_status(SubTaskStatus.FAILED)
            logger.error("Specialist agent failed for subtask %d: %s", subtask.id, e)
            return SearchResult(
                sub_task_id=subtask.id,
                success=False,
                error_message=str(e) or type(e).__name__,
                execution_time=time.perf_counter() - start,
            )
