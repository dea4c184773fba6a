"""Task decomposer: one LLM call turning a request into subtasks.

The decomposer asks the LLM to split a user request into atomic subtasks
with dependency edges, parses the reply with the tolerant parser, and runs
the advisory dependency checks. It never raises: every failure is reported
through DecompositionResult.success / error_message.
"""

from __future__ import annotations

import asyncio
import logging

from ..exceptions import DecompositionParseError
from ..llm_client import LLMClient
from ..models import DecompositionResult
from .dependency_validator import validate_dependencies
from .parser import parse_decomposition_response
from .prompts import format_decomposition_prompt

logger = logging.getLogger(__name__)


class TaskDecomposer:
    """Decomposes user requests into atomic subtasks using an LLM.

    Simple requests come back as a single subtask, compound requests as
    several subtasks linked by depends_on edges.
    """

    def __init__(self, client: LLMClient, timeout_seconds: float | None = None) -> None:
        """Initialize the decomposer with an LLM client.

        Args:
            client: LLM client implementing the LLMClient protocol.
            timeout_seconds: Optional deadline for the LLM call.
        """
        self.client = client
        self.timeout_seconds = timeout_seconds

    async def decompose(self, user_request: str) -> DecompositionResult:
        """Decompose a user request into subtasks.

        Args:
            user_request: Natural-language request. Passed through unchanged,
                including empty or whitespace-only input.

        Returns:
            DecompositionResult with success=True and at least one subtask,
            or success=False with a descriptive error_message.
        """
        logger.info("Decomposing user request: %s", user_request)

        try:
            prompt = format_decomposition_prompt(user_request)
            if self.timeout_seconds is not None:
                response = await asyncio.wait_for(
                    self.client.send_message(prompt), timeout=self.timeout_seconds
                )
            else:
                response = await self.client.send_message(prompt)

            result = self.parse_response(response or "")
            if result.success:
                validate_dependencies(result.subtasks)
                logger.info("Decomposed into %d subtasks", len(result.subtasks))
            return result

        except asyncio.TimeoutError:
            logger.error("Task decomposition timed out after %ss", self.timeout_seconds)
            return DecompositionResult.failure(
                f"Task decomposition timed out after {self.timeout_seconds} seconds"
            )
        except Exception as e:
            logger.exception("Error decomposing task")
            return DecompositionResult.failure(f"Task decomposition failed: {e}")

    @staticmethod
    def parse_response(content: str) -> DecompositionResult:
        """Convert raw LLM text into a DecompositionResult.

        Args:
            content: Raw LLM response text.

        Returns:
            Successful result with the dependency map, or a failed result
            carrying the parser's error message.
        """
        try:
            subtasks = parse_decomposition_response(content)
        except DecompositionParseError as e:
            logger.warning(f"Failed to parse decomposition response: {e}")
            return DecompositionResult.failure(str(e))

        dependencies = {st.id: list(st.depends_on) for st in subtasks}
        return DecompositionResult(subtasks=subtasks, dependencies=dependencies, success=True)
