"""LLM client abstraction for the decomposer and the assembler.

This module provides the LLM completion protocol that components receive by
injection, plus implementations for testing (mock, error simulator) and
production (Claude Agent SDK).

Each call sends exactly one user prompt and reads back one text completion.
No conversation state is kept between calls and no token streaming is used.

IMPORTANT: The production client uses claude_agent_sdk.query(), which
authenticates through `claude login` rather than API keys.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Protocol, runtime_checkable

import psutil

from .exceptions import OrchestratorError

logger = logging.getLogger(__name__)

JSON_SYSTEM_PROMPT = (
    "You are a JSON-only API. Return ONLY valid JSON objects. "
    "No explanations, no markdown code blocks, no text before or after the JSON."
)

CODE_SYSTEM_PROMPT = (
    "You are a script generator. Return ONLY script code. "
    "No explanations before or after the code."
)


@runtime_checkable
class LLMClient(Protocol):
    """Protocol for LLM clients used by the orchestrator components.

    Allows swapping between mock clients (for testing) and the production
    Claude Agent SDK client.
    """

    async def send_message(self, prompt: str) -> str:
        """Send a prompt to the LLM and return the response text.

        Args:
            prompt: The formatted prompt to send to the LLM.

        Returns:
            The text response from the LLM.

        Raises:
            LLMClientError: If the call fails.
        """
        ...


class LLMClientError(OrchestratorError):
    """Base exception for LLM client errors."""

    pass


class BaseLLMClient(ABC):
    """Abstract base class for LLM clients.

    Subclasses must implement the _call_api method.
    """

    def __init__(self, model: str = "claude-sonnet-4-5-20250929") -> None:
        """Initialize the LLM client.

        Args:
            model: The model identifier to use for calls.
        """
        self.model = model

    @abstractmethod
    async def _call_api(self, prompt: str) -> str:
        """Make the actual API call.

        Args:
            prompt: The prompt to send.

        Returns:
            Raw response text from the API.
        """
        ...

    async def send_message(self, prompt: str) -> str:
        """Send a message and return the response.

        Args:
            prompt: The prompt to send to the LLM.

        Returns:
            The text response from the LLM.
        """
        return await self._call_api(prompt)


class MockLLMClient(BaseLLMClient):
    """Mock LLM client for testing.

    Returns predefined responses based on prompt content, so the pipeline
    can be exercised without making actual API calls.
    """

    def __init__(
        self,
        responses: dict[str, str] | None = None,
        default_response: str | None = None,
        delay_seconds: float = 0.0,
    ) -> None:
        """Initialize the mock client with predefined responses.

        Args:
            responses: Dict mapping prompt substrings to responses.
            default_response: Fallback response if no match found.
            delay_seconds: Simulated latency per call.
        """
        super().__init__(model="mock")
        self.responses = responses or {}
        self.default_response = default_response if default_response is not None else "{}"
        self.delay_seconds = delay_seconds
        self.call_history: list[str] = []

    async def _call_api(self, prompt: str) -> str:
        self.call_history.append(prompt)

        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)

        for key, response in self.responses.items():
            if key in prompt:
                logger.debug(f"MockLLMClient matched key: {key}")
                return response

        logger.debug("MockLLMClient using default response")
        return self.default_response

    def get_call_count(self) -> int:
        """Return the number of calls made."""
        return len(self.call_history)

    def reset(self) -> None:
        """Reset call history for fresh test runs."""
        self.call_history.clear()


class ErrorSimulatingLLMClient(BaseLLMClient):
    """Simulates LLM failures for testing.

    Error types:
    - llm_error: The SDK reports a failed query
    - timeout: The call never returns within the caller's deadline
    - connection_error: Network failure
    - malformed_response: Model returns unparseable content
    - partial_response: Truncated JSON
    - empty_response: Model returns nothing
    """

    def __init__(self, error_type: str) -> None:
        super().__init__(model="error-simulator")
        self.error_type = error_type
        self.call_count = 0

    async def _call_api(self, prompt: str) -> str:
        self.call_count += 1

        if self.error_type == "llm_error":
            raise LLMClientError("Query failed: model temporarily unavailable")
        elif self.error_type == "timeout":
            # Caller's wait_for cancels this
            await asyncio.sleep(3600)
            return ""
        elif self.error_type == "connection_error":
            raise ConnectionError("Simulated network failure: unable to reach Claude service")
        elif self.error_type == "malformed_response":
            return "This is not valid JSON at all {{{malformed response from model"
        elif self.error_type == "partial_response":
            return '{"subtasks": [{"id": 1, "description": "Trunca'
        elif self.error_type == "empty_response":
            return ""

        raise ValueError(f"Unknown error_type: {self.error_type}")


class ClaudeAgentSDKClient(BaseLLMClient):
    """Claude Agent SDK client for production use.

    Uses claude_agent_sdk.query() with subscription auth via `claude login`.
    Tools are disabled and a single turn is requested, so each call is a
    plain prompt -> completion exchange.
    """

    def __init__(
        self,
        model: str = "claude-sonnet-4-5-20250929",
        system_prompt: str | None = None,
        max_turns: int = 1,
    ) -> None:
        """Initialize the Claude Agent SDK client.

        Args:
            model: Model identifier passed to the SDK.
            system_prompt: Custom system prompt. Defaults to JSON-only instruction.
            max_turns: Maximum conversation turns (default: 1 for single response).
        """
        super().__init__(model=model)
        self.max_turns = max_turns
        self.system_prompt = system_prompt or JSON_SYSTEM_PROMPT

    async def _call_api(self, prompt: str) -> str:
        """Make a query using the Claude Agent SDK.

        Raises:
            LLMClientError: If the query fails or the SDK is not installed.
        """
        try:
            from claude_agent_sdk import ClaudeAgentOptions, query

            options = ClaudeAgentOptions(
                tools=[],
                max_turns=self.max_turns,
                system_prompt=self.system_prompt,
                model=self.model,
            )

            # Only AssistantMessage carries completion text.
            # The generator must be closed explicitly or the CLI hangs.
            response_text = ""
            generator = query(prompt=prompt, options=options)
            try:
                async for message in generator:
                    if type(message).__name__ != "AssistantMessage":
                        continue

                    content = getattr(message, "content", None)
                    if isinstance(content, str):
                        response_text += content
                    elif isinstance(content, list):
                        for block in content:
                            block_text = getattr(block, "text", None)
                            if block_text is not None:
                                response_text += str(block_text)
            finally:
                await generator.aclose()  # type: ignore[attr-defined]

            return response_text

        except ImportError as e:
            raise LLMClientError(
                "claude_agent_sdk not installed. Ensure Claude Code CLI is available."
            ) from e
        except Exception as e:
            logger.error(f"Claude Agent SDK query failed: {e}")
            raise LLMClientError(f"Query failed: {e}") from e


def cleanup_sdk_child_processes() -> None:
    """Kill any Claude CLI child processes spawned by this process.

    The SDK spawns OS subprocesses that may outlive the Python generator.
    Call this ONCE at program exit, not after each call, or concurrent
    queries get killed.
    """
    import os

    try:
        parent = psutil.Process(os.getpid())
        children = parent.children(recursive=True)

        claude_procs = [p for p in children if "claude" in p.name().lower()]
        for proc in claude_procs:
            try:
                logger.debug(f"Terminating Claude CLI process: {proc.pid}")
                proc.terminate()
            except psutil.NoSuchProcess:
                pass

        if claude_procs:
            _gone, alive = psutil.wait_procs(claude_procs, timeout=3)
            for proc in alive:
                try:
                    logger.warning(f"Force killing Claude CLI process: {proc.pid}")
                    proc.kill()
                except psutil.NoSuchProcess:
                    pass
    except Exception as e:
        logger.warning(f"Failed to cleanup child processes: {e}")
