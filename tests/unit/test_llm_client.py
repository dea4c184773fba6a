"""Tests for the LLM client implementations.

The production client is exercised against a stand-in claude_agent_sdk
module installed into sys.modules, so no CLI or network is needed.
"""

from __future__ import annotations

import sys
import types
from collections.abc import AsyncIterator
from typing import Any

import pytest

from script_orchestrator.llm_client import (
    CODE_SYSTEM_PROMPT,
    JSON_SYSTEM_PROMPT,
    ClaudeAgentSDKClient,
    ErrorSimulatingLLMClient,
    LLMClient,
    LLMClientError,
    MockLLMClient,
    cleanup_sdk_child_processes,
)


# ---------------------------------------------------------------------------
# MockLLMClient
# ---------------------------------------------------------------------------


class TestMockLLMClient:
    """Tests for the keyed mock client."""

    def test_satisfies_protocol(self) -> None:
        assert isinstance(MockLLMClient(), LLMClient)

    async def test_matches_key_substring(self) -> None:
        client = MockLLMClient(responses={"sort": "sorted!"}, default_response="fallback")

        assert await client.send_message("please sort this") == "sorted!"
        assert await client.send_message("something else") == "fallback"

    async def test_default_response_is_empty_object(self) -> None:
        assert await MockLLMClient().send_message("x") == "{}"

    async def test_call_history_and_reset(self) -> None:
        client = MockLLMClient()

        await client.send_message("one")
        await client.send_message("two")

        assert client.call_history == ["one", "two"]
        assert client.get_call_count() == 2

        client.reset()
        assert client.get_call_count() == 0


# ---------------------------------------------------------------------------
# ErrorSimulatingLLMClient
# ---------------------------------------------------------------------------


class TestErrorSimulatingLLMClient:
    """Tests for the failure simulator."""

    async def test_llm_error(self) -> None:
        client = ErrorSimulatingLLMClient("llm_error")

        with pytest.raises(LLMClientError):
            await client.send_message("x")
        assert client.call_count == 1

    async def test_connection_error(self) -> None:
        with pytest.raises(ConnectionError):
            await ErrorSimulatingLLMClient("connection_error").send_message("x")

    @pytest.mark.parametrize(
        ("error_type", "expected"),
        [
            ("empty_response", ""),
            ("partial_response", '{"subtasks": [{"id": 1, "description": "Trunca'),
        ],
    )
    async def test_bad_content(self, error_type: str, expected: str) -> None:
        assert await ErrorSimulatingLLMClient(error_type).send_message("x") == expected

    async def test_unknown_error_type(self) -> None:
        with pytest.raises(ValueError, match="Unknown error_type"):
            await ErrorSimulatingLLMClient("nope").send_message("x")


# ---------------------------------------------------------------------------
# ClaudeAgentSDKClient
# ---------------------------------------------------------------------------


class _TextBlock:
    def __init__(self, text: str) -> None:
        self.text = text


class AssistantMessage:
    def __init__(self, content: Any) -> None:
        self.content = content


class ResultMessage:
    def __init__(self) -> None:
        self.content = "ignored"


def _install_fake_sdk(
    monkeypatch: pytest.MonkeyPatch, messages: list[Any], error: Exception | None = None
) -> dict[str, Any]:
    """Install a stand-in claude_agent_sdk and return what it recorded."""
    recorded: dict[str, Any] = {"closed": False}

    class ClaudeAgentOptions:
        def __init__(self, **kwargs: Any) -> None:
            recorded["options"] = kwargs

    class _Generator:
        def __init__(self) -> None:
            self._items = iter(messages)

        def __aiter__(self) -> AsyncIterator[Any]:
            return self

        async def __anext__(self) -> Any:
            if error is not None:
                raise error
            try:
                return next(self._items)
            except StopIteration:
                raise StopAsyncIteration from None

        async def aclose(self) -> None:
            recorded["closed"] = True

    def query(prompt: str, options: Any) -> _Generator:
        recorded["prompt"] = prompt
        return _Generator()

    module = types.ModuleType("claude_agent_sdk")
    module.ClaudeAgentOptions = ClaudeAgentOptions  # type: ignore[attr-defined]
    module.query = query  # type: ignore[attr-defined]
    monkeypatch.setitem(sys.modules, "claude_agent_sdk", module)
    return recorded


class TestClaudeAgentSDKClient:
    """Tests for the production client against a fake SDK."""

    def test_default_system_prompt_is_json_only(self) -> None:
        assert ClaudeAgentSDKClient().system_prompt == JSON_SYSTEM_PROMPT

    async def test_collects_assistant_text(self, monkeypatch: pytest.MonkeyPatch) -> None:
        recorded = _install_fake_sdk(
            monkeypatch,
            [
                AssistantMessage([_TextBlock("var a"), _TextBlock(" = [];")]),
                AssistantMessage("\nsort(a);"),
                ResultMessage(),
            ],
        )
        client = ClaudeAgentSDKClient(model="claude-test", system_prompt=CODE_SYSTEM_PROMPT)

        response = await client.send_message("build it")

        assert response == "var a = [];\nsort(a);"
        assert recorded["prompt"] == "build it"
        assert recorded["options"] == {
            "tools": [],
            "max_turns": 1,
            "system_prompt": CODE_SYSTEM_PROMPT,
            "model": "claude-test",
        }
        assert recorded["closed"] is True

    async def test_sdk_failure_wrapped(self, monkeypatch: pytest.MonkeyPatch) -> None:
        recorded = _install_fake_sdk(monkeypatch, [], error=RuntimeError("cli crashed"))

        with pytest.raises(LLMClientError, match="Query failed: cli crashed"):
            await ClaudeAgentSDKClient().send_message("x")
        assert recorded["closed"] is True

    async def test_missing_sdk(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setitem(sys.modules, "claude_agent_sdk", None)

        with pytest.raises(LLMClientError, match="not installed"):
            await ClaudeAgentSDKClient().send_message("x")


# ---------------------------------------------------------------------------
# cleanup_sdk_child_processes
# ---------------------------------------------------------------------------


def test_cleanup_terminates_claude_children(monkeypatch: pytest.MonkeyPatch) -> None:
    terminated: list[int] = []

    class FakeChild:
        def __init__(self, pid: int, name: str) -> None:
            self.pid = pid
            self._name = name

        def name(self) -> str:
            return self._name

        def terminate(self) -> None:
            terminated.append(self.pid)

        def kill(self) -> None:
            raise AssertionError("should not need to kill")

    class FakeProcess:
        def __init__(self, pid: int) -> None:
            self.pid = pid

        def children(self, recursive: bool = False) -> list[FakeChild]:
            return [FakeChild(10, "claude"), FakeChild(11, "python")]

    import script_orchestrator.llm_client as llm_client

    monkeypatch.setattr(llm_client.psutil, "Process", FakeProcess)
    monkeypatch.setattr(llm_client.psutil, "wait_procs", lambda procs, timeout: (procs, []))

    cleanup_sdk_child_processes()

    assert terminated == [10]
