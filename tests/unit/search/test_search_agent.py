"""Tests for SpecialistSearchAgent."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

from script_orchestrator.exceptions import SearchClientError
from script_orchestrator.models import CommandMatch, SubTask, SubTaskStatus
from script_orchestrator.search import SpecialistSearchAgent


class FakeSearchClient:
    """In-memory DocumentationSearch stand-in recording every query."""

    def __init__(
        self,
        matches: list[CommandMatch] | None = None,
        delay_seconds: float = 0.0,
        error: Exception | None = None,
    ) -> None:
        self.matches = matches or []
        self.delay_seconds = delay_seconds
        self.error = error
        self.queries: list[tuple[str, int]] = []

    async def search_commands(self, query: str, max_results: int) -> list[CommandMatch]:
        self.queries.append((query, max_results))
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)
        if self.error is not None:
            raise self.error
        return list(self.matches)


def _commands(*names: str) -> list[CommandMatch]:
    return [CommandMatch(name=n, description=f"{n} docs") for n in names]


class TestSearchForSubtask:
    """Tests for the single-subtask search path."""

    async def test_success_marks_completed(self) -> None:
        client = FakeSearchClient(_commands("sortArray"))
        subtask = SubTask(id=2, description="Sort array")

        result = await SpecialistSearchAgent(client).search_for_subtask(subtask)

        assert result.success is True
        assert result.sub_task_id == 2
        assert [c.name for c in result.commands] == ["sortArray"]
        assert result.error_message == ""
        assert result.execution_time >= 0
        assert subtask.status is SubTaskStatus.COMPLETED

    async def test_uses_description_as_query(self) -> None:
        client = FakeSearchClient()
        subtask = SubTask(id=1, description="Write array to file")

        await SpecialistSearchAgent(client).search_for_subtask(subtask, max_commands=4)

        assert client.queries == [("Write array to file", 4)]

    async def test_zero_matches_is_success(self) -> None:
        subtask = SubTask(id=1, description="Obscure thing")

        result = await SpecialistSearchAgent(FakeSearchClient()).search_for_subtask(subtask)

        assert result.success is True
        assert result.commands == ()
        assert subtask.status is SubTaskStatus.COMPLETED

    async def test_caps_commands(self) -> None:
        client = FakeSearchClient(_commands("a", "b", "c", "d", "e"))

        result = await SpecialistSearchAgent(client).search_for_subtask(
            SubTask(id=1, description="x"), max_commands=3
        )

        assert [c.name for c in result.commands] == ["a", "b", "c"]

    async def test_timeout_marks_failed(self) -> None:
        client = FakeSearchClient(_commands("a"), delay_seconds=1.0)
        subtask = SubTask(id=3, description="Slow")

        result = await SpecialistSearchAgent(client, timeout_seconds=0.05).search_for_subtask(
            subtask
        )

        assert result.success is False
        assert result.commands == ()
        assert result.error_message == "Search timed out after 0.05 seconds"
        assert subtask.status is SubTaskStatus.FAILED

    async def test_client_error_marks_failed(self) -> None:
        client = FakeSearchClient(error=SearchClientError("Search request failed: refused"))
        subtask = SubTask(id=4, description="x")

        result = await SpecialistSearchAgent(client).search_for_subtask(subtask)

        assert result.success is False
        assert result.error_message == "Search request failed: refused"
        assert subtask.status is SubTaskStatus.FAILED

    async def test_blank_exception_uses_type_name(self) -> None:
        client = FakeSearchClient(error=RuntimeError())

        result = await SpecialistSearchAgent(client).search_for_subtask(
            SubTask(id=1, description="x")
        )

        assert result.error_message == "RuntimeError"

    async def test_terminal_subtask_not_searched_again(self) -> None:
        client = FakeSearchClient(_commands("a"))
        subtask = SubTask(id=1, description="x", status=SubTaskStatus.COMPLETED)

        result = await SpecialistSearchAgent(client).search_for_subtask(subtask)

        assert result.success is False
        assert result.error_message == "Subtask already completed"
        assert client.queries == []
        assert subtask.status is SubTaskStatus.COMPLETED

    async def test_works_with_async_mock_client(self) -> None:
        client = MagicMock()
        client.search_commands = AsyncMock(return_value=_commands("a", "b"))

        result = await SpecialistSearchAgent(client).search_for_subtask(
            SubTask(id=1, description="Open file"), max_commands=2
        )

        assert [c.name for c in result.commands] == ["a", "b"]
        client.search_commands.assert_awaited_once_with("Open file", 2)
