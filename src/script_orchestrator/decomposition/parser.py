"""Tolerant parser for decomposition responses.

LLM output is rarely pure JSON: it comes wrapped in markdown fences, with a
sentence of prose before or after, or truncated. The parser keeps only the
text between the first ``{`` and the last ``}`` and decodes that. Property
names are matched case-insensitively, and both ``depends_on`` and
``dependsOn`` spellings are accepted.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from ..exceptions import DecompositionParseError
from ..models import SubTask

logger = logging.getLogger(__name__)

NO_JSON_MESSAGE = "No valid JSON found in response"
NO_SUBTASKS_MESSAGE = "No subtasks found in response"


def extract_json_object(content: str) -> str:
    """Return the substring between the first '{' and the last '}'.

    Args:
        content: Raw LLM response text.

    Returns:
        Candidate JSON object text.

    Raises:
        DecompositionParseError: If no brace pair is present.
    """
    start = content.find("{")
    end = content.rfind("}")
    if start < 0 or end <= start:
        raise DecompositionParseError(NO_JSON_MESSAGE)
    return content[start : end + 1]


def parse_decomposition_response(content: str) -> list[SubTask]:
    """Parse an LLM decomposition response into subtasks.

    Args:
        content: Raw LLM response text.

    Returns:
        Non-empty list of SubTask objects in response order.

    Raises:
        DecompositionParseError: If no JSON is found, the JSON is invalid,
            or the subtask list is missing or empty.
    """
    json_text = extract_json_object(content.strip())

    try:
        data = json.loads(json_text)
    except json.JSONDecodeError as e:
        raise DecompositionParseError(f"Failed to parse response: {e}") from e

    if not isinstance(data, dict):
        raise DecompositionParseError(
            f"Expected JSON object, got {type(data).__name__}"
        )

    raw_subtasks = _get_ci(data, "subtasks")
    if raw_subtasks is None:
        raise DecompositionParseError(NO_SUBTASKS_MESSAGE)
    if not isinstance(raw_subtasks, list):
        raise DecompositionParseError(
            f"Failed to parse response: 'subtasks' must be a list, got {type(raw_subtasks).__name__}"
        )
    if not raw_subtasks:
        raise DecompositionParseError(NO_SUBTASKS_MESSAGE)

    subtasks = [_to_subtask(item, index) for index, item in enumerate(raw_subtasks)]

    seen: set[int] = set()
    for subtask in subtasks:
        if subtask.id in seen:
            raise DecompositionParseError(
                f"Failed to parse response: duplicate subtask id {subtask.id}"
            )
        seen.add(subtask.id)

    return subtasks


def _to_subtask(item: Any, index: int) -> SubTask:
    """Convert one raw subtask entry, raising on unusable values."""
    if not isinstance(item, dict):
        raise DecompositionParseError(
            f"Failed to parse response: subtask #{index + 1} is not an object"
        )

    subtask_id = _as_int(_get_ci(item, "id"), f"subtask #{index + 1} id")
    if subtask_id < 1:
        raise DecompositionParseError(
            f"Failed to parse response: subtask id must be positive, got {subtask_id}"
        )

    description = _get_ci(item, "description")
    description = "" if description is None else str(description).strip()
    if not description:
        raise DecompositionParseError(
            f"Failed to parse response: subtask {subtask_id} has no description"
        )

    raw_deps = _get_ci(item, "depends_on")
    if raw_deps is None:
        raw_deps = _get_ci(item, "dependson")
    if raw_deps is None:
        raw_deps = []
    if not isinstance(raw_deps, list):
        raise DecompositionParseError(
            f"Failed to parse response: depends_on of subtask {subtask_id} must be a list"
        )

    depends_on = [_as_int(dep, f"dependency of subtask {subtask_id}") for dep in raw_deps]
    return SubTask(id=subtask_id, description=description, depends_on=depends_on)


def _get_ci(data: dict[str, Any], key: str) -> Any:
    """Case-insensitive dictionary lookup."""
    if key in data:
        return data[key]
    lowered = key.lower()
    for candidate, value in data.items():
        if isinstance(candidate, str) and candidate.lower() == lowered:
            return value
    return None


def _as_int(value: Any, what: str) -> int:
    # bool is an int subclass; "true" is never a valid id
    if isinstance(value, bool):
        raise DecompositionParseError(f"Failed to parse response: {what} is not an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    raise DecompositionParseError(f"Failed to parse response: {what} is not an integer: {value!r}")
