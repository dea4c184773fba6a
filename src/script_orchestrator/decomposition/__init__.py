"""Decomposition of user requests into dependency-linked subtasks.

Public API:
    - TaskDecomposer: Single-call LLM decomposer
    - parse_decomposition_response: Tolerant JSON parser for LLM replies
    - validate_dependencies: Advisory unknown-reference and cycle checks
    - format_decomposition_prompt: Prompt builder
"""

from __future__ import annotations

from .decomposer import TaskDecomposer
from .dependency_validator import (
    find_cyclic_subtasks,
    find_missing_dependencies,
    has_circular_dependency,
    validate_dependencies,
)
from .parser import extract_json_object, parse_decomposition_response
from .prompts import format_decomposition_prompt

__all__ = [
    "TaskDecomposer",
    "extract_json_object",
    "find_cyclic_subtasks",
    "find_missing_dependencies",
    "format_decomposition_prompt",
    "has_circular_dependency",
    "parse_decomposition_response",
    "validate_dependencies",
]
