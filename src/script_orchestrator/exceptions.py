"""Exceptions for the script orchestrator.

This module defines the exception hierarchy shared by the decomposition,
search, and assembly components. Component entry points convert these into
result objects; they only escape from lower-level helpers.
"""

from __future__ import annotations


class OrchestratorError(Exception):
    """Base exception for all orchestrator errors."""

    pass


class DecompositionError(OrchestratorError):
    """Raised when a user request cannot be decomposed into subtasks."""

    pass


class DecompositionParseError(DecompositionError):
    """Raised when the decomposition response cannot be parsed.

    This exception is raised when:
    - The response contains no JSON object
    - The JSON object is malformed or truncated
    - The object has no usable subtask list
    """

    pass


class SearchClientError(OrchestratorError):
    """Raised when the documentation search service cannot be reached."""

    pass


class InvalidStatusTransition(OrchestratorError):
    """Raised when a subtask is moved out of a terminal status."""

    pass


class ConfigError(ValueError):
    """Raised when a settings file is empty, malformed, or invalid."""

    pass
