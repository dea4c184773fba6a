"""Script Orchestrator.

Multi-agent pipeline that turns a natural-language request into a script:
decompose the request into subtasks, search documentation for each subtask
in parallel, and assemble the results into one dependency-ordered script.
"""

from __future__ import annotations

from .assembler import ScriptAssembler, extract_code_from_markdown
from .config import OrchestratorSettings, load_settings
from .decomposition import TaskDecomposer, parse_decomposition_response
from .exceptions import (
    ConfigError,
    DecompositionError,
    DecompositionParseError,
    InvalidStatusTransition,
    OrchestratorError,
    SearchClientError,
)
from .llm_client import ClaudeAgentSDKClient, LLMClient, LLMClientError, MockLLMClient
from .metrics import MetricsCollector, get_metrics_collector
from .models import (
    AssemblyResult,
    CommandMatch,
    DecompositionResult,
    OrchestrationMetrics,
    OrchestrationResult,
    SearchResult,
    SubTask,
    SubTaskStatus,
)
from .orchestrator import ScriptOrchestrator, create_orchestrator
from .parallel_executor import ParallelAgentExecutor
from .search import DocumentationSearch, DocumentationSearchClient, SpecialistSearchAgent

__all__ = [
    # Models
    "AssemblyResult",
    "CommandMatch",
    "DecompositionResult",
    "OrchestrationMetrics",
    "OrchestrationResult",
    "SearchResult",
    "SubTask",
    "SubTaskStatus",
    # Config
    "OrchestratorSettings",
    "load_settings",
    # LLM Client
    "ClaudeAgentSDKClient",
    "LLMClient",
    "LLMClientError",
    "MockLLMClient",
    # Pipeline components
    "TaskDecomposer",
    "parse_decomposition_response",
    "DocumentationSearch",
    "DocumentationSearchClient",
    "SpecialistSearchAgent",
    "ParallelAgentExecutor",
    "ScriptAssembler",
    "extract_code_from_markdown",
    "ScriptOrchestrator",
    "create_orchestrator",
    # Metrics
    "MetricsCollector",
    "get_metrics_collector",
    # Exceptions
    "ConfigError",
    "DecompositionError",
    "DecompositionParseError",
    "InvalidStatusTransition",
    "OrchestratorError",
    "SearchClientError",
]
