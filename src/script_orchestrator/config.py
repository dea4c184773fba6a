"""Settings for the script orchestrator.

Settings are plain frozen dataclasses with the production defaults. They can
be loaded from a TOML file via load_settings(); a missing file yields the
defaults, while an empty or malformed file is rejected.

Example config.toml::

    [orchestration]
    max_concurrent_agents = 10
    max_sub_tasks_per_request = 20

    [timeouts]
    specialist_search_seconds = 15

    [search]
    base_url = "http://localhost:54321"

    [logging]
    verbose_metrics = false
"""

from __future__ import annotations

import logging
import tomllib
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from .exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_URL = "http://localhost:54321"


@dataclass(frozen=True)
class TimeoutSettings:
    """Per-phase timeouts in seconds."""

    task_decomposition_seconds: float = 10.0
    specialist_search_seconds: float = 15.0
    script_assembly_seconds: float = 10.0


@dataclass(frozen=True)
class ModelSettings:
    """Model identifiers used for each LLM-backed phase."""

    decomposition_model: str = "claude-haiku-4-5-20251001"
    assembly_model: str = "claude-sonnet-4-5-20250929"


@dataclass(frozen=True)
class SearchSettings:
    """Documentation search service connection settings."""

    base_url: str = DEFAULT_SEARCH_URL
    timeout_seconds: float = 15.0


@dataclass(frozen=True)
class LoggingSettings:
    """Flags controlling detail logs emitted by the orchestrator."""

    log_decomposition: bool = True
    log_agent_execution: bool = True
    log_assembly: bool = True
    verbose_metrics: bool = True


@dataclass(frozen=True)
class OrchestratorSettings:
    """Top-level orchestrator configuration.

    Attributes:
        max_concurrent_agents: Upper bound on specialist agents in flight.
        max_sub_tasks_per_request: Advisory cap; exceeding it only logs.
        max_commands_per_subtask: Matches kept per subtask search.
    """

    max_concurrent_agents: int = 10
    max_sub_tasks_per_request: int = 20
    max_commands_per_subtask: int = 3
    timeouts: TimeoutSettings = field(default_factory=TimeoutSettings)
    models: ModelSettings = field(default_factory=ModelSettings)
    search: SearchSettings = field(default_factory=SearchSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)


def load_settings(path: Path | None) -> OrchestratorSettings:
    """Load settings from a TOML file.

    Args:
        path: Path to the TOML file. None means "use defaults".

    Returns:
        Parsed OrchestratorSettings. Defaults when the file does not exist.

    Raises:
        ConfigError: On empty, invalid, or out-of-range configuration.
    """
    if path is None or not path.exists():
        if path is not None:
            logger.info("Settings file %s not found, using defaults", path)
        return OrchestratorSettings()

    content = path.read_text(encoding="utf-8")
    if not content.strip():
        msg = f"Settings file is empty: {path}"
        raise ConfigError(msg)

    try:
        data = tomllib.loads(content)
    except tomllib.TOMLDecodeError as exc:
        msg = f"Invalid TOML in {path}: {exc}"
        raise ConfigError(msg) from exc

    return parse_settings(data)


def parse_settings(data: dict[str, Any]) -> OrchestratorSettings:
    """Parse raw TOML data into OrchestratorSettings.

    Unknown keys are ignored for forward compatibility.
    """
    orchestration = _section(data, "orchestration")
    timeouts = _section(data, "timeouts")
    models = _section(data, "models")
    search = _section(data, "search")
    log_flags = _section(data, "logging")

    defaults = OrchestratorSettings()
    default_timeouts = defaults.timeouts
    default_models = defaults.models
    default_logging = defaults.logging

    settings = OrchestratorSettings(
        max_concurrent_agents=_positive_int(
            orchestration, "max_concurrent_agents", defaults.max_concurrent_agents
        ),
        max_sub_tasks_per_request=_positive_int(
            orchestration, "max_sub_tasks_per_request", defaults.max_sub_tasks_per_request
        ),
        max_commands_per_subtask=_positive_int(
            orchestration, "max_commands_per_subtask", defaults.max_commands_per_subtask
        ),
        timeouts=TimeoutSettings(
            task_decomposition_seconds=_positive_float(
                timeouts,
                "task_decomposition_seconds",
                default_timeouts.task_decomposition_seconds,
            ),
            specialist_search_seconds=_positive_float(
                timeouts,
                "specialist_search_seconds",
                default_timeouts.specialist_search_seconds,
            ),
            script_assembly_seconds=_positive_float(
                timeouts,
                "script_assembly_seconds",
                default_timeouts.script_assembly_seconds,
            ),
        ),
        models=ModelSettings(
            decomposition_model=str(
                models.get("decomposition_model", default_models.decomposition_model)
            ),
            assembly_model=str(models.get("assembly_model", default_models.assembly_model)),
        ),
        search=SearchSettings(
            base_url=str(search.get("base_url", DEFAULT_SEARCH_URL)),
            timeout_seconds=_positive_float(
                search, "timeout_seconds", defaults.search.timeout_seconds
            ),
        ),
        logging=LoggingSettings(
            log_decomposition=_bool(
                log_flags, "log_decomposition", default_logging.log_decomposition
            ),
            log_agent_execution=_bool(
                log_flags, "log_agent_execution", default_logging.log_agent_execution
            ),
            log_assembly=_bool(log_flags, "log_assembly", default_logging.log_assembly),
            verbose_metrics=_bool(
                log_flags, "verbose_metrics", default_logging.verbose_metrics
            ),
        ),
    )

    if not settings.search.base_url.startswith(("http://", "https://")):
        msg = f"search.base_url must be an http(s) URL, got '{settings.search.base_url}'"
        raise ConfigError(msg)

    return settings


def settings_to_dict(settings: OrchestratorSettings) -> dict[str, Any]:
    """Render settings as a plain nested dictionary."""
    return asdict(settings)


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name, {})
    if not isinstance(section, dict):
        msg = f"[{name}] section must be a table"
        raise ConfigError(msg)
    return section


def _positive_int(section: dict[str, Any], key: str, default: int) -> int:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        msg = f"{key} must be an integer, got {value!r}"
        raise ConfigError(msg)
    if value < 1:
        msg = f"{key} must be >= 1, got {value}"
        raise ConfigError(msg)
    return value


def _positive_float(section: dict[str, Any], key: str, default: float) -> float:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        msg = f"{key} must be a number, got {value!r}"
        raise ConfigError(msg)
    if value <= 0:
        msg = f"{key} must be > 0, got {value}"
        raise ConfigError(msg)
    return float(value)


def _bool(section: dict[str, Any], key: str, default: bool) -> bool:
    value = section.get(key, default)
    if not isinstance(value, bool):
        msg = f"{key} must be true or false, got {value!r}"
        raise ConfigError(msg)
    return value
