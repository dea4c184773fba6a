"""CLI for the script orchestrator.

Provides a command-line wrapper around ScriptOrchestrator.process_request().
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path

import click

from .config import OrchestratorSettings, load_settings, settings_to_dict
from .exceptions import ConfigError
from .llm_client import (
    CODE_SYSTEM_PROMPT,
    JSON_SYSTEM_PROMPT,
    ClaudeAgentSDKClient,
    LLMClient,
    MockLLMClient,
)
from .metrics import get_metrics_collector
from .models import OrchestrationResult
from .orchestrator import create_orchestrator
from .search import DocumentationSearchClient

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
def cli(verbose: bool) -> None:
    """Script Orchestrator - turn natural-language requests into scripts."""
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)


@cli.command("run")
@click.argument("request")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Settings TOML file (defaults apply when omitted or missing)",
)
@click.option("--search-url", default=None, help="Override the documentation search base URL")
@click.option("--json", "as_json", is_flag=True, help="Print the full result as JSON")
@click.option("--mock-llm", is_flag=True, hidden=True, help="Use mock LLM client for testing")
def run_command(
    request: str,
    config_path: Path | None,
    search_url: str | None,
    as_json: bool,
    mock_llm: bool,
) -> None:
    """Generate a script for REQUEST."""
    try:
        settings = load_settings(config_path)
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    try:
        result = asyncio.run(_run_async(request, settings, search_url, mock_llm))
    finally:
        if not mock_llm:
            _cleanup_sdk()

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        _print_result(result)

    sys.exit(0 if result.success else 1)


@cli.command("settings")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Settings TOML file",
)
def settings_command(config_path: Path | None) -> None:
    """Show the effective settings as JSON."""
    try:
        settings = load_settings(config_path)
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    click.echo(json.dumps(settings_to_dict(settings), indent=2))


async def _run_async(
    request: str,
    settings: OrchestratorSettings,
    search_url: str | None,
    mock_llm: bool,
) -> OrchestrationResult:
    """Build collaborators, process one request, and release the HTTP client."""
    decomposition_client, assembly_client = _build_llm_clients(settings, request, mock_llm)
    base_url = search_url or settings.search.base_url
    logger.debug("Using documentation search service at %s", base_url)

    async with DocumentationSearchClient(
        base_url=base_url,
        timeout=settings.search.timeout_seconds,
    ) as search_client:
        orchestrator = create_orchestrator(
            settings,
            decomposition_client,
            search_client,
            assembly_client=assembly_client,
            metrics_collector=get_metrics_collector(),
        )
        return await orchestrator.process_request(request)


def _build_llm_clients(
    settings: OrchestratorSettings, request: str, mock_llm: bool
) -> tuple[LLMClient, LLMClient]:
    """Create the decomposition and assembly LLM clients."""
    if mock_llm:
        single_subtask = json.dumps(
            {"subtasks": [{"id": 1, "description": request, "depends_on": []}]}
        )
        client = MockLLMClient(default_response=single_subtask)
        return client, client

    decomposition_client = ClaudeAgentSDKClient(
        model=settings.models.decomposition_model,
        system_prompt=JSON_SYSTEM_PROMPT,
    )
    assembly_client = ClaudeAgentSDKClient(
        model=settings.models.assembly_model,
        system_prompt=CODE_SYSTEM_PROMPT,
    )
    return decomposition_client, assembly_client


def _print_result(result: OrchestrationResult) -> None:
    if result.success:
        click.echo(result.script)
    for warning in result.warnings:
        click.echo(f"Warning: {warning}", err=True)
    for error in result.errors:
        click.echo(f"Error: {error}", err=True)

    metrics = result.metrics
    click.echo(
        f"Subtasks: {metrics.sub_task_count}, commands: {metrics.total_commands_found}, "
        f"time: {metrics.total_time:.2f}s, est. cost: ${metrics.estimated_cost:.4f}",
        err=True,
    )


def _cleanup_sdk() -> None:
    """Best-effort SDK child process cleanup."""
    try:
        from .llm_client import cleanup_sdk_child_processes

        cleanup_sdk_child_processes()
    except Exception:  # noqa: BLE001
        pass


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
