"""Script assembler: combines per-subtask commands into one script.

A single subtask is formatted directly, with no LLM call. Several subtasks
are woven together by exactly one LLM call whose prompt carries the
dependency order and every subtask's available commands.
"""

from __future__ import annotations

import asyncio
import logging

from .llm_client import LLMClient
from .models import AssemblyResult, CommandMatch, SubTask

logger = logging.getLogger(__name__)

CODE_FENCE = "```"

ASSEMBLY_REQUIREMENTS = """Requirements:
1. Generate a complete, executable script
2. Respect the dependency order between subtasks
3. Ensure proper variable flow between steps
4. Include error handling where appropriate
5. Add brief comments explaining each major step
6. Use the provided command syntax

Return ONLY the script code, no explanations:"""


def format_trivial_script(commands: list[CommandMatch] | tuple[CommandMatch, ...]) -> str:
    """Render commands as comment + call blocks separated by blank lines."""
    blocks = []
    for command in commands:
        call = command.syntax if command.syntax else f"{command.name}();"
        blocks.append(f"// {command.description}\n{call}")
    return "\n\n".join(blocks).strip()


def format_assembly_prompt(
    user_request: str,
    subtasks: list[SubTask],
    commands_by_subtask: dict[int, list[CommandMatch]],
) -> str:
    """Build the prompt for multi-subtask assembly.

    Subtasks are listed by id with their dependencies and available
    commands. A subtask with no commands gets an inline WARNING line so the
    model knows about the gap.
    """
    lines = [
        "Generate a complete, working script for the following user request:",
        "",
        f'User request: "{user_request}"',
        "",
        "The request has been broken down into subtasks with commands found for each:",
        "",
    ]

    for subtask in sorted(subtasks, key=lambda st: st.id):
        lines.append(f"Subtask {subtask.id}: {subtask.description}")

        if subtask.depends_on:
            lines.append(f"  Dependencies: {', '.join(str(d) for d in subtask.depends_on)}")

        commands = commands_by_subtask.get(subtask.id) or []
        if commands:
            lines.append("  Available commands:")
            for cmd in commands:
                lines.append(f"    - {cmd.name}: {cmd.description}")
                if cmd.syntax:
                    lines.append(f"      Syntax: {cmd.syntax}")
                if cmd.parameters:
                    lines.append(f"      Parameters: {cmd.parameters}")
        else:
            lines.append("  WARNING: No commands found for this subtask")

        lines.append("")

    lines.append(ASSEMBLY_REQUIREMENTS)
    return "\n".join(lines)


def extract_code_from_markdown(content: str) -> str:
    """Strip a markdown code fence from an LLM reply.

    Takes the interior of the first fenced block. The opening fence line,
    including any language tag, is dropped. A block opened and closed on
    the same line keeps everything between the fences. If the block is
    never closed, everything after the opening fence line is kept.

    Args:
        content: Raw LLM reply.

    Returns:
        Script text without fence markers.
    """
    fence_start = content.find(CODE_FENCE)
    if fence_start < 0:
        return content.strip()

    after_fence = fence_start + len(CODE_FENCE)
    closing = content.find(CODE_FENCE, after_fence)
    line_end = content.find("\n", after_fence)

    # Single-line block, e.g. "```print('hi')```"; no language tag to drop
    if closing >= 0 and (line_end < 0 or closing < line_end):
        return content[after_fence:closing].strip()

    if line_end < 0:
        # Opening fence with no body, e.g. "```python"
        return ""

    code_start = line_end + 1
    code_end = content.find(CODE_FENCE, code_start)
    if code_end < 0:
        return content[code_start:].strip()

    return content[code_start:code_end].strip()


class ScriptAssembler:
    """Assembles commands from subtasks into a coherent script."""

    def __init__(
        self,
        client: LLMClient,
        timeout_seconds: float | None = None,
        log_assembly: bool = True,
    ) -> None:
        """Initialize the assembler.

        Args:
            client: LLM client used for the multi-subtask path.
            timeout_seconds: Optional deadline for the LLM call.
            log_assembly: Log the prompt size and the resulting script size.
        """
        self.client = client
        self.timeout_seconds = timeout_seconds
        self.log_assembly = log_assembly

    async def assemble_script(
        self,
        user_request: str,
        subtasks: list[SubTask],
        commands_by_subtask: dict[int, list[CommandMatch]],
    ) -> AssemblyResult:
        """Assemble a script from the commands found for each subtask.

        Never raises; failures come back as success=False.

        Args:
            user_request: Original request, embedded in the assembly prompt.
            subtasks: All subtasks of the decomposition.
            commands_by_subtask: Subtask id -> commands found for it.

        Returns:
            AssemblyResult with the script and any warnings.
        """
        logger.info("Assembling script for %d subtasks", len(subtasks))

        try:
            if len(subtasks) == 1:
                return self._assemble_trivial(subtasks[0], commands_by_subtask)

            return await self._assemble_complex(user_request, subtasks, commands_by_subtask)

        except asyncio.TimeoutError:
            logger.error("Script assembly timed out after %ss", self.timeout_seconds)
            return AssemblyResult(
                success=False,
                error_message=f"Script assembly timed out after {self.timeout_seconds} seconds",
            )
        except Exception as e:
            logger.exception("Error assembling script")
            return AssemblyResult(success=False, error_message=f"Script assembly failed: {e}")

    def _assemble_trivial(
        self, subtask: SubTask, commands_by_subtask: dict[int, list[CommandMatch]]
    ) -> AssemblyResult:
        logger.debug("Performing trivial assembly for single subtask")

        commands = commands_by_subtask.get(subtask.id) or []
        if not commands:
            return AssemblyResult(success=False, error_message="No commands found for subtask")

        return AssemblyResult(script=format_trivial_script(commands), success=True)

    async def _assemble_complex(
        self,
        user_request: str,
        subtasks: list[SubTask],
        commands_by_subtask: dict[int, list[CommandMatch]],
    ) -> AssemblyResult:
        logger.debug("Performing complex assembly for %d subtasks", len(subtasks))

        prompt = format_assembly_prompt(user_request, subtasks, commands_by_subtask)
        if self.log_assembly:
            logger.info("Assembly prompt built (%d chars)", len(prompt))

        if self.timeout_seconds is not None:
            response = await asyncio.wait_for(
                self.client.send_message(prompt), timeout=self.timeout_seconds
            )
        else:
            response = await self.client.send_message(prompt)

        script = extract_code_from_markdown((response or "").strip())
        warnings = validate_script(subtasks, commands_by_subtask, script)

        if self.log_assembly:
            logger.info(
                "Assembled script: %d lines, %d warnings", len(script.splitlines()), len(warnings)
            )

        return AssemblyResult(script=script, success=True, warnings=warnings)


def validate_script(
    subtasks: list[SubTask],
    commands_by_subtask: dict[int, list[CommandMatch]],
    script: str,
) -> list[str]:
    """Produce non-fatal warnings about an assembled script."""
    warnings = [
        f"Subtask {subtask.id} had no commands available"
        for subtask in subtasks
        if not commands_by_subtask.get(subtask.id)
    ]

    if not script.strip():
        warnings.append("Generated script is empty")

    return warnings
