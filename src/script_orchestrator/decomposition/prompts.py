"""Prompt template for request decomposition."""

from __future__ import annotations

DECOMPOSITION_PROMPT_TEMPLATE = """Decompose the following user request into atomic subtasks.

User request: "{user_request}"

Rules:
- For SIMPLE requests (single operation), return ONE subtask
- For COMPLEX requests (multiple operations), return MULTIPLE subtasks
- Each subtask should be a single, focused operation
- Identify dependencies between subtasks (which must complete before others)
- Number subtasks starting from 1

Return ONLY a JSON object with this structure:
{{
  "subtasks": [
    {{
      "id": 1,
      "description": "Brief description of what this subtask does",
      "depends_on": []
    }},
    {{
      "id": 2,
      "description": "Another subtask",
      "depends_on": [1]
    }}
  ]
}}

Examples:

Simple request: "Create an array"
{{
  "subtasks": [
    {{"id": 1, "description": "Create an array", "depends_on": []}}
  ]
}}

Complex request: "Create a list, sort it, and save to file"
{{
  "subtasks": [
    {{"id": 1, "description": "Create and populate array", "depends_on": []}},
    {{"id": 2, "description": "Sort array alphabetically", "depends_on": [1]}},
    {{"id": 3, "description": "Write array to file", "depends_on": [2]}}
  ]
}}

JSON:"""


def format_decomposition_prompt(user_request: str) -> str:
    """Format the decomposition prompt for a user request.

    Args:
        user_request: The natural-language request, passed through as-is.

    Returns:
        Prompt asking the LLM for a JSON subtask list.
    """
    return DECOMPOSITION_PROMPT_TEMPLATE.format(user_request=user_request)
