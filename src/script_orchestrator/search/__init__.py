"""Documentation search client and specialist search agent."""

from .agent import DEFAULT_MAX_COMMANDS, SpecialistSearchAgent
from .client import DocumentationSearch, DocumentationSearchClient, parse_search_response

__all__ = [
    "DEFAULT_MAX_COMMANDS",
    "DocumentationSearch",
    "DocumentationSearchClient",
    "SpecialistSearchAgent",
    "parse_search_response",
]
