"""Async HTTP client for the documentation search service.

The service exposes ``GET /search?query=<q>&pageSize=<n>`` and answers with::

    {
      "results": [
        {"document": {"name": ..., "category": ..., "pluginName": ...,
                      "description": ..., "syntax": ..., "parameters": ...,
                      "licenseTier": ...},
         "score": 0.87}
      ],
      "pagination": {...}
    }

Retrieval is best effort: a non-2xx status or a body that cannot be decoded
yields zero matches. Only transport failures (the service cannot be reached
or does not answer in time) raise SearchClientError.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable

import httpx

from ..config import DEFAULT_SEARCH_URL
from ..exceptions import SearchClientError
from ..models import CommandMatch

logger = logging.getLogger(__name__)


@runtime_checkable
class DocumentationSearch(Protocol):
    """Protocol for the documentation search collaborator."""

    async def search_commands(self, query: str, max_results: int) -> list[CommandMatch]:
        """Return up to max_results matches for query, best first."""
        ...


class DocumentationSearchClient:
    """Async client wrapping the documentation search REST API.

    Usage::

        async with DocumentationSearchClient() as client:
            matches = await client.search_commands("sort array", 3)

    Args:
        base_url: Base URL of the search service.
        timeout: Request timeout in seconds.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_SEARCH_URL,
        timeout: float = 15.0,
    ) -> None:
        self._base_url = base_url
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
        )

    async def __aenter__(self) -> DocumentationSearchClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        """Exit the async context manager, closing the underlying HTTP client."""
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def search_commands(self, query: str, max_results: int = 5) -> list[CommandMatch]:
        """Search the documentation index.

        Args:
            query: Search query, sent verbatim.
            max_results: Page size requested from the service.

        Returns:
            Matches in the order the service ranked them. Empty when the
            service answers with an error status or an unreadable body.

        Raises:
            SearchClientError: If the request could not be completed.
        """
        logger.info("Searching documentation for: %s", query)
        params: dict[str, str | int] = {"query": query, "pageSize": max_results}

        try:
            response = await self._client.get("/search", params=params)
        except httpx.HTTPError as e:
            raise SearchClientError(f"Search request failed: {e}") from e

        if not response.is_success:
            logger.warning(
                "Search service returned status %d for query: %s", response.status_code, query
            )
            return []

        try:
            payload = response.json()
            matches = parse_search_response(payload)
        except (ValueError, TypeError, KeyError) as e:
            logger.error("Malformed search response for query %s: %s", query, e)
            return []

        logger.debug("Search returned %d matches for: %s", len(matches), query)
        return matches[:max_results]


def parse_search_response(payload: Any) -> list[CommandMatch]:
    """Convert a decoded search response body into CommandMatch objects.

    Missing optional fields fall back to the same defaults the search tool
    used historically: source file ``<name>.md`` and license tier ``Basic``.

    Raises:
        ValueError: If the payload does not have the expected shape.
    """
    if not isinstance(payload, dict):
        raise ValueError(f"expected object, got {type(payload).__name__}")

    results = payload.get("results") or []
    if not isinstance(results, list):
        raise ValueError("'results' must be a list")

    matches: list[CommandMatch] = []
    for item in results:
        if not isinstance(item, dict):
            raise ValueError("search result entry must be an object")
        document = item.get("document") or {}
        if not isinstance(document, dict):
            raise ValueError("'document' must be an object")

        name = str(document.get("name") or "")
        matches.append(
            CommandMatch(
                name=name,
                syntax=str(document.get("syntax") or ""),
                parameters=str(document.get("parameters") or ""),
                description=str(document.get("description") or ""),
                source_file=f"{name}.md",
                license_tier=str(document.get("licenseTier") or "Basic"),
                category=str(document.get("category") or ""),
                plugin_name=str(document.get("pluginName") or ""),
                score=float(item.get("score") or 0.0),
            )
        )

    return matches
