"""Web search helpers backed by the Google Custom Search JSON API."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from config import SearchConfig

logger = logging.getLogger(__name__)

_MAX_QUERY_LENGTH = 180


@dataclass(frozen=True)
class SearchResult:
    """One normalized search hit."""

    title: str
    url: str
    snippet: str


class WebSearchClient:
    """Runs raw web searches and condenses them for prompting."""

    def __init__(self, config: SearchConfig):
        self._config = config

    @property
    def enabled(self) -> bool:
        return bool(self._config.api_key and self._config.cx)

    async def search(self, query: str) -> list[SearchResult]:
        """Return up to ``max_results`` normalized results; empty on any failure."""
        trimmed = (query or "").strip()[:_MAX_QUERY_LENGTH]
        if not trimmed:
            return []
        if not self.enabled:
            logger.warning("Web search skipped: search credentials not configured.")
            return []
        params = {"key": self._config.api_key, "cx": self._config.cx, "q": trimmed}
        try:
            async with httpx.AsyncClient(timeout=self._config.timeout) as client:
                response = await client.get(self._config.endpoint, params=params)
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Search API error: {e}")
            return []
        except httpx.RequestError as e:
            logger.error(f"Search connection error: {e}")
            return []
        except ValueError as e:
            logger.error(f"Search response was not valid JSON: {e}")
            return []

        results = _normalize_items(payload, self._config.max_results)
        logger.info("web_search: %s result(s)", len(results))
        return results


def _normalize_items(payload: Any, limit: int) -> list[SearchResult]:
    """Map provider items to ``SearchResult`` entries, skipping incomplete ones."""
    if not isinstance(payload, dict):
        return []
    items = payload.get("items") or payload.get("results") or []
    normalized: list[SearchResult] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        title = str(item.get("title") or item.get("name") or "")
        url = str(item.get("link") or item.get("url") or "")
        if not title or not url:
            continue
        snippet = str(item.get("snippet") or item.get("description") or "")
        normalized.append(SearchResult(title=title[:160], url=url, snippet=snippet[:260]))
        if len(normalized) >= limit:
            break
    return normalized


def condense_results(results: list[SearchResult]) -> str:
    """Render results as compact bullet lines for a summarization prompt."""
    return "".join(f"- {item.title}. {item.snippet}\n" for item in results)
