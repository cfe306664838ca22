"""Search-engine and news adapter backed by SerpAPI's Google engine."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Iterable, List

import httpx

from replookup.models import Platform, RecordType, RetrievalResult, TargetPerson

from .base import HttpSourceAdapter

LOGGER = logging.getLogger(__name__)

QUERY_SUFFIXES = ("", "professional", "controversy", "achievement")


class SerpApiAdapter(HttpSourceAdapter):
    """Run several name-scoped Google queries and normalize organic and news hits."""

    name = "serpapi"
    base_url = "https://serpapi.com"

    def __init__(
        self,
        *,
        api_key: str,
        results_per_query: int = 5,
        additional_terms: Iterable[str] = (),
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self._api_key = api_key
        self._results_per_query = results_per_query
        self._additional_terms = tuple(additional_terms)

    def build_queries(self, name: str) -> List[str]:
        base = f'"{name}"'
        suffixes = [*QUERY_SUFFIXES, *self._additional_terms]
        return [f"{base} {suffix}".strip() for suffix in suffixes]

    async def fetch(self, target: TargetPerson) -> List[RetrievalResult]:
        queries = self.build_queries(target.name)
        async with self.client() as client:
            outcomes = await asyncio.gather(
                *(self._search(client, query) for query in queries),
                return_exceptions=True,
            )

        results: List[RetrievalResult] = []
        for query, outcome in zip(queries, outcomes):
            if isinstance(outcome, BaseException):
                # Individual query failures are tolerated; the remaining queries still count.
                LOGGER.warning("SerpAPI query %r failed: %s", query, outcome)
                continue
            results.extend(self._normalize_organic(outcome.get("organic_results") or []))
            results.extend(self._normalize_news(outcome.get("news_results") or []))
        return results

    async def _search(self, client: httpx.AsyncClient, query: str) -> Dict[str, Any]:
        params = {
            "q": query,
            "api_key": self._api_key,
            "engine": "google",
            "num": self._results_per_query,
            "start": 0,
            "location": "United States",
            "hl": "en",
            "gl": "us",
        }
        payload = await self.get_json(client, "/search", params=params)
        return payload if isinstance(payload, dict) else {}

    def _normalize_organic(self, items: Iterable[Dict[str, Any]]) -> List[RetrievalResult]:
        results: List[RetrievalResult] = []
        for item in items:
            link = item.get("link")
            if not link:
                continue
            results.append(
                RetrievalResult(
                    platform=Platform.GOOGLE_SEARCH.value,
                    type=RecordType.ARTICLE,
                    content={
                        "title": item.get("title"),
                        "snippet": item.get("snippet"),
                        "displayedLink": item.get("displayed_link"),
                    },
                    url=link,
                    timestamp=None,
                    source=self.name,
                    confidence=_position_confidence(item.get("position")),
                )
            )
        return results

    def _normalize_news(self, items: Iterable[Dict[str, Any]]) -> List[RetrievalResult]:
        results: List[RetrievalResult] = []
        for item in items:
            link = item.get("link")
            if not link:
                continue
            source = item.get("source")
            if isinstance(source, dict):
                source = source.get("name")
            results.append(
                RetrievalResult(
                    platform=Platform.GOOGLE_NEWS.value,
                    type=RecordType.ARTICLE,
                    content={
                        "title": item.get("title"),
                        "snippet": item.get("snippet"),
                        "source": source,
                        "date": item.get("date"),
                    },
                    url=link,
                    timestamp=item.get("date"),
                    source=self.name,
                )
            )
        return results


def _position_confidence(position: Any) -> float | None:
    """Map a 1-based organic rank to a relevance score in (0, 1]."""

    if not isinstance(position, int) or position < 1:
        return None
    return round(1.0 / position, 4)
