# utils/exa_searcher.py
"""
Exa Search Client
Executes web searches with the Exa API to gather evidence for claims

A fresh httpx.AsyncClient is opened per search batch: requests run on
per-request event loops, and a pooled client must not outlive its loop.
"""

import asyncio
import time
from typing import List, Optional

import httpx
from langsmith import traceable
from pydantic import BaseModel, Field

from utils.logger import risk_logger


class ExaSearchResult(BaseModel):
    """Single search result from Exa"""
    url: str = ""
    title: str = ""
    text: str = ""
    published_date: Optional[str] = None


class ExaSearchResults(BaseModel):
    """Results for one query, or the error that prevented them"""
    query: str
    results: List[ExaSearchResult] = Field(default_factory=list)
    error: Optional[str] = None
    search_time: float = 0.0

    def get_urls(self) -> List[str]:
        return [r.url for r in self.results if r.url]


class ExaSearcher:
    """
    Web search client using the Exa API

    Features:
    - Async search with per-call timeout
    - Concurrent multi-query search where one failed query never fails the others
    - Search statistics
    """

    EXA_API_URL = "https://api.exa.ai/search"

    def __init__(
        self,
        api_key: str,
        num_results: int = 3,
        max_characters: int = 2000,
        timeout: float = 20.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        if not api_key:
            raise ValueError("EXA_API_KEY not configured")

        self.api_key = api_key
        self.num_results = num_results
        self.max_characters = max_characters
        self.timeout = timeout
        self._transport = transport

        self.stats = {
            "total_searches": 0,
            "successful_searches": 0,
            "failed_searches": 0,
            "total_results": 0,
            "total_search_time": 0.0
        }

        risk_logger.log_component_start(
            "ExaSearcher",
            num_results=num_results,
            max_characters=max_characters
        )

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            transport=self._transport,
            headers={
                "x-api-key": self.api_key,
                "Content-Type": "application/json",
                "Accept": "application/json"
            }
        )

    async def _search_with_client(self, client: httpx.AsyncClient, query: str) -> ExaSearchResults:
        start_time = time.time()
        self.stats["total_searches"] += 1

        risk_logger.logger.bind(query=query, num_results=self.num_results).info(
            f"🔍 Exa search: {query}"
        )

        try:
            response = await client.post(
                self.EXA_API_URL,
                json={
                    "query": query,
                    "num_results": self.num_results,
                    "contents": {"text": {"max_characters": self.max_characters}}
                }
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            self.stats["failed_searches"] += 1
            risk_logger.log_component_error("ExaSearcher", e, query=query)
            return ExaSearchResults(
                query=query,
                error=f"Search failed: {e}",
                search_time=time.time() - start_time
            )

        results = [
            ExaSearchResult(
                url=r.get("url") or "",
                title=r.get("title") or "",
                text=r.get("text") or "",
                published_date=r.get("publishedDate")
            )
            for r in data.get("results") or []
        ]

        search_time = time.time() - start_time
        self.stats["successful_searches"] += 1
        self.stats["total_results"] += len(results)
        self.stats["total_search_time"] += search_time

        return ExaSearchResults(query=query, results=results, search_time=search_time)

    @traceable(
        name="exa_search",
        run_type="tool",
        tags=["web-search", "exa"]
    )
    async def search(self, query: str) -> ExaSearchResults:
        """Run a single search; failures come back as ExaSearchResults.error"""
        async with self._client() as client:
            return await self._search_with_client(client, query)

    async def search_many(self, queries: List[str]) -> List[ExaSearchResults]:
        """Run several searches concurrently over one client, results in query order"""
        if not queries:
            return []

        async with self._client() as client:
            results = await asyncio.gather(
                *(self._search_with_client(client, q) for q in queries)
            )
        return list(results)
