"""Web search client: provider query, LLM analysis, batched synthesis."""

import asyncio
import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx

from .config import (
    SERPER_API_KEY,
    SERPER_API_URL,
    SEARCH_NUM_RESULTS,
    SEARCH_RESULT_LIMIT,
    SEARCH_TIMEOUT,
)
from .errors import UpstreamError
from .llm import call_llm, to_json
from .log import get_logger

logger = get_logger(__name__)

UNAVAILABLE_ANALYSIS = {
    "key_insights": ["Web search unavailable - API key not configured"],
    "trends": ["Unable to analyze current trends without web access"],
    "recommendations": ["Configure SERPER_API_KEY for enhanced research capabilities"],
    "technical_details": ["Web search functionality disabled"],
    "market_data": ["Market analysis unavailable without web search"],
    "competitors": ["Competitor analysis unavailable without web search"],
    "technologies": ["Technology research limited without web access"],
    "summary": (
        "Web search functionality is disabled. "
        "Configure SERPER_API_KEY to enable real-time research capabilities."
    ),
}

ANALYSIS_SYSTEM_PROMPT = """You are a research analyst. Analyze these search results and extract key insights, trends, and actionable information.

Respond with JSON:
{
  "key_insights": ["key insights"],
  "trends": ["identified trends"],
  "recommendations": ["actionable recommendations"],
  "technical_details": ["technical information found"],
  "market_data": ["market-related information"],
  "competitors": ["competitors or similar solutions"],
  "technologies": ["relevant technologies mentioned"],
  "summary": "concise summary of findings"
}"""

SYNTHESIS_SYSTEM_PROMPT = """You are a research synthesizer. Analyze multiple search results and create a comprehensive synthesis of findings.

Respond with JSON:
{
  "overall_insights": ["insights across all searches"],
  "common_themes": ["themes that appeared across searches"],
  "contradictions": ["contradictory information found"],
  "confidence_level": "high|medium|low",
  "research_gaps": ["areas needing more research"],
  "actionable_conclusions": ["actionable conclusions"]
}"""


def normalize_results(raw: Dict[str, Any], limit: int = SEARCH_RESULT_LIMIT) -> List[Dict[str, Any]]:
    """Keep the top organic hits as {title, snippet, url, date}."""
    organic = raw.get("organic") or []
    return [
        {
            "title": item.get("title"),
            "snippet": item.get("snippet"),
            "url": item.get("link"),
            "date": item.get("date"),
        }
        for item in organic[:limit]
        if isinstance(item, dict)
    ]


class WebSearchAgent:
    """Searches the web and asks the completion model to structure the findings.

    Responses are cached for the lifetime of the instance, keyed by query text
    plus options. A missing SERPER_API_KEY degrades to an empty result set with
    an "unavailable" analysis instead of failing.
    """

    def __init__(self):
        self.cache: Dict[str, Dict[str, Any]] = {}

    @staticmethod
    def _cache_key(query: str, options: Optional[Dict[str, Any]]) -> str:
        return f"{query}-{json.dumps(options or {}, sort_keys=True)}"

    async def search(self, query: str, options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Search for ``query`` and analyze the top hits.

        Returns:
            {"query", "results", "analysis", "timestamp"}

        Raises:
            UpstreamError: The search provider or the analysis call failed
        """
        cache_key = self._cache_key(query, options)
        if cache_key in self.cache:
            return self.cache[cache_key]

        logger.info(f"Web search: {query!r}")

        if not SERPER_API_KEY:
            logger.warning("SERPER_API_KEY not configured - web search disabled")
            result = {
                "query": query,
                "results": [],
                "analysis": dict(UNAVAILABLE_ANALYSIS),
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
            self.cache[cache_key] = result
            return result

        raw = await self._query_provider(query, options or {})
        results = normalize_results(raw)
        if results:
            analysis = await self._analyze_results(query, results)
        else:
            analysis = {
                "key_insights": [],
                "trends": [],
                "recommendations": [],
                "technical_details": [],
                "market_data": [],
                "competitors": [],
                "technologies": [],
                "summary": f"No results found for {query!r}.",
            }

        result = {
            "query": query,
            "results": results,
            "analysis": analysis,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        self.cache[cache_key] = result
        return result

    async def _query_provider(self, query: str, options: Dict[str, Any]) -> Dict[str, Any]:
        params = {
            "q": query,
            "num": options.get("num_results", SEARCH_NUM_RESULTS),
            "hl": options.get("language", "en"),
            "gl": options.get("country", "us"),
        }
        headers = {
            "X-API-KEY": SERPER_API_KEY,
            "Content-Type": "application/json",
        }
        try:
            async with httpx.AsyncClient(timeout=SEARCH_TIMEOUT) as client:
                response = await client.post(SERPER_API_URL, headers=headers, json=params)
        except httpx.HTTPError as e:
            raise UpstreamError(f"Search request failed: {e}") from e

        if response.status_code >= 400:
            raise UpstreamError(f"Search API error: {response.status_code}", status_code=response.status_code)
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(f"Search API returned invalid JSON: {e}") from e

    async def _analyze_results(self, query: str, results: List[Dict[str, Any]]) -> Dict[str, Any]:
        user_prompt = f"""Search Query: "{query}"

Search Results:
{to_json(results)}

Analyze these results and provide comprehensive insights."""
        return await call_llm(ANALYSIS_SYSTEM_PROMPT, user_prompt, structured=True)

    async def _safe_search(self, query: str) -> Dict[str, Any]:
        try:
            return await self.search(query)
        except Exception as e:
            logger.error(f"Search failed for {query!r}: {e}")
            return {"query": query, "results": [], "analysis": None, "error": str(e)}

    async def search_multiple_queries(self, queries: List[str]) -> Dict[str, Any]:
        """
        Run all queries concurrently, then synthesize across them.

        A failing query becomes ``{"results": [], "analysis": None, "error": ...}``
        in ``individual_results``; it never aborts the batch.
        """
        logger.info(f"Performing batch search for {len(queries)} queries")

        results = await asyncio.gather(*[self._safe_search(query) for query in queries])
        synthesis = await self.synthesize_multiple_searches(queries, list(results))

        return {
            "individual_results": list(results),
            "synthesis": synthesis,
        }

    async def synthesize_multiple_searches(
        self,
        queries: List[str],
        results: List[Dict[str, Any]],
    ) -> Dict[str, Any]:
        user_prompt = f"""Search Queries: {json.dumps(queries)}

Search Results:
{to_json(results)}

Synthesize these findings into comprehensive insights."""
        return await call_llm(SYNTHESIS_SYSTEM_PROMPT, user_prompt, structured=True)

    async def search_technologies(self, project_type: str) -> Dict[str, Any]:
        year = datetime.now(timezone.utc).year
        return await self.search_multiple_queries([
            f"best {project_type} technology stack {year}",
            f"{project_type} development frameworks comparison",
            f"{project_type} architecture patterns best practices",
            f"{project_type} scalability performance benchmarks",
        ])

    async def search_competitors(self, project_idea: str) -> Dict[str, Any]:
        return await self.search_multiple_queries([
            f"{project_idea} competitors market analysis",
            f"similar products to {project_idea}",
            f"{project_idea} market size trends",
            f"{project_idea} business model analysis",
        ])

    async def search_best_practices(self, domain: str) -> Dict[str, Any]:
        year = datetime.now(timezone.utc).year
        return await self.search_multiple_queries([
            f"{domain} best practices {year}",
            f"{domain} common mistakes to avoid",
            f"{domain} success stories case studies",
            f"{domain} implementation guidelines",
        ])

    def clear_cache(self):
        self.cache.clear()
