"""Research agent: per-topic fan-out research followed by a strategic synthesis."""

import asyncio
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .llm import call_llm, to_json
from .log import get_logger
from .web_search import WebSearchAgent

logger = get_logger(__name__)


class ResearchDomain(str, Enum):
    TECHNOLOGY = "technology"
    MARKET = "market"
    COMPETITION = "competition"
    REGULATIONS = "regulations"
    BEST_PRACTICES = "best_practices"
    ARCHITECTURE = "architecture"
    SECURITY = "security"
    SCALABILITY = "scalability"


MARKET_KEYWORDS = ("market", "business", "competition")
TECHNOLOGY_KEYWORDS = ("tech", "framework", "architecture")

# Points awarded per kind of finding gathered for a topic (4 kinds -> 100).
FINDING_WEIGHTS = {
    "web_research": 25,
    "technical_analysis": 25,
    "market_analysis": 25,
    "risk_analysis": 25,
}

STRATEGY_PROMPT = """You are a research strategist. Plan the optimal research approach for this topic.

Respond with JSON:
{
  "web_search_needed": true,
  "search_queries": ["specific search queries"],
  "technical_analysis_needed": true,
  "market_analysis_needed": true,
  "risk_analysis_needed": true,
  "specialized_research": ["specialized research areas"],
  "expected_insights": ["insights we expect to find"],
  "research_priority": "high|medium|low"
}"""

TECHNICAL_PROMPT = """You are a technical architect and engineer. Perform deep technical analysis on this topic.

Respond with JSON:
{
  "technical_feasibility": "high|medium|low",
  "implementation_complexity": "low|medium|high|very_high",
  "recommended_technologies": ["technology recommendations"],
  "architecture_patterns": ["suitable architecture patterns"],
  "performance_considerations": ["performance factors"],
  "scalability_factors": ["scalability considerations"],
  "security_implications": ["security considerations"],
  "maintenance_requirements": ["maintenance considerations"],
  "technical_risks": ["technical risks"],
  "development_timeline": "estimated development time"
}"""

MARKET_PROMPT = """You are a market research analyst. Analyze the market landscape for this topic.

Respond with JSON:
{
  "market_size": "estimated market size and growth",
  "target_segments": ["target market segments"],
  "competition_level": "low|medium|high|very_high",
  "market_trends": ["relevant market trends"],
  "opportunities": ["market opportunities"],
  "threats": ["market threats"],
  "pricing_insights": ["pricing strategy insights"],
  "go_to_market_strategy": ["GTM recommendations"],
  "market_validation": "validation status and recommendations"
}"""

RISK_PROMPT = """You are a risk management expert. Identify and analyze risks for this topic.

Respond with JSON:
{
  "technical_risks": [{"risk": "description", "probability": "high|medium|low", "impact": "high|medium|low", "mitigation": "strategy"}],
  "business_risks": [{"risk": "description", "probability": "high|medium|low", "impact": "high|medium|low", "mitigation": "strategy"}],
  "operational_risks": [{"risk": "description", "probability": "high|medium|low", "impact": "high|medium|low", "mitigation": "strategy"}],
  "regulatory_risks": [{"risk": "description", "probability": "high|medium|low", "impact": "high|medium|low", "mitigation": "strategy"}],
  "overall_risk_level": "low|medium|high|very_high",
  "critical_success_factors": ["factors critical for success"],
  "risk_mitigation_plan": ["overall mitigation strategies"]
}"""

COMPETITION_PROMPT = """You are a competitive intelligence analyst. Map the competitive landscape for this subject.

Respond with JSON:
{
  "direct_competitors": ["direct competitors"],
  "indirect_competitors": ["indirect competitors or substitutes"],
  "differentiation_opportunities": ["ways to stand out"],
  "competitive_threats": ["threats from competitors"],
  "market_positioning": "recommended positioning"
}"""

DOMAIN_PROMPT = """You are a domain research specialist. Research the given knowledge domain for this subject.

Respond with JSON:
{
  "key_findings": ["most important findings"],
  "considerations": ["factors the project must take into account"],
  "recommendations": ["specific recommendations"],
  "open_questions": ["questions that need further research"],
  "confidence_level": "high|medium|low"
}"""

TOPIC_SYNTHESIS_PROMPT = """You are a research synthesizer. Combine all research findings into actionable insights.

Respond with JSON:
{
  "key_insights": ["most important insights"],
  "actionable_recommendations": ["specific recommendations"],
  "implementation_priorities": ["prioritized implementation steps"],
  "success_metrics": ["metrics to track success"],
  "next_steps": ["immediate next steps"],
  "confidence_level": "high|medium|low",
  "research_quality": "excellent|good|fair|poor"
}"""

STRATEGIC_SYNTHESIS_PROMPT = """You are a strategic research synthesizer. Combine all research across topics into a comprehensive strategic analysis.

Respond with JSON:
{
  "strategic_insights": ["high-level strategic insights"],
  "cross_topic_patterns": ["patterns identified across topics"],
  "synergies": ["synergies between different areas"],
  "conflicts": ["conflicting findings that need resolution"],
  "overall_feasibility": "high|medium|low",
  "strategic_recommendations": ["strategic recommendations"],
  "implementation_roadmap": ["phased implementation steps"],
  "risk_level": "low|medium|high|very_high",
  "success_probability": "percentage estimate of success probability"
}"""


def calculate_research_confidence(research_results: Dict[str, Dict[str, Any]]) -> int:
    """Average, across topics, of 25 points per kind of finding gathered."""
    if not research_results:
        return 0
    total = 0
    for result in research_results.values():
        findings = result.get("findings") or {}
        total += sum(weight for kind, weight in FINDING_WEIGHTS.items() if findings.get(kind))
    return round(total / len(research_results))


def _filter_topics(topics: List[str], keywords: tuple) -> List[str]:
    return [topic for topic in topics if any(keyword in topic.lower() for keyword in keywords)]


DomainHandler = Callable[[str, ResearchDomain], Awaitable[Dict[str, Any]]]


class ResearchAgent:
    """Conducts technical, market and risk research on a list of topics."""

    knowledge_domains = list(ResearchDomain)

    def __init__(self, web_search: Optional[WebSearchAgent] = None):
        self.web_search = web_search or WebSearchAgent()
        self._domain_handlers: Dict[ResearchDomain, DomainHandler] = {
            ResearchDomain.TECHNOLOGY: self._technology_domain,
            ResearchDomain.ARCHITECTURE: self._technology_domain,
            ResearchDomain.MARKET: self._market_domain,
            ResearchDomain.COMPETITION: self._competition_domain,
            ResearchDomain.SECURITY: self._risk_domain,
            ResearchDomain.REGULATIONS: self._risk_domain,
        }

    async def conduct_research(self, topics: List[str]) -> Dict[str, Any]:
        """Research every topic concurrently, then synthesize across topics."""
        logger.info(f"Research agent: investigating {len(topics)} topics")

        per_topic = await asyncio.gather(*[self.research_topic(topic) for topic in topics])
        research_results = dict(zip(topics, per_topic))

        synthesis = await self.synthesize_research(research_results)

        return {
            "individual_research": research_results,
            "synthesis": synthesis,
            "research_metadata": {
                "topics_investigated": len(topics),
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "confidence_score": calculate_research_confidence(research_results),
            },
        }

    async def research_topic(self, topic: str) -> Dict[str, Any]:
        logger.info(f"Researching: {topic}")
        strategy = await self.plan_research_strategy(topic)

        jobs: Dict[str, Awaitable[Dict[str, Any]]] = {}
        queries = [q for q in strategy.get("search_queries") or [] if isinstance(q, str) and q.strip()]
        if strategy.get("web_search_needed") and queries:
            jobs["web_research"] = self.web_search.search_multiple_queries(queries)
        if strategy.get("technical_analysis_needed"):
            jobs["technical_analysis"] = self.perform_technical_analysis(topic)
        if strategy.get("market_analysis_needed"):
            jobs["market_analysis"] = self.perform_market_analysis(topic)
        if strategy.get("risk_analysis_needed"):
            jobs["risk_analysis"] = self.perform_risk_analysis(topic)

        outcomes = await asyncio.gather(*jobs.values())
        findings = dict(zip(jobs.keys(), outcomes))

        return {
            "topic": topic,
            "strategy": strategy,
            "findings": findings,
            "synthesis": await self.synthesize_topic_findings(topic, findings),
        }

    async def plan_research_strategy(self, topic: str) -> Dict[str, Any]:
        return await call_llm(
            STRATEGY_PROMPT,
            f"Research Topic: {topic}\n\n"
            "Plan a comprehensive research strategy to gather the most valuable insights about this topic.",
        )

    async def perform_technical_analysis(self, topic: str) -> Dict[str, Any]:
        return await call_llm(
            TECHNICAL_PROMPT,
            f"Technical Analysis Topic: {topic}\n\n"
            "Provide comprehensive technical analysis covering all aspects of implementation.",
        )

    async def perform_market_analysis(self, topic: str) -> Dict[str, Any]:
        year = datetime.now(timezone.utc).year
        market_search = await self.web_search.search_multiple_queries([
            f"{topic} market size analysis {year}",
            f"{topic} industry trends growth",
            f"{topic} target audience demographics",
            f"{topic} pricing models revenue streams",
        ])
        return await call_llm(
            MARKET_PROMPT,
            f"Market Analysis Topic: {topic}\n\n"
            f"Market Research Data:\n{to_json(market_search)}\n\n"
            "Provide comprehensive market analysis.",
        )

    async def perform_risk_analysis(self, topic: str) -> Dict[str, Any]:
        return await call_llm(
            RISK_PROMPT,
            f"Risk Analysis Topic: {topic}\n\n"
            "Identify and analyze all potential risks and provide mitigation strategies.",
        )

    async def synthesize_topic_findings(self, topic: str, findings: Dict[str, Any]) -> Dict[str, Any]:
        return await call_llm(
            TOPIC_SYNTHESIS_PROMPT,
            f"Research Topic: {topic}\n\n"
            f"Research Findings:\n{to_json(findings)}\n\n"
            "Synthesize all findings into actionable insights and recommendations.",
        )

    async def synthesize_research(self, research_results: Dict[str, Any]) -> Dict[str, Any]:
        return await call_llm(
            STRATEGIC_SYNTHESIS_PROMPT,
            f"Comprehensive Research Results:\n{to_json(research_results)}\n\n"
            "Provide strategic synthesis across all research topics.",
        )

    async def analyze_market(self, topics: List[str]) -> Optional[Dict[str, Any]]:
        market_topics = _filter_topics(topics, MARKET_KEYWORDS)
        if not market_topics:
            return None
        return await self.conduct_research(market_topics)

    async def research_technologies(self, topics: List[str]) -> Optional[Dict[str, Any]]:
        tech_topics = _filter_topics(topics, TECHNOLOGY_KEYWORDS)
        if not tech_topics:
            return None
        return await self.conduct_research(tech_topics)

    # Knowledge-domain sweep

    async def survey_domains(self, subject: str) -> Dict[str, Any]:
        """Research ``subject`` across every knowledge domain, then synthesize."""
        logger.info(f"Research agent: surveying {len(self.knowledge_domains)} domains for {subject!r}")

        outcomes = await asyncio.gather(*[
            self._domain_handlers.get(domain, self._generic_domain)(subject, domain)
            for domain in self.knowledge_domains
        ])
        domain_results = {domain.value: outcome for domain, outcome in zip(self.knowledge_domains, outcomes)}

        return {
            "subject": subject,
            "domains": domain_results,
            "synthesis": await self.synthesize_research(domain_results),
        }

    async def _technology_domain(self, subject: str, domain: ResearchDomain) -> Dict[str, Any]:
        return await self.perform_technical_analysis(f"{subject} ({domain.value})")

    async def _market_domain(self, subject: str, domain: ResearchDomain) -> Dict[str, Any]:
        return await self.perform_market_analysis(subject)

    async def _risk_domain(self, subject: str, domain: ResearchDomain) -> Dict[str, Any]:
        return await self.perform_risk_analysis(f"{subject} ({domain.value})")

    async def _competition_domain(self, subject: str, domain: ResearchDomain) -> Dict[str, Any]:
        competitor_search = await self.web_search.search_competitors(subject)
        return await call_llm(
            COMPETITION_PROMPT,
            f"Subject: {subject}\n\n"
            f"Competitor Research:\n{to_json(competitor_search)}\n\n"
            "Map the competitive landscape.",
        )

    async def _generic_domain(self, subject: str, domain: ResearchDomain) -> Dict[str, Any]:
        return await call_llm(
            DOMAIN_PROMPT,
            f"Subject: {subject}\n"
            f"Knowledge Domain: {domain.value}\n\n"
            "Provide focused research for this domain.",
        )
