"""Agentic project generation: analysis, research, generation, validation."""

import asyncio
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from .enhancement import EnhancementAgent
from .knowledge import KnowledgeBase
from .llm import call_llm, to_json
from .log import get_logger, log_with_context
from .models import Contributor
from .research import ResearchAgent
from .validation import ValidationAgent
from .web_search import WebSearchAgent

logger = get_logger(__name__)


class Phase(str, Enum):
    ANALYSIS = "analysis"
    RESEARCH = "research"
    GENERATION = "generation"
    VALIDATION = "validation"
    DONE = "done"


PHASE_ORDER = list(Phase)

# Points per execution-log line mentioning each word; a display heuristic only.
CONFIDENCE_WEIGHTS = {
    "research": 20,
    "validation": 25,
    "enhancement": 15,
}

ANALYSIS_PROMPT = """You are an autonomous project analysis agent. Analyze the project idea and determine what additional research, validation, and enhancement is needed.

Respond with JSON:
{
  "complexity_assessment": "low|medium|high|very_high",
  "research_needed": ["research topics"],
  "validation_checks": ["validation requirements"],
  "enhancement_opportunities": ["enhancement suggestions"],
  "web_search_queries": ["search queries to perform"],
  "additional_llm_calls": ["specialized LLM tasks needed"],
  "risk_factors": ["potential risks"],
  "success_factors": ["critical success factors"]
}"""

GENERATION_PROMPT = """You are an expert project architect with access to comprehensive research and market analysis.
Use the provided research findings and agent analysis to create a superior project plan.

Respond with JSON:
{
  "title": "project title",
  "description": "comprehensive project description",
  "objectives": ["primary objectives"],
  "scope_assumptions": ["scope assumptions"],
  "milestones": [
    {
      "name": "milestone name",
      "description": "milestone description",
      "duration_weeks": 2,
      "deliverables": ["deliverables"],
      "tasks": [
        {
          "id": "T1",
          "title": "task title",
          "description": "task description",
          "required_expertise": ["expertise"],
          "estimated_hours": 20,
          "priority": "Critical|High|Medium|Low"
        }
      ]
    }
  ],
  "assignments": [
    {
      "task_id": "T1",
      "assigned_to": "contributor name",
      "start_week": 1,
      "end_week": 2,
      "assignment_rationale": "why this contributor"
    }
  ],
  "technical_architecture": "architecture overview",
  "risks": ["risks and mitigations"],
  "research_insights": ["insights from the research that shaped this plan"]
}"""

RECOMMENDATIONS_PROMPT = """You are a strategic project advisor. Generate strategic recommendations for this project based on the comprehensive analysis performed.

Respond with JSON:
{
  "strategic_recommendations": ["strategic recommendations"],
  "immediate_next_steps": ["what the team should do first"],
  "watch_points": ["signals to monitor during execution"]
}"""


def calculate_confidence_score(execution_log: List[str]) -> int:
    """Weighted count of log lines containing research, validation and enhancement (case-sensitive), capped at 100."""
    score = 0
    for word, weight in CONFIDENCE_WEIGHTS.items():
        score += weight * sum(1 for line in execution_log if word in line)
    return min(100, score)


def _format_contributors(contributors: List[Contributor]) -> List[Dict[str, Any]]:
    return [contributor.model_dump() for contributor in contributors]


class AgentOrchestrator:
    """
    Runs one agentic generation request.

    Phases advance strictly forward: analysis, research, generation, then
    validation with enhancement when the validation score is too low. Create
    one orchestrator per request; the knowledge base and search agent may be
    shared between requests.
    """

    def __init__(self, knowledge_base: KnowledgeBase, web_search: Optional[WebSearchAgent] = None):
        self.knowledge_base = knowledge_base
        self.web_search = web_search or WebSearchAgent()
        self.research_agent = ResearchAgent(self.web_search)
        self.validation_agent = ValidationAgent(self.web_search)
        self.enhancement_agent = EnhancementAgent(self.web_search)
        self.phase: Optional[Phase] = None
        self.execution_log: List[str] = []

    def log(self, message: str):
        self.execution_log.append(f"[{datetime.now(timezone.utc).isoformat()}] {message}")
        log_with_context(logger, logging.INFO, message, phase=self.phase.value if self.phase else "idle")

    def _enter(self, phase: Phase):
        if self.phase is not None and PHASE_ORDER.index(phase) <= PHASE_ORDER.index(self.phase):
            raise RuntimeError(f"Cannot move from {self.phase.value} back to {phase.value}")
        self.phase = phase

    async def orchestrate_project_generation(
        self,
        project_idea: str,
        contributors: List[Contributor],
        special_instructions: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Generate a plan with research, validation and enhancement around it.

        Returns:
            The final plan dict with an ``agent_insights`` entry describing
            every phase
        """
        self.log("Agent orchestrator starting autonomous project generation")

        self._enter(Phase.ANALYSIS)
        knowledge = await self.knowledge_base.get_relevant_knowledge({
            "project_idea": project_idea,
            "special_instructions": special_instructions,
        })
        analysis = await self.autonomous_analysis(project_idea, special_instructions, knowledge)

        self._enter(Phase.RESEARCH)
        research = await self.autonomous_research(project_idea, analysis)

        self._enter(Phase.GENERATION)
        project = await self.enhanced_generation(
            project_idea, contributors, special_instructions, analysis, research, knowledge
        )

        self._enter(Phase.VALIDATION)
        validation, enhancement = await self.continuous_improvement(project, analysis)
        final_project = enhancement["enhanced_project"] if enhancement else project

        confidence_score = calculate_confidence_score(self.execution_log)
        recommendations = await self.generate_recommendations(final_project)

        await self.knowledge_base.store_project_learnings(final_project, {
            "validation_score": validation["overall_score"],
            "improvement_needed": validation["improvement_needed"],
            "improvement_score": enhancement["improvement_score"] if enhancement else None,
            "complexity_assessment": analysis.get("complexity_assessment"),
        })

        self._enter(Phase.DONE)
        self.log("Agent orchestrator finished")

        return {
            **final_project,
            "agent_insights": {
                "analysis": analysis,
                "research": research,
                "knowledge": knowledge,
                "validation": validation,
                "enhancement": enhancement,
                "execution_log": self.execution_log,
                "confidence_score": confidence_score,
                "recommendations": recommendations,
            },
        }

    async def autonomous_analysis(
        self,
        project_idea: str,
        special_instructions: Optional[str],
        knowledge: Dict[str, Any],
    ) -> Dict[str, Any]:
        self.log("Starting autonomous project analysis")
        analysis = await call_llm(
            ANALYSIS_PROMPT,
            f"Project Idea: {project_idea}\n"
            f"Special Instructions: {special_instructions or 'None'}\n\n"
            f"Knowledge From Previous Projects:\n{to_json(knowledge.get('synthesis'))}\n\n"
            "Autonomously determine what research, validation, and enhancement this project needs.",
        )
        self.log(f"Analysis complete: {analysis.get('complexity_assessment', 'unknown')} complexity")
        return analysis

    async def autonomous_research(self, project_idea: str, analysis: Dict[str, Any]) -> Dict[str, Any]:
        """Run exactly the searches and topics the analysis asked for."""
        self.log("Starting autonomous research phase")
        research: Dict[str, Any] = {}

        queries = [q for q in analysis.get("web_search_queries") or [] if isinstance(q, str) and q.strip()]
        if queries:
            self.log(f"Performing {len(queries)} web searches for research")
            research["web_search_results"] = list(
                await asyncio.gather(*[self.web_search.search(query) for query in queries])
            )

        topics = [t for t in analysis.get("research_needed") or [] if isinstance(t, str) and t.strip()]
        if topics:
            self.log(f"Conducting technical research on {len(topics)} topics")
            research["technical_research"] = await self.research_agent.conduct_research(topics)
        else:
            self.log("No research topics requested, surveying all knowledge domains for research")
            research["domain_survey"] = await self.research_agent.survey_domains(project_idea)

        research["market_analysis"] = await self.research_agent.analyze_market(topics)
        research["technology_research"] = await self.research_agent.research_technologies(topics)

        self.log("Research phase complete")
        return research

    async def enhanced_generation(
        self,
        project_idea: str,
        contributors: List[Contributor],
        special_instructions: Optional[str],
        analysis: Dict[str, Any],
        research: Dict[str, Any],
        knowledge: Dict[str, Any],
    ) -> Dict[str, Any]:
        self.log("Starting enhanced project generation with agent insights")
        context = {
            "original_idea": project_idea,
            "contributors": _format_contributors(contributors),
            "special_instructions": special_instructions,
            "agent_analysis": analysis,
            "research_findings": research,
            "market_insights": research.get("market_analysis"),
            "technical_recommendations": research.get("technology_research"),
            "prior_knowledge": knowledge.get("synthesis"),
        }
        return await call_llm(
            GENERATION_PROMPT,
            f"Enhanced Project Generation Context:\n{to_json(context)}\n\n"
            "Create a comprehensive project plan that incorporates all research findings and agent recommendations.",
        )

    async def continuous_improvement(self, project: Dict[str, Any], analysis: Dict[str, Any]):
        """
        Validate ``project`` and enhance it when the score is below the pass mark.

        Returns:
            (validation, enhancement) where enhancement is None if none ran
        """
        self.log("Starting continuous improvement validation")
        validation = await self.validation_agent.validate_project(
            project, extra_checks=analysis.get("validation_checks")
        )
        self.log(f"Validation score: {validation['overall_score']}")

        if not validation["improvement_needed"]:
            return validation, None

        self.log("Applying autonomous enhancement")
        enhancement = await self.enhancement_agent.enhance_project(project, validation["suggestions"])
        self.log(f"Enhancement improvement score: {enhancement['improvement_score']}")
        return validation, enhancement

    async def generate_recommendations(self, project: Dict[str, Any]) -> Dict[str, Any]:
        return await call_llm(
            RECOMMENDATIONS_PROMPT,
            f"Project:\n{to_json(project)}\n\n"
            "Provide actionable recommendations for success.",
        )
