import os
import sys
import unittest
from unittest.mock import AsyncMock, MagicMock, patch

# Add the project root to sys.path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '.')))

from projectforge.knowledge import KnowledgeBase
from projectforge.models import Contributor
from projectforge.orchestrator import (
    ANALYSIS_PROMPT,
    GENERATION_PROMPT,
    RECOMMENDATIONS_PROMPT,
    AgentOrchestrator,
    Phase,
    calculate_confidence_score,
)
from projectforge.web_search import WebSearchAgent

CONTRIBUTORS = [Contributor(name="Ada", expertise=["Backend Development"])]

GENERATED = {"title": "Garden Share", "milestones": []}


def orchestrator_llm(analysis):
    async def fake(system_prompt, user_prompt, structured=True):
        if system_prompt == ANALYSIS_PROMPT:
            return analysis
        if system_prompt == GENERATION_PROMPT:
            return dict(GENERATED)
        if system_prompt == RECOMMENDATIONS_PROMPT:
            return {"strategic_recommendations": ["start small"]}
        raise AssertionError(f"unexpected prompt: {system_prompt[:40]}")
    return fake


def build_orchestrator(validation, enhancement=None):
    search = MagicMock(spec=WebSearchAgent)
    search.search = AsyncMock(side_effect=lambda query: {"query": query, "results": []})
    kb = KnowledgeBase()
    kb.store_project_learnings = AsyncMock()

    orchestrator = AgentOrchestrator(kb, web_search=search)
    orchestrator.research_agent.conduct_research = AsyncMock(return_value={"synthesis": "topics"})
    orchestrator.research_agent.survey_domains = AsyncMock(return_value={"synthesis": "domains"})
    orchestrator.research_agent.analyze_market = AsyncMock(return_value=None)
    orchestrator.research_agent.research_technologies = AsyncMock(return_value={"synthesis": "tech"})
    orchestrator.validation_agent.validate_project = AsyncMock(return_value=validation)
    orchestrator.enhancement_agent.enhance_project = AsyncMock(return_value=enhancement)
    return orchestrator


PASSING = {"overall_score": 82, "improvement_needed": False, "suggestions": []}
FAILING = {"overall_score": 40, "improvement_needed": True, "suggestions": [{"category": "security"}]}

ANALYSIS = {
    "complexity_assessment": "medium",
    "research_needed": ["offline sync", "market sizing"],
    "validation_checks": ["GDPR compliance"],
    "web_search_queries": ["garden apps", "watering reminders"],
}


class TestConfidenceScore(unittest.TestCase):

    def test_weighted_line_counts(self):
        log = [
            "[t] Starting autonomous research phase",
            "[t] Research phase complete",
            "[t] Starting continuous improvement validation",
            "[t] Applying autonomous enhancement",
            "[t] Nothing relevant",
        ]
        self.assertEqual(calculate_confidence_score(log), 20 + 25 + 15)

    def test_matching_is_case_sensitive(self):
        self.assertEqual(calculate_confidence_score(["Research phase complete", "Validation score: 80"]), 0)

    def test_capped_at_100(self):
        self.assertEqual(calculate_confidence_score(["validation"] * 10), 100)

    def test_empty_log(self):
        self.assertEqual(calculate_confidence_score([]), 0)


class TestAgentOrchestrator(unittest.IsolatedAsyncioTestCase):

    async def test_passing_validation_keeps_generated_plan(self):
        orchestrator = build_orchestrator(PASSING)

        with patch('projectforge.orchestrator.call_llm', side_effect=orchestrator_llm(ANALYSIS)):
            result = await orchestrator.orchestrate_project_generation("garden app", CONTRIBUTORS, None)

        self.assertEqual(result["title"], "Garden Share")
        insights = result["agent_insights"]
        self.assertEqual(set(insights), {
            "analysis", "research", "knowledge", "validation", "enhancement",
            "execution_log", "confidence_score", "recommendations",
        })
        self.assertIsNone(insights["enhancement"])
        self.assertEqual(insights["recommendations"], {"strategic_recommendations": ["start small"]})
        self.assertTrue(0 <= insights["confidence_score"] <= 100)
        self.assertEqual(orchestrator.phase, Phase.DONE)
        orchestrator.enhancement_agent.enhance_project.assert_not_awaited()
        orchestrator.knowledge_base.store_project_learnings.assert_awaited_once()

    async def test_research_follows_analysis_directives(self):
        orchestrator = build_orchestrator(PASSING)

        with patch('projectforge.orchestrator.call_llm', side_effect=orchestrator_llm(ANALYSIS)):
            result = await orchestrator.orchestrate_project_generation("garden app", CONTRIBUTORS, None)

        research = result["agent_insights"]["research"]
        self.assertEqual([r["query"] for r in research["web_search_results"]], ["garden apps", "watering reminders"])
        orchestrator.research_agent.conduct_research.assert_awaited_once_with(["offline sync", "market sizing"])
        orchestrator.research_agent.survey_domains.assert_not_awaited()
        self.assertIsNone(research["market_analysis"])
        self.assertEqual(research["technology_research"], {"synthesis": "tech"})
        orchestrator.validation_agent.validate_project.assert_awaited_once_with(
            GENERATED, extra_checks=["GDPR compliance"]
        )

    async def test_no_topics_surveys_domains(self):
        orchestrator = build_orchestrator(PASSING)
        analysis = {"complexity_assessment": "low", "research_needed": [], "web_search_queries": []}

        with patch('projectforge.orchestrator.call_llm', side_effect=orchestrator_llm(analysis)):
            result = await orchestrator.orchestrate_project_generation("garden app", CONTRIBUTORS, None)

        research = result["agent_insights"]["research"]
        self.assertNotIn("web_search_results", research)
        self.assertEqual(research["domain_survey"], {"synthesis": "domains"})
        orchestrator.research_agent.survey_domains.assert_awaited_once_with("garden app")
        orchestrator.web_search.search.assert_not_awaited()

    async def test_failing_validation_uses_enhanced_plan(self):
        enhancement = {
            "enhanced_project": {"title": "Garden Share Plus"},
            "improvement_score": 30,
        }
        orchestrator = build_orchestrator(FAILING, enhancement)

        with patch('projectforge.orchestrator.call_llm', side_effect=orchestrator_llm(ANALYSIS)):
            result = await orchestrator.orchestrate_project_generation("garden app", CONTRIBUTORS, "be lean")

        self.assertEqual(result["title"], "Garden Share Plus")
        self.assertEqual(result["agent_insights"]["enhancement"], enhancement)
        orchestrator.enhancement_agent.enhance_project.assert_awaited_once_with(GENERATED, [{"category": "security"}])
        self.assertTrue(any("enhancement" in line.lower() for line in result["agent_insights"]["execution_log"]))

    async def test_stage_failure_propagates(self):
        orchestrator = build_orchestrator(PASSING)
        orchestrator.research_agent.conduct_research.side_effect = RuntimeError("completion down")

        with patch('projectforge.orchestrator.call_llm', side_effect=orchestrator_llm(ANALYSIS)):
            with self.assertRaises(RuntimeError):
                await orchestrator.orchestrate_project_generation("garden app", CONTRIBUTORS, None)
        self.assertEqual(orchestrator.phase, Phase.RESEARCH)

    def test_phases_never_move_backwards(self):
        orchestrator = build_orchestrator(PASSING)
        orchestrator._enter(Phase.ANALYSIS)
        orchestrator._enter(Phase.GENERATION)
        with self.assertRaises(RuntimeError):
            orchestrator._enter(Phase.RESEARCH)


if __name__ == '__main__':
    unittest.main()
