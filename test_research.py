import os
import sys
import unittest
from unittest.mock import AsyncMock, MagicMock, patch

# Add the project root to sys.path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '.')))

from projectforge.research import (
    COMPETITION_PROMPT,
    DOMAIN_PROMPT,
    MARKET_PROMPT,
    RISK_PROMPT,
    STRATEGIC_SYNTHESIS_PROMPT,
    STRATEGY_PROMPT,
    TECHNICAL_PROMPT,
    TOPIC_SYNTHESIS_PROMPT,
    ResearchAgent,
    ResearchDomain,
    calculate_research_confidence,
)
from projectforge.web_search import WebSearchAgent

PROMPT_NAMES = {
    STRATEGY_PROMPT: "strategy",
    TECHNICAL_PROMPT: "technical",
    MARKET_PROMPT: "market",
    RISK_PROMPT: "risk",
    COMPETITION_PROMPT: "competition",
    DOMAIN_PROMPT: "domain",
    TOPIC_SYNTHESIS_PROMPT: "topic_synthesis",
    STRATEGIC_SYNTHESIS_PROMPT: "strategic_synthesis",
}


def fake_search_agent():
    agent = MagicMock(spec=WebSearchAgent)
    agent.search_multiple_queries = AsyncMock(return_value={"individual_results": [], "synthesis": {}})
    agent.search_competitors = AsyncMock(return_value={"individual_results": [], "synthesis": {}})
    return agent


def recording_llm(strategy):
    calls = []

    async def fake(system_prompt, user_prompt, structured=True):
        name = PROMPT_NAMES[system_prompt]
        calls.append(name)
        if name == "strategy":
            return dict(strategy)
        return {"kind": name}

    fake.calls = calls
    return fake


FULL_STRATEGY = {
    "web_search_needed": True,
    "search_queries": ["garden apps", "watering schedules"],
    "technical_analysis_needed": True,
    "market_analysis_needed": True,
    "risk_analysis_needed": True,
}


class TestResearchConfidence(unittest.TestCase):

    def test_empty_findings_are_not_counted(self):
        results = {"t": {"findings": {
            "web_research": {}, "technical_analysis": {"x": 1},
            "market_analysis": {"x": 1}, "risk_analysis": {"x": 1},
        }}}
        self.assertEqual(calculate_research_confidence(results), 75)

    def test_averaged_across_topics(self):
        results = {
            "a": {"findings": {"technical_analysis": {"x": 1}, "risk_analysis": {"x": 1}}},
            "b": {"findings": {}},
        }
        self.assertEqual(calculate_research_confidence(results), 25)

    def test_no_topics(self):
        self.assertEqual(calculate_research_confidence({}), 0)


class TestResearchAgent(unittest.IsolatedAsyncioTestCase):

    async def test_strategy_selects_every_analysis(self):
        search = fake_search_agent()
        fake = recording_llm(FULL_STRATEGY)
        agent = ResearchAgent(web_search=search)

        with patch('projectforge.research.call_llm', side_effect=fake):
            result = await agent.research_topic("community gardening")

        self.assertEqual(
            set(result["findings"]),
            {"web_research", "technical_analysis", "market_analysis", "risk_analysis"},
        )
        self.assertEqual(result["synthesis"], {"kind": "topic_synthesis"})
        # strategy queries, then four market searches
        batches = [call.args[0] for call in search.search_multiple_queries.await_args_list]
        self.assertIn(["garden apps", "watering schedules"], batches)
        self.assertTrue(any(len(batch) == 4 for batch in batches))

    async def test_strategy_without_queries_skips_web_research(self):
        strategy = dict(FULL_STRATEGY, search_queries=[], market_analysis_needed=False)
        search = fake_search_agent()
        agent = ResearchAgent(web_search=search)

        with patch('projectforge.research.call_llm', side_effect=recording_llm(strategy)):
            result = await agent.research_topic("community gardening")

        self.assertEqual(set(result["findings"]), {"technical_analysis", "risk_analysis"})
        search.search_multiple_queries.assert_not_awaited()

    async def test_conduct_research_keys_by_topic(self):
        agent = ResearchAgent(web_search=fake_search_agent())
        fake = recording_llm(dict(FULL_STRATEGY, web_search_needed=False, market_analysis_needed=False))

        with patch('projectforge.research.call_llm', side_effect=fake):
            result = await agent.conduct_research(["offline sync", "push notifications"])

        self.assertEqual(set(result["individual_research"]), {"offline sync", "push notifications"})
        self.assertEqual(result["synthesis"], {"kind": "strategic_synthesis"})
        self.assertEqual(result["research_metadata"]["topics_investigated"], 2)
        self.assertEqual(result["research_metadata"]["confidence_score"], 50)
        self.assertEqual(fake.calls.count("strategic_synthesis"), 1)

    async def test_keyword_filters_return_none_without_matches(self):
        agent = ResearchAgent(web_search=fake_search_agent())
        with patch.object(agent, 'conduct_research', new_callable=AsyncMock) as mock_research:
            self.assertIsNone(await agent.analyze_market(["offline sync"]))
            self.assertIsNone(await agent.research_technologies(["user onboarding"]))
            mock_research.assert_not_awaited()

            await agent.analyze_market(["Market sizing", "offline sync", "business model"])
            mock_research.assert_awaited_with(["Market sizing", "business model"])

            await agent.research_technologies(["Frontend framework choice", "pricing"])
            mock_research.assert_awaited_with(["Frontend framework choice"])

    async def test_survey_domains_dispatches_every_domain(self):
        search = fake_search_agent()
        fake = recording_llm(FULL_STRATEGY)
        agent = ResearchAgent(web_search=search)

        with patch('projectforge.research.call_llm', side_effect=fake):
            survey = await agent.survey_domains("garden sharing app")

        self.assertEqual(set(survey["domains"]), {domain.value for domain in ResearchDomain})
        self.assertEqual(survey["domains"]["competition"], {"kind": "competition"})
        self.assertEqual(survey["domains"]["security"], {"kind": "risk"})
        self.assertEqual(survey["domains"]["architecture"], {"kind": "technical"})
        # best_practices and scalability fall back to the generic domain prompt
        self.assertEqual(survey["domains"]["scalability"], {"kind": "domain"})
        self.assertEqual(survey["domains"]["best_practices"], {"kind": "domain"})
        search.search_competitors.assert_awaited_once_with("garden sharing app")
        self.assertEqual(survey["synthesis"], {"kind": "strategic_synthesis"})


if __name__ == '__main__':
    unittest.main()
