import os
import sys
import tempfile
import unittest
from unittest.mock import AsyncMock, patch

# Add the project root to sys.path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '.')))

from projectforge.knowledge import (
    EXTRACTION_PROMPT,
    NO_KNOWLEDGE_MESSAGE,
    PATTERN_ANALYSIS_PROMPT,
    KnowledgeBase,
    knowledge_key,
)


class TestKnowledgeStore(unittest.TestCase):

    def test_repeated_store_increases_strength(self):
        kb = KnowledgeBase()
        strengths = [kb.store("patterns", "success", "Ship weekly demos").strength for _ in range(4)]
        self.assertEqual(strengths, [1, 2, 3, 4])
        self.assertEqual(kb.get_knowledge_stats()["patterns"], 1)

    def test_keys_are_prefixed_by_category(self):
        self.assertTrue(knowledge_key("patterns", "x").startswith("pattern_"))
        self.assertTrue(knowledge_key("technologies", "x").startswith("tech_"))
        self.assertEqual(knowledge_key("insights", "x"), knowledge_key("insights", "x"))

    def test_strength_only_decays_on_decreased(self):
        kb = KnowledgeBase()
        kb.store("patterns", "success", "Pair on risky tasks")
        kb.store("patterns", "success", "Pair on risky tasks")

        kb.update_pattern_strengths({"pattern_strength_updates": [
            {"pattern": "Pair on risky tasks", "strength_change": "unchanged", "evidence": "n/a"},
        ]})
        item = kb.knowledge["patterns"][knowledge_key("patterns", "Pair on risky tasks")]
        self.assertEqual(item.strength, 2)

        kb.update_pattern_strengths({"pattern_strength_updates": [
            {"pattern": "Pair on risky tasks", "strength_change": "increased", "evidence": "shipped early"},
        ]})
        self.assertAlmostEqual(item.strength, 2.2)

        kb.update_pattern_strengths({"pattern_strength_updates": [
            {"pattern": "Pair on risky tasks", "strength_change": "decreased", "evidence": "slipped"},
        ]})
        self.assertAlmostEqual(item.strength, 1.98)
        self.assertEqual(item.evidence, ["n/a", "shipped early", "slipped"])

    def test_updates_for_unknown_patterns_are_ignored(self):
        kb = KnowledgeBase()
        kb.update_pattern_strengths({"pattern_strength_updates": [
            {"pattern": "never stored", "strength_change": "increased"},
        ]})
        self.assertEqual(kb.get_knowledge_stats()["total_knowledge_items"], 0)

    def test_cap_evicts_weakest_then_oldest(self):
        kb = KnowledgeBase(max_items=2)
        kb.store("insights", "technical", "Use a queue for notifications")
        kb.store("insights", "technical", "Use a queue for notifications")
        kb.store("insights", "market", "Gardens cluster in cities")
        kb.store("insights", "market", "Volunteers prefer mobile")

        contents = [item.content for item in kb.knowledge["insights"].values()]
        self.assertEqual(len(contents), 2)
        self.assertIn("Use a queue for notifications", contents)
        self.assertIn("Volunteers prefer mobile", contents)

    def test_new_item_survives_a_full_category_of_stronger_items(self):
        kb = KnowledgeBase(max_items=2)
        for content in ("alpha", "beta"):
            kb.store("patterns", "success", content)
            kb.store("patterns", "success", content)

        self.assertEqual(kb.store("patterns", "success", "gamma").strength, 1)
        self.assertEqual(kb.store("patterns", "success", "gamma").strength, 2)
        contents = [item.content for item in kb.knowledge["patterns"].values()]
        self.assertEqual(contents, ["beta", "gamma"])

    def test_pattern_update_counts_as_a_touch_for_eviction(self):
        kb = KnowledgeBase(max_items=2)
        kb.store("patterns", "success", "old")
        kb.store("patterns", "success", "newer")
        kb.update_pattern_strengths({"pattern_strength_updates": [
            {"pattern": "old", "strength_change": "unchanged"},
        ]})

        kb.store("patterns", "success", "newest")
        kb.store("patterns", "success", "newest")
        contents = [item.content for item in kb.knowledge["patterns"].values()]
        self.assertIn("old", contents)
        self.assertNotIn("newer", contents)

    def test_categorize_and_store(self):
        kb = KnowledgeBase()
        stored = kb.categorize_and_store({
            "success_patterns": ["Weekly demos"],
            "failure_patterns": ["Late testing"],
            "technical_insights": ["Offline-first sync"],
            "market_insights": [],
            "best_practices": ["Code review"],
            "technology_learnings": ["SQLite on device"],
            "team_insights": ["ignored category"],
        })
        self.assertEqual(stored, 5)
        self.assertEqual(kb.get_knowledge_stats(), {
            "patterns": 2, "insights": 1, "best_practices": 1, "technologies": 1,
            "total_knowledge_items": 5,
        })
        kinds = {item.kind for item in kb.knowledge["patterns"].values()}
        self.assertEqual(kinds, {"success", "failure"})

    def test_relevance_uses_long_word_overlap(self):
        kb = KnowledgeBase()
        kb.store("best_practices", "practice", "Schedule watering reminders")
        kb.store("best_practices", "practice", "Run the app in a box")
        relevant = kb.relevant_items("best_practices", {"idea": "an app to plan garden watering"})
        self.assertEqual([item.content for item in relevant], ["Schedule watering reminders"])

    def test_relevance_orders_by_strength_and_limits(self):
        kb = KnowledgeBase()
        for i in range(12):
            for _ in range(i + 1):
                kb.store("technologies", "technology", f"garden sensor option {i}")
        relevant = kb.relevant_items("technologies", "garden sensors")
        self.assertEqual(len(relevant), 10)
        self.assertEqual(relevant[0].content, "garden sensor option 11")

    def test_export_import_round_trip_and_clear(self):
        kb = KnowledgeBase()
        kb.store("patterns", "success", "Weekly demos")
        exported = kb.export_knowledge()
        self.assertIn("export_date", exported)

        other = KnowledgeBase()
        other.store("insights", "market", "keep me")
        other.import_knowledge({"patterns": exported["patterns"]})
        self.assertEqual(other.get_knowledge_stats()["patterns"], 1)
        self.assertEqual(other.get_knowledge_stats()["insights"], 1)

        other.clear_knowledge()
        self.assertEqual(other.get_knowledge_stats()["total_knowledge_items"], 0)

    def test_save_and_load(self):
        kb = KnowledgeBase()
        kb.store("best_practices", "practice", "Code review")
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "nested", "knowledge.json")
            kb.save(path)

            restored = KnowledgeBase()
            self.assertTrue(restored.load(path))
            self.assertFalse(restored.load(os.path.join(tmp, "missing.json")))

        self.assertEqual(restored.get_knowledge_stats()["best_practices"], 1)


class TestKnowledgeLearning(unittest.IsolatedAsyncioTestCase):

    async def test_synthesis_skipped_when_nothing_is_relevant(self):
        kb = KnowledgeBase()
        with patch('projectforge.knowledge.call_llm', new_callable=AsyncMock) as mock_llm:
            knowledge = await kb.get_relevant_knowledge({"project_idea": "garden app"})
        self.assertEqual(knowledge["synthesis"], {"message": NO_KNOWLEDGE_MESSAGE})
        mock_llm.assert_not_called()

    async def test_synthesis_runs_with_relevant_items(self):
        kb = KnowledgeBase()
        kb.store("patterns", "success", "garden volunteers respond to reminders")
        with patch('projectforge.knowledge.call_llm', new_callable=AsyncMock) as mock_llm:
            mock_llm.return_value = {"key_recommendations": ["send reminders"]}
            knowledge = await kb.get_relevant_knowledge({"project_idea": "garden app"})
        self.assertEqual(len(knowledge["patterns"]), 1)
        self.assertEqual(knowledge["synthesis"], {"key_recommendations": ["send reminders"]})

    async def test_store_project_learnings(self):
        async def fake(system_prompt, user_prompt, structured=True):
            if system_prompt == EXTRACTION_PROMPT:
                return {"success_patterns": ["Weekly demos"], "best_practices": ["Code review"]}
            self.assertEqual(system_prompt, PATTERN_ANALYSIS_PROMPT)
            return {"pattern_strength_updates": [{"pattern": "Weekly demos", "strength_change": "decreased"}]}

        kb = KnowledgeBase()
        with patch('projectforge.knowledge.call_llm', side_effect=fake):
            await kb.store_project_learnings({"title": "Garden Share"}, {"validation_score": 80})

        item = kb.knowledge["patterns"][knowledge_key("patterns", "Weekly demos")]
        self.assertAlmostEqual(item.strength, 0.9)
        self.assertEqual(kb.get_knowledge_stats()["best_practices"], 1)

    async def test_learning_disabled_is_a_no_op(self):
        kb = KnowledgeBase(learning_enabled=False)
        with patch('projectforge.knowledge.call_llm', new_callable=AsyncMock) as mock_llm:
            await kb.store_project_learnings({"title": "Garden Share"}, {})
        mock_llm.assert_not_called()


if __name__ == '__main__':
    unittest.main()
