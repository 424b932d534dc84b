import os
import sys
import unittest
from unittest.mock import AsyncMock, patch

from fastapi.testclient import TestClient

# Add the project root to sys.path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '.')))

from projectforge import main
from projectforge.errors import ConfigurationError, UpstreamError

VALID_BODY = {
    "project_idea": "An app for community gardens",
    "special_instructions": "Keep it lean",
    "contributors": [{"name": "Ada", "expertise": ["Backend Development"]}],
}


class TestGenerateProjectEndpoint(unittest.TestCase):

    def setUp(self):
        self.client = TestClient(main.app)

    def test_health(self):
        response = self.client.get("/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "ok")

    def test_expertise_suggestions(self):
        response = self.client.get("/api/expertise")
        self.assertIn("Backend Development", response.json()["suggestions"])

    def test_blank_idea_is_400(self):
        response = self.client.post("/api/generate-project", json=dict(VALID_BODY, project_idea="  "))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "Project idea is required"})

    def test_missing_idea_is_400(self):
        body = {"contributors": VALID_BODY["contributors"]}
        response = self.client.post("/api/generate-project", json=body)
        self.assertEqual(response.status_code, 400)

    def test_no_contributors_is_400(self):
        response = self.client.post("/api/generate-project", json=dict(VALID_BODY, contributors=[]))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "At least one contributor is required"})

    def test_malformed_body_is_400(self):
        response = self.client.post("/api/generate-project", json=dict(VALID_BODY, contributors="Ada"))
        self.assertEqual(response.status_code, 400)
        self.assertIn("error", response.json())

    @patch('projectforge.main.run_pipeline', new_callable=AsyncMock)
    def test_success_returns_plan(self, mock_run):
        mock_run.return_value = {"title": "Garden Share", "notion_url": None, "github_url": None}
        response = self.client.post("/api/generate-project", json=VALID_BODY)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["title"], "Garden Share")
        sent = mock_run.await_args.args[0]
        self.assertEqual(sent.contributors[0].name, "Ada")
        self.assertEqual(sent.special_instructions, "Keep it lean")

    @patch('projectforge.main.run_pipeline', new_callable=AsyncMock)
    def test_upstream_failure_is_500(self, mock_run):
        mock_run.side_effect = UpstreamError("Completion API error (502): bad gateway", status_code=502)
        response = self.client.post("/api/generate-project", json=VALID_BODY)

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"error": "Completion API error (502): bad gateway"})

    @patch('projectforge.main.run_pipeline', new_callable=AsyncMock)
    def test_missing_completion_key_is_500(self, mock_run):
        mock_run.side_effect = ConfigurationError("OPENAI_API_KEY not configured")
        response = self.client.post("/api/generate-project", json=VALID_BODY)

        self.assertEqual(response.status_code, 500)
        self.assertIn("OPENAI_API_KEY", response.json()["error"])


class TestOrchestrateProjectEndpoint(unittest.TestCase):

    def setUp(self):
        self.client = TestClient(main.app)

    def test_blank_idea_is_400(self):
        response = self.client.post("/api/orchestrate-project", json=dict(VALID_BODY, project_idea=""))
        self.assertEqual(response.status_code, 400)

    @patch('projectforge.main.AgentOrchestrator')
    def test_success(self, mock_orchestrator_cls):
        instance = mock_orchestrator_cls.return_value
        instance.orchestrate_project_generation = AsyncMock(return_value={
            "title": "Garden Share",
            "agent_insights": {"confidence_score": 80},
        })
        response = self.client.post("/api/orchestrate-project", json=VALID_BODY)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["agent_insights"]["confidence_score"], 80)
        mock_orchestrator_cls.assert_called_once_with(main.knowledge_base, web_search=main.web_search)

    @patch('projectforge.main.AgentOrchestrator')
    def test_failure_is_500(self, mock_orchestrator_cls):
        instance = mock_orchestrator_cls.return_value
        instance.orchestrate_project_generation = AsyncMock(side_effect=UpstreamError("Search API error: 500"))
        response = self.client.post("/api/orchestrate-project", json=VALID_BODY)

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"error": "Search API error: 500"})


@patch('projectforge.main.KNOWLEDGE_FILE', None)
class TestKnowledgeEndpoints(unittest.TestCase):

    def setUp(self):
        self.client = TestClient(main.app)
        main.knowledge_base.clear_knowledge()

    def tearDown(self):
        main.knowledge_base.clear_knowledge()

    def test_import_export_and_clear(self):
        main.knowledge_base.store("patterns", "success", "Weekly demos")
        exported = self.client.get("/api/knowledge").json()
        self.assertEqual(exported["stats"]["patterns"], 1)

        main.knowledge_base.clear_knowledge()
        response = self.client.post("/api/knowledge/import", json={"patterns": exported["knowledge"]["patterns"]})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["stats"]["patterns"], 1)

        response = self.client.delete("/api/knowledge")
        self.assertEqual(response.json(), {"status": "cleared"})
        self.assertEqual(main.knowledge_base.get_knowledge_stats()["total_knowledge_items"], 0)

    def test_import_leaves_absent_categories_alone(self):
        main.knowledge_base.store("insights", "market", "Gardens cluster in cities")
        self.client.post("/api/knowledge/import", json={"patterns": []})
        self.assertEqual(main.knowledge_base.get_knowledge_stats()["insights"], 1)


if __name__ == '__main__':
    unittest.main()
