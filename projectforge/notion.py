"""Publish the project plan as a Notion page."""

from typing import Any, Dict, List

import httpx

from .config import NOTION_API_KEY, NOTION_API_URL, NOTION_BLOCK_CHUNK_SIZE, NOTION_PARENT_PAGE_ID, NOTION_VERSION
from .errors import ConfigurationError, UpstreamError
from .log import get_logger
from .models import AssignmentPlan, Interpretation, MilestonePlan, PublishResult

logger = get_logger(__name__)


def _rich_text(content: str) -> List[Dict[str, Any]]:
    return [{"text": {"content": content}}]


def heading(content: str, level: int = 2) -> Dict[str, Any]:
    block_type = f"heading_{level}"
    return {"object": "block", "type": block_type, block_type: {"rich_text": _rich_text(content)}}


def bullet(content: str) -> Dict[str, Any]:
    return {"object": "block", "type": "bulleted_list_item", "bulleted_list_item": {"rich_text": _rich_text(content)}}


def build_page_blocks(
    interpretation: Interpretation,
    plan: MilestonePlan,
    assignments: AssignmentPlan,
) -> List[Dict[str, Any]]:
    """
    Page body: objectives, scope assumptions, then each milestone with its tasks.

    Each task line reads "<description> | Assigned: <name> | Weeks <start>-<end>",
    or "Unassigned" / "TBD" when no assignment references the task.
    """
    blocks = [heading("Objectives")]
    blocks.extend(bullet(objective) for objective in interpretation.objectives)

    blocks.append(heading("Scope Assumptions"))
    blocks.extend(bullet(assumption) for assumption in interpretation.scope_assumptions)

    blocks.append(heading("Milestones & Tasks"))
    for milestone in plan.milestones:
        blocks.append(heading(milestone.name, level=3))
        for task in milestone.tasks:
            assignment = assignments.for_task(task.id)
            if assignment:
                assigned_to = assignment.assigned_to
                timeframe = f"Weeks {assignment.start_week}-{assignment.end_week}"
            else:
                assigned_to = "Unassigned"
                timeframe = "TBD"
            blocks.append(bullet(f"{task.description} | Assigned: {assigned_to} | {timeframe}"))

    return blocks


def chunk_blocks(blocks: List[Dict[str, Any]], size: int = NOTION_BLOCK_CHUNK_SIZE) -> List[List[Dict[str, Any]]]:
    return [blocks[i:i + size] for i in range(0, len(blocks), size)]


class NotionPublisher:
    def __init__(self, api_key: str, parent_page_id: str, api_url: str = NOTION_API_URL):
        self.parent_page_id = parent_page_id
        self.api_url = api_url.rstrip("/")
        self._headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
            "Notion-Version": NOTION_VERSION,
        }

    async def create_page(self, client: httpx.AsyncClient, title: str) -> dict:
        resp = await client.post(
            f"{self.api_url}/pages",
            headers=self._headers,
            json={
                "parent": {"page_id": self.parent_page_id},
                "properties": {"title": {"title": _rich_text(title)}},
            },
        )
        if resp.status_code >= 400:
            raise UpstreamError(f"Notion API error creating page: {resp.text}", status_code=resp.status_code)
        return resp.json()

    async def append_blocks(self, client: httpx.AsyncClient, page_id: str, blocks: List[Dict[str, Any]]) -> int:
        """Append in chunks; a rejected chunk is logged and skipped. Returns chunks appended."""
        appended = 0
        for chunk in chunk_blocks(blocks):
            resp = await client.patch(
                f"{self.api_url}/blocks/{page_id}/children",
                headers=self._headers,
                json={"children": chunk},
            )
            if resp.status_code >= 400:
                logger.error(f"Notion API error appending blocks: {resp.text}")
                continue
            appended += 1
        return appended

    async def publish(self, interpretation: Interpretation, plan: MilestonePlan, assignments: AssignmentPlan) -> str:
        async with httpx.AsyncClient(timeout=30) as client:
            page = await self.create_page(client, interpretation.title)
            blocks = build_page_blocks(interpretation, plan, assignments)
            await self.append_blocks(client, page["id"], blocks)
        logger.info(f"Created Notion page with {len(blocks)} blocks: {page.get('url')}")
        return page["url"]


async def publish_to_notion(
    interpretation: Interpretation,
    plan: MilestonePlan,
    assignments: AssignmentPlan,
) -> PublishResult:
    """Publish to Notion; any failure is returned as a failed PublishResult."""
    try:
        if not NOTION_API_KEY or not NOTION_PARENT_PAGE_ID:
            raise ConfigurationError("NOTION_API_KEY or NOTION_PARENT_PAGE_ID not configured")
        url = await NotionPublisher(NOTION_API_KEY, NOTION_PARENT_PAGE_ID).publish(interpretation, plan, assignments)
        return PublishResult.success("notion", url)
    except Exception as e:
        logger.warning(f"Notion publish failed: {e}")
        return PublishResult.failure("notion", str(e))
