"""Four-stage generation pipeline followed by the publish steps."""

import logging
from typing import Any, Dict

from .errors import ValidationError
from .github import publish_to_github
from .log import get_logger, log_with_context
from .models import GenerateProjectRequest
from .notion import publish_to_notion
from .stages import (
    assign_tasks_and_timeline,
    check_plan_integrity,
    generate_artifacts,
    generate_tasks_and_milestones,
    interpret_project,
)

logger = get_logger(__name__)


def validate_request(request: GenerateProjectRequest):
    """Raise ValidationError for a blank idea or an empty contributor list."""
    if not request.project_idea or not request.project_idea.strip():
        raise ValidationError("Project idea is required")
    if not request.contributors:
        raise ValidationError("At least one contributor is required")


async def run_pipeline(request: GenerateProjectRequest) -> Dict[str, Any]:
    """
    Interpretation -> Planning -> Assignment -> Artifacts, then publish.

    Stage failures propagate. Each publish step runs even if the other
    failed; a failed step leaves its URL as None.

    Returns:
        The aggregated plan, artifacts and publish outcome
    """
    validate_request(request)
    logger.info(f"Starting project generation for {len(request.contributors)} contributors")

    log_with_context(logger, logging.INFO, "Step 1: interpreting project", stage="interpretation")
    interpretation = await interpret_project(request.project_idea, request.special_instructions)

    log_with_context(logger, logging.INFO, "Step 2: generating tasks and milestones", stage="planning")
    plan = await generate_tasks_and_milestones(interpretation)

    log_with_context(logger, logging.INFO, "Step 3: assigning tasks", stage="assignment")
    assignments = await assign_tasks_and_timeline(plan, request.contributors, request.special_instructions)

    log_with_context(logger, logging.INFO, "Step 4: generating artifacts", stage="artifacts")
    artifacts = await generate_artifacts(interpretation, plan, assignments, request.project_idea)

    integrity_warnings = check_plan_integrity(plan, assignments, request.contributors)
    for issue in integrity_warnings:
        logger.warning(f"Plan integrity: {issue.detail}")

    log_with_context(logger, logging.INFO, "Step 5: publishing to Notion", stage="publish")
    notion = await publish_to_notion(interpretation, plan, assignments)

    log_with_context(logger, logging.INFO, "Step 6: publishing to GitHub", stage="publish")
    github = await publish_to_github(interpretation, artifacts)

    logger.info("Project generation complete")

    return {
        "title": interpretation.title,
        "objectives": interpretation.objectives,
        "scope_assumptions": interpretation.scope_assumptions,
        "milestones": [milestone.model_dump() for milestone in plan.milestones],
        "assignments": [assignment.model_dump() for assignment in assignments.assignments],
        "weekly_schedule": assignments.weekly_schedule,
        "workload_distribution": assignments.workload_distribution,
        "notion_url": notion.url,
        "github_url": github.url,
        "paper_content": artifacts.paper_draft,
        "readme_content": artifacts.readme,
        "artifacts": artifacts.model_dump(),
        "integrity_warnings": [issue.model_dump() for issue in integrity_warnings],
        "publish_results": [notion.model_dump(), github.model_dump()],
    }
