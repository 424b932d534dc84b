"""The four generation stages: interpretation, planning, assignment, artifacts."""

from typing import List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError as SchemaError

from .errors import UpstreamError
from .llm import call_llm
from .log import get_logger
from .models import (
    EXPERTISE_SUGGESTIONS,
    Artifacts,
    AssignmentPlan,
    Contributor,
    IntegrityIssue,
    Interpretation,
    MilestonePlan,
)

logger = get_logger(__name__)

M = TypeVar("M", bound=BaseModel)


def _numbered(items: List[str]) -> str:
    return "\n".join(f"{i}. {item}" for i, item in enumerate(items, 1))


def _instructions_section(special_instructions: Optional[str]) -> str:
    if special_instructions and special_instructions.strip():
        return f"\n\n<special_instructions>\n{special_instructions.strip()}\n</special_instructions>"
    return ""


def _coerce(model: Type[M], payload: dict, stage: str) -> M:
    try:
        return model.model_validate(payload)
    except SchemaError as e:
        raise UpstreamError(f"{stage} response did not match the expected shape: {e}") from e


INTERPRETATION_SYSTEM_PROMPT = """You are a senior project architect and technical lead with expertise in software engineering, research, and product development.

Analyze the project idea and produce a comprehensive project interpretation that will guide a professional implementation.

Respond with valid JSON only, following this exact schema:
{
  "title": "string - professional, descriptive project title",
  "description": "string - comprehensive 2-3 paragraph project description",
  "objectives": ["5-8 detailed, measurable objectives"],
  "scope_assumptions": ["4-6 scope assumptions and constraints"],
  "technical_requirements": ["6-10 specific technical requirements"],
  "success_criteria": ["4-6 measurable success criteria"],
  "estimated_duration": "string - realistic duration, e.g. '6 months'",
  "complexity_level": "one of 'Low', 'Medium', 'High', 'Very High'",
  "primary_technologies": ["main technologies and frameworks"],
  "target_audience": "string - who will use this project",
  "business_value": "string - business or research value"
}"""


async def interpret_project(project_idea: str, special_instructions: Optional[str] = None) -> Interpretation:
    """Stage 1: expand a raw idea into a structured project brief."""
    user_prompt = f"""<project_idea>
{project_idea}
</project_idea>{_instructions_section(special_instructions)}

<task>
Provide a thorough, professional analysis of this project:
1. Title that clearly communicates the project's purpose
2. Description of what the project does, why it matters and how it works
3. Specific, measurable objectives
4. Assumptions about resources, timeline, technology constraints and boundaries
5. Technical requirements covering performance, scalability, security and integration
6. Measurable success criteria
7. Realistic duration
8. Overall complexity considering technical challenge and team coordination
9. Primary technologies, frameworks and tools
10. Target audience
11. Business, research or societal value
</task>

Return only valid JSON."""

    payload = await call_llm(INTERPRETATION_SYSTEM_PROMPT, user_prompt, structured=True)
    interpretation = _coerce(Interpretation, payload, "Interpretation")
    logger.info(f"Interpretation complete: {interpretation.title}")
    return interpretation


PLANNING_SYSTEM_PROMPT = """You are a senior project manager and technical architect experienced in software development, research projects and team coordination.

Create a project breakdown that enables parallel work, good resource utilization and the fastest possible delivery at high quality.

Respond with valid JSON only, following this exact schema:
{
  "project_phases": "string - brief description of the overall approach",
  "milestones": [
    {
      "name": "string - descriptive milestone name",
      "description": "string - what this milestone achieves",
      "duration_weeks": "number - estimated duration in weeks",
      "dependencies": ["milestone names this depends on"],
      "deliverables": ["specific deliverables"],
      "tasks": [
        {
          "id": "string - unique task ID like T001",
          "title": "string - concise task title",
          "description": "string - task description with acceptance criteria",
          "required_expertise": ["required expertise areas"],
          "estimated_hours": "number - estimated hours",
          "priority": "one of 'Critical', 'High', 'Medium', 'Low'",
          "can_parallel": "boolean - true if it can run in parallel with others",
          "dependencies": ["task IDs this depends on"]
        }
      ]
    }
  ]
}"""


async def generate_tasks_and_milestones(interpretation: Interpretation) -> MilestonePlan:
    """Stage 2: break the brief into milestones and tasks."""
    user_prompt = f"""<project>
Title: {interpretation.title}
Description: {interpretation.description}

Objectives:
{_numbered(interpretation.objectives)}

Technical Requirements:
{_numbered(interpretation.technical_requirements)}

Estimated Duration: {interpretation.estimated_duration}
Complexity Level: {interpretation.complexity_level.value}
Primary Technologies: {", ".join(interpretation.primary_technologies)}
</project>

<task>
Create a project breakdown that:
1. Structures milestones and tasks for maximum parallelization
2. Lets several team members work at once without blocking each other
3. Includes planning, development, testing, documentation and deployment
4. Gives accurate estimates and only the true dependencies
5. Covers everything from initial setup to final deployment

Generate 4-7 milestones that progress from initiation to completion, each with 3-8 tasks.
Task IDs must be unique across the whole plan.
Use expertise areas such as: {", ".join(EXPERTISE_SUGGESTIONS)}.
</task>

Return only valid JSON."""

    payload = await call_llm(PLANNING_SYSTEM_PROMPT, user_prompt, structured=True)
    plan = _coerce(MilestonePlan, payload, "Planning")
    logger.info(f"Generated {len(plan.milestones)} milestones with {len(plan.all_tasks())} tasks")
    return plan


ASSIGNMENT_SYSTEM_PROMPT = """You are a senior resource allocation expert and project scheduler.

Create a task assignment and timeline that maximizes parallel work, uses each team member's strengths and delivers as quickly as possible without sacrificing quality.

Respond with valid JSON only, following this exact schema:
{
  "timeline_strategy": "string - overall timeline approach",
  "total_estimated_weeks": "number - total duration in weeks",
  "assignments": [
    {
      "task_id": "string - task ID",
      "assigned_to": "string - contributor name, exactly as given",
      "start_week": "number - 1-based start week",
      "end_week": "number - 1-based end week, inclusive",
      "assignment_rationale": "string - why this person",
      "collaboration_notes": "string - notes about working with others"
    }
  ],
  "weekly_schedule": [
    {
      "week": "number",
      "active_tasks": [
        {"task_id": "string", "assigned_to": "string", "status": "'starting', 'continuing' or 'completing'"}
      ],
      "milestone_completions": ["milestone names completing this week"]
    }
  ],
  "workload_distribution": [
    {
      "contributor": "string - contributor name",
      "total_hours": "number",
      "peak_week_hours": "number",
      "utilization_notes": "string"
    }
  ]
}"""


def _format_milestones(plan: MilestonePlan) -> str:
    blocks = []
    for i, milestone in enumerate(plan.milestones, 1):
        dependencies = ", ".join(milestone.dependencies) if milestone.dependencies else "None"
        tasks = "\n".join(
            f"  - {task.id}: {task.title} ({task.estimated_hours}h, {task.priority.value} priority, "
            f"Expertise: {', '.join(task.required_expertise)}, Parallel: {task.can_parallel})"
            for task in milestone.tasks
        )
        blocks.append(
            f"Milestone {i}: {milestone.name}\n"
            f"Description: {milestone.description}\n"
            f"Duration: {milestone.duration_weeks} weeks\n"
            f"Dependencies: {dependencies}\n"
            f"Tasks:\n{tasks}"
        )
    return "\n\n".join(blocks)


async def assign_tasks_and_timeline(
    plan: MilestonePlan,
    contributors: List[Contributor],
    special_instructions: Optional[str] = None,
) -> AssignmentPlan:
    """Stage 3: map tasks to contributors and lay out a weekly schedule."""
    team = "\n".join(f"{c.name}: {', '.join(c.expertise) or 'Generalist'}" for c in contributors)

    user_prompt = f"""<team_members>
{team}
</team_members>

<project_breakdown>
{_format_milestones(plan)}
</project_breakdown>{_instructions_section(special_instructions)}

<task>
Create an assignment and timeline that:
1. Gives parallel tasks to different team members
2. Matches tasks to each member's expertise
3. Balances workload so nobody is overloaded while others idle
4. Respects task and milestone dependencies with minimal waiting
5. Completes the project as quickly as possible
6. Pairs people where collaboration helps
7. Follows any special instructions

Assign every task exactly once, using only the task IDs and team member names listed above.
Assume each team member can work 30-40 hours per week on this project.
Show what everyone works on each week and when milestones complete.
</task>

Return only valid JSON."""

    payload = await call_llm(ASSIGNMENT_SYSTEM_PROMPT, user_prompt, structured=True)
    assignments = _coerce(AssignmentPlan, payload, "Assignment")
    logger.info(f"Assigned {len(assignments.assignments)} tasks")
    return assignments


ARTIFACTS_SYSTEM_PROMPT = """You are a senior technical writer, software architect and academic researcher who produces professional documentation, scientific papers and production-ready code structures.

Respond with valid JSON only, following this exact schema:
{
  "readme": "string - complete README.md in markdown",
  "paper_draft": "string - publication-ready academic paper in markdown",
  "code_structure": "string - code architecture and implementation guide",
  "api_documentation": "string - API documentation if applicable",
  "deployment_guide": "string - step-by-step deployment and setup instructions",
  "testing_strategy": "string - testing approach and test cases"
}"""


async def generate_artifacts(
    interpretation: Interpretation,
    plan: MilestonePlan,
    assignments: AssignmentPlan,
    project_idea: str,
) -> Artifacts:
    """Stage 4: produce the long-form documentation bundle."""
    milestone_summary = "\n".join(
        f"- {m.name} ({m.duration_weeks} weeks): {', '.join(m.deliverables)}" for m in plan.milestones
    )
    team_summary = ", ".join(sorted({a.assigned_to for a in assignments.assignments}))

    user_prompt = f"""<project>
Title: {interpretation.title}
Description: {interpretation.description}

Objectives:
{_numbered(interpretation.objectives)}

Technical Requirements:
{_numbered(interpretation.technical_requirements)}

Success Criteria:
{_numbered(interpretation.success_criteria)}

Primary Technologies: {", ".join(interpretation.primary_technologies)}
Target Audience: {interpretation.target_audience}
Business Value: {interpretation.business_value}
</project>

<milestones>
{milestone_summary}
</milestones>

<team>{team_summary}</team>

<original_idea>{project_idea}</original_idea>

<task>
Generate six artifacts:
1. README.md: description, installation, usage examples, architecture overview, contributing guidelines, license, troubleshooting and roadmap.
2. Academic paper (6-8 pages): abstract, introduction, methodology, architecture, experimental setup, expected results, discussion, conclusion and placeholder references.
3. Code structure: architecture, directory layout, core modules, data models, interfaces, key algorithms, configuration, error handling and logging.
4. API documentation: endpoints, request/response schemas, authentication, rate limits, SDK examples and error codes.
5. Deployment guide: environment, configuration, database setup, CI/CD, production checklist, monitoring, backups and scaling.
6. Testing strategy: unit, integration, end-to-end, performance and security testing, test data and the automated pipeline.

Use proper markdown with code examples. Everything must be immediately usable.
</task>

Return only valid JSON."""

    payload = await call_llm(ARTIFACTS_SYSTEM_PROMPT, user_prompt, structured=True)
    artifacts = _coerce(Artifacts, payload, "Artifacts")
    logger.info(f"Artifacts generated (README length: {len(artifacts.readme)})")
    return artifacts


def check_plan_integrity(
    plan: MilestonePlan,
    assignments: AssignmentPlan,
    contributors: List[Contributor],
) -> List[IntegrityIssue]:
    """Report cross-reference mismatches between tasks, assignments and contributors."""
    issues: List[IntegrityIssue] = []

    seen_ids = set()
    for task in plan.all_tasks():
        if task.id in seen_ids:
            issues.append(IntegrityIssue(
                kind="duplicate_task_id",
                detail=f"Task ID {task.id} appears more than once",
                task_id=task.id,
            ))
        seen_ids.add(task.id)

    contributor_names = {c.name for c in contributors}
    for assignment in assignments.assignments:
        if assignment.task_id not in seen_ids:
            issues.append(IntegrityIssue(
                kind="unknown_task",
                detail=f"Assignment references unknown task {assignment.task_id}",
                task_id=assignment.task_id,
                contributor=assignment.assigned_to,
            ))
        if assignment.assigned_to not in contributor_names:
            issues.append(IntegrityIssue(
                kind="unknown_contributor",
                detail=f"Task {assignment.task_id} is assigned to unknown contributor {assignment.assigned_to}",
                task_id=assignment.task_id,
                contributor=assignment.assigned_to,
            ))
        if assignment.end_week < assignment.start_week:
            issues.append(IntegrityIssue(
                kind="inverted_weeks",
                detail=f"Task {assignment.task_id} ends (week {assignment.end_week}) before it starts (week {assignment.start_week})",
                task_id=assignment.task_id,
            ))

    return issues
