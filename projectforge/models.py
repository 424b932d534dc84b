"""Data model for requests, pipeline stage outputs and publish results."""

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class _CaseInsensitiveEnum(str, Enum):
    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            normalized = value.strip().replace("_", " ").lower()
            for member in cls:
                if member.value.lower() == normalized:
                    return member
        return None


class Complexity(_CaseInsensitiveEnum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    VERY_HIGH = "Very High"


class Priority(_CaseInsensitiveEnum):
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


# Suggested expertise vocabulary offered to contributors (free text is also accepted).
EXPERTISE_SUGGESTIONS = [
    "Architecture",
    "Backend Development",
    "Frontend Development",
    "DevOps",
    "Database Design",
    "API Development",
    "Testing",
    "Documentation",
    "Research",
    "Data Science",
    "Machine Learning",
    "UI/UX Design",
    "Mobile Development",
    "Security",
    "Performance Optimization",
    "Integration",
    "Deployment",
]


class Contributor(BaseModel):
    name: str
    expertise: List[str] = []


class GenerateProjectRequest(BaseModel):
    project_idea: str = ""
    special_instructions: Optional[str] = None
    contributors: List[Contributor] = []


class _UpstreamModel(BaseModel):
    """Base for shapes returned by the completion model; unknown keys are kept."""
    model_config = ConfigDict(extra="allow")


class Interpretation(_UpstreamModel):
    title: str
    description: str
    objectives: List[str]
    scope_assumptions: List[str] = []
    technical_requirements: List[str] = []
    success_criteria: List[str] = []
    estimated_duration: str = ""
    complexity_level: Complexity = Complexity.MEDIUM
    primary_technologies: List[str] = []
    target_audience: str = ""
    business_value: str = ""


class Task(_UpstreamModel):
    id: str
    title: str
    description: str = ""
    required_expertise: List[str] = []
    estimated_hours: Union[float, str] = 0
    priority: Priority = Priority.MEDIUM
    can_parallel: bool = False
    dependencies: List[str] = []


class Milestone(_UpstreamModel):
    name: str
    description: str = ""
    duration_weeks: Union[float, str] = 0
    dependencies: List[str] = []
    deliverables: List[str] = []
    tasks: List[Task] = []


class MilestonePlan(_UpstreamModel):
    project_phases: str = ""
    milestones: List[Milestone]

    def all_tasks(self) -> List[Task]:
        return [task for milestone in self.milestones for task in milestone.tasks]


class Assignment(_UpstreamModel):
    task_id: str
    assigned_to: str
    start_week: int
    end_week: int
    assignment_rationale: str = ""
    collaboration_notes: str = ""


class AssignmentPlan(_UpstreamModel):
    timeline_strategy: str = ""
    total_estimated_weeks: Optional[Union[float, str]] = None
    assignments: List[Assignment]
    weekly_schedule: List[Dict[str, Any]] = []
    workload_distribution: List[Dict[str, Any]] = []

    def for_task(self, task_id: str) -> Optional[Assignment]:
        for assignment in self.assignments:
            if assignment.task_id == task_id:
                return assignment
        return None


class Artifacts(_UpstreamModel):
    readme: str = ""
    paper_draft: str = ""
    code_structure: str = ""
    api_documentation: str = ""
    deployment_guide: str = ""
    testing_strategy: str = ""


class PublishResult(BaseModel):
    """Outcome of one publish step; failures are values, never exceptions."""
    target: str
    ok: bool
    url: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, target: str, url: str) -> "PublishResult":
        return cls(target=target, ok=True, url=url)

    @classmethod
    def failure(cls, target: str, error: str) -> "PublishResult":
        return cls(target=target, ok=False, error=error)


class IntegrityIssue(BaseModel):
    kind: str
    detail: str
    task_id: Optional[str] = None
    contributor: Optional[str] = None


class KnowledgeItem(BaseModel):
    """One learning held by the knowledge base."""
    key: str
    kind: str
    content: Any
    strength: float = 1.0
    last_touched: str = ""
    evidence: List[str] = Field(default_factory=list)


class KnowledgeImportRequest(BaseModel):
    patterns: List[KnowledgeItem] = Field(default_factory=list)
    insights: List[KnowledgeItem] = Field(default_factory=list)
    best_practices: List[KnowledgeItem] = Field(default_factory=list)
    technologies: List[KnowledgeItem] = Field(default_factory=list)
