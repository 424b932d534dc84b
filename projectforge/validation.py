"""Validation agent: scores a plan against a fixed checklist of criteria."""

import asyncio
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from .config import VALIDATION_PASS_SCORE
from .llm import call_llm, to_json
from .log import get_logger, log_with_context
from .web_search import WebSearchAgent

logger = get_logger(__name__)


class ValidationCriterion(str, Enum):
    TECHNICAL_FEASIBILITY = "technical_feasibility"
    MARKET_VIABILITY = "market_viability"
    RESOURCE_ADEQUACY = "resource_adequacy"
    TIMELINE_REALISM = "timeline_realism"
    RISK_ASSESSMENT = "risk_assessment"
    COMPLETENESS_CHECK = "completeness_check"
    QUALITY_STANDARDS = "quality_standards"
    BEST_PRACTICES_COMPLIANCE = "best_practices_compliance"


# (system prompt, user-prompt heading) per criterion with a dedicated reviewer.
CRITERION_PROMPTS = {
    ValidationCriterion.TECHNICAL_FEASIBILITY: ("""You are a senior technical architect. Validate the technical feasibility of this project.

Respond with JSON:
{
  "score": 0-100,
  "feasibility": "high|medium|low",
  "technical_challenges": ["technical challenges"],
  "technology_risks": ["technology-related risks"],
  "architecture_concerns": ["architecture concerns"],
  "scalability_assessment": "excellent|good|fair|poor",
  "performance_expectations": "realistic|optimistic|unrealistic",
  "implementation_complexity": "low|medium|high|very_high",
  "recommendations": ["technical recommendations"]
}""", "Assess technical feasibility and provide detailed analysis."),
    ValidationCriterion.MARKET_VIABILITY: ("""You are a market research expert. Validate the market viability of this project.

Respond with JSON:
{
  "score": 0-100,
  "viability": "high|medium|low",
  "market_demand": "high|medium|low",
  "competition_level": "low|medium|high|very_high",
  "target_market_size": "large|medium|small|niche",
  "monetization_potential": "excellent|good|fair|poor",
  "market_timing": "excellent|good|fair|poor",
  "barriers_to_entry": ["market barriers"],
  "competitive_advantages": ["competitive advantages"],
  "recommendations": ["market recommendations"]
}""", "Assess market viability and provide detailed analysis."),
    ValidationCriterion.RESOURCE_ADEQUACY: ("""You are a resource planning expert. Validate whether the allocated resources are adequate for this project.

Respond with JSON:
{
  "score": 0-100,
  "adequacy": "adequate|insufficient|excessive",
  "team_size_assessment": "appropriate|understaffed|overstaffed",
  "skill_coverage": "complete|partial|inadequate",
  "missing_expertise": ["missing expertise areas"],
  "workload_distribution": "balanced|unbalanced",
  "resource_risks": ["resource-related risks"],
  "optimization_opportunities": ["resource optimization suggestions"],
  "recommendations": ["resource recommendations"]
}""", "Assess resource adequacy and allocation efficiency."),
    ValidationCriterion.TIMELINE_REALISM: ("""You are a project management expert. Validate the realism of the project timeline.

Respond with JSON:
{
  "score": 0-100,
  "realism": "realistic|optimistic|unrealistic",
  "timeline_assessment": "well_planned|rushed|too_conservative",
  "critical_path_analysis": ["critical path concerns"],
  "dependency_risks": ["dependency-related risks"],
  "buffer_adequacy": "adequate|insufficient|excessive",
  "milestone_feasibility": ["milestone feasibility assessments"],
  "timeline_risks": ["timeline risks"],
  "recommendations": ["timeline recommendations"]
}""", "Assess timeline realism and identify potential scheduling issues."),
    ValidationCriterion.RISK_ASSESSMENT: ("""You are a risk management expert. Validate the project's risk assessment and mitigation strategies.

Respond with JSON:
{
  "score": 0-100,
  "risk_coverage": "comprehensive|partial|inadequate",
  "unidentified_risks": ["risks not previously identified"],
  "mitigation_quality": "excellent|good|fair|poor",
  "contingency_planning": "adequate|inadequate",
  "risk_monitoring": ["risk monitoring recommendations"],
  "critical_risks": ["most critical risks"],
  "risk_tolerance": "appropriate|too_high|too_low",
  "recommendations": ["risk management recommendations"]
}""", "Assess risk identification, analysis, and mitigation strategies."),
    ValidationCriterion.COMPLETENESS_CHECK: ("""You are a project completeness auditor. Check whether all necessary project components are included.

Respond with JSON:
{
  "score": 0-100,
  "completeness": "complete|mostly_complete|incomplete",
  "missing_components": ["missing project components"],
  "documentation_quality": "excellent|good|fair|poor",
  "specification_clarity": "clear|unclear|ambiguous",
  "deliverable_definition": "well_defined|partially_defined|poorly_defined",
  "acceptance_criteria": "clear|unclear|missing",
  "quality_standards": ["quality standard assessments"],
  "recommendations": ["completeness recommendations"]
}""", "Check project completeness and identify missing components."),
    ValidationCriterion.QUALITY_STANDARDS: ("""You are a quality assurance expert. Validate adherence to quality standards and best practices.

Respond with JSON:
{
  "score": 0-100,
  "quality_level": "excellent|good|fair|poor",
  "standards_compliance": ["standards compliance assessments"],
  "best_practices_adherence": "high|medium|low",
  "code_quality_expectations": "realistic|unrealistic",
  "testing_strategy": "comprehensive|adequate|inadequate",
  "documentation_standards": "excellent|good|fair|poor",
  "quality_gates": ["recommended quality gates"],
  "recommendations": ["quality improvement recommendations"]
}""", "Assess quality standards and best practices compliance."),
    ValidationCriterion.BEST_PRACTICES_COMPLIANCE: ("""You are a best practices expert. Validate compliance with industry best practices.

Respond with JSON:
{
  "score": 0-100,
  "compliance_level": "high|medium|low",
  "best_practices_followed": ["best practices being followed"],
  "best_practices_missing": ["missing best practices"],
  "industry_standards": ["relevant industry standards"],
  "methodology_alignment": "aligned|partially_aligned|misaligned",
  "process_maturity": "high|medium|low",
  "improvement_areas": ["areas for improvement"],
  "recommendations": ["best practices recommendations"]
}""", "Assess compliance with industry best practices."),
}

GENERIC_PROMPT = """You are a project validation expert. Validate this project against the specified criterion.

Respond with JSON:
{
  "score": 0-100,
  "assessment": "excellent|good|fair|poor",
  "strengths": ["strengths in this area"],
  "weaknesses": ["weaknesses in this area"],
  "risks": ["risks related to this criterion"],
  "opportunities": ["opportunities for improvement"],
  "recommendations": ["specific recommendations"]
}"""

SUGGESTIONS_PROMPT = """You are a project improvement consultant. Generate specific, actionable improvement suggestions.

Respond with JSON:
{
  "suggestions": [
    {
      "category": "category of improvement",
      "priority": "high|medium|low",
      "suggestion": "specific improvement suggestion",
      "rationale": "why this improvement is needed",
      "implementation": "how to implement this improvement",
      "impact": "expected impact of this improvement"
    }
  ]
}"""

REPORT_PROMPT = """You are a project validation reporter. Generate a comprehensive validation report.

Respond with JSON:
{
  "executive_summary": "high-level summary of validation results",
  "overall_assessment": "overall project assessment",
  "key_strengths": ["key project strengths"],
  "critical_issues": ["critical issues to address"],
  "recommendations": ["prioritized recommendations"],
  "risk_level": "low|medium|high|very_high",
  "go_no_go_recommendation": "go|conditional_go|no_go",
  "next_steps": ["recommended next steps"],
  "validation_confidence": "high|medium|low"
}"""


def criterion_score(result: Any) -> float:
    """The self-reported 0-100 score of one criterion result; 0 when absent or unreadable."""
    if not isinstance(result, dict):
        return 0.0
    raw = result.get("score")
    try:
        score = float(raw)
    except (TypeError, ValueError):
        return 0.0
    return max(0.0, min(100.0, score))


def calculate_overall_score(results: Dict[str, Any]) -> int:
    """Arithmetic mean of per-criterion scores, rounded."""
    scores = [criterion_score(result) for result in results.values()]
    return round(sum(scores) / len(scores)) if scores else 0


def improvement_needed(overall_score: float) -> bool:
    return overall_score < VALIDATION_PASS_SCORE


def _project_title(project: Dict[str, Any]) -> str:
    return project.get("title") or "software development project"


CriterionHandler = Callable[[Dict[str, Any], ValidationCriterion], Awaitable[Dict[str, Any]]]


class ValidationAgent:
    """Validates a generated plan against every criterion concurrently.

    Each criterion is dispatched through an explicit handler table. Market
    viability and best-practices compliance run web searches before their
    review call; every other criterion goes straight to its reviewer prompt,
    and anything without a dedicated prompt falls back to a generic review.
    """

    validation_criteria = list(ValidationCriterion)

    def __init__(self, web_search: Optional[WebSearchAgent] = None):
        self.web_search = web_search or WebSearchAgent()
        self._handlers: Dict[ValidationCriterion, CriterionHandler] = {
            ValidationCriterion.MARKET_VIABILITY: self._validate_market_viability,
            ValidationCriterion.BEST_PRACTICES_COMPLIANCE: self._validate_best_practices,
        }

    def handler_for(self, criterion: ValidationCriterion) -> CriterionHandler:
        if criterion in self._handlers:
            return self._handlers[criterion]
        if criterion in CRITERION_PROMPTS:
            return self._validate_with_prompt
        return self._generic_validation

    async def validate_project(
        self,
        project: Dict[str, Any],
        extra_checks: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        """
        Score ``project`` on every criterion and decide whether it needs enhancement.

        Args:
            project: The generated plan
            extra_checks: Free-form checks requested by analysis; reviewed with the
                generic prompt and reported under ``additional_checks`` without
                affecting ``overall_score``

        Returns:
            Dict with ``results``, ``overall_score``, ``improvement_needed``,
            ``suggestions``, ``additional_checks`` and ``report``
        """
        logger.info("Validation agent: starting project validation")
        extra_checks = [check for check in extra_checks or [] if isinstance(check, str) and check.strip()]

        outcomes, extra_outcomes = await asyncio.gather(
            asyncio.gather(*[self.validate_criterion(project, criterion) for criterion in self.validation_criteria]),
            asyncio.gather(*[self._generic_validation(project, check) for check in extra_checks]),
        )
        results = {criterion.value: outcome for criterion, outcome in zip(self.validation_criteria, outcomes)}

        overall_score = calculate_overall_score(results)
        needs_improvement = improvement_needed(overall_score)
        logger.info(f"Validation overall score: {overall_score} (improvement needed: {needs_improvement})")

        suggestions: List[Dict[str, Any]] = []
        if needs_improvement:
            suggestions = await self.generate_improvement_suggestions(project, results)

        validation = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "validation_criteria": [criterion.value for criterion in self.validation_criteria],
            "results": results,
            "overall_score": overall_score,
            "improvement_needed": needs_improvement,
            "suggestions": suggestions,
            "additional_checks": dict(zip(extra_checks, extra_outcomes)),
        }
        validation["report"] = await self.generate_validation_report(validation)
        return validation

    async def validate_criterion(self, project: Dict[str, Any], criterion: ValidationCriterion) -> Dict[str, Any]:
        log_with_context(logger, logging.INFO, "Validating criterion", criterion=criterion.value)
        return await self.handler_for(criterion)(project, criterion)

    async def _validate_with_prompt(
        self,
        project: Dict[str, Any],
        criterion: ValidationCriterion,
        research: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        system_prompt, instruction = CRITERION_PROMPTS[criterion]
        research_section = ""
        if research is not None:
            research_section = f"\n\nResearch Data:\n{to_json(research)}"
        return await call_llm(
            system_prompt,
            f"Project for Validation ({criterion.value}):\n{to_json(project)}{research_section}\n\n{instruction}",
        )

    async def _validate_market_viability(self, project: Dict[str, Any], criterion: ValidationCriterion) -> Dict[str, Any]:
        title = _project_title(project)
        year = datetime.now(timezone.utc).year
        market_research = await self.web_search.search_multiple_queries([
            f"{title} market demand {year}",
            f"{title} competition analysis",
            f"{title} target audience size",
            f"{title} monetization strategies",
        ])
        return await self._validate_with_prompt(project, criterion, research=market_research)

    async def _validate_best_practices(self, project: Dict[str, Any], criterion: ValidationCriterion) -> Dict[str, Any]:
        research = await self.web_search.search_best_practices(_project_title(project))
        return await self._validate_with_prompt(project, criterion, research=research)

    async def _generic_validation(
        self,
        project: Dict[str, Any],
        criterion: Union[ValidationCriterion, str],
    ) -> Dict[str, Any]:
        name = criterion.value if isinstance(criterion, ValidationCriterion) else criterion
        return await call_llm(
            GENERIC_PROMPT,
            f"Project for Validation:\n{to_json(project)}\n\n"
            f"Validation Criterion: {name}\n\n"
            "Provide detailed validation assessment for this criterion.",
        )

    async def generate_improvement_suggestions(
        self,
        project: Dict[str, Any],
        results: Dict[str, Any],
    ) -> List[Dict[str, Any]]:
        response = await call_llm(
            SUGGESTIONS_PROMPT,
            f"Project:\n{to_json(project)}\n\n"
            f"Validation Results:\n{to_json(results)}\n\n"
            "Generate prioritized improvement suggestions based on validation findings.",
        )
        suggestions = response.get("suggestions") or []
        return [item for item in suggestions if isinstance(item, dict)]

    async def generate_validation_report(self, validation: Dict[str, Any]) -> Dict[str, Any]:
        return await call_llm(
            REPORT_PROMPT,
            f"Validation Results:\n{to_json(validation)}\n\n"
            "Generate a comprehensive validation report with clear recommendations.",
        )
